from models.degree_plan import DegreePlan
from services.plan_context import build_context_for_plan, semester_course_codes
from utils.semesters import format_semester_label, label_schedule


class TestBuildContextForPlan:
    def test_rows_sorted_into_collections(self, plan, add_course, add_plan_course):
        a = add_course("CS 1301")
        b = add_course("CS 1331")
        c = add_course("CS 1332")
        add_plan_course(plan, a, status="completed", grade="A")
        add_plan_course(plan, b, status="in_progress", semester_number=1)
        add_plan_course(plan, c, semester_number=2)

        ctx = build_context_for_plan(plan)

        assert ctx.completed_course_ids == {"CS 1301"}
        assert ctx.in_progress_course_ids == {"CS 1331"}
        assert ctx.planned_course_ids_by_semester == {2: {"CS 1332"}}
        assert ctx.target_semester == 3
        assert ctx.grades == {"CS 1301": "A"}
        assert ctx.gpa == 3.2
        assert ctx.class_year == 2
        assert ctx.enforce_grades is False

    def test_excluded_course_cannot_satisfy_itself(self, plan, add_course, add_plan_course):
        add_plan_course(plan, add_course("CS 1331"), semester_number=1)
        ctx = build_context_for_plan(plan, 5, exclude_code="CS 1331")
        assert ctx.satisfied_course_ids() == frozenset()
        assert ctx.target_semester == 5

    def test_unknown_status_ignored(self, plan, add_course, add_plan_course):
        add_plan_course(plan, add_course("CS 1331"), status="dropped", semester_number=1)
        add_plan_course(plan, add_course("CS 1332"), semester_number=2)
        ctx = build_context_for_plan(plan)
        assert ctx.satisfied_course_ids() == frozenset({"CS 1332"})
        assert ctx.planned_course_ids_by_semester == {2: {"CS 1332"}}
        assert ctx.target_semester == 3

    def test_grade_enforcement_from_constraints(self, db, plan):
        plan.constraints.enforce_min_grades = True
        db.session.commit()
        assert build_context_for_plan(plan).enforce_grades is True

    def test_semester_course_codes(self, plan, add_course, add_plan_course):
        add_plan_course(plan, add_course("MATH 1554"), semester_number=2)
        add_plan_course(plan, add_course("CS 1331"), semester_number=2)
        assert semester_course_codes(plan, 2) == ["CS 1331", "MATH 1554"]
        assert semester_course_codes(plan, 1) == []


class TestSemesterLabels:
    def test_plain(self):
        assert format_semester_label(3, None) == "Semester 3"

    def test_by_year(self):
        assert format_semester_label(3, 2) == "Year 2 - Semester 1"
        assert format_semester_label(6, 3) == "Year 2 - Semester 3"

    def test_label_schedule(self):
        assert label_schedule({"CS 1331": 1, "CS 1332": 2}, 2) == {
            "CS 1331": "Year 1 - Semester 1",
            "CS 1332": "Year 1 - Semester 2",
        }


class TestConstraintDefaults:
    def test_set_value_wins(self, plan):
        assert plan.constraint_or("max_credits_per_semester", 12) == 18

    def test_unset_value_falls_back(self, db, plan):
        plan.constraints.semesters_per_year = None
        db.session.commit()
        assert plan.constraint_or("semesters_per_year", 3) == 3

    def test_no_constraints_row(self, db, user):
        bare = DegreePlan(user_id=user.id, name="Bare")
        db.session.add(bare)
        db.session.commit()
        assert bare.constraint_or("semesters_per_year", 3) == 3
