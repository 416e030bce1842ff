from app import app
from extensions import db
from models.catalog_course import CatalogCourse
from models.degree_plan import DegreePlan
from models.plan_constraint import PlanConstraint
from models.plan_course import STATUS_COMPLETED, STATUS_IN_PROGRESS, STATUS_PLANNED, PlanCourse
from models.user import User

DEMO_EMAIL = "demo@gatech.edu"
DEMO_PLAN = "Demo CS plan"

# (code, status, semester_number, grade)
DEMO_COURSES = [
    ("CS 1301", STATUS_COMPLETED, None, "A"),
    ("MATH 1551", STATUS_COMPLETED, None, "B"),
    ("CS 1331", STATUS_IN_PROGRESS, 1, None),
    ("MATH 1554", STATUS_IN_PROGRESS, 1, None),
    ("CS 1332", STATUS_PLANNED, 2, None),
    ("CS 2050", STATUS_PLANNED, 2, None),
    ("CS 2340", STATUS_PLANNED, 3, None),
]


def main():
    with app.app_context():
        user = User.query.filter_by(email=DEMO_EMAIL).first()
        if user is None:
            user = User(email=DEMO_EMAIL, gpa=3.4, total_credits_earned=30, class_year=2)
            db.session.add(user)
            db.session.flush()

        plan = DegreePlan.query.filter_by(user_id=user.id, name=DEMO_PLAN).first()
        if plan is not None:
            # start over; children deleted explicitly (sqlite does not enforce FK cascades)
            PlanCourse.query.filter_by(plan_id=plan.id).delete()
            PlanConstraint.query.filter_by(degree_plan_id=plan.id).delete()
            db.session.delete(plan)
            db.session.flush()

        plan = DegreePlan(user_id=user.id, name=DEMO_PLAN)
        db.session.add(plan)
        db.session.flush()

# ----------------------------------------------------------------------------------------------------------------
#   CONSTRAINTS - global defaults for the plan
# ----------------------------------------------------------------------------------------------------------------

        db.session.add(
            PlanConstraint(
                degree_plan_id=plan.id,
                max_credits_per_semester=18,
                semesters_per_year=2,
                enforce_min_grades=False,
            )
        )

# ----------------------------------------------------------------------------------------------------------------
#   COURSES - must already be in the catalog (run seed_catalog_db.py first)
# ----------------------------------------------------------------------------------------------------------------

        missing = []
        for code, status, semester, grade in DEMO_COURSES:
            course = CatalogCourse.query.filter_by(code=code).first()
            if course is None:
                missing.append(code)
                continue
            db.session.add(
                PlanCourse(
                    plan_id=plan.id,
                    catalog_course_id=course.id,
                    status=status,
                    semester_number=semester,
                    grade=grade,
                )
            )

        db.session.commit()

        print(f"Demo plan ready: user={user.email} plan_id={plan.id}")
        if missing:
            print("Not in catalog, skipped:", ", ".join(missing))


if __name__ == "__main__":
    main()
