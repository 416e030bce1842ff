from services.chain_planner import plan_prerequisite_chain, resolve_missing_chain
from services.prereq_ir import EMPTY
from utils.prereq_parser import normalize


def catalog(**raw_by_code):
    return {code.replace("_", " "): normalize(raw) for code, raw in raw_by_code.items()}


# CS 2340 <- CS 1332 <- CS 1331
CHAIN = catalog(
    CS_1331=None,
    CS_1332=["and", {"id": "CS 1331", "grade": "C"}],
    CS_2340=["and", {"id": "CS 1332", "grade": "C"}],
)


class TestResolveMissingChain:
    def test_transitive_closure(self, make_ctx):
        closure, warnings = resolve_missing_chain("CS 2340", make_ctx(target_semester=4), CHAIN)
        assert closure == ["CS 1332", "CS 1331"]
        assert warnings == []

    def test_completed_courses_stop_the_walk(self, make_ctx):
        closure, _ = resolve_missing_chain("CS 2340", make_ctx(completed={"CS 1331"}, target_semester=4), CHAIN)
        assert closure == ["CS 1332"]

    def test_or_follows_cheapest_branch(self, make_ctx):
        trees = catalog(
            MATH_2551=["or", ["and", "MATH 1551", "MATH 1552"], "MATH 1554"],
            MATH_1551=None,
            MATH_1552=None,
            MATH_1554=None,
        )
        closure, _ = resolve_missing_chain("MATH 2551", make_ctx(target_semester=3), trees)
        assert closure == ["MATH 1554"]

    def test_unknown_course_warned(self, make_ctx):
        trees = {"CS 4641": normalize(["and", "ZZZ 9999"])}
        closure, warnings = resolve_missing_chain("CS 4641", make_ctx(target_semester=3), trees)
        assert closure == ["ZZZ 9999"]
        assert [(w.raw, w.kind) for w in warnings] == [("ZZZ 9999", "missing_course")]

    def test_unmet_condition_warned(self, make_ctx):
        trees = {"CS 4641": normalize(["and", {"type": "gpa", "value": 3.5}])}
        _, warnings = resolve_missing_chain("CS 4641", make_ctx(gpa=3.0, target_semester=3), trees)
        assert [(w.raw, w.kind) for w in warnings] == [("GPA >= 3.5", "unmet_condition")]


class TestPlanPrerequisiteChain:
    def test_already_satisfied(self, make_ctx):
        plan = plan_prerequisite_chain("CS 2340", make_ctx(completed={"CS 1332"}, target_semester=4), CHAIN)
        assert plan.status == "Satisfied"
        assert plan.schedule == {}
        assert plan.used_fallback is False

    def test_two_level_chain_ordered(self, make_ctx):
        plan = plan_prerequisite_chain("CS 2340", make_ctx(target_semester=4), CHAIN)
        assert plan.status == "Optimal"
        assert plan.used_fallback is False
        assert plan.schedule == {"CS 1331": 1, "CS 1332": 2}

    def test_existing_load_respected(self, make_ctx):
        plan = plan_prerequisite_chain(
            "CS 2340",
            make_ctx(target_semester=4),
            CHAIN,
            max_credits_per_semester=18,
            existing_load={1: 17},
        )
        assert plan.schedule == {"CS 1331": 2, "CS 1332": 3}

    def test_planned_courses_count_before_their_semester(self, make_ctx):
        ctx = make_ctx(planned={2: {"CS 1331"}}, target_semester=5)
        plan = plan_prerequisite_chain("CS 2340", ctx, CHAIN)
        # CS 1331 is in the plan already, CS 1332 can only follow it
        assert plan.schedule == {"CS 1332": 3}

    def test_no_room_before_target_falls_back(self, make_ctx):
        plan = plan_prerequisite_chain("CS 2340", make_ctx(target_semester=1), CHAIN)
        assert plan.status == "Heuristic"
        assert plan.used_fallback is True
        assert plan.schedule == {"CS 1332": 1, "CS 1331": 1}

    def test_infeasible_falls_back(self, make_ctx):
        plan = plan_prerequisite_chain(
            "CS 2340",
            make_ctx(target_semester=4),
            CHAIN,
            max_credits_per_semester=2,
        )
        assert plan.status != "Optimal"
        assert plan.used_fallback is True
        assert plan.schedule == {"CS 1332": 3, "CS 1331": 3}

    def test_to_dict_sorted_by_semester(self, make_ctx):
        out = plan_prerequisite_chain("CS 2340", make_ctx(target_semester=4), CHAIN).to_dict()
        assert list(out["schedule"]) == ["CS 1331", "CS 1332"]
        assert out["target_semester"] == 4
        assert out["warnings"] == []

    def test_target_without_tree(self, make_ctx):
        plan = plan_prerequisite_chain("CS 9999", make_ctx(target_semester=2), {"CS 9999": EMPTY})
        assert plan.status == "Satisfied"


class TestUnreadablePrerequisites:
    def test_target_is_unverifiable(self, make_ctx):
        plan = plan_prerequisite_chain("BAD 1000", make_ctx(target_semester=4), CHAIN, malformed={"BAD 1000"})
        assert plan.status == "Unverifiable"
        assert plan.message == "Prerequisites could not be verified"
        assert plan.schedule == {}
        assert plan.used_fallback is False
        assert plan.to_dict()["message"] == "Prerequisites could not be verified"

    def test_course_inside_chain_warned_as_malformed(self, make_ctx):
        trees = dict(CHAIN, **{"CS 4803": normalize(["and", "BAD 1000"])})
        closure, warnings = resolve_missing_chain(
            "CS 4803", make_ctx(target_semester=3), trees, malformed={"BAD 1000"}
        )
        assert closure == ["BAD 1000"]
        assert [(w.course, w.kind) for w in warnings] == [("BAD 1000", "malformed")]

    def test_chain_still_planned_around_unreadable_course(self, make_ctx):
        trees = dict(CHAIN, **{"CS 4803": normalize(["and", "BAD 1000", "CS 1331"])})
        plan = plan_prerequisite_chain("CS 4803", make_ctx(target_semester=3), trees, malformed={"BAD 1000"})
        assert plan.status == "Optimal"
        assert plan.schedule == {"BAD 1000": 1, "CS 1331": 1}
        assert [w.kind for w in plan.warnings] == ["malformed"]
