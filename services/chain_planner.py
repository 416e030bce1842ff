"""Semester placement for a course's transitive missing prerequisites.

recommend_schedule() puts every missing course one semester before the
target. This module does the deeper version: it follows each missing course's
own prerequisites through the catalog, then places the whole chain with a
small MILP (PuLP/CBC) so each course lands after what it needs and no
semester goes over its credit limit.
"""

from __future__ import annotations

import hashlib
import logging
import re
from collections import deque
from dataclasses import dataclass, field
from typing import AbstractSet, Any, Dict, List, Mapping, Optional, Tuple

from pulp import (
    LpBinary,
    LpMinimize,
    LpProblem,
    LpStatus,
    LpVariable,
    PULP_CBC_CMD,
    lpSum,
)

from services.advisory import UNVERIFIABLE_MESSAGE, evaluate_tree, recommend_schedule
from services.prereq_eval import SatisfactionContext, describe_condition
from services.prereq_ir import (
    DEFAULT_MAX_DEPTH,
    EMPTY,
    BooleanNode,
    ConditionNode,
    CourseRef,
    Empty,
    Expression,
    Operator,
)

logger = logging.getLogger(__name__)

DEFAULT_COURSE_CREDITS = 3.0

# Transitive closure larger than this is almost certainly bad catalog data
MAX_CHAIN_COURSES = 60


# -----------------------------
# Result containers
# -----------------------------

@dataclass
class ChainWarning:
    course: str   # course whose prerequisites were being resolved
    raw: str      # offending course id / detail
    kind: str     # "missing_course" | "malformed" | "unmet_condition" | "too_large"

    def to_dict(self) -> dict[str, str]:
        return {"course": self.course, "raw": self.raw, "kind": self.kind}


@dataclass
class ChainPlan:
    course_code: str
    target_semester: int
    status: str                                  # PuLP status, or "Heuristic" / "Satisfied" / "Unverifiable"
    schedule: Dict[str, int] = field(default_factory=dict)
    warnings: List[ChainWarning] = field(default_factory=list)
    message: Optional[str] = None

    @property
    def used_fallback(self) -> bool:
        return self.status not in ("Optimal", "Satisfied", "Unverifiable")

    def to_dict(self) -> dict[str, Any]:
        return {
            "course_code": self.course_code,
            "target_semester": self.target_semester,
            "status": self.status,
            "used_fallback": self.used_fallback,
            "schedule": dict(sorted(self.schedule.items(), key=lambda kv: (kv[1], kv[0]))),
            "warnings": [w.to_dict() for w in self.warnings],
            "message": self.message,
        }


# -----------------------------
# Closure
# -----------------------------

def resolve_missing_chain(
    course_code: str,
    ctx: SatisfactionContext,
    trees: Mapping[str, Expression],
    *,
    malformed: AbstractSet[str] = frozenset(),
    max_depth: int = DEFAULT_MAX_DEPTH,
) -> Tuple[List[str], List[ChainWarning]]:
    """
    Breadth-first walk of missing prerequisites.

    Each course contributes the courses its evaluation reports as missing, so
    an OR only pulls in its cheapest branch. Returns (closure, warnings) with
    the closure in discovery order (the target course itself excluded).

    Courses in malformed have unreadable prerequisites: they stay in the
    closure but their own prerequisites are unknown and warned about.
    """
    warnings: List[ChainWarning] = []
    closure: List[str] = []
    seen = {course_code}
    queue = deque([course_code])

    while queue:
        code = queue.popleft()
        if code in malformed:
            warnings.append(ChainWarning(course=code, raw=UNVERIFIABLE_MESSAGE, kind="malformed"))
            continue
        if code != course_code and code not in trees:
            warnings.append(ChainWarning(course=course_code, raw=code, kind="missing_course"))
            continue

        result = evaluate_tree(trees.get(code, EMPTY), ctx, max_depth=max_depth)
        if result is None:
            warnings.append(ChainWarning(course=code, raw=UNVERIFIABLE_MESSAGE, kind="malformed"))
            continue

        for cond in result.unmet_conditions:
            warnings.append(ChainWarning(course=code, raw=describe_condition(cond), kind="unmet_condition"))

        for ref in result.missing:
            if ref.course_id in seen:
                continue
            if len(closure) >= MAX_CHAIN_COURSES:
                warnings.append(ChainWarning(course=course_code, raw=ref.course_id, kind="too_large"))
                return closure, warnings
            seen.add(ref.course_id)
            closure.append(ref.course_id)
            queue.append(ref.course_id)

    return closure, warnings


# -----------------------------
# Helpers
# -----------------------------

def _chosen_semester(
    x: Dict[str, Dict[int, LpVariable]],
    semesters: List[int],
    code: str,
) -> Optional[int]:
    for s in semesters:
        v = x[code][s].value()
        if v is not None and v > 0.5:
            return s
    return None


def scheduled_before_expr(
    x: Dict[str, Dict[int, LpVariable]],
    semesters: List[int],
    course_code: str,
    s: int,
):
    """
    Returns expression that equals 1 iff course_code is scheduled in a semester < s.
    Works because each course is forced to be scheduled exactly once.
    """
    return lpSum(x[course_code][t] for t in semesters if t < s)


def _slug(v: Any, max_len: int = 18) -> str:
    s = re.sub(r"[^A-Za-z0-9_]+", "_", str(v)).strip("_")
    return s[:max_len] or "x"


class _Names:
    """PuLP needs globally unique, short constraint names."""

    def __init__(self):
        self.counts: Dict[str, int] = {}

    def __call__(self, tag: str, *parts: Any) -> str:
        raw = tag + "|" + "|".join(str(p) for p in parts)
        digest = hashlib.sha1(raw.encode("utf-8")).hexdigest()[:10]
        n = self.counts.get(digest, 0)
        self.counts[digest] = n + 1
        return f"{_slug(tag)}_{digest}_{n}"


# -----------------------------
# IR -> MILP constraints
# -----------------------------

def add_prereq_constraints(
    model: LpProblem,
    x: Dict[str, Dict[int, LpVariable]],
    *,
    course: str,
    tree: Expression,
    placements: List[int],
    semesters: List[int],
    ctx: SatisfactionContext,
    cn: _Names,
    fixed: Optional[int] = None,
):
    """
    Enforce tree for course: if course sits in semester s, tree holds before s.

    Leaves:
      - completed / in progress, or planned before s: satisfied
      - in the chain (has x vars): scheduled before s
      - anything else: not satisfied
    Conditions don't depend on placement and are treated as satisfied here;
    unmet ones are already reported as warnings.
    """
    base = ctx.completed_course_ids | ctx.in_progress_course_ids
    sat_cache: Dict[Tuple[int, int], LpVariable] = {}

    def planned_before(code: str, s: int) -> bool:
        return any(code in codes for sem, codes in ctx.planned_course_ids_by_semester.items() if sem < s)

    def sat(node: Expression, s: int) -> LpVariable:
        nonlocal model
        key = (id(node), s)
        if key in sat_cache:
            return sat_cache[key]

        z = LpVariable(cn("sat", course, s, id(node)), lowBound=0, upBound=1, cat=LpBinary)
        sat_cache[key] = z

        # ---- constants ----
        if isinstance(node, (Empty, ConditionNode)):
            model += z == 1, cn("sat_const", course, s, id(node))
            return z

        # ---- Leaf ----
        if isinstance(node, CourseRef):
            code = node.course_id
            if code in base or planned_before(code, s):
                model += z == 1, cn("sat_leaf_done", course, s, code)
            elif code in x:
                before = scheduled_before_expr(x, semesters, code, s)
                model += z <= before, cn("sat_leaf_le", course, s, code)
                model += z >= before, cn("sat_leaf_ge", course, s, code)
            else:
                model += z == 0, cn("sat_leaf_none", course, s, code)
            return z

        items = node.children if isinstance(node, BooleanNode) else ()
        if not items:
            model += z == 1, cn("sat_empty", course, s, id(node))
            return z

        child_zs = [sat(ch, s) for ch in items]

        # ---- AND ----
        if node.operator is Operator.AND:
            for i, cz in enumerate(child_zs):
                model += z <= cz, cn("sat_and_le", course, s, id(node), i)
            model += z >= lpSum(child_zs) - (len(child_zs) - 1), cn("sat_and_ge", course, s, id(node))
            return z

        # ---- OR ----
        for i, cz in enumerate(child_zs):
            model += z >= cz, cn("sat_or_ge", course, s, id(node), i)
        model += z <= lpSum(child_zs), cn("sat_or_le", course, s, id(node))
        return z

    if fixed is not None:
        # the target course itself: its placement is given
        model += sat(tree, fixed) == 1, cn("prereq_target", course, fixed)
        return

    for s in placements:
        model += x[course][s] <= sat(tree, s), cn("prereq", course, s)


# -----------------------------
# Planner
# -----------------------------

def plan_prerequisite_chain(
    course_code: str,
    ctx: SatisfactionContext,
    trees: Mapping[str, Expression],
    *,
    credits: Optional[Mapping[str, float]] = None,
    max_credits_per_semester: float = 18,
    existing_load: Optional[Mapping[int, float]] = None,
    earliest_semester: int = 1,
    malformed: AbstractSet[str] = frozenset(),
    max_depth: int = DEFAULT_MAX_DEPTH,
    msg: bool = False,
) -> ChainPlan:
    """
    Place the missing-prerequisite chain of course_code into
    semesters earliest_semester .. ctx.target_semester - 1.

    - trees: course code -> normalized prerequisite tree (catalog)
    - credits: course code -> credit hours (DEFAULT_COURSE_CREDITS when absent)
    - existing_load: semester -> credits already planned there
    - malformed: codes whose stored prerequisites could not be read

    Falls back to recommend_schedule() when the chain can't be placed.
    A target course with unreadable prerequisites is not planned at all:
    status "Unverifiable" with the unverifiable message.
    """
    credits = credits or {}
    existing_load = existing_load or {}
    target = ctx.target_semester

    closure, warnings = resolve_missing_chain(course_code, ctx, trees, malformed=malformed, max_depth=max_depth)
    plan = ChainPlan(course_code=course_code, target_semester=target, status="Satisfied", warnings=warnings)

    if any(w.kind == "malformed" and w.course == course_code for w in warnings):
        logger.warning("Chain for %s not planned: prerequisites could not be verified", course_code)
        plan.status = "Unverifiable"
        plan.message = UNVERIFIABLE_MESSAGE
        return plan

    if not closure:
        return plan

    semesters = list(range(max(1, earliest_semester), target))
    if not semesters:
        logger.info("No semesters before %s for %s chain; using heuristic", target, course_code)
        return _fallback(plan, closure, ctx)

    model = LpProblem("PrereqChain", LpMinimize)
    cn = _Names()

    # decision vars: x[c][s] in {0,1}
    x: Dict[str, Dict[int, LpVariable]] = {
        c: {s: LpVariable(f"x_{_slug(c)}_{s}", lowBound=0, upBound=1, cat=LpBinary) for s in semesters}
        for c in closure
    }

    # 1) each chain course exactly once
    for c in closure:
        model += lpSum(x[c][s] for s in semesters) == 1, cn("one_sem", c)

    # 2) credit limits, counting what the plan already holds
    for s in semesters:
        model += (
            lpSum(float(credits.get(c, DEFAULT_COURSE_CREDITS)) * x[c][s] for c in closure)
            + float(existing_load.get(s, 0))
            <= max_credits_per_semester
        ), cn("max_credits", s)

    # 3) prerequisites: chain courses, then the target course at the target semester
    for c in closure:
        add_prereq_constraints(
            model, x, course=c, tree=trees.get(c, EMPTY), placements=semesters,
            semesters=semesters, ctx=ctx, cn=cn,
        )
    add_prereq_constraints(
        model, x, course=course_code, tree=trees.get(course_code, EMPTY), placements=[],
        semesters=semesters, ctx=ctx, cn=cn, fixed=target,
    )

    # 4) objective: earliest placement overall
    model += lpSum(s * x[c][s] for c in closure for s in semesters), "minimize_sum_semesters"

    model.solve(PULP_CBC_CMD(msg=msg))
    status = LpStatus[model.status]
    logger.debug("Chain solve for %s: %s (%d courses)", course_code, status, len(closure))

    if status != "Optimal":
        plan.status = status
        return _fallback(plan, closure, ctx)

    plan.status = status
    for c in closure:
        chosen = _chosen_semester(x, semesters, c)
        if chosen is not None:
            plan.schedule[c] = chosen
    return plan


def _fallback(plan: ChainPlan, closure: List[str], ctx: SatisfactionContext) -> ChainPlan:
    if plan.status in ("Optimal", "Satisfied"):
        plan.status = "Heuristic"
    plan.schedule = recommend_schedule([CourseRef(course_id=c) for c in closure], ctx)
    return plan
