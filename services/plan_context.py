from __future__ import annotations

import logging
from typing import Dict, Optional, Set

from models.degree_plan import DegreePlan
from models.plan_course import PLAN_COURSE_STATUSES, STATUS_COMPLETED, STATUS_IN_PROGRESS, PlanCourse
from services.prereq_eval import SatisfactionContext

logger = logging.getLogger(__name__)


def build_context_for_plan(
    plan: DegreePlan,
    target_semester: Optional[int] = None,
    *,
    exclude_code: Optional[str] = None,
) -> SatisfactionContext:
    """
    Assemble a SatisfactionContext from a plan's courses and its owner's record.

    - completed / in-progress come from PlanCourse.status
    - planned rows count in their semester_number; unknown statuses are skipped
    - target_semester defaults to the semester after the last planned one
    - exclude_code drops the course being checked, so it can't satisfy itself
    """
    rows = PlanCourse.query.filter_by(plan_id=plan.id).all()

    completed: Set[str] = set()
    in_progress: Set[str] = set()
    planned: Dict[int, Set[str]] = {}
    grades: Dict[str, str] = {}

    for pc in rows:
        code = pc.code
        if code == exclude_code:
            continue
        if pc.status not in PLAN_COURSE_STATUSES:
            logger.warning("Plan %s: ignoring %s with unknown status %r", plan.id, code, pc.status)
            continue
        if pc.status == STATUS_COMPLETED:
            completed.add(code)
            if pc.grade:
                grades[code] = pc.grade
        elif pc.status == STATUS_IN_PROGRESS:
            in_progress.add(code)
        elif pc.semester_number is not None:
            planned.setdefault(int(pc.semester_number), set()).add(code)

    if target_semester is None:
        target_semester = max(planned.keys(), default=0) + 1

    user = plan.user
    constraints = plan.constraints

    return SatisfactionContext.build(
        completed=completed,
        in_progress=in_progress,
        planned=planned,
        target_semester=target_semester,
        gpa=user.gpa,
        total_credits_earned=user.total_credits_earned,
        class_year=user.class_year,
        grades=grades,
        enforce_grades=bool(constraints and constraints.enforce_min_grades),
    )


def semester_course_codes(plan: DegreePlan, semester: int) -> list[str]:
    rows = PlanCourse.query.filter_by(plan_id=plan.id, semester_number=semester).all()
    return sorted(pc.code for pc in rows)
