"""Prerequisite checks and scheduling advice built on the evaluator.

`check_course` is what routes call: it normalizes the stored data, evaluates
it, and never raises for bad catalog data. Malformed prerequisites come back
as status "unverifiable" so the UI can say so instead of guessing.
"""

from __future__ import annotations

import logging
import re
from collections import Counter
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence, Tuple

from services.errors import MalformedPrerequisiteError
from services.prereq_eval import EvaluationResult, SatisfactionContext, evaluate
from services.prereq_ir import (
    DEFAULT_MAX_DEPTH,
    BooleanNode,
    ConditionNode,
    CourseRef,
    Empty,
    Expression,
)
from utils.prereq_parser import StoredPrerequisites, normalize

logger = logging.getLogger(__name__)

UNVERIFIABLE_MESSAGE = "Prerequisites could not be verified"

STATUS_SATISFIED = "satisfied"
STATUS_MISSING = "missing"
STATUS_UNVERIFIABLE = "unverifiable"

# 1000-level course ids, e.g. "MATH 1554"
FOUNDATIONAL_RE = re.compile(r"^[A-Z]{2,4}\s?1\d{3}$")

# A course missing at least this many prerequisites blocks the plan
CRITICAL_MISSING_THRESHOLD = 2


@dataclass
class PrerequisiteCheck:
    course_code: str
    status: str
    missing: List[str] = field(default_factory=list)
    suggested_semesters: Dict[str, int] = field(default_factory=dict)
    recommendations: List[str] = field(default_factory=list)
    notes: List[str] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)
    errors: List[str] = field(default_factory=list)
    message: Optional[str] = None

    @property
    def is_valid(self) -> bool:
        return self.status == STATUS_SATISFIED

    def to_dict(self) -> dict[str, Any]:
        return {
            "course_code": self.course_code,
            "status": self.status,
            "is_valid": self.is_valid,
            "missing": list(self.missing),
            "suggested_semesters": dict(self.suggested_semesters),
            "recommendations": list(self.recommendations),
            "notes": list(self.notes),
            "warnings": list(self.warnings),
            "errors": list(self.errors),
            "message": self.message,
        }


@dataclass
class BatchCheck:
    overall: bool
    checks: List[PrerequisiteCheck]
    critical_blocks: List[str]
    optimizations: List[str]

    def to_dict(self) -> dict[str, Any]:
        return {
            "overall": self.overall,
            "checks": [c.to_dict() for c in self.checks],
            "critical_blocks": list(self.critical_blocks),
            "optimizations": list(self.optimizations),
        }


# -----------------------------
# Scheduling heuristic
# -----------------------------

def recommend_schedule(missing: Iterable[CourseRef], ctx: SatisfactionContext) -> Dict[str, int]:
    """
    Suggest a semester for each missing course: one semester before the target.

    Shallow on purpose. It does not look at the missing course's own
    prerequisites or at credit load; services.chain_planner does.
    """
    semester = max(1, ctx.target_semester - 1)
    return {ref.course_id: semester for ref in missing}


def recommendations_for(missing: Sequence[str]) -> List[str]:
    if not missing:
        return []

    out = [f"Complete these prerequisites first: {', '.join(missing)}"]

    foundational = [code for code in missing if FOUNDATIONAL_RE.match(code)]
    if foundational:
        out.append(f"Consider taking foundational courses early: {', '.join(foundational)}")

    if len(missing) > 2:
        out.append("Consider splitting prerequisites across multiple semesters for better workload distribution")

    return out


# -----------------------------
# Single course
# -----------------------------

def check_course(
    course_code: str,
    raw: Any,
    ctx: SatisfactionContext,
    *,
    max_depth: int = DEFAULT_MAX_DEPTH,
) -> PrerequisiteCheck:
    """Normalize + evaluate one course's prerequisites for the given record."""
    try:
        tree = _as_tree(raw, max_depth)
        result = evaluate(tree, ctx, max_depth=max_depth)
    except MalformedPrerequisiteError as e:
        logger.warning("Prerequisites for %s could not be verified: %s", course_code, e)
        return PrerequisiteCheck(
            course_code=course_code,
            status=STATUS_UNVERIFIABLE,
            errors=[str(e)],
            message=UNVERIFIABLE_MESSAGE,
        )

    return _check_from_result(course_code, result, ctx)


def _as_tree(raw: Any, max_depth: int) -> Expression:
    # already-normalized trees skip the parser
    if isinstance(raw, (Empty, CourseRef, BooleanNode, ConditionNode)):
        return raw
    if isinstance(raw, StoredPrerequisites):
        return raw.load(max_depth=max_depth)
    return normalize(raw, max_depth=max_depth)


def _check_from_result(course_code: str, result: EvaluationResult, ctx: SatisfactionContext) -> PrerequisiteCheck:
    check = PrerequisiteCheck(
        course_code=course_code,
        status=STATUS_SATISFIED if result.satisfied else STATUS_MISSING,
        missing=result.missing_course_ids,
        notes=list(result.notes),
        warnings=[str(w) for w in result.warnings],
    )
    if not result.satisfied:
        check.suggested_semesters = recommend_schedule(result.missing, ctx)
        check.recommendations = recommendations_for(check.missing)
    return check


# -----------------------------
# Batch
# -----------------------------

def check_courses(
    courses: Iterable[Tuple[str, Any]],
    ctx: SatisfactionContext,
    *,
    max_depth: int = DEFAULT_MAX_DEPTH,
) -> BatchCheck:
    """
    Check several (course_code, raw_prerequisites) pairs against one record.

    One malformed course never aborts the batch; it is reported as
    unverifiable and the overall result is False.
    """
    checks = [check_course(code, raw, ctx, max_depth=max_depth) for code, raw in courses]

    return BatchCheck(
        overall=all(c.is_valid for c in checks),
        checks=checks,
        critical_blocks=identify_critical_blocks(checks),
        optimizations=suggest_optimizations(checks),
    )


def identify_critical_blocks(checks: Sequence[PrerequisiteCheck]) -> List[str]:
    return [
        c.course_code
        for c in checks
        if c.status == STATUS_MISSING and len(c.missing) >= CRITICAL_MISSING_THRESHOLD
    ]


def suggest_optimizations(checks: Sequence[PrerequisiteCheck]) -> List[str]:
    counts = Counter(code for c in checks for code in c.missing)
    shared = sorted(code for code, n in counts.items() if n > 1)
    if not shared:
        return []
    return [
        "Consider prioritizing these prerequisites as they're needed for multiple courses: "
        + ", ".join(shared)
    ]


def recommend_courses(
    candidates: Mapping[str, Any],
    ctx: SatisfactionContext,
    *,
    max_depth: int = DEFAULT_MAX_DEPTH,
) -> List[str]:
    """
    Candidate course codes the student could take in ctx.target_semester.

    Courses already completed, in progress or planned anywhere are skipped,
    and so are courses whose prerequisites can't be verified.
    """
    taken = set(ctx.completed_course_ids) | set(ctx.in_progress_course_ids)
    for codes in ctx.planned_course_ids_by_semester.values():
        taken |= codes

    out: List[str] = []
    for code, raw in candidates.items():
        if code in taken:
            continue
        check = check_course(code, raw, ctx, max_depth=max_depth)
        if check.is_valid:
            out.append(code)
    return sorted(out)


def evaluate_tree(tree: Expression, ctx: SatisfactionContext, *, max_depth: int = DEFAULT_MAX_DEPTH) -> Optional[EvaluationResult]:
    """evaluate() that returns None instead of raising on a malformed tree."""
    try:
        return evaluate(tree, ctx, max_depth=max_depth)
    except MalformedPrerequisiteError as e:
        logger.warning("Skipping malformed prerequisite tree: %s", e)
        return None
