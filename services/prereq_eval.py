from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Iterable, List, Mapping, Optional

from services.errors import IncompleteContextWarning, MalformedPrerequisiteError
from services.prereq_ir import (
    CLASSIFICATIONS,
    DEFAULT_MAX_DEPTH,
    BooleanNode,
    ConditionKind,
    ConditionNode,
    CourseRef,
    Empty,
    Expression,
    Operator,
    classification_label,
)

logger = logging.getLogger(__name__)


# Higher rank = better grade. Pass/fail style grades meet any threshold.
GRADE_RANK = {"A": 4, "B": 3, "C": 2, "D": 1, "F": 0}
PASS_GRADES = {"P", "S", "CR"}


# -----------------------------
# Context
# -----------------------------

@dataclass(frozen=True)
class SatisfactionContext:
    """The student's record as seen by one evaluation call."""

    completed_course_ids: frozenset[str]
    in_progress_course_ids: frozenset[str]
    planned_course_ids_by_semester: Mapping[int, frozenset[str]]
    target_semester: int

    gpa: Optional[float] = None
    total_credits_earned: Optional[float] = None
    class_year: Optional[int] = None  # 1=Freshman .. 4=Senior

    # Grade-aware extension: only consulted when enforce_grades is set.
    grades: Mapping[str, str] = field(default_factory=dict)
    enforce_grades: bool = False

    @classmethod
    def build(
        cls,
        *,
        completed: Iterable[str] = (),
        in_progress: Iterable[str] = (),
        planned: Optional[Mapping[int, Iterable[str]]] = None,
        target_semester: int = 1,
        **optional,
    ) -> "SatisfactionContext":
        return cls(
            completed_course_ids=frozenset(completed),
            in_progress_course_ids=frozenset(in_progress),
            planned_course_ids_by_semester={
                int(s): frozenset(codes) for s, codes in (planned or {}).items()
            },
            target_semester=int(target_semester),
            **optional,
        )

    def satisfied_course_ids(self) -> frozenset[str]:
        """completed | in-progress | planned strictly before target_semester"""
        ids = set(self.completed_course_ids) | set(self.in_progress_course_ids)
        for sem, codes in self.planned_course_ids_by_semester.items():
            if sem < self.target_semester:
                ids |= codes
        return frozenset(ids)

    def with_target(self, target_semester: int) -> "SatisfactionContext":
        return SatisfactionContext(
            completed_course_ids=self.completed_course_ids,
            in_progress_course_ids=self.in_progress_course_ids,
            planned_course_ids_by_semester=self.planned_course_ids_by_semester,
            target_semester=target_semester,
            gpa=self.gpa,
            total_credits_earned=self.total_credits_earned,
            class_year=self.class_year,
            grades=self.grades,
            enforce_grades=self.enforce_grades,
        )


# -----------------------------
# Result
# -----------------------------

@dataclass
class EvaluationResult:
    satisfied: bool
    missing: List[CourseRef] = field(default_factory=list)
    satisfied_by: List[str] = field(default_factory=list)
    unmet_conditions: List[ConditionNode] = field(default_factory=list)
    warnings: List[IncompleteContextWarning] = field(default_factory=list)
    notes: List[str] = field(default_factory=list)

    @property
    def missing_course_ids(self) -> List[str]:
        return [ref.course_id for ref in self.missing]

    def to_dict(self) -> dict:
        return {
            "satisfied": self.satisfied,
            "missing": self.missing_course_ids,
            "satisfied_by": list(self.satisfied_by),
            "unmet_conditions": [describe_condition(c) for c in self.unmet_conditions],
            "warnings": [str(w) for w in self.warnings],
            "notes": list(self.notes),
        }


def describe_condition(cond: ConditionNode) -> str:
    label = {
        ConditionKind.GPA: "GPA",
        ConditionKind.CREDIT: "Credits",
        ConditionKind.CLASSIFICATION: "Classification",
    }[cond.kind]
    value = cond.value
    if cond.kind is ConditionKind.CLASSIFICATION and isinstance(value, int) and not isinstance(value, bool):
        value = classification_label(value)
    return f"{label} {cond.comparator} {value}"


# -----------------------------
# Helpers
# -----------------------------

def compare_values(actual: float, required: float, comparator: str) -> bool:
    if comparator == ">":
        return actual > required
    if comparator == "<":
        return actual < required
    if comparator == "<=":
        return actual <= required
    if comparator == "=":
        return abs(actual - required) < 0.01
    return actual >= required


def grade_meets(actual: str, minimum: str) -> bool:
    a = actual.strip().upper()
    m = minimum.strip().upper()
    if a in PASS_GRADES:
        return True
    if a not in GRADE_RANK or m not in GRADE_RANK:
        # unknown scale: membership is all we can say
        return True
    return GRADE_RANK[a] >= GRADE_RANK[m]


def _dedupe_refs(refs: Iterable[CourseRef]) -> List[CourseRef]:
    seen: set[str] = set()
    out: List[CourseRef] = []
    for ref in refs:
        if ref.course_id in seen:
            continue
        seen.add(ref.course_id)
        out.append(ref)
    return out


def _dedupe(items: Iterable[str]) -> List[str]:
    return list(dict.fromkeys(items))


# -----------------------------
# Evaluation
# -----------------------------

def evaluate(
    expr: Expression,
    ctx: SatisfactionContext,
    *,
    max_depth: int = DEFAULT_MAX_DEPTH,
) -> EvaluationResult:
    """
    Evaluate a prerequisite tree against the student's record.

    AND reports every blocking course. OR, when no branch is satisfied,
    reports the branch with the fewest missing courses (first listed wins a
    tie) and notes that alternatives exist.

    Raises MalformedPrerequisiteError if the tree is deeper than max_depth.
    """
    satisfied_ids = ctx.satisfied_course_ids()
    return _evaluate(expr, ctx, satisfied_ids, 0, max_depth)


def _evaluate(
    node: Expression,
    ctx: SatisfactionContext,
    satisfied_ids: frozenset[str],
    depth: int,
    max_depth: int,
) -> EvaluationResult:
    if depth > max_depth:
        raise MalformedPrerequisiteError(f"prerequisite tree deeper than {max_depth} levels")

    # ---- Empty ----
    if isinstance(node, Empty):
        return EvaluationResult(satisfied=True)

    # ---- Leaf ----
    if isinstance(node, CourseRef):
        return _evaluate_leaf(node, ctx, satisfied_ids)

    # ---- Condition ----
    if isinstance(node, ConditionNode):
        return _evaluate_condition(node, ctx)

    if not isinstance(node, BooleanNode):
        raise MalformedPrerequisiteError(f"not a prerequisite expression: {type(node).__name__}")

    # zero children: same convention as an empty prerequisite list
    if not node.children:
        return EvaluationResult(satisfied=True)

    # ---- AND ----
    if node.operator is Operator.AND:
        # walk every child so the caller sees every blocking course
        results = [_evaluate(ch, ctx, satisfied_ids, depth + 1, max_depth) for ch in node.children]
        out = EvaluationResult(satisfied=all(r.satisfied for r in results))
        for r in results:
            out.missing.extend(r.missing)
            out.unmet_conditions.extend(r.unmet_conditions)
            out.warnings.extend(r.warnings)
            out.notes.extend(r.notes)
            if r.satisfied:
                out.satisfied_by.extend(r.satisfied_by)
        out.missing = _dedupe_refs(out.missing)
        out.satisfied_by = _dedupe(out.satisfied_by)
        out.notes = _dedupe(out.notes)
        return out

    # ---- OR ----
    failed: List[EvaluationResult] = []
    for ch in node.children:
        r = _evaluate(ch, ctx, satisfied_ids, depth + 1, max_depth)
        if r.satisfied:
            # one satisfied branch is enough
            return EvaluationResult(
                satisfied=True,
                satisfied_by=r.satisfied_by,
                warnings=[w for f in failed for w in f.warnings] + r.warnings,
                notes=r.notes,
            )
        failed.append(r)

    best = min(failed, key=lambda r: len(r.missing) + len(r.unmet_conditions))
    out = EvaluationResult(
        satisfied=False,
        missing=list(best.missing),
        unmet_conditions=list(best.unmet_conditions),
        warnings=[w for f in failed for w in f.warnings],
        notes=_dedupe(best.notes + [f"Choose one option: {len(failed)} alternatives available"]),
    )
    return out


def _evaluate_leaf(
    ref: CourseRef,
    ctx: SatisfactionContext,
    satisfied_ids: frozenset[str],
) -> EvaluationResult:
    if ref.course_id not in satisfied_ids:
        return EvaluationResult(satisfied=False, missing=[ref])

    if ctx.enforce_grades and ref.min_grade:
        earned = ctx.grades.get(ref.course_id)
        if earned and not grade_meets(earned, ref.min_grade):
            return EvaluationResult(
                satisfied=False,
                missing=[ref],
                notes=[f"{ref.course_id} requires a grade of {ref.min_grade} or better (earned {earned})"],
            )

    return EvaluationResult(satisfied=True, satisfied_by=[ref.course_id])


def _evaluate_condition(cond: ConditionNode, ctx: SatisfactionContext) -> EvaluationResult:
    if cond.kind is ConditionKind.GPA:
        actual = ctx.gpa
        field_name = "gpa"
    elif cond.kind is ConditionKind.CREDIT:
        actual = ctx.total_credits_earned
        field_name = "total_credits_earned"
    else:
        actual = ctx.class_year
        field_name = "class_year"

    if actual is None:
        # unverifiable: does not block, but the caller is told
        msg = f"{describe_condition(cond)} cannot be verified - no {field_name} data available"
        logger.debug(msg)
        return EvaluationResult(satisfied=True, warnings=[IncompleteContextWarning(field_name, msg)])

    if cond.kind is ConditionKind.CLASSIFICATION:
        required = cond.value
        if isinstance(required, str):
            required = CLASSIFICATIONS[required.lower()]
        ok = compare_values(float(actual), float(required), cond.comparator)
        current = classification_label(int(actual))
    else:
        ok = compare_values(float(actual), float(cond.value), cond.comparator)
        current = actual

    if ok:
        return EvaluationResult(satisfied=True)

    return EvaluationResult(
        satisfied=False,
        unmet_conditions=[cond],
        notes=[f"{describe_condition(cond)} (current: {current})"],
    )
