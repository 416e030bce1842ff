from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Tuple, Union

# Observed catalog trees are shallow; deeper input is treated as malformed.
DEFAULT_MAX_DEPTH = 25


class Operator(str, Enum):
    AND = "and"
    OR = "or"


class ConditionKind(str, Enum):
    GPA = "gpa"
    CREDIT = "credit"
    CLASSIFICATION = "classification"


COMPARATORS = (">", ">=", "<", "<=", "=")

CLASSIFICATIONS = {
    "freshman": 1,
    "sophomore": 2,
    "junior": 3,
    "senior": 4,
    "graduate": 5,
}


def classification_label(class_year: int) -> str:
    for label, year in CLASSIFICATIONS.items():
        if year == class_year:
            return label.capitalize()
    return "Graduate"


@dataclass(frozen=True)
class Empty:
    """No prerequisites. Always satisfied."""


EMPTY = Empty()


@dataclass(frozen=True)
class CourseRef:
    # Canonical "SUBJECT NUMBER" id, e.g. "CS 1331"
    course_id: str
    # None => any passing grade
    min_grade: str | None = None


@dataclass(frozen=True)
class BooleanNode:
    operator: Operator
    children: Tuple["Expression", ...]


@dataclass(frozen=True)
class ConditionNode:
    """GPA / credit / classification gate combined into the same AND/OR tree."""

    kind: ConditionKind
    value: Any
    comparator: str = ">="


Expression = Union[Empty, CourseRef, BooleanNode, ConditionNode]


def to_raw(expr: Expression) -> Any:
    """Serialize an expression back to the catalog's JSON shape."""
    if isinstance(expr, Empty):
        return []

    if isinstance(expr, CourseRef):
        out = {"id": expr.course_id}
        if expr.min_grade:
            out["grade"] = expr.min_grade
        return out

    if isinstance(expr, ConditionNode):
        return {"type": expr.kind.value, "value": expr.value, "operator": expr.comparator}

    if isinstance(expr, BooleanNode):
        return [expr.operator.value, *(to_raw(child) for child in expr.children)]

    raise TypeError(f"Not a prerequisite expression: {type(expr).__name__}")
