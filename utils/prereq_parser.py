from __future__ import annotations

import json
from dataclasses import dataclass
from typing import Any

from services.errors import MalformedPrerequisiteError
from services.prereq_ir import (
    COMPARATORS,
    CLASSIFICATIONS,
    DEFAULT_MAX_DEPTH,
    EMPTY,
    BooleanNode,
    ConditionKind,
    ConditionNode,
    CourseRef,
    Empty,
    Expression,
    Operator,
)


def parse_operator(token: str) -> Operator | None:
    # "and" / "AND" / " Or " all accepted
    try:
        return Operator(token.strip().lower())
    except ValueError:
        return None


def normalize(raw: Any, *, max_depth: int = DEFAULT_MAX_DEPTH) -> Expression:
    """
    Convert loosely-typed catalog data into an Expression.

    Accepted shapes:
      - None / []                         -> EMPTY
      - "CS 1331"                         -> CourseRef
      - {"id": "CS 1331", "grade": "C"}   -> CourseRef
      - {"type": "gpa", "value": 3.0}     -> ConditionNode
      - ["and"|"or", child, ...]          -> BooleanNode (operator any case)
      - [child, child, ...]               -> implicit AND

    Empty children are dropped and a lone child replaces its operator node.
    Anything else raises MalformedPrerequisiteError.
    """
    return _normalize(raw, 0, max_depth)


def _normalize(raw: Any, depth: int, max_depth: int) -> Expression:
    if depth > max_depth:
        raise MalformedPrerequisiteError(f"prerequisite tree deeper than {max_depth} levels")

    if raw is None:
        return EMPTY

    # bool is an int subclass, reject both before anything else
    if isinstance(raw, (bool, int, float)):
        raise MalformedPrerequisiteError(f"unexpected {type(raw).__name__} in prerequisites: {raw!r}")

    if isinstance(raw, str):
        code = raw.strip()
        if not code:
            raise MalformedPrerequisiteError("blank course code in prerequisites")
        return CourseRef(course_id=code)

    if isinstance(raw, dict):
        if "id" in raw:
            return _course_ref(raw)
        if "type" in raw:
            return _condition(raw)
        raise MalformedPrerequisiteError(f"object without 'id' or 'type': {raw!r}")

    if isinstance(raw, list):
        if not raw:
            return EMPTY

        head = raw[0]
        if isinstance(head, str):
            op = parse_operator(head)
            if op is None:
                raise MalformedPrerequisiteError(f'invalid operator "{head}"')
            items = raw[1:]
        else:
            op = Operator.AND
            items = raw

        children = [_normalize(item, depth + 1, max_depth) for item in items]
        children = [c for c in children if not isinstance(c, Empty)]

        if not children:
            return EMPTY
        if len(children) == 1:
            return children[0]
        return BooleanNode(operator=op, children=tuple(children))

    raise MalformedPrerequisiteError(f"unexpected {type(raw).__name__} in prerequisites")


def _course_ref(raw: dict) -> CourseRef:
    code = raw.get("id")
    if not isinstance(code, str) or not code.strip():
        raise MalformedPrerequisiteError("missing or invalid 'id'")

    grade = raw.get("grade")
    if grade is not None and not isinstance(grade, str):
        raise MalformedPrerequisiteError(f"grade for {code} must be a string")

    grade = (grade or "").strip().upper() or None
    return CourseRef(course_id=code.strip(), min_grade=grade)


def _condition(raw: dict) -> ConditionNode:
    kind_raw = raw.get("type")
    try:
        kind = ConditionKind(str(kind_raw).strip().lower())
    except ValueError:
        raise MalformedPrerequisiteError(f'unknown condition type "{kind_raw}"') from None

    default_cmp = "=" if kind is ConditionKind.CLASSIFICATION else ">="
    comparator = raw.get("operator") or default_cmp
    if comparator not in COMPARATORS:
        raise MalformedPrerequisiteError(f'invalid comparator "{comparator}" for {kind.value} condition')

    value = raw.get("value")
    if kind is ConditionKind.CLASSIFICATION:
        if isinstance(value, str) and value.strip().lower() in CLASSIFICATIONS:
            value = value.strip().capitalize()
        elif not (isinstance(value, int) and not isinstance(value, bool)):
            raise MalformedPrerequisiteError(f"invalid classification value {value!r}")
    elif isinstance(value, bool) or not isinstance(value, (int, float)):
        raise MalformedPrerequisiteError(f"{kind.value} condition needs a numeric value")

    return ConditionNode(kind=kind, value=value, comparator=comparator)


def load_prerequisites(text: str | None, *, max_depth: int = DEFAULT_MAX_DEPTH) -> Expression:
    """Decode the JSON text stored on a catalog row, then normalize it."""
    if text is None or not text.strip():
        return EMPTY
    try:
        raw = json.loads(text)
    except json.JSONDecodeError as e:
        raise MalformedPrerequisiteError(f"prerequisites are not valid JSON ({e.msg})") from e
    return normalize(raw, max_depth=max_depth)


@dataclass(frozen=True)
class StoredPrerequisites:
    """JSON text as stored on a catalog row, decoded only when evaluated."""

    text: str | None

    def load(self, *, max_depth: int = DEFAULT_MAX_DEPTH) -> Expression:
        return load_prerequisites(self.text, max_depth=max_depth)
