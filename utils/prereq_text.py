from __future__ import annotations

from typing import Dict, List, Mapping, Optional

from services.prereq_eval import describe_condition
from services.prereq_ir import (
    BooleanNode,
    ConditionNode,
    CourseRef,
    Empty,
    Expression,
    Operator,
)

NO_PREREQUISITES = "No prerequisites"


def render(expr: Expression) -> str:
    """
    Readable AND/OR text for a prerequisite tree.

    Grades are never shown. A nested group is parenthesized only when it has
    more than one part and its operator differs from the enclosing one.
    """
    text = _clause(expr, None)
    return text or NO_PREREQUISITES


def _clause(node: Expression, parent: Optional[Operator]) -> str:
    if isinstance(node, Empty):
        return ""

    if isinstance(node, CourseRef):
        return node.course_id

    if isinstance(node, ConditionNode):
        return describe_condition(node)

    if not isinstance(node, BooleanNode):
        return ""

    parts = [_clause(ch, node.operator) for ch in node.children]
    parts = [p for p in parts if p]

    if not parts:
        return ""
    if len(parts) == 1:
        # operator elided: the lone child stands in for this node
        return _clause(_only_rendered_child(node), parent)

    joined = (" AND " if node.operator is Operator.AND else " OR ").join(parts)
    if parent is not None and parent is not node.operator:
        return f"({joined})"
    return joined


def _only_rendered_child(node: BooleanNode) -> Expression:
    for ch in node.children:
        if _clause(ch, node.operator):
            return ch
    return node


def render_compact(expr: Expression, max_length: int = 60) -> str:
    """Same text as render(), cut at a word boundary for card summaries."""
    text = render(expr)
    if len(text) <= max_length:
        return text

    cut = text[: max(max_length - 3, 1)]
    space = cut.rfind(" ")
    if space > 0:
        cut = cut[:space]

    cut = _strip_connector(cut)

    # a group cut in half is dropped whole, or closed when nothing precedes it
    opened = _unclosed_parens(cut)
    if opened:
        head = _strip_connector(cut[: opened[0]])
        cut = head if head else cut + ")" * len(opened)
    return cut + "..."


def _unclosed_parens(text: str) -> List[int]:
    stack: List[int] = []
    for i, ch in enumerate(text):
        if ch == "(":
            stack.append(i)
        elif ch == ")" and stack:
            stack.pop()
    return stack


def _strip_connector(text: str) -> str:
    text = text.rstrip(" (")
    for connector in (" AND", " OR"):
        if text.endswith(connector):
            text = text[: -len(connector)]
    return text.rstrip()


def extract_course_ids(expr: Expression) -> List[str]:
    """Every course referenced anywhere in the tree, deduplicated and sorted."""
    ids: set[str] = set()

    def walk(node: Expression) -> None:
        if isinstance(node, CourseRef):
            ids.add(node.course_id)
        elif isinstance(node, BooleanNode):
            for child in node.children:
                walk(child)

    walk(expr)
    return sorted(ids)


def build_postrequisites(trees: Mapping[str, Expression]) -> Dict[str, List[str]]:
    """Inverse adjacency: course -> courses whose prerequisites mention it."""
    unlocks: Dict[str, set[str]] = {}
    for code, tree in trees.items():
        for ref in extract_course_ids(tree):
            unlocks.setdefault(ref, set()).add(code)
    return {code: sorted(dependents) for code, dependents in sorted(unlocks.items())}
