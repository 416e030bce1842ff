# services/upload_validation.py

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from services.prereq_ir import CLASSIFICATIONS, COMPARATORS, DEFAULT_MAX_DEPTH, ConditionKind
from utils.prereq_parser import parse_operator

logger = logging.getLogger(__name__)

MAX_REPORTED_ERRORS = 50


# -----------------------------
# Structure checks
# -----------------------------
# These mirror utils.prereq_parser.normalize shape-for-shape: a list accepted
# here normalizes without error, and a list rejected here raises there.

def validate_prereq_structure(
    course_code: str,
    data: Any,
    *,
    max_depth: int = DEFAULT_MAX_DEPTH,
) -> Optional[str]:
    """
    Validate one uploaded prerequisite entry BEFORE it is persisted.
    Returns a readable error, or None when the entry is fine.

    Expected shape:
      []                                          no prerequisites
      ["and", {"id": "CS 1331", "grade": "C"}, ...]
      ["or", {...}, ["and", {...}, {...}]]        nested groups
    """
    if not isinstance(data, list):
        return f"Prerequisites for {course_code} must be an array"
    problem = _check_clause(data, 0, max_depth)
    if problem:
        return f"Invalid prerequisites for {course_code}: {problem}"
    return None


def _check_clause(node: Any, depth: int, max_depth: int) -> Optional[str]:
    if depth > max_depth:
        return f"nested deeper than {max_depth} levels"

    if node is None:
        return None

    if isinstance(node, str):
        return None if node.strip() else "blank course code"

    if isinstance(node, dict):
        if "id" in node:
            code = node.get("id")
            if not isinstance(code, str) or not code.strip():
                return "missing or invalid 'id'"
            grade = node.get("grade")
            if grade is not None and not isinstance(grade, str):
                return f"grade for {code} must be a string"
            return None
        if "type" in node:
            return _check_condition(node)
        return "object without 'id' or 'type'"

    if isinstance(node, list):
        if not node:
            return None
        items = node
        if isinstance(node[0], str):
            if parse_operator(node[0]) is None:
                return f'invalid operator "{node[0]}"'
            items = node[1:]
        for item in items:
            problem = _check_clause(item, depth + 1, max_depth)
            if problem:
                return problem
        return None

    # numbers, bools, anything else
    return f"unexpected value {node!r}"


def _check_condition(node: Dict[str, Any]) -> Optional[str]:
    kind_raw = str(node.get("type")).strip().lower()
    if kind_raw not in {k.value for k in ConditionKind}:
        return f'unknown condition type "{node.get("type")}"'

    comparator = node.get("operator") or ">="
    if comparator not in COMPARATORS:
        return f'invalid comparator "{comparator}"'

    value = node.get("value")
    if kind_raw == ConditionKind.CLASSIFICATION.value:
        if isinstance(value, str) and value.strip().lower() in CLASSIFICATIONS:
            return None
        if isinstance(value, int) and not isinstance(value, bool):
            return None
        return f"invalid classification value {value!r}"

    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return f"{kind_raw} condition needs a numeric value"
    return None


def validate_postreq_structure(course_code: str, data: Any) -> Optional[str]:
    if not isinstance(data, list):
        return f"Postrequisites for {course_code} must be an array"
    for item in data:
        if not isinstance(item, str):
            return f"Invalid postrequisite for {course_code}: all items must be course codes (strings)"
    return None


# -----------------------------
# Batch upload
# -----------------------------

@dataclass
class UploadReport:
    processed: int = 0
    updated: int = 0
    course_not_found: int = 0
    validation_errors: int = 0
    errors: List[str] = field(default_factory=list)
    validate_only: bool = False

    @property
    def success(self) -> bool:
        # tolerated as long as fewer than half the entries failed
        return len(self.errors) < self.processed * 0.5

    def to_dict(self, max_errors: int = MAX_REPORTED_ERRORS) -> dict[str, Any]:
        if self.validate_only:
            message = f"Validation complete: {self.processed} entries processed"
        else:
            message = f"Upload complete: {self.updated} course entries updated"
        return {
            "success": self.success,
            "message": message,
            "stats": {
                "processed": self.processed,
                "updated": self.updated,
                "course_not_found": self.course_not_found,
                "validation_errors": self.validation_errors,
                "total_errors": len(self.errors),
            },
            "errors": self.errors[:max_errors],
            "validate_only": self.validate_only,
        }


def apply_upload(
    prerequisites: Optional[Dict[str, Any]] = None,
    postrequisites: Optional[Dict[str, Any]] = None,
    *,
    validate_only: bool = False,
    max_depth: int = DEFAULT_MAX_DEPTH,
) -> UploadReport:
    """
    Validate and store bulk prerequisite/postrequisite JSON keyed by course code.

    Every entry is handled on its own: bad entries are counted and described
    in the report, the rest are written. Must run inside an app context.
    """
    # Lazy imports to keep the structure checks usable without Flask
    from extensions import db
    from models.catalog_course import CatalogCourse

    report = UploadReport(validate_only=validate_only)

    existing = {c.code: c for c in CatalogCourse.query.all()}
    logger.info("Found %d courses in catalog for upload validation", len(existing))

    def _process(entries: Dict[str, Any], column: str, check) -> None:
        logger.info("Processing %d %s entries", len(entries), column)
        for code, data in entries.items():
            report.processed += 1

            problem = check(code, data)
            if problem:
                report.validation_errors += 1
                report.errors.append(problem)
                continue

            row = existing.get(code)
            if row is None:
                report.course_not_found += 1
                report.errors.append(f"Course {code} not found in database")
                continue

            if validate_only:
                report.updated += 1
                continue

            setattr(row, column, json.dumps(data, ensure_ascii=False))
            report.updated += 1

    if prerequisites:
        _process(
            prerequisites,
            "prerequisites",
            lambda code, data: validate_prereq_structure(code, data, max_depth=max_depth),
        )
    if postrequisites:
        _process(postrequisites, "postrequisites", validate_postreq_structure)

    if not validate_only and report.updated:
        db.session.commit()

    if report.errors:
        logger.warning("Upload finished with %d errors (first: %s)", len(report.errors), report.errors[0])

    return report
