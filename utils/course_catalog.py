from __future__ import annotations

import csv
import html
import json
import logging
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Any, Dict, List, Optional

import pandas as pd

from services.errors import MalformedPrerequisiteError
from services.prereq_ir import DEFAULT_MAX_DEPTH, EMPTY, Expression
from utils.prereq_parser import normalize
from utils.prereq_text import build_postrequisites, extract_course_ids, render

logger = logging.getLogger(__name__)

NO_PREREQUISITES_KNOWN = "No prerequisites known"


@dataclass(frozen=True)
class CourseDefaults:
    """Fallbacks for catalog fields the export left out. Applied once, at load."""

    title: str = "Unknown"
    description: str = "No description available"
    credits: float = 3.0
    difficulty: int = 3


DEFAULTS = CourseDefaults()


# One course as read from a catalog export.
# prerequisites stays raw JSON-compatible data; it is normalized later.
@dataclass(frozen=True)
class CatalogEntry:
    code: str
    title: str
    credits: float | None = None
    description: str | None = None
    difficulty: int | None = None
    prerequisites: Any = None
    postrequisites: tuple[str, ...] | None = None


@dataclass(frozen=True)
class ReadableCourse:
    code: str
    title: str
    credits: float
    description: str
    difficulty: int
    prerequisite_logic: str
    prerequisite_courses: tuple[str, ...]
    postrequisites: tuple[str, ...]
    prerequisites_known: bool = True


@dataclass
class TransformResult:
    courses: List[ReadableCourse] = field(default_factory=list)
    trees: Dict[str, Expression] = field(default_factory=dict)
    malformed: Dict[str, str] = field(default_factory=dict)  # code -> error


def clean_text(text: Optional[str]) -> Optional[str]:
    if not text:
        return text
    return html.unescape(str(text)).replace("\xa0", " ").strip()


def apply_defaults(entry: CatalogEntry, defaults: CourseDefaults = DEFAULTS) -> CatalogEntry:
    return replace(
        entry,
        title=clean_text(entry.title) or defaults.title,
        description=clean_text(entry.description) or defaults.description,
        credits=entry.credits if entry.credits is not None else defaults.credits,
        difficulty=entry.difficulty if entry.difficulty is not None else defaults.difficulty,
    )


# -----------------------------
# Loading
# -----------------------------

def load_catalog(directory: str, defaults: CourseDefaults = DEFAULTS) -> list[CatalogEntry]:
    p = Path(directory)
    if not p.exists() or not p.is_dir():
        return []

    items: list[CatalogEntry] = []

    loaders = (("*.json", _load_json_catalog), ("*.csv", _load_csv_catalog), ("*.xlsx", _load_xlsx_catalog))
    for pattern, loader in loaders:
        for f in sorted(p.glob(pattern)):
            try:
                items.extend(loader(f))
            except (OSError, ValueError, KeyError) as e:
                # Skip unreadable exports, keep the rest of the catalog
                logger.warning("Skipping catalog file %s: %s", f.name, e)

    # De-dup by code, later files win
    uniq = {c.code: apply_defaults(c, defaults) for c in items}
    return sorted(uniq.values(), key=lambda c: c.code)


def _load_json_catalog(f: Path) -> list[CatalogEntry]:
    """
    GT crawler export:
      {"courses": {"CS 1331": [title, sections, prerequisites, description], ...},
       "caches": {...}, "updatedAt": ..., "version": ...}
    Each section is [crn, is_available, credit_hours, ...].
    """
    data = json.loads(f.read_text(encoding="utf-8"))
    courses = data.get("courses")
    if not isinstance(courses, dict):
        raise ValueError("missing courses object")

    items: list[CatalogEntry] = []
    for code, course in courses.items():
        if not isinstance(course, list) or len(course) < 3:
            logger.warning("Skipping course %s: unexpected record shape", code)
            continue

        title = course[0]
        sections = course[1] if isinstance(course[1], dict) else {}
        prerequisites = course[2]
        description = course[3] if len(course) > 3 else None

        credits = None
        first = next(iter(sections.values()), None)
        if isinstance(first, list) and len(first) > 2:
            credits = _to_float(first[2])

        items.append(
            CatalogEntry(
                code=str(code).strip(),
                title=title,
                credits=credits,
                description=description,
                prerequisites=prerequisites,
            )
        )
    return items


def _load_csv_catalog(f: Path) -> list[CatalogEntry]:
    items: list[CatalogEntry] = []
    with f.open(newline="", encoding="utf-8") as fh:
        reader = csv.DictReader(fh)
        for row in reader:
            entry = _entry_from_row(row)
            if entry is not None:
                items.append(entry)
    return items


def _load_xlsx_catalog(f: Path) -> list[CatalogEntry]:
    df = pd.read_excel(f, dtype=object)
    items: list[CatalogEntry] = []
    for _, r in df.iterrows():
        row = {str(k): (None if pd.isna(v) else v) for k, v in r.items()}
        entry = _entry_from_row(row)
        if entry is not None:
            items.append(entry)
    return items


def _entry_from_row(row: dict) -> CatalogEntry | None:
    """Shared by CSV and xlsx: code, title, credits, difficulty, description,
    prerequisites (JSON text), postrequisites (JSON text)."""

    def get(*names: str) -> Any:
        for n in names:
            v = row.get(n)
            if v is not None and str(v).strip() != "":
                return v
        return None

    code = get("code", "Code", "courseId")
    if code is None:
        return None

    postreqs = _json_cell(get("postrequisites", "Postrequisites"))
    return CatalogEntry(
        code=str(code).strip(),
        title=str(get("title", "Title", "name", "Name") or ""),
        credits=_to_float(get("credits", "Credits")),
        description=get("description", "Description"),
        difficulty=_to_int(get("difficulty", "Difficulty")),
        prerequisites=_json_cell(get("prerequisites", "Prerequisites")),
        postrequisites=tuple(postreqs) if isinstance(postreqs, list) else None,
    )


def _json_cell(v: Any) -> Any:
    # Cells hold JSON text; a cell that isn't JSON is kept as-is (bare course code)
    if v is None:
        return None
    s = str(v).strip()
    try:
        return json.loads(s)
    except json.JSONDecodeError:
        return s


def _to_float(x: Any) -> Optional[float]:
    if x is None:
        return None
    try:
        return float(x)
    except (TypeError, ValueError):
        return None


def _to_int(x: Any) -> Optional[int]:
    v = _to_float(x)
    return int(v) if v is not None else None


# -----------------------------
# Batch transform
# -----------------------------

def transform_catalog(entries: list[CatalogEntry], *, max_depth: int = DEFAULT_MAX_DEPTH) -> TransformResult:
    """
    Normalize every course's prerequisites and derive the readable fields.

    A course with malformed prerequisite data is logged and kept with
    "No prerequisites known"; it never aborts the batch.
    """
    result = TransformResult()

    for entry in entries:
        try:
            result.trees[entry.code] = normalize(entry.prerequisites, max_depth=max_depth)
        except MalformedPrerequisiteError as e:
            e.course_code = entry.code
            logger.warning("Malformed prerequisites, recording none known: %s", e)
            result.malformed[entry.code] = str(e)

    derived_postreqs = build_postrequisites(result.trees)

    for entry in entries:
        tree = result.trees.get(entry.code, EMPTY)
        known = entry.code not in result.malformed
        postreqs = entry.postrequisites
        if postreqs is None:
            postreqs = tuple(derived_postreqs.get(entry.code, []))

        result.courses.append(
            ReadableCourse(
                code=entry.code,
                title=entry.title,
                credits=entry.credits if entry.credits is not None else DEFAULTS.credits,
                description=entry.description or DEFAULTS.description,
                difficulty=entry.difficulty if entry.difficulty is not None else DEFAULTS.difficulty,
                prerequisite_logic=render(tree) if known else NO_PREREQUISITES_KNOWN,
                prerequisite_courses=tuple(extract_course_ids(tree)),
                postrequisites=tuple(postreqs),
                prerequisites_known=known,
            )
        )

    result.courses.sort(key=lambda c: c.code)
    logger.info(
        "Transformed %d courses (%d with malformed prerequisites)",
        len(result.courses),
        len(result.malformed),
    )
    return result
