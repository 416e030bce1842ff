"""Catalog prerequisite endpoints

- GET  /courses/<code>/prerequisites  readable logic, badges, postrequisites
- GET  /courses/upload-prereqs        expected upload format
- POST /courses/upload-prereqs        bulk validate + store prerequisite JSON
"""

import logging

from flask import abort, current_app, jsonify, request
from flask_login import login_required

from . import main_bp
from models.catalog_course import CatalogCourse
from services.advisory import UNVERIFIABLE_MESSAGE
from services.errors import MalformedPrerequisiteError
from services.upload_validation import apply_upload
from utils.prereq_parser import load_prerequisites
from utils.prereq_text import extract_course_ids, render, render_compact

logger = logging.getLogger(__name__)


def get_catalog_course_or_404(code: str) -> CatalogCourse:
    course = CatalogCourse.query.filter_by(code=code.strip()).first()
    if course is None:
        abort(404, description=f"Course {code} not found")
    return course


@main_bp.get("/courses/<code>/prerequisites")
def course_prerequisites(code: str):
    course = get_catalog_course_or_404(code)

    payload = {
        "code": course.code,
        "title": course.title,
        "postrequisites": course.postrequisite_codes(),
    }

    try:
        tree = load_prerequisites(course.prerequisites, max_depth=current_app.config["PREREQ_MAX_DEPTH"])
    except MalformedPrerequisiteError as e:
        logger.warning("Prerequisites for %s could not be verified: %s", course.code, e)
        payload.update(
            verified=False,
            logic=UNVERIFIABLE_MESSAGE,
            compact=UNVERIFIABLE_MESSAGE,
            courses=[],
        )
        return jsonify(payload)

    payload.update(
        verified=True,
        logic=render(tree),
        compact=render_compact(tree, current_app.config["COMPACT_PREREQ_LENGTH"]),
        courses=extract_course_ids(tree),
    )
    return jsonify(payload)


@main_bp.get("/courses/upload-prereqs")
def upload_prereqs_format():
    return jsonify(
        {
            "message": "POST to this endpoint with JSON body containing prerequisites and/or postrequisites",
            "expected_format": {
                "prerequisites": {
                    "ACCT 2101": [],
                    "ACCT 2102": ["and", {"id": "ACCT 2101", "grade": "D"}],
                    "AE 1601": ["or", {"id": "MATH 1501", "grade": "C"}, {"id": "MATH 1511", "grade": "C"}],
                },
                "postrequisites": {
                    "MATH 1501": ["AE 1601", "CS 1371"],
                    "ACCT 2101": ["ACCT 2102"],
                },
                "validate_only": False,
            },
        }
    )


@main_bp.post("/courses/upload-prereqs")
@login_required
def upload_prereqs():
    body = request.get_json(silent=True) or {}
    prerequisites = body.get("prerequisites")
    postrequisites = body.get("postrequisites")

    if not prerequisites and not postrequisites:
        abort(400, description="Either prerequisites or postrequisites data is required")

    for name, value in (("prerequisites", prerequisites), ("postrequisites", postrequisites)):
        if value is not None and not isinstance(value, dict):
            abort(400, description=f"{name} must be an object keyed by course code")

    report = apply_upload(
        prerequisites,
        postrequisites,
        validate_only=bool(body.get("validate_only", False)),
        max_depth=current_app.config["PREREQ_MAX_DEPTH"],
    )
    return jsonify(report.to_dict(current_app.config["UPLOAD_MAX_ERRORS"]))
