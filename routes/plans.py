"""Plan-aware prerequisite endpoints

All routes check the plan belongs to the current user, build a
SatisfactionContext from the plan, and return JSON.
"""

import logging
from typing import Optional

from flask import abort, current_app, jsonify, request
from flask_login import current_user, login_required

from . import main_bp
from .courses import get_catalog_course_or_404
from models.catalog_course import CatalogCourse
from models.degree_plan import DegreePlan
from models.plan_course import STATUS_PLANNED, PlanCourse
from services.advisory import check_course, check_courses, recommend_courses
from services.chain_planner import plan_prerequisite_chain
from services.errors import MalformedPrerequisiteError
from services.plan_context import build_context_for_plan, semester_course_codes
from utils.prereq_parser import load_prerequisites
from utils.semesters import format_semester_label, label_schedule

logger = logging.getLogger(__name__)


def _get_plan_or_404(plan_id: int) -> DegreePlan:
    # Ensure plan belongs to current user
    plan = DegreePlan.query.filter_by(
        id=plan_id,
        user_id=current_user.id,
    ).first()
    if plan is None:
        abort(404)
    return plan


def _semester_arg() -> Optional[int]:
    raw = (request.args.get("semester") or "").strip()
    if not raw:
        return None
    try:
        semester = int(raw)
    except ValueError:
        abort(400, description="semester must be a whole number")
    if semester < 1:
        abort(400, description="semester must be 1 or greater")
    return semester


def _semesters_per_year(plan: DegreePlan) -> Optional[int]:
    return plan.constraint_or("semesters_per_year", current_app.config["DEFAULT_SEMESTERS_PER_YEAR"])


@main_bp.get("/plans/<int:plan_id>/courses/<code>/check")
@login_required
def check_plan_course(plan_id: int, code: str):
    plan = _get_plan_or_404(plan_id)
    course = get_catalog_course_or_404(code)

    ctx = build_context_for_plan(plan, _semester_arg(), exclude_code=course.code)
    check = check_course(course.code, course.stored_prerequisites(), ctx, max_depth=current_app.config["PREREQ_MAX_DEPTH"])

    payload = check.to_dict()
    payload["target_semester"] = ctx.target_semester
    payload["suggested_semester_labels"] = label_schedule(check.suggested_semesters, _semesters_per_year(plan))
    return jsonify(payload)


@main_bp.get("/plans/<int:plan_id>/semesters/<int:semester>/check")
@login_required
def check_plan_semester(plan_id: int, semester: int):
    plan = _get_plan_or_404(plan_id)

    codes = semester_course_codes(plan, semester)
    courses = CatalogCourse.query.filter(CatalogCourse.code.in_(codes)).all() if codes else []

    ctx = build_context_for_plan(plan, semester)
    batch = check_courses(
        [(c.code, c.stored_prerequisites()) for c in sorted(courses, key=lambda c: c.code)],
        ctx,
        max_depth=current_app.config["PREREQ_MAX_DEPTH"],
    )

    payload = batch.to_dict()
    payload["semester"] = semester
    payload["semester_label"] = format_semester_label(semester, _semesters_per_year(plan))
    return jsonify(payload)


@main_bp.get("/plans/<int:plan_id>/recommendations")
@login_required
def plan_recommendations(plan_id: int):
    plan = _get_plan_or_404(plan_id)
    ctx = build_context_for_plan(plan, _semester_arg())

    query = CatalogCourse.query
    subject = (request.args.get("subject") or "").strip().upper()
    if subject:
        query = query.filter(CatalogCourse.code.like(f"{subject} %"))

    candidates = {c.code: c.stored_prerequisites() for c in query.order_by(CatalogCourse.code.asc()).all()}
    codes = recommend_courses(candidates, ctx, max_depth=current_app.config["PREREQ_MAX_DEPTH"])

    return jsonify(
        {
            "plan_id": plan.id,
            "target_semester": ctx.target_semester,
            "subject": subject or None,
            "courses": codes,
        }
    )


@main_bp.get("/plans/<int:plan_id>/courses/<code>/chain")
@login_required
def plan_chain(plan_id: int, code: str):
    plan = _get_plan_or_404(plan_id)
    course = get_catalog_course_or_404(code)
    ctx = build_context_for_plan(plan, _semester_arg(), exclude_code=course.code)

    max_depth = current_app.config["PREREQ_MAX_DEPTH"]
    trees = {}
    malformed: set[str] = set()
    credits = {}
    for c in CatalogCourse.query.all():
        if c.credits is not None:
            credits[c.code] = c.credits
        try:
            trees[c.code] = load_prerequisites(c.prerequisites, max_depth=max_depth)
        except MalformedPrerequisiteError as e:
            # the planner warns about it, or refuses to plan when it is the target
            logger.warning("Chain planning without %s: %s", c.code, e)
            malformed.add(c.code)

    # credits already sitting in each semester of the plan
    existing_load: dict[int, float] = {}
    planned_rows = PlanCourse.query.filter_by(plan_id=plan.id, status=STATUS_PLANNED).all()
    for pc in planned_rows:
        if pc.semester_number is None or pc.code == course.code:
            continue
        existing_load[pc.semester_number] = existing_load.get(pc.semester_number, 0.0) + float(
            pc.catalog_course.credits or 0
        )

    max_credits = plan.constraint_or(
        "max_credits_per_semester", current_app.config["DEFAULT_MAX_CREDITS_PER_SEMESTER"]
    )

    chain = plan_prerequisite_chain(
        course.code,
        ctx,
        trees,
        credits=credits,
        max_credits_per_semester=max_credits,
        existing_load=existing_load,
        malformed=malformed,
        max_depth=max_depth,
    )

    payload = chain.to_dict()
    payload["schedule_labels"] = label_schedule(chain.schedule, _semesters_per_year(plan))
    return jsonify(payload)
