import json

import pytest
from flask_login import FlaskLoginClient

from app import create_app
from config import TestConfig
from extensions import db as _db
from models.catalog_course import CatalogCourse
from models.degree_plan import DegreePlan
from models.plan_constraint import PlanConstraint
from models.plan_course import PlanCourse
from models.user import User
from services.prereq_eval import SatisfactionContext


@pytest.fixture
def make_ctx():
    """SatisfactionContext factory with empty defaults"""

    def _make(completed=(), in_progress=(), planned=None, target_semester=1, **optional):
        return SatisfactionContext.build(
            completed=completed,
            in_progress=in_progress,
            planned=planned,
            target_semester=target_semester,
            **optional,
        )

    return _make


@pytest.fixture
def app():
    app = create_app(TestConfig)
    app.test_client_class = FlaskLoginClient

    with app.app_context():
        _db.create_all()
        yield app
        _db.session.remove()
        _db.drop_all()


@pytest.fixture
def db(app):
    return _db


@pytest.fixture
def add_course(db):
    """Insert a catalog row; prerequisites may be raw data or pre-encoded text"""

    def _add(code, prerequisites=None, *, title=None, credits=3.0, postrequisites=None, raw_text=None):
        row = CatalogCourse(
            code=code,
            title=title or code,
            credits=credits,
            prerequisites=raw_text if raw_text is not None else (
                json.dumps(prerequisites) if prerequisites is not None else None
            ),
            postrequisites=json.dumps(postrequisites) if postrequisites is not None else None,
        )
        db.session.add(row)
        db.session.commit()
        return row

    return _add


@pytest.fixture
def user(db):
    u = User(email="student@gatech.edu", gpa=3.2, total_credits_earned=45, class_year=2)
    db.session.add(u)
    db.session.commit()
    return u


@pytest.fixture
def other_user(db):
    u = User(email="other@gatech.edu")
    db.session.add(u)
    db.session.commit()
    return u


@pytest.fixture
def plan(db, user):
    p = DegreePlan(user_id=user.id, name="Main plan")
    db.session.add(p)
    db.session.flush()
    db.session.add(
        PlanConstraint(degree_plan_id=p.id, max_credits_per_semester=18, semesters_per_year=2)
    )
    db.session.commit()
    return p


@pytest.fixture
def add_plan_course(db):
    def _add(plan, course, status="planned", semester_number=None, grade=None):
        pc = PlanCourse(
            plan_id=plan.id,
            catalog_course_id=course.id,
            status=status,
            semester_number=semester_number,
            grade=grade,
        )
        db.session.add(pc)
        db.session.commit()
        return pc

    return _add


@pytest.fixture
def client(app, user):
    return app.test_client(user=user)


@pytest.fixture
def anon_client(app):
    return app.test_client()
