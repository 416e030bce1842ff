import pytest

from models.degree_plan import DegreePlan
from services.advisory import UNVERIFIABLE_MESSAGE


@pytest.fixture
def catalog(add_course):
    return {
        "CS 1331": add_course("CS 1331", [], postrequisites=["CS 1332"]),
        "CS 1332": add_course("CS 1332", ["and", {"id": "CS 1331", "grade": "C"}]),
        "CS 2340": add_course("CS 2340", ["and", {"id": "CS 1332"}]),
        "CS 3510": add_course("CS 3510", ["and", {"id": "CS 1332"}]),
        "CS 4400": add_course("CS 4400", ["and", {"id": "CS 3510"}]),
        "MATH 1554": add_course("MATH 1554", [], credits=4.0),
        "BAD 1000": add_course("BAD 1000", raw_text="CS 1331 and"),
    }


@pytest.fixture
def planned(plan, catalog, add_plan_course):
    add_plan_course(plan, catalog["CS 1331"], status="completed", grade="B")
    add_plan_course(plan, catalog["CS 1332"], semester_number=1)
    add_plan_course(plan, catalog["CS 2340"], semester_number=2)
    add_plan_course(plan, catalog["BAD 1000"], semester_number=3)
    return plan


class TestCoursePrerequisites:
    def test_readable_logic(self, anon_client, catalog):
        r = anon_client.get("/courses/CS%201332/prerequisites")
        assert r.status_code == 200
        data = r.get_json()
        assert data["verified"] is True
        assert data["logic"] == "CS 1331"
        assert data["compact"] == "CS 1331"
        assert data["courses"] == ["CS 1331"]

    def test_postrequisites(self, anon_client, catalog):
        data = anon_client.get("/courses/CS%201331/prerequisites").get_json()
        assert data["logic"] == "No prerequisites"
        assert data["postrequisites"] == ["CS 1332"]

    def test_malformed_shows_unverifiable(self, anon_client, catalog):
        data = anon_client.get("/courses/BAD%201000/prerequisites").get_json()
        assert data["verified"] is False
        assert data["logic"] == UNVERIFIABLE_MESSAGE
        assert data["courses"] == []

    def test_unknown_course(self, anon_client, catalog):
        assert anon_client.get("/courses/NOPE%201000/prerequisites").status_code == 404


class TestUpload:
    def test_format_document(self, anon_client):
        data = anon_client.get("/courses/upload-prereqs").get_json()
        assert "prerequisites" in data["expected_format"]

    def test_requires_login(self, anon_client):
        r = anon_client.post("/courses/upload-prereqs", json={"prerequisites": {}})
        assert r.status_code == 401

    def test_requires_data(self, client):
        assert client.post("/courses/upload-prereqs", json={}).status_code == 400

    def test_rejects_non_object(self, client):
        r = client.post("/courses/upload-prereqs", json={"prerequisites": ["CS 1331"]})
        assert r.status_code == 400

    def test_report(self, client, catalog):
        r = client.post(
            "/courses/upload-prereqs",
            json={
                "prerequisites": {
                    "CS 2340": ["and", {"id": "CS 1332"}, {"id": "MATH 1554"}],
                    "CS 3510": ["nand", {"id": "CS 1332"}],
                },
                "postrequisites": {"CS 1332": ["CS 2340", "CS 3510"]},
            },
        )
        assert r.status_code == 200
        data = r.get_json()
        assert data["stats"]["processed"] == 3
        assert data["stats"]["updated"] == 2
        assert data["stats"]["validation_errors"] == 1
        assert data["success"] is True

        logic = client.get("/courses/CS%202340/prerequisites").get_json()["logic"]
        assert logic == "CS 1332 AND MATH 1554"


class TestPlanCourseCheck:
    def test_satisfied_by_earlier_semester(self, client, planned):
        data = client.get(f"/plans/{planned.id}/courses/CS%202340/check").get_json()
        assert data["status"] == "satisfied"
        assert data["target_semester"] == 4  # after the last planned semester

    def test_missing_when_checked_earlier(self, client, planned):
        data = client.get(f"/plans/{planned.id}/courses/CS%202340/check?semester=1").get_json()
        assert data["status"] == "missing"
        assert data["missing"] == ["CS 1332"]
        assert data["suggested_semesters"] == {"CS 1332": 1}
        assert data["suggested_semester_labels"] == {"CS 1332": "Year 1 - Semester 1"}

    def test_unverifiable(self, client, planned):
        data = client.get(f"/plans/{planned.id}/courses/BAD%201000/check").get_json()
        assert data["status"] == "unverifiable"
        assert data["message"] == UNVERIFIABLE_MESSAGE

    def test_bad_semester(self, client, planned):
        assert client.get(f"/plans/{planned.id}/courses/CS%202340/check?semester=x").status_code == 400
        assert client.get(f"/plans/{planned.id}/courses/CS%202340/check?semester=0").status_code == 400

    def test_other_users_plan(self, client, db, other_user, catalog):
        theirs = DegreePlan(user_id=other_user.id, name="Theirs")
        db.session.add(theirs)
        db.session.commit()
        assert client.get(f"/plans/{theirs.id}/courses/CS%202340/check").status_code == 404

    def test_requires_login(self, anon_client, planned):
        assert anon_client.get(f"/plans/{planned.id}/courses/CS%202340/check").status_code == 401


class TestPlanSemesterCheck:
    def test_semester_ok(self, client, planned):
        data = client.get(f"/plans/{planned.id}/semesters/2/check").get_json()
        assert data["overall"] is True
        assert [c["course_code"] for c in data["checks"]] == ["CS 2340"]
        assert data["semester_label"] == "Year 1 - Semester 2"

    def test_malformed_course_flagged(self, client, planned):
        data = client.get(f"/plans/{planned.id}/semesters/3/check").get_json()
        assert data["overall"] is False
        assert data["checks"][0]["status"] == "unverifiable"

    def test_empty_semester(self, client, planned):
        data = client.get(f"/plans/{planned.id}/semesters/7/check").get_json()
        assert data["overall"] is True
        assert data["checks"] == []


class TestRecommendations:
    def test_eligible_courses(self, client, planned):
        data = client.get(f"/plans/{planned.id}/recommendations?semester=2").get_json()
        assert data["target_semester"] == 2
        assert data["courses"] == ["CS 3510", "MATH 1554"]

    def test_subject_filter(self, client, planned):
        data = client.get(f"/plans/{planned.id}/recommendations?semester=2&subject=cs").get_json()
        assert data["subject"] == "CS"
        assert data["courses"] == ["CS 3510"]


class TestChain:
    def test_chain_schedule(self, client, planned):
        data = client.get(f"/plans/{planned.id}/courses/CS%204400/chain").get_json()
        assert data["status"] == "Optimal"
        assert data["target_semester"] == 4
        assert data["schedule"] == {"CS 3510": 2}
        assert data["schedule_labels"] == {"CS 3510": "Year 1 - Semester 2"}

    def test_unreadable_target_is_unverifiable(self, client, planned):
        data = client.get(f"/plans/{planned.id}/courses/BAD%201000/chain?semester=4").get_json()
        assert data["status"] == "Unverifiable"
        assert data["message"] == UNVERIFIABLE_MESSAGE
        assert data["used_fallback"] is False
        assert data["schedule"] == {}

    def test_unreadable_course_in_chain_warned(self, client, planned, add_course):
        add_course("CS 4803", ["and", {"id": "BAD 1000"}])
        data = client.get(f"/plans/{planned.id}/courses/CS%204803/chain?semester=3").get_json()
        assert data["status"] == "Optimal"
        assert data["schedule"] == {"BAD 1000": 1}
        assert data["warnings"] == [
            {"course": "BAD 1000", "raw": UNVERIFIABLE_MESSAGE, "kind": "malformed"}
        ]
