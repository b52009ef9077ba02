import inspect

from courseportal.models.progress import CourseCompletion
from courseportal.routers.diploma import issue_diploma, preview_diploma
from courseportal.services.diploma import DiplomaService
from courseportal.services.progress import SqlProgressStore
from tests.factories import API, COMPANY_ID, auth_headers, create_user


def test_diploma_requires_completed_course(client, portal):
    response = client.post(f"{API}/diploma/", json={"course_id": portal.course.id}, headers=auth_headers(portal.learner))

    assert response.status_code == 403
    assert response.json()["detail"] == "Course has not been completed yet."


def test_diploma_requires_assignment(client, db, portal):
    outsider = create_user(db, "outsider@example.no")
    response = client.post(f"{API}/diploma/", json={"course_id": portal.course.id}, headers=auth_headers(outsider))

    assert response.status_code == 403
    assert response.json()["detail"] == "Course is not assigned to this user."


def test_diploma_for_unknown_course(client, portal):
    response = client.post(f"{API}/diploma/", json={"course_id": "missing"}, headers=auth_headers(portal.learner))
    assert response.status_code == 404


def test_diploma_needs_course_id(client, portal):
    assert client.post(f"{API}/diploma/", json={}, headers=auth_headers(portal.learner)).status_code == 400


def test_diploma_pdf_for_completed_course(client, db, portal):
    SqlProgressStore(db).save(portal.learner.id, portal.course.id, portal.module_ids)

    response = client.post(f"{API}/diploma/", json={"course_id": portal.course.id}, headers=auth_headers(portal.learner))

    assert response.status_code == 200
    assert response.headers["content-type"] == "application/pdf"
    assert "kursbevis-hms-grunnkurs.pdf" in response.headers["content-disposition"]
    assert response.headers["cache-control"] == "no-store"
    assert response.content.startswith(b"%PDF")


def test_preview_for_company_admin(client, portal):
    payload = {"company_id": COMPANY_ID, "title": "Bevis", "accent_color": "#336699"}

    response = client.post(f"{API}/diploma/preview", json=payload, headers=auth_headers(portal.admin))
    assert response.status_code == 200
    assert "diplom-preview.pdf" in response.headers["content-disposition"]
    assert response.content.startswith(b"%PDF")

    denied = client.post(f"{API}/diploma/preview", json=payload, headers=auth_headers(portal.learner))
    assert denied.status_code == 403


def test_template_defaults_and_save(client, portal):
    headers = auth_headers(portal.admin)
    url = f"{API}/diploma/templates/{COMPANY_ID}"

    default = client.get(url, headers=headers)
    assert default.status_code == 200
    assert default.json()["title"] == "Kursbevis"
    assert default.json()["updated_at"] is None

    saved = client.put(url, json={"title": "Bevis", "accent_color": "ff0000"}, headers=headers)
    assert saved.status_code == 200
    assert saved.json()["accent_color"] == "#ff0000"

    assert client.get(url, headers=headers).json()["title"] == "Bevis"
    assert client.get(url, headers=auth_headers(portal.learner)).status_code == 403


def test_concurrent_completion_reuses_existing_snapshot(db, portal, monkeypatch):
    SqlProgressStore(db).save(portal.learner.id, portal.course.id, portal.module_ids)
    service = DiplomaService(db)
    first = service.record_completion(portal.learner.id, portal.course.id)
    first_id, first_completed_at = first.id, first.completed_at

    lookup = DiplomaService._find_completion
    calls = []

    def lookup_after_race(self, user_id, course_id, customer_id):
        calls.append(course_id)
        if len(calls) == 1:
            return None
        return lookup(self, user_id, course_id, customer_id)

    monkeypatch.setattr(DiplomaService, "_find_completion", lookup_after_race)
    second = service.record_completion(portal.learner.id, portal.course.id)

    assert len(calls) == 2
    assert second.id == first_id
    assert second.completed_at == first_completed_at
    assert db.query(CourseCompletion).count() == 1


def test_pdf_handlers_run_in_threadpool():
    # Asset fetches and rasterizing block, so these must not run on the event loop.
    assert not inspect.iscoroutinefunction(issue_diploma)
    assert not inspect.iscoroutinefunction(preview_diploma)
