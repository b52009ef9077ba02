from courseportal.models.course import CourseModule
from tests.factories import API, COMPANY_ID, auth_headers, create_user


def test_course_crud_for_company_admin(client, portal):
    headers = auth_headers(portal.admin)

    created = client.post(
        f"{API}/courses/",
        json={"company_id": COMPANY_ID, "title": {"no": "Brannvern", "en": "Fire safety"}},
        headers=headers,
    )
    assert created.status_code == 201
    course_id = created.json()["id"]
    assert created.json()["created_by_id"] == portal.admin.id

    listed = client.get(f"{API}/courses/", params={"company_id": COMPANY_ID}, headers=headers)
    assert {course["id"] for course in listed.json()} == {portal.course.id, course_id}

    updated = client.put(f"{API}/courses/{course_id}", json={"status": "inactive"}, headers=headers)
    assert updated.json()["status"] == "inactive"
    assert updated.json()["title"]["en"] == "Fire safety"

    assert client.delete(f"{API}/courses/{course_id}", headers=headers).status_code == 204
    assert client.get(f"{API}/courses/{course_id}", headers=headers).status_code == 404


def test_viewers_cannot_edit_courses(client, db, portal):
    viewer = create_user(db, "viewer@company.no", company_memberships=[{"company_id": COMPANY_ID, "roles": ["viewer"]}])

    response = client.post(
        f"{API}/courses/",
        json={"company_id": COMPANY_ID, "title": {"no": "Kurs"}},
        headers=auth_headers(viewer),
    )
    assert response.status_code == 403
    assert client.get(f"{API}/courses/{portal.course.id}", headers=auth_headers(viewer)).status_code == 200


def test_learners_cannot_list_company_courses(client, portal):
    response = client.get(f"{API}/courses/", params={"company_id": COMPANY_ID}, headers=auth_headers(portal.learner))
    assert response.status_code == 403


def test_deleting_course_keeps_modules(client, db, portal):
    response = client.delete(f"{API}/courses/{portal.course.id}", headers=auth_headers(portal.admin))
    assert response.status_code == 204

    db.expire_all()
    assert db.query(CourseModule).filter(CourseModule.course_id == portal.course.id).count() == 2


def test_module_crud_and_ordering(client, portal):
    headers = auth_headers(portal.admin)
    course_id = portal.course.id

    created = client.post(
        f"{API}/courses/{course_id}/modules",
        json={
            "title": {"no": "Introduksjon"},
            "order": -1,
            "media": {"no": [{"id": "m1", "url": "https://cdn.example.no/a.png", "type": "image"}]},
        },
        headers=headers,
    )
    assert created.status_code == 201
    module = created.json()
    assert module["image_urls"] == {"no": ["https://cdn.example.no/a.png"]}

    listed = client.get(f"{API}/courses/{course_id}/modules", headers=headers).json()
    assert [item["id"] for item in listed] == [module["id"], *portal.module_ids]

    updated = client.put(
        f"{API}/courses/{course_id}/modules/{module['id']}",
        json={"order": 10},
        headers=headers,
    )
    assert updated.json()["order"] == 10
    assert updated.json()["title"] == {"no": "Introduksjon"}

    listed = client.get(f"{API}/courses/{course_id}/modules", headers=headers).json()
    assert listed[-1]["id"] == module["id"]

    deleted = client.delete(f"{API}/courses/{course_id}/modules/{module['id']}", headers=headers)
    assert deleted.status_code == 204
    assert client.get(f"{API}/courses/{course_id}/modules/{module['id']}", headers=headers).status_code == 404


def test_module_for_unknown_course(client, portal):
    response = client.post(
        f"{API}/courses/missing/modules",
        json={"title": {"no": "x"}},
        headers=auth_headers(portal.admin),
    )
    assert response.status_code == 404


def test_course_content_for_learner(client, portal):
    response = client.get(
        f"{API}/courses/{portal.course.id}/content",
        params={"lang": "en"},
        headers=auth_headers(portal.learner),
    )
    assert response.status_code == 200
    content = response.json()
    assert content["locale"] == "en"
    assert set(content["available_locales"]) == {"no", "en"}
    assert content["title"] == "HSE basics"
    assert content["modules"][0]["title"] == "Modul 1"
    assert content["modules"][0]["questions"][0]["title"] == "Question q1"
    assert content["next_module_id"] == portal.module_ids[0]
    assert content["completed"] is False


def test_course_content_uses_accept_language(client, portal):
    response = client.get(
        f"{API}/courses/{portal.course.id}/content",
        headers={**auth_headers(portal.learner), "Accept-Language": "nb-NO,nb;q=0.9"},
    )
    assert response.json()["locale"] == "no"
    assert response.json()["title"] == "HMS Grunnkurs"


def test_course_content_requires_assignment(client, db, portal):
    outsider = create_user(db, "outsider@example.no")
    response = client.get(f"{API}/courses/{portal.course.id}/content", headers=auth_headers(outsider))
    assert response.status_code == 403
