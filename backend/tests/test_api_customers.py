from courseportal.models.invite import MagicLink
from courseportal.models.user import PortalUser
from tests.factories import API, COMPANY_ID, auth_headers, create_user


def test_customer_crud(client, portal):
    headers = auth_headers(portal.admin)
    course_id = portal.course.id

    created = client.post(
        f"{API}/customers/",
        json={"company_name": "Ny Kunde AS", "created_by_company_id": COMPANY_ID, "course_ids": [course_id, course_id]},
        headers=headers,
    )
    assert created.status_code == 201
    customer = created.json()
    assert customer["course_ids"] == [course_id]

    listed = client.get(f"{API}/customers/", params={"company_id": COMPANY_ID}, headers=headers).json()
    assert [entry["company_name"] for entry in listed] == ["Eksempel AS", "Ny Kunde AS"]

    updated = client.put(f"{API}/customers/{customer['id']}", json={"place": "Oslo"}, headers=headers)
    assert updated.json()["place"] == "Oslo"

    courses = client.put(f"{API}/customers/{customer['id']}/courses", json={"course_ids": []}, headers=headers)
    assert courses.json()["course_ids"] == []

    assert client.delete(f"{API}/customers/{customer['id']}", headers=headers).status_code == 204
    assert client.get(f"{API}/customers/{customer['id']}", headers=headers).status_code == 404


def test_subunits_need_permission_on_parent(client, portal):
    headers = auth_headers(portal.admin)
    payload = {
        "company_name": "Avdeling Nord",
        "created_by_company_id": COMPANY_ID,
        "parent_customer_id": portal.customer.id,
    }

    assert client.post(f"{API}/customers/", json=payload, headers=headers).status_code == 400

    client.put(f"{API}/customers/{portal.customer.id}", json={"allow_subunits": True}, headers=headers)
    created = client.post(f"{API}/customers/", json=payload, headers=headers)
    assert created.status_code == 201
    assert created.json()["parent_customer_name"] == "Eksempel AS"

    subunits = client.get(f"{API}/customers/{portal.customer.id}/subunits", headers=headers).json()
    assert [entry["company_name"] for entry in subunits] == ["Avdeling Nord"]


def test_customer_visibility(client, db, portal):
    assert client.get(f"{API}/customers/{portal.customer.id}", headers=auth_headers(portal.learner)).status_code == 200

    outsider = create_user(db, "outsider@example.no")
    assert client.get(f"{API}/customers/{portal.customer.id}", headers=auth_headers(outsider)).status_code == 403
    assert client.put(
        f"{API}/customers/{portal.customer.id}",
        json={"place": "Bergen"},
        headers=auth_headers(portal.learner),
    ).status_code == 403


def test_customer_user_lifecycle(client, db, portal):
    headers = auth_headers(portal.admin)
    url = f"{API}/customers/{portal.customer.id}/users"

    missing_password = client.post(url, json={"email": "ny@example.no"}, headers=headers)
    assert missing_password.status_code == 400

    created = client.post(
        url,
        json={
            "email": "Ny@Example.no",
            "password": "hemmelig",
            "first_name": "Nora",
            "phone": "+4791234567",
            "assigned_course_ids": [portal.course.id],
        },
        headers=headers,
    )
    assert created.status_code == 201
    user = created.json()
    assert user["email"] == "ny@example.no"
    assert user["roles"] == ["user"]

    db.expire_all()
    assert db.query(MagicLink).filter(MagicLink.auth_uid == user["id"]).count() == 1

    again = client.post(url, json={"email": "ny@example.no", "assigned_course_ids": [portal.course.id]}, headers=headers)
    assert again.status_code == 200
    assert again.json()["id"] == user["id"]

    emails = [entry["email"] for entry in client.get(url, headers=headers).json()]
    assert emails == ["learner@example.no", "ny@example.no"]

    updated = client.put(
        f"{url}/{user['id']}",
        json={"roles": ["admin", "user"], "assigned_course_ids": []},
        headers=headers,
    )
    assert updated.json()["roles"] == ["admin", "user"]
    assert updated.json()["assigned_course_ids"] == []

    assert client.delete(f"{url}/{user['id']}", headers=headers).status_code == 204
    db.expire_all()
    assert db.query(PortalUser).filter(PortalUser.id == user["id"]).first() is None


def test_removing_company_staff_keeps_account(client, db, portal):
    staff = create_user(
        db,
        "staff@company.no",
        company_memberships=[{"company_id": COMPANY_ID, "roles": ["editor"]}],
        customer_memberships=[{"customer_id": portal.customer.id, "roles": ["admin"], "assigned_course_ids": []}],
    )

    response = client.delete(
        f"{API}/customers/{portal.customer.id}/users/{staff.id}",
        headers=auth_headers(portal.admin),
    )
    assert response.status_code == 204

    db.expire_all()
    kept = db.query(PortalUser).filter(PortalUser.id == staff.id).first()
    assert kept is not None
    assert kept.customer_memberships == []
