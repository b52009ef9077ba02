from courseportal.core.security import verify_token
from courseportal.models.invite import CourseInvite
from courseportal.models.user import PortalUser
from courseportal.services.invites import ensure_norwegian_phone, upsert_course_membership
from tests.factories import API, auth_headers, create_course, create_user, customer_membership


def customer_admin(db, portal):
    return create_user(
        db,
        "kundeadmin@example.no",
        customer_memberships=[customer_membership(portal.customer, [], roles=["admin"])],
    )


def create_invite(client, db, portal) -> str:
    response = client.post(
        f"{API}/invites/",
        json={"course_id": portal.course.id, "customer_id": portal.customer.id},
        headers=auth_headers(customer_admin(db, portal)),
    )
    assert response.status_code == 201
    return response.json()["code"]


def test_phone_normalization():
    assert ensure_norwegian_phone("912 34 567") == "+4791234567"
    assert ensure_norwegian_phone("004791234567") == "+4791234567"
    assert ensure_norwegian_phone("4791234567") == "+4791234567"
    assert ensure_norwegian_phone("091234567") == "+4791234567"
    assert ensure_norwegian_phone("+46701234567") == "+46701234567"
    assert ensure_norwegian_phone("  ") == ""


def test_membership_upsert_deduplicates_courses():
    memberships = [
        {"customer_id": "c1", "customer_name": "Kunde", "roles": ["admin"], "assigned_course_ids": ["x"]},
        {"customer_id": "c2", "roles": ["user"], "assigned_course_ids": []},
    ]
    updated = upsert_course_membership(memberships, "c1", "", "x")

    entry = next(item for item in updated if item["customer_id"] == "c1")
    assert entry["roles"] == ["admin", "user"]
    assert entry["assigned_course_ids"] == ["x"]
    assert entry["customer_name"] == "Kunde"
    assert len(updated) == 2


def test_create_invite(client, db, portal):
    code = create_invite(client, db, portal)

    assert len(code) == 6
    invite = db.query(CourseInvite).filter(CourseInvite.code == code).first()
    assert invite.course_title == "HMS Grunnkurs"
    assert invite.customer_name == "Eksempel AS"
    assert invite.active


def test_invite_requires_course_on_customer(client, db, portal):
    other_course, _ = create_course(db)
    response = client.post(
        f"{API}/invites/",
        json={"course_id": other_course.id, "customer_id": portal.customer.id},
        headers=auth_headers(customer_admin(db, portal)),
    )
    assert response.status_code == 400


def test_invite_requires_customer_admin(client, portal):
    response = client.post(
        f"{API}/invites/",
        json={"course_id": portal.course.id, "customer_id": portal.customer.id},
        headers=auth_headers(portal.learner),
    )
    assert response.status_code == 403


def test_signup_with_invite(client, db, portal):
    code = create_invite(client, db, portal)

    response = client.post(
        f"{API}/invites/signup",
        json={"code": code.lower(), "email": "Ny@Example.no", "password": "hemmelig", "phone": "912 34 567"},
    )
    assert response.status_code == 201
    claims = verify_token(response.json()["token"])
    assert claims["signup_source"] == "course-invite"
    assert claims["course_id"] == portal.course.id

    user = db.query(PortalUser).filter(PortalUser.email == "ny@example.no").first()
    assert user.phone == "+4791234567"
    assert user.customer_memberships[0]["assigned_course_ids"] == [portal.course.id]
    assert user.customer_memberships[0]["roles"] == ["user"]

    duplicate = client.post(
        f"{API}/invites/signup",
        json={"code": code, "email": "ny@example.no", "password": "hemmelig"},
    )
    assert duplicate.status_code == 409


def test_signup_errors(client, db, portal):
    code = create_invite(client, db, portal)

    short = client.post(f"{API}/invites/signup", json={"code": code, "email": "a@b.no", "password": "123"})
    assert short.status_code == 400

    unknown = client.post(f"{API}/invites/signup", json={"code": "ZZZZZZ", "email": "a@b.no", "password": "hemmelig"})
    assert unknown.status_code == 404

    db.query(CourseInvite).filter(CourseInvite.code == code).update({"active": False})
    db.commit()
    inactive = client.post(f"{API}/invites/signup", json={"code": code, "email": "a@b.no", "password": "hemmelig"})
    assert inactive.status_code == 410


def test_redeem_adds_course_once(client, db, portal):
    code = create_invite(client, db, portal)
    user = create_user(db, "eksisterende@example.no")

    for _ in range(2):
        response = client.post(f"{API}/invites/redeem", json={"code": code}, headers=auth_headers(user))
        assert response.status_code == 200
        assert response.json() == {"ok": True, "customer_id": portal.customer.id, "course_id": portal.course.id}

    db.expire_all()
    stored = db.query(PortalUser).filter(PortalUser.id == user.id).first()
    assert stored.customer_memberships == [{
        "customer_id": portal.customer.id,
        "customer_name": "Eksempel AS",
        "roles": ["user"],
        "assigned_course_ids": [portal.course.id],
    }]
    assert stored.customer_id_refs == [portal.customer.id]
