from courseportal.core.config import settings
from tests.factories import API, auth_headers, create_user


def test_dashboard_requires_system_owner(client, portal):
    assert client.get(f"{API}/dashboard/", headers=auth_headers(portal.admin)).status_code == 403


def test_dashboard_for_system_owner(client, db, portal, monkeypatch):
    monkeypatch.setattr(settings, "SYSTEM_OWNER_COMPANY_ID", "owner-co")
    owner = create_user(db, "owner@example.no", company_memberships=[{"company_id": "owner-co", "roles": ["admin"]}])

    response = client.get(f"{API}/dashboard/", headers=auth_headers(owner))

    assert response.status_code == 200
    body = response.json()
    assert body["totals"]["customers"] == 1
    assert body["totals"]["users"] == 3
    assert body["totals"]["courses"] == 1
    assert len(body["weekly"]) == settings.DASHBOARD_WEEK_BUCKETS
    assert body["weekly"][-1]["label"].startswith("Week ")
