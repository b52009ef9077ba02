"""
Shared fixtures: in-memory SQLite and a TestClient.
"""

import os

os.environ["TESTING"] = "true"

from types import SimpleNamespace

import pytest
from fastapi.testclient import TestClient

from courseportal.core.database import Base, SessionLocal, engine
from courseportal.main import app
from tests.factories import (
    COMPANY_ID,
    create_course,
    create_customer,
    create_user,
    customer_membership,
)


@pytest.fixture
def db():
    import courseportal.models  # noqa: F401

    Base.metadata.create_all(bind=engine)
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture
def client(db):
    return TestClient(app)


@pytest.fixture
def portal(db):
    """A company with one two-module course, a customer, a company admin and a learner."""
    course, module_ids = create_course(db)
    customer = create_customer(db, [course.id])
    admin = create_user(
        db,
        "admin@company.no",
        company_memberships=[{"company_id": COMPANY_ID, "roles": ["admin"]}],
    )
    learner = create_user(
        db,
        "learner@example.no",
        first_name="Kari",
        last_name="Nordmann",
        customer_memberships=[customer_membership(customer, [course.id])],
    )
    return SimpleNamespace(
        course=course,
        module_ids=module_ids,
        customer=customer,
        admin=admin,
        learner=learner,
    )
