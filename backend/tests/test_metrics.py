from datetime import date, datetime, timezone

from sqlalchemy.exc import OperationalError

from courseportal.models.progress import CourseProgress
from courseportal.services.metrics import (
    DashboardAggregator,
    build_week_buckets,
    find_bucket,
    iso_week,
    start_of_week,
)
from tests.factories import create_course, create_customer, create_user


class BrokenSession:
    def __init__(self):
        self.rolled_back = False

    def query(self, *args, **kwargs):
        raise OperationalError("SELECT count(*) FROM customers", {}, Exception("connection lost"))

    def rollback(self):
        self.rolled_back = True


def test_iso_week_across_year_boundary():
    assert iso_week(date(2026, 1, 5)) == (2026, 2)
    assert iso_week(date(2025, 12, 29)) == (2026, 1)
    assert iso_week(date(2025, 12, 22)) == (2025, 52)
    assert iso_week(date(2021, 1, 3)) == (2020, 53)


def test_start_of_week_is_monday_midnight_utc():
    start = start_of_week(datetime(2026, 10, 17, 15, 30, tzinfo=timezone.utc))
    assert start == datetime(2026, 10, 12, tzinfo=timezone.utc)


def test_week_labels_carry_year_only_outside_current_year():
    now = datetime(2026, 1, 7, 12, 0, tzinfo=timezone.utc)
    buckets = build_week_buckets(now, 8)

    assert len(buckets) == 8
    assert buckets[-1].label == "Week 2"
    assert buckets[-2].label == "Week 1"
    assert buckets[-3].label == "Week 52 2025"
    assert buckets[0].start < buckets[-1].start


def test_find_bucket_treats_naive_values_as_utc():
    now = datetime(2026, 10, 17, tzinfo=timezone.utc)
    buckets = build_week_buckets(now, 2)

    assert find_bucket(buckets, datetime(2026, 10, 13, 9, 0)) is buckets[1]
    assert find_bucket(buckets, datetime(2026, 1, 1)) is None
    assert find_bucket(buckets, None) is None


def test_store_failure_yields_empty_report():
    session = BrokenSession()
    report = DashboardAggregator(session, week_count=8).collect(datetime(2026, 10, 17, tzinfo=timezone.utc))

    assert session.rolled_back
    assert report.totals.model_dump() == {
        "customers": 0,
        "active_customers": 0,
        "inactive_customers": 0,
        "users": 0,
        "courses": 0,
        "completed_courses": 0,
    }
    assert len(report.weekly) == 8
    assert all(
        bucket.new_customers == bucket.new_users == bucket.completed_courses == 0
        for bucket in report.weekly
    )


def test_collect_counts_totals_and_current_week(db):
    course, module_ids = create_course(db)
    create_customer(db, [course.id])
    create_customer(db, [course.id], company_name="Inaktiv AS", status="inactive")
    user = create_user(db, "a@example.no")
    create_user(db, "b@example.no")
    db.add(CourseProgress(
        user_id=user.id,
        course_id=course.id,
        completed_modules=module_ids,
        updated_at=datetime.now(timezone.utc),
    ))
    db.add(CourseProgress(user_id="other", course_id=course.id, completed_modules=module_ids[:1]))
    db.commit()

    report = DashboardAggregator(db).collect()

    assert report.totals.customers == 2
    assert report.totals.active_customers == 1
    assert report.totals.inactive_customers == 1
    assert report.totals.users == 2
    assert report.totals.courses == 1
    assert report.totals.completed_courses == 1
    assert report.weekly[-1].completed_courses == 1
    assert sum(bucket.new_users for bucket in report.weekly) == 2
