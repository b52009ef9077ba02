"""
Dashboard metrics.

Totals plus trailing weekly buckets of new customers, new users and
completed courses. Buckets are Monday-aligned ISO weeks, oldest first,
the last one being the current week. Any database failure yields the
zero-valued skeleton instead of an error.
"""

from datetime import date, datetime, timedelta, timezone
from typing import Iterable, List, Optional, Tuple
import logging

from sqlalchemy import func
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from courseportal.core.config import settings
from courseportal.models.course import Course
from courseportal.models.customer import Customer, CustomerStatus
from courseportal.models.progress import CourseProgress
from courseportal.models.user import PortalUser
from courseportal.schemas.dashboard import DashboardMetrics, DashboardTotals, WeeklyBucket
from courseportal.services.directory import ModuleDirectory
from courseportal.services.progress import is_course_complete


logger = logging.getLogger(__name__)


def as_utc(value: Optional[datetime]) -> Optional[datetime]:
    """Aware UTC datetime; naive values (SQLite) are taken to be UTC."""
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def iso_week(day: date) -> Tuple[int, int]:
    """
    ISO (year, week) of ``day``.

    The week belongs to the year of its Thursday; the week number counts
    Thursdays since that year's first Thursday.
    """
    thursday = day + timedelta(days=3 - day.weekday())
    january_first = date(thursday.year, 1, 1)
    first_thursday = january_first + timedelta(days=(3 - january_first.weekday()) % 7)
    return thursday.year, (thursday - first_thursday).days // 7 + 1


def start_of_week(moment: datetime) -> datetime:
    """Monday 00:00 of the week containing ``moment``."""
    moment = as_utc(moment)
    monday = moment.date() - timedelta(days=moment.weekday())
    return datetime(monday.year, monday.month, monday.day, tzinfo=timezone.utc)


def week_label(start: datetime, now: datetime) -> str:
    iso_year, week = iso_week(start.date())
    if iso_year != now.year:
        return f"Week {week} {iso_year}"
    return f"Week {week}"


def build_week_buckets(now: datetime, count: int) -> List[WeeklyBucket]:
    """``count`` consecutive weeks ending with the current one, oldest first."""
    current = start_of_week(now)
    buckets = []
    for offset in range(count - 1, -1, -1):
        start = current - timedelta(weeks=offset)
        buckets.append(WeeklyBucket(
            label=week_label(start, now),
            start=start,
            end=start + timedelta(days=7),
        ))
    return buckets


def find_bucket(buckets: Iterable[WeeklyBucket], moment: Optional[datetime]) -> Optional[WeeklyBucket]:
    moment = as_utc(moment)
    if moment is None:
        return None
    for bucket in buckets:
        if bucket.start <= moment < bucket.end:
            return bucket
    return None


class DashboardAggregator:
    def __init__(self, db: Session, week_count: Optional[int] = None):
        self.db = db
        self.week_count = week_count or settings.DASHBOARD_WEEK_BUCKETS

    def empty(self, now: datetime) -> DashboardMetrics:
        return DashboardMetrics(
            totals=DashboardTotals(),
            weekly=build_week_buckets(now, self.week_count),
        )

    def collect(self, now: Optional[datetime] = None) -> DashboardMetrics:
        now = as_utc(now) or datetime.now(timezone.utc)
        try:
            return self._collect(now)
        except SQLAlchemyError as e:
            logger.error(f"Dashboard metrics unavailable, returning empty report: {e}")
            self.db.rollback()
            return self.empty(now)

    def _count(self, column, *criteria) -> int:
        query = self.db.query(func.count(column))
        if criteria:
            query = query.filter(*criteria)
        return query.scalar() or 0

    def _collect(self, now: datetime) -> DashboardMetrics:
        metrics = self.empty(now)
        buckets = metrics.weekly
        earliest = buckets[0].start

        totals = metrics.totals
        totals.customers = self._count(Customer.id)
        totals.active_customers = self._count(Customer.id, Customer.status == CustomerStatus.ACTIVE.value)
        totals.inactive_customers = self._count(Customer.id, Customer.status == CustomerStatus.INACTIVE.value)
        totals.users = self._count(PortalUser.id)
        totals.courses = self._count(Course.id)

        for (created_at,) in self.db.query(Customer.created_at).filter(Customer.created_at >= earliest).all():
            bucket = find_bucket(buckets, created_at)
            if bucket is not None:
                bucket.new_customers += 1

        for (created_at,) in self.db.query(PortalUser.created_at).filter(PortalUser.created_at >= earliest).all():
            bucket = find_bucket(buckets, created_at)
            if bucket is not None:
                bucket.new_users += 1

        modules_by_course = ModuleDirectory(self.db).module_ids_by_course()
        for progress in self.db.query(CourseProgress).all():
            module_ids = modules_by_course.get(progress.course_id, [])
            if not is_course_complete(module_ids, progress.completed_modules or []):
                continue
            totals.completed_courses += 1
            bucket = find_bucket(buckets, progress.updated_at)
            if bucket is not None:
                bucket.completed_courses += 1

        return metrics
