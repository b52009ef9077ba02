"""
Course, module and customer directories.

Each directory wraps the CRUD writes for one collection and publishes a
change on the ``ChangeFeed`` after every commit so live queries refresh.
Deletes are hard deletes and do not cascade: removing a course leaves its
modules, progress and completion records in place.
"""

from typing import Callable, Dict, List, Optional
import logging

from sqlalchemy.orm import Session

from courseportal.core.database import SessionLocal
from courseportal.core.errors import NotFound, ValidationFailed
from courseportal.models.course import Course, CourseModule
from courseportal.models.customer import Customer
from courseportal.schemas.course import (
    CourseCreate,
    CourseModuleView,
    CourseResponse,
    CourseUpdate,
    MediaItem,
    ModuleCreate,
    ModuleUpdate,
)
from courseportal.schemas.customer import CustomerCreate, CustomerResponse, CustomerUpdate
from courseportal.services.decoding import Malformed, decode_module
from courseportal.services.media import media_to_legacy_lists
from courseportal.services.watch import (
    ChangeFeed,
    LiveQuery,
    courses_topic,
    customers_topic,
    modules_topic,
    subunits_topic,
)


logger = logging.getLogger(__name__)

SessionFactory = Callable[[], Session]


def _dedupe(values: List[str]) -> List[str]:
    return list(dict.fromkeys(value for value in values if value))


def _module_sort_key(module: CourseModuleView):
    created = module.created_at.timestamp() if module.created_at else 0.0
    return (module.order, created, module.id)


class _Directory:
    def __init__(self, db: Session, feed: Optional[ChangeFeed] = None):
        self.db = db
        self.feed = feed

    def _publish(self, *topics) -> None:
        if self.feed is None:
            return
        for topic in topics:
            self.feed.publish(topic)


class CourseDirectory(_Directory):
    def list_for_company(self, company_id: str) -> List[Course]:
        return self.db.query(Course).filter(
            Course.company_id == company_id
        ).order_by(Course.created_at, Course.id).all()

    def list_by_ids(self, course_ids: List[str]) -> List[Course]:
        if not course_ids:
            return []
        return self.db.query(Course).filter(Course.id.in_(course_ids)).all()

    def get(self, course_id: str) -> Course:
        course = self.db.query(Course).filter(Course.id == course_id).first()
        if course is None:
            raise NotFound("Course not found.")
        return course

    def create(self, data: CourseCreate, created_by_id: str) -> Course:
        course = Course(
            **data.model_dump(mode="json"),
            created_by_id=created_by_id,
        )
        self.db.add(course)
        self.db.commit()
        self.db.refresh(course)
        logger.info(f"Course {course.id} created for company {course.company_id}")
        self._publish(courses_topic(course.company_id))
        return course

    def update(self, course_id: str, data: CourseUpdate) -> Course:
        course = self.get(course_id)
        for field, value in data.model_dump(mode="json", exclude_unset=True).items():
            setattr(course, field, value)
        self.db.commit()
        self.db.refresh(course)
        self._publish(courses_topic(course.company_id))
        return course

    def delete(self, course_id: str) -> None:
        course = self.get(course_id)
        company_id = course.company_id
        self.db.delete(course)
        self.db.commit()
        logger.info(f"Course {course_id} deleted")
        self._publish(courses_topic(company_id))


class ModuleDirectory(_Directory):
    def _rows(self, course_id: str) -> List[CourseModule]:
        return self.db.query(CourseModule).filter(
            CourseModule.course_id == course_id
        ).order_by(CourseModule.created_at, CourseModule.id).all()

    def list_for_course(self, course_id: str) -> List[CourseModuleView]:
        """Decoded modules ordered by ``order``, then creation time, then id."""
        modules: List[CourseModuleView] = []
        for index, row in enumerate(self._rows(course_id)):
            result = decode_module(row, index)
            if isinstance(result, Malformed):
                logger.warning(f"Skipping module {row.id}: {result.reason}")
                continue
            modules.append(result.value)
        modules.sort(key=_module_sort_key)
        return modules

    def module_ids(self, course_id: str) -> List[str]:
        return [module.id for module in self.list_for_course(course_id)]

    def module_ids_by_course(self) -> Dict[str, List[str]]:
        grouped: Dict[str, List[str]] = {}
        for module_id, course_id in self.db.query(CourseModule.id, CourseModule.course_id).all():
            grouped.setdefault(course_id, []).append(module_id)
        return grouped

    def _get_row(self, course_id: str, module_id: str) -> CourseModule:
        row = self.db.query(CourseModule).filter(
            CourseModule.id == module_id,
            CourseModule.course_id == course_id
        ).first()
        if row is None:
            raise NotFound("Module not found.")
        return row

    def get(self, course_id: str, module_id: str) -> CourseModuleView:
        result = decode_module(self._get_row(course_id, module_id))
        if isinstance(result, Malformed):
            raise NotFound("Module not found.")
        return result.value

    def _apply(self, row: CourseModule, values: Dict) -> None:
        for field, value in values.items():
            setattr(row, field, value)
        if "media" in values:
            media = {
                locale: [MediaItem.model_validate(item) for item in items]
                for locale, items in (values["media"] or {}).items()
            }
            legacy = media_to_legacy_lists(media)
            row.image_urls = legacy["image_urls"]
            row.video_urls = legacy["video_urls"]

    def create(self, course_id: str, data: ModuleCreate) -> CourseModuleView:
        if self.db.query(Course.id).filter(Course.id == course_id).first() is None:
            raise NotFound("Course not found.")
        row = CourseModule(course_id=course_id)
        self._apply(row, data.model_dump(mode="json"))
        self.db.add(row)
        self.db.commit()
        self.db.refresh(row)
        self._publish(modules_topic(course_id))
        return self.get(course_id, row.id)

    def update(self, course_id: str, module_id: str, data: ModuleUpdate) -> CourseModuleView:
        row = self._get_row(course_id, module_id)
        self._apply(row, data.model_dump(mode="json", exclude_unset=True))
        self.db.commit()
        self._publish(modules_topic(course_id))
        return self.get(course_id, module_id)

    def delete(self, course_id: str, module_id: str) -> None:
        row = self._get_row(course_id, module_id)
        self.db.delete(row)
        self.db.commit()
        self._publish(modules_topic(course_id))


class CustomerDirectory(_Directory):
    def list_for_company(self, company_id: str) -> List[Customer]:
        return self.db.query(Customer).filter(
            Customer.created_by_company_id == company_id
        ).order_by(Customer.company_name, Customer.id).all()

    def list_subunits(self, parent_customer_id: str) -> List[Customer]:
        return self.db.query(Customer).filter(
            Customer.parent_customer_id == parent_customer_id
        ).order_by(Customer.company_name, Customer.id).all()

    def get(self, customer_id: str) -> Customer:
        customer = self.db.query(Customer).filter(Customer.id == customer_id).first()
        if customer is None:
            raise NotFound("Customer not found.")
        return customer

    def _topics(self, customer: Customer) -> list:
        topics = [customers_topic(customer.created_by_company_id)]
        if customer.parent_customer_id:
            topics.append(subunits_topic(customer.parent_customer_id))
        return topics

    def create(self, data: CustomerCreate) -> Customer:
        values = data.model_dump(mode="json")
        values["course_ids"] = _dedupe(values.get("course_ids") or [])
        if data.parent_customer_id:
            parent = self.get(data.parent_customer_id)
            if not parent.allow_subunits:
                raise ValidationFailed("The parent customer does not allow subunits.")
            values["parent_customer_name"] = parent.company_name
        customer = Customer(**values)
        self.db.add(customer)
        self.db.commit()
        self.db.refresh(customer)
        logger.info(f"Customer {customer.id} created by company {customer.created_by_company_id}")
        self._publish(*self._topics(customer))
        return customer

    def update(self, customer_id: str, data: CustomerUpdate) -> Customer:
        customer = self.get(customer_id)
        previous_topics = self._topics(customer)
        for field, value in data.model_dump(mode="json", exclude_unset=True).items():
            setattr(customer, field, value)
        self.db.commit()
        self.db.refresh(customer)
        self._publish(*dict.fromkeys(previous_topics + self._topics(customer)))
        return customer

    def set_courses(self, customer_id: str, course_ids: List[str]) -> Customer:
        customer = self.get(customer_id)
        customer.course_ids = _dedupe(course_ids)
        self.db.commit()
        self.db.refresh(customer)
        self._publish(*self._topics(customer))
        return customer

    def delete(self, customer_id: str) -> None:
        customer = self.get(customer_id)
        topics = self._topics(customer)
        self.db.delete(customer)
        self.db.commit()
        logger.info(f"Customer {customer_id} deleted")
        self._publish(*topics)


def session_loader(session_factory: SessionFactory, load: Callable[[Session], list]) -> Callable[[], list]:
    """Loader that runs ``load`` in a fresh session, for queries fired from any thread."""

    def loader() -> list:
        db = session_factory()
        try:
            return load(db)
        finally:
            db.close()

    return loader


def watch_courses(
    feed: ChangeFeed,
    company_id: str,
    session_factory: SessionFactory = SessionLocal,
) -> LiveQuery[List[CourseResponse]]:
    return LiveQuery(feed, courses_topic(company_id), session_loader(
        session_factory,
        lambda db: [
            CourseResponse.model_validate(course)
            for course in CourseDirectory(db).list_for_company(company_id)
        ],
    ))


def watch_modules(
    feed: ChangeFeed,
    course_id: str,
    session_factory: SessionFactory = SessionLocal,
) -> LiveQuery[List[CourseModuleView]]:
    return LiveQuery(feed, modules_topic(course_id), session_loader(
        session_factory,
        lambda db: ModuleDirectory(db).list_for_course(course_id),
    ))


def watch_customers(
    feed: ChangeFeed,
    company_id: str,
    session_factory: SessionFactory = SessionLocal,
) -> LiveQuery[List[CustomerResponse]]:
    return LiveQuery(feed, customers_topic(company_id), session_loader(
        session_factory,
        lambda db: [
            CustomerResponse.model_validate(customer)
            for customer in CustomerDirectory(db).list_for_company(company_id)
        ],
    ))


def watch_subunits(
    feed: ChangeFeed,
    parent_customer_id: str,
    session_factory: SessionFactory = SessionLocal,
) -> LiveQuery[List[CustomerResponse]]:
    return LiveQuery(feed, subunits_topic(parent_customer_id), session_loader(
        session_factory,
        lambda db: [
            CustomerResponse.model_validate(customer)
            for customer in CustomerDirectory(db).list_subunits(parent_customer_id)
        ],
    ))
