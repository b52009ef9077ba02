"""
Course progress tracking.

A progress record is the set of module ids a user has completed in one
course. ``ProgressTracker`` owns that set for one (user, course) pair:
updates are applied optimistically as a pending value, committed once
the store confirms the write and reverted when it fails.
"""

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Callable, Collection, Iterable, List, Optional, Protocol, Tuple
import logging

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from courseportal.core.errors import PortalError, ValidationFailed
from courseportal.models.progress import CourseProgress
from courseportal.services.watch import ChangeFeed, LiveQuery, Unsubscribe, progress_topic


logger = logging.getLogger(__name__)


class ProgressUpdateError(PortalError):
    """The store rejected a progress write; local state was rolled back."""


def is_course_complete(module_ids: Collection[str], completed_modules: Iterable[str]) -> bool:
    """A course counts as complete when it has modules and all of them are completed."""
    if not module_ids:
        return False
    completed = set(completed_modules)
    return all(module_id in completed for module_id in module_ids)


class ProgressStore(Protocol):
    def load(self, user_id: str, course_id: str) -> List[str]: ...

    def save(self, user_id: str, course_id: str, completed_modules: List[str]) -> None: ...

    def watch(
        self,
        user_id: str,
        course_id: str,
        on_snapshot: Callable[[List[str]], None],
        on_error: Callable[[Exception], None],
    ) -> Unsubscribe: ...


class SqlProgressStore:
    """Progress records persisted through SQLAlchemy."""

    def __init__(self, db: Session, feed: Optional[ChangeFeed] = None):
        self.db = db
        self.feed = feed

    def get_record(self, user_id: str, course_id: str) -> Optional[CourseProgress]:
        return self.db.query(CourseProgress).filter(
            CourseProgress.user_id == user_id,
            CourseProgress.course_id == course_id
        ).first()

    def load(self, user_id: str, course_id: str) -> List[str]:
        record = self.get_record(user_id, course_id)
        if record is None:
            return []
        return [module_id for module_id in (record.completed_modules or []) if module_id]

    def save(self, user_id: str, course_id: str, completed_modules: List[str]) -> None:
        try:
            record = self.get_record(user_id, course_id)
            if record is None:
                record = CourseProgress(user_id=user_id, course_id=course_id)
                self.db.add(record)
            record.completed_modules = list(completed_modules)
            record.updated_at = datetime.now(timezone.utc)
            self.db.commit()
        except SQLAlchemyError:
            self.db.rollback()
            raise
        if self.feed is not None:
            self.feed.publish(progress_topic(user_id, course_id))

    def watch(self, user_id, course_id, on_snapshot, on_error) -> Unsubscribe:
        if self.feed is None:
            raise RuntimeError("SqlProgressStore.watch needs a ChangeFeed")
        query = LiveQuery(
            self.feed,
            progress_topic(user_id, course_id),
            lambda: self.load(user_id, course_id),
        )
        return query.subscribe(on_snapshot, on_error)


@dataclass(frozen=True)
class ProgressState:
    """Last confirmed module set plus an optional unconfirmed one."""

    committed: Tuple[str, ...] = ()
    pending: Optional[Tuple[str, ...]] = None

    @property
    def current(self) -> Tuple[str, ...]:
        return self.pending if self.pending is not None else self.committed

    @property
    def is_pending(self) -> bool:
        return self.pending is not None


class ProgressTracker:
    """
    Completed-module set of one user in one course.

    ``set_module_completion`` is idempotent: when the resulting set holds
    the same ids as the current one no write is made.
    """

    def __init__(self, store: ProgressStore, user_id: str, course_id: str):
        if not user_id or not course_id:
            raise ValidationFailed("Progress needs both a user and a course.")
        self.store = store
        self.user_id = user_id
        self.course_id = course_id
        self.error: Optional[str] = None
        self.state = ProgressState(committed=tuple(store.load(user_id, course_id)))
        self._unsubscribe: Optional[Unsubscribe] = None

    @property
    def completed_modules(self) -> List[str]:
        return list(self.state.current)

    def is_module_completed(self, module_id: str) -> bool:
        return module_id in self.state.current

    def is_course_complete(self, module_ids: Collection[str]) -> bool:
        return is_course_complete(module_ids, self.state.current)

    def set_module_completion(self, module_id: str, is_complete: bool) -> bool:
        """
        Mark ``module_id`` complete or incomplete.

        Returns True when a write was made. Raises ``ProgressUpdateError``
        after rolling back when the store fails.
        """
        if not module_id:
            raise ValidationFailed("Module id is required.")

        current = self.state.current
        if is_complete:
            next_modules = current if module_id in current else current + (module_id,)
        else:
            next_modules = tuple(existing for existing in current if existing != module_id)

        if set(next_modules) == set(current):
            return False

        previous = self.state
        self.state = ProgressState(committed=previous.committed, pending=next_modules)
        try:
            self.store.save(self.user_id, self.course_id, list(next_modules))
        except Exception as exc:
            logger.error(
                f"Failed to update progress for user {self.user_id} "
                f"in course {self.course_id}: {exc}"
            )
            self.state = ProgressState(committed=previous.committed)
            self.error = "Could not update progress."
            raise ProgressUpdateError(self.error) from exc

        self.state = ProgressState(committed=next_modules)
        self.error = None
        return True

    def start_watching(self) -> None:
        """Keep the committed set in sync with writes made elsewhere."""
        if self._unsubscribe is not None:
            return
        self._unsubscribe = self.store.watch(
            self.user_id, self.course_id, self._on_snapshot, self._on_error,
        )

    def stop_watching(self) -> None:
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None

    def _on_snapshot(self, modules: List[str]) -> None:
        self.state = ProgressState(committed=tuple(modules), pending=self.state.pending)
        self.error = None

    def _on_error(self, exc: Exception) -> None:
        self.state = ProgressState()
        self.error = "Could not load course progress."
