"""
Due-review scanner.

Periodically finds completed topics whose next review has come due and
creates one unread notification per (user, topic). A pending unread
notification suppresses new ones until it is marked read.
"""

import logging
import threading
from collections import defaultdict
from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from spaced_review.config import settings
from spaced_review.crud.notification import create_notification, has_unread_notification
from spaced_review.crud.topic import get_all_due_topics
from spaced_review.database import SessionLocal
from spaced_review.errors import DependencyFailure, DuplicateNotification
from spaced_review.interval_policy import utcnow
from spaced_review.models import Notification, Subject, Topic

logger = logging.getLogger(__name__)

REVIEW_TITLE = "Review Due: {topic}"
REVIEW_MESSAGE = (
    'It\'s time to review "{topic}" from "{subject}". '
    "This will help reinforce your learning!"
)


@dataclass
class ScanSummary:
    """Counts from one scan"""

    due_topics: int = 0
    users: int = 0
    created: int = 0
    skipped_existing: int = 0
    skipped_unresolved: int = 0
    completed: bool = False


def create_review_notification(
    db: Session, user_id: int, topic: Topic, subject: Subject, now: datetime = None
) -> Optional[Notification]:
    """Create a review notification unless one is already pending for the pair"""
    topic_id = topic.id
    if has_unread_notification(db, user_id, topic_id):
        return None

    try:
        notification = create_notification(
            db,
            user_id,
            REVIEW_TITLE.format(topic=topic.title),
            REVIEW_MESSAGE.format(topic=topic.title, subject=subject.title),
            topic_id=topic_id,
            now=now,
        )
    except DuplicateNotification:
        # Another scan inserted between our check and insert
        logger.debug(f"Lost race creating notification for topic {topic_id}")
        return None

    logger.info(f"Created review notification for topic: {topic.title} (User: {user_id})")
    return notification


def run_due_review_scan(db: Session = None, now: datetime = None) -> ScanSummary:
    """
    Run one scan and return its counts.

    Store failures end the run early (``completed=False``); the next scheduled
    run retries the same selection since due topics stay due until reviewed.
    """
    own_session = db is None
    db = db or SessionLocal()
    now = now or utcnow()
    summary = ScanSummary()

    logger.info(f"[{now.isoformat()}] Starting due review check...")
    try:
        due_topics = get_all_due_topics(db, now)
        summary.due_topics = len(due_topics)
        if not due_topics:
            logger.info("No topics due for review")
            summary.completed = True
            return summary

        # Group topics by user for batch processing
        topics_by_user = defaultdict(list)
        for topic in due_topics:
            subject = db.get(Subject, topic.subject_id)
            if subject is None or subject.user_id is None:
                logger.warning(
                    f"Skipping topic {topic.id}: subject {topic.subject_id} could not be resolved"
                )
                summary.skipped_unresolved += 1
                continue
            topics_by_user[subject.user_id].append((topic, subject))
        summary.users = len(topics_by_user)

        for user_id, user_topics in topics_by_user.items():
            logger.info(f"Processing {len(user_topics)} due topics for user: {user_id}")
            for topic, subject in user_topics:
                if create_review_notification(db, user_id, topic, subject, now):
                    summary.created += 1
                else:
                    summary.skipped_existing += 1

        summary.completed = True
        logger.info(f"Review check completed. Created {summary.created} notifications.")
    except (DependencyFailure, SQLAlchemyError) as e:
        logger.error(
            f"Due review check ended early after {summary.created} notifications: {e}"
        )
    finally:
        if own_session:
            db.close()

    return summary


def run_manual_scan() -> ScanSummary:
    """Trigger a scan outside the timer (operations / testing)"""
    logger.info("Running manual due review check...")
    return run_due_review_scan()


class ReviewNotifier:
    """Background thread running the due-review scan on a fixed period"""

    def __init__(
        self,
        interval_seconds: float = None,
        initial_delay_seconds: float = None,
        session_factory=None,
    ):
        self.interval_seconds = (
            interval_seconds if interval_seconds is not None else settings.effective_scan_interval
        )
        self.initial_delay_seconds = (
            initial_delay_seconds
            if initial_delay_seconds is not None
            else settings.initial_scan_delay_seconds
        )
        self.session_factory = session_factory or SessionLocal
        self.runs = 0
        self._stop = threading.Event()
        self._thread: Optional[threading.Thread] = None

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def start(self) -> None:
        if self.running:
            return
        self._stop.clear()
        self._thread = threading.Thread(target=self._loop, name="review-notifier", daemon=True)
        self._thread.start()
        logger.info(f"Scheduling review notifier every {self.interval_seconds}s")

    def stop(self, timeout: float = None) -> None:
        self._stop.set()
        if self._thread is not None:
            self._thread.join(timeout)
        logger.info("Review notifier stopped")

    def join(self, timeout: float = None) -> None:
        """Block until the thread exits or the timeout passes"""
        if self._thread is not None:
            self._thread.join(timeout)

    def run_now(self) -> ScanSummary:
        db = self.session_factory()
        try:
            return run_due_review_scan(db)
        finally:
            db.close()
            self.runs += 1

    def _loop(self) -> None:
        if self._stop.wait(self.initial_delay_seconds):
            return
        while True:
            try:
                self.run_now()
            except Exception as e:
                logger.error(f"Review notifier cycle error: {e}", exc_info=True)
            if self._stop.wait(self.interval_seconds):
                break
