from dataclasses import dataclass
from sqlalchemy import update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, joinedload
from spaced_review.database import store_errors
from spaced_review.errors import NotFound, ValidationError, DuplicateNotification
from spaced_review.interval_policy import utcnow
from spaced_review.models import Notification
from datetime import datetime
from typing import List, Optional

@dataclass
class NotificationListing:
    notifications: List[Notification]
    unread_count: int

    @property
    def count(self) -> int:
        return len(self.notifications)

UNREAD_TOPIC_INDEX = "uq_notifications_unread_topic"

def _violates_unread_index(error: IntegrityError) -> bool:
    """True if the error is the unread (user, topic) unique index, not e.g. a foreign key"""
    diag = getattr(error.orig, "diag", None)
    constraint = getattr(diag, "constraint_name", None)
    if constraint is not None:
        return constraint == UNREAD_TOPIC_INDEX
    # sqlite names the columns instead of the index
    text = str(error.orig)
    return UNREAD_TOPIC_INDEX in text or (
        "UNIQUE constraint failed" in text
        and "notifications.user_id" in text
        and "notifications.topic_id" in text
    )

def create_notification(
    db: Session,
    user_id: int,
    title: str,
    message: str,
    topic_id: Optional[int] = None,
    now: datetime = None
) -> Notification:
    """Create an unread notification"""
    if not title or not title.strip():
        raise ValidationError("title is required")
    if not message or not message.strip():
        raise ValidationError("message is required")

    notification = Notification(
        user_id=user_id,
        topic_id=topic_id,
        title=title,
        message=message,
        read=False,
        created_at=now or utcnow()
    )
    with store_errors(db, "create notification"):
        db.add(notification)
        try:
            db.commit()
        except IntegrityError as e:
            # Unique index on unread (user, topic): a concurrent creator got there first
            if topic_id is None or not _violates_unread_index(e):
                raise
            db.rollback()
            raise DuplicateNotification(user_id, topic_id) from e
    db.refresh(notification)
    return notification

def has_unread_notification(db: Session, user_id: int, topic_id: int) -> bool:
    """True if the (user, topic) pair already has a pending notification"""
    with store_errors(db, "check unread notifications"):
        return db.query(Notification.id).filter(
            Notification.user_id == user_id,
            Notification.topic_id == topic_id,
            Notification.read.is_(False)
        ).first() is not None

def list_notifications(db: Session, user_id: int) -> NotificationListing:
    """All notifications for the user, newest first"""
    with store_errors(db, "list notifications"):
        notifications = db.query(Notification).options(
            joinedload(Notification.topic)
        ).filter(
            Notification.user_id == user_id
        ).order_by(Notification.created_at.desc(), Notification.id.desc()).all()
    unread = sum(1 for n in notifications if not n.read)
    return NotificationListing(notifications=notifications, unread_count=unread)

def mark_notification_read(db: Session, notification_id: int, user_id: int) -> Notification:
    """Mark read; a notification owned by someone else is indistinguishable from a missing one"""
    with store_errors(db, "mark notification read"):
        result = db.execute(
            update(Notification)
            .where(Notification.id == notification_id, Notification.user_id == user_id)
            .values(read=True),
            execution_options={"synchronize_session": False}
        )
        if result.rowcount == 0:
            db.rollback()
            raise NotFound("Notification", notification_id)
        db.commit()
        notification = db.get(Notification, notification_id)
    return notification
