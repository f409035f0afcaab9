from datetime import timedelta
from types import SimpleNamespace

import pytest
from sqlalchemy.exc import IntegrityError

from spaced_review.crud import (
    create_notification,
    has_unread_notification,
    list_notifications,
    mark_notification_read,
)
from spaced_review.errors import DependencyFailure, DuplicateNotification, NotFound, ValidationError

from tests.conftest import NOW


def test_create_is_unread(db, user):
    notification = create_notification(db, user.id, "Welcome", "Add your first subject", now=NOW)
    assert notification.read is False
    assert notification.topic_id is None
    assert notification.created_at == NOW


def test_create_requires_title_and_message(db, user):
    with pytest.raises(ValidationError):
        create_notification(db, user.id, "", "body")
    with pytest.raises(ValidationError):
        create_notification(db, user.id, "title", "  ")


def test_list_newest_first_with_unread_count(db, user, other_user):
    first = create_notification(db, user.id, "First", "one", now=NOW)
    create_notification(db, user.id, "Second", "two", now=NOW + timedelta(hours=1))
    create_notification(db, other_user.id, "Elsewhere", "three", now=NOW)
    mark_notification_read(db, first.id, user.id)

    listing = list_notifications(db, user.id)

    assert [n.title for n in listing.notifications] == ["Second", "First"]
    assert listing.count == 2
    assert listing.unread_count == 1


def test_mark_read_by_owner(db, user):
    notification = create_notification(db, user.id, "Title", "Message")

    marked = mark_notification_read(db, notification.id, user.id)

    assert marked.read is True
    # Marking again is harmless
    assert mark_notification_read(db, notification.id, user.id).read is True


def test_mark_read_checks_ownership(db, user, other_user):
    notification = create_notification(db, user.id, "Title", "Message")

    with pytest.raises(NotFound):
        mark_notification_read(db, notification.id, other_user.id)
    with pytest.raises(NotFound):
        mark_notification_read(db, 4040, user.id)

    db.refresh(notification)
    assert notification.read is False


def test_one_unread_notification_per_topic(db, user, make_topic):
    topic = make_topic()
    first = create_notification(db, user.id, "Review Due", "now", topic_id=topic.id)
    assert has_unread_notification(db, user.id, topic.id)

    with pytest.raises(DuplicateNotification):
        create_notification(db, user.id, "Review Due", "again", topic_id=topic.id)

    mark_notification_read(db, first.id, user.id)
    assert not has_unread_notification(db, user.id, topic.id)
    second = create_notification(db, user.id, "Review Due", "again", topic_id=topic.id)
    assert second.read is False
    assert list_notifications(db, user.id).count == 2


def test_topicless_notifications_are_not_deduplicated(db, user):
    create_notification(db, user.id, "Tip", "one")
    create_notification(db, user.id, "Tip", "two")
    assert list_notifications(db, user.id).unread_count == 2


class _ConstraintViolation(Exception):
    """Driver error carrying the violated constraint name, like psycopg's diag"""

    def __init__(self, constraint_name):
        super().__init__(f"violates constraint {constraint_name}")
        self.diag = SimpleNamespace(constraint_name=constraint_name)


def _failing_commit(orig):
    def commit():
        raise IntegrityError("INSERT INTO notifications", {}, orig)

    return commit


def test_foreign_key_violation_is_not_a_duplicate(db, user, make_topic, monkeypatch):
    topic = make_topic()
    monkeypatch.setattr(db, "commit", _failing_commit(Exception("FOREIGN KEY constraint failed")))

    with pytest.raises(DependencyFailure):
        create_notification(db, user.id, "Review Due", "now", topic_id=topic.id)


def test_named_constraint_decides_duplicate(db, user, make_topic, monkeypatch):
    topic = make_topic()

    monkeypatch.setattr(db, "commit", _failing_commit(_ConstraintViolation("notifications_topic_id_fkey")))
    with pytest.raises(DependencyFailure):
        create_notification(db, user.id, "Review Due", "now", topic_id=topic.id)

    monkeypatch.setattr(db, "commit", _failing_commit(_ConstraintViolation("uq_notifications_unread_topic")))
    with pytest.raises(DuplicateNotification):
        create_notification(db, user.id, "Review Due", "now", topic_id=topic.id)
