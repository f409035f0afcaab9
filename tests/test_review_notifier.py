import logging
import time
from datetime import timedelta

from sqlalchemy import delete

from spaced_review import review_notifier
from spaced_review.crud import (
    complete_topic,
    create_subject,
    create_topic,
    list_notifications,
    mark_notification_read,
    review_topic,
)
from spaced_review.errors import DependencyFailure
from spaced_review.interval_policy import Difficulty, IntervalPolicy
from spaced_review.models import Notification, Subject
from spaced_review.review_notifier import ReviewNotifier, run_due_review_scan, run_manual_scan
from spaced_review.schemas import SubjectCreate, TopicCreate

from tests.conftest import NOW


def _complete_days_ago(db, user, make_topic, days, **kwargs):
    topic = make_topic(**kwargs)
    complete_topic(db, topic.id, user.id, now=NOW - timedelta(days=days))
    db.refresh(topic)
    return topic


def test_due_topic_notified_once(db, user, make_topic):
    topic = _complete_days_ago(db, user, make_topic, 10, title="Krebs cycle", difficulty=Difficulty.HARD)
    assert IntervalPolicy.is_due(topic.next_review, NOW)

    summary = run_due_review_scan(db, now=NOW)

    assert summary.completed
    assert summary.due_topics == 1
    assert summary.created == 1
    listing = list_notifications(db, user.id)
    assert listing.count == 1
    notification = listing.notifications[0]
    assert notification.topic_id == topic.id
    assert notification.title == "Review Due: Krebs cycle"
    assert notification.message == (
        'It\'s time to review "Krebs cycle" from "Biology". This will help reinforce your learning!'
    )

    again = run_due_review_scan(db, now=NOW)
    assert again.created == 0
    assert again.skipped_existing == 1
    assert list_notifications(db, user.id).count == 1


def test_marking_read_allows_a_new_notification(db, user, make_topic):
    _complete_days_ago(db, user, make_topic, 10, difficulty=Difficulty.HARD)
    run_due_review_scan(db, now=NOW)
    first = list_notifications(db, user.id).notifications[0]

    mark_notification_read(db, first.id, user.id)
    summary = run_due_review_scan(db, now=NOW + timedelta(hours=1))

    assert summary.created == 1
    listing = list_notifications(db, user.id)
    assert listing.count == 2
    assert listing.unread_count == 1


def test_not_due_and_incomplete_topics_are_ignored(db, user, make_topic):
    _complete_days_ago(db, user, make_topic, 3, title="Fresh", difficulty=Difficulty.EASY)
    reviewed_only = make_topic(title="Reviewed only")
    review_topic(db, reviewed_only.id, user.id, now=NOW - timedelta(days=5))

    summary = run_due_review_scan(db, now=NOW)

    assert summary.completed
    assert summary.due_topics == 0
    assert list_notifications(db, user.id).count == 0


def test_topic_due_later_today_counts(db, user, make_topic):
    # Hard topic completed 7 days ago at 18:00 is due at 18:00 today
    topic = make_topic(difficulty=Difficulty.HARD)
    complete_topic(db, topic.id, user.id, now=NOW.replace(hour=18) - timedelta(days=7))

    summary = run_due_review_scan(db, now=NOW)

    assert summary.created == 1


def test_reviewing_clears_due_state(db, user, make_topic):
    topic = _complete_days_ago(db, user, make_topic, 10, difficulty=Difficulty.HARD)
    review_topic(db, topic.id, user.id, now=NOW)

    summary = run_due_review_scan(db, now=NOW)

    assert summary.due_topics == 0


def test_topics_grouped_per_user(db, user, other_user, make_topic):
    _complete_days_ago(db, user, make_topic, 10, title="Mine", difficulty=Difficulty.HARD)
    their_subject = create_subject(db, other_user.id, SubjectCreate(title="History"))
    theirs = create_topic(db, other_user.id, TopicCreate(subject_id=their_subject.id, title="Theirs"))
    complete_topic(db, theirs.id, other_user.id, now=NOW - timedelta(days=12))

    summary = run_due_review_scan(db, now=NOW)

    assert summary.users == 2
    assert summary.created == 2
    assert [n.title for n in list_notifications(db, other_user.id).notifications] == ["Review Due: Theirs"]


def test_unresolvable_subject_is_skipped(db, user, make_topic, caplog):
    _complete_days_ago(db, user, make_topic, 10, title="Kept", difficulty=Difficulty.HARD)
    orphan_subject = Subject(user_id=user.id, title="Soon gone")
    db.add(orphan_subject)
    db.commit()
    orphan_id = _complete_days_ago(db, user, make_topic, 10, title="Orphan", subject_id=orphan_subject.id).id
    # Bulk delete skips the ORM cascade, leaving the topic dangling
    db.execute(delete(Subject).where(Subject.id == orphan_subject.id))
    db.commit()

    with caplog.at_level(logging.WARNING, logger="spaced_review.review_notifier"):
        summary = run_due_review_scan(db, now=NOW)

    assert summary.completed
    assert summary.skipped_unresolved == 1
    assert summary.created == 1
    assert f"Skipping topic {orphan_id}" in caplog.text


def test_store_failure_ends_run_early(db, monkeypatch, caplog):
    def unavailable(*args, **kwargs):
        raise DependencyFailure("Failed to select due topics")

    monkeypatch.setattr(review_notifier, "get_all_due_topics", unavailable)

    with caplog.at_level(logging.ERROR, logger="spaced_review.review_notifier"):
        summary = run_due_review_scan(db, now=NOW)

    assert summary.completed is False
    assert summary.created == 0
    assert "ended early" in caplog.text


def test_concurrent_scan_race_is_caught_by_store(db, user, make_topic, monkeypatch):
    _complete_days_ago(db, user, make_topic, 10, difficulty=Difficulty.HARD)
    run_due_review_scan(db, now=NOW)

    # Simulate a second scan that passed the existence check before the first inserted
    monkeypatch.setattr(review_notifier, "has_unread_notification", lambda *args: False)
    summary = run_due_review_scan(db, now=NOW)

    assert summary.completed
    assert summary.created == 0
    assert summary.skipped_existing == 1
    assert db.query(Notification).count() == 1


def test_manual_scan_uses_its_own_session(db, user, make_topic, session_factory, monkeypatch):
    _complete_days_ago(db, user, make_topic, 30, difficulty=Difficulty.MEDIUM)
    monkeypatch.setattr(review_notifier, "SessionLocal", session_factory)

    summary = run_manual_scan()

    assert summary.created == 1


def test_notifier_runs_on_a_timer(db, user, make_topic, session_factory):
    _complete_days_ago(db, user, make_topic, 30, difficulty=Difficulty.MEDIUM)
    notifier = ReviewNotifier(interval_seconds=0.05, initial_delay_seconds=0, session_factory=session_factory)

    notifier.start()
    try:
        deadline = time.monotonic() + 5
        while notifier.runs < 2 and time.monotonic() < deadline:
            time.sleep(0.01)
    finally:
        notifier.stop(timeout=5)

    assert notifier.runs >= 2
    assert not notifier.running
    assert db.query(Notification).count() == 1


def test_notifier_defaults_follow_settings(monkeypatch):
    from spaced_review.config import settings

    monkeypatch.setattr(settings, "environment", "development")
    assert ReviewNotifier().interval_seconds == settings.dev_scan_interval_seconds
    monkeypatch.setattr(settings, "environment", "production")
    notifier = ReviewNotifier()
    assert notifier.interval_seconds == 3600
    assert notifier.initial_delay_seconds == 30
