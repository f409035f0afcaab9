import logging
from dataclasses import dataclass
from sqlalchemy.orm import Session
from spaced_review.crud.rewards import append_reward
from spaced_review.crud.subject import ensure_subject_ownership
from spaced_review.database import store_errors
from spaced_review.errors import NotFound, ValidationError
from spaced_review.interval_policy import IntervalPolicy, utcnow
from spaced_review.models import Topic, TopicState, Subject, RewardAction
from spaced_review.schemas import TopicCreate, TopicUpdate
from datetime import datetime
from typing import List

logger = logging.getLogger(__name__)

@dataclass
class TransitionResult:
    """Outcome of a complete/review transition"""
    topic: Topic
    points_earned: int
    new_total_points: int

def create_topic(db: Session, user_id: int, topic: TopicCreate) -> Topic:
    """Create a topic under a subject owned by the user"""
    if not topic.title or not topic.title.strip():
        raise ValidationError("title is required")
    ensure_subject_ownership(db, topic.subject_id, user_id)

    db_topic = Topic(
        subject_id=topic.subject_id,
        title=topic.title.strip(),
        difficulty=topic.difficulty,
        notes=topic.notes
    )
    with store_errors(db, "create topic"):
        db.add(db_topic)
        db.commit()
        db.refresh(db_topic)
    return db_topic

def get_topics_by_subject(db: Session, subject_id: int, user_id: int) -> List[Topic]:
    """Get a subject's topics, newest first"""
    ensure_subject_ownership(db, subject_id, user_id)
    with store_errors(db, "list topics"):
        return db.query(Topic).filter(
            Topic.subject_id == subject_id
        ).order_by(Topic.created_at.desc(), Topic.id.desc()).all()

def get_owned_topic(db: Session, topic_id: int, user_id: int) -> Topic:
    """Resolve a topic and check the caller owns its subject"""
    with store_errors(db, "load topic"):
        topic = db.query(Topic).filter(Topic.id == topic_id).first()
    if topic is None:
        raise NotFound("Topic", topic_id)
    ensure_subject_ownership(db, topic.subject_id, user_id)
    return topic

def update_topic(db: Session, topic_id: int, user_id: int, changes: TopicUpdate) -> Topic:
    """Edit title, difficulty or notes"""
    topic = get_owned_topic(db, topic_id, user_id)
    data = changes.model_dump(exclude_unset=True, exclude_none=True)
    if "title" in data:
        if not data["title"].strip():
            raise ValidationError("title is required")
        data["title"] = data["title"].strip()

    with store_errors(db, "update topic"):
        for key, value in data.items():
            setattr(topic, key, value)
        db.commit()
        db.refresh(topic)
    return topic

def _commit_transition(
    db: Session,
    topic: Topic,
    user_id: int,
    action: RewardAction,
    points: int,
    description: str,
    now: datetime
) -> TransitionResult:
    """Persist the topic changes and the ledger append as one unit"""
    with store_errors(db, f"record {action.value}"):
        db.flush()
        _, new_total = append_reward(db, user_id, action, points, description, now)
        db.commit()
        db.refresh(topic)
    return TransitionResult(topic=topic, points_earned=points, new_total_points=new_total)

def complete_topic(db: Session, topic_id: int, user_id: int, now: datetime = None) -> TransitionResult:
    """
    Mark a topic complete and start its review cycle.

    Resets the interval to 1 day, schedules the first review
    `default_interval(difficulty)` days out and awards completion points.
    Not guarded: completing an already-completed topic re-runs every effect.
    """
    now = now or utcnow()
    topic = get_owned_topic(db, topic_id, user_id)
    points = IntervalPolicy.completion_points(topic.difficulty)

    topic.completed = True
    topic.interval_days = 1
    topic.completed_at = now
    topic.next_review = IntervalPolicy.next_review_date(now, IntervalPolicy.default_interval(topic.difficulty))
    topic.last_reviewed = now
    topic.points = points
    topic.state = TopicState.COMPLETED

    result = _commit_transition(
        db, topic, user_id,
        RewardAction.TOPIC_COMPLETED,
        points,
        f"Completed topic: {topic.title} ({topic.difficulty_label})",
        now
    )
    logger.info(f"Topic {topic_id} completed by user {user_id}: +{points} points, next review {topic.next_review}")
    return result

def review_topic(db: Session, topic_id: int, user_id: int, now: datetime = None) -> TransitionResult:
    """
    Record a review: double the interval and push the next review out.

    The topic does not need to be completed; an unset interval grows to 1 day.
    """
    now = now or utcnow()
    topic = get_owned_topic(db, topic_id, user_id)
    points = IntervalPolicy.review_points(topic.difficulty)

    topic.interval_days = IntervalPolicy.grow_interval(topic.interval_days)
    topic.last_reviewed = now
    topic.next_review = IntervalPolicy.next_review_date(now, topic.interval_days)
    topic.state = TopicState.REVIEWED

    result = _commit_transition(
        db, topic, user_id,
        RewardAction.TOPIC_REVIEWED,
        points,
        f"Reviewed topic: {topic.title} ({topic.difficulty_label})",
        now
    )
    logger.info(f"Topic {topic_id} reviewed by user {user_id}: interval {topic.interval_days}d, +{points} points")
    return result

def get_all_due_topics(db: Session, now: datetime = None) -> List[Topic]:
    """All completed topics whose next review falls on or before today"""
    cutoff = IntervalPolicy.due_cutoff(now or utcnow())
    with store_errors(db, "select due topics"):
        return db.query(Topic).filter(
            Topic.completed.is_(True),
            Topic.next_review.isnot(None),
            Topic.next_review < cutoff
        ).order_by(Topic.next_review.asc(), Topic.id.asc()).all()

def get_due_topics(db: Session, user_id: int, now: datetime = None) -> List[Topic]:
    """Get a user's topics that are due for review"""
    cutoff = IntervalPolicy.due_cutoff(now or utcnow())
    with store_errors(db, "select due topics"):
        return db.query(Topic).join(Subject, Topic.subject_id == Subject.id).filter(
            Subject.user_id == user_id,
            Topic.completed.is_(True),
            Topic.next_review < cutoff
        ).order_by(Topic.next_review.asc(), Topic.id.asc()).all()
