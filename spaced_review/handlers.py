"""
Request-level operations behind the exposed surface.

Each handler takes a session and the caller's user id and returns a response
schema, or an ErrorResponse carrying the error kind for domain failures:

    POST /topics/{id}/complete        -> handle_complete_topic
    POST /topics/{id}/review          -> handle_review_topic
    GET  /rewards                     -> handle_get_rewards
    GET  /notifications               -> handle_list_notifications
    POST /notifications/{id}/read     -> handle_mark_notification_read
"""

import logging
from collections import defaultdict
from datetime import datetime
from typing import Union

from sqlalchemy.orm import Session

from spaced_review.config import settings
from spaced_review.crud import (
    complete_topic,
    review_topic,
    get_reward_totals,
    get_recent_rewards,
    list_notifications,
    mark_notification_read,
)
from spaced_review.errors import DomainError
from spaced_review.models import Notification
from spaced_review.schemas import (
    CompleteTopicResponse,
    ReviewTopicResponse,
    RewardSummaryResponse,
    RewardEventResponse,
    RewardStats,
    NotificationResponse,
    NotificationListResponse,
    MarkReadResponse,
    TopicResponse,
    ErrorResponse,
)

logger = logging.getLogger(__name__)


def _failure(error: DomainError) -> ErrorResponse:
    logger.warning(f"{error.kind}: {error.message}")
    return ErrorResponse(kind=error.kind, message=error.message)


def _notification_response(notification: Notification) -> NotificationResponse:
    return NotificationResponse(
        id=notification.id,
        topic_id=notification.topic_id,
        topic_title=notification.topic.title if notification.topic else None,
        title=notification.title,
        message=notification.message,
        read=notification.read,
        created_at=notification.created_at,
    )


def handle_complete_topic(
    db: Session, topic_id: int, user_id: int, now: datetime = None
) -> Union[CompleteTopicResponse, ErrorResponse]:
    try:
        result = complete_topic(db, topic_id, user_id, now=now)
    except DomainError as e:
        return _failure(e)
    return CompleteTopicResponse(
        topic=TopicResponse.model_validate(result.topic),
        points_earned=result.points_earned,
        new_total_points=result.new_total_points,
    )


def handle_review_topic(
    db: Session, topic_id: int, user_id: int, now: datetime = None
) -> Union[ReviewTopicResponse, ErrorResponse]:
    try:
        result = review_topic(db, topic_id, user_id, now=now)
    except DomainError as e:
        return _failure(e)
    return ReviewTopicResponse(
        topic=TopicResponse.model_validate(result.topic),
        review_points_earned=result.points_earned,
        new_total_points=result.new_total_points,
    )


def handle_get_rewards(
    db: Session, user_id: int, limit: int = None
) -> Union[RewardSummaryResponse, ErrorResponse]:
    """Point total, recent history and per-action stats"""
    try:
        totals = get_reward_totals(db, user_id)
        if limit is None:
            limit = settings.recent_rewards_limit
        recent = get_recent_rewards(db, user_id, limit)
    except DomainError as e:
        return _failure(e)

    recent_rewards = [RewardEventResponse.model_validate(event) for event in recent]
    rewards_by_action = defaultdict(list)
    for reward in recent_rewards:
        rewards_by_action[reward.action.value].append(reward)

    counts = totals.counts_by_action
    return RewardSummaryResponse(
        current_points=totals.current_points,
        total_points_earned=totals.total_points_earned,
        total_rewards=totals.total_rewards,
        recent_rewards=recent_rewards,
        rewards_by_action=dict(rewards_by_action),
        stats=RewardStats(
            topics_completed=counts["topic_completed"],
            topics_reviewed=counts["topic_reviewed"],
            achievements=counts["achievement"],
            streak_bonuses=counts["streak_bonus"],
        ),
    )


def handle_list_notifications(
    db: Session, user_id: int
) -> Union[NotificationListResponse, ErrorResponse]:
    try:
        listing = list_notifications(db, user_id)
    except DomainError as e:
        return _failure(e)
    return NotificationListResponse(
        notifications=[_notification_response(n) for n in listing.notifications],
        count=listing.count,
        unread_count=listing.unread_count,
    )


def handle_mark_notification_read(
    db: Session, notification_id: int, user_id: int
) -> Union[MarkReadResponse, ErrorResponse]:
    try:
        notification = mark_notification_read(db, notification_id, user_id)
    except DomainError as e:
        return _failure(e)
    return MarkReadResponse(notification=_notification_response(notification))
