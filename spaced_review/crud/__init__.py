from spaced_review.crud.user import create_user, get_user, require_user
from spaced_review.crud.subject import create_subject, get_subjects, ensure_subject_ownership
from spaced_review.crud.topic import (
    TransitionResult,
    create_topic,
    get_topics_by_subject,
    get_owned_topic,
    update_topic,
    complete_topic,
    review_topic,
    get_all_due_topics,
    get_due_topics
)
from spaced_review.crud.rewards import (
    append_reward,
    get_reward_totals,
    get_recent_rewards,
    reconcile_user_points,
    reconcile_all
)
from spaced_review.crud.notification import (
    NotificationListing,
    create_notification,
    has_unread_notification,
    list_notifications,
    mark_notification_read
)

__all__ = [
    "create_user",
    "get_user",
    "require_user",
    "create_subject",
    "get_subjects",
    "ensure_subject_ownership",
    "TransitionResult",
    "create_topic",
    "get_topics_by_subject",
    "get_owned_topic",
    "update_topic",
    "complete_topic",
    "review_topic",
    "get_all_due_topics",
    "get_due_topics",
    "append_reward",
    "get_reward_totals",
    "get_recent_rewards",
    "reconcile_user_points",
    "reconcile_all",
    "NotificationListing",
    "create_notification",
    "has_unread_notification",
    "list_notifications",
    "mark_notification_read",
]
