from spaced_review.models.user import User
from spaced_review.models.subject import Subject
from spaced_review.models.topic import Topic, TopicState
from spaced_review.models.reward_event import RewardEvent, RewardAction
from spaced_review.models.notification import Notification

__all__ = [
    "User",
    "Subject",
    "Topic",
    "TopicState",
    "RewardEvent",
    "RewardAction",
    "Notification"
]
