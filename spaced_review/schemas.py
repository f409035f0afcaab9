from pydantic import BaseModel, Field
from typing import Dict, List, Optional
from datetime import date, datetime

from spaced_review.interval_policy import Difficulty
from spaced_review.models.reward_event import RewardAction
from spaced_review.models.topic import TopicState

class UserCreate(BaseModel):
    """Schema for creating a learner account"""
    name: str
    email: Optional[str] = None

class SubjectCreate(BaseModel):
    """Schema for creating a subject"""
    title: str
    difficulty: Difficulty = Difficulty.MEDIUM
    daily_hours: float = Field(default=1.0, ge=0)
    start_date: Optional[date] = None
    end_date: Optional[date] = None

class TopicCreate(BaseModel):
    """Schema for creating a topic under a subject"""
    subject_id: int
    title: str
    difficulty: Difficulty = Difficulty.MEDIUM
    notes: str = ""

class TopicUpdate(BaseModel):
    """Generic topic edit; scheduling fields only change through complete/review"""
    title: Optional[str] = None
    difficulty: Optional[Difficulty] = None
    notes: Optional[str] = None

class TopicResponse(BaseModel):
    """Schema for topic response"""
    id: int
    subject_id: int
    title: str
    difficulty: Difficulty
    notes: str
    completed: bool
    interval_days: int
    last_reviewed: Optional[datetime] = None
    next_review: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    points: int
    state: TopicState

    class Config:
        from_attributes = True

class CompleteTopicResponse(BaseModel):
    success: bool = True
    topic: TopicResponse
    points_earned: int
    new_total_points: int

class ReviewTopicResponse(BaseModel):
    success: bool = True
    topic: TopicResponse
    review_points_earned: int
    new_total_points: int

class RewardEventResponse(BaseModel):
    action: RewardAction
    points: int
    description: str
    timestamp: datetime

    class Config:
        from_attributes = True

class RewardTotals(BaseModel):
    """Point total plus ledger-derived stats"""
    current_points: int
    total_points_earned: int  # sum of history; must equal current_points
    total_rewards: int
    counts_by_action: Dict[str, int]
    consistent: bool

class RewardStats(BaseModel):
    topics_completed: int = 0
    topics_reviewed: int = 0
    achievements: int = 0
    streak_bonuses: int = 0

class RewardSummaryResponse(BaseModel):
    """Schema for GET /rewards"""
    success: bool = True
    current_points: int
    total_points_earned: int
    total_rewards: int
    recent_rewards: List[RewardEventResponse]
    rewards_by_action: Dict[str, List[RewardEventResponse]]
    stats: RewardStats

class NotificationResponse(BaseModel):
    id: int
    topic_id: Optional[int] = None
    topic_title: Optional[str] = None
    title: str
    message: str
    read: bool
    created_at: datetime

class NotificationListResponse(BaseModel):
    success: bool = True
    notifications: List[NotificationResponse]
    count: int
    unread_count: int

class MarkReadResponse(BaseModel):
    success: bool = True
    message: str = "Notification marked as read"
    notification: NotificationResponse

class ErrorResponse(BaseModel):
    """Structured failure returned by API-facing operations"""
    success: bool = False
    kind: str
    message: str
