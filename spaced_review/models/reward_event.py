import enum
from sqlalchemy import Column, Integer, String, DateTime, Enum, ForeignKey
from sqlalchemy.orm import relationship
from spaced_review.database import Base
from spaced_review.interval_policy import utcnow

class RewardAction(str, enum.Enum):
    TOPIC_COMPLETED = "topic_completed"
    TOPIC_REVIEWED = "topic_reviewed"
    ACHIEVEMENT = "achievement"
    STREAK_BONUS = "streak_bonus"

class RewardEvent(Base):
    """Append-only record of points granted for a learner action"""
    __tablename__ = "reward_events"
    
    id = Column(Integer, primary_key=True, index=True)  # insertion order
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    action = Column(Enum(RewardAction, values_callable=lambda e: [m.value for m in e]), nullable=False)
    points = Column(Integer, nullable=False)
    description = Column(String, nullable=False, default="")
    timestamp = Column(DateTime, nullable=False, default=utcnow)
    
    user = relationship("User", back_populates="reward_events")
