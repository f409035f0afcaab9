from sqlalchemy import Column, Integer, String, DateTime
from sqlalchemy.orm import relationship
from spaced_review.database import Base
from spaced_review.interval_policy import utcnow

class User(Base):
    """Learner account with a cached point total"""
    __tablename__ = "users"
    
    id = Column(Integer, primary_key=True, index=True)
    name = Column(String, nullable=False)
    email = Column(String, unique=True)
    points = Column(Integer, nullable=False, default=0)  # sum of reward_events.points
    created_at = Column(DateTime, default=utcnow)
    
    subjects = relationship("Subject", back_populates="user")
    reward_events = relationship("RewardEvent", back_populates="user", order_by="RewardEvent.id")
    notifications = relationship("Notification", back_populates="user")
