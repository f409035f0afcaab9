from sqlalchemy import Column, Integer, String, Float, Date, DateTime, Enum, ForeignKey, Index
from sqlalchemy.orm import relationship
from spaced_review.database import Base
from spaced_review.interval_policy import Difficulty, utcnow

class Subject(Base):
    """A learner's course of study, owning its topics"""
    __tablename__ = "subjects"
    
    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    title = Column(String, nullable=False)
    difficulty = Column(Enum(Difficulty, values_callable=lambda e: [m.value for m in e]),
                        nullable=False, default=Difficulty.MEDIUM)
    daily_hours = Column(Float, nullable=False, default=1.0)
    start_date = Column(Date)
    end_date = Column(Date)
    created_at = Column(DateTime, default=utcnow)
    
    user = relationship("User", back_populates="subjects")
    topics = relationship("Topic", back_populates="subject", cascade="all, delete-orphan")
    
    __table_args__ = (Index("ix_subjects_user_title", "user_id", "title"),)
