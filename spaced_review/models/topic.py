import enum
from sqlalchemy import Column, Integer, String, Text, Boolean, DateTime, Enum, ForeignKey, Index
from sqlalchemy.orm import relationship
from spaced_review.database import Base
from spaced_review.interval_policy import Difficulty, utcnow

class TopicState(str, enum.Enum):
    NEW = "new"
    COMPLETED = "completed"
    REVIEWED = "reviewed"

class Topic(Base):
    """Spaced repetition tracking per topic"""
    __tablename__ = "topics"
    
    id = Column(Integer, primary_key=True, index=True)
    subject_id = Column(Integer, ForeignKey("subjects.id"), nullable=False, index=True)
    title = Column(String, nullable=False)
    difficulty = Column(Enum(Difficulty, values_callable=lambda e: [m.value for m in e]),
                        nullable=False, default=Difficulty.MEDIUM)
    notes = Column(Text, nullable=False, default="")
    
    # Scheduling fields, mutated only by complete/review
    completed = Column(Boolean, nullable=False, default=False)
    interval_days = Column(Integer, nullable=False, default=0)  # 0 = unset
    last_reviewed = Column(DateTime)
    next_review = Column(DateTime, index=True)
    completed_at = Column(DateTime)
    points = Column(Integer, nullable=False, default=0)  # last completion award, not cumulative
    state = Column(Enum(TopicState, values_callable=lambda e: [m.value for m in e]),
                   nullable=False, default=TopicState.NEW)
    
    created_at = Column(DateTime, default=utcnow)
    
    subject = relationship("Subject", back_populates="topics")
    
    __table_args__ = (Index("ix_topics_subject_completed", "subject_id", "completed"),)
    
    @property
    def difficulty_label(self) -> str:
        return Difficulty(self.difficulty or Difficulty.MEDIUM).value
