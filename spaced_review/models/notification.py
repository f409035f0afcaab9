from sqlalchemy import Column, Integer, String, Boolean, DateTime, ForeignKey, Index
from sqlalchemy.orm import relationship
from spaced_review.database import Base
from spaced_review.interval_policy import utcnow

class Notification(Base):
    """User-visible notice, e.g. a review coming due"""
    __tablename__ = "notifications"
    
    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    topic_id = Column(Integer, ForeignKey("topics.id"))
    title = Column(String, nullable=False)
    message = Column(String, nullable=False)
    read = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime, nullable=False, default=utcnow)
    
    user = relationship("User", back_populates="notifications")
    topic = relationship("Topic")
    
    __table_args__ = (
        Index("ix_notifications_user_read", "user_id", "read"),
        Index("ix_notifications_user_created", "user_id", "created_at"),
    )

# At most one unread notification per (user, topic)
Index(
    "uq_notifications_unread_topic",
    Notification.user_id,
    Notification.topic_id,
    unique=True,
    sqlite_where=Notification.read.is_(False),
    postgresql_where=Notification.read.is_(False),
)
