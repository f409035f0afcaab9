from sqlalchemy.orm import Session
from spaced_review.database import store_errors
from spaced_review.errors import NotFound, ValidationError
from spaced_review.models import User
from spaced_review.schemas import UserCreate
from typing import Optional

def create_user(db: Session, user: UserCreate) -> User:
    """Create a new learner account"""
    if not user.name or not user.name.strip():
        raise ValidationError("name is required")
    db_user = User(name=user.name.strip(), email=user.email, points=0)
    with store_errors(db, "create user"):
        db.add(db_user)
        db.commit()
        db.refresh(db_user)
    return db_user

def get_user(db: Session, user_id: int) -> Optional[User]:
    """Get user by ID"""
    with store_errors(db, "load user"):
        return db.query(User).filter(User.id == user_id).first()

def require_user(db: Session, user_id: int) -> User:
    """Get user by ID or raise NotFound"""
    user = get_user(db, user_id)
    if user is None:
        raise NotFound("User", user_id)
    return user
