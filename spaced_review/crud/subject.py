from sqlalchemy.orm import Session
from spaced_review.database import store_errors
from spaced_review.errors import NotFound, Forbidden, ValidationError
from spaced_review.models import Subject
from spaced_review.schemas import SubjectCreate
from typing import List

def create_subject(db: Session, user_id: int, subject: SubjectCreate) -> Subject:
    """Create a subject linked to the given user"""
    if not subject.title or not subject.title.strip():
        raise ValidationError("Title is required")
    db_subject = Subject(user_id=user_id, **subject.model_dump(exclude={"title"}), title=subject.title.strip())
    with store_errors(db, "create subject"):
        db.add(db_subject)
        db.commit()
        db.refresh(db_subject)
    return db_subject

def get_subjects(db: Session, user_id: int) -> List[Subject]:
    """Get all subjects for a user, newest first"""
    with store_errors(db, "list subjects"):
        return db.query(Subject).filter(
            Subject.user_id == user_id
        ).order_by(Subject.created_at.desc(), Subject.id.desc()).all()

def ensure_subject_ownership(db: Session, subject_id: int, user_id: int) -> Subject:
    """Return the subject if it exists and belongs to the user"""
    with store_errors(db, "load subject"):
        subject = db.query(Subject).filter(Subject.id == subject_id).first()
    if subject is None:
        raise NotFound("Subject", subject_id)
    if subject.user_id != user_id:
        raise Forbidden()
    return subject
