from datetime import datetime

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from spaced_review.crud import create_subject, create_topic, create_user
from spaced_review.database import init_db
from spaced_review.interval_policy import Difficulty
from spaced_review.schemas import SubjectCreate, TopicCreate, UserCreate

NOW = datetime(2026, 3, 10, 9, 0, 0)


@pytest.fixture
def engine():
    """Fresh in-memory database per test"""
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    init_db(bind=engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(bind=engine, autocommit=False, autoflush=False)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def user(db):
    return create_user(db, UserCreate(name="Asha"))


@pytest.fixture
def other_user(db):
    return create_user(db, UserCreate(name="Ben"))


@pytest.fixture
def subject(db, user):
    return create_subject(db, user.id, SubjectCreate(title="Biology"))


@pytest.fixture
def make_topic(db, user, subject):
    """Create a topic in the default subject (or another owned one)"""

    def _make(title="Cell structure", difficulty=Difficulty.MEDIUM, subject_id=None, owner_id=None):
        return create_topic(
            db,
            owner_id or user.id,
            TopicCreate(subject_id=subject_id or subject.id, title=title, difficulty=difficulty),
        )

    return _make
