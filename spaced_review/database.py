import logging
from contextlib import contextmanager

from sqlalchemy import create_engine
from sqlalchemy.engine import make_url
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import sessionmaker, declarative_base
from spaced_review.config import settings
from spaced_review.errors import DomainError, DependencyFailure

logger = logging.getLogger(__name__)


def engine_options(database_url: str, timeout: float = None) -> dict:
    """
    Keyword arguments for create_engine bounding every wait on the store.

    Covers connecting, pool checkout, lock waits and statement execution,
    each limited to `timeout` seconds.
    """
    timeout = timeout if timeout is not None else settings.store_timeout_seconds
    backend = make_url(database_url).get_backend_name()
    if backend == "sqlite":
        # sqlite3 busy timeout; also lets the scanner thread share the file
        return {"connect_args": {"timeout": timeout, "check_same_thread": False}}

    connect_args = {"connect_timeout": max(1, int(timeout))}
    if backend == "postgresql":
        ms = int(timeout * 1000)
        connect_args["options"] = f"-c statement_timeout={ms} -c lock_timeout={ms}"
    elif backend == "mysql":
        seconds = max(1, int(timeout))
        connect_args["read_timeout"] = seconds
        connect_args["write_timeout"] = seconds
        connect_args["init_command"] = f"SET SESSION innodb_lock_wait_timeout={seconds}"
    return {"pool_pre_ping": True, "pool_timeout": timeout, "connect_args": connect_args}


def build_engine(database_url: str, timeout: float = None):
    """Create an engine whose waits on the store are bounded by `timeout` seconds"""
    return create_engine(database_url, **engine_options(database_url, timeout))


engine = build_engine(settings.database_url)
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
Base = declarative_base()


def init_db(bind=None):
    """Create all tables"""
    # Import models so they register on Base.metadata
    import spaced_review.models  # noqa: F401
    Base.metadata.create_all(bind=bind or engine)


def reset_db(bind=None):
    """Drop and recreate all tables"""
    import spaced_review.models  # noqa: F401
    Base.metadata.drop_all(bind=bind or engine)
    Base.metadata.create_all(bind=bind or engine)


@contextmanager
def store_errors(db, action: str):
    """Roll back on failure; surface database errors as DependencyFailure"""
    try:
        yield
    except DomainError:
        db.rollback()
        raise
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(f"Store error while trying to {action}: {e}")
        raise DependencyFailure(f"Failed to {action}") from e
