# otp_common/db/session.py
from contextlib import contextmanager
from typing import Generator, Optional

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker, Session
from sqlalchemy.exc import SQLAlchemyError

from otp_common.config import OTP_CONFIG, get_database_url
from otp_common.utils.logging_config import log_operation, log_context

# Import the common db logger
from . import logger

_engine: Optional[Engine] = None
SessionLocal = sessionmaker(autocommit=False, autoflush=False)


def _connect_args(url: str) -> dict:
    timeout = OTP_CONFIG["store_timeout_seconds"]
    if url.startswith("sqlite"):
        return {"check_same_thread": False, "timeout": timeout}
    if url.startswith("postgresql"):
        # Bound every statement so a stalled store cannot hang a request
        return {
            "connect_timeout": timeout,
            "options": f"-c statement_timeout={timeout * 1000}",
        }
    return {}


def build_engine(url: Optional[str] = None) -> Engine:
    """Create an engine with connection pooling settings"""
    url = url or get_database_url()
    kwargs = {
        "pool_pre_ping": True,
        "echo": False,
        "connect_args": _connect_args(url),
    }
    if not url.startswith("sqlite"):
        kwargs.update(
            pool_size=5,
            max_overflow=10,
            pool_timeout=OTP_CONFIG["store_timeout_seconds"],
        )
    return create_engine(url, **kwargs)


def get_engine() -> Engine:
    """Return the process-wide engine, creating it on first use"""
    global _engine
    if _engine is None:
        _engine = build_engine()
        SessionLocal.configure(bind=_engine)
        logger.info("Database engine initialized", extra={
            'dialect': _engine.dialect.name
        })
    return _engine


@log_operation("get_db", logger=logger)
def get_db(session_factory: Optional[sessionmaker] = None) -> Session:
    """Get a database session"""
    if session_factory is None:
        get_engine()
        session_factory = SessionLocal
    db = session_factory()
    logger.debug("Created database session", extra={
        'session_id': id(db)
    })
    return db


@contextmanager
def db_session(session_factory: Optional[sessionmaker] = None) -> Generator[Session, None, None]:
    """Session context manager to ensure proper closing"""
    db = get_db(session_factory)
    try:
        with log_context(logger, session_id=id(db)):
            yield db
            db.commit()
            logger.debug("Database session committed")
    except SQLAlchemyError as e:
        db.rollback()
        logger.error("Database error - rolling back", exc_info=True, extra={
            'error_type': type(e).__name__,
            'session_id': id(db)
        })
        raise
    except Exception as e:
        db.rollback()
        logger.error("Unexpected error - rolling back", exc_info=True, extra={
            'error_type': type(e).__name__,
            'session_id': id(db)
        })
        raise
    finally:
        db.close()
        logger.debug("Database session closed", extra={
            'session_id': id(db)
        })


def create_tables(engine: Optional[Engine] = None) -> None:
    """Create the token collection if it does not exist yet"""
    from otp_common.db.models import Base

    Base.metadata.create_all(bind=engine or get_engine())
