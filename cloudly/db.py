# Filename: cloudly/db.py
import logging

from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import SQLModel, create_engine, Session
from .config import settings

logger = logging.getLogger(__name__)

DATABASE_URL = settings.database_url

connect_args = {"check_same_thread": False} if DATABASE_URL.startswith("sqlite") else {}
engine = create_engine(DATABASE_URL, echo=False, connect_args=connect_args)


def init_db() -> None:
    """Create DB tables. Raises if the database is unreachable."""
    # registers the tables on SQLModel.metadata
    from . import models  # noqa: F401

    try:
        SQLModel.metadata.create_all(engine)
    except SQLAlchemyError:
        logger.exception("Database initialisation failed")
        raise
    logger.info("Database connected")


def get_session():
    """Yield a DB session (dependency)."""
    with Session(engine) as session:
        yield session
