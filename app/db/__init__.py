import logging
from typing import Any, Dict, Generator

from sqlalchemy.engine import make_url
from sqlalchemy.orm import sessionmaker
from sqlmodel import Session, SQLModel, create_engine

from app.core.config import settings

logger = logging.getLogger(__name__)


def engine_options(url: str) -> Dict[str, Any]:
    """Pool settings for server databases; SQLite gets a thread-shared connection"""
    if make_url(url).get_backend_name() == "sqlite":
        return {"connect_args": {"check_same_thread": False}}
    return {
        "pool_pre_ping": True,
        "pool_size": settings.DB_POOL_SIZE,
        "max_overflow": settings.DB_MAX_OVERFLOW,
    }


engine = create_engine(
    settings.SQLALCHEMY_DATABASE_URI,
    echo=False,
    **engine_options(settings.SQLALCHEMY_DATABASE_URI),
)

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine, class_=Session)


def get_db() -> Generator[Session, None, None]:
    """
    Request-scoped session for FastAPI dependencies.
    The dashboard only reads, so nothing is committed here.
    """
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def init_database() -> None:
    """Create missing tables on startup when DB_AUTO_CREATE is set"""
    if not settings.DB_AUTO_CREATE:
        logger.info("DB_AUTO_CREATE disabled, skipping table creation")
        return

    # Registers every table on SQLModel.metadata
    import app.models  # noqa: F401

    SQLModel.metadata.create_all(bind=engine)
    logger.info("Database tables created/verified on %s", engine.url.get_backend_name())
