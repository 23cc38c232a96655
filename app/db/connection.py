import logging
from typing import Dict, Optional

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker

from app.core.config import settings  # centralized settings
from app.db.base_class import Base

logger = logging.getLogger(__name__)

# --- Engine cache, keyed by URL ---
_engines: Dict[str, Engine] = {}


def get_engine(database_url: Optional[str] = None) -> Engine:
    """
    Return a SQLAlchemy engine for ``database_url`` (defaults to settings.DATABASE_URL).
    Engines are created once per URL and reused.
    """
    url = database_url or settings.DATABASE_URL
    if not url:
        logger.critical("DATABASE_URL is not configured. Cannot create engine.")
        raise RuntimeError("Missing DATABASE_URL")

    engine = _engines.get(url)
    if engine is None:
        connect_args = {}
        if url.startswith("sqlite"):
            # Requests are served from a worker thread pool.
            connect_args["check_same_thread"] = False
        logger.info("Creating engine (ending): ...%s", str(url)[-20:])
        engine = create_engine(url, pool_pre_ping=True, connect_args=connect_args)
        _engines[url] = engine
    return engine


def get_session_factory(engine: Optional[Engine] = None) -> sessionmaker:
    return sessionmaker(bind=engine or get_engine(), autoflush=False, autocommit=False, expire_on_commit=False)


def init_db(engine: Optional[Engine] = None) -> None:
    """Create all catalog tables that do not exist yet. Deployments use alembic instead."""
    engine = engine or get_engine()
    Base.metadata.create_all(bind=engine)
    logger.info("Database tables ensured on %s", engine.url.render_as_string(hide_password=True))
