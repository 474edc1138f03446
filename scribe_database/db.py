import os
from typing import Optional

from dotenv import load_dotenv
from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker


class StoreConfigurationError(RuntimeError):
    """Raised when the store cannot be reached because it is not configured."""


_engine: Optional[Engine] = None
_session_factory: Optional[sessionmaker] = None


# PUBLIC_INTERFACE
def get_database_url():
    """
    Retrieves the database URL from the environment variable DATABASE_URL.
    """
    load_dotenv()
    db_url = os.getenv("DATABASE_URL")
    if not db_url:
        raise StoreConfigurationError(
            "DATABASE_URL environment variable not set. "
            "Point it at the notes database and restart the service."
        )
    return db_url


# PUBLIC_INTERFACE
def get_engine() -> Engine:
    """Returns the process-wide engine, creating it on first use."""
    global _engine
    if _engine is None:
        url = get_database_url()
        connect_args = {"check_same_thread": False} if url.startswith("sqlite") else {}
        _engine = create_engine(url, future=True, echo=False, connect_args=connect_args)
    return _engine


# PUBLIC_INTERFACE
def get_session_factory() -> sessionmaker:
    """
    Returns the process-wide session factory.

    Built once and shared by request handlers and the webhook worker; every
    caller acquires its own session from it and closes it when done.
    """
    global _session_factory
    if _session_factory is None:
        _session_factory = sessionmaker(autocommit=False, autoflush=False, bind=get_engine())
    return _session_factory


def reset_engine():
    """Disposes the cached engine so the next call rebuilds it from the environment."""
    global _engine, _session_factory
    if _engine is not None:
        _engine.dispose()
    _engine = None
    _session_factory = None
