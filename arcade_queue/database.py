"""
Database Configuration and Session Management

SQLAlchemy setup for the record store. Request handlers get a session per
request through get_db(); the reset scheduler opens its own sessions from
SessionLocal because its timers run outside any request.
"""
from sqlalchemy import create_engine, event
from sqlalchemy.ext.declarative import declarative_base
from sqlalchemy.orm import sessionmaker, Session
from arcade_queue.config import get_settings
import logging

logger = logging.getLogger(__name__)

settings = get_settings()

_is_sqlite = settings.DATABASE_URL.startswith("sqlite")

# SQLite connections are shared between the request threadpool and the
# scheduler's timer threads, so thread checks are disabled there.
if _is_sqlite:
    engine = create_engine(
        settings.DATABASE_URL,
        connect_args={"check_same_thread": False},
        echo=settings.DEBUG,
    )
else:
    engine = create_engine(
        settings.DATABASE_URL,
        pool_size=settings.DATABASE_POOL_SIZE,
        max_overflow=settings.DATABASE_MAX_OVERFLOW,
        pool_pre_ping=True,  # Verify connections before using (handles stale connections)
        echo=settings.DEBUG,  # Log SQL in debug mode
    )

# expire_on_commit=False: services read row attributes after commit to build
# their results.
SessionLocal = sessionmaker(
    autocommit=False,
    autoflush=False,
    bind=engine,
    expire_on_commit=False
)

# Base class for all models
Base = declarative_base()


@event.listens_for(engine, "connect")
def configure_connection(dbapi_connection, connection_record):
    """Set connection-level configuration on new connections."""
    cursor = dbapi_connection.cursor()
    if _is_sqlite:
        # History rows cascade with their arcade
        cursor.execute("PRAGMA foreign_keys=ON")
    elif settings.DATABASE_URL.startswith("postgresql"):
        cursor.execute("SET TIME ZONE 'UTC'")
    cursor.close()
    logger.debug("New database connection established")


def get_db() -> Session:
    """
    Dependency function that provides a database session.

    The session is closed after the request completes. Commits happen inside
    RecordStore.transaction(), never here.
    """
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def init_db():
    """
    Create all tables.

    Idempotent; used at startup in development and by the test suite.
    """
    # Import models so they register on Base.metadata
    import arcade_queue.models  # noqa: F401

    logger.info("Creating database tables")
    Base.metadata.create_all(bind=engine)
