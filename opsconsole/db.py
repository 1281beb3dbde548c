import logging

from sqlalchemy import create_engine, text
from sqlalchemy.orm import sessionmaker, declarative_base
from sqlalchemy.pool import QueuePool, StaticPool
from sqlalchemy.exc import SQLAlchemyError

logger = logging.getLogger(__name__)

Base = declarative_base()


def normalize_database_url(database_url):
    """Map Supabase/Heroku style URLs onto the psycopg2 dialect."""
    if not database_url:
        return "sqlite:///./local.db"

    # Fix postgres:// to postgresql://
    if database_url.startswith("postgres://"):
        database_url = database_url.replace("postgres://", "postgresql://", 1)

    # Fix psycopg2 dialect
    if database_url.startswith("postgresql://"):
        database_url = database_url.replace("postgresql://", "postgresql+psycopg2://", 1)

    return database_url


# ============================================
# ENGINE CONFIGURATION
# ============================================
def make_engine(database_url=None, echo=False):
    """
    Build an engine for the backing store.

    SQLite is used for local development and tests (":memory:" shares one
    connection through StaticPool so every session sees the same tables).
    PostgreSQL gets a small pool sized for the hosted free tier.
    """
    database_url = normalize_database_url(database_url)

    if database_url.startswith("sqlite"):
        if ":memory:" in database_url or database_url == "sqlite://":
            return create_engine(
                database_url,
                connect_args={"check_same_thread": False},
                poolclass=StaticPool,
                future=True,
                echo=echo,
            )
        return create_engine(
            database_url,
            connect_args={"check_same_thread": False},
            future=True,
            echo=echo,
        )

    return create_engine(
        database_url,
        poolclass=QueuePool,
        pool_size=2,          # Very small pool for free tier
        max_overflow=1,
        pool_timeout=30,
        pool_recycle=300,
        pool_pre_ping=True,
        connect_args={
            "connect_timeout": 10,
            "options": "-c statement_timeout=30000",  # 30 second query timeout
            "keepalives": 1,
            "keepalives_idle": 30,
            "keepalives_interval": 10,
            "keepalives_count": 5,
        },
        future=True,
        echo=echo,
    )


# ============================================
# SESSION CONFIGURATION
# ============================================
def make_session_factory(engine):
    return sessionmaker(
        autocommit=False,
        autoflush=False,
        bind=engine,
        future=True,
        expire_on_commit=False  # Important: prevents detached instance errors
    )


def init_db(engine):
    """Create tables for every registered model (SQLite/local only)."""
    # Import models so SQLAlchemy knows about them
    from opsconsole import models  # noqa: F401

    Base.metadata.create_all(bind=engine, checkfirst=True)
    logger.info("Database tables initialized")


def check_connection(engine):
    """Quick DB connection test"""
    try:
        with engine.connect() as conn:
            conn.execute(text("SELECT 1"))
        return True
    except SQLAlchemyError as e:
        logger.error(f"DB connection failed: {e}")
        return False
