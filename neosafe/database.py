"""Database engine and session handling."""
from sqlalchemy import create_engine
from sqlalchemy.orm import declarative_base, sessionmaker

from neosafe.config import settings


def make_engine(url: str):
    """Create an engine, allowing SQLite connections to cross threads."""
    connect_args = {}
    if url.startswith("sqlite"):
        connect_args = {"check_same_thread": False, "timeout": 30}
    return create_engine(url, connect_args=connect_args)


engine = make_engine(settings.DATABASE_URL)
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

Base = declarative_base()
# Sensor readings live in their own store, possibly on another engine
TelemetryBase = declarative_base()


def get_db():
    """Yield a database session for the duration of a request."""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
