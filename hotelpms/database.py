"""
Database configuration - SQLAlchemy engine and session factory backing the record store
"""
from sqlalchemy import create_engine, text
from sqlalchemy.orm import sessionmaker, declarative_base

from hotelpms.config import settings


def _connect_args(url: str) -> dict:
    return {"check_same_thread": False} if url.startswith("sqlite") else {}


engine = create_engine(
    settings.DATABASE_URL,
    connect_args=_connect_args(settings.DATABASE_URL)
)

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

Base = declarative_base()


def init_db(bind=None):
    """Create the tables of the five collections"""
    from hotelpms.models import ontology  # noqa
    bind = bind or engine
    Base.metadata.create_all(bind=bind)

    if bind.url.get_backend_name() == "sqlite" and bind.url.database not in (None, "", ":memory:"):
        # WAL keeps readers from blocking the writer
        with bind.connect() as conn:
            conn.execute(text("PRAGMA journal_mode=WAL"))
            conn.execute(text("PRAGMA synchronous=NORMAL"))
            conn.commit()
