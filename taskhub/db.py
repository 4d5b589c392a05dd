from collections.abc import Generator

from sqlalchemy import Engine, create_engine, text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from taskhub.config import settings
from taskhub.models.base import Base

def make_engine(url: str) -> Engine:
    # in-memory sqlite only exists on a single shared connection
    if url.startswith("sqlite"):
        return create_engine(url, connect_args={"check_same_thread": False}, poolclass=StaticPool)
    return create_engine(url, pool_pre_ping=True)

engine = make_engine(settings.database_url)
SessionLocal = sessionmaker(bind=engine, autoflush=False, autocommit=False)

def get_db() -> Generator[Session, None, None]:
    with SessionLocal() as db:
        yield db

def init_db(bind: Engine | None = None) -> None:
    # registers every mapped table on Base.metadata
    import taskhub.models  # noqa: F401

    Base.metadata.create_all(bind=bind or engine)

def db_ping() -> bool:
    try:
        with engine.connect() as conn:
            return conn.scalar(text("SELECT 1")) == 1
    except SQLAlchemyError:
        return False
