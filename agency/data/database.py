# agency/data/database.py
import uuid
from datetime import datetime, timezone
from functools import lru_cache

from fastapi import Request
from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import declarative_base, sessionmaker
from sqlalchemy.pool import StaticPool

Base = declarative_base()


def new_id() -> str:
    return str(uuid.uuid4())


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def as_utc(value: datetime | None) -> datetime | None:
    """SQLite gubi strefe czasowa, wiec naiwne daty traktujemy jako UTC."""
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def build_engine(url: str) -> Engine:
    if url.startswith("sqlite"):
        # jedna wspolna baza w pamieci dla wszystkich sesji
        return create_engine(
            url,
            connect_args={"check_same_thread": False},
            poolclass=StaticPool,
        )
    return create_engine(url, pool_pre_ping=True)


def build_session_factory(engine: Engine) -> sessionmaker:
    return sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)


@lru_cache(maxsize=None)
def get_session_factory(url: str) -> sessionmaker:
    """Jedna pula na proces workera (taski Celery), tworzona przy pierwszym uzyciu."""
    return build_session_factory(build_engine(url))


def get_db(request: Request):
    session_factory = request.app.state.container.session_factory
    db = session_factory()
    try:
        yield db
    finally:
        db.close()
