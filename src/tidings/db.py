from __future__ import annotations

from contextlib import contextmanager
from functools import lru_cache
from pathlib import Path
from typing import Iterator

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import DeclarativeBase, Session, sessionmaker

from .config import Settings, get_settings


class Base(DeclarativeBase):
    """Base class for the article store tables."""


def _enable_sqlite_foreign_keys(dbapi_connection, connection_record) -> None:
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


@lru_cache(maxsize=8)
def _engine_for_url(db_url: str) -> Engine:
    connect_args = {}
    if db_url.startswith("sqlite"):
        connect_args["check_same_thread"] = False
    engine = create_engine(db_url, future=True, connect_args=connect_args)
    if db_url.startswith("sqlite"):
        event.listen(engine, "connect", _enable_sqlite_foreign_keys)
    return engine


def get_engine(settings: Settings | None = None) -> Engine:
    active_settings = settings or get_settings()
    return _engine_for_url(active_settings.db_url)


@lru_cache(maxsize=8)
def _sessionmaker_for_url(db_url: str) -> sessionmaker[Session]:
    return sessionmaker(
        bind=_engine_for_url(db_url),
        class_=Session,
        autoflush=False,
        expire_on_commit=False,
        future=True,
    )


def get_session_factory(settings: Settings | None = None) -> sessionmaker[Session]:
    active_settings = settings or get_settings()
    return _sessionmaker_for_url(active_settings.db_url)


def _ensure_sqlite_parent(db_url: str) -> None:
    if not db_url.startswith("sqlite:///"):
        return
    path = db_url.removeprefix("sqlite:///")
    if not path or path == ":memory:":
        return
    Path(path).parent.mkdir(parents=True, exist_ok=True)


def init_db(settings: Settings | None = None) -> None:
    active_settings = settings or get_settings()
    _ensure_sqlite_parent(active_settings.db_url)

    from . import models  # noqa: F401

    Base.metadata.create_all(bind=get_engine(active_settings))


@contextmanager
def transaction(factory: sessionmaker[Session]) -> Iterator[Session]:
    session = factory()
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()
