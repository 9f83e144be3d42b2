from __future__ import annotations

from typing import Generator

from fastapi import Request
from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

IN_MEMORY_SQLITE_URLS = ("sqlite://", "sqlite+pysqlite://", "sqlite:///:memory:")


def build_engine(database_url: str) -> Engine:
    if database_url in IN_MEMORY_SQLITE_URLS:
        # A single shared connection keeps an in-memory database alive across sessions.
        return create_engine(
            database_url,
            connect_args={"check_same_thread": False},
            poolclass=StaticPool,
            future=True,
        )
    return create_engine(
        database_url,
        pool_pre_ping=True,
        future=True,
    )


def build_session_factory(engine: Engine) -> sessionmaker[Session]:
    return sessionmaker(
        bind=engine,
        autocommit=False,
        autoflush=False,
        expire_on_commit=False,
        future=True,
    )


def get_db(request: Request) -> Generator[Session, None, None]:
    db = request.app.state.context.session_factory()
    try:
        yield db
    finally:
        db.close()
