# portfolio_api/db.py
from pathlib import Path

from sqlalchemy.engine import Engine
from sqlalchemy.pool import StaticPool
from sqlmodel import Session, SQLModel, create_engine

from portfolio_api import models  # noqa: F401  registers VisitLog before create_all()


def make_engine(database_url: str) -> Engine:
    # SQLite needs this connect arg and a real folder
    connect_args = {"check_same_thread": False} if database_url.startswith("sqlite") else {}
    kwargs = {}
    if database_url in ("sqlite://", "sqlite:///:memory:"):
        # one shared connection, otherwise every session sees an empty db
        kwargs["poolclass"] = StaticPool
    elif database_url.startswith("sqlite:///"):
        Path(database_url[len("sqlite:///"):]).parent.mkdir(parents=True, exist_ok=True)
    return create_engine(database_url, connect_args=connect_args, **kwargs)


def create_db_and_tables(engine: Engine) -> None:
    SQLModel.metadata.create_all(engine)


def session_factory(engine: Engine):
    def _session() -> Session:
        return Session(engine)
    return _session
