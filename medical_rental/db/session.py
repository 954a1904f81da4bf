import os

from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker


def _require_env(name: str) -> str:
    value = os.environ.get(name)
    if not value:
        raise RuntimeError(f"Missing required environment variable: {name}")
    return value


MEDRENT_DB_URL = _require_env("MEDRENT_DB_URL")

_connect_args = {"check_same_thread": False} if MEDRENT_DB_URL.startswith("sqlite") else {}

engine = create_engine(
    MEDRENT_DB_URL,
    pool_pre_ping=True,
    future=True,
    connect_args=_connect_args,
)

SessionLocal = sessionmaker(
    bind=engine,
    autoflush=False,
    autocommit=False,
    expire_on_commit=False,
    future=True,
)
