import os

from sqlalchemy import create_engine, event
from sqlalchemy.orm import DeclarativeBase, sessionmaker
from sqlalchemy.pool import StaticPool

from .config import settings


class Base(DeclarativeBase):
    """SQLAlchemy Declarative Base."""

    pass


def _connect_args(url: str):
    # For SQLite, disable same-thread check
    return {"check_same_thread": False} if url.startswith("sqlite") else {}


def make_engine(url: str):
    kwargs = dict(connect_args=_connect_args(url), pool_pre_ping=True, future=True, echo=False)
    if not url.startswith("sqlite"):
        kwargs.update(dict(pool_recycle=1800, pool_size=5, max_overflow=10))
    if url.startswith("sqlite") and ":memory:" in url:
        # one shared connection so every session sees the same in-memory db
        kwargs["poolclass"] = StaticPool
    eng = create_engine(url, **kwargs)

    if url.startswith("sqlite") and ":memory:" not in url:

        @event.listens_for(eng, "connect")
        def _sqlite_pragma(dbapi_conn, _):
            cur = dbapi_conn.cursor()
            cur.execute("PRAGMA journal_mode=WAL;")
            cur.close()

    return eng


engine = make_engine(settings.DATABASE_URL)
SessionLocal = sessionmaker(bind=engine, autoflush=False, autocommit=False, future=True)


def init_db(bind=None) -> None:
    """Create the ``transactions`` table (and the sqlite data dir) when missing."""
    from . import orm_models  # noqa: F401  registers tables on Base

    eng = bind or engine
    url = str(eng.url)
    if url.startswith("sqlite:///") and ":memory:" not in url:
        os.makedirs(os.path.dirname(os.path.abspath(url[len("sqlite:///"):])), exist_ok=True)
    Base.metadata.create_all(eng)
