import logging

from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.pool import StaticPool
from sqlmodel import Session, SQLModel, create_engine

from .config import settings

log = logging.getLogger("ownly_push.db")

_DEFAULT_SQLITE_URL = "sqlite:///./ownly_push.db"
_PG_PREFIXES = ("postgres://", "postgresql://")


def database_url_for(raw_url: str | None) -> str:
    """Heroku/Supabase tarzı postgres URL'lerini psycopg3 dialektine çevirir; boşsa yerel SQLite."""
    url = (raw_url or "").strip()
    if not url:
        return _DEFAULT_SQLITE_URL
    for prefix in _PG_PREFIXES:
        if url.startswith(prefix):
            return "postgresql+psycopg://" + url[len(prefix):]
    return url


def _make_engine(url: str):
    if not url.startswith("sqlite"):
        return create_engine(url, pool_pre_ping=True)
    # in-memory SQLite tek bağlantıda tutulur, yoksa her session boş bir veritabanı görür
    pool_kwargs = {"poolclass": StaticPool} if ":memory:" in url else {}
    return create_engine(url, connect_args={"check_same_thread": False}, **pool_kwargs)


DATABASE_URL = database_url_for(settings.database_url)
engine = _make_engine(DATABASE_URL)


def get_db():
    with Session(engine) as session:
        yield session


def init_db():
    """Tabloları oluşturur; şema değişiklikleri alembic revizyonlarıyla yapılır."""
    SQLModel.metadata.create_all(engine)


def ping_db() -> bool:
    try:
        with engine.connect() as conn:
            conn.execute(text("SELECT 1"))
        return True
    except SQLAlchemyError as e:
        log.warning("Database ping failed: %s", e)
        return False
