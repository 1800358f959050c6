import threading
from datetime import datetime, timezone

from sqlalchemy import DateTime, create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import DeclarativeBase, Mapped, Session, mapped_column, sessionmaker

from storefront.core.settings import settings


def utcnow() -> datetime:
    return datetime.now(timezone.utc).replace(tzinfo=None)


class Base(DeclarativeBase):
    pass


class TimestampMixin:
    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, onupdate=utcnow, nullable=False)


_engine: Engine | None = None
_session_factory: sessionmaker | None = None
_init_lock = threading.Lock()


def init_engine(url: str | None = None) -> Engine:
    """
    Create the process-wide engine and session factory once.

    Concurrent first callers wait on the same lock and get the same engine.
    """
    global _engine, _session_factory
    if _engine is not None:
        return _engine

    with _init_lock:
        if _engine is None:
            db_url = url or settings.DATABASE_URL
            is_sqlite = db_url.startswith("sqlite")
            engine = create_engine(
                db_url,
                connect_args={"check_same_thread": False} if is_sqlite else {},
                pool_pre_ping=not is_sqlite,
            )
            _session_factory = sessionmaker(bind=engine, autocommit=False, autoflush=False, expire_on_commit=False)
            _engine = engine
    return _engine


def session_factory() -> sessionmaker:
    init_engine()
    assert _session_factory is not None
    return _session_factory


def dispose_engine() -> None:
    global _engine, _session_factory
    with _init_lock:
        if _engine is not None:
            _engine.dispose()
        _engine = None
        _session_factory = None


# FastAPI dependency
def get_db():
    db: Session = session_factory()()
    try:
        yield db
    finally:
        db.close()
