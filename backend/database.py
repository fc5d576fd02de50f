from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import declarative_base, sessionmaker

from backend.core.config import settings


def _connect_args(database_url: str) -> dict:
    if database_url.startswith("sqlite"):
        return {"check_same_thread": False}
    return {}


def _enable_sqlite_foreign_keys(dbapi_connection, connection_record) -> None:
    # SQLite ignores ON DELETE CASCADE unless foreign keys are switched on per connection.
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


def enable_foreign_keys(bind: Engine) -> None:
    if bind.dialect.name != "sqlite":
        return
    if not event.contains(bind, "connect", _enable_sqlite_foreign_keys):
        event.listen(bind, "connect", _enable_sqlite_foreign_keys)


engine = create_engine(
    settings.database_url,
    connect_args=_connect_args(settings.database_url),
)
enable_foreign_keys(engine)

SessionLocal = sessionmaker(
    autocommit=False,
    autoflush=False,
    bind=engine,
)

Base = declarative_base()


def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def init_db(bind: Engine = engine) -> None:
    # Import models so their tables are registered on Base.metadata.
    from backend.models import todo, user  # noqa: F401

    enable_foreign_keys(bind)
    Base.metadata.create_all(bind=bind)
