from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import DeclarativeBase, sessionmaker
from sqlalchemy.pool import StaticPool

from ledger.core.config import settings


class Base(DeclarativeBase):
    pass


def build_engine(database_url: str) -> Engine:
    is_sqlite = database_url.startswith("sqlite")
    if not is_sqlite:
        return create_engine(
            database_url,
            connect_args={"sslmode": "require"},
            pool_pre_ping=True,
            pool_recycle=1800,
        )

    in_memory = database_url in {"sqlite://", "sqlite:///:memory:"}
    sqlite_engine = create_engine(
        database_url,
        connect_args={"check_same_thread": False},
        # An in-memory database only lives as long as its single connection.
        poolclass=StaticPool if in_memory else None,
    )

    # Ledger lines and purchases cascade with their account/user.
    @event.listens_for(sqlite_engine, "connect")
    def _enable_foreign_keys(dbapi_connection, _record) -> None:
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    return sqlite_engine


engine = build_engine(settings.database_url)

SessionLocal = sessionmaker(bind=engine, autoflush=False, autocommit=False)


def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
