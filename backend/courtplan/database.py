import logging
from pathlib import Path
from typing import Generator

from sqlalchemy import event
from sqlalchemy.engine import Engine
from sqlmodel import Session, SQLModel, create_engine

from courtplan.config import DATABASE_URL, SQL_ECHO

logger = logging.getLogger(__name__)

_is_sqlite = DATABASE_URL.startswith("sqlite")
_connect_args = {"check_same_thread": False} if _is_sqlite else {}

if _is_sqlite and ":memory:" not in DATABASE_URL:
    db_path = DATABASE_URL.replace("sqlite:///", "", 1)
    Path(db_path).parent.mkdir(parents=True, exist_ok=True)

engine: Engine = create_engine(
    DATABASE_URL,
    echo=SQL_ECHO,
    connect_args=_connect_args,
)

if _is_sqlite:
    # Block handoffs and encounter source edges are foreign keys; SQLite ignores them unless asked
    @event.listens_for(engine, "connect")
    def _enable_sqlite_foreign_keys(dbapi_connection, connection_record):
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()


def get_session() -> Generator[Session, None, None]:
    """Request-scoped session for route dependencies"""
    with Session(engine) as session:
        yield session


def init_db() -> None:
    """Create every courtplan table that does not exist yet"""
    # Registers all tables with SQLModel metadata
    import courtplan.models  # noqa: F401

    SQLModel.metadata.create_all(engine)
    logger.info("Database ready (%s)", "sqlite" if _is_sqlite else engine.dialect.name)
