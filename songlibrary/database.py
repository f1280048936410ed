from collections.abc import Callable, Generator
from contextlib import contextmanager
from typing import TypeVar

from loguru import logger
from sqlalchemy import (
    DateTime,
    Engine,
    ForeignKey,
    Integer,
    String,
    Text,
    UniqueConstraint,
    create_engine,
    event,
)
from sqlalchemy.orm import DeclarativeBase, Session, mapped_column

from songlibrary.config import get_config
from songlibrary.errors import SongLibraryError, UnexpectedDatabaseError

T = TypeVar("T")

_database_engine = None


def _enable_sqlite_foreign_keys(
    dbapi_connection,  # noqa: ANN001
    _connection_record,  # noqa: ANN001
) -> None:
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys = ON")
    cursor.close()


def configure_engine(engine: Engine) -> Engine:
    """Apply per-connection settings the schema relies on.

    SQLite only enforces ``ON DELETE CASCADE`` with foreign keys switched on.
    """
    if engine.dialect.name == "sqlite":
        event.listen(engine, "connect", _enable_sqlite_foreign_keys)
    return engine


def get_engine() -> Engine:
    global _database_engine  # noqa: PLW0603
    if not _database_engine:
        config = get_config()
        _database_engine = configure_engine(create_engine(config.database_url))
    return _database_engine


@contextmanager
def get_session(
    engine: Engine | None = None, description: str = "database session"
) -> Generator[Session, None, None]:
    with Session(engine or get_engine()) as session:
        try:
            yield session
        except SongLibraryError:
            session.rollback()
            raise
        except Exception as error:
            session.rollback()
            message = f"{description} failed: {error}"
            raise UnexpectedDatabaseError(message) from error
        try:
            session.commit()
        except Exception as error:
            message = f"{description} commit failed: {error}"
            raise UnexpectedDatabaseError(message) from error


def run_in_transaction(
    session: Session, work: Callable[[Session], T], description: str = "transaction"
) -> T:
    """Run ``work`` inside one transaction on ``session``.

    Commits when ``work`` returns. When it raises, the transaction is rolled
    back and the error is raised again; errors that are not already a
    ``SongLibraryError`` are raised as ``UnexpectedDatabaseError``. If the
    rollback fails too, the rollback error is added to the original error as
    a note so neither is lost.
    """
    session.begin()
    try:
        result = work(session)
    except Exception as error:
        logger.warning("Rolling back {}: {}", description, error)
        try:
            session.rollback()
        except Exception as rollback_error:
            logger.exception("Rollback of {} failed", description)
            error.add_note(f"Rollback failed: {rollback_error!r}")
        if isinstance(error, SongLibraryError):
            raise
        raise UnexpectedDatabaseError(f"{description} failed: {error}") from error

    try:
        session.commit()
    except Exception as error:
        message = f"{description} commit failed: {error}"
        raise UnexpectedDatabaseError(message) from error
    return result


class Base(DeclarativeBase):
    pass


class SongRow(Base):
    __tablename__ = "songs"
    # ids are never reused, SQLite needs AUTOINCREMENT for that
    __table_args__ = {"sqlite_autoincrement": True}  # noqa: RUF012

    id = mapped_column(Integer(), primary_key=True, autoincrement=True)
    group_name = mapped_column(String(255), nullable=False)
    name = mapped_column(String(255), nullable=False)
    link = mapped_column(Text(), nullable=False)
    release_date = mapped_column(DateTime(timezone=True), nullable=False)
    inserted_at = mapped_column(DateTime(timezone=True), nullable=False)

    def __repr__(self) -> str:
        return (
            f"SongRow("
            f"{self.id=}, "
            f"{self.group_name=}, "
            f"{self.name=}, "
            f"{self.release_date=}, "
            f"{self.inserted_at=}"
            f")"
        )


class LyricsRow(Base):
    __tablename__ = "lyrics"
    __table_args__ = (UniqueConstraint("song_id", "verse_number"),)

    id = mapped_column(Integer(), primary_key=True, autoincrement=True)
    song_id = mapped_column(
        Integer(), ForeignKey("songs.id", ondelete="CASCADE"), nullable=False
    )
    verse_number = mapped_column(Integer(), nullable=False)
    text = mapped_column(Text(), nullable=False)


def create_schema(engine: Engine | None = None) -> None:
    engine = engine or get_engine()
    logger.info("Creating tables: {}", ", ".join(Base.metadata.tables))
    Base.metadata.create_all(engine)
