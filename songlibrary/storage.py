from abc import ABC, abstractmethod
from collections.abc import Mapping
from datetime import UTC, datetime
from typing import Any

from loguru import logger
from sqlalchemy import (
    DateTime,
    Engine,
    Integer,
    Result,
    Row,
    String,
    Text,
    TextClause,
    bindparam,
    text,
)
from sqlalchemy.exc import NoResultFound
from sqlalchemy.orm import Session
from sqlalchemy.sql.expression import TextualSelect

from songlibrary.data import Lyrics, NewSong, Song, SongUpdate
from songlibrary.database import get_engine, get_session, run_in_transaction
from songlibrary.errors import (
    NoFieldsToUpdateError,
    SongNotFoundError,
    VerseNotFoundError,
)
from songlibrary.query import (
    SONG_COLUMNS,
    SongUpdateBuilder,
    Statement,
    check_page,
    song_search_statement,
    verse_statements,
)

_DATE_TYPE = DateTime(timezone=True)
_SONG_RESULT_TYPES = {
    "id": Integer(),
    "group_name": String(),
    "name": String(),
    "link": Text(),
    "release_date": _DATE_TYPE,
    "inserted_at": _DATE_TYPE,
}

_INSERT_SONG = (
    "INSERT INTO songs (group_name, name, link, release_date, inserted_at) "
    "VALUES (:p1, :p2, :p3, :p4, :p5) RETURNING id"
)
_INSERT_VERSE = (
    "INSERT INTO lyrics (song_id, verse_number, text) VALUES (:p1, :p2, :p3)"
)
_SELECT_SONG = f"SELECT {SONG_COLUMNS} FROM songs WHERE id = :p1"  # noqa: S608
_DELETE_SONG = "DELETE FROM songs WHERE id = :p1"
_SELECT_LYRICS = (
    "SELECT song_id, verse_number, text FROM lyrics WHERE song_id = :p1 "
    "ORDER BY verse_number"
)
_SELECT_LYRICS_PAGE = f"{_SELECT_LYRICS} LIMIT :p2 OFFSET :p3"


def _sql(statement: str, params: Mapping[str, Any] | None = None) -> TextClause:
    """Wrap ``statement`` so datetime parameters bind with the column type."""
    clause = text(statement)
    dates = [
        bindparam(name, type_=_DATE_TYPE)
        for name, value in (params or {}).items()
        if isinstance(value, datetime)
    ]
    return clause.bindparams(*dates) if dates else clause


def _song_query(statement: str) -> TextualSelect:
    return text(statement).columns(**_SONG_RESULT_TYPES)


def _to_song(row: Row) -> Song:
    song_id, group, name, link, release_date, inserted_at = row
    return Song(
        id=song_id,
        group=group,
        name=name,
        link=link,
        release_date=release_date,
        inserted_at=inserted_at,
    )


def _one_song(result: Result, song_id: int) -> Song:
    try:
        row = result.one()
    except NoResultFound as error:
        raise SongNotFoundError(song_id) from error
    return _to_song(row)


def _to_lyrics(row: Row) -> Lyrics:
    song_id, verse_number, verse_text = row
    return Lyrics(song_id=song_id, verse_number=verse_number, text=verse_text)


class Storage(ABC):
    @abstractmethod
    def add_song(self, song: NewSong, verses: list[str]) -> int: ...

    @abstractmethod
    def delete_song(self, song_id: int) -> None: ...

    @abstractmethod
    def get_lyrics(self, song_id: int, limit: int, offset: int) -> list[Lyrics]: ...

    @abstractmethod
    def get_song(self, song_id: int) -> Song: ...

    @abstractmethod
    def get_all_songs(
        self, filters: Mapping[str, str], limit: int, offset: int
    ) -> list[Song]: ...

    @abstractmethod
    def get_all_song_lyrics(self, song_id: int) -> list[Lyrics]: ...

    @abstractmethod
    def update_song(self, song_id: int, updates: SongUpdate) -> None: ...


class SqlStorage(Storage):
    """Songs and lyrics stored through parameterized SQL."""

    def __init__(self, engine: Engine | None = None) -> None:
        self._engine = engine

    @property
    def engine(self) -> Engine:
        if not self._engine:
            self._engine = get_engine()
        return self._engine

    def add_song(self, song: NewSong, verses: list[str]) -> int:
        """Insert a song and its verses, numbered from 1, as one unit."""
        logger.info(
            "Adding song {!r} by {!r} with {} verses",
            song.name,
            song.group,
            len(verses),
        )
        song_params = {
            "p1": song.group,
            "p2": song.name,
            "p3": song.link,
            "p4": song.release_date,
            "p5": datetime.now(tz=UTC),
        }

        def insert_song_and_verses(session: Session) -> int:
            song_id = session.execute(
                _sql(_INSERT_SONG, song_params), song_params
            ).scalar_one()
            logger.debug("  inserted song id={}", song_id)
            for verse_number, verse in enumerate(verses, start=1):
                session.execute(
                    text(_INSERT_VERSE),
                    {"p1": song_id, "p2": verse_number, "p3": verse},
                )
            return song_id

        with Session(self.engine) as session:
            return run_in_transaction(session, insert_song_and_verses, "add song")

    def get_song(self, song_id: int) -> Song:
        logger.debug("Fetching song {}", song_id)
        with get_session(self.engine, "get song") as session:
            result = session.execute(_song_query(_SELECT_SONG), {"p1": song_id})
            return _one_song(result, song_id)

    def delete_song(self, song_id: int) -> None:
        logger.info("Deleting song {}", song_id)
        with get_session(self.engine, "delete song") as session:
            result = session.execute(text(_DELETE_SONG), {"p1": song_id})
            if result.rowcount == 0:
                raise SongNotFoundError(song_id)

    def _execute_update(self, statement: Statement) -> int:
        with get_session(self.engine, "update song") as session:
            result = session.execute(
                _sql(statement.sql, statement.params), statement.params
            )
            return result.rowcount

    def update_song(self, song_id: int, updates: SongUpdate) -> None:
        """Apply a sparse patch.

        Song columns are updated with one statement, then every verse is
        updated with its own statement. The two steps are not one transaction,
        a failing verse leaves the verses before it updated.
        """
        if not updates.has_song_fields() and not updates.verses:
            raise NoFieldsToUpdateError

        if updates.has_song_fields():
            statement = SongUpdateBuilder.from_update(updates).build(song_id)
            logger.debug("  {} {}", statement.sql, statement.params)
            if self._execute_update(statement) == 0:
                raise SongNotFoundError(song_id)

        for statement in verse_statements(song_id, updates.verses):
            if self._execute_update(statement) == 0:
                raise VerseNotFoundError(song_id, statement.params["p3"])

        logger.info("Updated song {} ({} verses)", song_id, len(updates.verses))

    def get_lyrics(self, song_id: int, limit: int, offset: int) -> list[Lyrics]:
        check_page(limit, offset)
        with get_session(self.engine, "get lyrics") as session:
            rows = session.execute(
                text(_SELECT_LYRICS_PAGE),
                {"p1": song_id, "p2": limit, "p3": offset},
            )
            return [_to_lyrics(row) for row in rows]

    def get_all_songs(
        self, filters: Mapping[str, str], limit: int, offset: int
    ) -> list[Song]:
        statement = song_search_statement(filters, limit, offset)
        logger.debug("  {} {}", statement.sql, statement.params)
        with get_session(self.engine, "get songs") as session:
            rows = session.execute(_song_query(statement.sql), statement.params)
            return [_to_song(row) for row in rows]

    def get_all_song_lyrics(self, song_id: int) -> list[Lyrics]:
        with get_session(self.engine, "get song lyrics") as session:
            rows = session.execute(text(_SELECT_LYRICS), {"p1": song_id})
            return [_to_lyrics(row) for row in rows]
