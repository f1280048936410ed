"""SQL construction for sparse song updates.

``SongUpdateBuilder`` walks the updatable columns in a fixed order and only
emits an assignment for values that are set. Parameters are numbered
``p1..pN`` in the order they are assigned and the song id is always the last
one, so a built statement can be checked without a database.
"""

from collections.abc import Mapping
from dataclasses import dataclass
from datetime import datetime
from enum import Enum, auto
from typing import Any, Self

from songlibrary.data import SongUpdate
from songlibrary.errors import InvalidFieldError, NoFieldsToUpdateError


class SongColumn(Enum):
    GROUP = "group_name"
    NAME = "name"
    RELEASE_DATE = "release_date"
    LINK = "link"


class BuilderState(Enum):
    EMPTY = auto()
    COLLECTING = auto()
    BUILT = auto()


@dataclass(frozen=True)
class Statement:
    sql: str
    params: dict[str, Any]


def _parse_release_date(value: str) -> datetime:
    try:
        return datetime.fromisoformat(value)
    except ValueError as error:
        raise InvalidFieldError("release_date", str(error)) from error


class SongUpdateBuilder:
    def __init__(self) -> None:
        self._state = BuilderState.EMPTY
        self._clauses: list[str] = []
        self._params: dict[str, Any] = {}

    @property
    def state(self) -> BuilderState:
        return self._state

    @classmethod
    def from_update(cls, update: SongUpdate) -> Self:
        builder = cls()
        builder.assign(SongColumn.GROUP, update.group)
        builder.assign(SongColumn.NAME, update.name)
        if update.release_date:
            builder.assign(
                SongColumn.RELEASE_DATE, _parse_release_date(update.release_date)
            )
        builder.assign(SongColumn.LINK, update.link)
        return builder

    def _next_param(self, value: Any) -> str:  # noqa: ANN401
        name = f"p{len(self._params) + 1}"
        self._params[name] = value
        return name

    def assign(self, column: SongColumn, value: Any) -> Self:  # noqa: ANN401
        if self._state is BuilderState.BUILT:
            msg = "Statement already built"
            raise RuntimeError(msg)
        if not value:
            return self

        param = self._next_param(value)
        self._clauses.append(f"{column.value} = :{param}")
        self._state = BuilderState.COLLECTING
        return self

    def build(self, song_id: int) -> Statement:
        if self._state is BuilderState.BUILT:
            msg = "Statement already built"
            raise RuntimeError(msg)
        if self._state is BuilderState.EMPTY:
            raise NoFieldsToUpdateError

        id_param = self._next_param(song_id)
        sql = f"UPDATE songs SET {', '.join(self._clauses)} WHERE id = :{id_param}"
        self._state = BuilderState.BUILT
        return Statement(sql=sql, params=dict(self._params))


SONG_COLUMNS = "id, group_name, name, link, release_date, inserted_at"

# filter key -> column searched with a case-insensitive substring match
FILTER_COLUMNS = {
    "group": SongColumn.GROUP,
    "name": SongColumn.NAME,
    "link": SongColumn.LINK,
}


def _escape_like(value: str) -> str:
    return value.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


def check_page(limit: int, offset: int) -> None:
    if limit <= 0:
        raise InvalidFieldError("limit", "must be greater than 0")
    if offset < 0:
        raise InvalidFieldError("offset", "must not be negative")


def song_search_statement(
    filters: Mapping[str, str], limit: int, offset: int
) -> Statement:
    check_page(limit, offset)
    conditions = []
    params: dict[str, Any] = {}
    for key, value in filters.items():
        if key not in FILTER_COLUMNS:
            raise InvalidFieldError(key, "unknown filter")
        if not value:
            continue
        param = f"p{len(params) + 1}"
        params[param] = f"%{_escape_like(value.lower())}%"
        column = FILTER_COLUMNS[key].value
        conditions.append(f"LOWER({column}) LIKE :{param} ESCAPE '\\'")

    where = f" WHERE {' AND '.join(conditions)}" if conditions else ""
    limit_param = f"p{len(params) + 1}"
    offset_param = f"p{len(params) + 2}"
    params[limit_param] = limit
    params[offset_param] = offset
    return Statement(
        sql=f"SELECT {SONG_COLUMNS} FROM songs{where} "  # noqa: S608
        f"ORDER BY id LIMIT :{limit_param} OFFSET :{offset_param}",
        params=params,
    )


_VERSE_UPDATE = (
    "UPDATE lyrics SET text = :p1 WHERE song_id = :p2 AND verse_number = :p3"
)


def verse_statements(song_id: int, verses: dict[int, str]) -> list[Statement]:
    return [
        Statement(
            sql=_VERSE_UPDATE,
            params={"p1": text, "p2": song_id, "p3": verse_number},
        )
        for verse_number, text in sorted(verses.items())
    ]
