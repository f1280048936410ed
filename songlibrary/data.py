from dataclasses import dataclass, field
from datetime import datetime


@dataclass(frozen=True)
class NewSong:
    group: str
    name: str
    link: str
    release_date: datetime


@dataclass(frozen=True)
class Song:
    id: int
    group: str
    name: str
    link: str
    release_date: datetime
    inserted_at: datetime


@dataclass(frozen=True)
class Lyrics:
    song_id: int
    verse_number: int
    text: str


@dataclass(frozen=True)
class SongUpdate:
    """Sparse patch for a song, empty values are left unchanged."""

    group: str = ""
    name: str = ""
    link: str = ""
    # ISO 8601, parsed when the update statement is built
    release_date: str = ""
    # verse number -> replacement text
    verses: dict[int, str] = field(default_factory=dict)

    def has_song_fields(self) -> bool:
        return any((self.group, self.name, self.link, self.release_date))
