from datetime import datetime
from typing import Any

from flask import Blueprint, Response, current_app, g, jsonify, request

from songlibrary.config import DEFAULT_PAGE_SIZE
from songlibrary.data import Lyrics, NewSong, Song, SongUpdate
from songlibrary.errors import InvalidFieldError
from songlibrary.query import FILTER_COLUMNS
from songlibrary.storage import Storage

songs = Blueprint("songs", __name__)

_REQUIRED_SONG_FIELDS = ("group", "name", "link", "release_date")


def _storage() -> Storage:
    return current_app.config["STORAGE"]


def _song_json(song: Song) -> dict[str, Any]:
    return {
        "id": song.id,
        "group": song.group,
        "name": song.name,
        "link": song.link,
        "release_date": song.release_date.isoformat(),
        "inserted_at": song.inserted_at.isoformat(),
    }


def _lyrics_json(lyrics: Lyrics) -> dict[str, Any]:
    return {"verse_number": lyrics.verse_number, "text": lyrics.text}


def _int_arg(name: str, default: int) -> int:
    value = request.args.get(name)
    if value is None:
        return default
    try:
        return int(value)
    except ValueError:
        raise InvalidFieldError(name, "expected an integer") from None


def _page() -> tuple[int, int]:
    return _int_arg("limit", DEFAULT_PAGE_SIZE), _int_arg("offset", 0)


def _json_body() -> dict[str, Any]:
    body = request.get_json(silent=True)
    if not isinstance(body, dict):
        raise InvalidFieldError("body", "expected a JSON object")
    return body


def _string_field(body: dict[str, Any], name: str) -> str:
    value = body.get(name, "")
    if not isinstance(value, str):
        raise InvalidFieldError(name, "expected a string")
    return value


def _parse_new_song(body: dict[str, Any]) -> tuple[NewSong, list[str]]:
    for name in _REQUIRED_SONG_FIELDS:
        if not _string_field(body, name):
            raise InvalidFieldError(name, "required")

    try:
        release_date = datetime.fromisoformat(body["release_date"])
    except ValueError as error:
        raise InvalidFieldError("release_date", str(error)) from error

    verses = body.get("verses", [])
    if not isinstance(verses, list) or not all(isinstance(v, str) for v in verses):
        raise InvalidFieldError("verses", "expected a list of strings")

    song = NewSong(
        group=body["group"],
        name=body["name"],
        link=body["link"],
        release_date=release_date,
    )
    return song, verses


def _parse_update(body: dict[str, Any]) -> SongUpdate:
    raw_verses = body.get("verses", {})
    if not isinstance(raw_verses, dict):
        raise InvalidFieldError("verses", "expected verse number to text")

    verses = {}
    for verse_number, verse_text in raw_verses.items():
        try:
            number = int(verse_number)
        except ValueError as error:
            raise InvalidFieldError("verses", f"bad verse {verse_number!r}") from error
        if number < 1 or not isinstance(verse_text, str):
            raise InvalidFieldError("verses", f"bad verse {verse_number!r}")
        verses[number] = verse_text

    return SongUpdate(
        group=_string_field(body, "group"),
        name=_string_field(body, "name"),
        link=_string_field(body, "link"),
        release_date=_string_field(body, "release_date"),
        verses=verses,
    )


@songs.route("/songs", methods=["GET"])
def list_songs() -> Response:
    limit, offset = _page()
    filters = {key: request.args[key] for key in FILTER_COLUMNS if key in request.args}
    g.logger.debug("  filters={} limit={} offset={}", filters, limit, offset)
    found = _storage().get_all_songs(filters, limit, offset)
    return jsonify([_song_json(song) for song in found])


@songs.route("/songs/<int:song_id>", methods=["GET"])
def get_song(song_id: int) -> Response:
    return jsonify(_song_json(_storage().get_song(song_id)))


@songs.route("/songs/<int:song_id>/lyrics", methods=["GET"])
def get_lyrics(song_id: int) -> Response:
    storage = _storage()
    storage.get_song(song_id)  # 404 for unknown songs instead of an empty page
    limit, offset = _page()
    verses = storage.get_lyrics(song_id, limit, offset)
    return jsonify([_lyrics_json(verse) for verse in verses])


@songs.route("/songs", methods=["POST"])
def add_song() -> (Response, int):
    song, verses = _parse_new_song(_json_body())
    song_id = _storage().add_song(song, verses)
    g.logger.info("Created song {}", song_id)
    return jsonify({"id": song_id}), 201


@songs.route("/songs/<int:song_id>", methods=["PATCH"])
def update_song(song_id: int) -> (str, int):
    _storage().update_song(song_id, _parse_update(_json_body()))
    return "", 204


@songs.route("/songs/<int:song_id>", methods=["DELETE"])
def delete_song(song_id: int) -> (str, int):
    _storage().delete_song(song_id)
    return "", 204


@songs.route("/health-check")
def health_check() -> str:
    return "success"
