from http import HTTPStatus

import pytest
from flask.testing import FlaskClient

from songlibrary.data import NewSong
from songlibrary.storage import SqlStorage

SONG_BODY = {
    "group": "Muse",
    "name": "Supermassive Black Hole",
    "link": "https://www.youtube.com/watch?v=Xsp3_a-PMTw",
    "release_date": "2006-07-16T00:00:00",
    "verses": ["Ooh baby, don't you know I suffer?", "I thought I was a fool"],
}


@pytest.fixture
def song_id(storage: SqlStorage, new_song: NewSong) -> int:
    return storage.add_song(new_song, ["v1", "v2", "v3"])


def test_health_check(client: FlaskClient) -> None:
    r = client.get("/health-check")
    assert r.status_code == HTTPStatus.OK
    assert r.text == "success"


def test_add_song(client: FlaskClient, storage: SqlStorage) -> None:
    r = client.post("/songs", json=SONG_BODY)

    assert r.status_code == HTTPStatus.CREATED
    new_id = r.json["id"]
    assert storage.get_song(new_id).name == "Supermassive Black Hole"
    assert [v.text for v in storage.get_all_song_lyrics(new_id)] == SONG_BODY["verses"]


@pytest.mark.parametrize("missing", ["group", "name", "link", "release_date"])
def test_add_song_missing_field(client: FlaskClient, missing: str) -> None:
    body = {k: v for k, v in SONG_BODY.items() if k != missing}

    r = client.post("/songs", json=body)

    assert r.status_code == HTTPStatus.BAD_REQUEST
    assert missing in r.json["error"]


def test_add_song_bad_release_date(client: FlaskClient) -> None:
    r = client.post("/songs", json={**SONG_BODY, "release_date": "16.07.2006"})
    assert r.status_code == HTTPStatus.BAD_REQUEST


def test_add_song_not_json(client: FlaskClient) -> None:
    r = client.post("/songs", data="nope", content_type="text/plain")
    assert r.status_code == HTTPStatus.BAD_REQUEST


def test_get_song(client: FlaskClient, song_id: int) -> None:
    r = client.get(f"/songs/{song_id}")

    assert r.status_code == HTTPStatus.OK
    assert r.json == {
        "id": song_id,
        "group": "Muse",
        "name": "Supermassive Black Hole",
        "link": "https://www.youtube.com/watch?v=Xsp3_a-PMTw",
        "release_date": "2006-01-02T15:04:05",
        "inserted_at": "2020-01-01T00:00:00",
    }


def test_get_song_not_found(client: FlaskClient) -> None:
    r = client.get("/songs/404")

    assert r.status_code == HTTPStatus.NOT_FOUND
    assert r.json == {"error": "Song 404 not found"}


def test_list_songs(
    client: FlaskClient, storage: SqlStorage, new_song: NewSong
) -> None:
    storage.add_song(new_song, [])
    nude = NewSong("Radiohead", "Nude", "http://n", new_song.release_date)
    storage.add_song(nude, [])

    r = client.get("/songs", query_string={"group": "radio"})
    assert r.status_code == HTTPStatus.OK
    assert [s["name"] for s in r.json] == ["Nude"]

    r = client.get("/songs", query_string={"limit": 1, "offset": 1})
    assert [s["id"] for s in r.json] == [2]


def test_list_songs_bad_limit(client: FlaskClient) -> None:
    r = client.get("/songs", query_string={"limit": 0})
    assert r.status_code == HTTPStatus.BAD_REQUEST


def test_list_songs_non_numeric_limit(client: FlaskClient) -> None:
    r = client.get("/songs", query_string={"limit": "abc"})

    assert r.status_code == HTTPStatus.BAD_REQUEST
    assert r.json == {"error": "Invalid limit: expected an integer"}


def test_get_lyrics_non_numeric_offset(client: FlaskClient, song_id: int) -> None:
    r = client.get(f"/songs/{song_id}/lyrics", query_string={"offset": "1.5"})

    assert r.status_code == HTTPStatus.BAD_REQUEST
    assert "offset" in r.json["error"]


def test_get_lyrics(client: FlaskClient, song_id: int) -> None:
    r = client.get(f"/songs/{song_id}/lyrics", query_string={"limit": 2})

    assert r.status_code == HTTPStatus.OK
    assert r.json == [
        {"verse_number": 1, "text": "v1"},
        {"verse_number": 2, "text": "v2"},
    ]


def test_get_lyrics_unknown_song(client: FlaskClient) -> None:
    r = client.get("/songs/7/lyrics")
    assert r.status_code == HTTPStatus.NOT_FOUND


def test_update_song(client: FlaskClient, storage: SqlStorage, song_id: int) -> None:
    r = client.patch(
        f"/songs/{song_id}", json={"group": "X", "verses": {"2": "new text"}}
    )

    assert r.status_code == HTTPStatus.NO_CONTENT
    assert storage.get_song(song_id).group == "X"
    assert [v.text for v in storage.get_all_song_lyrics(song_id)] == [
        "v1",
        "new text",
        "v3",
    ]


def test_update_song_empty_patch(client: FlaskClient, song_id: int) -> None:
    r = client.patch(f"/songs/{song_id}", json={})

    assert r.status_code == HTTPStatus.BAD_REQUEST
    assert r.json == {"error": "No valid fields to update"}


def test_update_song_bad_verse_number(client: FlaskClient, song_id: int) -> None:
    r = client.patch(f"/songs/{song_id}", json={"verses": {"first": "text"}})
    assert r.status_code == HTTPStatus.BAD_REQUEST


def test_update_missing_song(client: FlaskClient) -> None:
    r = client.patch("/songs/5", json={"name": "X"})
    assert r.status_code == HTTPStatus.NOT_FOUND


def test_delete_song(client: FlaskClient, song_id: int) -> None:
    r = client.delete(f"/songs/{song_id}")
    assert r.status_code == HTTPStatus.NO_CONTENT

    r = client.delete(f"/songs/{song_id}")
    assert r.status_code == HTTPStatus.NOT_FOUND


def test_unknown_route(client: FlaskClient) -> None:
    r = client.get("/albums")
    assert r.status_code == HTTPStatus.NOT_FOUND
    assert r.json == {"error": "Not found"}


def test_method_not_allowed(client: FlaskClient) -> None:
    r = client.put("/songs")
    assert r.status_code == HTTPStatus.METHOD_NOT_ALLOWED


def test_unexpected_error(
    client: FlaskClient, storage: SqlStorage, monkeypatch: pytest.MonkeyPatch
) -> None:
    def broken(*_: object) -> None:
        msg = "boom"
        raise RuntimeError(msg)

    monkeypatch.setattr(storage, "get_song", broken)

    r = client.get("/songs/1")

    assert r.status_code == HTTPStatus.INTERNAL_SERVER_ERROR
    assert r.json["error"] == "Internal error"
    assert len(r.json["error_code"]) == 12  # noqa: PLR2004
