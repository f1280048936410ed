from collections.abc import Callable, Generator
from datetime import datetime

import pytest
from flask import Flask
from flask.testing import FlaskClient
from freezegun import freeze_time
from pytest_socket import disable_socket
from sqlalchemy import Engine, create_engine, text
from sqlalchemy.pool import StaticPool

from songlibrary.app import create_app
from songlibrary.config import reset_config
from songlibrary.data import NewSong
from songlibrary.database import configure_engine, create_schema
from songlibrary.storage import SqlStorage


def pytest_runtest_setup() -> None:
    disable_socket()


@pytest.fixture(autouse=True)
def set_time() -> None:
    with freeze_time("2020-01-01"):
        yield


@pytest.fixture(autouse=True)
def set_env(monkeypatch: pytest.MonkeyPatch) -> Generator[None, None, None]:
    monkeypatch.setenv("LOG_FILE", "/dev/null")  # DEBUG logs still written to stdout
    monkeypatch.setenv("DATABASE_URL", "sqlite+pysqlite:///:memory:")
    reset_config()
    yield
    reset_config()


@pytest.fixture
def engine() -> Generator[Engine, None, None]:
    # One shared connection, every session sees the same in-memory database
    database_engine = configure_engine(
        create_engine(
            "sqlite+pysqlite:///:memory:",
            poolclass=StaticPool,
            connect_args={"check_same_thread": False},
        )
    )
    create_schema(database_engine)
    yield database_engine
    database_engine.dispose()


@pytest.fixture
def storage(engine: Engine) -> SqlStorage:
    return SqlStorage(engine)


@pytest.fixture
def new_song() -> NewSong:
    return NewSong(
        group="Muse",
        name="Supermassive Black Hole",
        link="https://www.youtube.com/watch?v=Xsp3_a-PMTw",
        release_date=datetime(2006, 1, 2, 15, 4, 5),  # noqa: DTZ001
    )


@pytest.fixture
def app(storage: SqlStorage) -> Flask:
    flask_app = create_app(storage)
    flask_app.config.update({"TESTING": True})
    return flask_app


@pytest.fixture
def client(app: Flask) -> FlaskClient:
    return app.test_client()


@pytest.fixture
def count_rows(engine: Engine) -> Callable[[str], int]:
    def _count(table: str) -> int:
        with engine.connect() as connection:
            return connection.execute(
                text(f"SELECT COUNT(*) FROM {table}")  # noqa: S608
            ).scalar_one()

    return _count
