from urllib.parse import urlparse
from uuid import uuid4

import flask
import sentry_sdk
from flask import Flask, g
from loguru import logger
from sentry_sdk.types import Event, Hint
from werkzeug.exceptions import HTTPException, NotFound

from songlibrary.config import get_config
from songlibrary.error_handlers import (
    handle_404_not_found,
    handle_generic_errors,
    handle_http_error,
    handle_song_not_found,
    handle_validation_error,
)
from songlibrary.errors import SongNotFoundError, ValidationError
from songlibrary.logsetup import setup_logging
from songlibrary.storage import SqlStorage, Storage


def filter_healthchecks(event: Event, _: Hint) -> Event:
    url_string = event["request"]["url"]
    parsed_url = urlparse(url_string)

    if parsed_url.path == "/health-check":
        return None

    return event


def create_app(storage: Storage | None = None) -> Flask:
    config = get_config()  # Loads environment variables
    setup_logging(config.log_file, sql_echo=config.database_echo)

    sentry_sdk.init(
        sample_rate=0.5,
        traces_sample_rate=0.1,
        before_send_transaction=filter_healthchecks,
    )

    flask_app = flask.Flask(__name__)
    flask_app.config["STORAGE"] = storage or SqlStorage()

    @flask_app.before_request
    def before_request() -> None:
        g.logger = logger.bind(request_id=str(uuid4())[:8])

    from songlibrary.routes.songs import songs

    flask_app.register_blueprint(songs)

    flask_app.register_error_handler(SongNotFoundError, handle_song_not_found)
    flask_app.register_error_handler(ValidationError, handle_validation_error)
    flask_app.register_error_handler(NotFound, handle_404_not_found)
    flask_app.register_error_handler(HTTPException, handle_http_error)
    flask_app.register_error_handler(Exception, handle_generic_errors)

    return flask_app
