from uuid import uuid4

from flask import Response, jsonify, request
from loguru import logger
from werkzeug.exceptions import HTTPException, NotFound

from songlibrary.errors import SongNotFoundError, ValidationError


def handle_song_not_found(error: SongNotFoundError) -> (Response, int):
    logger.info("Song lookup missed: {}", error)
    return jsonify({"error": str(error)}), 404


def handle_validation_error(error: ValidationError) -> (Response, int):
    logger.info("Rejected request to {}: {}", request.path, error)
    return jsonify({"error": str(error)}), 400


def handle_http_error(error: HTTPException) -> (Response, int):
    logger.info("{} for {}: {}", error.code, request.path, error.description)
    return jsonify({"error": error.description}), error.code


def handle_generic_errors(error: Exception) -> (Response, int):
    error_code = uuid4()
    try:
        error.add_note(f"Error code: {error_code}")
        logger.exception(error)
    except Exception:  # noqa: BLE001
        logger.exception("Unexpected exception while handling generic error")
    finally:
        return (  # noqa: B012
            jsonify({"error": "Internal error", "error_code": str(error_code)[24:]}),
            500,
        )


def handle_404_not_found(_: NotFound) -> (Response, int):
    logger.debug("Unknown page requested: {}", request.path)
    return jsonify({"error": "Not found"}), 404
