import inspect
import logging
import sys

from loguru import logger


class InterceptHandler(logging.Handler):
    def emit(self, record: logging.LogRecord) -> None:
        # Get corresponding Loguru level if it exists.
        try:
            level = logger.level(record.levelname).name
        except ValueError:
            level = record.levelno

        # Find caller from where originated the logged message.
        frame, depth = inspect.currentframe(), 0
        while frame and (depth == 0 or frame.f_code.co_filename == logging.__file__):
            frame = frame.f_back
            depth += 1

        logger.opt(depth=depth, exception=record.exc_info).log(
            level, record.getMessage()
        )


def setup_logging(log_file: str | None = None, *, sql_echo: bool = False) -> None:
    # https://loguru.readthedocs.io/en/stable/api/logger.html#record
    logger.remove()
    logger.configure(extra={"request_id": "-"})
    logging.basicConfig(handlers=[InterceptHandler()], level=0, force=True)
    logger.add(
        sys.stdout,
        colorize=True,
        format="<level>{level: <8}</level> "
        "| <light-blue>{extra[request_id]}</light-blue> "
        "| <yellow>{name}:{line}</yellow> "
        "| <level>{message}</level>",
    )
    if log_file:
        logger.add(
            log_file,
            level=logging.INFO,
            colorize=False,
            rotation="500 MB",
            retention=10,
            format="{time:YYYY-MM-DD HH:mm:ss.SSS} "
            "| {extra[request_id]} "
            "| {level: <8} | {name}:{line} | {message}",
        )

    sqlalchemy_logger = logging.getLogger("sqlalchemy.engine")
    # SQLAlchemy logs statements at INFO
    sqlalchemy_logger.setLevel(logging.INFO if sql_echo else logging.WARNING)
    sqlalchemy_logger.propagate = True
