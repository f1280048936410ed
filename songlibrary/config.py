import os

from loguru import logger

DEFAULT_PAGE_SIZE = 10


class MissingEnvironmentVariableError(Exception):
    def __init__(self, variable_name: str) -> None:
        super().__init__(f"No {variable_name} environment variable provided")


class Config:
    def __init__(self) -> None:
        self._log_file: str = os.environ.get(
            "LOG_FILE", "/opt/songlibrary/songlibrary.log"
        )
        logger.debug("logfile={}", self._log_file)

        self._database_url: str = os.environ.get("DATABASE_URL", "")
        if not self._database_url:
            raise MissingEnvironmentVariableError("DATABASE_URL")
        logger.debug("DATABASE_URL defined (not shown)")

        self._database_echo: bool = os.environ.get("DATABASE_ECHO", "") == "true"
        logger.debug("database_echo={}", self._database_echo)

    @property
    def log_file(self) -> str:
        return self._log_file

    @property
    def database_url(self) -> str:
        return self._database_url

    @property
    def database_echo(self) -> bool:
        return self._database_echo


_config: Config | None = None


def get_config() -> Config:
    global _config  # noqa: PLW0603
    if not _config:
        _config = Config()
    return _config


def reset_config() -> None:
    global _config  # noqa: PLW0603
    _config = None
