"""Editor configuration (pydantic-settings) and logger factory.

Values come from process environment variables first, then from the first
matching dotenv file in the working directory (``.env``, ``.env.local``, then
one per environment name). Everything is read once and cached; tests mutate
``os.environ`` and call ``load_settings.cache_clear()``.

| Field            | Variable                      | Default               |
|------------------|-------------------------------|-----------------------|
| environment      | ``MAILBLOCKS_ENV``            | ``dev``               |
| log_level        | ``LOG_LEVEL``                 | ``INFO``              |
| document_dir     | ``MAILBLOCKS_DOCUMENT_DIR``   | ``artifacts/documents`` |
| delete_policy    | ``MAILBLOCKS_DELETE_POLICY``  | ``orphan``            |
| autosave_delay   | ``MAILBLOCKS_AUTOSAVE_DELAY`` | ``3.0``               |
| validate_on_load | ``MAILBLOCKS_VALIDATE_ON_LOAD`` | ``true``            |
"""

from __future__ import annotations

import logging
import os
from functools import lru_cache
from pathlib import Path
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

EnvName = Literal["dev", "test", "prod"]
LogLevelName = Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
DeletePolicyName = Literal["orphan", "cascade"]

_ENV_FILES = (".env", ".env.local", ".env.dev", ".env.test", ".env.prod")
_LOG_FORMAT = "%(asctime)s | %(levelname)s | %(name)s | %(message)s"


class Settings(BaseSettings):
    """Typed editor configuration.

    Attributes
    ----------
    environment : EnvName
        Deployment flavour; the API reports it on ``/health``.
    log_level : LogLevelName
        Level applied to every logger built by :func:`get_logger`.
    document_dir : Path
        Where :class:`~mailblocks.core.store.storage.JsonFileRepository`
        keeps one JSON file per template.
    delete_policy : DeletePolicyName
        ``"orphan"`` leaves the descendants of a deleted block in the map;
        ``"cascade"`` removes them as well.
    autosave_delay : float
        Seconds without edits before the debounced saver writes.
    validate_on_load : bool
        Check each block payload against its schema when reading from disk.
    """

    model_config = SettingsConfigDict(
        env_file=_ENV_FILES,
        env_file_encoding="utf-8",
        extra="ignore",
    )

    environment: EnvName = Field(default="dev", alias="MAILBLOCKS_ENV")
    log_level: LogLevelName = Field(default="INFO", alias="LOG_LEVEL")
    document_dir: Path = Field(
        default=Path("artifacts") / "documents", alias="MAILBLOCKS_DOCUMENT_DIR"
    )
    delete_policy: DeletePolicyName = Field(default="orphan", alias="MAILBLOCKS_DELETE_POLICY")
    autosave_delay: float = Field(default=3.0, ge=0.0, alias="MAILBLOCKS_AUTOSAVE_DELAY")
    validate_on_load: bool = Field(default=True, alias="MAILBLOCKS_VALIDATE_ON_LOAD")

    @property
    def is_dev(self) -> bool:
        return self.environment == "dev"

    @property
    def is_test(self) -> bool:
        return self.environment == "test"

    @property
    def is_prod(self) -> bool:
        return self.environment == "prod"

    def log_level_numeric(self) -> int:
        """``logging`` constant for :attr:`log_level`."""
        return logging.getLevelName(self.log_level)  # type: ignore[no-any-return]


@lru_cache(maxsize=1)
def load_settings() -> Settings:
    """Build the settings once per process (or per ``cache_clear()``)."""
    os.environ.setdefault("MAILBLOCKS_ENV", "dev")
    return Settings()


#: Import-time snapshot for modules that only need a quick read.
settings: Settings = load_settings()


def get_logger(name: str = "mailblocks") -> logging.Logger:
    """Named logger with one stream handler, at the configured level.

    Records are not propagated to the root logger, so importing the package
    never changes how a host application's logging is set up.
    """
    logger = logging.getLogger(name)
    if not any(isinstance(h, logging.StreamHandler) for h in logger.handlers):
        stream = logging.StreamHandler()
        stream.setFormatter(logging.Formatter(_LOG_FORMAT))
        logger.addHandler(stream)
    logger.propagate = False
    logger.setLevel(load_settings().log_level_numeric())
    return logger


__all__ = ["Settings", "get_logger", "load_settings", "settings"]
