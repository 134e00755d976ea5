"""Logging setup for the Quotewise console app.

Log records go to a rotating file; the terminal belongs to the chat loop, so
a stderr handler is only attached when ``log_to_console`` is enabled.
"""

from __future__ import annotations

import logging
import logging.handlers
import os
from dataclasses import dataclass, replace
from pathlib import Path
from typing import TYPE_CHECKING

if TYPE_CHECKING:  # pragma: no cover
    from ..services.settings import Settings

__all__ = ["LogOptions", "setup_logging", "get_log_path", "LOG_FILE_NAME"]

LOG_FILE_NAME = "quotewise.log"
_DEFAULT_LOG_DIR = Path.home() / ".quotewise" / "logs"
_LOG_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"
_NOISY_LOGGERS: tuple[str, ...] = ("asyncio", "httpx", "httpcore", "openai")
_ACTIVE: LogOptions | None = None
_LOG_PATH: Path | None = None


@dataclass(slots=True, frozen=True)
class LogOptions:
    """Resolved logging configuration for one process."""

    level: int = logging.INFO
    log_dir: Path | None = None
    console: bool = False
    max_bytes: int = 1_000_000
    backup_count: int = 3

    @classmethod
    def from_settings(cls, settings: Settings | None, *, debug: bool = False) -> LogOptions:
        """Build options from persisted settings; ``debug`` forces DEBUG level.

        ``settings`` may be ``None`` while bootstrapping, before the settings
        file has been read.
        """

        if settings is None:
            return cls(level=logging.DEBUG if debug else logging.INFO)
        verbose = debug or settings.debug_logging
        return cls(
            level=logging.DEBUG if verbose else logging.INFO,
            log_dir=Path(settings.log_dir).expanduser() if settings.log_dir else None,
            console=settings.log_to_console,
            max_bytes=max(settings.log_max_bytes, 0),
            backup_count=max(settings.log_backup_count, 0),
        )

    def resolved(self) -> LogOptions:
        """Return a copy whose ``log_dir`` is filled from ``QUOTEWISE_LOG_DIR`` or the default."""

        if self.log_dir is not None:
            return self
        env_override = os.environ.get("QUOTEWISE_LOG_DIR")
        return replace(self, log_dir=Path(env_override or _DEFAULT_LOG_DIR).expanduser())


def setup_logging(options: LogOptions | None = None, *, force: bool = False) -> Path:
    """Install the root handlers described by ``options`` and return the log path.

    Calling again with equivalent options is a no-op; different options (for
    example after settings turn on debug logging) replace the handlers.
    """

    global _ACTIVE, _LOG_PATH
    target = (options or LogOptions()).resolved()
    if not force and target == _ACTIVE and _LOG_PATH is not None:
        return _LOG_PATH

    log_dir = target.log_dir or _DEFAULT_LOG_DIR
    log_dir.mkdir(parents=True, exist_ok=True)
    log_path = log_dir / LOG_FILE_NAME
    formatter = logging.Formatter(fmt=_LOG_FORMAT, datefmt="%Y-%m-%d %H:%M:%S")

    file_handler = logging.handlers.RotatingFileHandler(
        log_path, maxBytes=target.max_bytes, backupCount=target.backup_count, encoding="utf-8"
    )
    file_handler.setFormatter(formatter)
    handlers: list[logging.Handler] = [file_handler]
    if target.console:
        console_handler = logging.StreamHandler()
        console_handler.setFormatter(formatter)
        handlers.append(console_handler)

    logging.basicConfig(level=target.level, handlers=handlers, force=True)
    logging.captureWarnings(True)
    _quiet_external_loggers(target.level)

    _ACTIVE = target
    _LOG_PATH = log_path
    return log_path


def get_log_path() -> Path | None:
    """Return the currently configured log file if available."""

    return _LOG_PATH


def _quiet_external_loggers(root_level: int) -> None:
    quiet_level = max(root_level, logging.WARNING)
    for logger_name in _NOISY_LOGGERS:
        logging.getLogger(logger_name).setLevel(quiet_level)
