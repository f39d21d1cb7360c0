"""EdgegramLogger — Singleton JSON logger for the SDK and the dispatcher.

Every record is written as one line of JSON to stdout.  A rotating file
handler is attached only when ``LOG_DIR`` is set, since serverless edge
runtimes usually have no writable disk.
"""

import json
import logging
import os
from datetime import datetime, timezone
from logging.handlers import RotatingFileHandler
from typing import Optional


class _JsonFormatter(logging.Formatter):
    """Format every log record as a single-line JSON object.

    Standard fields (timestamp, level, logger, message, module, func_name)
    are always present.  Keys passed through ``extra`` are merged into the
    object, so callers attach dispatch context directly::

        logger.warning(
            "Handler failed",
            extra={"update_id": 12, "kind": "message", "handler": "on_ping"},
        )

    Produces::

        {"timestamp": "…", "level": "WARNING", …, "update_id": 12, "kind": "message", …}

    When the record carries exception info the formatted traceback is
    stored under ``exc_info``.
    """

    # Keys that belong to the standard LogRecord; everything else is extra.
    _BUILTIN_ATTRS: frozenset[str] = frozenset(vars(logging.LogRecord(
        name="", level=0, pathname="", lineno=0, msg="", args=(), exc_info=None,
    ))) | {"message", "asctime"}

    def format(self, record: logging.LogRecord) -> str:
        """Serialize *record* to a JSON string."""
        log_entry: dict = {
            "timestamp": datetime.fromtimestamp(
                record.created, tz=timezone.utc
            ).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "module": record.module,
            "func_name": record.funcName,
        }

        for key, value in record.__dict__.items():
            if key not in self._BUILTIN_ATTRS and key not in log_entry:
                log_entry[key] = value

        if record.exc_info:
            log_entry["exc_info"] = self.formatException(record.exc_info)

        return json.dumps(log_entry, ensure_ascii=False, default=str)


class EdgegramLogger:
    """Singleton logger with a console handler and an optional file handler.

    Usage::

        from core.logger import EdgegramLogger

        logger = EdgegramLogger.get_logger()
        logger.info("Dispatcher ready")
    """

    _instance: Optional["EdgegramLogger"] = None
    _logger: Optional[logging.Logger] = None

    _LOGGER_NAME: str = "edgegram"
    _LOG_FILE: str = "edgegram.log"
    _MAX_BYTES: int = 5 * 1024 * 1024  # 5 MB
    _BACKUP_COUNT: int = 5

    def __new__(cls, level: int | None = None) -> "EdgegramLogger":
        """Ensure only one instance is ever created (Singleton)."""
        if cls._instance is None:
            cls._instance = super().__new__(cls)
            cls._instance._init_logger(level)
        return cls._instance

    # ------------------------------------------------------------------
    # Initialisation helpers
    # ------------------------------------------------------------------

    @staticmethod
    def _level_from_env() -> int:
        """Read ``LOG_LEVEL`` (name or number), defaulting to INFO."""
        raw = os.environ.get("LOG_LEVEL", "INFO").strip()
        if raw.isdigit():
            return int(raw)
        level = logging.getLevelName(raw.upper())
        return level if isinstance(level, int) else logging.INFO

    def _init_logger(self, level: int | None) -> None:
        """Create the underlying :class:`logging.Logger` and attach handlers."""
        if level is None:
            level = self._level_from_env()

        self._logger = logging.getLogger(self._LOGGER_NAME)
        self._logger.setLevel(level)

        # Avoid duplicate handlers if the module is reloaded.
        if self._logger.handlers:
            return

        formatter = _JsonFormatter()

        stream_handler = logging.StreamHandler()
        stream_handler.setLevel(level)
        stream_handler.setFormatter(formatter)
        self._logger.addHandler(stream_handler)

        log_dir = os.environ.get("LOG_DIR")
        if not log_dir:
            return

        os.makedirs(log_dir, exist_ok=True)
        file_handler = RotatingFileHandler(
            os.path.join(log_dir, self._LOG_FILE),
            maxBytes=self._MAX_BYTES,
            backupCount=self._BACKUP_COUNT,
            encoding="utf-8",
        )
        file_handler.setLevel(level)
        file_handler.setFormatter(formatter)
        self._logger.addHandler(file_handler)

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    @staticmethod
    def get_logger(level: int | None = None) -> logging.Logger:
        """Return the shared :class:`logging.Logger` instance.

        Creates the singleton on first call; subsequent calls return the
        same logger regardless of the *level* argument.
        """
        instance = EdgegramLogger(level)
        assert instance._logger is not None  # guaranteed by __new__
        return instance._logger

    def cleanup(self) -> None:
        """Flush and close all handlers attached to the logger."""
        if self._logger is None:
            return
        for handler in list(self._logger.handlers):
            handler.flush()
            handler.close()
            self._logger.removeHandler(handler)
