"""Logging for the Glance report mailer.

Everything logs under the ``glance`` logger tree:

- console: rich output, WARNING and above
- ``app.log``: JSON lines at the configured level
- ``smtp.log``: optional protocol transcript (C:/S: lines) at DEBUG

Every handler masks passwords, AUTH payloads and mail addresses before a
record is written.
"""

import json
import logging
import re
from datetime import datetime, timezone
from functools import wraps
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Any, Callable, Dict, List, MutableMapping, Optional, Pattern, Tuple

from rich.logging import RichHandler

from .paths import LOGS_DIR

ROOT_LOGGER = "glance"
SMTP_LOGGER_PREFIX = f"{ROOT_LOGGER}.src.core.email.smtp"

MAX_LOG_BYTES = 5_242_880
LOG_BACKUPS = 5

# Attributes present on every LogRecord; anything else came in through `extra`
_RECORD_ATTRS = set(vars(logging.makeLogRecord({}))) | {"message", "asctime"}


def _ensure_log_dir() -> Path:
    from .errors import FileSystemError

    try:
        LOGS_DIR.mkdir(parents=True, exist_ok=True)
    except OSError as e:
        raise FileSystemError(f"Failed to create log directory: {LOGS_DIR}") from e
    return LOGS_DIR


def _rotating_handler(filename: str) -> RotatingFileHandler:
    return RotatingFileHandler(
        _ensure_log_dir() / filename,
        maxBytes=MAX_LOG_BYTES,
        backupCount=LOG_BACKUPS,
        encoding="utf-8",
    )


## Formatters


class JSONFormatter(logging.Formatter):
    """One JSON object per record; `extra` fields go under "context"."""

    def format(self, record: logging.LogRecord) -> str:
        entry: Dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "line": record.lineno,
            "message": record.getMessage(),
        }

        context = {
            key: value
            for key, value in record.__dict__.items()
            if key not in _RECORD_ATTRS
        }
        # Protocol stage is the first thing anyone searches for
        if "stage" in context:
            entry["stage"] = context.pop("stage")
        if context:
            entry["context"] = context

        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)

        return json.dumps(entry, default=str, ensure_ascii=False)


class TranscriptFormatter(logging.Formatter):
    """Plain ``time [stage] C: ...`` lines for the SMTP transcript."""

    def format(self, record: logging.LogRecord) -> str:
        stamp = datetime.fromtimestamp(record.created).strftime("%H:%M:%S.%f")[:-3]
        stage = getattr(record, "stage", "-")
        return f"{stamp} [{stage}] {record.getMessage()}"


class ContextAdapter(logging.LoggerAdapter):
    """Adds fixed context (e.g. server, account) to every record."""

    def process(
        self, msg: Any, kwargs: MutableMapping[str, Any]
    ) -> tuple[Any, MutableMapping[str, Any]]:
        kwargs["extra"] = {**self.extra, **kwargs.get("extra", {})}
        return msg, kwargs


## Masking


def _mask_address(address: str) -> str:
    local, _, domain = address.partition("@")
    return f"{local[:1]}***@{domain}" if domain else "***"


class SensitiveDataMasker:
    """Masks credentials and mail addresses in log text and extras.

    The server domain of an address is kept; it is usually what matters
    when reading a delivery failure.
    """

    REDACTED = "[REDACTED]"

    # (pattern, replacement) applied in order
    RULES: List[Tuple[Pattern[str], Callable[[re.Match], str]]] = [
        # AUTH PLAIN / AUTH LOGIN with an initial response
        (
            re.compile(r"(?<![-\w])(AUTH\s+(?:PLAIN|LOGIN)\s+)(\S+)", re.IGNORECASE),
            lambda m: m.group(1) + SensitiveDataMasker.REDACTED,
        ),
        (
            re.compile(r'(pass(?:word|wd)?["\']?\s*[:=]\s*["\']?)([^"\'}\s,]+)', re.IGNORECASE),
            lambda m: m.group(1) + SensitiveDataMasker.REDACTED,
        ),
        (
            re.compile(r"[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}"),
            lambda m: _mask_address(m.group(0)),
        ),
    ]

    SENSITIVE_FIELDS = {"password", "passwd", "pwd", "secret", "credential", "authorization"}
    ADDRESS_FIELDS = {"username", "account", "sender", "recipient", "address", "key"}

    def mask_string(self, text: str) -> str:
        if not text or not isinstance(text, str):
            return text

        for pattern, replace in self.RULES:
            text = pattern.sub(replace, text)
        return text

    def mask_value(self, key: str, value: Any) -> Any:
        """Mask one extra field according to its name and type."""
        name = key.lower()

        if name in self.SENSITIVE_FIELDS:
            return self.REDACTED
        if name in self.ADDRESS_FIELDS and isinstance(value, str):
            return _mask_address(value)
        if isinstance(value, str):
            return self.mask_string(value)
        if isinstance(value, dict):
            return {k: self.mask_value(str(k), v) for k, v in value.items()}
        if isinstance(value, (list, tuple)):
            return [self.mask_value(key, item) for item in value]
        return value


class SensitiveDataFilter(logging.Filter):
    """Applies SensitiveDataMasker to the message, its args and extras."""

    def __init__(self):
        super().__init__()
        self.masker = SensitiveDataMasker()

    def filter(self, record: logging.LogRecord) -> bool:
        if record.args:
            record.msg = record.getMessage()
            record.args = None
        if isinstance(record.msg, str):
            record.msg = self.masker.mask_string(record.msg)

        for key, value in list(record.__dict__.items()):
            if key not in _RECORD_ATTRS:
                setattr(record, key, self.masker.mask_value(key, value))

        return True


class LoggerPrefixFilter(logging.Filter):
    """Passes records whose logger name starts with any of the prefixes."""

    def __init__(self, *prefixes: str):
        super().__init__()
        self.prefixes = prefixes

    def filter(self, record: logging.LogRecord) -> bool:
        return record.name.startswith(self.prefixes)


## Log Manager


class LogManager:
    """Owns the handlers on the ``glance`` logger."""

    def __init__(self, log_level: str = "INFO"):
        self.log_level = self._parse_level(log_level)
        self.root_logger = logging.getLogger(ROOT_LOGGER)
        self.root_logger.setLevel(logging.DEBUG)
        self._masking = SensitiveDataFilter()
        self._app_handler: Optional[RotatingFileHandler] = None
        self._transcript_handler: Optional[RotatingFileHandler] = None
        self._setup_handlers()

    @staticmethod
    def _parse_level(level: str) -> int:
        value = logging.getLevelName(str(level).upper())
        if not isinstance(value, int):
            raise ValueError(f"Invalid logging level: {level}")
        return value

    def _setup_handlers(self) -> None:
        from .errors import FileSystemError

        self.root_logger.handlers.clear()

        console = RichHandler(show_time=True, show_path=False, markup=False, rich_tracebacks=True)
        console.setLevel(logging.WARNING)
        console.setFormatter(logging.Formatter("%(message)s", datefmt="[%X]"))
        console.addFilter(self._masking)
        self.root_logger.addHandler(console)

        try:
            self._app_handler = _rotating_handler("app.log")
        except (OSError, FileSystemError) as e:
            # Console logging still works without a writable home directory
            self.root_logger.warning(f"File logging disabled: {e}")
            return

        self._app_handler.setLevel(self.log_level)
        self._app_handler.setFormatter(JSONFormatter())
        self._app_handler.addFilter(self._masking)
        self.root_logger.addHandler(self._app_handler)

    def get_logger(
        self, name: Optional[str] = None, **context
    ) -> logging.Logger | ContextAdapter:
        """Return ``glance.<name>``, wrapped in a ContextAdapter if context is given."""
        logger = logging.getLogger(f"{ROOT_LOGGER}.{name}" if name else ROOT_LOGGER)
        return ContextAdapter(logger, context) if context else logger

    def set_level(self, level: str) -> None:
        """Change the app.log level at runtime."""
        self.log_level = self._parse_level(level)
        if self._app_handler is not None:
            self._app_handler.setLevel(self.log_level)

    def set_smtp_transcript(self, enabled: bool) -> None:
        """Turn the smtp.log protocol transcript on or off.

        The transcript holds every command and reply of every session, masked
        like the other handlers. AUTH LOGIN credentials never reach it.
        """
        from .errors import FileSystemError

        if not enabled:
            if self._transcript_handler is not None:
                self.root_logger.removeHandler(self._transcript_handler)
                self._transcript_handler.close()
                self._transcript_handler = None
            return

        if self._transcript_handler is not None:
            return

        try:
            handler = _rotating_handler("smtp.log")
        except (OSError, FileSystemError) as e:
            self.root_logger.warning(f"SMTP transcript disabled: {e}")
            return

        handler.setLevel(logging.DEBUG)
        handler.setFormatter(TranscriptFormatter())
        handler.addFilter(LoggerPrefixFilter(SMTP_LOGGER_PREFIX))
        handler.addFilter(self._masking)
        self.root_logger.addHandler(handler)
        self._transcript_handler = handler


## Decorators


def async_log_call(func):
    """Log entry, exit and failure of a coroutine with its duration (DEBUG)."""

    @wraps(func)
    async def wrapper(*args, **kwargs):
        logger = logging.getLogger(f"{ROOT_LOGGER}.{func.__module__}")
        name = func.__qualname__
        logger.debug(f"-> {name}")
        start = datetime.now()

        try:
            result = await func(*args, **kwargs)
        except Exception as e:
            elapsed = (datetime.now() - start).total_seconds()
            logger.debug(f"<- {name} failed after {elapsed:.3f}s: {e.__class__.__name__}")
            raise

        elapsed = (datetime.now() - start).total_seconds()
        logger.debug(f"<- {name} ({elapsed:.3f}s)")
        return result

    return wrapper


## Module-level helpers

_log_manager: Optional[LogManager] = None


def init_logging(log_level: str = "INFO") -> LogManager:
    """Create the LogManager on first use and return it."""
    global _log_manager

    if _log_manager is None:
        _log_manager = LogManager(log_level)

    return _log_manager


def configure_logging(settings: Any) -> LogManager:
    """Apply a LoggingConfig (level and SMTP transcript switch)."""
    manager = init_logging()
    manager.set_level(settings.log_level)
    manager.set_smtp_transcript(settings.smtp_transcript)
    return manager


def get_logger(
    name: Optional[str] = None, **context
) -> logging.Logger | ContextAdapter:
    return init_logging().get_logger(name, **context)
