"""
Logging configuration for pixshop.

Logging is configured lazily: library users who never call set_verbosity or
configure_logging get no output unless they set up logging themselves.

Verbosity levels:
- 0 (default): INFO, operations and timings only
- 1 (info): INFO + instruction text sent to the model
- 2 (verbose): DEBUG + instruction text, relay/API URLs, status codes

PIXSHOP_VERBOSITY env (0/1/2) is read by the CLI and the relay server; CLI
flags override it. Records passing through the pixshop handler have Gemini
keys masked.
"""

import logging
import os
import re

LOG_FORMAT = "%(levelname)s [%(name)s] %(message)s"
ROOT_LOGGER_NAME = "pixshop"

# Gemini keys start with "AIza"; also catch ?key= query params and the header
_KEY_PATTERNS = (
    re.compile(r"AIza[0-9A-Za-z_\-]{20,}"),
    re.compile(r"(?i)(x-goog-api-key['\"]?\s*[:=]\s*['\"]?)[^'\"\s,}]+"),
    re.compile(r"(?i)([?&]key=)[^&\s]+"),
)
_REDACTED = "***"

_VERBOSITY_LEVELS = {
    0: (logging.INFO, False),
    1: (logging.INFO, True),
    2: (logging.DEBUG, True),
}

_log_prompts: bool = False
_configured: bool = False


def redact_secrets(text: str) -> str:
    """Mask anything that looks like a Gemini API key in text."""
    for pattern in _KEY_PATTERNS:
        if pattern.groups:
            text = pattern.sub(lambda m: m.group(1) + _REDACTED, text)
        else:
            text = pattern.sub(_REDACTED, text)
    return text


class RedactingFilter(logging.Filter):
    """Rewrite record messages with API keys masked."""

    def filter(self, record: logging.LogRecord) -> bool:
        message = record.getMessage()
        redacted = redact_secrets(message)
        if redacted != message:
            record.msg = redacted
            record.args = None
        return True


def _ensure_handler() -> None:
    """Attach a stderr handler to the pixshop root logger once."""
    global _configured
    if _configured:
        return
    root = logging.getLogger(ROOT_LOGGER_NAME)
    if not root.handlers:
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        handler.addFilter(RedactingFilter())
        root.addHandler(handler)
    _configured = True


def set_verbosity(level: int) -> None:
    """
    Set logging verbosity (0=default, 1=info, 2=verbose).

    - 0: INFO; operations and timings, no instruction text.
    - 1: INFO; same + the instruction text sent for each operation.
    - 2: DEBUG; same + request URLs, status codes, payload sizes.
    """
    global _log_prompts
    _ensure_handler()
    log_level, _log_prompts = _VERBOSITY_LEVELS[min(max(level, 0), 2)]
    logging.getLogger(ROOT_LOGGER_NAME).setLevel(log_level)


def log_prompts() -> bool:
    """Return True if instruction text should be logged (verbosity 1 or 2)."""
    return _log_prompts


def configure_logging(verbose_level: int = 0, quiet: bool = False) -> None:
    """
    Configure logging from the CLI, relay server or library code.

    quiet=True sets WARNING and suppresses instruction text; otherwise
    delegates to set_verbosity(verbose_level).
    """
    global _log_prompts
    if quiet:
        _ensure_handler()
        logging.getLogger(ROOT_LOGGER_NAME).setLevel(logging.WARNING)
        _log_prompts = False
        return
    set_verbosity(verbose_level)


def get_verbosity_from_env() -> int:
    """Read PIXSHOP_VERBOSITY (0, 1 or 2); anything else is 0."""
    raw = os.environ.get("PIXSHOP_VERBOSITY", "0").strip()
    return int(raw) if raw in ("1", "2") else 0


def uvicorn_log_level(verbose_level: int) -> str:
    """uvicorn's log level for a pixshop verbosity."""
    return "debug" if verbose_level >= 2 else "info"


def get_logger(name: str) -> logging.Logger:
    """Return a child logger under pixshop (e.g. pixshop.core.canvas)."""
    if name.startswith(ROOT_LOGGER_NAME + ".") or name == ROOT_LOGGER_NAME:
        return logging.getLogger(name)
    return logging.getLogger(ROOT_LOGGER_NAME + "." + name)


__all__ = [
    "RedactingFilter",
    "configure_logging",
    "get_logger",
    "get_verbosity_from_env",
    "log_prompts",
    "redact_secrets",
    "set_verbosity",
    "uvicorn_log_level",
]
