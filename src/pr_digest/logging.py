"""Logging configuration built on loguru.

Console output goes to stderr so it never mixes with JSON written to
stdout by the CLI. Standard library loggers (SQLAlchemy, httpx used by
githubkit) are routed through loguru, and sync code binds the repository
and PR it is working on so every line can be traced back to one item.
"""

from __future__ import annotations

import logging
import sys
from pathlib import Path
from typing import TYPE_CHECKING, Any, Literal

from loguru import logger

if TYPE_CHECKING:
    from loguru import Logger

LogLevel = Literal["TRACE", "DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]

_configured = False

_CONSOLE_FORMAT = (
    "<dim>{time:HH:mm:ss}</dim> | "
    "<level>{level: <8}</level> | "
    "<cyan>{extra[name]}</cyan> - "
    "<level>{message}</level>"
)
_FOREIGN_FORMAT = (
    "<dim>{time:HH:mm:ss}</dim> | "
    "<level>{level: <8}</level> | "
    "<cyan>{name}</cyan> - "
    "<level>{message}</level>"
)
_FILE_FORMAT = (
    "{time:YYYY-MM-DD HH:mm:ss.SSS} | "
    "{level: <8} | "
    "{extra[name]}:{function}:{line} | "
    "{extra} | "
    "{message}"
)


class InterceptHandler(logging.Handler):
    """Route standard library log records into loguru."""

    def emit(self, record: logging.LogRecord) -> None:
        from types import FrameType

        try:
            level = logger.level(record.levelname).name
        except ValueError:
            level = str(record.levelno)

        # Walk out of the logging module so loguru reports the real caller
        frame: FrameType | None = logging.currentframe()
        depth = 2
        while frame is not None and frame.f_code.co_filename == logging.__file__:
            frame = frame.f_back
            depth += 1

        logger.opt(depth=depth, exception=record.exc_info).log(level, record.getMessage())


def _has_name(record: Any) -> bool:
    return "name" in record["extra"]


def _lacks_name(record: Any) -> bool:
    return "name" not in record["extra"]


def setup_logging(
    level: LogLevel = "INFO",
    *,
    verbose: bool = False,
    quiet: bool = False,
    log_file: Path | None = None,
    rotation: str = "10 MB",
    retention: str = "7 days",
    serialize: bool = False,
) -> Logger:
    """Configure logging for the application.

    Args:
        level: Base log level from settings
        verbose: Use DEBUG regardless of level
        quiet: Use WARNING regardless of level
        log_file: Optional path for a rotating file handler
        rotation: When to rotate the log file (e.g., "10 MB", "1 day")
        retention: How long to keep rotated logs
        serialize: Write JSON lines to the log file

    Returns:
        The configured loguru logger

    Note:
        verbose takes precedence over quiet if both are set.
    """
    global _configured

    effective_level: LogLevel
    if verbose:
        effective_level = "DEBUG"
    elif quiet:
        effective_level = "WARNING"
    else:
        effective_level = level

    logger.remove()

    logger.add(
        sys.stderr,
        level=effective_level,
        format=_CONSOLE_FORMAT,
        colorize=True,
        backtrace=True,
        diagnose=False,
        filter=_has_name,
    )
    # Intercepted stdlib records carry no bound name
    logger.add(
        sys.stderr,
        level=effective_level,
        format=_FOREIGN_FORMAT,
        colorize=True,
        backtrace=True,
        diagnose=False,
        filter=_lacks_name,
    )

    if log_file:
        logger.add(
            log_file,
            level="DEBUG",
            format=_FILE_FORMAT,
            rotation=rotation,
            retention=retention,
            compression="gz",
            serialize=serialize,
            filter=_has_name,
        )

    _intercept_stdlib_logging(effective_level)

    _configured = True
    return logger


def _intercept_stdlib_logging(level: LogLevel) -> None:
    """Send SQLAlchemy and httpx logging through loguru."""
    logging.basicConfig(handlers=[InterceptHandler()], level=0, force=True)

    if level in ("TRACE", "DEBUG"):
        logging.getLogger("sqlalchemy.engine").setLevel(logging.INFO)
    else:
        logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)

    httpx_level = logging.DEBUG if level == "DEBUG" else logging.WARNING
    logging.getLogger("httpx").setLevel(httpx_level)
    logging.getLogger("httpcore").setLevel(httpx_level)


def get_logger(name: str) -> Logger:
    """Get a logger with the given name bound as context.

    Usage:
        from pr_digest.logging import get_logger
        logger = get_logger(__name__)
        logger.info("Synced {} PRs", count)

    Args:
        name: Logger name (typically __name__)

    Returns:
        Logger instance with name bound
    """
    return logger.bind(name=name)


def bind_repo(repository: str) -> Logger:
    """Bind repository context to a sync logger.

    Args:
        repository: Repository identifier in owner/repo form

    Returns:
        Logger with repo context bound
    """
    return logger.bind(name="sync", repo=repository)


def bind_pr(repository: str, pr_number: int) -> Logger:
    """Bind repository and PR context to a sync logger.

    Args:
        repository: Repository identifier in owner/repo form
        pr_number: PR number

    Returns:
        Logger with repo and PR context bound
    """
    return logger.bind(name="sync", repo=repository, pr=pr_number)


class LogContext:
    """Context manager for temporary log context binding.

    Usage:
        with LogContext(repo="owner/repo"):
            logger.info("Syncing")  # has repo context
    """

    def __init__(self, **context: Any) -> None:
        self._context = context
        self._token: Any = None

    def __enter__(self) -> Logger:
        self._token = logger.contextualize(**self._context)
        self._token.__enter__()
        return logger

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: Any,
    ) -> None:
        if self._token:
            self._token.__exit__(exc_type, exc_val, exc_tb)


def is_configured() -> bool:
    """Check if logging has been configured."""
    return _configured


def reset_logging() -> None:
    """Remove all handlers and mark logging unconfigured (used by tests)."""
    global _configured
    logger.remove()
    _configured = False
