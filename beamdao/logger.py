"""
BeamDAO Logging
===============

Logging for the deployment tooling: stdlib `logging` underneath, a `rich`
console handler on stderr, and an optional rotating file under `logs/`.
Levels and formats come from `.env` (see `beamdao.constants`).

Usage:
    >>> from beamdao.logger import get_logger
    >>> logger = get_logger(__name__)
    >>> logger.info("Deploying gov token")
"""

import logging
import logging.handlers
import re
import sys
import threading
import time
from pathlib import Path
from typing import Optional

from rich.console import Console
from rich.highlighter import RegexHighlighter
from rich.logging import RichHandler
from rich.theme import Theme

from .constants import (
    LOG_LEVEL,
    LOG_FORMAT,
    LOG_DATE_FORMAT,
    LOG_MAX_FILE_SIZE,
    LOG_BACKUP_COUNT,
    LOG_CONSOLE_HIGHLIGHTING,
    LOG_FILE_OUTPUT,
)


LOG_FILE_PATH = Path("logs") / "beamdao.log"

# Libraries whose INFO output would drown deployment progress
QUIET_LOGGERS = ("httpx", "httpcore")

BEAMDAO_THEME = Theme(
    {
        "beamdao.address":        "cyan",
        "beamdao.hash":           "dim cyan",
        "beamdao.step":           "bold magenta",
        "beamdao.revert":         "bold red",
        "beamdao.level_critical": "bold red reverse",
        "beamdao.level_debug":    "bold dim",
        "beamdao.level_error":    "bold red",
        "beamdao.level_info":     "bold green",
        "beamdao.level_warning":  "bold yellow",
        "beamdao.logger_name":    "magenta",
        "beamdao.timestamp":      "bold cyan",
        "beamdao.url":            "cyan",
    }
)

_FIELD_RE = re.compile(r"\([a-zA-Z_][a-zA-Z0-9_]*\)[a-zA-Z]")
_STRFTIME_RE = re.compile(
    r"^(?=.*%[EO]?[-_0^#]*[A-Za-z])(?:%%|%[EO]?[-_0^#]*[A-Za-z]|[0-9 \t:\-/.,TZ+])+$"
)


def _warn(message: str) -> None:
    # The logger is not configured yet, so report straight to stderr
    stamp = time.strftime(str(LOG_DATE_FORMAT.default()))
    print(f"{stamp} - beamdao.logger - {message}", file=sys.stderr)


def checked_log_format(log_format: str) -> str:
    """
    Return `log_format` if `logging.Formatter` renders it cleanly, else the
    default format. Every `(field)x` must be preceded by `%`.
    """
    if not log_format:
        return str(LOG_FORMAT.default())
    log_format = str(log_format)

    try:
        for match in _FIELD_RE.finditer(log_format):
            if match.start() == 0 or log_format[match.start() - 1] != "%":
                raise ValueError(f"stray field {match.group()!r}")
        record = logging.LogRecord("format-check", logging.INFO, "", 0, "format-check", (), None)
        if _FIELD_RE.search(logging.Formatter(fmt=log_format).format(record)):
            raise ValueError("unrendered fields")
    except (ValueError, KeyError, TypeError) as e:
        _warn(f"LOG_FORMAT rejected ({e}), using default")
        return str(LOG_FORMAT.default())
    return log_format


def checked_date_format(date_format: str) -> str:
    """Return `date_format` if it only holds strftime directives and separators."""
    if date_format and _STRFTIME_RE.match(str(date_format)):
        return str(date_format)
    if date_format:
        _warn("LOG_DATE_FORMAT rejected, using default")
    return str(LOG_DATE_FORMAT.default())


class TerminalSafeFormatter(logging.Formatter):
    """
    Formatter that strips ANSI escapes and control characters.

    Token names and revert reasons are caller-supplied and end up in log
    lines verbatim.
    """

    _unsafe_re = re.compile(
        r"\x1b\[[0-?]*[ -/]*[@-~]"      # CSI sequences
        r"|\x1b[@-Z\\-_]"              # two-byte escapes
        r"|[\x00-\x08\x0B-\x1F\x7F]"   # controls except tab / newline (incl. CR)
    )

    @classmethod
    def sanitize(cls, text: str) -> str:
        return cls._unsafe_re.sub("", text) if text else text

    def format(self, record: logging.LogRecord) -> str:
        return self.sanitize(super().format(record))


class BeamDAOLogHighlighter(RegexHighlighter):
    """Colors addresses, role ids / operation ids, pipeline steps and reverts."""

    base_style = "beamdao."
    highlights = [
        r"(?P<hash>\b0x[0-9a-fA-F]{64}\b)",
        r"(?P<address>\b0x[0-9a-fA-F]{40}\b)",
        r"(?P<step>\[[\w-]+\] \d+/\d+)",
        r"(?P<revert>(?:ERC20|AccessControl|TimelockController|BeamToken\.\w+): [^.]+)",
        r"(?P<level_critical>\bCRITICAL\b)",
        r"(?P<level_debug>\bDEBUG\b)",
        r"(?P<level_error>\bERROR\b)",
        r"(?P<level_info>\bINFO\b)",
        r"(?P<level_warning>\bWARNING\b)",
        r"\-\s+\w+\s+-\s+(?P<logger_name>[\w.]+)(?=\s-\s)",
        r"(?P<timestamp>^(.*?)UTC)",
        r"(?P<url>https?://\S+)",
    ]


class LogManager:
    """
    Process-wide logging setup, applied once.

    `configure` installs the handlers on the root logger; later calls are
    no-ops. `set_level` adjusts the level afterwards (CLI `--log-level`).
    """

    _instance: Optional["LogManager"] = None
    _lock = threading.Lock()

    def __new__(cls) -> "LogManager":
        if cls._instance is None:
            with cls._lock:
                if cls._instance is None:
                    cls._instance = super().__new__(cls)
                    cls._instance._configured = False
        return cls._instance

    @property
    def is_configured(self) -> bool:
        return self._configured

    def _console_handler(self, formatter: logging.Formatter) -> logging.Handler:
        if not LOG_CONSOLE_HIGHLIGHTING:
            handler = logging.StreamHandler(sys.stderr)
        else:
            handler = RichHandler(
                console=Console(theme=BEAMDAO_THEME, highlight=False, stderr=True),
                highlighter=BeamDAOLogHighlighter(),
                keywords=[],
                rich_tracebacks=True,
                show_path=False,
                show_time=False,
                show_level=False,
                markup=False,
            )
        handler.setFormatter(formatter)
        return handler

    def _file_handler(self, path: Path, formatter: logging.Formatter) -> logging.Handler:
        path.parent.mkdir(parents=True, exist_ok=True)
        handler = logging.handlers.RotatingFileHandler(
            filename=str(path),
            maxBytes=LOG_MAX_FILE_SIZE,
            backupCount=LOG_BACKUP_COUNT,
            encoding="utf-8",
        )
        handler.setFormatter(formatter)
        return handler

    def configure(
        self,
        log_level: Optional[str] = None,
        log_file: Optional[Path] = None,
        console_output: bool = True,
        file_output: Optional[bool] = None,
    ) -> None:
        """
        Install handlers on the root logger.

        Args:
            log_level: DEBUG, INFO, ... (default: LOG_LEVEL from .env)
            log_file: rotating log path (default: logs/beamdao.log)
            console_output: log to stderr through rich
            file_output: also log to `log_file` (default: LOG_FILE_OUTPUT)
        """
        with self._lock:
            if self._configured:
                return

            level = getattr(logging, str(log_level or LOG_LEVEL).upper(), logging.INFO)
            formatter = TerminalSafeFormatter(
                fmt=checked_log_format(LOG_FORMAT),
                datefmt=checked_date_format(LOG_DATE_FORMAT) + " UTC",
            )
            formatter.converter = time.gmtime

            handlers = []
            if console_output:
                handlers.append(self._console_handler(formatter))
            if bool(LOG_FILE_OUTPUT) if file_output is None else file_output:
                handlers.append(self._file_handler(log_file or LOG_FILE_PATH, formatter))

            root = logging.getLogger()
            root.handlers.clear()
            for handler in handlers:
                root.addHandler(handler)
            for name in QUIET_LOGGERS:
                logging.getLogger(name).setLevel(logging.WARNING)

            self._configured = True
            self.set_level(logging.getLevelName(level))

    def set_level(self, log_level: str) -> None:
        """Change the level of the root logger and all of its handlers."""
        level = getattr(logging, str(log_level).upper(), logging.INFO)
        root = logging.getLogger()
        root.setLevel(level)
        for handler in root.handlers:
            handler.setLevel(level)

    def get_logger(self, name: str) -> logging.Logger:
        if not self._configured:
            self.configure()
        return logging.getLogger(name)


_manager = LogManager()


def get_logger(name: str) -> logging.Logger:
    """Logger for `name` (usually `__name__`), configuring logging on first use."""
    return _manager.get_logger(name)


def set_log_level(log_level: str) -> None:
    """Adjust the active log level (CLI `--log-level`)."""
    _manager.set_level(log_level)


_manager.configure()
