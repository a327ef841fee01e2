"""
Structured console logger with timing support.

Provides colourful, context-prefixed output for tracking the
phases of an inspection.  Optionally mirrors every line into a
per-inspection log file when ``WRITE_TO_FILE`` is enabled.

Timers and the log-file handle live in ``contextvars.ContextVar``
so that concurrent inspections running as separate asyncio tasks
never share state.
"""

from __future__ import annotations

import contextvars
import io
import pathlib
import re
import sys
import time
from datetime import UTC, datetime

from consent_inspector import config

_ANSI_RE = re.compile(r"\033\[[0-9;]*m")

# ============================================================================
# Per-inspection state (isolated via contextvars)
# ============================================================================

_timers_var: contextvars.ContextVar[dict[str, tuple[float, str]]] = contextvars.ContextVar("_timers_var")
_file_var: contextvars.ContextVar[io.TextIOWrapper | None] = contextvars.ContextVar("_file_var", default=None)


def _timers() -> dict[str, tuple[float, str]]:
    try:
        return _timers_var.get()
    except LookupError:
        timers: dict[str, tuple[float, str]] = {}
        _timers_var.set(timers)
        return timers


# ============================================================================
# File Logging
# ============================================================================


def start_log_file(domain: str) -> str | None:
    """Open a timestamped log file for one inspection of *domain*.

    Returns:
        The file path, or ``None`` when file logging is disabled
        or the file could not be opened.
    """
    settings = config.get_settings()
    if not settings.write_to_file:
        return None

    end_log_file()

    logs_dir = pathlib.Path(settings.log_dir)
    safe_domain = "".join(c if c.isalnum() or c in ".-" else "_" for c in domain.removeprefix("www."))[:50]
    now = datetime.now(UTC)
    path = logs_dir / f"{safe_domain}_{now.strftime('%Y-%m-%d_%H-%M-%S')}.log"

    try:
        logs_dir.mkdir(parents=True, exist_ok=True)
        stream = open(path, "a", encoding="utf-8")  # noqa: SIM115
    except OSError as exc:
        print(f"\033[31m✗ [Logger] Failed to open log file: {exc}\033[0m", file=sys.stderr)
        return None

    _file_var.set(stream)
    stream.write(f"\n{'=' * 80}\n  Inspection Log - {domain}\n  Started: {now.isoformat()}\n{'=' * 80}\n")
    return str(path)


def end_log_file() -> None:
    """Flush and close the current log file, if any."""
    stream = _file_var.get(None)
    if stream is None:
        return
    try:
        stream.flush()
        stream.close()
    except OSError:
        print("\033[33m⚠ [Logger] Failed to flush/close log file stream\033[0m", file=sys.stderr)
    _file_var.set(None)


def _emit(line: str) -> None:
    """Write *line* to stderr and, when open, the log file."""
    print(line, file=sys.stderr)
    stream = _file_var.get(None)
    if stream is not None:
        stream.write(_ANSI_RE.sub("", line) + "\n")
        stream.flush()


# ============================================================================
# ANSI Colours
# ============================================================================

_colours = {
    "reset": "\033[0m",
    "bright": "\033[1m",
    "dim": "\033[2m",
    "cyan": "\033[36m",
    "green": "\033[32m",
    "yellow": "\033[33m",
    "red": "\033[31m",
    "magenta": "\033[35m",
    "blue": "\033[34m",
    "gray": "\033[90m",
}

_level_style = {
    "info": (_colours["cyan"], "ℹ"),
    "success": (_colours["green"], "✓"),
    "warn": (_colours["yellow"], "⚠"),
    "error": (_colours["red"], "✗"),
    "debug": (_colours["gray"], "•"),
    "timing": (_colours["magenta"], "⏱"),
}


def _timestamp() -> str:
    """Return the current UTC time as HH:MM:SS.mmm."""
    now = datetime.now(UTC)
    return now.strftime("%H:%M:%S.") + f"{now.microsecond // 1000:03d}"


def _format_duration(ms: float) -> str:
    """Format a duration in milliseconds for display."""
    if ms < 1000:
        return f"{int(ms)}ms"
    if ms < 60000:
        return f"{ms / 1000:.2f}s"
    return f"{int(ms // 60000)}m {(ms % 60000) / 1000:.1f}s"


def _format_value(value: object) -> str:
    """Return an ANSI-coloured representation of *value*."""
    c = _colours
    if value is None:
        return f"{c['dim']}None{c['reset']}"
    if isinstance(value, bool):
        return f"{c['green']}True{c['reset']}" if value else f"{c['red']}False{c['reset']}"
    if isinstance(value, (int, float)):
        return f"{c['yellow']}{value}{c['reset']}"
    if isinstance(value, str):
        display = value[:197] + "..." if len(value) > 200 else value
        return f'{c["green"]}"{display}"{c["reset"]}'
    if isinstance(value, (list, tuple)):
        return f"{c['cyan']}[{len(value)} items]{c['reset']}"
    if isinstance(value, dict):
        return f"{c['cyan']}{{{len(value)} keys}}{c['reset']}"
    return str(value)


# ============================================================================
# Logger Class
# ============================================================================


class Logger:
    """Structured logger with context prefix and timing support."""

    def __init__(self, context: str = "Inspector") -> None:
        self._context = context

    def _log(self, level: str, message: str, data: dict[str, object] | None = None) -> None:
        if level == "debug" and not config.get_settings().debug_logging:
            return
        colour, symbol = _level_style.get(level, _level_style["info"])
        c = _colours
        line = f"{c['gray']}[{_timestamp()}]{c['reset']} {colour}{symbol}{c['reset']} {c['bright']}[{self._context}]{c['reset']} {message}"
        if data:
            line += " " + " ".join(f"{c['dim']}{k}={c['reset']}{_format_value(v)}" for k, v in data.items())
        _emit(line)

    def info(self, message: str, data: dict[str, object] | None = None) -> None:
        """Log an informational message."""
        self._log("info", message, data)

    def success(self, message: str, data: dict[str, object] | None = None) -> None:
        """Log a success message."""
        self._log("success", message, data)

    def warn(self, message: str, data: dict[str, object] | None = None) -> None:
        """Log a warning message."""
        self._log("warn", message, data)

    def error(self, message: str, data: dict[str, object] | None = None) -> None:
        """Log an error message."""
        self._log("error", message, data)

    def debug(self, message: str, data: dict[str, object] | None = None) -> None:
        """Log a debug message (suppressed unless ``LOG_LEVEL=debug``)."""
        self._log("debug", message, data)

    def start_timer(self, label: str) -> None:
        """Start a named timer for performance measurement."""
        _timers()[f"{self._context}:{label}"] = (time.monotonic() * 1000, _timestamp())
        self._log("timing", f"Starting: {label}")

    def end_timer(self, label: str, message: str | None = None) -> float:
        """Stop a named timer, log the elapsed time and return it in ms."""
        entry = _timers().pop(f"{self._context}:{label}", None)
        if entry is None:
            self.warn(f'Timer "{label}" was not started')
            return 0.0

        start_ms, start_ts = entry
        duration = time.monotonic() * 1000 - start_ms
        c = _colours
        self._log(
            "timing",
            f"{message or f'Completed: {label}'} {c['dim']}took{c['reset']} "
            f"{c['magenta']}{_format_duration(duration)}{c['reset']} {c['dim']}(started {start_ts}){c['reset']}",
        )
        return duration

    def section(self, title: str) -> None:
        """Print a prominent section divider with *title*."""
        c = _colours
        rule = f"{c['blue']}{'─' * 60}{c['reset']}"
        for line in ("", rule, f"{c['blue']}{c['bright']}  {title}{c['reset']}", rule, ""):
            _emit(line)

    def subsection(self, title: str) -> None:
        """Print a smaller sub-section header."""
        _emit(f"\n{_colours['cyan']}  ▸ {title}{_colours['reset']}")


def create_logger(context: str) -> Logger:
    """Create a logger for a specific module."""
    return Logger(context)
