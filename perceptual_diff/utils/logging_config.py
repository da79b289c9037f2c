"""Unified logging configuration for the CLI and library callers.

Provides:
    - Console (stderr) and optional file handlers
    - JSON line output for log ingestion
    - Contextual fields (app, ref, image) attached to every record
    - Python warnings routed to logging

Public API:
    setup_logging("INFO", context={"app": "perceptual-diff"})
    get_logger(name)
    push_context(ref="a.png"); pop_context(keys=["ref"])
    with log_context(image="b.png"): ...

Format examples:
    Human: 2026-10-19T13:45:12.345Z | INFO     | app=perceptual-diff | Images differ
    JSON: {"t":"2026-10-19T13:45:12.345+00:00","lvl":"INFO","app":"perceptual-diff","msg":"..."}

Idempotent: repeated setup_logging() calls replace handlers instead of stacking them.
"""

import contextvars
import json
import logging
import os
import sys
from contextlib import contextmanager
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Iterator, List, Optional


_context_var = contextvars.ContextVar('logging_context', default={})

# Handlers installed by setup_logging(), removed on the next call
_installed_handlers: List[logging.Handler] = []


class ContextFormatter(logging.Formatter):
    """Formatter that appends contextual fields; human or JSON output."""

    _COLORS = {
        'DEBUG': '\033[36m',
        'INFO': '\033[32m',
        'WARNING': '\033[33m',
        'ERROR': '\033[31m',
        'CRITICAL': '\033[35m',
    }
    _RESET = '\033[0m'

    def __init__(self, fmt_mode: str = "human", use_color: bool = True, stream=None):
        super().__init__()
        self.fmt_mode = fmt_mode
        stream = stream if stream is not None else sys.stderr
        self.use_color = use_color and hasattr(stream, "isatty") and stream.isatty()

    def format(self, record: logging.LogRecord) -> str:
        context = _context_var.get({})
        ts = datetime.fromtimestamp(record.created, tz=timezone.utc)
        if self.fmt_mode == "json":
            return self._format_json(record, ts, context)
        return self._format_human(record, ts, context)

    def _format_json(self, record: logging.LogRecord, ts: datetime, context: dict) -> str:
        payload = {
            't': ts.isoformat(),
            'lvl': record.levelname,
            'name': record.name,
            'pid': os.getpid(),
            'msg': record.getMessage(),
        }
        payload.update(context)
        if record.exc_info:
            payload['exc'] = self.formatException(record.exc_info)
        return json.dumps(payload, default=str)

    def _format_human(self, record: logging.LogRecord, ts: datetime, context: dict) -> str:
        level = f"{record.levelname:8s}"
        if self.use_color:
            level = f"{self._COLORS.get(record.levelname, '')}{level}{self._RESET}"

        parts = [ts.strftime('%Y-%m-%dT%H:%M:%S.%f')[:-3] + 'Z', '|', level, '|']
        if context:
            parts.append(' '.join(f"{k}={v}" for k, v in context.items()))
            parts.append('|')
        parts.append(record.getMessage())

        line = ' '.join(parts)
        if record.exc_info:
            line += '\n' + self.formatException(record.exc_info)
        return line


def setup_logging(
    log_level: str = "INFO",
    log_file: Optional[str] = None,
    *,
    json: bool = False,
    color: bool = True,
    to_stderr: bool = True,
    capture_warnings: bool = True,
    context: Optional[Dict[str, Any]] = None
) -> List[logging.Handler]:
    """Configure the root logger (idempotent).

    Parameters
    ----------
    log_level : str
        "DEBUG", "INFO", "WARNING", "ERROR" or "CRITICAL"
    log_file : str, optional
        Also log to this file (always uncolored; JSON when json=True)
    json : bool
        JSON lines instead of human-readable output
    color : bool
        ANSI colors on the console when stderr is a TTY
    to_stderr : bool
        Log to stderr
    capture_warnings : bool
        Route Python warnings to logging
    context : dict, optional
        Initial contextual fields (e.g., {"app": "perceptual-diff"})

    Returns
    -------
    list[logging.Handler]
        Handlers installed on the root logger
    """
    root = logging.getLogger()
    level = getattr(logging, log_level.upper(), None)
    if not isinstance(level, int):
        raise ValueError(f"Unknown log level: {log_level}")

    for handler in _installed_handlers:
        root.removeHandler(handler)
        handler.close()
    _installed_handlers.clear()

    root.setLevel(level)
    fmt_mode = "json" if json else "human"

    if to_stderr:
        console = logging.StreamHandler(sys.stderr)
        console.setFormatter(ContextFormatter(fmt_mode, use_color=color and not json))
        _installed_handlers.append(console)

    if log_file:
        Path(log_file).parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_file, encoding='utf-8')
        file_handler.setFormatter(ContextFormatter(fmt_mode, use_color=False))
        _installed_handlers.append(file_handler)

    for handler in _installed_handlers:
        root.addHandler(handler)

    if context:
        push_context(**context)

    if capture_warnings:
        logging.captureWarnings(True)

    return list(_installed_handlers)


def get_logger(name: str) -> logging.Logger:
    """Get logger by name (typically __name__)."""
    return logging.getLogger(name)


def push_context(**kwargs) -> None:
    """Add contextual fields to all subsequent log records in this context."""
    _context_var.set({**_context_var.get({}), **kwargs})


def pop_context(keys: Optional[List[str]] = None) -> None:
    """Remove the given contextual fields, or all of them when keys is None."""
    if keys is None:
        _context_var.set({})
        return
    current = dict(_context_var.get({}))
    for key in keys:
        current.pop(key, None)
    _context_var.set(current)


def get_context() -> Dict[str, Any]:
    """Current contextual fields (copy)."""
    return dict(_context_var.get({}))


@contextmanager
def log_context(**kwargs) -> Iterator[None]:
    """Temporarily add contextual fields.

    Examples
    --------
    >>> with log_context(ref="a.png", image="b.png"):
    ...     logger.info("Comparing")  # → "... | ref=a.png image=b.png | Comparing"
    """
    token = _context_var.set({**_context_var.get({}), **kwargs})
    try:
        yield
    finally:
        _context_var.reset(token)
