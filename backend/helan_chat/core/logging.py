"""Logging built on loguru + rich

Modes (LOG_MODE):
- simple: ``[module] message``
- detailed: timestamp, call site, keyword context and rich tracebacks
- json: one JSON object per line, for log collectors

Besides the console sink a rotating, serialized file sink (LOG_FILE) is
always installed.

Usage:
    from helan_chat.core.logging import get_logger

    logger = get_logger("crawler")
    logger.info("Page stored", url=url, content_length=len(text))
    logger.exception("Crawl run failed")
"""

import asyncio
import json
import sys
import traceback
from enum import Enum
from pathlib import Path
from typing import Any

from loguru import logger as loguru_logger
from rich.console import Console
from rich.traceback import install as install_rich_traceback

from helan_chat.core.config import settings
from helan_chat.core.paths import get_project_root


class LogLevel(str, Enum):
    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"


class LogMode(str, Enum):
    SIMPLE = "simple"
    DETAILED = "detailed"
    JSON = "json"


console = Console(force_terminal=True, color_system="auto")

LEVEL_COLORS = {
    "DEBUG": "dim cyan",
    "INFO": "green",
    "WARNING": "yellow",
    "ERROR": "red",
    "CRITICAL": "bold red",
}

MAX_REPR_LENGTH = 2000
MAX_NESTING = 6


# ========== Record helpers ==========


def _escape(text: str) -> str:
    """Neutralize loguru color tags and format braces"""
    return text.replace("<", "\\<").replace(">", "\\>").replace("{", "{{").replace("}", "}}")


def _loggable(value: Any, depth: int = 0) -> Any:
    """Plain JSON-friendly copy of a context value"""
    if value is None or isinstance(value, (str, int, float, bool)):
        return value
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, Path):
        return str(value)
    if isinstance(value, dict):
        if depth >= MAX_NESTING:
            return "{...}"
        return {str(k): _loggable(v, depth + 1) for k, v in value.items()}
    if isinstance(value, (list, tuple, set)):
        if depth >= MAX_NESTING:
            return ["..."]
        return [_loggable(v, depth + 1) for v in value]
    if hasattr(value, "model_dump"):
        try:
            return _loggable(value.model_dump(mode="json"), depth + 1)
        except Exception:
            return repr(value)
    text = repr(value)
    return text if len(text) <= MAX_REPR_LENGTH else text[:MAX_REPR_LENGTH] + "..."


def _source(record: dict) -> str:
    file_obj = record["file"]
    try:
        path = Path(file_obj.path).resolve().relative_to(get_project_root())
    except (ValueError, OSError):
        return f"{file_obj.name}:{record['line']}"
    return f"{path}:{record['line']}"


def _context(record: dict) -> dict[str, Any]:
    return {k: v for k, v in record["extra"].items() if k != "module"}


def _exception_lines(record: dict) -> list[str] | None:
    exc = record.get("exception")
    if not exc or not exc.value:
        return None
    return traceback.format_exception(exc.type, exc.value, exc.traceback)


# ========== Formatters ==========


def format_simple(record: dict) -> str:
    color = LEVEL_COLORS.get(record["level"].name, "white")
    module = record["extra"].get("module", "app")
    return f"<{color}>[{module}]</{color}> {_escape(record['message'])}\n"


def format_detailed(record: dict) -> str:
    level = record["level"].name
    color = LEVEL_COLORS.get(level, "white")
    timestamp = record["time"].strftime("%Y-%m-%d %H:%M:%S.%f")[:-3]
    module = record["extra"].get("module", "app")

    line = (
        f"<dim>{timestamp}</dim> <{color}>{level:8}</{color}> <magenta>[{module}]</magenta> "
        f"<cyan>{_escape(_source(record))}</cyan> {_escape(record['message'])}"
    )
    context = _context(record)
    if context:
        pairs = ", ".join(f"{k}={v!r}" for k, v in context.items())
        line += f" <dim>| {_escape(pairs)}</dim>"

    lines = _exception_lines(record)
    if lines:
        line += f"\n<red>{_escape(''.join(lines))}</red>"
    return line + "\n"


def format_json(record: dict) -> str:
    entry: dict[str, Any] = {
        "timestamp": record["time"].isoformat(),
        "level": record["level"].name,
        "module": record["extra"].get("module", "app"),
        "message": record["message"],
        "source": _source(record),
        "function": record["function"],
        **_context(record),
    }
    lines = _exception_lines(record)
    if lines:
        entry["exception"] = "".join(lines)
    # loguru treats the returned string as a format template
    return json.dumps(entry, ensure_ascii=False, default=str).replace("{", "{{").replace("}", "}}") + "\n"


FORMATTERS = {
    LogMode.SIMPLE: format_simple,
    LogMode.DETAILED: format_detailed,
    LogMode.JSON: format_json,
}


# ========== Process-wide hooks ==========


def _log_uncaught(exc_type, exc, tb) -> None:
    loguru_logger.bind(module="runtime").opt(exception=(exc_type, exc, tb)).critical("Uncaught exception")


def _log_asyncio_error(loop: asyncio.AbstractEventLoop, context: dict[str, Any]) -> None:
    message = context.get("message", "Unhandled asyncio exception")
    exc = context.get("exception")
    bound = loguru_logger.bind(module="asyncio")
    if exc is not None:
        bound = bound.opt(exception=(type(exc), exc, exc.__traceback__))
    bound.critical("Asyncio error: {}", message)


# ========== Facade ==========


class Logger:
    """Configures loguru once and emits records with keyword context"""

    def __init__(self) -> None:
        self._configured = False

    @property
    def configured(self) -> bool:
        return self._configured

    def configure(
        self,
        mode: LogMode | str | None = None,
        level: LogLevel | str | None = None,
        log_file: str | None = None,
    ) -> None:
        """(Re)install the console and file sinks

        Arguments default to LOG_MODE, LOG_LEVEL and LOG_FILE.
        """
        if not isinstance(mode, LogMode):
            mode = LogMode(str(mode or settings.LOG_MODE).lower())
        if not isinstance(level, LogLevel):
            level = LogLevel(str(level or settings.LOG_LEVEL).upper())
        log_path = Path(log_file or settings.LOG_FILE or "logs/app.log")

        loguru_logger.remove()
        if mode == LogMode.DETAILED:
            install_rich_traceback(console=console, show_locals=False, width=120)
        loguru_logger.add(
            sys.stderr,
            format=FORMATTERS[mode],
            level=level.value,
            colorize=mode != LogMode.JSON,
            backtrace=mode == LogMode.DETAILED,
            diagnose=False,
            enqueue=True,
        )

        log_path.parent.mkdir(parents=True, exist_ok=True)
        loguru_logger.add(
            str(log_path),
            format="{message}",
            level=level.value,
            rotation=settings.LOG_FILE_ROTATION,
            retention=settings.LOG_FILE_RETENTION,
            compression="gz",
            serialize=True,
        )

        sys.excepthook = _log_uncaught
        try:
            asyncio.get_running_loop().set_exception_handler(_log_asyncio_error)
        except RuntimeError:
            pass

        self._configured = True
        loguru_logger.bind(module="logging").info(
            "Logging configured: mode={}, level={}, file={}", mode.value, level.value, log_path
        )

    def log(
        self,
        level: str,
        message: str,
        context: dict[str, Any],
        *,
        exc_info: bool = False,
        depth: int = 0,
    ) -> None:
        if not self._configured:
            self.configure()
        bound = {k: v if k == "module" else _loggable(v) for k, v in context.items()}
        bound.setdefault("module", "app")
        # caller -> [BoundLogger.x -> _emit ->] Logger.x|log -> loguru
        loguru_logger.bind(**bound).opt(depth=2 + depth, exception=exc_info).log(level, message)

    def bind(self, **context: Any) -> "BoundLogger":
        return BoundLogger(self, context)

    def info(self, message: str, **context: Any) -> None:
        self.log("INFO", message, context)

    def warning(self, message: str, **context: Any) -> None:
        self.log("WARNING", message, context)

    def error(self, message: str, exc_info: bool = False, **context: Any) -> None:
        self.log("ERROR", message, context, exc_info=exc_info)


class BoundLogger:
    """Logger with fixed context, usually the module tag"""

    def __init__(self, parent: Logger, context: dict[str, Any]) -> None:
        self._parent = parent
        self._context = context

    def _emit(self, level: str, message: str, extra: dict[str, Any], exc_info: bool = False) -> None:
        self._parent.log(level, message, {**self._context, **extra}, exc_info=exc_info, depth=1)

    def bind(self, **context: Any) -> "BoundLogger":
        return BoundLogger(self._parent, {**self._context, **context})

    def debug(self, message: str, **extra: Any) -> None:
        self._emit("DEBUG", message, extra)

    def info(self, message: str, **extra: Any) -> None:
        self._emit("INFO", message, extra)

    def warning(self, message: str, **extra: Any) -> None:
        self._emit("WARNING", message, extra)

    def error(self, message: str, exc_info: bool = False, **extra: Any) -> None:
        self._emit("ERROR", message, extra, exc_info)

    def critical(self, message: str, exc_info: bool = False, **extra: Any) -> None:
        self._emit("CRITICAL", message, extra, exc_info)

    def exception(self, message: str, **extra: Any) -> None:
        """ERROR record with the active traceback"""
        self._emit("ERROR", message, extra, True)


logger = Logger()


def get_logger(module: str) -> BoundLogger:
    """Logger tagged with ``module``"""
    return logger.bind(module=module)
