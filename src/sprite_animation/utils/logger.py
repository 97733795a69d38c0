"""
Structured category logger

Every module grabs a bound logger once at import time:

    log = get_logger().for_category(LogCategory.LOADER)
    log.info("Atlas stored", url=url, frames=24)

which prints

    [14:23:45] LOADER    ✓ Atlas stored
               ├─ url: sprites/icon-0.json
               └─ frames: 24

Bound loggers can carry context that is appended to every line
(`log.bind(engine=3)`), so per-instance ids don't have to be repeated at
each call site.
"""

import sys
from datetime import datetime
from typing import Any, Dict, NamedTuple, Optional, TextIO

from sprite_animation.models.enums import LogLevel, LogCategory

RESET = '\033[0m'
DIM = '\033[2m'


class LevelStyle(NamedTuple):
    rank: int
    symbol: str
    color: str


LEVEL_STYLES = {
    LogLevel.DEBUG: LevelStyle(0, '·', DIM),
    LogLevel.INFO: LevelStyle(1, '✓', '\033[32m'),
    LogLevel.WARN: LevelStyle(2, '⚠', '\033[33m'),
    LogLevel.ERROR: LevelStyle(3, '✗', '\033[31m'),
}

CATEGORY_COLORS = {
    LogCategory.CONFIG: '\033[36m',
    LogCategory.CACHE: '\033[96m',
    LogCategory.LOADER: '\033[94m',
    LogCategory.RESOLVER: '\033[92m',
    LogCategory.ANIMATION: '\033[93m',
    LogCategory.RENDER: '\033[35m',
    LogCategory.EVENT: '\033[95m',
    LogCategory.TASK: '\033[34m',
    LogCategory.SYSTEM: '\033[97m',
}

# width of "[HH:MM:SS] " so detail lines hang under the category column
DETAIL_INDENT = " " * 11


class Logger:
    """Prints one headline plus tree-style key/value details per call."""

    def __init__(
        self,
        min_level: LogLevel = LogLevel.INFO,
        use_colors: bool = True,
        stream: Optional[TextIO] = None
    ):
        """
        Args:
            min_level: Lines below this level are dropped
            use_colors: ANSI colours (turn off when writing to files)
            stream: Target stream; None means sys.stdout at write time
        """
        self.min_level = min_level
        self.use_colors = use_colors
        self.stream = stream

    def enabled(self, level: LogLevel) -> bool:
        return LEVEL_STYLES[level].rank >= LEVEL_STYLES[self.min_level].rank

    def _paint(self, text: str, color: str) -> str:
        return f"{color}{text}{RESET}" if self.use_colors else text

    def _write(self, line: str) -> None:
        print(line, file=self.stream or sys.stdout)

    def log(
        self,
        category: LogCategory,
        message: str,
        level: LogLevel = LogLevel.INFO,
        exception: Optional[BaseException] = None,
        **fields
    ) -> None:
        """
        Write a message with optional key/value fields.

        Args:
            category: Subsystem the line belongs to
            message: Headline text
            level: Severity
            exception: Rendered as an "error: Type: message" field
            **fields: Shown below the headline in call order
        """
        if not self.enabled(level):
            return

        style = LEVEL_STYLES[level]
        timestamp = datetime.now().strftime('[%H:%M:%S]')
        cat = self._paint(category.name.ljust(9), CATEGORY_COLORS.get(category, ''))
        self._write(f"{timestamp} {cat} {self._paint(style.symbol, style.color)} {self._paint(message, style.color)}")

        lines = [f"{key}: {value}" for key, value in fields.items()]
        if exception is not None:
            lines.append(f"error: {type(exception).__name__}: {exception}")

        for i, line in enumerate(lines):
            branch = "└─" if i == len(lines) - 1 else "├─"
            self._write(f"{DETAIL_INDENT}{self._paint(branch, DIM)} {line}")

    def for_category(self, category: LogCategory) -> 'BoundLogger':
        return BoundLogger(self, category)


class BoundLogger:
    """Logger with a fixed category and optional fixed context fields."""

    def __init__(self, base: Logger, category: LogCategory, context: Optional[Dict[str, Any]] = None):
        self._base = base
        self._category = category
        self._context = dict(context or {})

    def log(self, message: str, level: LogLevel = LogLevel.INFO, **fields) -> None:
        if self._context:
            fields = {**self._context, **fields}
        self._base.log(self._category, message, level, **fields)

    def debug(self, message: str, **fields): self.log(message, LogLevel.DEBUG, **fields)
    def info(self, message: str, **fields): self.log(message, LogLevel.INFO, **fields)
    def warn(self, message: str, **fields): self.log(message, LogLevel.WARN, **fields)
    def error(self, message: str, **fields): self.log(message, LogLevel.ERROR, **fields)

    def with_category(self, category: LogCategory) -> 'BoundLogger':
        return BoundLogger(self._base, category, self._context)

    def bind(self, **context) -> 'BoundLogger':
        """Copy of this logger that adds context to every line"""
        return BoundLogger(self._base, self._category, {**self._context, **context})


_logger = Logger()


def get_logger() -> Logger:
    return _logger


def configure_logger(
    min_level: LogLevel = LogLevel.INFO,
    use_colors: bool = True,
    stream: Optional[TextIO] = None
) -> None:
    """
    Reconfigure the shared logger in place.

    Bound loggers created at import time point at the same instance, so the
    change applies everywhere at once.
    """
    _logger.min_level = min_level
    _logger.use_colors = use_colors
    _logger.stream = stream
