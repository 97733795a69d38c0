"""
Enums for the sprite animation runtime
"""

from enum import Enum, auto


class PlaybackStatus(Enum):
    """
    Per-animation playback state

    UNRESOLVED: registered before atlas data was ready, frames unknown
    IDLE: frames resolved, not playing
    PLAYING: advancing frames on a schedule
    LOOPING: wrapped past its last frame at least once
    DONE: reached its last frame without looping
    STOPPED: halted by an explicit stop (play re-enters PLAYING)
    """
    UNRESOLVED = auto()
    IDLE = auto()
    PLAYING = auto()
    LOOPING = auto()
    DONE = auto()
    STOPPED = auto()


class LogLevel(Enum):
    """Log severity levels"""
    DEBUG = auto()
    INFO = auto()
    WARN = auto()
    ERROR = auto()


class LogCategory(Enum):
    """Log categories for grouping related events"""
    CONFIG = auto()      # Configuration loading, validation
    CACHE = auto()       # Atlas store puts/flushes
    LOADER = auto()      # Atlas/image fetch pipeline
    RESOLVER = auto()    # Frame name resolution
    ANIMATION = auto()   # Play/stop/loop/done
    RENDER = auto()      # Drawing surface
    EVENT = auto()       # Event bus events and handling
    TASK = auto()
    SYSTEM = auto()

    GENERAL = auto()    # Default general category
