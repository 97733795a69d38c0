from enum import Enum, auto


class EventSource(Enum):
    """Event source identifiers"""
    ATLAS_LOADER = auto()
    PLAYBACK_ENGINE = auto()
