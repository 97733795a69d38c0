from enum import Enum, auto


class EventType(Enum):
    # Atlas cache
    ATLAS_LOADED = auto()
    CACHE_DRAINED = auto()

    # Playback
    SPRITE_READY = auto()
    ANIMATION_STARTED = auto()
    ANIMATION_LOOP = auto()
    ANIMATION_DONE = auto()
    ANIMATION_STOPPED = auto()

    # Errors
    LOAD_ERROR = auto()
    RESOLUTION_ERROR = auto()
    RENDER_ERROR = auto()
    ENVIRONMENT_UNSUPPORTED = auto()
