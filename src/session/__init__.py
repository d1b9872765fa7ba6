from .bridge import (
    DEFAULT_STALE_AFTER_SECONDS,
    TIMER_STATE_CACHE_KEY,
    RestoredSession,
    SessionPersistenceBridge,
)
from .cache import JsonFileSessionCache, MemorySessionCache, SessionCacheLike

__all__ = [
    "DEFAULT_STALE_AFTER_SECONDS",
    "JsonFileSessionCache",
    "MemorySessionCache",
    "RestoredSession",
    "SessionCacheLike",
    "SessionPersistenceBridge",
    "TIMER_STATE_CACHE_KEY",
]
