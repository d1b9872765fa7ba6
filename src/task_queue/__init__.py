"""Effective task queue derived from server, cached, and reordered views."""

from .adapter import TaskStoreAdapter
from .reconciler import TASKS_CACHE_KEY, LocalCacheReconciler, QueueReorderError

__all__ = [
    "LocalCacheReconciler",
    "QueueReorderError",
    "TASKS_CACHE_KEY",
    "TaskStoreAdapter",
]
