"""
Synchronization of split state with the backend.
"""

from .backend import SplitBackend, HttpSplitBackend
from .adapter import build_request, apply_record, index_map
from .cache import SplitCache, CachedSplit, CachedParticipant

__all__ = [
    "SplitBackend", "HttpSplitBackend", "build_request", "apply_record", "index_map",
    "SplitCache", "CachedSplit", "CachedParticipant",
]
