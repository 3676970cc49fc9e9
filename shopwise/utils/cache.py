"""In-memory TTL cache for per-user dashboard payloads."""
import time
from collections import defaultdict
from typing import Any, Dict, Optional, Set, Tuple

_cache: Dict[str, Tuple[float, Any]] = {}
# owner -> keys written for that owner, for exact invalidation
_owner_keys: Dict[str, Set[str]] = defaultdict(set)
_MISS = object()


def get_cached(key: str):
    """Return cached value if still valid, else _MISS sentinel."""
    entry = _cache.get(key)
    if entry is None:
        return _MISS
    expires, value = entry
    if time.time() < expires:
        return value
    del _cache[key]
    return _MISS


def set_cached(key: str, value: Any, seconds: int = 300, user_id: Optional[str] = None):
    """Store a value with a TTL, optionally owned by a user."""
    _cache[key] = (time.time() + seconds, value)
    if user_id is not None:
        _owner_keys[user_id].add(key)


def clear_for_user(user_id: str):
    """Drop every entry stored for exactly this user."""
    for key in _owner_keys.pop(user_id, set()):
        _cache.pop(key, None)
