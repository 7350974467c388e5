"""Deterministic request fingerprints used as cache keys."""

import hashlib
import json
import time
from typing import Any


def canonicalize(payload: dict[str, Any] | None) -> str:
    """Serialize preference/exclusion inputs so equal inputs give equal text.

    Keys are sorted and list/set/tuple values are sorted too, so the order a
    caller happened to build them in does not change the key.
    """
    if not payload:
        return "{}"

    def _normalize(value: Any) -> Any:
        if isinstance(value, dict):
            return {str(k): _normalize(v) for k, v in value.items() if v is not None}
        if isinstance(value, (list, tuple, set, frozenset)):
            return sorted((_normalize(v) for v in value), key=lambda v: json.dumps(v, sort_keys=True, default=str))
        return value

    return json.dumps(_normalize(payload), sort_keys=True, separators=(",", ":"), default=str)


def time_bucket(window_seconds: int, now: float | None = None) -> int:
    """Return the index of the fixed-width time window containing ``now``."""
    if window_seconds <= 0:
        raise ValueError("window_seconds must be positive")
    current = time.time() if now is None else now
    return int(current // window_seconds)


def build_fingerprint(
    identity: str,
    category: str | None = None,
    preferences: dict[str, Any] | None = None,
    window_seconds: int = 300,
    now: float | None = None,
    namespace: str = "prompt",
) -> str:
    """Generate a cache fingerprint from request details.

    Args:
        identity: User or project identity the result belongs to
        category: Requested category, ``"any"`` when unset
        preferences: Preference and exclusion inputs
        window_seconds: Width of the coarse time bucket
        now: Override for the current time (epoch seconds)
        namespace: Key prefix separating unrelated lookups

    Returns:
        Fingerprint string usable as a cache key
    """
    key_parts = [
        identity,
        category or "any",
        str(time_bucket(window_seconds, now)),
        canonicalize(preferences),
    ]
    key_string = "|".join(key_parts)
    digest = hashlib.sha256(key_string.encode()).hexdigest()
    return f"{namespace}:{digest}"
