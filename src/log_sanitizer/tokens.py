"""Token generator — salted, cached, deterministic value -> token mapping.

Design goals:
  - Deterministic: same value always maps to the same token within a run
  - Correlatable: the same value in two different files gets the same token
  - Not reversible: only 3 bytes of a salted SHA-256 end up in the output
"""

from __future__ import annotations
import hashlib
import threading


# Token format: [CODE-XXXXXX], XXXXXX = first 3 digest bytes as uppercase hex
_TOKEN_FMT = "[{code}-{digest}]"
_DIGEST_BYTES = 3


class TokenGenerator:
    """Value -> token store, scoped to one engine instance (one run).

    Safe to share between worker threads: hashing is done per call and
    inserts go through ``dict.setdefault`` under a lock, so concurrent
    misses on the same key all end up returning the first stored token
    (which is identical to theirs anyway).
    """

    __slots__ = ("_salt", "_enable_hashing", "_placeholder", "_cache", "_lock")

    def __init__(
        self,
        salt: str,
        *,
        enable_hashing: bool = True,
        placeholder: str = "[REDACTED]",
    ) -> None:
        self._salt = salt
        self._enable_hashing = enable_hashing
        self._placeholder = placeholder
        self._cache: dict[str, str] = {}    # "IP4|10.0.0.1" -> [IP4-1A2B3C]
        self._lock = threading.Lock()

    # ------------------------------------------------------------------
    # Core API
    # ------------------------------------------------------------------

    def token(self, code: str, value: str) -> str:
        """Return the token for a value detected as category ``code``."""
        return self._get_or_create(f"{code}|{value}", code, value)

    def keyed_token(self, prefix: str, value: str) -> str:
        """Return a token namespaced by a semantic field (SITE, DB, SRV, DN)."""
        return self._get_or_create(f"{prefix}|{value}", prefix, value)

    def mask(self, code: str, value: str) -> str:
        """Token when hashing is on, otherwise the static placeholder."""
        if not self._enable_hashing:
            return self._placeholder
        return self.token(code, value)

    @property
    def placeholder(self) -> str:
        return self._placeholder

    def _get_or_create(self, key: str, code: str, value: str) -> str:
        cached = self._cache.get(key)
        if cached is not None:
            return cached
        token = _TOKEN_FMT.format(code=code, digest=self._digest(value))
        with self._lock:
            return self._cache.setdefault(key, token)

    def _digest(self, value: str) -> str:
        # surrogateescape: lines read from non-UTF-8 files still hash
        data = (value + self._salt).encode("utf-8", "surrogateescape")
        digest = hashlib.sha256(data).digest()
        return digest[:_DIGEST_BYTES].hex().upper()

    # ------------------------------------------------------------------
    # Introspection
    # ------------------------------------------------------------------

    @property
    def size(self) -> int:
        return len(self._cache)

    def dump(self) -> dict[str, str]:
        """Return a copy of the cache (for debugging)."""
        with self._lock:
            return dict(self._cache)

    def clear(self) -> None:
        with self._lock:
            self._cache.clear()
