"""In-memory implementation of KeyValueStore.

Intended for unit tests and local development. Operations never suspend
between reading and writing, so each call is atomic with respect to
other coroutines on the same event loop.
"""

from collections.abc import Callable, Mapping
from datetime import datetime

from kv_auth.exceptions import StoreUnavailableError
from kv_auth.store import KeyValueStore
from kv_auth.time import to_utc, utc_now


class InMemoryKeyValueStore(KeyValueStore):
    """
    Process-local KeyValueStore backed by dictionaries.

    Expiry is applied lazily: an expired key disappears the next time any
    operation touches it. Set ``available = False`` to simulate a lost
    connection; every operation then raises StoreUnavailableError.
    """

    def __init__(self, clock: Callable[[], datetime] = utc_now):
        self._hashes: dict[str, dict[str, str]] = {}
        self._sets: dict[str, set[str]] = {}
        self._expiry: dict[str, datetime] = {}
        self._clock = clock
        self.available = True

    def _check(self, key: str) -> None:
        if not self.available:
            raise StoreUnavailableError("In-memory store is marked unavailable")
        deadline = self._expiry.get(key)
        if deadline is not None and self._clock() >= deadline:
            self._drop(key)

    def _drop(self, key: str) -> None:
        self._hashes.pop(key, None)
        self._sets.pop(key, None)
        self._expiry.pop(key, None)

    def keys(self) -> set[str]:
        """All live keys; for assertions in tests."""
        for key in list(self._expiry):
            self._check(key)
        return set(self._hashes) | set(self._sets)

    async def hash_get(self, key: str) -> dict[str, str] | None:
        self._check(key)
        data = self._hashes.get(key)
        return dict(data) if data else None

    async def hash_set(self, key: str, mapping: Mapping[str, str]) -> None:
        self._check(key)
        self._hashes.setdefault(key, {}).update(mapping)

    async def hash_replace(self, key: str, mapping: Mapping[str, str]) -> None:
        self._check(key)
        self._drop(key)
        self._hashes[key] = dict(mapping)

    async def set_add(self, key: str, member: str) -> None:
        self._check(key)
        self._sets.setdefault(key, set()).add(member)

    async def set_remove(self, key: str, member: str) -> None:
        self._check(key)
        members = self._sets.get(key)
        if members is None:
            return
        members.discard(member)
        if not members:
            self._drop(key)

    async def set_members(self, key: str) -> set[str]:
        self._check(key)
        return set(self._sets.get(key, set()))

    async def delete(self, key: str) -> None:
        self._check(key)
        self._drop(key)

    async def expire_at(self, key: str, when: datetime) -> None:
        self._check(key)
        if key in self._hashes or key in self._sets:
            self._expiry[key] = to_utc(when)
            self._check(key)

    async def hash_delete_if_field_equals(
        self,
        key: str,
        field: str,
        expected: str,
    ) -> dict[str, str] | None:
        self._check(key)
        data = self._hashes.get(key)
        if not data or data.get(field) != expected:
            return None
        self._drop(key)
        return dict(data)
