"""Abstract key-value store interface consumed by the adapter.

This interface defines the store capabilities the adapter relies on.
Implementations wrap a concrete client (Redis, an in-memory fake, ...)
and own the translation of transport failures into StoreUnavailableError.
The adapter never opens or closes connections; the client's lifecycle
belongs to whoever constructs the store.
"""

from abc import ABC, abstractmethod
from collections.abc import Mapping
from datetime import datetime


class KeyValueStore(ABC):
    """
    Abstract capability interface over hash and set records.

    Example implementation:
        class RedisKeyValueStore(KeyValueStore):
            def __init__(self, client: Redis):
                self._client = client

            async def hash_get(self, key: str) -> dict[str, str] | None:
                data = await self._client.hgetall(key)
                return data or None
    """

    @abstractmethod
    async def hash_get(self, key: str) -> dict[str, str] | None:
        """
        Read all fields of a hash record.

        Parameters
        ----------
        key
            The record key

        Returns
        -------
        The field map, or None if no record exists at the key
        """

    @abstractmethod
    async def hash_set(self, key: str, mapping: Mapping[str, str]) -> None:
        """
        Write fields of a hash record, creating it if needed.

        Fields not named in ``mapping`` keep their stored values.

        Parameters
        ----------
        key
            The record key
        mapping
            Non-empty field map to write
        """

    @abstractmethod
    async def hash_replace(self, key: str, mapping: Mapping[str, str]) -> None:
        """
        Atomically replace a hash record with exactly the given fields.

        Fields not named in ``mapping`` are removed, and any expiry set on
        the key is cleared.

        Parameters
        ----------
        key
            The record key
        mapping
            Non-empty field map to store
        """

    @abstractmethod
    async def set_add(self, key: str, member: str) -> None:
        """Add a member to the set at ``key``."""

    @abstractmethod
    async def set_remove(self, key: str, member: str) -> None:
        """Remove a member from the set at ``key``; absent members are ignored."""

    @abstractmethod
    async def set_members(self, key: str) -> set[str]:
        """Return the members of the set at ``key`` (empty if absent)."""

    @abstractmethod
    async def delete(self, key: str) -> None:
        """Delete the record at ``key``; absent keys are ignored."""

    @abstractmethod
    async def expire_at(self, key: str, when: datetime) -> None:
        """
        Have the store remove ``key`` at an absolute point in time.

        Parameters
        ----------
        key
            The record key
        when
            Timezone-aware expiry time; a past time removes the key
        """

    @abstractmethod
    async def hash_delete_if_field_equals(
        self,
        key: str,
        field: str,
        expected: str,
    ) -> dict[str, str] | None:
        """
        Atomically delete a hash record if one of its fields matches.

        Parameters
        ----------
        key
            The record key
        field
            Field to compare
        expected
            Value the field must hold for the record to be deleted

        Returns
        -------
        The deleted record's field map, or None if the record was absent
        or the field did not match (nothing is deleted in that case)
        """
