"""Port interfaces for the persistent per-room dedup ledger."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from ...domain.models.ledger_entry import LedgerEntry


class LedgerStorePort(ABC):
    """Port for one room's persistent key-value ledger."""

    @abstractmethod
    async def get(self, key: bytes) -> bytes:
        """
        Look up a key.

        Args:
            key: Raw key (upload id or fingerprint)

        Returns:
            Stored value

        Raises:
            LedgerKeyNotFound: If the key is absent
            LedgerAccessError: If the store cannot be read
        """
        pass

    @abstractmethod
    async def put(self, key: bytes, value: bytes) -> None:
        """
        Insert or overwrite a key.

        Raises:
            LedgerAccessError: If the store cannot be written
        """
        pass

    @abstractmethod
    async def claim(self, key: bytes, value: bytes) -> tuple[bytes, bool]:
        """
        Atomically insert a key only if it is absent.

        Used to assign fingerprint ownership: of several concurrent claims for
        the same key, exactly one observes created=True.

        Args:
            key: Raw key
            value: Value to store if the key is absent

        Returns:
            Tuple of (stored value after the call, created)

        Raises:
            LedgerAccessError: If the store cannot be read or written
        """
        pass

    @abstractmethod
    async def count(self) -> int:
        """Return the number of entries in the ledger."""
        pass

    @abstractmethod
    async def entries(self, limit: int | None = None) -> list[LedgerEntry]:
        """
        List entries ordered by key.

        Args:
            limit: Maximum number of entries to return (None for all)
        """
        pass

    async def contains(self, key: bytes) -> bool:
        from ...domain.errors import LedgerKeyNotFound

        try:
            await self.get(key)
        except LedgerKeyNotFound:
            return False
        return True


class LedgerRegistryPort(ABC):
    """Port for the process-wide set of open room ledgers."""

    @abstractmethod
    def for_room(self, room_id: str) -> LedgerStorePort:
        """
        Return the ledger for a room, opening it on first use.

        Repeated calls with the same room id return the same store instance.

        Raises:
            LedgerAccessError: If the store cannot be opened
        """
        pass

    @abstractmethod
    def close(self) -> None:
        """Close every open ledger. Safe to call more than once."""
        pass
