from __future__ import annotations

from abc import ABC, abstractmethod


class StorageBackend(ABC):
    """Durable key → text document storage, local to one client process.

    Values are opaque strings (the persistence layer writes JSON).
    """

    @abstractmethod
    def read(self, key: str) -> str | None:
        """Return the document stored under *key*, or ``None``."""
        ...

    @abstractmethod
    def write(self, key: str, value: str) -> None:
        """Create or replace the document stored under *key*."""
        ...

    @abstractmethod
    def delete(self, key: str) -> None:
        """Remove *key*; missing keys are ignored."""
        ...

    @abstractmethod
    def list_keys(self) -> list[str]:
        """All stored keys, sorted."""
        ...

    def exists(self, key: str) -> bool:
        return self.read(key) is not None

    def close(self) -> None:
        """Release any held resources."""
