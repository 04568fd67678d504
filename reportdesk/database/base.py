from abc import ABC, abstractmethod
from typing import Any


class StateBackend(ABC):
    """Contract for durable key/value storage of JSON-serialisable state."""

    @abstractmethod
    def load(self, key: str) -> Any | None:
        """Return the value stored under key, or None if nothing is stored.

        Raises:
            StateBackendError: if the stored value cannot be read.
        """

    @abstractmethod
    def save(self, key: str, value: Any) -> None:
        """Durably replace the value stored under key.

        Raises:
            StateBackendError: if the value cannot be written.
        """

    @abstractmethod
    def delete(self, key: str) -> None:
        """Remove key. Missing keys are ignored."""
