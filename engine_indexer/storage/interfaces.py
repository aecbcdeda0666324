"""
Interfaces for cursor persistence backends.
"""
from abc import ABC, abstractmethod
from typing import Optional


class CursorStoreInterface(ABC):
    """Interface for storing the last fully processed block number."""

    @abstractmethod
    def load(self) -> Optional[int]:
        """
        Load the saved cursor.

        Returns:
            Last processed block number, or None when nothing was saved
        """
        pass

    @abstractmethod
    def save(self, block_number: int) -> None:
        """
        Persist the cursor.

        Args:
            block_number: Last block whose transactions were all dispatched
        """
        pass
