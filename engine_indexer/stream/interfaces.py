"""
Interfaces for engine block streaming components.
"""
from abc import ABC, abstractmethod
from typing import Any, Awaitable, Callable, Optional, Union

from ..types import Block


# Called as handler(error, block): exactly one of the two is set
BlockHandler = Callable[[Optional[BaseException], Optional[Block]], Union[Awaitable[Any], Any]]


class BlockStreamerInterface(ABC):
    """Interface for engine block streaming components."""

    @abstractmethod
    async def stream(self, on_block: BlockHandler, end_block: Optional[int] = None) -> None:
        """
        Stream blocks starting from the latest block produced.

        Args:
            on_block: Handler invoked for every fetched block or fetch error
            end_block: Last block to deliver (optional, unbounded by default)
        """
        pass

    @abstractmethod
    async def stream_from_to(self, start_block: int, on_block: BlockHandler,
                             end_block: Optional[int] = None) -> None:
        """
        Stream blocks starting from a given block number.

        Args:
            start_block: First block to fetch
            on_block: Handler invoked for every fetched block or fetch error
            end_block: Last block to deliver (optional, unbounded by default)
        """
        pass

    @abstractmethod
    def stop(self) -> None:
        """Request the running stream to stop before its next fetch."""
        pass
