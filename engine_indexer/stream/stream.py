"""
Block streamer for the engine sidechain.

Turns single-block fetches into an ordered, unbounded sequence of blocks.
A block that is not produced yet, or a fetch that fails, is retried at
the same block number after a fixed delay, so outages delay delivery
but never skip a block.
"""
import asyncio
import inspect
from typing import Any, Optional

from .blockchain import BlockchainApi
from .interfaces import BlockStreamerInterface, BlockHandler
from ..core.errors import StreamAlreadyRunningError, StreamConfigurationError
from ..core.logging_config import LoggingMixin


class BlockStreamer(BlockStreamerInterface, LoggingMixin):
    """
    Sequential engine block streamer.

    Only one stream may run per instance. Blocks are handed to the
    handler one at a time and the next block is not requested until the
    handler has finished with the current one.
    """

    def __init__(self,
                 blockchain: BlockchainApi,
                 polling_interval: float = 1.0,
                 error_delay: Optional[float] = None):
        """
        Initialize the block streamer.

        Args:
            blockchain: Block source
            polling_interval: Seconds to wait before re-fetching a block that is not produced yet
            error_delay: Seconds to wait after a failed fetch (defaults to polling_interval)
        """
        self.blockchain = blockchain
        self.polling_interval = polling_interval
        self.error_delay = error_delay if error_delay is not None else polling_interval

        self.streaming = False
        self.current_block: Optional[int] = None
        self.fetch_attempts = 0
        self._stop_requested = False
        self._stop_event: Optional[asyncio.Event] = None

    async def stream(self, on_block: BlockHandler, end_block: Optional[int] = None) -> None:
        self._begin()
        try:
            start_block = await self._latest_block_number(on_block)
            if start_block is None:
                return
            self.log_info("Starting from latest block", block_number=start_block)
            if end_block is not None and end_block < start_block:
                self.log_warning("End block is behind the latest block, nothing to stream",
                                 block_number=end_block, last_block=start_block)
                return
            await self._run(start_block, on_block, end_block)
        finally:
            self.streaming = False

    async def stream_from_to(self, start_block: int, on_block: BlockHandler,
                             end_block: Optional[int] = None) -> None:
        if start_block < 0:
            raise StreamConfigurationError(f"Invalid start block {start_block}")
        if end_block is not None and end_block < start_block:
            raise StreamConfigurationError(
                f"end_block {end_block} is lower than start_block {start_block}")

        self._begin()
        try:
            await self._run(start_block, on_block, end_block)
        finally:
            self.streaming = False

    def stop(self) -> None:
        if not self.streaming:
            return
        self._stop_requested = True
        if self._stop_event is not None:
            self._stop_event.set()
        self.log_info("Block streaming stop requested", block_number=self.current_block)

    def _begin(self) -> None:
        if self.streaming:
            raise StreamAlreadyRunningError("Block streaming already active")
        self.streaming = True
        self._stop_requested = False
        self._stop_event = asyncio.Event()

    async def _latest_block_number(self, on_block: BlockHandler) -> Optional[int]:
        while not self._stop_requested:
            try:
                latest = await self._fetch(self.blockchain.get_latest_block())
            except Exception as e:
                self.log_warning("Error fetching latest block", error=str(e))
                await self._notify(on_block, e, None)
                await self._sleep(self.error_delay)
                continue
            if latest is not None:
                return latest.blockNumber
            await self._sleep(self.polling_interval)
        return None

    async def _run(self, start_block: int, on_block: BlockHandler,
                   end_block: Optional[int]) -> None:
        block_number = start_block
        self.fetch_attempts = 0

        while not self._stop_requested:
            self.current_block = block_number
            self.fetch_attempts += 1

            try:
                block = await self._fetch(self.blockchain.get_block(block_number))
            except Exception as e:
                self.log_warning("Error fetching block",
                                 block_number=block_number,
                                 attempt=self.fetch_attempts,
                                 error=str(e))
                await self._notify(on_block, e, None)
                await self._sleep(self.error_delay)
                continue

            if block is None:
                # Not produced yet: wait and ask for the same block again
                await self._sleep(self.polling_interval)
                continue

            await self._notify(on_block, None, block)

            if end_block is not None and block_number >= end_block:
                self.log_info("Reached end block, stopping streaming", block_number=block_number)
                return

            block_number += 1
            self.fetch_attempts = 0

        self.log_info("Block streaming stopped", block_number=self.current_block)

    async def _fetch(self, request: "asyncio.Future[Any]") -> Any:
        """Await a fetch, abandoning it with None when stop() is called first."""
        stop_waiter = asyncio.ensure_future(self._stop_event.wait())
        try:
            done, _ = await asyncio.wait({request, stop_waiter},
                                         return_when=asyncio.FIRST_COMPLETED)
        finally:
            stop_waiter.cancel()

        if request not in done:
            request.cancel()
            return None
        return request.result()

    async def _notify(self, on_block: BlockHandler, error, block) -> None:
        outcome = on_block(error, block)
        if inspect.isawaitable(outcome):
            await outcome

    async def _sleep(self, delay: float) -> None:
        try:
            await asyncio.wait_for(self._stop_event.wait(), timeout=delay)
        except asyncio.TimeoutError:
            pass
