# engine_indexer/stream/blockchain.py

import asyncio
from typing import Any, Optional

from ..clients.gateway import RemoteCallGateway, Callback
from ..types import Block, BlockchainStatus, StreamRequest, Transaction


class BlockchainApi:
    """Read access to the engine's ``blockchain`` endpoint. Nothing is cached."""

    endpoint = 'blockchain'

    def __init__(self, gateway: RemoteCallGateway):
        self.gateway = gateway

    def call(self, request: StreamRequest, result_type: Any = None,
             callback: Optional[Callback] = None) -> "asyncio.Task[Any]":
        return self.gateway.send(self.endpoint, request, callback, result_type)

    def get_status(self, callback: Optional[Callback] = None) -> "asyncio.Task[BlockchainStatus]":
        """Retrieve the status of the sidechain."""
        request = StreamRequest(method='getStatus')
        return self.call(request, BlockchainStatus, callback)

    def get_block(self, block_number: int,
                  callback: Optional[Callback] = None) -> "asyncio.Task[Optional[Block]]":
        """
        Retrieve a block of the sidechain.

        Args:
            block_number: Block number
            callback: Called with (error, block) when passed

        Returns:
            Awaitable resolving to the block, or None if it was not produced yet
        """
        request = StreamRequest(method='getBlockInfo', params={'blockNumber': block_number})
        return self.call(request, Block, callback)

    def get_latest_block(self, callback: Optional[Callback] = None) -> "asyncio.Task[Block]":
        """Retrieve the latest block of the sidechain."""
        request = StreamRequest(method='getLatestBlockInfo')
        return self.call(request, Block, callback)

    def get_transaction(self, txid: str,
                        callback: Optional[Callback] = None) -> "asyncio.Task[Optional[Transaction]]":
        """Retrieve a single transaction of the sidechain."""
        request = StreamRequest(method='getTransactionInfo', params={'txid': txid})
        return self.call(request, Transaction, callback)
