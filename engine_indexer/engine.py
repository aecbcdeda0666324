# engine_indexer/engine.py

import inspect
from typing import Any, Callable, Dict, List, Optional, Union

import msgspec
from msgspec import Struct

from .clients.engine_rpc import EngineRPCClient
from .clients.gateway import RemoteCallGateway
from .clients.interfaces import BroadcasterInterface, RPCClientInterface
from .contracts.contracts import ContractsApi
from .contracts.tokens import TokensContractsApi
from .core.config import EngineConfig
from .core.errors import BroadcastNotConfiguredError, StreamAlreadyRunningError
from .core.logging_config import LoggingMixin, log_with_context, DEBUG, INFO
from .decode.block_dispatcher import BlockDispatcher, EventHandler
from .decode.transaction_decoder import TransactionDecoder
from .storage.cursor import CursorStore, LoadHook, SaveHook
from .storage.local import LocalCursorStore
from .stream.blockchain import BlockchainApi
from .stream.stream import BlockStreamer
from .types import (
    Block,
    CustomOperation,
    OperationJson,
    Role,
    TokensDelegatePayload,
    TokensIssuePayload,
    TokensStakePayload,
    TokensTransferPayload,
    TokensUndelegatePayload,
    TokensUnstakePayload,
)


PrivateKey = Union[str, List[str]]
ErrorHandler = Callable[[BaseException], Any]


class EngineClient(LoggingMixin):
    """
    Entry point for streaming and broadcasting on the engine sidechain.

    Owns the block cursor: it is loaded once when streaming starts and
    saved after every block whose transactions have all been attempted.
    If dispatching a block faults, the cursor stays before that block for
    the rest of the stream so a restart delivers it again.
    Only one stream may run per client.
    """

    def __init__(self,
                 config: Optional[EngineConfig] = None,
                 rpc_client: Optional[RPCClientInterface] = None,
                 broadcaster: Optional[BroadcasterInterface] = None,
                 cursor_store: Optional[CursorStore] = None,
                 load_state: Optional[LoadHook] = None,
                 save_state: Optional[SaveHook] = None,
                 typed_payloads: bool = True):
        """
        Initialize the engine client.

        Args:
            config: Configuration snapshot (defaults to EngineConfig())
            rpc_client: Node client (defaults to EngineRPCClient over config.nodes)
            broadcaster: Signing/broadcast service used by broadcast_operation
            cursor_store: Cursor persistence (defaults to a JSON file at config.state_file)
            load_state: Replaces the cursor load hook
            save_state: Replaces the cursor save hook
            typed_payloads: Decode known contract actions into payload structs
        """
        self.config = config or EngineConfig()
        self.rpc_client = rpc_client or EngineRPCClient(
            self.config.nodes,
            timeout=self.config.timeout,
            node_error_limit=self.config.node_error_limit,
            # one failover pass per call; the streamer owns the retry loop
            max_rounds=1,
        )
        self.broadcaster = broadcaster

        if cursor_store is None:
            cursor_store = CursorStore.from_backend(LocalCursorStore(self.config.state_file))
        if load_state is not None:
            cursor_store.load_hook = load_state
        if save_state is not None:
            cursor_store.save_hook = save_state
        self.cursor_store = cursor_store

        self.gateway = RemoteCallGateway(self.rpc_client)
        self.blockchain = BlockchainApi(self.gateway)
        self.contracts = ContractsApi(self.gateway)
        self.tokens = TokensContractsApi(self.contracts)
        self.streamer = BlockStreamer(
            self.blockchain,
            polling_interval=self.config.polling_interval,
            error_delay=self.config.effective_error_delay,
        )
        self.decoder = TransactionDecoder()
        self.typed_payloads = typed_payloads

        self.last_block = 0
        self.faulted_block: Optional[int] = None
        self.on_event: Optional[EventHandler] = None
        self.on_error: Optional[ErrorHandler] = None
        self._dispatcher: Optional[BlockDispatcher] = None
        self._streaming = False

    @property
    def streaming(self) -> bool:
        return self._streaming

    async def stream(self, on_event: EventHandler,
                     start_block: Optional[int] = None,
                     end_block: Optional[int] = None,
                     on_error: Optional[ErrorHandler] = None) -> None:
        """
        Stream eligible transactions to ``on_event`` until stopped.

        Args:
            on_event: Awaited for each successful transaction with
                (transaction, block_number, block_time, ref_block_number,
                ref_block_id, prev_ref_block_id, payload, events)
            start_block: Explicit first block; skips the saved cursor
            end_block: Last block to process (defaults to config.end_block)
            on_error: Notified of fetch errors; the stream keeps retrying
        """
        if self._streaming:
            raise StreamAlreadyRunningError("EngineClient is already streaming")
        self.config.validate()
        self._streaming = True
        self.faulted_block = None

        try:
            if end_block is None:
                end_block = self.config.end_block

            self.on_event = on_event
            self.on_error = on_error
            self._dispatcher = BlockDispatcher(on_event, self.decoder, typed_payloads=self.typed_payloads)

            if start_block is None:
                saved_block = await self.cursor_store.load()
                if saved_block:
                    self.last_block = saved_block
                    start_block = saved_block + 1
                    if end_block is not None and start_block > end_block:
                        self.log_info("Saved cursor is already past the end block",
                                      last_block=saved_block, block_number=end_block)
                        return

            if start_block is not None:
                self.log_info("Streaming engine blocks", block_number=start_block)
                await self.streamer.stream_from_to(start_block, self._process_block, end_block)
            else:
                self.log_info("Streaming engine blocks from the latest block")
                await self.streamer.stream(self._process_block, end_block)
        finally:
            self._streaming = False

    def stop(self) -> None:
        self.streamer.stop()

    async def _process_block(self, error: Optional[BaseException], block: Optional[Block]) -> None:
        if error is not None:
            await self._notify_error(error)
            return
        if block is None:
            return

        level = INFO if block.blockNumber % 1000 == 0 else DEBUG
        log_with_context(self.logger, level, "Processing block", block_number=block.blockNumber)

        try:
            result = await self._dispatcher.dispatch(block)
        except Exception as e:
            self.log_error("Error processing block", block_number=block.blockNumber, error=str(e))
            if self.faulted_block is None:
                self.faulted_block = block.blockNumber
                self.log_warning("Holding cursor before faulted block until restart",
                                 block_number=block.blockNumber, last_block=self.last_block)
            return

        if result.failed:
            self.log_warning("Block processed with failed transactions",
                             block_number=block.blockNumber,
                             error=f"{result.failed} of {result.delivered + result.failed} deliveries failed")

        if self.faulted_block is not None:
            return

        if block.blockNumber > self.last_block:
            self.last_block = block.blockNumber
            await self.cursor_store.save(block.blockNumber)

    async def _notify_error(self, error: BaseException) -> None:
        if self.on_error is None:
            return
        try:
            outcome = self.on_error(error)
            if inspect.isawaitable(outcome):
                await outcome
        except Exception as e:
            self.log_error("Error handler failed", error=str(e))

    # === Broadcasting ===

    async def broadcast_operation(self, contract_name: str, action: str,
                                  payload: Union[Dict[str, Any], Struct],
                                  account: str, key: PrivateKey,
                                  role: Role = "posting") -> Any:
        """
        Broadcast a contract action as a custom JSON operation.

        Returns:
            The transaction id reported by the broadcaster
        """
        if self.broadcaster is None:
            raise BroadcastNotConfiguredError("No broadcaster configured for EngineClient")

        if isinstance(payload, Struct):
            payload = msgspec.to_builtins(payload)

        operation = CustomOperation(
            id=self.config.chain_id,
            account=account,
            role=role,
            json=OperationJson(
                contractName=contract_name,
                contractAction=action,
                contractPayload=payload,
            ),
        )
        self.log_info("Broadcasting engine operation",
                      contract=contract_name, action=action)

        result = self.broadcaster.broadcast_custom_operation(operation, key)
        if inspect.isawaitable(result):
            result = await result
        return result

    async def transfer(self, to: str, symbol: str, quantity: str,
                       account: str, key: PrivateKey,
                       memo: Optional[str] = None, role: Role = "active") -> Any:
        payload = TokensTransferPayload(symbol=symbol, to=to, quantity=quantity, memo=memo)
        return await self.broadcast_operation('tokens', 'transfer', payload, account, key, role)

    async def stake(self, to: str, symbol: str, quantity: str,
                    account: str, key: PrivateKey, role: Role = "active") -> Any:
        payload = TokensStakePayload(to=to, symbol=symbol, quantity=quantity)
        return await self.broadcast_operation('tokens', 'stake', payload, account, key, role)

    async def unstake(self, symbol: str, quantity: str,
                      account: str, key: PrivateKey, role: Role = "active") -> Any:
        payload = TokensUnstakePayload(symbol=symbol, quantity=quantity)
        return await self.broadcast_operation('tokens', 'unstake', payload, account, key, role)

    async def delegate(self, to: str, symbol: str, quantity: str,
                       account: str, key: PrivateKey, role: Role = "active") -> Any:
        payload = TokensDelegatePayload(to=to, symbol=symbol, quantity=quantity)
        return await self.broadcast_operation('tokens', 'delegate', payload, account, key, role)

    async def undelegate(self, from_account: str, symbol: str, quantity: str,
                         account: str, key: PrivateKey, role: Role = "active") -> Any:
        payload = TokensUndelegatePayload(from_=from_account, symbol=symbol, quantity=quantity)
        return await self.broadcast_operation('tokens', 'undelegate', payload, account, key, role)

    async def issue(self, to: str, symbol: str, quantity: str,
                    account: str, key: PrivateKey, role: Role = "active") -> Any:
        payload = TokensIssuePayload(symbol=symbol, to=to, quantity=quantity)
        return await self.broadcast_operation('tokens', 'issue', payload, account, key, role)

    def close(self) -> None:
        close = getattr(self.rpc_client, 'close', None)
        if callable(close):
            close()
