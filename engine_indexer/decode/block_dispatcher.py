# engine_indexer/decode/block_dispatcher.py

import inspect
from datetime import datetime
from typing import Any, Awaitable, Callable, List, Optional, Union

from msgspec import Struct

from .transaction_decoder import TransactionDecoder
from ..core.logging_config import LoggingMixin
from ..types import Block, ContractEvent, Payload, Transaction


# on_event(transaction, block_number, block_time, ref_block_number,
#          ref_block_id, prev_ref_block_id, payload, events)
EventHandler = Callable[
    [Transaction, int, Optional[datetime], int, str, str, Optional[Payload], List[ContractEvent]],
    Union[Awaitable[Any], Any],
]


class DispatchResult(Struct):
    block_number: int
    delivered: int = 0
    skipped: int = 0
    failed: int = 0


class BlockDispatcher(LoggingMixin):
    """
    Delivers the successful transactions of a block to the consumer.

    Transactions are handled in block order and each handler call is
    awaited before the next one starts. A failing handler only fails its
    own transaction.
    """

    def __init__(self, on_event: EventHandler,
                 decoder: Optional[TransactionDecoder] = None,
                 typed_payloads: bool = True):
        self.on_event = on_event
        self.decoder = decoder or TransactionDecoder()
        self.typed_payloads = typed_payloads

    async def dispatch(self, block: Block) -> DispatchResult:
        result = DispatchResult(block_number=block.blockNumber)
        block_time = self._block_time(block)

        for transaction in block.transactions:
            logs = self.decoder.parse_logs(transaction)
            if not self.decoder.is_eligible(logs):
                result.skipped += 1
                continue

            payload = self.decoder.decode_payload(transaction, typed=self.typed_payloads)
            try:
                outcome = self.on_event(
                    transaction,
                    block.blockNumber,
                    block_time,
                    block.refHiveBlockNumber,
                    block.refHiveBlockId,
                    block.prevRefHiveBlockId,
                    payload,
                    logs.events,
                )
                if inspect.isawaitable(outcome):
                    await outcome
                result.delivered += 1
            except Exception as e:
                result.failed += 1
                self.log_error("Error processing engine transaction",
                               **self.log_block_context(block.blockNumber,
                                                        tx_id=transaction.transactionId,
                                                        contract=transaction.contract,
                                                        action=transaction.action,
                                                        error=str(e)))

        return result

    def _block_time(self, block: Block) -> Optional[datetime]:
        try:
            return block.block_time
        except ValueError as e:
            self.log_warning("Unparsable block timestamp",
                             block_number=block.blockNumber, error=str(e))
            return None
