# engine_indexer/decode/transaction_decoder.py

from typing import Any, Optional

import msgspec

from ..core.logging_config import LoggingMixin
from ..types import PAYLOAD_TYPES, Payload, Transaction, TransactionLogs


class TransactionDecoder(LoggingMixin):
    """Parses the serialized logs and payload carried by engine transactions"""

    def parse_logs(self, transaction: Transaction) -> Optional[TransactionLogs]:
        if not transaction.logs:
            return None
        if not isinstance(transaction.logs, str):
            self.log_debug("Skipping transaction with non-string logs",
                           tx_id=transaction.transactionId,
                           error=type(transaction.logs).__name__)
            return None
        try:
            return msgspec.json.decode(transaction.logs, type=TransactionLogs)
        except (msgspec.DecodeError, msgspec.ValidationError) as e:
            self.log_debug("Skipping transaction with unparsable logs",
                           tx_id=transaction.transactionId, error=str(e))
            return None

    @staticmethod
    def is_eligible(logs: Optional[TransactionLogs]) -> bool:
        """A transaction is delivered only if it raised no errors and emitted events."""
        return logs is not None and logs.errors is None and len(logs.events) > 0

    def decode_payload(self, transaction: Transaction, typed: bool = True) -> Optional[Payload]:
        if not isinstance(transaction.payload, str):
            return None
        try:
            raw: Any = msgspec.json.decode(transaction.payload)
        except msgspec.DecodeError:
            return None

        if not typed or not isinstance(raw, dict):
            return raw

        payload_type = PAYLOAD_TYPES.get((transaction.contract, transaction.action))
        if payload_type is None:
            return raw

        try:
            return msgspec.convert(raw, payload_type)
        except msgspec.ValidationError as e:
            self.log_debug("Payload does not match its contract action, keeping raw document",
                           tx_id=transaction.transactionId,
                           contract=transaction.contract,
                           action=transaction.action,
                           error=str(e))
            return raw
