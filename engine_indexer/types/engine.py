# engine_indexer/types/engine.py

from datetime import datetime, timezone
from typing import Optional, Any, Dict, List

from msgspec import Struct, field


class StreamRequest(Struct, omit_defaults=True):
    method: str
    params: Optional[Dict[str, Any]] = None


class ContractEvent(Struct):
    contract: str = ""
    event: str = ""
    data: Any = field(default_factory=dict)


class TransactionLogs(Struct):
    errors: Any = None
    events: List[ContractEvent] = field(default_factory=list)


class Transaction(Struct, frozen=True):
    transactionId: str
    blockNumber: int = 0
    refHiveBlockNumber: int = 0
    sender: str = ""
    contract: str = ""
    action: str = ""
    payload: Any = ""  # serialized JSON; null or non-string means undecodable
    executedCodeHash: Optional[str] = ""
    hash: Optional[str] = ""
    databaseHash: Optional[str] = ""
    logs: Any = ""


class Block(Struct, frozen=True):
    blockNumber: int
    timestamp: str  # naive ISO-8601, always UTC
    transactions: List[Transaction] = field(default_factory=list)
    id_: Optional[int] = field(default=None, name="_id")
    refHiveBlockNumber: int = 0
    refHiveBlockId: str = ""
    prevRefHiveBlockId: str = ""
    previousHash: str = ""
    previousDatabaseHash: str = ""
    virtualTransactions: List[Any] = field(default_factory=list)
    hash: str = ""
    databaseHash: str = ""
    merkleRoot: str = ""
    round: Optional[int] = None
    roundHash: str = ""
    witness: str = ""
    signingKey: str = ""
    roundSignature: str = ""

    @property
    def block_time(self) -> datetime:
        """Block timestamp as an aware UTC datetime."""
        parsed = datetime.fromisoformat(self.timestamp.rstrip("Z"))
        if parsed.tzinfo is None:
            return parsed.replace(tzinfo=timezone.utc)
        return parsed.astimezone(timezone.utc)


class BlockchainStatus(Struct):
    lastBlockNumber: int = 0
    lastBlockRefHiveBlockNumber: int = 0
    lastHash: str = ""
    lastParsedHiveBlockNumber: int = 0
    SSCnodeVersion: str = ""
    domain: str = ""
    chainId: str = ""
    lightNode: bool = False


class ContractTable(Struct):
    size: int = 0
    hash: str = ""
    nbIndexes: int = 0


class Contract(Struct):
    id_: str = field(name="_id")
    owner: str = ""
    code: str = ""
    codeHash: str = ""
    tables: Dict[str, ContractTable] = field(default_factory=dict)
    version: int = 0


class TokenBalance(Struct):
    account: str
    symbol: str
    balance: str = "0"
    stake: str = "0"
    pendingUnstake: str = "0"
    delegationsIn: str = "0"
    delegationsOut: str = "0"
    pendingUndelegations: str = "0"
    id_: Optional[int] = field(default=None, name="_id")


class Token(Struct):
    symbol: str
    issuer: str = ""
    name: str = ""
    metadata: str = ""
    precision: int = 0
    maxSupply: str = "0"
    supply: str = "0"
    circulatingSupply: str = "0"
    stakingEnabled: bool = False
    delegationEnabled: bool = False
    id_: Optional[int] = field(default=None, name="_id")
