# tests/conftest.py
"""
pytest configuration and fixtures for the engine indexer tests
"""

import json
from typing import Any, Dict, List, Optional

import pytest

from engine_indexer.clients.gateway import RemoteCallGateway
from engine_indexer.clients.interfaces import RPCClientInterface
from engine_indexer.core.config import EngineConfig
from engine_indexer.core.errors import RPCError
from engine_indexer.storage.cursor import CursorStore
from engine_indexer.storage.local import MemoryCursorStore
from engine_indexer.stream.blockchain import BlockchainApi
from engine_indexer.engine import EngineClient


class FakeRPCClient(RPCClientInterface):
    """
    Scripted engine node.

    Blocks are served from ``blocks``; a per-block script of outcomes
    (values, None or exceptions) is consumed first, one per fetch.
    """

    def __init__(self):
        self.calls: List[tuple] = []
        self.blocks: Dict[int, Dict[str, Any]] = {}
        self.block_scripts: Dict[int, List[Any]] = {}
        self.responses: Dict[tuple, Any] = {}
        self.latest_block: Optional[int] = None

    def add_block(self, block: Dict[str, Any]) -> None:
        self.blocks[block['blockNumber']] = block

    def script_block(self, block_number: int, *outcomes) -> None:
        self.block_scripts.setdefault(block_number, []).extend(outcomes)

    def block_fetches(self, block_number: int) -> int:
        return sum(1 for endpoint, method, params in self.calls
                   if method == 'getBlockInfo' and params['blockNumber'] == block_number)

    def fetched_block_numbers(self) -> List[int]:
        return [params['blockNumber'] for _, method, params in self.calls if method == 'getBlockInfo']

    def call(self, endpoint, request):
        self.calls.append((endpoint, request.method, request.params))

        if request.method == 'getBlockInfo':
            block_number = request.params['blockNumber']
            script = self.block_scripts.get(block_number)
            outcome = script.pop(0) if script else self.blocks.get(block_number)
        elif request.method == 'getLatestBlockInfo' and self.latest_block is not None:
            outcome = self.blocks.get(self.latest_block)
        else:
            outcome = self.responses.get((endpoint, request.method))

        if isinstance(outcome, BaseException):
            raise outcome
        return outcome


def make_tx(txid: str, logs: Any = None, payload: Any = None,
            contract: str = 'tokens', action: str = 'transfer',
            sender: str = 'alice') -> Dict[str, Any]:
    if logs is None:
        logs = {'events': [{'contract': contract, 'event': action, 'data': {'from': sender}}]}
    if payload is None:
        payload = {'symbol': 'BEE', 'to': 'bob', 'quantity': '1.000'}
    return {
        'blockNumber': 0,
        'refHiveBlockNumber': 0,
        'transactionId': txid,
        'sender': sender,
        'contract': contract,
        'action': action,
        'payload': payload if isinstance(payload, str) else json.dumps(payload),
        'executedCodeHash': '',
        'hash': '',
        'databaseHash': '',
        'logs': logs if isinstance(logs, str) else json.dumps(logs),
    }


def failed_tx(txid: str) -> Dict[str, Any]:
    return make_tx(txid, logs={'errors': ['overdrawn balance']})


def make_block(block_number: int, transactions: Optional[List[Dict[str, Any]]] = None,
               timestamp: str = '2021-03-08T13:42:45') -> Dict[str, Any]:
    return {
        '_id': block_number,
        'blockNumber': block_number,
        'refHiveBlockNumber': 50000000 + block_number,
        'refHiveBlockId': f'ref-{block_number}',
        'prevRefHiveBlockId': f'ref-{block_number - 1}',
        'previousHash': '',
        'previousDatabaseHash': '',
        'timestamp': timestamp,
        'transactions': transactions or [],
        'virtualTransactions': [],
        'hash': f'hash-{block_number}',
        'databaseHash': '',
        'merkleRoot': '',
        'round': None,
        'roundHash': '',
        'witness': '',
        'signingKey': '',
        'roundSignature': '',
    }


@pytest.fixture
def fake_rpc():
    return FakeRPCClient()


@pytest.fixture
def transport_error():
    return RPCError("connection reset", node="https://node.example")


@pytest.fixture
def gateway(fake_rpc):
    return RemoteCallGateway(fake_rpc)


@pytest.fixture
def blockchain(gateway):
    return BlockchainApi(gateway)


@pytest.fixture
def engine_config():
    return EngineConfig(nodes=['https://node.example'], polling_interval=0.01)


@pytest.fixture
def memory_store():
    return MemoryCursorStore()


@pytest.fixture
def engine(engine_config, fake_rpc, memory_store):
    return EngineClient(engine_config,
                        rpc_client=fake_rpc,
                        cursor_store=CursorStore.from_backend(memory_store))


class RecordingHandler:
    """Collects on_event invocations"""

    def __init__(self, fail_on: Optional[set] = None):
        self.calls: List[tuple] = []
        self.fail_on = fail_on or set()

    async def __call__(self, transaction, block_number, block_time, ref_block_number,
                       ref_block_id, prev_ref_block_id, payload, events):
        self.calls.append((transaction.transactionId, block_number, block_time,
                           ref_block_number, ref_block_id, prev_ref_block_id, payload, events))
        if transaction.transactionId in self.fail_on:
            raise RuntimeError(f"handler failed for {transaction.transactionId}")

    @property
    def tx_ids(self) -> List[str]:
        return [call[0] for call in self.calls]


@pytest.fixture
def recorder():
    return RecordingHandler()
