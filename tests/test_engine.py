# tests/test_engine.py
"""
End-to-end engine client tests against a scripted node
"""

import asyncio

import pytest

from engine_indexer.core.errors import (
    BroadcastNotConfiguredError,
    RPCError,
    StreamAlreadyRunningError,
    StreamConfigurationError,
)
from engine_indexer.engine import EngineClient
from engine_indexer.types import CustomOperation

from conftest import RecordingHandler, failed_tx, make_block, make_tx


class FakeBroadcaster:
    def __init__(self):
        self.operations = []

    def broadcast_custom_operation(self, operation, private_key):
        self.operations.append((operation, private_key))
        return 'hive-tx-id'


class AsyncBroadcaster(FakeBroadcaster):
    async def broadcast_custom_operation(self, operation, private_key):
        return super().broadcast_custom_operation(operation, private_key)


class TestEngineStreaming:

    @pytest.mark.asyncio
    async def test_bounded_range_saves_every_block(self, engine, fake_rpc, memory_store, recorder):
        fake_rpc.add_block(make_block(100, [make_tx('a')]))
        fake_rpc.add_block(make_block(101, [failed_tx('b')]))
        fake_rpc.add_block(make_block(102, [make_tx('c')]))

        await engine.stream(recorder, start_block=100, end_block=102)

        assert recorder.tx_ids == ['a', 'c']
        assert memory_store.saves == [100, 101, 102]
        assert engine.last_block == 102
        assert 103 not in fake_rpc.fetched_block_numbers()
        assert engine.streaming is False

    @pytest.mark.asyncio
    async def test_fetch_errors_are_retried_and_reported(self, engine, fake_rpc, memory_store, recorder):
        fake_rpc.add_block(make_block(50, [make_tx('a'), make_tx('b')]))
        fake_rpc.script_block(50, RPCError("timeout"), RPCError("timeout"))
        errors = []

        await engine.stream(recorder, start_block=50, end_block=50, on_error=errors.append)

        assert fake_rpc.block_fetches(50) == 3
        assert len(errors) == 2
        assert recorder.tx_ids == ['a', 'b']
        assert memory_store.saves == [50]

    @pytest.mark.asyncio
    async def test_resumes_after_saved_cursor(self, engine, fake_rpc, memory_store, recorder):
        memory_store.last_block = 200
        fake_rpc.add_block(make_block(201, [make_tx('x')]))
        fake_rpc.add_block(make_block(202))

        await engine.stream(recorder, end_block=202)

        assert fake_rpc.fetched_block_numbers() == [201, 202]
        assert recorder.tx_ids == ['x']
        assert memory_store.saves == [201, 202]

    @pytest.mark.asyncio
    async def test_saved_cursor_past_end_block(self, engine, fake_rpc, memory_store, recorder):
        memory_store.last_block = 300

        await engine.stream(recorder, end_block=250)

        assert fake_rpc.calls == []
        assert memory_store.saves == []

    @pytest.mark.asyncio
    async def test_cold_start_uses_latest_block(self, engine, fake_rpc, memory_store, recorder):
        fake_rpc.add_block(make_block(500, [make_tx('head')]))
        fake_rpc.add_block(make_block(501))
        fake_rpc.latest_block = 500

        await engine.stream(recorder, end_block=501)

        assert recorder.tx_ids == ['head']
        assert memory_store.saves == [500, 501]

    @pytest.mark.asyncio
    async def test_end_block_from_config(self, engine, fake_rpc, memory_store, recorder):
        engine.config.end_block = 2
        fake_rpc.add_block(make_block(1))
        fake_rpc.add_block(make_block(2))

        await engine.stream(recorder, start_block=1)

        assert memory_store.saves == [1, 2]

    @pytest.mark.asyncio
    async def test_cursor_never_moves_backwards(self, engine, fake_rpc, memory_store, recorder):
        for n in (5, 6, 10, 11):
            fake_rpc.add_block(make_block(n))

        await engine.stream(recorder, start_block=10, end_block=11)
        await engine.stream(recorder, start_block=5, end_block=6)

        assert memory_store.saves == [10, 11]
        assert engine.last_block == 11

    @pytest.mark.asyncio
    async def test_failing_handler_still_advances_cursor(self, engine, fake_rpc, memory_store):
        handler = RecordingHandler(fail_on={'a'})
        fake_rpc.add_block(make_block(1, [make_tx('a'), make_tx('b')]))

        await engine.stream(handler, start_block=1, end_block=1)

        assert handler.tx_ids == ['a', 'b']
        assert memory_store.saves == [1]

    @pytest.mark.asyncio
    async def test_dispatch_fault_keeps_cursor(self, engine, fake_rpc, memory_store, recorder, monkeypatch):
        memory_store.last_block = 4
        fake_rpc.add_block(make_block(5, [make_tx('a')]))
        fake_rpc.add_block(make_block(6, [make_tx('b')]))
        fake_rpc.add_block(make_block(7, [make_tx('c')]))
        parse_logs = engine.decoder.parse_logs
        crashing = {'a'}

        def flaky(transaction):
            if transaction.transactionId in crashing:
                raise RuntimeError("decoder crashed")
            return parse_logs(transaction)

        monkeypatch.setattr(engine.decoder, 'parse_logs', flaky)

        await engine.stream(recorder, end_block=7)

        assert recorder.tx_ids == ['b', 'c']
        assert memory_store.saves == []
        assert engine.faulted_block == 5
        assert engine.last_block == 4

        crashing.clear()
        await engine.stream(recorder, end_block=7)

        assert recorder.tx_ids == ['b', 'c', 'a', 'b', 'c']
        assert memory_store.saves == [5, 6, 7]
        assert engine.faulted_block is None

    @pytest.mark.asyncio
    async def test_transaction_with_null_logs_is_skipped(self, engine, fake_rpc, memory_store, recorder):
        bad = make_tx('bad')
        bad['logs'] = None
        bad['payload'] = None
        fake_rpc.add_block(make_block(10, [bad, make_tx('good')]))

        await engine.stream(recorder, start_block=10, end_block=10)

        assert recorder.tx_ids == ['good']
        assert fake_rpc.block_fetches(10) == 1
        assert memory_store.saves == [10]

    @pytest.mark.asyncio
    async def test_stop_during_outage(self, engine, fake_rpc, memory_store, recorder):
        fake_rpc.script_block(1, *[RPCError("connection refused")] * 1000)
        errors = []

        task = asyncio.ensure_future(
            engine.stream(recorder, start_block=1, on_error=errors.append))
        await asyncio.sleep(0.1)
        engine.stop()
        await asyncio.wait_for(task, timeout=1)

        assert len(errors) >= 1
        assert all(isinstance(e, RPCError) for e in errors)
        assert recorder.calls == []
        assert memory_store.saves == []
        assert engine.streaming is False

    def test_default_client_makes_single_failover_pass(self, engine_config):
        engine = EngineClient(engine_config)

        assert engine.rpc_client.max_rounds == 1
        engine.close()

    def test_error_delay_from_config(self, engine_config, fake_rpc):
        engine_config.error_delay = 0.5

        engine = EngineClient(engine_config, rpc_client=fake_rpc)

        assert engine.streamer.error_delay == 0.5
        assert engine.streamer.polling_interval == engine_config.polling_interval

    @pytest.mark.asyncio
    async def test_save_failure_does_not_stop_stream(self, engine_config, fake_rpc, recorder):
        def save_state(block_number):
            raise OSError("read-only filesystem")

        engine = EngineClient(engine_config, rpc_client=fake_rpc,
                              load_state=lambda: None, save_state=save_state)
        fake_rpc.add_block(make_block(1, [make_tx('a')]))
        fake_rpc.add_block(make_block(2, [make_tx('b')]))

        await engine.stream(recorder, start_block=1, end_block=2)

        assert recorder.tx_ids == ['a', 'b']
        assert engine.last_block == 2

    @pytest.mark.asyncio
    async def test_custom_state_hooks(self, engine_config, fake_rpc, recorder):
        saved = []

        async def load_state():
            return 9

        engine = EngineClient(engine_config, rpc_client=fake_rpc,
                              load_state=load_state, save_state=saved.append)
        fake_rpc.add_block(make_block(10))

        await engine.stream(recorder, end_block=10)

        assert saved == [10]

    @pytest.mark.asyncio
    async def test_failing_error_handler_is_contained(self, engine, fake_rpc, memory_store, recorder):
        fake_rpc.add_block(make_block(1))
        fake_rpc.script_block(1, RPCError("timeout"))

        def on_error(error):
            raise ValueError("handler bug")

        await engine.stream(recorder, start_block=1, end_block=1, on_error=on_error)

        assert memory_store.saves == [1]

    @pytest.mark.asyncio
    async def test_stop_from_event_handler(self, engine, fake_rpc, memory_store):
        for n in range(1, 10):
            fake_rpc.add_block(make_block(n, [make_tx(f'tx-{n}')]))

        async def on_event(transaction, block_number, *args):
            if block_number == 3:
                engine.stop()

        await engine.stream(on_event, start_block=1)

        assert memory_store.saves == [1, 2, 3]
        assert fake_rpc.fetched_block_numbers() == [1, 2, 3]

    @pytest.mark.asyncio
    async def test_second_stream_rejected(self, engine, fake_rpc, recorder):
        rejected = []

        async def on_event(*args):
            try:
                await engine.stream(recorder, start_block=1)
            except StreamAlreadyRunningError as e:
                rejected.append(e)

        fake_rpc.add_block(make_block(1, [make_tx('a')]))

        await engine.stream(on_event, start_block=1, end_block=1)

        assert len(rejected) == 1
        assert recorder.calls == []
        assert engine.streaming is False

    @pytest.mark.asyncio
    async def test_invalid_config_rejected(self, engine, recorder):
        engine.config.nodes = []

        with pytest.raises(StreamConfigurationError):
            await engine.stream(recorder, start_block=1)

        assert engine.streaming is False


class TestEngineBroadcast:

    @pytest.mark.asyncio
    async def test_transfer_envelope(self, engine_config, fake_rpc):
        broadcaster = FakeBroadcaster()
        engine = EngineClient(engine_config, rpc_client=fake_rpc, broadcaster=broadcaster)

        result = await engine.transfer('bob', 'BEE', '1.000', account='alice', key='5Kkey')

        assert result == 'hive-tx-id'
        operation, key = broadcaster.operations[0]
        assert isinstance(operation, CustomOperation)
        assert key == '5Kkey'
        assert operation.id == 'ssc-mainnet-hive'
        assert operation.account == 'alice'
        assert operation.role == 'active'
        assert operation.json.contractName == 'tokens'
        assert operation.json.contractAction == 'transfer'
        assert operation.json.contractPayload == {'symbol': 'BEE', 'to': 'bob', 'quantity': '1.000'}

    @pytest.mark.asyncio
    async def test_transfer_with_memo(self, engine_config, fake_rpc):
        broadcaster = FakeBroadcaster()
        engine = EngineClient(engine_config, rpc_client=fake_rpc, broadcaster=broadcaster)

        await engine.transfer('bob', 'BEE', '1', account='alice', key='k', memo='thanks')

        assert broadcaster.operations[0][0].json.contractPayload['memo'] == 'thanks'

    @pytest.mark.asyncio
    async def test_undelegate_uses_from_key(self, engine_config, fake_rpc):
        broadcaster = AsyncBroadcaster()
        engine = EngineClient(engine_config, rpc_client=fake_rpc, broadcaster=broadcaster)

        result = await engine.undelegate('carol', 'BEE', '5', account='alice', key=['k1', 'k2'])

        assert result == 'hive-tx-id'
        operation, key = broadcaster.operations[0]
        assert key == ['k1', 'k2']
        assert operation.json.contractPayload == {'from': 'carol', 'symbol': 'BEE', 'quantity': '5'}

    @pytest.mark.asyncio
    async def test_generic_operation_defaults_to_posting(self, engine_config, fake_rpc):
        broadcaster = FakeBroadcaster()
        engine = EngineClient(engine_config, rpc_client=fake_rpc, broadcaster=broadcaster)

        await engine.broadcast_operation('market', 'buy', {'symbol': 'BEE', 'price': '0.1'},
                                         account='alice', key='k')

        operation = broadcaster.operations[0][0]
        assert operation.role == 'posting'
        assert operation.json.contractPayload == {'symbol': 'BEE', 'price': '0.1'}

    @pytest.mark.asyncio
    async def test_chain_id_from_config(self, engine_config, fake_rpc):
        engine_config.chain_id = 'ssc-testnet'
        broadcaster = FakeBroadcaster()
        engine = EngineClient(engine_config, rpc_client=fake_rpc, broadcaster=broadcaster)

        await engine.stake('alice', 'BEE', '1', account='alice', key='k')

        assert broadcaster.operations[0][0].id == 'ssc-testnet'

    @pytest.mark.asyncio
    async def test_without_broadcaster(self, engine):
        with pytest.raises(BroadcastNotConfiguredError):
            await engine.transfer('bob', 'BEE', '1', account='alice', key='k')
