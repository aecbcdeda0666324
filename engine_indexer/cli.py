# engine_indexer/cli.py

"""
Engine Indexer CLI

Usage: engine-indexer [--config FILE] [--verbose] COMMAND [options]
"""

import asyncio
import os
import signal
from pathlib import Path
from typing import Optional

import click
import msgspec

from .core.config import EngineConfig
from .core.errors import EngineError
from .core.logging_config import EngineLogger
from .engine import EngineClient


def _load_config(config_path: Optional[str]) -> EngineConfig:
    if config_path:
        return EngineConfig.from_file(config_path)
    return EngineConfig.from_env()


def _echo_json(value) -> None:
    click.echo(msgspec.json.encode(value).decode())


@click.group()
@click.option('--config', 'config_path', type=click.Path(exists=True, dir_okay=False),
              help='JSON configuration file (defaults to ENGINE_* environment variables)')
@click.option('--verbose', '-v', is_flag=True, help='Enable verbose logging')
@click.pass_context
def cli(ctx, config_path, verbose):
    """Engine Indexer - stream and query the engine sidechain"""
    ctx.ensure_object(dict)

    try:
        config = _load_config(config_path)
        config.validate()
    except EngineError as e:
        raise click.ClickException(str(e))

    log_dir = os.getenv("ENGINE_LOG_DIR")
    EngineLogger.configure(
        log_dir=Path(log_dir) if log_dir else None,
        log_level="DEBUG" if verbose else config.log_level,
        console_enabled=True,
        file_enabled=bool(log_dir),
        structured_format=True,
    )

    ctx.obj['config'] = config


@cli.command()
@click.option('--start-block', type=int, default=None, help='First block (default: saved cursor or latest)')
@click.option('--end-block', type=int, default=None, help='Last block (default: run indefinitely)')
@click.option('--state-file', type=click.Path(dir_okay=False), default=None, help='Cursor state file')
@click.pass_context
def stream(ctx, start_block, end_block, state_file):
    """Stream successful transactions as JSON lines"""
    config: EngineConfig = ctx.obj['config']
    if state_file:
        config.state_file = state_file

    engine = EngineClient(config, typed_payloads=False)

    async def on_event(transaction, block_number, block_time, ref_block_number,
                       ref_block_id, prev_ref_block_id, payload, events):
        _echo_json({
            'transactionId': transaction.transactionId,
            'blockNumber': block_number,
            'timestamp': block_time.isoformat() if block_time else None,
            'refHiveBlockNumber': ref_block_number,
            'sender': transaction.sender,
            'contract': transaction.contract,
            'action': transaction.action,
            'payload': payload,
            'events': events,
        })

    async def run():
        loop = asyncio.get_running_loop()
        for sig in (signal.SIGINT, signal.SIGTERM):
            try:
                loop.add_signal_handler(sig, engine.stop)
            except NotImplementedError:
                pass
        await engine.stream(on_event, start_block=start_block, end_block=end_block)

    try:
        asyncio.run(run())
    except EngineError as e:
        raise click.ClickException(str(e))
    finally:
        engine.close()


@cli.command()
@click.argument('block_number', type=int)
@click.pass_context
def block(ctx, block_number):
    """Print a single block"""
    _query(ctx, lambda engine: engine.blockchain.get_block(block_number), f"Block {block_number} not found")


@cli.command()
@click.argument('txid')
@click.pass_context
def tx(ctx, txid):
    """Print a single transaction"""
    _query(ctx, lambda engine: engine.blockchain.get_transaction(txid), f"Transaction {txid} not found")


@cli.command()
@click.pass_context
def status(ctx):
    """Print the sidechain status"""
    _query(ctx, lambda engine: engine.blockchain.get_status(), "Status unavailable")


def _query(ctx, request, missing_message: str) -> None:
    engine = EngineClient(ctx.obj['config'])

    async def run():
        return await request(engine)

    try:
        result = asyncio.run(run())
    except EngineError as e:
        raise click.ClickException(str(e))
    finally:
        engine.close()

    if result is None:
        raise click.ClickException(missing_message)
    _echo_json(result)


if __name__ == '__main__':
    cli()
