# engine_indexer/__init__.py

import os
from pathlib import Path
from typing import Optional, Union

from .core.config import EngineConfig
from .core.errors import (
    EngineError,
    RPCError,
    ResponseDecodeError,
    StreamConfigurationError,
    StreamAlreadyRunningError,
    BroadcastNotConfiguredError,
)
from .core.logging_config import EngineLogger, log_with_context, INFO
from .clients.interfaces import RPCClientInterface, BroadcasterInterface
from .clients.engine_rpc import EngineRPCClient
from .clients.gateway import RemoteCallGateway
from .storage.cursor import CursorStore
from .storage.local import LocalCursorStore, MemoryCursorStore
from .stream.blockchain import BlockchainApi
from .stream.stream import BlockStreamer
from .decode.block_dispatcher import BlockDispatcher, DispatchResult
from .decode.transaction_decoder import TransactionDecoder
from .engine import EngineClient

__version__ = "0.1.0"


def create_engine(config_path: Optional[Union[str, Path]] = None,
                  env_vars: dict = None, **kwargs) -> EngineClient:
    env = env_vars if env_vars is not None else os.environ
    _configure_logging_early(env)

    logger = EngineLogger.get_logger('core.init')

    if config_path:
        config = EngineConfig.from_file(config_path)
    else:
        config = EngineConfig.from_env(env_vars)
    config.validate()

    log_with_context(logger, INFO, "Engine client created",
                     node_count=len(config.nodes),
                     chain_id=config.chain_id)

    return EngineClient(config, **kwargs)


def _configure_logging_early(env: dict):
    log_dir_env = env.get("ENGINE_LOG_DIR")
    log_dir = Path(log_dir_env) if log_dir_env else None

    log_level = env.get("ENGINE_LOG_LEVEL", "INFO")
    console_enabled = env.get("ENGINE_LOG_CONSOLE", "true").lower() == "true"
    file_enabled = log_dir is not None and env.get("ENGINE_LOG_FILE", "true").lower() == "true"
    structured_format = env.get("ENGINE_LOG_STRUCTURED", "true").lower() == "true"
    json_format = env.get("ENGINE_LOG_JSON", "false").lower() == "true"

    EngineLogger.configure(
        log_dir=log_dir,
        log_level=log_level,
        console_enabled=console_enabled,
        file_enabled=file_enabled,
        structured_format=structured_format,
        json_format=json_format,
    )
