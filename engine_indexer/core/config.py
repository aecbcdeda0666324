# engine_indexer/core/config.py

from pathlib import Path
from typing import List, Optional, Union
import os
import logging

import msgspec
from msgspec import Struct, field

from .errors import StreamConfigurationError
from .logging_config import EngineLogger, log_with_context


DEFAULT_NODES = [
    'https://api.hive-engine.com/rpc',
    'https://herpc.dtools.dev',
    'https://enginerpc.com',
]
DEFAULT_CHAIN_ID = 'ssc-mainnet-hive'
DEFAULT_STATE_FILE = 'state_he.json'


class EngineConfig(Struct):
    nodes: List[str] = field(default_factory=lambda: list(DEFAULT_NODES))
    chain_id: str = DEFAULT_CHAIN_ID
    state_file: str = DEFAULT_STATE_FILE
    polling_interval: float = 1.0  # seconds
    error_delay: Optional[float] = None  # seconds, falls back to polling_interval
    end_block: Optional[int] = None
    timeout: float = 10.0
    node_error_limit: int = 10
    log_level: str = "INFO"

    @classmethod
    def from_env(cls, env_vars: dict = None) -> 'EngineConfig':
        logger = EngineLogger.get_logger('core.config')

        if env_vars is None:
            from dotenv import load_dotenv
            load_dotenv()
        env = env_vars if env_vars is not None else os.environ

        nodes = env.get("ENGINE_NODES")
        config = cls(
            nodes=[node.strip() for node in nodes.split(",") if node.strip()] if nodes else list(DEFAULT_NODES),
            chain_id=env.get("ENGINE_CHAIN_ID", DEFAULT_CHAIN_ID),
            state_file=env.get("ENGINE_STATE_FILE", DEFAULT_STATE_FILE),
            polling_interval=float(env.get("ENGINE_POLLING_INTERVAL", 1.0)),
            error_delay=cls._optional(env, "ENGINE_ERROR_DELAY", float),
            end_block=cls._optional(env, "ENGINE_END_BLOCK", int),
            timeout=float(env.get("ENGINE_RPC_TIMEOUT", 10.0)),
            node_error_limit=int(env.get("ENGINE_NODE_ERROR_LIMIT", 10)),
            log_level=env.get("ENGINE_LOG_LEVEL", "INFO"),
        )

        log_with_context(logger, logging.DEBUG, "Configuration loaded from environment",
                         node_count=len(config.nodes), chain_id=config.chain_id)
        return config

    @classmethod
    def from_file(cls, path: Union[str, Path]) -> 'EngineConfig':
        logger = EngineLogger.get_logger('core.config')

        config_path = Path(path)
        if not config_path.exists():
            raise StreamConfigurationError(f"Config file not found: {config_path}")

        try:
            config = msgspec.json.decode(config_path.read_bytes(), type=cls)
        except (msgspec.DecodeError, msgspec.ValidationError) as e:
            raise StreamConfigurationError(f"Invalid config file {config_path}: {e}") from e

        log_with_context(logger, logging.DEBUG, "Configuration loaded from file",
                         path=str(config_path), node_count=len(config.nodes))
        return config

    @staticmethod
    def _optional(env, key: str, cast):
        value = env.get(key)
        if value is None or value == "":
            return None
        return cast(value)

    @property
    def effective_error_delay(self) -> float:
        return self.error_delay if self.error_delay is not None else self.polling_interval

    def validate(self) -> None:
        if not self.nodes:
            raise StreamConfigurationError("At least one engine node is required")
        if self.polling_interval <= 0:
            raise StreamConfigurationError("polling_interval must be positive")
        if self.error_delay is not None and self.error_delay <= 0:
            raise StreamConfigurationError("error_delay must be positive")
        if self.end_block is not None and self.end_block < 0:
            raise StreamConfigurationError("end_block must not be negative")
        if self.timeout <= 0:
            raise StreamConfigurationError("timeout must be positive")
        if self.node_error_limit < 1:
            raise StreamConfigurationError("node_error_limit must be at least 1")
        if not self.chain_id:
            raise StreamConfigurationError("chain_id is required")
