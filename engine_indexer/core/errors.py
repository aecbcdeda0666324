# engine_indexer/core/errors.py

from typing import Any, Optional


class EngineError(Exception):
    pass


class RPCError(EngineError):
    """Transport or JSON-RPC protocol failure talking to an engine node"""

    def __init__(self, message: str, code: Optional[int] = None,
                 node: Optional[str] = None, data: Any = None):
        super().__init__(message)
        self.code = code
        self.node = node
        self.data = data


class ResponseDecodeError(EngineError):
    pass


class StreamConfigurationError(EngineError):
    pass


class StreamAlreadyRunningError(EngineError):
    pass


class BroadcastNotConfiguredError(EngineError):
    pass
