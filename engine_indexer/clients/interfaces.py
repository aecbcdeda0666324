"""
Interfaces for the collaborators the engine client talks through.

The RPC client performs the actual node round-trips; the broadcaster
signs and publishes custom operations on the base chain.
"""
from abc import ABC, abstractmethod
from typing import Any, List, Union

from ..types import CustomOperation, StreamRequest


class RPCClientInterface(ABC):
    """Interface for engine RPC client implementations."""

    @abstractmethod
    def call(self, endpoint: str, request: StreamRequest) -> Any:
        """
        Perform one JSON-RPC call against an engine endpoint.

        Args:
            endpoint: Endpoint namespace ("blockchain", "contracts")
            request: Method and parameters

        Returns:
            The decoded ``result`` member of the response
        """
        pass


class BroadcasterInterface(ABC):
    """Interface for signing and broadcasting custom operations."""

    @abstractmethod
    def broadcast_custom_operation(self, operation: CustomOperation,
                                   private_key: Union[str, List[str]]) -> Any:
        """
        Sign and broadcast a custom JSON operation.

        Args:
            operation: Envelope with chain id, account, role and json body
            private_key: Key (or keys) for the requested authority

        Returns:
            Transaction id, or an awaitable resolving to it
        """
        pass
