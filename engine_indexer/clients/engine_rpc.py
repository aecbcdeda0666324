# engine_indexer/clients/engine_rpc.py

import itertools
import time
from typing import Any, List, Optional, Union

import msgspec
import requests
from msgspec import Struct

from .interfaces import RPCClientInterface
from ..core.errors import RPCError, StreamConfigurationError
from ..core.logging_config import LoggingMixin
from ..types import StreamRequest


ERROR_WINDOW_SECONDS = 10 * 60
DISABLE_SECONDS = 60 * 60


def normalize_node_url(node: str) -> str:
    node = node.strip().rstrip('/')
    if not node.startswith(('http://', 'https://')):
        node = f"https://{node}"
    return node


class EngineNode(Struct):
    endpoint: str
    disabled: bool = False
    errors: int = 0
    last_error: float = 0.0


class EngineRPCClient(RPCClientInterface, LoggingMixin):
    """
    JSON-RPC client for engine nodes with failover.

    Every call walks the node list in order and returns the first
    successful result. Nodes that keep failing are disabled for a while;
    when a full pass over the list fails the client sleeps and starts
    over, optionally giving up after ``max_rounds`` passes.
    """

    def __init__(self,
                 nodes: Union[str, List[str]],
                 timeout: float = 10.0,
                 node_error_limit: int = 10,
                 retry_delay: float = 5.0,
                 max_rounds: Optional[int] = None,
                 session: Optional[requests.Session] = None):
        if isinstance(nodes, str):
            nodes = [nodes]
        self.nodes = [EngineNode(endpoint=normalize_node_url(node)) for node in nodes if node.strip()]
        if not self.nodes:
            raise StreamConfigurationError("EngineRPCClient needs at least one node")

        self.timeout = timeout
        self.node_error_limit = node_error_limit
        self.retry_delay = retry_delay
        self.max_rounds = max_rounds
        self.current_node = self.nodes[0]

        self.session = session or requests.Session()
        self.session.headers.update({
            'Accept': 'application/json, text/plain, */*',
            'Content-Type': 'application/json',
            'User-Agent': 'engine-indexer',
        })
        self._ids = itertools.count(1)

    def call(self, endpoint: str, request: StreamRequest) -> Any:
        body = {"jsonrpc": "2.0", "id": next(self._ids), "method": request.method}
        if request.params is not None:
            body["params"] = request.params
        payload = msgspec.json.encode(body)

        rounds = 0
        last_error: Optional[RPCError] = None
        while True:
            for node in self.nodes:
                if not self._is_available(node):
                    continue
                self.current_node = node
                try:
                    return self._post(node, endpoint, request.method, payload)
                except RPCError as e:
                    last_error = e
                    self._record_error(node)
                    self.log_warning("Engine RPC call failed",
                                     node=node.endpoint,
                                     endpoint=endpoint,
                                     method=request.method,
                                     error=str(e))

            rounds += 1
            if self.max_rounds is not None and rounds >= self.max_rounds:
                raise RPCError(
                    f"All engine nodes failed for {endpoint}.{request.method}: {last_error}",
                    code=last_error.code if last_error else None,
                    node=last_error.node if last_error else None,
                ) from last_error

            time.sleep(self.retry_delay)
            for node in self.nodes:
                node.disabled = False

    def _is_available(self, node: EngineNode) -> bool:
        if not node.disabled:
            return True
        if node.last_error < time.time() - DISABLE_SECONDS:
            node.disabled = False
            return True
        return False

    def _post(self, node: EngineNode, endpoint: str, method: str, payload: bytes) -> Any:
        url = f"{node.endpoint}/{endpoint}"
        try:
            response = self.session.post(url, data=payload, timeout=self.timeout)
            response.raise_for_status()
            data = msgspec.json.decode(response.content)
        except requests.RequestException as e:
            raise RPCError(str(e), node=node.endpoint) from e
        except msgspec.DecodeError as e:
            raise RPCError(f"Invalid JSON from {url}: {e}", node=node.endpoint) from e

        if not isinstance(data, dict):
            raise RPCError(f"Unexpected response from {url}", node=node.endpoint)

        error = data.get("error")
        if error:
            if isinstance(error, dict):
                raise RPCError(str(error.get("message", error)),
                               code=error.get("code"),
                               node=node.endpoint,
                               data=error.get("data"))
            raise RPCError(str(error), node=node.endpoint)

        return data.get("result")

    def _record_error(self, node: EngineNode) -> None:
        now = time.time()
        if node.last_error and node.last_error > now - ERROR_WINDOW_SECONDS:
            node.errors += 1
        else:
            node.errors = 1
        node.last_error = now

        if node.errors >= self.node_error_limit:
            self.log_error("Disabling node due to too many errors", node=node.endpoint)
            node.disabled = True

        if all(n.disabled for n in self.nodes):
            self.log_warning("All engine nodes disabled, re-enabling them")
            for n in self.nodes:
                n.disabled = False

    def close(self) -> None:
        self.session.close()
