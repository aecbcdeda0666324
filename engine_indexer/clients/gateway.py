# engine_indexer/clients/gateway.py

import asyncio
from typing import Any, Callable, Optional

import msgspec

from .interfaces import RPCClientInterface
from ..core.errors import ResponseDecodeError
from ..core.logging_config import LoggingMixin
from ..types import StreamRequest


Callback = Callable[[Optional[BaseException], Any], Any]


class RemoteCallGateway(LoggingMixin):
    """
    Dispatches one engine request per logical call.

    ``send`` schedules a single task for the round-trip. The task is both
    returned to the caller for awaiting and, when a completion callback is
    given, reported to that callback once it settles.
    """

    def __init__(self, rpc_client: RPCClientInterface):
        self.rpc_client = rpc_client

    def send(self, endpoint: str, request: StreamRequest,
             callback: Optional[Callback] = None,
             result_type: Any = None) -> "asyncio.Task[Any]":
        task = asyncio.ensure_future(self._call(endpoint, request, result_type))
        if callback is not None:
            task.add_done_callback(lambda done: self._complete(done, callback, endpoint, request))
        return task

    async def _call(self, endpoint: str, request: StreamRequest, result_type: Any) -> Any:
        result = await asyncio.to_thread(self.rpc_client.call, endpoint, request)
        if result is None or result_type is None:
            return result
        try:
            return msgspec.convert(result, result_type)
        except msgspec.ValidationError as e:
            raise ResponseDecodeError(
                f"Unexpected {endpoint}.{request.method} result: {e}") from e

    def _complete(self, task: "asyncio.Task[Any]", callback: Callback,
                  endpoint: str, request: StreamRequest) -> None:
        if task.cancelled():
            error: Optional[BaseException] = asyncio.CancelledError()
            result = None
        else:
            error = task.exception()
            result = None if error else task.result()

        try:
            outcome = callback(error, result)
            if asyncio.iscoroutine(outcome):
                pending = asyncio.ensure_future(outcome)
                pending.add_done_callback(
                    lambda done: self._log_callback_failure(done, endpoint, request))
        except Exception as e:
            self.log_error("Completion callback failed",
                           endpoint=endpoint,
                           method=request.method,
                           error=str(e))

    def _log_callback_failure(self, task: "asyncio.Task[Any]",
                              endpoint: str, request: StreamRequest) -> None:
        if not task.cancelled() and task.exception() is not None:
            self.log_error("Completion callback failed",
                           endpoint=endpoint,
                           method=request.method,
                           error=str(task.exception()))
