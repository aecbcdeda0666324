# engine_indexer/storage/cursor.py

import inspect
from typing import Any, Awaitable, Callable, Optional, Union

from .interfaces import CursorStoreInterface
from ..core.logging_config import LoggingMixin


LoadHook = Callable[[], Union[Optional[int], Awaitable[Optional[int]]]]
SaveHook = Callable[[int], Union[Any, Awaitable[Any]]]


class CursorStore(LoggingMixin):
    """
    Wraps pluggable cursor persistence hooks.

    Hooks may be plain or async callables. Failures never escape: a failed
    load means "no saved cursor" and a failed save is retried implicitly by
    the next block's save.
    """

    def __init__(self, load_hook: Optional[LoadHook] = None,
                 save_hook: Optional[SaveHook] = None):
        self.load_hook = load_hook
        self.save_hook = save_hook

    @classmethod
    def from_backend(cls, backend: CursorStoreInterface) -> 'CursorStore':
        return cls(load_hook=backend.load, save_hook=backend.save)

    async def load(self) -> Optional[int]:
        if self.load_hook is None:
            return None

        try:
            value = self.load_hook()
            if inspect.isawaitable(value):
                value = await value
        except Exception as e:
            self.log_error("Failed to load saved cursor, starting fresh", error=str(e))
            return None

        if value is None:
            return None
        try:
            block_number = int(value)
        except (TypeError, ValueError):
            self.log_warning("Ignoring invalid saved cursor", error=repr(value))
            return None

        return block_number if block_number > 0 else None

    async def save(self, block_number: int) -> bool:
        if self.save_hook is None:
            return False

        try:
            outcome = self.save_hook(block_number)
            if inspect.isawaitable(outcome):
                await outcome
        except Exception as e:
            self.log_error("Failed to save cursor", block_number=block_number, error=str(e))
            return False
        return True
