"""
Local cursor storage implementations.
"""
import os
import tempfile
from pathlib import Path
from typing import Optional, Union

import msgspec
from msgspec import Struct

from .interfaces import CursorStoreInterface
from ..core.logging_config import LoggingMixin


class CursorState(Struct):
    lastBlock: Optional[int] = None


class LocalCursorStore(CursorStoreInterface, LoggingMixin):
    """Keeps the cursor in a JSON document such as ``{"lastBlock": 123}``."""

    def __init__(self, state_file: Union[str, Path]):
        self.state_file = Path(state_file)

    def load(self) -> Optional[int]:
        if not self.state_file.exists():
            return None

        state = msgspec.json.decode(self.state_file.read_bytes(), type=CursorState)
        self.log_info("Restored saved state", last_block=state.lastBlock)
        return state.lastBlock

    def save(self, block_number: int) -> None:
        data = msgspec.json.encode(CursorState(lastBlock=block_number))

        directory = self.state_file.parent
        directory.mkdir(parents=True, exist_ok=True)

        # Write to a sibling temp file first so a crash never leaves a torn document
        fd, tmp_path = tempfile.mkstemp(dir=directory, prefix=f".{self.state_file.name}.")
        try:
            with os.fdopen(fd, 'wb') as f:
                f.write(data)
            os.replace(tmp_path, self.state_file)
        except BaseException:
            if os.path.exists(tmp_path):
                os.unlink(tmp_path)
            raise


class MemoryCursorStore(CursorStoreInterface):
    """In-process cursor storage."""

    def __init__(self, last_block: Optional[int] = None):
        self.last_block = last_block
        self.saves = []

    def load(self) -> Optional[int]:
        return self.last_block

    def save(self, block_number: int) -> None:
        self.last_block = block_number
        self.saves.append(block_number)
