# tapesig/tape/__init__.py
"""
Tape readers: where the verifier gets the ordered cells of a transaction output.
"""

from abc import ABC, abstractmethod
from typing import List, Optional
from pathlib import Path
from tapesig.core.types import TapeCell


class TapeReader(ABC):
    """Abstract base for all tape sources."""

    @abstractmethod
    def lookup(self, index: int) -> Optional[List[TapeCell]]:
        """Cells of output `index` in order, or None when the index cannot be resolved."""
        pass


def create_tape_reader(source: str) -> TapeReader:
    if source.startswith("bob://"):
        source = source[len("bob://"):]

    from .bob import BobTapeReader
    path = Path(source).expanduser().resolve()
    if not path.exists():
        raise ValueError(f"Transaction document not found: {path}")
    return BobTapeReader.from_file(path)


from .memory import MemoryTapeReader
from .bob import BobTapeReader

__all__ = ["TapeReader", "create_tape_reader", "MemoryTapeReader", "BobTapeReader"]
