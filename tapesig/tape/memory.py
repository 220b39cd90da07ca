# tapesig/tape/memory.py
from typing import List, Mapping, Optional, Sequence

from tapesig.core.types import TapeCell
from . import TapeReader


class MemoryTapeReader(TapeReader):
    """Tapes held in a plain mapping of output index → cells."""

    def __init__(self, tapes: Mapping[int, Sequence[TapeCell]]):
        self._tapes = {int(i): tuple(cells) for i, cells in tapes.items()}

    def lookup(self, index: int) -> Optional[List[TapeCell]]:
        cells = self._tapes.get(index)
        if cells is None:
            return None
        return list(cells)
