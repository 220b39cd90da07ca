# tapesig/tape/bob.py
import base64
import binascii
import json
import logging
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

from tapesig.core.types import TapeCell
from . import TapeReader

log = logging.getLogger("tapesig.tape")


def parse_cell(cell: Dict[str, Any]) -> TapeCell:
    """BOB cell → TapeCell. `op` marks an opcode; data comes from `b` (base64), `h` (hex) or `s` (utf-8)."""
    if cell.get("op") is not None:
        return TapeCell.op(int(cell["op"]))
    try:
        if "b" in cell:
            return TapeCell.push(base64.b64decode(cell["b"], validate=True))
        if "h" in cell:
            return TapeCell.push(binascii.unhexlify(cell["h"]))
    except binascii.Error as e:
        raise ValueError(f"Undecodable cell data at position {cell.get('ii')}: {e}") from e
    if "s" in cell:
        return TapeCell.push(cell["s"])
    raise ValueError(f"Cell has neither opcode nor data: {cell!r}")


def parse_output(output: Dict[str, Any]) -> Optional[List[TapeCell]]:
    """Flatten all tape segments of one output into a single ordered cell list."""
    tape = output.get("tape")
    if not tape:
        return None
    raw_cells = [c for segment in tape for c in segment.get("cell", [])]
    if raw_cells and all("ii" in c for c in raw_cells):
        raw_cells = sorted(raw_cells, key=lambda c: int(c["ii"]))
    return [parse_cell(c) for c in raw_cells]


class BobTapeReader(TapeReader):
    """
    Tapes of a transaction in BOB JSON form:
    {"out": [{"tape": [{"cell": [{"ii": 0, "op": 0}, {"ii": 2, "b": "Zm9v"}, ...]}]}]}

    The output index is the position in the `out` list.
    """

    def __init__(self, tx: Dict[str, Any]):
        outputs = tx.get("out")
        if not isinstance(outputs, list):
            raise ValueError("Transaction document has no 'out' list")
        self.txid = tx.get("tx", {}).get("h") if isinstance(tx.get("tx"), dict) else tx.get("h")
        self._tapes = [parse_output(o) if isinstance(o, dict) else None for o in outputs]
        log.debug("Loaded %d outputs from tx %s", len(self._tapes), self.txid or "<unknown>")

    @classmethod
    def from_file(cls, path: Union[str, Path]) -> "BobTapeReader":
        with open(path, "r", encoding="utf-8") as f:
            return cls(json.load(f))

    def lookup(self, index: int) -> Optional[List[TapeCell]]:
        if not 0 <= index < len(self._tapes):
            return None
        cells = self._tapes[index]
        return list(cells) if cells is not None else None
