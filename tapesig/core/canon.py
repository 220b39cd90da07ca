# tapesig/core/canon.py
import struct
from enum import Enum
from typing import Any, Iterable, Tuple, Union

try:
    import jcs
except ImportError:
    raise ImportError("Please install jcs: pip install jcs")

from tapesig.core.errors import EncodingError
from tapesig.core.types import TapeCell

OP_PUSHDATA1 = 0x4C
OP_PUSHDATA2 = 0x4D
OP_PUSHDATA4 = 0x4E
MAX_PUSH_LENGTH = 0x100000000   # exclusive


class SerializationPolicy(str, Enum):
    """How tape cells are serialized into the signed message. Always chosen by the caller."""
    PLAIN = "plain"         # data bytes only, opcodes dropped
    PUSHDATA = "pushdata"   # script-style: length-prefixed data, opcodes as single bytes


def pushdata_len(n: int, argument: str = "length") -> bytes:
    """Minimal-length canonical push prefix for `n` bytes of data."""
    if n < 0:
        raise EncodingError(argument, f"negative push length {n}")
    if n < OP_PUSHDATA1:
        return struct.pack("B", n)
    if n < 0x100:
        return struct.pack("BB", OP_PUSHDATA1, n)
    if n < 0x10000:
        return struct.pack("<BH", OP_PUSHDATA2, n)
    if n < MAX_PUSH_LENGTH:
        return struct.pack("<BI", OP_PUSHDATA4, n)
    raise EncodingError(argument, "Push data too large")


def read_pushdata_len(buf: bytes, offset: int = 0) -> Tuple[int, int]:
    """Inverse of pushdata_len. Returns (length, offset just past the prefix)."""
    try:
        first = buf[offset]
        if first < OP_PUSHDATA1:
            return first, offset + 1
        if first == OP_PUSHDATA1:
            return buf[offset + 1], offset + 2
        if first == OP_PUSHDATA2:
            return struct.unpack_from("<H", buf, offset + 1)[0], offset + 3
        if first == OP_PUSHDATA4:
            return struct.unpack_from("<I", buf, offset + 1)[0], offset + 5
    except (IndexError, struct.error) as e:
        raise EncodingError("prefix", "truncated pushdata prefix", e)
    raise EncodingError("prefix", f"not a pushdata prefix: 0x{first:02x}")


def push(data: bytes) -> bytes:
    return pushdata_len(len(data)) + data


def build_message(cells: Iterable[TapeCell], policy: Union[SerializationPolicy, str]) -> bytes:
    """Rebuild the signed byte message from tape cells, in cell order."""
    policy = SerializationPolicy(policy)
    parts = []
    for cell in cells:
        if policy is SerializationPolicy.PLAIN:
            if not cell.is_opcode:
                parts.append(cell.data)
        elif cell.is_opcode:
            parts.append(struct.pack("B", cell.opcode))
        else:
            parts.append(push(cell.data))
    return b"".join(parts)


def jsonable(obj: Any) -> Any:
    """Make result dicts JSON-safe: bytes become lowercase hex."""
    if isinstance(obj, (bytes, bytearray)):
        return bytes(obj).hex()
    if isinstance(obj, dict):
        return {str(k): jsonable(v) for k, v in obj.items()}
    if isinstance(obj, (list, tuple)):
        return [jsonable(v) for v in obj]
    return obj


def canonical_json(obj: Any) -> bytes:
    """
    Produce deterministic UTF-8 bytes according to RFC 8785 (JSON Canonicalization Scheme).
    Used to compare independently recomputed result records byte for byte.
    """
    return jcs.canonicalize(jsonable(obj))


def canonical_json_str(obj: Any) -> str:
    """Same as above, but returns string (mostly for debugging / CLI output)."""
    return canonical_json(obj).decode("utf-8")
