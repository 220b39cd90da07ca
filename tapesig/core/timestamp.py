# tapesig/core/timestamp.py
"""
Timestamp binding: an optional timestamp suffix appended to the message hash
before verification, plus the integer value reported on the signature record.

Two incompatible variants are in use and are kept apart on purpose:

    TEXT    hash ++ "1599495325"                  (selectable on sig_verify)
    BINARY  hash ++ 00 00 00 00 5f 56 5c 9d       (sig_verify, double_sig_verify)
"""
import struct
from dataclasses import dataclass
from enum import Enum
from typing import Optional, Union

from tapesig.core.encoding import DIGITS, is_blank, to_bytes
from tapesig.core.errors import PreconditionError
from tapesig.core.types import Argument

TIMESTAMP_WIDTH = 8
MAX_TIMESTAMP = 2 ** 64


class TimestampBinding(str, Enum):
    TEXT = "text"
    BINARY = "binary"


@dataclass(frozen=True)
class BoundTimestamp:
    suffix: bytes = b""
    value: Optional[int] = None

    def apply(self, digest: bytes) -> bytes:
        return digest + self.suffix


NO_TIMESTAMP = BoundTimestamp()


def _raw(timestamp, argument: str) -> bytes:
    if not isinstance(timestamp, (str, bytes, bytearray)):
        raise PreconditionError(argument, "must be text, bytes or an unsigned int")
    return to_bytes(timestamp)


def _check_range(value: int, argument: str) -> int:
    if not 0 <= value < MAX_TIMESTAMP:
        raise PreconditionError(argument, f"timestamp out of range: {value}")
    return value


def bind_text_timestamp(timestamp: Union[Argument, int, None], argument: str = "timestamp") -> BoundTimestamp:
    """Decimal text appended verbatim. An 8-byte binary value is also appended verbatim and read big-endian."""
    if is_blank(timestamp):
        return NO_TIMESTAMP
    if isinstance(timestamp, int) and not isinstance(timestamp, bool):
        value = _check_range(timestamp, argument)
        return BoundTimestamp(str(value).encode("ascii"), value)
    raw = _raw(timestamp, argument)
    if DIGITS.fullmatch(raw):
        return BoundTimestamp(raw, _check_range(int(raw), argument))
    if len(raw) == TIMESTAMP_WIDTH:
        return BoundTimestamp(raw, struct.unpack(">Q", raw)[0])
    raise PreconditionError(argument, "must be decimal text or an 8-byte big-endian integer")


def bind_binary_timestamp(timestamp: Union[Argument, int, None], argument: str = "timestamp") -> BoundTimestamp:
    """
    Fixed 8-byte big-endian suffix. Digit strings longer than 8 chars are packed;
    an 8-byte value is taken as already packed (so an 8-digit string is read as binary).
    """
    if is_blank(timestamp):
        return NO_TIMESTAMP
    if isinstance(timestamp, int) and not isinstance(timestamp, bool):
        value = _check_range(timestamp, argument)
        return BoundTimestamp(struct.pack(">Q", value), value)
    raw = _raw(timestamp, argument)
    if len(raw) > TIMESTAMP_WIDTH and DIGITS.fullmatch(raw):
        value = _check_range(int(raw), argument)
        return BoundTimestamp(struct.pack(">Q", value), value)
    if len(raw) == TIMESTAMP_WIDTH:
        return BoundTimestamp(raw, struct.unpack(">Q", raw)[0])
    raise PreconditionError(argument, "must be decimal text longer than 8 digits or 8 packed bytes")


BINDERS = {
    TimestampBinding.TEXT: bind_text_timestamp,
    TimestampBinding.BINARY: bind_binary_timestamp,
}


def bind_timestamp(timestamp, binding: Union[TimestampBinding, str], argument: str = "timestamp") -> BoundTimestamp:
    return BINDERS[TimestampBinding(binding)](timestamp, argument)
