# tapesig/crypto/hashing.py
import hashlib
import struct
from typing import Iterable, Union

from tapesig.core.canon import SerializationPolicy, build_message
from tapesig.core.types import TapeCell

try:
    from Crypto.Hash import RIPEMD160
except ImportError:
    raise ImportError("Please install pycryptodome: pip install pycryptodome")

SIGNED_MESSAGE_MAGIC = b"Bitcoin Signed Message:\n"


def sha256(data: bytes) -> bytes:
    return hashlib.sha256(data).digest()


def tape_hash(cells: Iterable[TapeCell], policy: Union[SerializationPolicy, str]) -> bytes:
    """Single-round SHA-256 of the message rebuilt from tape cells."""
    return sha256(build_message(cells, policy))


def hash160(data: bytes) -> bytes:
    return RIPEMD160.new(sha256(data)).digest()


def varint(n: int) -> bytes:
    if n < 0xFD:
        return struct.pack("B", n)
    if n <= 0xFFFF:
        return struct.pack("<BH", 0xFD, n)
    if n <= 0xFFFFFFFF:
        return struct.pack("<BI", 0xFE, n)
    return struct.pack("<BQ", 0xFF, n)


def signed_message_digest(message: bytes) -> bytes:
    """Double SHA-256 over the magic-prefixed message, as used by the message-signing scheme."""
    payload = varint(len(SIGNED_MESSAGE_MAGIC)) + SIGNED_MESSAGE_MAGIC + varint(len(message)) + message
    return sha256(sha256(payload))
