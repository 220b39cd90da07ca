# tapesig/core/encoding.py
"""
Input normalization for signatures, public keys, tape indexes and digests.

Detection is heuristic and order-sensitive: length is checked first, then the
character set. Values that pass both checks but fail to decode are fatal.
"""
import base64
import binascii
import re
from typing import Callable, Optional, Union

from tapesig.core.errors import EncodingError, PreconditionError
from tapesig.core.types import Argument

BASE64_CHARS = re.compile(rb"[a-zA-Z0-9+/=]+")
HEX_CHARS = re.compile(rb"[a-fA-F0-9]+")
DIGITS = re.compile(rb"[0-9]+")
BASE58_CHARS = re.compile(rb"[1-9A-HJ-NP-Za-km-z]+")

SIGNATURE_B64_LEN = 88      # base64 text of a 65-byte compact signature
DER_SIGNATURE_MAX_LEN = 72  # longest raw DER signature
PUBKEY_HEX_LEN = 66         # hex text of a 33-byte compressed public key
DIGEST_HEX_LEN = 64
ADDRESS_MIN_LEN = 25
ADDRESS_MAX_LEN = 35

AddressResolver = Callable[[str], bytes]


def to_bytes(value: Argument) -> bytes:
    if isinstance(value, str):
        return value.encode("utf-8")
    return bytes(value)


def is_blank(value) -> bool:
    if value is None:
        return True
    if isinstance(value, (str, bytes, bytearray)):
        return len(value) == 0
    return False


def require(value, argument: str, allow_int: bool = False):
    """Raise PreconditionError naming `argument` when value is missing, empty or not text/bytes."""
    if is_blank(value):
        raise PreconditionError(argument)
    if isinstance(value, (str, bytes, bytearray)):
        return value
    if allow_int and isinstance(value, int) and not isinstance(value, bool):
        return value
    raise PreconditionError(argument, "must be text or bytes")


def b64decode(raw: bytes, argument: str) -> bytes:
    try:
        return base64.b64decode(raw, validate=True)
    except binascii.Error as e:
        raise EncodingError(argument, f"looks like base64 but does not decode ({e})", e)


def hex_decode(raw: bytes, argument: str) -> bytes:
    try:
        return binascii.unhexlify(raw)
    except binascii.Error as e:
        raise EncodingError(argument, f"looks like hex but does not decode ({e})", e)


def hex_encode(data: bytes) -> str:
    return binascii.hexlify(data).decode("ascii")


def normalize_signature(value: Argument, argument: str = "signature") -> bytes:
    """Compact (65-byte) signature: base64 text of exactly 88 chars is decoded, anything else is raw."""
    raw = to_bytes(value)
    if len(raw) == SIGNATURE_B64_LEN and BASE64_CHARS.fullmatch(raw):
        return b64decode(raw, argument)
    return raw


def normalize_der_signature(value: Argument, argument: str = "signature") -> bytes:
    """DER signature: anything longer than a raw DER signature with a base64 charset is decoded."""
    raw = to_bytes(value)
    if len(raw) > DER_SIGNATURE_MAX_LEN and BASE64_CHARS.fullmatch(raw):
        return b64decode(raw, argument)
    return raw


def looks_like_address(raw: bytes) -> bool:
    return ADDRESS_MIN_LEN <= len(raw) <= ADDRESS_MAX_LEN and BASE58_CHARS.fullmatch(raw) is not None


def normalize_pubkey(
    value: Argument,
    argument: str = "pubkey",
    resolve_address: Optional[AddressResolver] = None,
) -> bytes:
    """
    66 hex chars → 33 raw bytes. An address string goes through `resolve_address`
    when one is injected, otherwise it is passed on untouched for the backend to handle.
    """
    raw = to_bytes(value)
    if len(raw) == PUBKEY_HEX_LEN and HEX_CHARS.fullmatch(raw):
        return hex_decode(raw, argument)
    if resolve_address is not None and looks_like_address(raw):
        return bytes(resolve_address(raw.decode("ascii")))
    return raw


def parse_index(value: Union[Argument, int], argument: str = "tape_idx") -> int:
    """Decimal text → int; anything else is the legacy single unsigned byte form."""
    require(value, argument, allow_int=True)
    if isinstance(value, int):
        if value < 0:
            raise PreconditionError(argument, "must be unsigned")
        return value
    raw = to_bytes(value)
    if DIGITS.fullmatch(raw):
        return int(raw)
    return raw[0]


def index_text(value: Union[Argument, int]) -> bytes:
    """The index argument exactly as given, as bytes."""
    if isinstance(value, int) and not isinstance(value, bool):
        return str(value).encode("ascii")
    return to_bytes(value)


def normalize_digest_hex(value: Argument, argument: str = "hash") -> str:
    """A 64-char hex digest is kept verbatim, anything else is raw digest bytes to hex-encode."""
    raw = to_bytes(value)
    if len(raw) == DIGEST_HEX_LEN and HEX_CHARS.fullmatch(raw):
        return raw.decode("ascii")
    return hex_encode(raw)
