# tapesig/crypto/keys.py
"""
Signature verification capabilities.

The verifier only ever talks to a CryptoBackend, so tests can swap in a
deterministic fake. Secp256k1Backend is the real thing, built on libsecp256k1
through coincurve.
"""
import logging
from abc import ABC, abstractmethod
from typing import Optional, Union

import base58
from coincurve import PublicKey

from tapesig.crypto.hashing import hash160, sha256, signed_message_digest

log = logging.getLogger("tapesig.crypto")

COMPACT_SIGNATURE_LEN = 65
P2PKH_VERSIONS = (0x00, 0x6F)   # mainnet, testnet
PUBKEY_PREFIXES = (0x02, 0x03, 0x04)


class CryptoBackend(ABC):
    """Pure predicates. Both must return False, never raise, on a mismatch or unparsable input."""

    @abstractmethod
    def message_verify(self, signature: bytes, message: bytes, pubkey: bytes) -> bool:
        """65-byte recoverable signature over `message`, checked against a pubkey or address."""

    @abstractmethod
    def ecdsa_der_verify(self, signature: bytes, digest: bytes, pubkey: bytes, hash_before_verify: bool) -> bool:
        """DER-encoded ECDSA signature. With hash_before_verify the digest is SHA-256'd once more."""


def address_hash160(address: Union[str, bytes]) -> Optional[bytes]:
    """hash160 payload of a base58check P2PKH address, or None if it is not one."""
    try:
        decoded = base58.b58decode_check(address)
    except ValueError:
        return None
    if len(decoded) != 21 or decoded[0] not in P2PKH_VERSIONS:
        return None
    return decoded[1:]


def pubkey_to_address(pubkey: bytes, version: int = 0x00) -> str:
    return base58.b58encode_check(bytes([version]) + hash160(pubkey)).decode("ascii")


def is_raw_pubkey(pubkey: bytes) -> bool:
    return len(pubkey) in (33, 65) and pubkey[0] in PUBKEY_PREFIXES


class Secp256k1Backend(CryptoBackend):

    def message_verify(self, signature: bytes, message: bytes, pubkey: bytes) -> bool:
        if len(signature) != COMPACT_SIGNATURE_LEN:
            log.debug("Rejecting signature of length %d (expected %d)", len(signature), COMPACT_SIGNATURE_LEN)
            return False
        header = signature[0]
        if not 27 <= header <= 34:
            log.debug("Rejecting signature with header byte %d", header)
            return False
        recid = (header - 27) & 3
        compressed = header >= 31

        digest = signed_message_digest(message)
        try:
            recovered = PublicKey.from_signature_and_message(
                signature[1:] + bytes([recid]), digest, hasher=None
            )
        except Exception:  # coincurve raises ValueError on unrecoverable input
            return False

        if is_raw_pubkey(pubkey):
            try:
                claimed = PublicKey(pubkey)
            except Exception:  # not a point on the curve
                return False
            return recovered.format(compressed=True) == claimed.format(compressed=True)

        expected = address_hash160(pubkey)
        if expected is None:
            log.debug("Pubkey is neither a raw key nor a P2PKH address")
            return False
        return hash160(recovered.format(compressed=compressed)) == expected

    def ecdsa_der_verify(self, signature: bytes, digest: bytes, pubkey: bytes, hash_before_verify: bool) -> bool:
        try:
            key = PublicKey(pubkey)
            return key.verify(signature, digest, hasher=sha256 if hash_before_verify else None)
        except Exception:  # coincurve raises ValueError on bad DER, bad key or wrong digest size
            return False
