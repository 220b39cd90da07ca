# tapesig/chain/derive.py
"""
Parent → child signature chaining.

A child signature commits to "this parent signature at this tape position":
its message is derived only from the tape index and the parent's signature and
public key, never from the tape itself and never from anything further up.
Two historical derivations exist and both are supported as-is:

    hash_only:  sha256(index_text ++ parent_sig ++ parent_pubkey), arguments as supplied
    pushdata:   sha256(pushint(index) ++ byte(index) ++ push(parent_sig) ++ push(parent_pubkey))
"""
import struct
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Dict, List, Optional, Sequence, Union

from tapesig.core.canon import push, pushdata_len
from tapesig.core.errors import EncodingError
from tapesig.crypto.hashing import sha256


@dataclass(frozen=True)
class ParentLink:
    """Everything a child derivation is allowed to see about its parent."""
    index: int              # parsed tape index
    index_text: bytes       # tape index argument exactly as given
    signature: bytes        # parent signature, normalized or as supplied per derivation
    pubkey: bytes           # parent pubkey, normalized or as supplied per derivation


@dataclass(frozen=True)
class ChainLeg:
    """One signer. `signature`/`pubkey` are normalized; the supplied_* fields keep the argument bytes."""
    signature: bytes
    pubkey: bytes
    supplied_signature: Optional[bytes] = None
    supplied_pubkey: Optional[bytes] = None


class ChildDerivation(str, Enum):
    HASH_ONLY = "hash_only"
    PUSHDATA = "pushdata"


def derive_hash_only(link: ParentLink) -> bytes:
    return sha256(link.index_text + link.signature + link.pubkey)


def derive_pushdata(link: ParentLink) -> bytes:
    if link.index > 0xFF:
        raise EncodingError("tape_idx", f"index {link.index} does not fit the single-byte form")
    message = pushdata_len(link.index, "tape_idx") + struct.pack("B", link.index)
    message += push(link.signature) + push(link.pubkey)
    return sha256(message)


DERIVATIONS: Dict[ChildDerivation, Callable[[ParentLink], bytes]] = {
    ChildDerivation.HASH_ONLY: derive_hash_only,
    ChildDerivation.PUSHDATA: derive_pushdata,
}


# hash_only commits to the parent arguments byte for byte (base64/hex text stays text)
COMMITS_TO_SUPPLIED = {
    ChildDerivation.HASH_ONLY: True,
    ChildDerivation.PUSHDATA: False,
}


def derive_child_hash(link: ParentLink, derivation: Union[ChildDerivation, str]) -> bytes:
    return DERIVATIONS[ChildDerivation(derivation)](link)


class ChainBuilder:
    """
    Computes the digest each leg of a chain is verified against.
    Leg 0 gets the root digest (the tape hash); every later leg's digest is derived
    from the leg immediately before it.
    """

    def __init__(self, derivation: Union[ChildDerivation, str]):
        self.derivation = ChildDerivation(derivation)

    def link(self, index: int, index_text: bytes, parent: ChainLeg) -> ParentLink:
        if COMMITS_TO_SUPPLIED[self.derivation]:
            signature = parent.supplied_signature if parent.supplied_signature is not None else parent.signature
            pubkey = parent.supplied_pubkey if parent.supplied_pubkey is not None else parent.pubkey
            return ParentLink(index, index_text, signature, pubkey)
        return ParentLink(index, index_text, parent.signature, parent.pubkey)

    def digests(self, root: bytes, index: int, index_text: bytes, legs: Sequence[ChainLeg]) -> List[bytes]:
        out = [root]
        for previous in legs[:-1]:
            out.append(derive_child_hash(self.link(index, index_text, previous), self.derivation))
        return out
