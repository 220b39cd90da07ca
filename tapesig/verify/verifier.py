# tapesig/verify/verifier.py
import json
import logging
from dataclasses import replace
from typing import Optional, Sequence, Type, TypeVar, Union

from tapesig.chain.derive import ChainBuilder, ChainLeg, ChildDerivation
from tapesig.core.canon import SerializationPolicy
from tapesig.core.encoding import (
    AddressResolver,
    hex_encode,
    index_text,
    normalize_der_signature,
    normalize_digest_hex,
    normalize_pubkey,
    normalize_signature,
    parse_index,
    require,
    to_bytes,
)
from tapesig.core.errors import PreconditionError
from tapesig.core.timestamp import NO_TIMESTAMP, BoundTimestamp, TimestampBinding, bind_timestamp
from tapesig.core.types import (
    Argument,
    ChainRecord,
    ChainResult,
    DescriptorResult,
    PayloadResult,
    SignatureListResult,
    SignatureRecord,
)
from tapesig.crypto.hashing import sha256, tape_hash
from tapesig.crypto.keys import CryptoBackend, Secp256k1Backend
from tapesig.tape import MemoryTapeReader, TapeReader

log = logging.getLogger("tapesig.verify")

R = TypeVar("R")
Index = Union[Argument, int]


def _accumulator(state: Optional[R], cls: Type[R]) -> R:
    """
    A fresh result for the operation to fill: new on first use, otherwise a copy of the
    prior result (which must be the right family). The prior result is never modified.
    """
    if state is None:
        return cls()
    if not isinstance(state, cls):
        raise PreconditionError("state", f"expected {cls.__name__}, got {type(state).__name__}")
    if isinstance(state, SignatureListResult):
        return replace(state, signatures=list(state.signatures))
    return replace(state)


class TapeVerifier:
    """
    Runs the signature operations against injected capabilities:

      tape_reader      where tape cells come from (unresolved index → unverifiable, not an error)
      crypto           signature predicates (defaults to libsecp256k1 via coincurve)
      resolve_address  optional address → pubkey bytes hook; without it addresses pass through

    Every operation takes the accumulated result (or None) plus positional arguments
    and returns the updated result. The prior result is left untouched; precondition failures raise before anything is built.
    """

    def __init__(
        self,
        tape_reader: Optional[TapeReader] = None,
        crypto: Optional[CryptoBackend] = None,
        resolve_address: Optional[AddressResolver] = None,
    ):
        self.tape_reader = tape_reader if tape_reader is not None else MemoryTapeReader({})
        self.crypto = crypto if crypto is not None else Secp256k1Backend()
        self.resolve_address = resolve_address

    # ── helpers ──────────────────────────────────────────────────────────

    def _pubkey(self, value: Argument, argument: str) -> bytes:
        return normalize_pubkey(value, argument, self.resolve_address)

    def _tape_digest(self, index: int, policy: SerializationPolicy) -> Optional[bytes]:
        cells = self.tape_reader.lookup(index)
        if cells is None:
            log.debug("Tape %d not resolvable, signature stays unverified", index)
            return None
        return tape_hash(cells, policy)

    def _message_verify(self, signature: bytes, message: bytes, pubkey: bytes) -> bool:
        return self.crypto.message_verify(signature, message, pubkey) is True

    def tape_hash_hex(self, tape_idx: Index, policy: Union[SerializationPolicy, str] = SerializationPolicy.PUSHDATA) -> Optional[str]:
        """Hex SHA-256 of the rebuilt tape message, or None when the tape is unresolvable."""
        digest = self._tape_digest(parse_index(tape_idx), SerializationPolicy(policy))
        return hex_encode(digest) if digest is not None else None

    # ── tape-backed operations ───────────────────────────────────────────

    def sig_verify(
        self,
        state: Optional[SignatureListResult],
        tape_idx: Index,
        signature: Argument,
        pubkey: Argument,
        timestamp: Union[Argument, int, None] = None,
        binding: Union[TimestampBinding, str] = TimestampBinding.BINARY,
    ) -> SignatureListResult:
        """
        Verify sign(sha256(tape) ++ timestamp) where the tape is serialized script-style.
        The timestamp, if any, is bound as an 8-byte big-endian integer unless
        `binding` selects the decimal-text variant.
        """
        result = _accumulator(state, SignatureListResult)
        require(tape_idx, "tape_idx", allow_int=True)
        require(signature, "signature")
        require(pubkey, "pubkey")

        index = parse_index(tape_idx)
        sig = normalize_signature(signature, "signature")
        key = self._pubkey(pubkey, "pubkey")
        ts = bind_timestamp(timestamp, binding)

        record = SignatureRecord(signature=signature, pubkey=pubkey, timestamp=ts.value)
        digest = self._tape_digest(index, SerializationPolicy.PUSHDATA)
        if digest is not None:
            record.hash = hex_encode(digest)
            record.verified = self._message_verify(sig, ts.apply(digest), key)

        result.signatures.append(record)
        return result

    def double_sig_verify(
        self,
        state: Optional[ChainResult],
        tape_idx: Index,
        parent_sig: Argument,
        parent_pubkey: Argument,
        child_sig: Argument,
        child_pubkey: Argument,
        timestamp: Union[Argument, int, None] = None,
    ) -> ChainResult:
        """
        Parent signs sha256(script-style tape) ++ ts, child signs
        sha256(pushint(idx) ++ idx ++ push(parent_sig) ++ push(parent_pubkey)) ++ ts,
        with ts bound as an 8-byte big-endian integer.
        """
        return self._chain_verify(
            state, tape_idx, parent_sig, parent_pubkey, child_sig, child_pubkey,
            policy=SerializationPolicy.PUSHDATA,
            derivation=ChildDerivation.PUSHDATA,
            ts=bind_timestamp(timestamp, TimestampBinding.BINARY),
        )

    def parent_child_sig_verify(
        self,
        state: Optional[ChainResult],
        tape_idx: Index,
        parent_sig: Argument,
        parent_pubkey: Argument,
        child_sig: Argument,
        child_pubkey: Argument,
    ) -> ChainResult:
        """
        Parent signs sha256(tape data), child signs sha256(idx_text ++ parent_sig ++ parent_pubkey)
        where the parent signature and pubkey are taken exactly as supplied, not decoded.
        """
        return self._chain_verify(
            state, tape_idx, parent_sig, parent_pubkey, child_sig, child_pubkey,
            policy=SerializationPolicy.PLAIN,
            derivation=ChildDerivation.HASH_ONLY,
            ts=NO_TIMESTAMP,
        )

    def _chain_verify(
        self,
        state: Optional[ChainResult],
        tape_idx: Index,
        parent_sig: Argument,
        parent_pubkey: Argument,
        child_sig: Argument,
        child_pubkey: Argument,
        policy: SerializationPolicy,
        derivation: ChildDerivation,
        ts: BoundTimestamp,
    ) -> ChainResult:
        result = _accumulator(state, ChainResult)
        require(tape_idx, "tape_idx", allow_int=True)
        args = [("parent", parent_sig, parent_pubkey), ("child", child_sig, child_pubkey)]
        for name, sig, key in args:
            require(sig, f"{name}_sig")
            require(key, f"{name}_pubkey")

        index = parse_index(tape_idx)
        legs = [
            ChainLeg(
                normalize_signature(sig, f"{name}_sig"),
                self._pubkey(key, f"{name}_pubkey"),
                supplied_signature=to_bytes(sig),
                supplied_pubkey=to_bytes(key),
            )
            for name, sig, key in args
        ]
        records = [SignatureRecord(signature=sig, pubkey=key, timestamp=ts.value) for _, sig, key in args]

        root = self._tape_digest(index, policy)
        if root is not None:
            digests = ChainBuilder(derivation).digests(root, index, index_text(tape_idx), legs)
            # each leg is checked on its own; a failed parent does not stop the child
            for record, leg, digest in zip(records, legs, digests):
                record.hash = hex_encode(digest)
                record.verified = self._message_verify(leg.signature, ts.apply(digest), leg.pubkey)
            log.debug("Chain on tape %d: parent=%s child=%s", index, records[0].verified, records[1].verified)

        result.signatures = ChainRecord(parent=records[0], child=records[1])
        return result

    # ── message operations ───────────────────────────────────────────────

    def ecdsa_sig_verify(
        self,
        state: Optional[SignatureListResult],
        message: Argument,
        signature: Argument,
        pubkey: Argument,
    ) -> SignatureListResult:
        """DER ECDSA signature over sha256(message)."""
        result = _accumulator(state, SignatureListResult)
        require(message, "message")
        require(signature, "signature")
        require(pubkey, "pubkey")

        sig = normalize_der_signature(signature, "signature")
        key = normalize_pubkey(pubkey, "pubkey")
        digest = sha256(to_bytes(message))

        record = SignatureRecord(signature=signature, pubkey=pubkey, hash=hex_encode(digest))
        record.verified = self.crypto.ecdsa_der_verify(sig, digest, key, True) is True
        result.signatures.append(record)
        return result

    def prefix_sig_verify(
        self,
        state: Optional[SignatureListResult],
        prefix: Argument,
        data: Argument,
        signature: Argument,
        pubkey: Argument,
    ) -> SignatureListResult:
        """Signature over the plaintext `prefix.data`."""
        result = _accumulator(state, SignatureListResult)
        require(prefix, "prefix")
        require(data, "data")
        require(signature, "signature")
        require(pubkey, "pubkey")

        if isinstance(prefix, str) and isinstance(data, str):
            message: Argument = prefix + "." + data
        else:
            message = to_bytes(prefix) + b"." + to_bytes(data)
        sig = normalize_signature(signature, "signature")
        key = self._pubkey(pubkey, "pubkey")

        record = SignatureRecord(signature=signature, pubkey=pubkey, message=message)
        record.verified = self._message_verify(sig, to_bytes(message), key)
        result.signatures.append(record)
        return result

    def json_sig_verify(
        self,
        state: Optional[SignatureListResult],
        payload: Argument,
        signature: Argument,
        pubkey: Argument,
    ) -> PayloadResult:
        """Signature over a JSON payload, which is decoded onto `data`."""
        if state is not None and type(state) is SignatureListResult:
            state = PayloadResult(signatures=list(state.signatures))
        result = _accumulator(state, PayloadResult)
        require(payload, "payload")
        require(signature, "signature")
        require(pubkey, "pubkey")

        sig = normalize_signature(signature, "signature")
        key = self._pubkey(pubkey, "pubkey")
        try:
            data = json.loads(payload)
        except ValueError as e:
            raise PreconditionError("payload", f"not valid JSON ({e})") from e

        record = SignatureRecord(signature=signature, pubkey=pubkey, message=payload)
        record.verified = self._message_verify(sig, to_bytes(payload), key)
        result.data = data
        result.signatures.append(record)
        return result

    # ── descriptors ──────────────────────────────────────────────────────

    def file_hash(self, state: Optional[DescriptorResult], mediatype: Argument, hash: Argument) -> DescriptorResult:
        """Flat file reference: media type plus hex SHA-256 (given as hex or raw bytes)."""
        result = _accumulator(state, DescriptorResult)
        require(mediatype, "mediatype")
        require(hash, "hash")
        result.hash = normalize_digest_hex(hash, "hash")
        result.type = mediatype.decode("utf-8") if isinstance(mediatype, (bytes, bytearray)) else mediatype
        return result


def verify_records(records: Sequence[SignatureRecord]) -> bool:
    """True when there is at least one record and every one verified."""
    return bool(records) and all(r.verified for r in records)
