# tapesig/core/types.py
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Union

Argument = Union[str, bytes]  # operation arguments arrive as text or raw binary


@dataclass(frozen=True)
class TapeCell:
    """One tape element: either pushed data bytes or a bare opcode, never both."""
    data: Optional[bytes] = None
    opcode: Optional[int] = None

    def __post_init__(self):
        if (self.data is None) == (self.opcode is None):
            raise ValueError("TapeCell needs exactly one of data or opcode")
        if self.opcode is not None and not 0 <= self.opcode <= 0xFF:
            raise ValueError(f"Opcode out of range: {self.opcode}")

    @classmethod
    def push(cls, data: Union[bytes, str]) -> "TapeCell":
        if isinstance(data, str):
            data = data.encode("utf-8")
        return cls(data=bytes(data))

    @classmethod
    def op(cls, opcode: int) -> "TapeCell":
        return cls(opcode=opcode)

    @property
    def is_opcode(self) -> bool:
        return self.opcode is not None


@dataclass
class SignatureRecord:
    """Outcome of one signature check. signature/pubkey echo the arguments as supplied."""
    signature: Argument
    pubkey: Argument
    verified: bool = False
    hash: Optional[str] = None                  # hex sha256, absent when the message could not be built
    timestamp: Optional[int] = None             # absent (not zero) when no timestamp was given
    message: Optional[Argument] = None          # plaintext message, for plaintext schemes only

    def to_dict(self) -> Dict[str, Any]:
        d: Dict[str, Any] = {}
        if self.hash is not None:
            d["hash"] = self.hash
        if self.message is not None:
            d["message"] = self.message
        d["signature"] = self.signature
        d["pubkey"] = self.pubkey
        if self.timestamp is not None:
            d["timestamp"] = self.timestamp
        d["verified"] = self.verified
        return d


@dataclass
class ChainRecord:
    """Parent and child legs of a chained signature. Both are always reported."""
    parent: SignatureRecord
    child: SignatureRecord

    def to_dict(self) -> Dict[str, Any]:
        return {"parent": self.parent.to_dict(), "child": self.child.to_dict()}


@dataclass
class SignatureListResult:
    signatures: List[SignatureRecord] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {"signatures": [s.to_dict() for s in self.signatures]}


@dataclass
class PayloadResult(SignatureListResult):
    data: Any = None

    def to_dict(self) -> Dict[str, Any]:
        d = {"data": self.data}
        d.update(super().to_dict())
        return d


@dataclass
class ChainResult:
    signatures: Optional[ChainRecord] = None

    def to_dict(self) -> Dict[str, Any]:
        if self.signatures is None:
            return {}
        return {"signatures": self.signatures.to_dict()}


@dataclass
class DescriptorResult:
    hash: Optional[str] = None
    type: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        d: Dict[str, Any] = {}
        if self.hash is not None:
            d["hash"] = self.hash
        if self.type is not None:
            d["type"] = self.type
        return d


Result = Union[SignatureListResult, ChainResult, DescriptorResult]
