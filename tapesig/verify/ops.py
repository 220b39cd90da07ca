# tapesig/verify/ops.py
"""
Name-based dispatch over a plain dict accumulator.

This is the outer boundary for hosts that thread one free-form result map
through a sequence of operations. Inside, every operation works on its typed
result; here the typed result is merged back into the map.
"""
from dataclasses import dataclass
from typing import Any, Dict, List, Mapping, Optional

from tapesig.core.errors import PreconditionError
from tapesig.verify.verifier import TapeVerifier

LIST = "list"
PAYLOAD = "payload"
CHAIN = "chain"
DESCRIPTOR = "descriptor"


@dataclass(frozen=True)
class Operation:
    name: str
    family: str
    max_args: int


OPERATIONS: Dict[str, Operation] = {
    op.name: op
    for op in [
        Operation("sig_verify", LIST, 4),
        Operation("double_sig_verify", CHAIN, 6),
        Operation("parent_child_sig_verify", CHAIN, 5),
        Operation("ecdsa_sig_verify", LIST, 3),
        Operation("prefix_sig_verify", LIST, 4),
        Operation("json_sig_verify", PAYLOAD, 3),
        Operation("file_hash", DESCRIPTOR, 2),
    ]
}


def _check_shape(op: Operation, state: Mapping[str, Any]) -> None:
    existing = state.get("signatures")
    if existing is None:
        return
    if op.family in (LIST, PAYLOAD) and not isinstance(existing, list):
        raise PreconditionError("state", f"{op.name} needs 'signatures' to be a list")
    if op.family == CHAIN and not isinstance(existing, Mapping):
        raise PreconditionError("state", f"{op.name} needs 'signatures' to be a parent/child map")


def _merge(op: Operation, state: Dict[str, Any], produced: Dict[str, Any]) -> Dict[str, Any]:
    merged = dict(state)
    if op.family in (LIST, PAYLOAD):
        new_sigs: List[Any] = produced.pop("signatures", [])
        merged["signatures"] = list(state.get("signatures") or []) + new_sigs
        merged.update(produced)
    elif op.family == CHAIN:
        sigs = dict(state.get("signatures") or {})
        sigs.update(produced.get("signatures", {}))
        merged["signatures"] = sigs
    else:
        merged.update(produced)
    return merged


def apply(name: str, state: Optional[Mapping[str, Any]], *args, verifier: TapeVerifier) -> Dict[str, Any]:
    """
    Run operation `name` with positional `args` against `state` and return the new state.
    The input map is left untouched. Missing trailing arguments count as absent.
    """
    op = OPERATIONS.get(name)
    if op is None:
        raise PreconditionError("operation", f"unknown operation '{name}'")
    if state is None:
        state = {}
    if not isinstance(state, Mapping):
        raise PreconditionError("state", "must be a map")
    if len(args) > op.max_args:
        raise PreconditionError("arguments", f"{name} takes at most {op.max_args} arguments, got {len(args)}")
    _check_shape(op, state)

    padded = list(args) + [None] * (op.max_args - len(args))
    result = getattr(verifier, name)(None, *padded)
    return _merge(op, dict(state), result.to_dict())


def run(steps, verifier: TapeVerifier, state: Optional[Mapping[str, Any]] = None) -> Dict[str, Any]:
    """Apply a sequence of (name, args) steps, threading the state through."""
    current = dict(state or {})
    for name, args in steps:
        current = apply(name, current, *args, verifier=verifier)
    return current
