# tapesig/cli/main.py
"""
CLI for checking signatures over transaction tape data.
"""

import os
from pathlib import Path
from typing import List, Optional, Tuple

import typer
from rich.console import Console
from rich.table import Table

from tapesig.chain.derive import ChildDerivation
from tapesig.core.canon import SerializationPolicy, canonical_json_str
from tapesig.core.errors import PreconditionError
from tapesig.core.timestamp import TimestampBinding
from tapesig.core.types import SignatureRecord
from tapesig.tape import create_tape_reader
from tapesig.verify.verifier import TapeVerifier, verify_records

app = typer.Typer(
    name="tapesig",
    help="Verify signatures over transaction tape data",
    add_completion=False,
    no_args_is_help=True,
)

console = Console()

TX_ENV_VAR = "TAPESIG_TX_PATH"


def get_tx_path(tx_flag: Optional[Path] = None) -> Path:
    """Resolve the transaction document in this order:
    1. --tx flag
    2. TAPESIG_TX_PATH environment variable
    """
    if tx_flag:
        return tx_flag.resolve()
    env_path = os.environ.get(TX_ENV_VAR)
    if env_path:
        return Path(env_path).resolve()

    console.print("[red]No transaction document given.[/]")
    console.print("[yellow]To get started:[/]")
    console.print("  • Pass a BOB-format transaction JSON: tapesig verify 1 <sig> <pubkey> --tx tx.json")
    console.print(f"  • Or set env var: export {TX_ENV_VAR}=/path/to/tx.json")
    raise typer.Exit(1)


def load_verifier(tx: Optional[Path]) -> TapeVerifier:
    path = get_tx_path(tx)
    if not path.exists():
        console.print(f"[red]Transaction document not found: {path}[/]")
        raise typer.Exit(1)
    try:
        reader = create_tape_reader(str(path))
    except (ValueError, OSError) as e:
        console.print(f"[red]Failed to read transaction document: {str(e)}[/]")
        raise typer.Exit(1)
    return TapeVerifier(tape_reader=reader)


def show(title: str, payload: dict, rows: List[Tuple[str, SignatureRecord]], as_json: bool) -> None:
    """Print the result and exit non-zero unless every signature verified."""
    if as_json:
        typer.echo(canonical_json_str(payload))
    else:
        table = Table(title=title)
        table.add_column("Leg")
        table.add_column("Hash / Message")
        table.add_column("Timestamp")
        table.add_column("Verified")
        for label, rec in rows:
            shown = rec.hash or (str(rec.message) if rec.message is not None else "—")
            ts = str(rec.timestamp) if rec.timestamp is not None else "—"
            mark = "[green]✓[/]" if rec.verified else "[red]✗[/]"
            table.add_row(label, shown, ts, mark)
        console.print(table)

    if not verify_records([rec for _, rec in rows]):
        raise typer.Exit(1)


def fail(e: Exception) -> None:
    console.print(f"[red]{str(e)}[/]")
    raise typer.Exit(1)


@app.command("hash")
def tape_hash(
    index: str = typer.Argument(..., help="Output index of the tape"),
    tx: Optional[Path] = typer.Option(None, "--tx", help=f"BOB transaction JSON (overrides {TX_ENV_VAR})"),
    policy: SerializationPolicy = typer.Option(SerializationPolicy.PUSHDATA, "--policy", help="Cell serialization"),
):
    """Print the SHA-256 of the message rebuilt from a tape."""
    verifier = load_verifier(tx)
    try:
        digest = verifier.tape_hash_hex(index, policy)
    except PreconditionError as e:
        fail(e)

    if digest is None:
        console.print(f"[yellow]Tape {index} could not be resolved[/]")
        raise typer.Exit(1)
    typer.echo(digest)


@app.command()
def verify(
    index: str = typer.Argument(..., help="Output index of the tape"),
    signature: str = typer.Argument(..., help="Base64 compact signature"),
    pubkey: str = typer.Argument(..., help="Hex pubkey or address"),
    timestamp: Optional[str] = typer.Option(None, "--timestamp", "-t", help="Unix timestamp"),
    binding: TimestampBinding = typer.Option(TimestampBinding.BINARY, "--binding", help="Timestamp suffix form"),
    tx: Optional[Path] = typer.Option(None, "--tx", help=f"BOB transaction JSON (overrides {TX_ENV_VAR})"),
    as_json: bool = typer.Option(False, "--json", help="Print canonical JSON"),
):
    """Verify a signature over a tape (optionally timestamped)."""
    verifier = load_verifier(tx)
    try:
        result = verifier.sig_verify(None, index, signature, pubkey, timestamp, binding)
    except PreconditionError as e:
        fail(e)
    show("Tape signature", result.to_dict(), [("signature", s) for s in result.signatures], as_json)


@app.command()
def chain(
    index: str = typer.Argument(..., help="Output index of the tape"),
    parent_sig: str = typer.Argument(...),
    parent_pubkey: str = typer.Argument(...),
    child_sig: str = typer.Argument(...),
    child_pubkey: str = typer.Argument(...),
    variant: ChildDerivation = typer.Option(ChildDerivation.PUSHDATA, "--variant", help="Child message derivation"),
    timestamp: Optional[str] = typer.Option(None, "--timestamp", "-t", help="Unix timestamp (pushdata variant only)"),
    tx: Optional[Path] = typer.Option(None, "--tx", help=f"BOB transaction JSON (overrides {TX_ENV_VAR})"),
    as_json: bool = typer.Option(False, "--json", help="Print canonical JSON"),
):
    """Verify a parent → child signature chain."""
    if variant is ChildDerivation.HASH_ONLY and timestamp:
        console.print("[red]The hash_only variant does not bind a timestamp[/]")
        raise typer.Exit(1)

    verifier = load_verifier(tx)
    try:
        if variant is ChildDerivation.PUSHDATA:
            result = verifier.double_sig_verify(None, index, parent_sig, parent_pubkey, child_sig, child_pubkey, timestamp)
        else:
            result = verifier.parent_child_sig_verify(None, index, parent_sig, parent_pubkey, child_sig, child_pubkey)
    except PreconditionError as e:
        fail(e)
    rows = [("parent", result.signatures.parent), ("child", result.signatures.child)]
    show("Chained signature", result.to_dict(), rows, as_json)


@app.command()
def ecdsa(
    message: str = typer.Argument(..., help="Message (hashed with SHA-256)"),
    signature: str = typer.Argument(..., help="DER signature, raw or base64"),
    pubkey: str = typer.Argument(..., help="Hex pubkey"),
    as_json: bool = typer.Option(False, "--json", help="Print canonical JSON"),
):
    """Verify a DER-encoded ECDSA signature over a message."""
    try:
        result = TapeVerifier().ecdsa_sig_verify(None, message, signature, pubkey)
    except PreconditionError as e:
        fail(e)
    show("ECDSA signature", result.to_dict(), [("signature", s) for s in result.signatures], as_json)


@app.command()
def prefix(
    prefix_: str = typer.Argument(..., metavar="PREFIX"),
    data: str = typer.Argument(...),
    signature: str = typer.Argument(..., help="Base64 compact signature"),
    pubkey: str = typer.Argument(..., help="Hex pubkey or address"),
    as_json: bool = typer.Option(False, "--json", help="Print canonical JSON"),
):
    """Verify a signature over PREFIX.DATA."""
    try:
        result = TapeVerifier().prefix_sig_verify(None, prefix_, data, signature, pubkey)
    except PreconditionError as e:
        fail(e)
    show("Prefixed signature", result.to_dict(), [("signature", s) for s in result.signatures], as_json)


@app.command()
def payload(
    payload_: str = typer.Argument(..., metavar="PAYLOAD", help="JSON text"),
    signature: str = typer.Argument(..., help="Base64 compact signature"),
    pubkey: str = typer.Argument(..., help="Hex pubkey or address"),
    as_json: bool = typer.Option(False, "--json", help="Print canonical JSON"),
):
    """Verify a signature over a JSON payload and show the decoded data."""
    try:
        result = TapeVerifier().json_sig_verify(None, payload_, signature, pubkey)
    except PreconditionError as e:
        fail(e)
    show("JSON payload signature", result.to_dict(), [("signature", s) for s in result.signatures], as_json)


@app.command("file-hash")
def file_hash(
    mediatype: str = typer.Argument(..., help="Media type, e.g. text/plain"),
    hash_: str = typer.Argument(..., metavar="HASH", help="Hex SHA-256 of the file"),
):
    """Print a file hash descriptor as canonical JSON."""
    try:
        result = TapeVerifier().file_hash(None, mediatype, hash_)
    except PreconditionError as e:
        fail(e)
    typer.echo(canonical_json_str(result.to_dict()))


if __name__ == "__main__":
    app()
