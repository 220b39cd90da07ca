# tests/test_tape.py
import json

import pytest

from tapesig.core.types import TapeCell
from tapesig.tape import BobTapeReader, MemoryTapeReader, create_tape_reader
from tapesig.tape.bob import parse_cell, parse_output

from conftest import BOB_TX


def test_bob_reader_lookup(tape_reader):
    cells = tape_reader.lookup(1)
    assert cells == [TapeCell.op(0), TapeCell.op(106), TapeCell.push(b"foo"), TapeCell.push(b"bar")]


def test_bob_reader_unresolvable(tape_reader):
    assert tape_reader.lookup(0) is None   # output without a tape
    assert tape_reader.lookup(2) is None
    assert tape_reader.lookup(-1) is None


def test_bob_reader_returns_copies(tape_reader):
    tape_reader.lookup(1).clear()
    assert len(tape_reader.lookup(1)) == 4


def test_bob_reader_requires_outputs():
    with pytest.raises(ValueError):
        BobTapeReader({"in": []})


def test_parse_cell_sources():
    assert parse_cell({"h": "666f6f"}) == TapeCell.push(b"foo")
    assert parse_cell({"s": "foo"}) == TapeCell.push(b"foo")
    assert parse_cell({"b": "Zm9v", "s": "ignored"}) == TapeCell.push(b"foo")
    assert parse_cell({"op": 106, "ops": "OP_RETURN"}) == TapeCell.op(106)


def test_parse_cell_malformed():
    with pytest.raises(ValueError):
        parse_cell({"i": 0})
    with pytest.raises(ValueError):
        parse_cell({"b": "not base64!"})


def test_parse_output_orders_by_position():
    output = {"tape": [{"cell": [{"ii": 1, "s": "bar"}]}, {"cell": [{"ii": 0, "s": "foo"}]}]}
    assert parse_output(output) == [TapeCell.push(b"foo"), TapeCell.push(b"bar")]


def test_memory_reader():
    reader = MemoryTapeReader({3: [TapeCell.push(b"x")]})
    assert reader.lookup(3) == [TapeCell.push(b"x")]
    assert reader.lookup(0) is None


def test_create_tape_reader_from_file(tmp_path):
    path = tmp_path / "tx.json"
    path.write_text(json.dumps(BOB_TX))

    reader = create_tape_reader(str(path))
    assert isinstance(reader, BobTapeReader)
    assert len(reader.lookup(1)) == 4

    reader = create_tape_reader(f"bob://{path}")
    assert isinstance(reader, BobTapeReader)


def test_create_tape_reader_missing_file(tmp_path):
    with pytest.raises(ValueError):
        create_tape_reader(str(tmp_path / "missing.json"))
