"""Tests for aulab.stream module."""

import io

import pytest
from aulab.stream import copy_header, iter_units, parse_au_header, sniff_kind

from conftest import au_header


class TrickleReader(io.RawIOBase):
    """Raw stream that hands out at most one byte per read call."""

    def __init__(self, data):
        self._data = data
        self._pos = 0

    def readable(self):
        return True

    def read(self, size=-1):
        if self._pos >= len(self._data):
            return b""
        b = self._data[self._pos:self._pos + 1]
        self._pos += 1
        return b


def test_copy_header_copies_exact_prefix():
    data = bytes(range(60))
    fin, fout = io.BytesIO(data), io.BytesIO()
    head = copy_header(fin, fout, 40)
    assert head == data[:40]
    assert fout.getvalue() == data[:40]
    assert fin.read() == data[40:]


def test_copy_header_short_input():
    fin, fout = io.BytesIO(b"short"), io.BytesIO()
    assert copy_header(fin, fout, 40) == b"short"
    assert fout.getvalue() == b"short"


def test_copy_header_empty_input_writes_nothing():
    fout = io.BytesIO()
    assert copy_header(io.BytesIO(), fout, 40) == b""
    assert fout.getvalue() == b""


def test_copy_header_survives_short_reads():
    data = bytes(range(50))
    fout = io.BytesIO()
    assert copy_header(TrickleReader(data), fout, 40) == data[:40]


def test_iter_units_drops_trailing_partial_packet():
    assert list(iter_units(io.BytesIO(b"abcdefghij"), 4)) == [b"abcd", b"efgh"]


def test_iter_units_byte_granularity_keeps_everything():
    assert list(iter_units(io.BytesIO(b"xyz"), 1)) == [b"x", b"y", b"z"]


def test_iter_units_reassembles_short_reads():
    assert list(iter_units(TrickleReader(b"abcdef"), 3)) == [b"abc", b"def"]


def test_iter_units_rejects_non_positive_size():
    with pytest.raises(ValueError):
        list(iter_units(io.BytesIO(b"abc"), 0))


def test_parse_au_header():
    info = parse_au_header(au_header())
    assert info["data_offset"] == 40
    assert info["data_size"] is None
    assert info["encoding"] == "mulaw-8"
    assert info["sample_rate"] == 8000
    assert info["channels"] == 1


def test_parse_au_header_rejects_other_data():
    assert parse_au_header(b"RIFF" + bytes(36)) is None
    assert parse_au_header(b".snd") is None


def test_sniff_kind(tmp_path):
    au = tmp_path / "a.au"
    au.write_bytes(au_header() + b"\x01\x02")
    raw = tmp_path / "b.bin"
    raw.write_bytes(b"\x00" * 10)
    assert sniff_kind(str(au)) == "au"
    assert sniff_kind(str(raw)) == "raw"
