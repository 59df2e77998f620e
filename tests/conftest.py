"""Shared helpers for aulab tests."""

import struct

import pytest


class ScriptedRng:
    """Stand-in random source returning a fixed sequence of draws."""

    def __init__(self, draws):
        self._draws = list(draws)
        self.calls = 0

    def randint(self, a, b):
        v = self._draws[self.calls]
        self.calls += 1
        assert a <= v <= b
        return v


def au_header(total=40):
    """A Sun .au header padded with an annotation field to `total` bytes."""
    head = struct.pack(">IIIIII", 0x2E736E64, total, 0xFFFFFFFF, 1, 8000, 1)
    return head + b"aulab-test"[: total - len(head)].ljust(total - len(head), b"\x00")


@pytest.fixture
def scripted():
    return ScriptedRng


@pytest.fixture
def header():
    return au_header()
