# aulab/core.py
from __future__ import annotations
from dataclasses import dataclass
from enum import Enum
from typing import Iterable

HEADER_LENGTH = 40  # bytes copied verbatim before loss simulation starts


class Mode(str, Enum):
    """Technique used to fill in lost units."""
    SILENT = "silent"
    REPEAT = "repeat"

    @classmethod
    def parse(cls, text) -> "Mode":
        if isinstance(text, Mode):
            return text
        s = str(text).strip().lower()
        for m in cls:
            if m.value == s:
                return m
        raise ValueError(f"Unknown mode: {text!r} (expected 'silent' or 'repeat')")


@dataclass(frozen=True)
class SimConfig:
    mode: Mode
    packet_size: int  # 1 == byte granularity
    percent: int      # success rate, 0..100
    header_length: int = HEADER_LENGTH

    @classmethod
    def byte_granularity(cls, mode, percent: int, header_length: int = HEADER_LENGTH) -> "SimConfig":
        return cls(mode=Mode.parse(mode), packet_size=1, percent=percent, header_length=header_length)

    @classmethod
    def packet_granularity(cls, mode, packet_size: int, percent: int,
                           header_length: int = HEADER_LENGTH) -> "SimConfig":
        return cls(mode=Mode.parse(mode), packet_size=packet_size, percent=percent,
                   header_length=header_length)

    @property
    def is_byte_granularity(self) -> bool:
        return self.packet_size == 1

    def validate(self) -> "SimConfig":
        if not isinstance(self.mode, Mode):
            raise ValueError(f"mode must be a Mode, got {self.mode!r}")
        if isinstance(self.percent, bool) or not isinstance(self.percent, int):
            raise ValueError("percent must be an integer")
        if not (0 <= self.percent <= 100):
            raise ValueError("percent must be within [0, 100]")
        if isinstance(self.packet_size, bool) or not isinstance(self.packet_size, int) or self.packet_size <= 0:
            raise ValueError("packet_size must be a positive integer")
        if self.header_length < 0:
            raise ValueError("header_length must be >= 0")
        return self

    def as_dict(self) -> dict:
        return {
            "mode": self.mode.value,
            "packet_size": self.packet_size,
            "percent": self.percent,
            "header_length": self.header_length,
        }


@dataclass(frozen=True)
class Unit:
    buf: bytes
    idx: int  # payload unit index


class Stage:
    """
    Streaming stage. feed() yields 0..N output units.
    flush() yields buffered tail units when input ends.
    """
    def feed(self, unit: Unit) -> Iterable[Unit]:
        yield unit

    def flush(self) -> Iterable[Unit]:
        return []


class SimulationIOError(RuntimeError):
    """Fatal read/write failure while simulating; wraps the underlying OSError."""
