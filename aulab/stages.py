# aulab/stages.py
from __future__ import annotations

import random
from dataclasses import dataclass
from typing import Iterable, Union

from .core import Mode, Unit, Stage
from .utils import get_logger

log = get_logger("stages")


@dataclass
class DeliveryGate:
    """
    Per-unit delivery decision: draw a uniform integer in [1, 100] and
    deliver when the draw is <= percent. percent=0 never delivers.
    """
    percent: int
    rng: random.Random

    def delivered(self) -> bool:
        return self.rng.randint(1, 100) <= self.percent


class SilentFill:
    """Lost units become zero bytes."""

    def __init__(self, unit_size: int):
        self._silence = bytes(unit_size)

    def remember(self, buf: bytes) -> None:
        pass

    def replace(self) -> bytes:
        return self._silence


class RepeatLast:
    """
    Lost units repeat the last delivered unit.

    The buffer is sized once and overwritten in place. Only delivered units
    are remembered; a replacement never feeds back into it, so a run of
    losses keeps repeating the same genuine unit.
    """

    def __init__(self, unit_size: int):
        self._last = bytearray(unit_size)

    @property
    def last(self) -> bytes:
        return bytes(self._last)

    def remember(self, buf: bytes) -> None:
        if len(buf) != len(self._last):
            raise ValueError(f"unit of {len(buf)} bytes does not fit a {len(self._last)}-byte buffer")
        self._last[:] = buf

    def replace(self) -> bytes:
        return bytes(self._last)


Replacement = Union[SilentFill, RepeatLast]


def make_replacement(mode: Mode, unit_size: int) -> Replacement:
    if mode is Mode.REPEAT:
        return RepeatLast(unit_size)
    if mode is Mode.SILENT:
        return SilentFill(unit_size)
    raise ValueError(f"Unknown mode: {mode!r}")


@dataclass
class LossStage(Stage):
    gate: DeliveryGate
    replacement: Replacement
    unit_size: int

    # counters
    seen: int = 0
    delivered: int = 0
    lost: int = 0

    @classmethod
    def from_config(cls, config, rng: random.Random) -> "LossStage":
        return cls(
            gate=DeliveryGate(percent=config.percent, rng=rng),
            replacement=make_replacement(config.mode, config.packet_size),
            unit_size=config.packet_size,
        )

    def feed(self, unit: Unit) -> Iterable[Unit]:
        self.seen += 1
        if self.gate.delivered():
            self.delivered += 1
            self.replacement.remember(unit.buf)
            return [unit]
        self.lost += 1
        return [Unit(buf=self.replacement.replace(), idx=unit.idx)]

    def flush(self) -> Iterable[Unit]:
        log.debug(
            f"[loss] seen={self.seen} delivered={self.delivered} lost={self.lost} "
            f"unit_size={self.unit_size} replacement={type(self.replacement).__name__}"
        )
        return []
