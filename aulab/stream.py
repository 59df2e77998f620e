# aulab/stream.py
from __future__ import annotations

import struct
from typing import BinaryIO, Iterator, Optional

from .utils import get_logger

log = get_logger("stream")

_AU_MAGIC = b".snd"
_AU_HEADER_FMT = ">IIIIII"  # magic, data offset, data size, encoding, rate, channels
_AU_HEADER_SIZE = struct.calcsize(_AU_HEADER_FMT)

AU_ENCODINGS = {
    1: "mulaw-8",
    2: "linear-8",
    3: "linear-16",
    4: "linear-24",
    5: "linear-32",
    6: "float-32",
    7: "float-64",
    27: "alaw-8",
}


def sniff_kind(path: str) -> str:
    """Return "au" for Sun audio files, "raw" for anything else."""
    with open(path, "rb") as f:
        head = f.read(4)
    if head == _AU_MAGIC:
        return "au"
    return "raw"


def parse_au_header(head: bytes) -> Optional[dict]:
    """
    Decode the fixed part of a Sun .au header from its first 24 bytes.
    Returns None when the bytes are too short or carry the wrong magic.
    """
    if len(head) < _AU_HEADER_SIZE:
        return None
    magic, offset, size, encoding, rate, channels = struct.unpack(_AU_HEADER_FMT, head[:_AU_HEADER_SIZE])
    if magic != int.from_bytes(_AU_MAGIC, "big"):
        return None
    return {
        "data_offset": offset,
        "data_size": None if size == 0xFFFFFFFF else size,
        "encoding": AU_ENCODINGS.get(encoding, f"unknown({encoding})"),
        "sample_rate": rate,
        "channels": channels,
    }


def copy_header(fin: BinaryIO, fout: BinaryIO, length: int) -> bytes:
    """Copy up to `length` bytes verbatim, stopping early at end of input."""
    head = bytearray()
    while len(head) < length:
        chunk = fin.read(length - len(head))
        if not chunk:
            break
        head += chunk
    if head:
        fout.write(bytes(head))
    return bytes(head)


def _read_full(fin: BinaryIO, size: int) -> bytes:
    # raw/unbuffered streams may return short reads before EOF
    buf = fin.read(size)
    if not buf or len(buf) == size:
        return buf
    parts = [buf]
    got = len(buf)
    while got < size:
        more = fin.read(size - got)
        if not more:
            break
        parts.append(more)
        got += len(more)
    return b"".join(parts)


def iter_units(fin: BinaryIO, size: int) -> Iterator[bytes]:
    """
    Yield successive full `size`-byte units. A trailing partial unit ends the
    stream and is not yielded; with size == 1 nothing is ever dropped.
    """
    if size <= 0:
        raise ValueError("unit size must be positive")
    while True:
        buf = _read_full(fin, size)
        if len(buf) < size:
            if buf:
                log.debug(f"Dropped trailing partial unit of {len(buf)} bytes (unit size {size})")
            return
        yield buf
