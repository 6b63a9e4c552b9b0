"""A circular buffer of 32-bit integers stored in a file.

The file holds ``capacity`` little-endian signed 32-bit cells followed by two
more cells: the read index and then the write index. Every operation opens
the file, works on it and closes it again, so several workers can share the
buffer as long as they serialise their access.
"""

from __future__ import annotations

import os
import struct
from pathlib import Path
from typing import BinaryIO

BUFFER_SIZE = 128
BUFFER_FILENAME = "bufferfile.bin"

_INT = struct.Struct("<i")


class RingFile:
    """A file-backed ring of ``capacity`` integers with persistent indexes."""

    def __init__(self, path: str | os.PathLike[str], capacity: int = BUFFER_SIZE) -> None:
        if capacity <= 0:
            raise ValueError(f"capacity must be positive: {capacity}")
        self.path = Path(path)
        self.capacity = capacity

    @classmethod
    def create(cls, path: str | os.PathLike[str], capacity: int = BUFFER_SIZE) -> RingFile:
        """Create (or overwrite) a zero-filled buffer file and return it."""
        ring = cls(path, capacity)
        ring.path.write_bytes(bytes(_INT.size * (capacity + 2)))
        return ring

    @property
    def _read_offset(self) -> int:
        return self.capacity * _INT.size

    @property
    def _write_offset(self) -> int:
        return (self.capacity + 1) * _INT.size

    def _get(self, fh: BinaryIO, offset: int, what: str) -> int:
        fh.seek(offset)
        data = fh.read(_INT.size)
        if len(data) != _INT.size:
            raise ValueError(f"{self.path}: file is truncated, cannot read {what}")
        return _INT.unpack(data)[0]

    def _put(self, fh: BinaryIO, offset: int, value: int) -> None:
        fh.seek(offset)
        fh.write(_INT.pack(value))

    def _index(self, fh: BinaryIO, offset: int, what: str) -> int:
        index = self._get(fh, offset, what)
        if not 0 <= index < self.capacity:
            raise ValueError(f"{self.path}: {what} {index} is outside 0..{self.capacity - 1}")
        return index

    def write(self, value: int) -> None:
        """Store ``value`` at the write index and advance it."""
        try:
            packed = _INT.pack(value)
        except struct.error as exc:
            raise OverflowError(f"value does not fit in 32 bits: {value}") from exc
        with open(self.path, "r+b") as fh:
            index = self._index(fh, self._write_offset, "write index")
            fh.seek(index * _INT.size)
            fh.write(packed)
            self._put(fh, self._write_offset, (index + 1) % self.capacity)

    def read(self) -> int:
        """Return the value at the read index and advance it."""
        with open(self.path, "r+b") as fh:
            index = self._index(fh, self._read_offset, "read index")
            value = self._get(fh, index * _INT.size, "element")
            self._put(fh, self._read_offset, (index + 1) % self.capacity)
        return value

    def indexes(self) -> tuple[int, int]:
        """The stored (read index, write index) pair."""
        with open(self.path, "rb") as fh:
            return (
                self._index(fh, self._read_offset, "read index"),
                self._index(fh, self._write_offset, "write index"),
            )