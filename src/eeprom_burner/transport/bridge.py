"""
Stream bridge between the link and local files.

- FileSink: device -> host, appends read payload to a file opened on first data
- FileSource: host -> device, hands out fixed-size chunks at contiguous addresses
"""

import logging
import os
from dataclasses import dataclass
from typing import BinaryIO, Optional, Tuple

CHUNK_SIZE = 1024  # bytes per write sub-operation


def _clamp(value: int, low: int, high: int) -> int:
    return min(max(value, low), high)


@dataclass(frozen=True)
class Progress:
    """Progress of one transfer, as handed to on_message(..., 'progress')."""
    percentage: float
    bytes_transferred: int
    total: int

    @property
    def bytes_left(self) -> str:
        return f"[{self.bytes_transferred} / {self.total} bytes]"

    @classmethod
    def from_offset(cls, offset: int, total: int) -> "Progress":
        """
        Progress for `offset` bytes into a `total`-byte window.

        The percentage is reported as computed; only the byte count is clamped.
        """
        percentage = 100.0 * offset / total if total else 100.0
        return cls(percentage, _clamp(offset, 0, total), total)


class FileSink:
    """Destination file for a read. Opened lazily, must always be closed."""

    def __init__(self, path: str, total: int):
        self.log = logging.getLogger("FileSink")
        self.path = path.strip()
        self.total = total
        self.bytes_written = 0
        self._file: Optional[BinaryIO] = None

    @property
    def is_open(self) -> bool:
        return self._file is not None

    def write(self, data: bytes) -> Progress:
        if self._file is None:
            self.log.debug(f"Opening {self.path} for writing")
            self._file = open(self.path, 'wb')
        self._file.write(data)
        self.bytes_written += len(data)
        return Progress.from_offset(self.bytes_written, self.total)

    def close(self) -> None:
        if self._file is not None:
            try:
                self._file.close()
                self.log.debug(f"Closed {self.path} after {self.bytes_written} bytes")
            finally:
                self._file = None


class FileSource:
    """Source file for a write, read in CHUNK_SIZE pieces."""

    def __init__(self, path: str, address: int, chunk_size: int = CHUNK_SIZE):
        self.log = logging.getLogger("FileSource")
        self.path = path.strip()
        self.next_address = address
        self.chunk_size = chunk_size
        self.bytes_read = 0
        self._file: Optional[BinaryIO] = None
        self._exhausted = False

    @property
    def is_open(self) -> bool:
        return self._file is not None

    @staticmethod
    def size_of(path: str) -> int:
        return os.path.getsize(path.strip())

    def next_chunk(self) -> Optional[Tuple[int, bytes]]:
        """
        Read the next chunk.

        Returns:
            (address, data) for the chunk, or None once the file is exhausted.
        """
        if self._exhausted:
            return None
        if self._file is None:
            self.log.debug(f"Opening {self.path} for reading")
            self._file = open(self.path, 'rb')

        data = self._file.read(self.chunk_size)
        if not data:
            self._exhausted = True
            self.close()
            return None

        address = self.next_address
        self.next_address += len(data)
        self.bytes_read += len(data)
        return address, data

    def close(self) -> None:
        if self._file is not None:
            try:
                self._file.close()
            finally:
                self._file = None
