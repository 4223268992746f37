"""
Stream Classes for Communication

Provides the Stream protocol implemented by the links (USB serial, dummy)
that connect the host to the burner.
"""

from typing import Callable, Protocol, runtime_checkable

@runtime_checkable
class Stream(Protocol):
    """Protocol defining the interface for an already opened byte link."""

    def close(self) -> bool:
        """Closes the stream connection."""
        ...

    def send(self, data: bytes) -> None:
        """Sends data, returning once the transport has accepted all of it."""
        ...

    def read(self, size: int = 1) -> bytes:
        """Reads up to size bytes, empty bytes on timeout."""
        ...

    def start_reader(self, callback: Callable[[bytes], None]) -> None:
        """Delivers every inbound chunk to callback, in order, from a background reader."""
        ...

    def stop_reader(self) -> None:
        """Stops delivering inbound chunks."""
        ...
