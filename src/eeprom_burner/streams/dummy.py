import logging
from typing import Callable, List, Optional, Union

from .streams import Stream # Import the Stream protocol

class DummyStream(Stream):
    """An in-memory link for exercising the CommandEngine without hardware."""

    def __init__(self, address: str = "dummy_addr"):
        self.log = logging.getLogger("DummyStream")
        self.address = address
        self.is_open = True
        self.sent_data: List[bytes] = []
        self._callback: Optional[Callable[[bytes], None]] = None
        self.log.debug(f"Initialized DummyStream for {address}")

    # --- Stream Protocol Methods --- #

    def close(self) -> bool:
        """Simulates closing the stream."""
        self.stop_reader()
        self.is_open = False
        self.log.debug(f"DummyStream closed for {self.address}")
        return True

    def send(self, data: bytes) -> None:
        """Records sent data."""
        if not self.is_open:
            self.log.error("Send called on closed DummyStream")
            raise IOError("Stream is closed")
        self.log.debug(f"Send received data: {data!r}")
        self.sent_data.append(bytes(data))

    def read(self, size: int = 1) -> bytes:
        """Simulates a read timeout."""
        return b''

    def start_reader(self, callback: Callable[[bytes], None]) -> None:
        self._callback = callback

    def stop_reader(self) -> None:
        self._callback = None

    # --- Test Helper Methods --- #

    def inject(self, data: Union[bytes, str]) -> None:
        """Delivers an inbound chunk as if the device had sent it."""
        if isinstance(data, str):
            data = data.encode('latin-1')
        if self._callback is None:
            raise RuntimeError("No reader attached to DummyStream")
        self._callback(data)

    def get_sent_data(self, decode: bool = True) -> List[Union[str, bytes]]:
        """Returns a list of data chunks sent via send()."""
        if decode:
            return [d.decode('latin-1') for d in self.sent_data]
        else:
            return self.sent_data

    def clear_sent_data(self):
        """Clears the history of sent data."""
        self.sent_data.clear()
