import logging
import time
from typing import Callable, Optional

from ..exceptions import LinkTimeoutError
from ..protocol.codec import describe_command

class RetransmissionTimer:
    """
    Resends the in-flight command until the device acknowledges it.

    The timer does not own a thread: the engine's run loop asks how long it
    may block (`time_until_due`) and calls `poll` when that time has passed.
    """

    def __init__(self, send: Callable[[bytes], None], repeat_limit: int = 3,
                 interval: float = 1.5, clock: Callable[[], float] = time.monotonic):
        """
        Args:
            send: Writes a formatted command to the link
            repeat_limit: Retransmissions allowed after the initial send
            interval: Seconds between sends
            clock: Monotonic time source, injectable for tests
        """
        self.log = logging.getLogger("RetransmissionTimer")
        self.send = send
        self.repeat_limit = repeat_limit
        self.interval = interval
        self.clock = clock

        self.command: Optional[bytes] = None
        self.retries = 0
        self.deadline: Optional[float] = None

    @property
    def active(self) -> bool:
        return self.command is not None

    def start(self, command: bytes) -> None:
        """Transmit `command` now and arm the retransmission deadline."""
        self.command = command
        self.retries = 0
        self.log.debug(f"Sending command: {describe_command(command)}")
        self.send(command)
        self.deadline = self.clock() + self.interval

    def stop(self) -> None:
        if self.command is not None:
            self.log.debug(f"Acknowledged after {self.retries} retransmission(s)")
        self.command = None
        self.deadline = None
        self.retries = 0

    def time_until_due(self) -> Optional[float]:
        """Seconds until the next send is due, None when the timer is idle."""
        if self.deadline is None:
            return None
        return max(0.0, self.deadline - self.clock())

    def poll(self) -> None:
        """
        Fire once if the deadline has passed.

        Raises:
            LinkTimeoutError: When the retry budget is already spent. The timer
                is stopped before raising.
        """
        if self.deadline is None or self.clock() < self.deadline:
            return

        if self.retries >= self.repeat_limit:
            command = self.command
            self.stop()
            self.log.error(f"No acknowledgement for {describe_command(command)} "
                           f"after {self.repeat_limit} retransmission(s)")
            raise LinkTimeoutError("Serial port not responding.")

        self.retries += 1
        self.log.warning(f"No acknowledgement, resending ({self.retries}/{self.repeat_limit}): "
                         f"{describe_command(self.command)}")
        self.send(self.command)
        self.deadline = self.clock() + self.interval
