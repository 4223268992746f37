"""
Session state machine.

Tracks which phase of an exchange the device is in and routes every inbound
token. Progress and error reports can interrupt an outer read/write/fill
phase, so the state to return to is remembered.
"""

import logging
from enum import Enum
from typing import List, Protocol

from ..exceptions import FormatError, ProtocolError
from ..protocol.codec import decode
from ..protocol.framing import (
    BEGIN_ERROR,
    BEGIN_FILL,
    BEGIN_PROGRESS,
    BEGIN_READ,
    BEGIN_WRITE,
    Token,
)


class SessionState(Enum):
    IDLE = 0
    READING = 1
    WRITING = 2
    ERROR_REPORT = 3
    FILLING = 4
    PROGRESS_REPORT = 5


TRANSFER_STATES = frozenset([SessionState.READING, SessionState.WRITING, SessionState.FILLING])


class SessionHost(Protocol):
    """Actions the state machine asks of its engine."""

    def stop_retransmission(self) -> None:
        ...

    def send_write_payload(self) -> None:
        """Transmit the in-flight write's buffer. Raises ProtocolError if it has none."""
        ...

    def handle_read_payload(self, token: Token) -> None:
        ...

    def complete_operation(self) -> None:
        ...

    def report_device_error(self, message: str) -> None:
        ...

    def report_progress(self, value: int) -> None:
        ...


class SessionStateMachine:
    """Dispatches tokens according to the current session state."""

    def __init__(self, host: SessionHost):
        self.log = logging.getLogger("SessionStateMachine")
        self.host = host
        self.state = SessionState.IDLE
        self.previous_state = SessionState.IDLE
        self._error_parts: List[bytes] = []

    def reset(self) -> None:
        self.state = SessionState.IDLE
        self.previous_state = SessionState.IDLE
        self._error_parts = []

    def _set_state(self, state: SessionState) -> None:
        self.log.debug(f"State {self.state.name} -> {state.name}")
        self.state = state

    def _enter_progress(self) -> None:
        # Return to whatever the report interrupted, an error report included
        if self.state is not SessionState.PROGRESS_REPORT:
            self.previous_state = self.state
        self._set_state(SessionState.PROGRESS_REPORT)

    def handle(self, token: Token) -> None:
        """
        Route one token.

        Raises:
            ProtocolError: For a token that has no meaning in the current state.
        """
        if token.is_control:
            self._handle_control(token.text)
        elif token.is_end:
            self._handle_end()
        else:
            self._handle_data(token)

    # --- Control words ---

    def _handle_control(self, word: str) -> None:
        if word == BEGIN_READ:
            self._set_state(SessionState.READING)
            self.host.stop_retransmission()
        elif word == BEGIN_WRITE:
            self._set_state(SessionState.WRITING)
            self.host.stop_retransmission()
            self.host.send_write_payload()
        elif word == BEGIN_FILL:
            self._set_state(SessionState.FILLING)
            self.host.stop_retransmission()
        elif word == BEGIN_ERROR:
            self._error_parts = []
            self._set_state(SessionState.ERROR_REPORT)
            self.host.stop_retransmission()
        elif word == BEGIN_PROGRESS:
            # Progress may come before or after the acknowledgement, leave the timer alone
            self._enter_progress()

    # --- End of message ---

    def _handle_end(self) -> None:
        if self.state in TRANSFER_STATES:
            self._set_state(SessionState.IDLE)
            self.host.complete_operation()
        elif self.state is SessionState.ERROR_REPORT:
            message = b''.join(self._error_parts).decode('latin-1')
            self._error_parts = []
            self._set_state(SessionState.IDLE)
            self.previous_state = SessionState.IDLE
            self.host.report_device_error(message)
        elif self.state is SessionState.PROGRESS_REPORT:
            self._set_state(self.previous_state)
        else:
            raise ProtocolError(f"Unexpected end of message in state {self.state.name}", token='%')

    # --- Data ---

    def _handle_data(self, token: Token) -> None:
        if self.state is SessionState.READING:
            self.host.handle_read_payload(token)
        elif self.state is SessionState.ERROR_REPORT:
            self._error_parts.append(token.raw)
        elif self.state is SessionState.PROGRESS_REPORT:
            try:
                value = decode(token.text, 10)
            except FormatError as e:
                raise ProtocolError(f"Invalid progress report: {token.text!r}", token=token.text) from e
            self.host.report_progress(value)
        elif self.state in (SessionState.WRITING, SessionState.FILLING):
            # Outbound-only phases, nothing to consume before '%'
            self.log.debug(f"Ignoring {len(token.raw)} byte(s) during {self.state.name}")
        else:
            raise ProtocolError(f"Unhandled data in state {self.state.name}: {token.text!r}",
                                token=token.text)
