import logging
import queue
import sys
import time
from enum import Enum
from typing import Any, Callable, Optional, Tuple, Union

from ..config import EngineConfig
from ..exceptions import (
    BurnerError,
    DeviceReportedError,
    FormatError,
    LinkTimeoutError,
    ProtocolError,
)
from ..protocol.codec import ADDRESS_SPACE, MAX_FIELD_VALUE, describe_command, format_command
from ..protocol.framing import BEGIN_WRITE, FrameSplitter, Token
from ..streams.streams import Stream
from ..transport.bridge import FileSink, FileSource, Progress
from .command_queue import CommandQueue
from .operation import Operation, OperationKind
from .session import SessionStateMachine
from .timer import RetransmissionTimer

# Inbox item kinds
_EVENT_OPERATION = 'operation'
_EVENT_DATA = 'data'
_EVENT_STOP = 'stop'

class MessageKind(str, Enum):
    """Kinds passed as the second argument of on_message."""
    PLAIN = 'msg'
    PROGRESS = 'progress'
    STOP_PROGRESS = 'stop-progress'

MessageCallback = Callable[[Any, MessageKind], None]
ErrorCallback = Callable[[str], None]

class CommandEngine:
    """
    Drives an EEPROM burner over an already opened Stream.

    Operation calls (read, write_buffer, fill, ...) and inbound link chunks
    are posted to a single inbox. `run()` consumes that inbox in arrival order
    and is the only place where the queue, session state and retransmission
    timer change, so callers and the link reader thread never race.

    Usage:
        engine = CommandEngine(stream, on_error=print)
        engine.fill(0x0100, 16, 0xFF)
        exit_code = engine.run()
    """

    def __init__(self, stream: Stream, config: Optional[EngineConfig] = None,
                 on_message: Optional[MessageCallback] = None,
                 on_error: Optional[ErrorCallback] = None,
                 on_complete: Optional[Callable[[], None]] = None,
                 clock: Callable[[], float] = time.monotonic,
                 **params: Any):
        """
        Args:
            stream: Open link to the burner
            config: Engine settings; built from `params` when omitted
            on_message: Receives (payload, MessageKind) for log lines and progress
            on_error: Receives error messages; without it errors are logged and
                fatal ones end the run loop with exit code 1
            on_complete: Called every time the queue drains
            clock: Monotonic time source for retransmission, injectable for tests
            **params: Settings in snake_case or camelCase (exitOnEmptyQueue, ...)
        """
        if not stream:
            raise ValueError("CommandEngine requires a valid Stream object.")

        self.log = logging.getLogger("CommandEngine")
        self.stream = stream
        self.config = config if config is not None else EngineConfig.from_mapping(params)
        self.on_message = on_message
        self.on_error = on_error
        self.on_complete = on_complete
        self.binary = False

        self.inbox: "queue.Queue[Tuple[str, Any]]" = queue.Queue()
        self.queue = CommandQueue()
        self.splitter = FrameSplitter()
        self.session = SessionStateMachine(self)
        self.timer = RetransmissionTimer(
            self._send,
            repeat_limit=self.config.repeat_limit,
            interval=self.config.repeat_interval_s,
            clock=clock,
        )

        self.in_flight: Optional[Operation] = None
        self.exit_code: Optional[int] = None
        self.device_errors = 0
        self._sink: Optional[FileSink] = None
        self._source: Optional[FileSource] = None

        self.stream.start_reader(self.feed)
        self.log.debug(f"CommandEngine initialized with {self.config}")

    # --- Mode selection ---

    def use_hexadecimal(self) -> None:
        self.binary = False

    def use_binary(self) -> None:
        self.binary = True

    # --- Operations ---

    def read(self, address: int, length: int, callback: Optional[Callable[[bytes], None]] = None) -> None:
        """Read `length` bytes; data goes to `callback`, or stdout without one."""
        self._check_field("address", address)
        self._check_field("length", length)
        self.submit(Operation(OperationKind.READ, address, length, callback=callback, binary=self.binary))

    def read_to_file(self, address: int, length: int, path: str) -> None:
        """Read `length` bytes into the file at `path`."""
        self._check_field("address", address)
        self._check_field("length", length)
        self.submit(Operation(OperationKind.READ, address, length, sink_path=path, binary=self.binary))

    def write_buffer(self, address: int, data: Union[bytes, bytearray]) -> None:
        """Write an in-memory buffer at `address`."""
        data = bytes(data)
        self._check_field("address", address)
        self._check_field("length", len(data))
        self.submit(Operation(OperationKind.WRITE, address, len(data), buffer=data, binary=self.binary))

    def write_file(self, address: int, path: str) -> None:
        """
        Write a whole file starting at `address`, one chunk per device command.

        Raises:
            FormatError: If the file does not fit the address space from `address`.
            OSError: If the file cannot be stat'ed.
        """
        self._check_field("address", address)
        size = FileSource.size_of(path)
        if address + size > ADDRESS_SPACE:
            raise FormatError(f"{size} bytes at 0x{address:04x} overflow the 0x{ADDRESS_SPACE:x}-byte address space")
        self.submit(Operation(OperationKind.WRITE, address, size, source_path=path, binary=self.binary))

    def fill(self, address: int, length: int, value: Union[int, str]) -> None:
        """Fill `length` bytes from `address` with a byte value (0-255) or a single character."""
        self._check_field("address", address)
        self._check_field("length", length)
        if isinstance(value, str):
            if len(value) != 1:
                raise FormatError(f"Fill character must be a single character, got {value!r}")
        elif isinstance(value, bool) or not isinstance(value, int) or not 0 <= value <= 0xFF:
            raise FormatError(f"Fill value must be a byte (0-255) or a character, got {value!r}")
        self.submit(Operation(OperationKind.FILL, address, length, fill_value=value, binary=self.binary))

    @staticmethod
    def _check_field(name: str, value: Any) -> None:
        if isinstance(value, bool) or not isinstance(value, int):
            raise FormatError(f"{name} must be an integer, got {value!r}")
        if not 0 <= value <= MAX_FIELD_VALUE:
            raise FormatError(f"{name} {value} does not fit a 4-digit hex field")

    # --- Inbox ---

    def submit(self, op: Operation) -> None:
        self.inbox.put((_EVENT_OPERATION, op))

    def feed(self, data: bytes) -> None:
        """Posts an inbound link chunk. Safe to call from the reader thread."""
        self.inbox.put((_EVENT_DATA, bytes(data)))

    def stop(self) -> None:
        """Asks the run loop to finish. Safe to call from any thread."""
        self.inbox.put((_EVENT_STOP, None))

    def run(self) -> int:
        """
        Consume the inbox until the queue drains (with exit_on_empty_queue),
        a fatal error occurs, or stop() is called.

        Returns:
            Exit code: 0 on success, 1 after a fatal error or a device-reported error.
        """
        self.exit_code = None
        try:
            while self.exit_code is None:
                try:
                    kind, payload = self.inbox.get(timeout=self.timer.time_until_due())
                except queue.Empty:
                    self.tick()
                    continue
                self._dispatch(kind, payload)
                if self.exit_code is None:
                    self.tick()
        except BaseException:
            self._release()
            raise
        return self.exit_code

    def process_pending(self) -> Optional[int]:
        """
        Handle every inbox item already posted, without blocking.

        Returns:
            The exit code if the engine finished, else None.
        """
        try:
            while self.exit_code is None:
                try:
                    kind, payload = self.inbox.get_nowait()
                except queue.Empty:
                    break
                self._dispatch(kind, payload)
        except BaseException:
            self._release()
            raise
        return self.exit_code

    def tick(self) -> None:
        """Let the retransmission timer fire if it is due."""
        try:
            self.timer.poll()
        except LinkTimeoutError as e:
            self._fatal(e)

    def close(self) -> None:
        """Detach from the link and release any open file."""
        self.stream.stop_reader()
        self._release()

    def _dispatch(self, kind: str, payload: Any) -> None:
        if kind == _EVENT_OPERATION:
            self._enqueue(payload)
        elif kind == _EVENT_DATA:
            self._handle_data(payload)
        elif kind == _EVENT_STOP:
            self.log.debug("Stop requested")
            self._release()
            self.exit_code = 0 if self.exit_code is None else self.exit_code

    def _enqueue(self, op: Operation) -> None:
        if op.is_file_write:
            self._message(f"Added task {op} in queue")
        else:
            self._message(f"Added task {describe_command(format_command(op, self.config.send_progress))} in queue")
        if self.queue.enqueue(op):
            self._start_next()

    def _handle_data(self, data: bytes) -> None:
        self.log.debug(f"Received: {data!r}")
        for token in self.splitter.split(data):
            try:
                self.session.handle(token)
            except ProtocolError as e:
                self._fatal(e)
            if self.exit_code is not None:
                break

    # --- Queue progression ---

    def _start_next(self) -> None:
        """Put the next operation (or file chunk) on the wire, or handle a drained queue."""
        while not self.queue.empty:
            head = self.queue.peek_head()
            if head.is_file_write:
                if self._source is None:
                    self._source = FileSource(head.source_path, head.address)
                chunk = self._source.next_chunk()
                if chunk is None:
                    self._source.close()
                    self._source = None
                    self.queue.dequeue_head()
                    self._message(f"File successfully written: {head}")
                    self._finish_progress()
                    continue
                address, data = chunk
                op = Operation(OperationKind.WRITE, address, len(data), buffer=data,
                               binary=head.binary, parent=head)
            else:
                op = head

            self.in_flight = op
            if op.sink_path is not None:
                self._sink = FileSink(op.sink_path, op.length)
            self.timer.start(format_command(op, self.config.send_progress))
            return

        self._on_drained()

    def _on_drained(self) -> None:
        self.in_flight = None
        self.session.reset()
        self.log.debug("Command queue is empty")
        if self.on_complete is not None:
            self.on_complete()
        if self.config.exit_on_empty_queue:
            self.exit_code = 1 if self.device_errors else 0

    def _finish_progress(self) -> None:
        if self.config.send_progress:
            self._emit(None, MessageKind.STOP_PROGRESS)

    def _release(self) -> None:
        self.timer.stop()
        self._close_sink()
        if self._source is not None:
            self._source.close()
            self._source = None

    def _close_sink(self) -> None:
        if self._sink is not None:
            self._sink.close()
            self._sink = None

    # --- SessionHost ---

    def stop_retransmission(self) -> None:
        self.timer.stop()

    def send_write_payload(self) -> None:
        op = self.in_flight
        if op is None or (op.buffer is None and op.source_path is None):
            raise ProtocolError("Invalid acknowledgement", token=BEGIN_WRITE)
        if op.buffer is not None:
            self._message('writing buffer')
            self._send(op.buffer)

    def handle_read_payload(self, token: Token) -> None:
        op = self.in_flight
        if op is None:
            raise ProtocolError(f"Read data with no operation in flight: {token.text!r}", token=token.text)
        op.bytes_transferred += len(token.raw)
        if self._sink is not None:
            self._emit(self._sink.write(token.raw), MessageKind.PROGRESS)
        elif op.callback is not None:
            op.callback(token.raw)
        else:
            sys.stdout.buffer.write(token.raw)
            sys.stdout.flush()

    def complete_operation(self) -> None:
        op = self.in_flight
        if op is None:
            raise ProtocolError("End of message with no operation in flight", token='%')
        self.timer.stop()
        self._close_sink()
        self.in_flight = None

        if op.kind is OperationKind.READ:
            self._message('Data successfully read')
        elif op.kind is OperationKind.WRITE:
            self._message(f"Data successfully written: {describe_command(format_command(op, self.config.send_progress))}")
        else:
            self._message('Data successfully filled')

        if op.parent is not None:
            # File chunk: the parent stays at the head until its source runs dry
            op.parent.bytes_transferred += op.length
            self._emit(Progress.from_offset(op.parent.bytes_transferred, op.parent.length), MessageKind.PROGRESS)
        else:
            self.queue.dequeue_head()
            self._finish_progress()
        self._start_next()

    def report_device_error(self, message: str) -> None:
        self._release()
        self.in_flight = None
        if not self.queue.empty:
            dropped = self.queue.dequeue_head()
            self.log.warning(f"Dropping {dropped} after device error")
        self.device_errors += 1
        self._report_error(DeviceReportedError(message))
        self._finish_progress()
        self._start_next()

    def report_progress(self, value: int) -> None:
        op = self.in_flight if self.in_flight is not None else self.queue.peek_head()
        if op is None:
            self.log.debug(f"Ignoring progress report {value} with no operation queued")
            return
        address, length = op.progress_window
        self._emit(Progress.from_offset(value - address, length), MessageKind.PROGRESS)

    # --- Output helpers ---

    def _send(self, data: bytes) -> None:
        self.stream.send(data)

    def _emit(self, payload: Any, kind: MessageKind) -> None:
        if self.on_message is not None:
            self.on_message(payload, kind)

    def _message(self, text: str) -> None:
        self.log.info(text)
        self._emit(text, MessageKind.PLAIN)

    def _report_error(self, error: BurnerError) -> None:
        if self.on_error is not None:
            self.on_error(str(error))
        else:
            self.log.error(f"{type(error).__name__}: {error}")

    def _fatal(self, error: BurnerError) -> None:
        self._release()
        self.queue.clear()
        self.in_flight = None
        self.session.reset()
        self._report_error(error)
        self.exit_code = 1
