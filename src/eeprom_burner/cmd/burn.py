import sys
import logging
import argparse
from typing import Any, Optional

"""
Command handlers for the eeprom CLI.

This module turns parsed command-line options into CommandEngine operations:
- read: Read EEPROM data into a file or to stdout
- write: Write a file or the --data string to the EEPROM
- fill: Fill a range with a byte value or a character
"""

from eeprom_burner.device.engine import CommandEngine, MessageKind
from eeprom_burner.transport.bridge import FileSource, Progress

DEFAULT_FILL_NUM = 0xff
DEFAULT_FILL_CHAR = 'a'

class ConsoleReporter:
    """
    on_message/on_error sink for the CLI: a single-line progress display on stdout
    and log records for everything else.
    """

    def __init__(self, show_progress: bool = True):
        self.log = logging.getLogger("cmd.burn")
        self.show_progress = show_progress
        self.progress_active = False
        self.errors = []

    def on_message(self, payload: Any, kind: MessageKind) -> None:
        if kind == MessageKind.PROGRESS:
            if self.show_progress and isinstance(payload, Progress):
                self.progress_callback(payload)
        elif kind == MessageKind.STOP_PROGRESS:
            if self.progress_active:
                sys.stdout.write("\n")
                sys.stdout.flush()
                self.progress_active = False
        else:
            self.log.debug(payload)

    def on_error(self, message: str) -> None:
        if self.progress_active:
            sys.stdout.write("\n")
            self.progress_active = False
        self.errors.append(message)
        self.log.error(message)

    def progress_callback(self, progress: Progress) -> None:
        """Redraws the progress line, e.g. 'Progress: 50.0% [512 / 1024 bytes]'."""
        # Cap percentage at 100% to avoid confusion
        percent = min(100.0, max(0.0, progress.percentage))
        sys.stdout.write(f"\rProgress: {percent:.1f}% {progress.bytes_left}")
        sys.stdout.flush()
        self.progress_active = True


def _require(args: argparse.Namespace, name: str) -> int:
    value = getattr(args, name)
    if value is None:
        option = '--' + name.replace('_', '-')
        raise ValueError(f"{option} is required for this operation")
    return value


def _echo_read_data(data: bytes) -> None:
    sys.stdout.write(data.decode('latin-1'))
    sys.stdout.flush()


def handle_read(engine: CommandEngine, args: argparse.Namespace) -> Optional[int]:
    """
    Queues a read. Data goes to the file named by --read, or to stdout.

    Returns:
        Number of bytes requested (used for the transfer rate log line).
    """
    address = _require(args, 'start_address')
    length = _require(args, 'length')
    if args.read is True:
        engine.read(address, length, _echo_read_data)
    else:
        engine.read_to_file(address, length, args.read)
    return length


def handle_write(engine: CommandEngine, args: argparse.Namespace) -> Optional[int]:
    """Queues a write of the --write file, or of the --data string when no file is given."""
    address = _require(args, 'start_address')
    if args.write is True:
        if args.data is None:
            raise ValueError("--data is required when --write has no file")
        data = args.data.encode('utf-8')
        engine.write_buffer(address, data)
        return len(data)
    engine.write_file(address, args.write)
    return FileSource.size_of(args.write)


def handle_fill(engine: CommandEngine, args: argparse.Namespace) -> Optional[int]:
    """Queues a fill with --fill-num (default 0xff) or --fill-char (default 'a')."""
    if args.fill_num is not None:
        value = args.fill_num
    else:
        value = args.fill_char
        if len(value) != 1:
            raise ValueError(f"--fill-char must be a single character, got {value!r}")
    address = _require(args, 'start_address')
    length = _require(args, 'length')
    engine.fill(address, length, value)
    return length
