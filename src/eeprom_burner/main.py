"""
EEPROM Burner CLI

A command-line tool for reading, writing and filling EEPROMs through an
Arduino-based burner.
"""

import sys
import argparse
import logging

from serial import SerialException

from eeprom_burner.config import EngineConfig
from eeprom_burner.device.engine import CommandEngine
from eeprom_burner.exceptions import FormatError
from eeprom_burner.protocol.codec import decode
from eeprom_burner.streams.usb import DEFAULT_BAUDRATE, USBStream
from eeprom_burner.transport.utils import transfer_timer
from eeprom_burner.cmd.burn import (
    DEFAULT_FILL_CHAR,
    DEFAULT_FILL_NUM,
    ConsoleReporter,
    handle_fill,
    handle_read,
    handle_write,
)

def parse_num(text: str) -> int:
    """Allows binary, octal, hexadecimal or decimal to be used"""
    try:
        return decode(text, 10)
    except FormatError as e:
        raise argparse.ArgumentTypeError(str(e)) from e


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog='eeprom',
        description='EEPROM Burner CLI',
        epilog="""Numbers accept 0b, 0o and 0x prefixes."""
    )
    parser.add_argument('--port', '-p', default=None,
                        help="the Arduino's serial port")
    parser.add_argument('--list-ports', action='store_true',
                        help='list available serial ports and exit')
    parser.add_argument('--baudrate', type=int, default=DEFAULT_BAUDRATE,
                        help=f'serial baud rate (default: {DEFAULT_BAUDRATE})')

    # Operations
    op_group = parser.add_argument_group('Operations')
    op_group.add_argument('--read', '-r', nargs='?', const=True, metavar='FILE',
                        help='read data from EEPROM into file, prints to stdout if no file provided')
    op_group.add_argument('--write', '-w', nargs='?', const=True, metavar='FILE',
                        help='write a file to the EEPROM, uses --data if no file provided')
    op_group.add_argument('--fill-num', '-f', nargs='?', const=DEFAULT_FILL_NUM, type=parse_num, metavar='NUM',
                        help='fill [start] to [start] + [length] with NUM, defaults to 0xff (255)')
    op_group.add_argument('--fill-char', '-c', nargs='?', const=DEFAULT_FILL_CHAR, metavar='CHAR',
                        help=f"fill [start] to [start] + [length] with CHAR, defaults to '{DEFAULT_FILL_CHAR}'")

    # Operation parameters
    param_group = parser.add_argument_group('Parameters')
    param_group.add_argument('--start-address', '-s', type=parse_num, metavar='ADDR',
                        help='start address of read, write or fill')
    param_group.add_argument('--length', '-l', type=parse_num, metavar='LEN',
                        help='number of bytes to read / fill')
    param_group.add_argument('--data', '-d',
                        help='data used for a write if no file is provided')
    param_group.add_argument('--bin', '-b', action='store_true',
                        help='use binary data, defaults to hexadecimal')

    # Link behaviour
    link_group = parser.add_argument_group('Link')
    link_group.add_argument('--repeat-limit', type=int, default=EngineConfig.repeat_limit,
                        help='retransmissions before giving up (default: %(default)s)')
    link_group.add_argument('--repeat-interval', type=int, default=EngineConfig.repeat_interval,
                        help='milliseconds between retransmissions (default: %(default)s)')
    link_group.add_argument('--hide-progress', '-g', action='store_true',
                        help='disables the progress display')

    # Logging / Output options (Mutually Exclusive)
    log_level_group = parser.add_mutually_exclusive_group()
    log_level_group.add_argument('--verbose', '-v', action='store_true',
                        help='Enable verbose DEBUG level logging')
    log_level_group.add_argument('--quiet', '-q', action='store_true',
                        help='Suppress INFO level logging, show only WARNINGs and ERRORs')
    return parser


def main(argv=None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    # Set up logging level based on flags
    log_level = logging.INFO # Default
    if args.verbose:
        log_level = logging.DEBUG
    elif args.quiet:
        log_level = logging.WARNING

    logging.basicConfig(
        level=log_level,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )

    log = logging.getLogger("main")

    if args.list_ports:
        ports = USBStream.list_ports()
        if not ports:
            log.info("No serial ports found")
        for port in ports:
            manufacturer = f" [{port['manufacturer']}]" if port['manufacturer'] else ""
            print(f"{port['port']}{manufacturer} - {port['description']}")
        return 0

    if args.read is None and args.write is None and args.fill_num is None and args.fill_char is None:
        log.warning("No operation to perform, use --help to see usage")
        return 0

    if args.port is None:
        ports = [p['port'] for p in USBStream.list_ports()]
        log.error("No serial port given, use --port. "
                  f"Available ports: {', '.join(ports) if ports else 'none'}")
        return 1

    reporter = ConsoleReporter(show_progress=not args.hide_progress)
    try:
        config = EngineConfig(
            send_progress=not args.hide_progress,
            repeat_limit=args.repeat_limit,
            repeat_interval=args.repeat_interval,
        )
    except ValueError as e:
        log.error(str(e))
        return 1

    try:
        stream = USBStream(args.port, baudrate=args.baudrate)
    except SerialException as e:
        log.error(str(e))
        return 1

    engine = CommandEngine(
        stream,
        config=config,
        on_message=reporter.on_message,
        on_error=reporter.on_error,
    )
    if args.bin:
        engine.use_binary()

    exit_code = 1 # Default to error
    try:
        if args.read is not None:
            operation_name, handler = "Read", handle_read
        elif args.write is not None:
            operation_name, handler = "Write", handle_write
        else:
            operation_name, handler = "Fill", handle_fill

        try:
            size = handler(engine, args)
        except (ValueError, OSError) as e:
            log.error(str(e))
            return 1

        with transfer_timer(log, operation_name, data_size=size):
            exit_code = engine.run()

    except KeyboardInterrupt:
        log.warning("Operation cancelled by user")
        exit_code = 1
    except OSError as e:
        log.error(f"I/O error during transfer: {e}")
        exit_code = 1
    finally:
        engine.close()
        stream.close()

    return exit_code

if __name__ == "__main__":
    sys.exit(main())
