#!/usr/bin/env python

import argparse
import logging
import sys

from serial import SerialException

from eeprom_burner.config import EngineConfig
from eeprom_burner.device.engine import CommandEngine
from eeprom_burner.main import parse_num
from eeprom_burner.streams.usb import USBStream

def main():
    parser = argparse.ArgumentParser(description="Smoke test a burner: read a few bytes through the CommandEngine.")
    parser.add_argument("-p", "--port", required=True, help="Serial port address (e.g., /dev/ttyACM0 or COM3)")
    parser.add_argument("-s", "--start-address", type=parse_num, default=0, help="First address to read")
    parser.add_argument("-l", "--length", type=parse_num, default=16, help="Number of bytes to read")
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable verbose logging")
    args = parser.parse_args()

    log_level = logging.DEBUG if args.verbose else logging.INFO
    logging.basicConfig(level=log_level, format='%(asctime)s - %(name)s - %(levelname)s - %(message)s')
    log = logging.getLogger("manual_test")

    stream = None
    engine = None
    received = bytearray()
    try:
        log.info(f"Attempting to connect to {args.port}...")
        stream = USBStream(address=args.port)
        log.info("Connection successful.")

        engine = CommandEngine(stream, config=EngineConfig(send_progress=False), on_error=log.error)
        engine.read(args.start_address, args.length, received.extend)
        exit_code = engine.run()

        if exit_code == 0:
            log.info(f"Read {len(received)} byte(s) from 0x{args.start_address:04x}:")
            log.info(received.hex(' '))
        else:
            log.error("Read failed.")
        sys.exit(exit_code)

    except SerialException as e:
        log.error(f"Failed to connect or communicate: {e}")
        sys.exit(1)
    finally:
        if engine:
            engine.close()
        if stream:
            log.info("Closing connection...")
            stream.close()
            log.info("Connection closed.")

if __name__ == "__main__":
    main()
