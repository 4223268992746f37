import logging
import threading
import serial
import serial.tools.list_ports
from typing import Callable, Dict, List, Optional

from eeprom_burner.streams.streams import Stream

# Constants
SERIAL_TIMEOUT = 0.3  # seconds
DEFAULT_BAUDRATE = 115200

class _ReaderThread(threading.Thread):
    """Reads whatever the port has buffered and hands it to a callback."""

    def __init__(self, stream: "USBStream", callback: Callable[[bytes], None]):
        super().__init__(name="USBStreamReader", daemon=True)
        self.stream = stream
        self.callback = callback
        self._running = threading.Event()
        self._running.set()

    def stop(self) -> None:
        self._running.clear()

    def run(self) -> None:
        log = self.stream.log
        while self._running.is_set() and self.stream.serial is not None:
            try:
                data = self.stream.serial.read(self.stream.serial.in_waiting or 1)
            except (serial.SerialException, AttributeError, OSError) as e:
                if self._running.is_set():
                    log.error(f"Error during serial read: {e}")
                break
            if data and self._running.is_set():
                self.callback(data)
        log.debug("Reader thread exiting")

class USBStream(Stream):
    """USB Serial connection to the burner, established on initialization."""

    def __init__(self, address: str, baudrate: int = DEFAULT_BAUDRATE):
        """
        Initialize and open serial connection. Raises serial.SerialException on failure.
        """
        self.serial: Optional[serial.Serial] = None
        self.address = address
        self.log = logging.getLogger("USBStream")
        self._reader: Optional[_ReaderThread] = None

        self.log.debug(f"Attempting to open {address} at {baudrate} baud...")
        try:
            self.serial = serial.Serial(
                port=address,
                baudrate=baudrate,
                timeout=SERIAL_TIMEOUT
            )
            self.log.debug("Serial object created. Performing DTR sequence...")

            # --- DTR TOGGLE ---
            # Resets the Arduino so the sketch starts from a known state
            try:
                self.serial.dtr = False
            except IOError: pass
            self.serial.reset_input_buffer()
            try:
                self.serial.dtr = True
            except IOError: pass
            # --- END DTR TOGGLE ---

            self.log.info(f"Serial port opened successfully: {address}")

        except (serial.SerialException, OSError) as e:
            self.log.error(f"Serial connection error during init: {str(e)}")
            if self.serial and self.serial.is_open:
                 self.serial.close()
            self.serial = None
            raise serial.SerialException(f"Failed to open serial device {address}: {e}") from e

    def close(self) -> bool:
        """Close serial connection"""
        self.stop_reader()
        closed_successfully = True
        if self.serial:
            try:
                if self.serial.is_open:
                    self.log.debug("Closing serial port...")
                    self.serial.close()
                    self.log.debug("Serial port closed.")
                else:
                    self.log.debug("Serial port was already closed.")
            except (serial.SerialException, OSError) as e:
                self.log.error(f"Error closing serial connection: {str(e)}")
                closed_successfully = False
            finally:
                self.serial = None
        else:
             self.log.debug("Close called but self.serial is already None.")

        return closed_successfully

    def send(self, data: bytes) -> None:
        """Send data and wait until the driver has flushed it"""
        if self.serial is None:
            raise serial.SerialException("Serial port is not open")
        try:
            self.serial.write(data)
            self.serial.flush()
        except (serial.SerialException, OSError) as e:
             self.log.error(f"Error during serial send: {e}")
             raise

    def read(self, size: int = 1) -> bytes:
        """Read up to size bytes, honouring the port timeout"""
        if self.serial is None:
            return b''
        return self.serial.read(size)

    def start_reader(self, callback: Callable[[bytes], None]) -> None:
        """Start the background reader, replacing any previous one."""
        self.stop_reader()
        self._reader = _ReaderThread(self, callback)
        self._reader.start()
        self.log.debug("Reader thread started")

    def stop_reader(self) -> None:
        if self._reader is not None:
            self._reader.stop()
            if self._reader is not threading.current_thread():
                self._reader.join(timeout=SERIAL_TIMEOUT * 2)
            self._reader = None

    @staticmethod
    def list_ports() -> List[Dict[str, str]]:
        """List available serial ports (Static method - no self.log)."""
        ports = []
        for port in serial.tools.list_ports.comports():
            ports.append({
                'port': port.device,
                'description': port.description,
                'manufacturer': port.manufacturer or '',
                'hwid': port.hwid
            })
        return ports
