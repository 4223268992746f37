"""
EEPROM Burner - host-side protocol engine and CLI for an Arduino EEPROM burner
"""

__version__ = "0.1.0"

from eeprom_burner.config import EngineConfig
from eeprom_burner.device.engine import CommandEngine, MessageKind
from eeprom_burner.exceptions import (
    BurnerError,
    DeviceReportedError,
    FormatError,
    LinkTimeoutError,
    ProtocolError,
)

# This function is a direct entry point for CLI use
def cli_main():
    """
    Entry point for the `eeprom` command.
    This function is referenced in pyproject.toml
    """
    import sys
    from eeprom_burner.main import main
    sys.exit(main())
