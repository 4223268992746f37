"""Exceptions raised by the EEPROM burner host."""

from typing import Optional


class BurnerError(Exception):
    """Base class for every error raised by this package."""


class FormatError(BurnerError, ValueError):
    """A numeral, address, length or fill value could not be parsed or does not fit its field."""


class ProtocolError(BurnerError):
    """The device sent a token that makes no sense in the current session state."""

    def __init__(self, message: str, token: Optional[str] = None):
        super().__init__(message)
        self.token = token


class LinkTimeoutError(BurnerError):
    """The device never acknowledged a command within the retry budget."""


class DeviceReportedError(BurnerError):
    """The device answered with beginError followed by a message."""

    def __init__(self, message: str):
        super().__init__(message)
        self.device_message = message
