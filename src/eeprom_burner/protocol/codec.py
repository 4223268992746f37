"""
Numeral and command codec for the burner's textual wire protocol.

Host -> device commands, one per message::

    \\0<cmd>,<addr:4 hex>,<len:4 hex>,<fill>,<progress>\\n

- cmd: R/W/F (hexadecimal mode) or r/w/f (binary mode)
- fill: '0' + literal character, 2 hex digits for a byte value, or '0' if unused
- progress: '1' asks the device for progress reports, '0' suppresses them
"""

from typing import TYPE_CHECKING

from ..exceptions import FormatError

if TYPE_CHECKING:
    from ..device.operation import Operation

MESSAGE_SEPARATOR = b'\x00'
END_OF_MESSAGE = b'%'

ADDRESS_WIDTH = 4  # hex digits
LENGTH_WIDTH = 4
FILL_WIDTH = 2
MAX_FIELD_VALUE = 0xFFFF
ADDRESS_SPACE = MAX_FIELD_VALUE + 1

_PREFIX_BASES = {'0b': 2, '0o': 8, '0x': 16}


def encode(value: int, width: int) -> str:
    """
    Format an unsigned value as lower-case hex, left-padded with zeros.

    No overflow check is made; callers guarantee the value fits.

    Args:
        value: Unsigned integer to format
        width: Minimum number of hex digits

    Returns:
        Hex text, e.g. encode(0x1A, 4) == "001a"
    """
    return format(value or 0, 'x').rjust(width, '0')


def decode(text: str, base: int = 10) -> int:
    """
    Parse a numeral.

    A 0b/0o/0x prefix selects base 2/8/16, otherwise `base` is used
    (16 for wire hex fields, 10 for command-line input and progress reports).

    Raises:
        FormatError: If the text is not a valid non-negative numeral.
    """
    if not isinstance(text, str):
        raise FormatError(f"Expected numeral text, got {type(text).__name__}")
    cleaned = text.strip()
    prefix = cleaned[:2].lower()
    if prefix in _PREFIX_BASES:
        base = _PREFIX_BASES[prefix]
        digits = cleaned[2:]
    else:
        digits = cleaned
    if not digits or digits.startswith(('-', '+')):
        raise FormatError(f"Invalid numeral: {text!r}")
    try:
        return int(digits, base)
    except ValueError as e:
        raise FormatError(f"Invalid numeral: {text!r}") from e


def format_fill_field(op: "Operation") -> str:
    if isinstance(op.fill_value, str):
        return '0' + op.fill_value
    if op.fill_value is not None:
        return encode(op.fill_value, FILL_WIDTH)
    return '0'


def format_command(op: "Operation", send_progress: bool) -> bytes:
    """
    Build the wire command for an operation, separator byte included.

    Args:
        op: Operation to send
        send_progress: Whether the device should send progress reports

    Returns:
        ASCII command bytes ready for the link
    """
    text = ','.join([
        op.command_char,
        encode(op.address, ADDRESS_WIDTH),
        encode(op.length, LENGTH_WIDTH),
        format_fill_field(op),
        '1' if send_progress else '0',
    ]) + '\n'
    return MESSAGE_SEPARATOR + text.encode('latin-1')


def describe_command(command: bytes) -> str:
    """Printable form of a formatted command (separator and newline stripped)."""
    return command.decode('latin-1').strip('\x00\n')
