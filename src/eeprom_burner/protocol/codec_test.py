import unittest

from eeprom_burner.device.operation import Operation, OperationKind
from eeprom_burner.exceptions import FormatError
from eeprom_burner.protocol.codec import decode, describe_command, encode, format_command

class TestEncodeDecode(unittest.TestCase):

    def test_encode_pads_to_width(self):
        self.assertEqual(encode(0x1A, 4), "001a")
        self.assertEqual(encode(0, 4), "0000")
        self.assertEqual(encode(0xFFFF, 4), "ffff")
        self.assertEqual(encode(0xF, 2), "0f")

    def test_encode_does_not_truncate(self):
        """No overflow check: a wider value keeps all its digits."""
        self.assertEqual(encode(0x12345, 4), "12345")

    def test_encode_decode_wire_hex(self):
        for value in (0, 1, 0x0100, 0x7FFF, 0xFFFF):
            self.assertEqual(decode(encode(value, 4), 16), value)

    def test_decode_prefixes(self):
        self.assertEqual(decode("0x1f"), 31)
        self.assertEqual(decode("0X1F"), 31)
        self.assertEqual(decode("0b101"), 5)
        self.assertEqual(decode("0o17"), 15)

    def test_decode_default_base(self):
        self.assertEqual(decode("256"), 256, "CLI input without prefix is decimal")
        self.assertEqual(decode("ff", 16), 255, "Wire fields are plain hex")
        self.assertEqual(decode(" 42 "), 42)

    def test_decode_invalid(self):
        for text in ("", "0x", "abc", "12z", "-5", "0b102"):
            with self.subTest(text=text):
                with self.assertRaises(FormatError):
                    decode(text)

    def test_format_error_is_value_error(self):
        with self.assertRaises(ValueError):
            decode("nope")

class TestFormatCommand(unittest.TestCase):

    def test_fill_with_byte_value(self):
        op = Operation(OperationKind.FILL, 0x0100, 16, fill_value=0xFF)
        self.assertEqual(format_command(op, send_progress=True), b"\x00F,0100,0010,ff,1\n")

    def test_fill_with_char_in_binary_mode(self):
        op = Operation(OperationKind.FILL, 0, 4, fill_value='a', binary=True)
        self.assertEqual(format_command(op, send_progress=False), b"\x00f,0000,0004,0a,0\n")

    def test_read_has_empty_fill_field(self):
        op = Operation(OperationKind.READ, 0x1234, 0x20)
        self.assertEqual(format_command(op, send_progress=True), b"\x00R,1234,0020,0,1\n")

    def test_write_binary(self):
        op = Operation(OperationKind.WRITE, 0x10, 3, buffer=b"abc", binary=True)
        self.assertEqual(format_command(op, send_progress=True), b"\x00w,0010,0003,0,1\n")

    def test_describe_command(self):
        op = Operation(OperationKind.READ, 0, 1)
        self.assertEqual(describe_command(format_command(op, True)), "R,0000,0001,0,1")

if __name__ == '__main__':
    unittest.main()
