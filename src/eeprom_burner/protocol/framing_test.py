import unittest

from eeprom_burner.protocol.framing import END_TOKEN, FrameSplitter, Token

def _texts(tokens):
    return ['%' if t.is_end else t.text for t in tokens]

class TestFrameSplitter(unittest.TestCase):

    def setUp(self):
        self.splitter = FrameSplitter()

    def test_control_word_then_data(self):
        """Chunk boundaries are not message boundaries."""
        tokens = self.splitter.split(b"\x00beginRead") + self.splitter.split(b"hello%")
        self.assertEqual(_texts(tokens), ["beginRead", "hello", "%"])
        self.assertTrue(tokens[0].is_control)
        self.assertTrue(tokens[2].is_end)

    def test_same_tokens_in_one_chunk(self):
        tokens = self.splitter.split(b"\x00beginRead\x00hello%")
        self.assertEqual(_texts(tokens), ["beginRead", "hello", "%"])

    def test_terminator_alone(self):
        self.assertEqual(self.splitter.split(b"%"), [END_TOKEN])

    def test_bytes_after_terminator_are_dropped(self):
        tokens = self.splitter.split(b"abc%def")
        self.assertEqual(_texts(tokens), ["abc", "%"])

    def test_separator_after_terminator_starts_new_message(self):
        tokens = self.splitter.split(b"data%\x00beginFill")
        self.assertEqual(_texts(tokens), ["data", "%", "beginFill"])

    def test_empty_segments_are_skipped(self):
        self.assertEqual(self.splitter.split(b"\x00\x00"), [])
        self.assertEqual(self.splitter.split(b""), [])

    def test_raw_bytes_preserved(self):
        payload = bytes(range(0x80, 0x90))
        tokens = self.splitter.split(payload)
        self.assertEqual(len(tokens), 1)
        self.assertEqual(tokens[0].raw, payload)
        self.assertFalse(tokens[0].is_control)

    def test_partial_control_word_is_plain_data(self):
        tokens = self.splitter.split(b"\x00begin") + self.splitter.split(b"Read")
        self.assertEqual(_texts(tokens), ["begin", "Read"])
        self.assertFalse(any(t.is_control for t in tokens))

    def test_token_repr(self):
        self.assertEqual(repr(END_TOKEN), "Token(END)")
        self.assertEqual(repr(Token(b"x")), "Token(b'x')")

if __name__ == '__main__':
    unittest.main()
