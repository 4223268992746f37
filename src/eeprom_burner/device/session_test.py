import unittest
from unittest.mock import Mock

from eeprom_burner.device.session import SessionState, SessionStateMachine
from eeprom_burner.exceptions import ProtocolError
from eeprom_burner.protocol.framing import END_TOKEN, Token

def tok(text):
    return END_TOKEN if text == '%' else Token(text.encode('latin-1'))

class TestSessionStateMachine(unittest.TestCase):

    def setUp(self):
        self.host = Mock()
        self.sm = SessionStateMachine(self.host)

    def feed(self, *texts):
        for text in texts:
            self.sm.handle(tok(text))

    def test_acknowledgements_stop_retransmission(self):
        for word, state in (("beginRead", SessionState.READING),
                            ("beginFill", SessionState.FILLING),
                            ("beginWrite", SessionState.WRITING)):
            with self.subTest(word=word):
                self.host.reset_mock()
                self.sm.reset()
                self.feed(word)
                self.assertIs(self.sm.state, state)
                self.host.stop_retransmission.assert_called_once()

    def test_begin_write_sends_payload(self):
        self.feed("beginWrite")
        self.host.send_write_payload.assert_called_once()

    def test_read_payload_then_complete(self):
        self.feed("beginRead", "hello", "%")
        self.host.handle_read_payload.assert_called_once_with(Token(b"hello"))
        self.host.complete_operation.assert_called_once()
        self.assertIs(self.sm.state, SessionState.IDLE)

    def test_progress_restores_reading(self):
        """'data' after a progress interlude is still read payload."""
        self.host.report_progress.side_effect = lambda v: None
        self.feed("beginRead", "10", "beginProgress", "5", "%", "data", "%")
        payloads = [c.args[0].text for c in self.host.handle_read_payload.call_args_list]
        self.assertEqual(payloads, ["10", "data"])
        self.host.report_progress.assert_called_once_with(5)
        self.host.complete_operation.assert_called_once()

    def test_progress_does_not_touch_retransmission(self):
        self.feed("beginProgress")
        self.host.stop_retransmission.assert_not_called()
        self.assertIs(self.sm.previous_state, SessionState.IDLE)
        self.feed("42", "%")
        self.assertIs(self.sm.state, SessionState.IDLE)

    def test_error_report_accumulates_message(self):
        self.feed("beginWrite", "beginError", "Write ", "failed", "%")
        self.host.report_device_error.assert_called_once_with("Write failed")
        self.host.complete_operation.assert_not_called()
        self.assertIs(self.sm.state, SessionState.IDLE)

    def test_progress_inside_error_returns_to_error_report(self):
        """The error text after a nested progress report still belongs to the error."""
        self.feed("beginFill", "beginError", "beginProgress", "3", "%")
        self.assertIs(self.sm.state, SessionState.ERROR_REPORT)

        self.feed("chip locked", "%")
        self.host.report_device_error.assert_called_once_with("chip locked")
        self.host.complete_operation.assert_not_called()
        self.assertIs(self.sm.state, SessionState.IDLE)

    def test_progress_inside_progress_keeps_return_state(self):
        self.feed("beginRead", "beginProgress", "beginProgress", "7", "%")
        self.assertIs(self.sm.state, SessionState.READING)

    def test_write_and_fill_data_ignored(self):
        self.feed("beginFill", "noise", "%")
        self.host.complete_operation.assert_called_once()
        self.host.handle_read_payload.assert_not_called()

    def test_data_while_idle_is_protocol_error(self):
        with self.assertRaises(ProtocolError) as ctx:
            self.feed("garbage")
        self.assertEqual(ctx.exception.token, "garbage")

    def test_end_while_idle_is_protocol_error(self):
        with self.assertRaises(ProtocolError):
            self.feed("%")

    def test_invalid_progress_numeral(self):
        with self.assertRaises(ProtocolError):
            self.feed("beginProgress", "12ab")

if __name__ == '__main__':
    unittest.main()
