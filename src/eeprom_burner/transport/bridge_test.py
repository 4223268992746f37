import os
import tempfile
import unittest

from eeprom_burner.transport.bridge import CHUNK_SIZE, FileSink, FileSource, Progress

class TestProgress(unittest.TestCase):

    def test_from_offset(self):
        progress = Progress.from_offset(256, 1024)
        self.assertEqual(progress.percentage, 25.0)
        self.assertEqual(progress.bytes_left, "[256 / 1024 bytes]")

    def test_byte_count_is_clamped(self):
        """Reports past the window keep their raw percentage."""
        progress = Progress.from_offset(2048, 1024)
        self.assertEqual(progress.percentage, 200.0)
        self.assertEqual(progress.bytes_transferred, 1024)
        self.assertEqual(Progress.from_offset(-10, 100).bytes_transferred, 0)

    def test_empty_window(self):
        self.assertEqual(Progress.from_offset(0, 0).percentage, 100.0)

class TestFileBridge(unittest.TestCase):

    def setUp(self):
        self.tmpdir = tempfile.TemporaryDirectory()

    def tearDown(self):
        self.tmpdir.cleanup()

    def path(self, name):
        return os.path.join(self.tmpdir.name, name)

    def test_sink_opens_on_first_write(self):
        sink = FileSink(self.path("out.bin"), 4)
        self.assertFalse(sink.is_open)
        self.assertFalse(os.path.exists(self.path("out.bin")))

        self.assertEqual(sink.write(b"ab"), Progress(50.0, 2, 4))
        self.assertTrue(sink.is_open)
        sink.write(b"cd")
        sink.close()
        self.assertFalse(sink.is_open)
        with open(self.path("out.bin"), 'rb') as f:
            self.assertEqual(f.read(), b"abcd")

    def test_sink_close_without_data(self):
        sink = FileSink(self.path("never.bin"), 4)
        sink.close()
        self.assertFalse(os.path.exists(self.path("never.bin")))

    def test_source_chunks_at_contiguous_addresses(self):
        with open(self.path("in.bin"), 'wb') as f:
            f.write(b"\xaa" * (CHUNK_SIZE + 10))

        source = FileSource(self.path("in.bin"), 0x100)
        first = source.next_chunk()
        second = source.next_chunk()
        self.assertEqual((first[0], len(first[1])), (0x100, CHUNK_SIZE))
        self.assertEqual((second[0], len(second[1])), (0x100 + CHUNK_SIZE, 10))
        self.assertIsNone(source.next_chunk())
        self.assertIsNone(source.next_chunk())
        self.assertEqual(source.bytes_read, CHUNK_SIZE + 10)

    def test_empty_source(self):
        with open(self.path("empty.bin"), 'wb'):
            pass
        self.assertEqual(FileSource.size_of(self.path("empty.bin")), 0)
        self.assertIsNone(FileSource(self.path("empty.bin"), 0).next_chunk())

    def test_missing_source(self):
        with self.assertRaises(OSError):
            FileSource(self.path("missing.bin"), 0).next_chunk()

if __name__ == '__main__':
    unittest.main()
