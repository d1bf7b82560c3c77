"""Unit tests for ReceiveBuffer."""

import threading
import time
import unittest

from aurora.transport.buffer import ReceiveBuffer


class TestReceiveBuffer(unittest.TestCase):
    """Tests for the blocking receive buffer."""

    def setUp(self):
        self.buffer = ReceiveBuffer(max_size=64)

    def test_read_available(self):
        """Test reading data already buffered."""
        self.buffer.write(b'hello world')

        self.assertEqual(self.buffer.read(5, timeout=0.1), b'hello')
        self.assertEqual(self.buffer.size, 6)

    def test_read_short_on_timeout(self):
        """Test a read returns what it has when the timeout expires."""
        self.buffer.write(b'abc')

        start = time.monotonic()
        data = self.buffer.read(10, timeout=0.05)

        self.assertEqual(data, b'abc')
        self.assertGreaterEqual(time.monotonic() - start, 0.04)

    def test_read_waits_for_writer(self):
        """Test a blocked read completes once enough data arrives."""
        timer = threading.Timer(0.05, self.buffer.write, args=(b'12345',))
        timer.start()

        self.assertEqual(self.buffer.read(5, timeout=2.0), b'12345')
        timer.join()

    def test_read_until(self):
        """Test line reads strip the terminator and keep the rest."""
        self.buffer.write(b'OKAYA896\rERROR')

        self.assertEqual(self.buffer.read_until(b'\r', timeout=0.1), b'OKAYA896')
        self.assertEqual(self.buffer.size, 5)

    def test_read_until_timeout_consumes_nothing(self):
        """Test a missing terminator leaves the partial line in place."""
        self.buffer.write(b'OKAY')

        self.assertIsNone(self.buffer.read_until(b'\r', timeout=0.02))
        self.assertEqual(self.buffer.size, 4)

    def test_overflow_drops_oldest(self):
        """Test overflow keeps the newest bytes."""
        self.buffer.write(b'a' * 60)
        self.buffer.write(b'b' * 10)

        self.assertEqual(self.buffer.size, 64)
        self.assertEqual(self.buffer.read(64, timeout=0), b'a' * 54 + b'b' * 10)

    def test_close_wakes_reader(self):
        """Test closing releases a reader waiting without timeout."""
        result = []
        reader = threading.Thread(target=lambda: result.append(self.buffer.read(4)))
        reader.start()
        time.sleep(0.02)

        self.buffer.close()
        reader.join(timeout=1.0)

        self.assertFalse(reader.is_alive())
        self.assertEqual(result, [b''])

    def test_open_clears(self):
        """Test reopening resets content and closed state."""
        self.buffer.write(b'stale')
        self.buffer.close()
        self.buffer.open()

        self.assertEqual(self.buffer.size, 0)
        self.assertIsNone(self.buffer.read_until(b'\r', timeout=0.01))

    def test_clear(self):
        """Test clearing discards buffered bytes."""
        self.buffer.write(b'data')
        self.buffer.clear()
        self.assertEqual(self.buffer.size, 0)


if __name__ == '__main__':
    unittest.main()
