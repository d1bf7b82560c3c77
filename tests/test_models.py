"""Unit tests for data models."""

import math
import unittest

from aurora.models import (
    CommandFormat,
    DeviceMode,
    DeviceSession,
    HandleReading,
    PortHandle,
    SensorFrame,
    SensorStatus,
    TrackingSample,
    quaternion_to_euler,
)


class TestPortHandle(unittest.TestCase):
    """Tests for the PortHandle record."""

    def test_defaults(self):
        """Test a freshly discovered handle carries identity pose and no sample."""
        handle = PortHandle(id="0A", status="001")

        self.assertIsNone(handle.sensor_status)
        self.assertEqual(handle.translation, (0.0, 0.0, 0.0))
        self.assertEqual(handle.rotation, (1.0, 0.0, 0.0, 0.0))
        self.assertEqual(handle.error, 0.0)
        self.assertIsNone(handle.port_status)
        self.assertEqual(handle.frame_number, 0)

    def test_status_bits(self):
        """Test occupied/initialized/enabled flags decode the PHSR status."""
        handle = PortHandle(id="0A", status="031")
        self.assertTrue(handle.occupied)
        self.assertTrue(handle.initialized)
        self.assertTrue(handle.enabled)

        handle.status = "001"
        self.assertTrue(handle.occupied)
        self.assertFalse(handle.initialized)
        self.assertFalse(handle.enabled)

        handle.status = "011"
        self.assertTrue(handle.initialized)
        self.assertFalse(handle.enabled)

    def test_apply_valid_reading(self):
        """Test a VALID reading replaces pose, error and counters."""
        handle = PortHandle(id="0A", status="031")
        handle.apply(HandleReading(
            id="0A",
            sensor_status=SensorStatus.VALID,
            rotation=(0.5, 0.5, 0.5, 0.5),
            translation=(1.0, 2.0, 3.0),
            error=0.25,
            port_status="00000031",
            frame_number=42,
        ))

        self.assertEqual(handle.sensor_status, SensorStatus.VALID)
        self.assertEqual(handle.rotation, (0.5, 0.5, 0.5, 0.5))
        self.assertEqual(handle.translation, (1.0, 2.0, 3.0))
        self.assertEqual(handle.error, 0.25)
        self.assertEqual(handle.port_status, "00000031")
        self.assertEqual(handle.frame_number, 42)

    def test_apply_missing_keeps_pose(self):
        """Test a MISSING reading keeps the last pose but updates counters."""
        handle = PortHandle(id="0A", status="031", translation=(1.0, 2.0, 3.0), error=0.5)
        handle.apply(HandleReading(
            id="0A",
            sensor_status=SensorStatus.MISSING,
            port_status="00000031",
            frame_number=7,
        ))

        self.assertEqual(handle.sensor_status, SensorStatus.MISSING)
        self.assertEqual(handle.translation, (1.0, 2.0, 3.0))
        self.assertEqual(handle.error, 0.5)
        self.assertEqual(handle.frame_number, 7)

    def test_apply_disabled_keeps_everything_else(self):
        """Test a DISABLED reading only changes the sensor status."""
        handle = PortHandle(id="0A", status="031", port_status="00000031", frame_number=9)
        handle.apply(HandleReading(id="0A", sensor_status=SensorStatus.DISABLED))

        self.assertEqual(handle.sensor_status, SensorStatus.DISABLED)
        self.assertEqual(handle.port_status, "00000031")
        self.assertEqual(handle.frame_number, 9)

    def test_copy_is_independent(self):
        """Test copies do not alias the original."""
        handle = PortHandle(id="0A", status="001")
        clone = handle.copy()
        clone.status = "031"

        self.assertEqual(handle.status, "001")
        self.assertEqual(clone, PortHandle(id="0A", status="031"))


class TestSensorFrameAndSample(unittest.TestCase):
    """Tests for decoded frame and sample views."""

    def setUp(self):
        self.readings = (
            HandleReading(id="0A", sensor_status=SensorStatus.VALID,
                          rotation=(1.0, 0.0, 0.0, 0.0), translation=(1.0, 2.0, 3.0),
                          error=0.5, port_status="00000031", frame_number=100),
            HandleReading(id="0B", sensor_status=SensorStatus.DISABLED),
        )
        self.frame = SensorFrame(
            timestamp=10.0, start_sequence=0xA5C4, reply_length=0, header_crc=0,
            readings=self.readings, system_status=0, crc=0,
        )

    def test_reading_for(self):
        """Test lookup of a frame entry by handle id."""
        self.assertIs(self.frame.reading_for("0B"), self.readings[1])
        self.assertIsNone(self.frame.reading_for("0C"))

    def test_sample_views(self):
        """Test per-handle tuples exposed by TrackingSample."""
        handles = (
            PortHandle(id="0A", status="031", translation=(1.0, 2.0, 3.0), error=0.5,
                       frame_number=100),
            PortHandle(id="0B", status="011"),
        )
        sample = TrackingSample(timestamp=10.0, frame=self.frame, handles=handles)

        self.assertEqual(sample.translations, ((1.0, 2.0, 3.0), (0.0, 0.0, 0.0)))
        self.assertEqual(sample.errors, (0.5, 0.0))
        self.assertEqual(sample.frame_numbers, (100, 0))
        self.assertEqual(sample.rotations[1], (1.0, 0.0, 0.0, 0.0))
        self.assertIs(sample.handle("0B"), handles[1])
        self.assertIsNone(sample.handle("FF"))


class TestDeviceSession(unittest.TestCase):
    """Tests for DeviceSession defaults."""

    def test_defaults(self):
        """Test a new session is uninitialized at 9600 baud with simple framing."""
        session = DeviceSession()

        self.assertEqual(session.mode, DeviceMode.UNINITIALIZED)
        self.assertEqual(session.baud_rate, 9600)
        self.assertEqual(session.command_format, CommandFormat.SIMPLE)


class TestQuaternionToEuler(unittest.TestCase):
    """Tests for quaternion to Euler conversion."""

    def test_identity(self):
        """Test identity quaternion gives zero angles."""
        for angle in quaternion_to_euler((1.0, 0.0, 0.0, 0.0)):
            self.assertAlmostEqual(angle, 0.0)

    def test_pitch_only(self):
        """Test a rotation about Y shows up as pitch only."""
        half = math.radians(30.0) / 2
        yaw, pitch, roll = quaternion_to_euler((math.cos(half), 0.0, math.sin(half), 0.0))

        self.assertAlmostEqual(yaw, 0.0)
        self.assertAlmostEqual(pitch, math.radians(30.0))
        self.assertAlmostEqual(roll, 0.0)

    def test_yaw_only_unnormalized(self):
        """Test a scaled quaternion is normalized before conversion."""
        half = math.radians(90.0) / 2
        yaw, pitch, roll = quaternion_to_euler((2 * math.cos(half), 0.0, 0.0, 2 * math.sin(half)))

        self.assertAlmostEqual(yaw, math.radians(90.0))
        self.assertAlmostEqual(pitch, 0.0)
        self.assertAlmostEqual(roll, 0.0)

    def test_zero_quaternion(self):
        """Test the zero quaternion is rejected."""
        with self.assertRaises(ValueError):
            quaternion_to_euler((0.0, 0.0, 0.0, 0.0))


if __name__ == '__main__':
    unittest.main()
