#!/usr/bin/env python3
"""
Streamed Tracking Script.

Initializes the Aurora, enables every connected sensor and streams samples
for one second, collecting timestamps, poses, frame numbers and errors.

Usage: stream_tracking.py [PORT]
"""

import sys
import time
import logging
from pathlib import Path

# Add package to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from aurora import AuroraDevice

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(levelname)s - %(message)s'
)

STREAM_SECONDS = 1.0


def main():
    port = sys.argv[1] if len(sys.argv) > 1 else "/dev/ttyUSB0"
    samples = []

    print(f"Connecting to Aurora on {port}...")
    with AuroraDevice(port) as device:
        if not device.init():
            print("Initialization failed! Is the SCU powered and connected?")
            return

        device.api.beep(6)
        print(f"API revision: {device.api.apirev()}")

        device.detect_port_handles()
        device.init_port_handles()
        device.enable_port_handles()

        device.start_tracking(fast=True)
        device.api.beep(1)

        device.start_streaming(samples.append)
        time.sleep(STREAM_SECONDS)
        device.stop_streaming()

        device.stop_tracking()

    print(f"Received {len(samples)} samples in {STREAM_SECONDS:.1f} s")
    if samples:
        first, last = samples[0], samples[-1]
        print(f"Frames {first.frame_numbers} -> {last.frame_numbers}")
        print(f"Last translations: {last.translations}")
        print(f"Last errors: {last.errors}")


if __name__ == "__main__":
    main()
