#!/usr/bin/env python3
"""
Polled Tracking Script.

Initializes the Aurora, enables every connected sensor and reads a fixed
number of samples one BX poll at a time.

Usage: poll_tracking.py [PORT]
"""

import sys
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

N_SAMPLES = 100


def main():
    port = sys.argv[1] if len(sys.argv) > 1 else "/dev/ttyUSB0"

    print(f"Connecting to Aurora on {port}...")
    with AuroraDevice(port) as device:
        if not device.init():
            print("Initialization failed! Is the SCU powered and connected?")
            return

        device.api.beep(6)
        print(f"API revision: {device.api.apirev()}")
        for reply_option in "04578":
            print(device.api.ver(reply_option))

        device.detect_port_handles()
        device.init_port_handles()
        device.enable_port_handles()
        print(f"Port handles: {[h.id for h in device.port_handles]}")

        device.start_tracking(fast=True)
        device.api.beep(1)

        try:
            for i in range(N_SAMPLES):
                sample = device.update_sensor_data()
                for handle in sample.handles:
                    x, y, z = handle.translation
                    print(f"[{i + 1}/{N_SAMPLES}] {handle.id} #{handle.frame_number}: "
                          f"{handle.sensor_status.name if handle.sensor_status else '?'} "
                          f"({x:8.2f}, {y:8.2f}, {z:8.2f}) err={handle.error:.3f}")
        except KeyboardInterrupt:
            print("\nInterrupted by user.")
        finally:
            device.stop_tracking()

    print("Done.")


if __name__ == "__main__":
    main()
