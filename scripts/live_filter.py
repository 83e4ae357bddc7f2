"""
Run the live face filter window.

Usage:
    python scripts/live_filter.py [--camera 0] [--fit cover] [--no-mirror]

Click (or press space) to start; press 'q' to quit the window.
"""
from __future__ import annotations
import argparse
import logging

from facecam.app import run_app
from facecam.config import Settings


def main():
    p = argparse.ArgumentParser()
    p.add_argument("--camera", type=int, default=None, help="Camera index (default: CAMERA_INDEX)")
    p.add_argument("--fit", choices=("contain", "cover"), default=None, help="How the frame fills the window")
    p.add_argument("--no-mirror", action="store_true", help="Disable selfie mirroring")
    p.add_argument("--detect-interval-ms", type=int, default=None, help="Delay between detection passes")
    p.add_argument("--log-level", default="INFO", help="Python logging level")
    args = p.parse_args()

    logging.basicConfig(level=getattr(logging, args.log_level.upper(), logging.INFO),
                        format="%(asctime)s %(levelname)s %(name)s: %(message)s")

    overrides = {}
    if args.camera is not None:
        overrides["CAMERA_INDEX"] = args.camera
    if args.fit is not None:
        overrides["FIT_MODE"] = args.fit
    if args.no_mirror:
        overrides["MIRROR_CAMERA"] = False
    if args.detect_interval_ms is not None:
        overrides["DETECT_INTERVAL_MS"] = args.detect_interval_ms

    run_app(Settings(**overrides))


if __name__ == "__main__":
    main()
