#!/usr/bin/env python
"""
Check that a pixshop relay is reachable and can run an edit.

Usage:
    python scripts/check_relay.py [--relay-url URL] [--health-only]
"""

import argparse
import sys
from pathlib import Path

import requests
from PIL import Image

# Add src to path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from pixshop.core.config import Config
from pixshop.core.editor import generate_filtered_image


def _health_url(relay_url: str) -> str:
    base = relay_url.rstrip("/")
    if base.endswith("/api/generate"):
        base = base[: -len("/api/generate")]
    return f"{base}/health"


def main() -> None:
    """Check relay health, then run one filter through it."""
    parser = argparse.ArgumentParser(description="Check a pixshop relay")
    parser.add_argument("--relay-url", help="Relay endpoint (default: PIXSHOP_RELAY_URL)")
    parser.add_argument("--health-only", action="store_true", help="Skip the test edit")
    args = parser.parse_args()

    config = Config.from_env()
    config.default_transport = "relay"
    if args.relay_url:
        config.relay_url = args.relay_url

    print(f"Checking relay at {config.relay_url}...")
    try:
        response = requests.get(_health_url(config.relay_url), timeout=10)
        response.raise_for_status()
        health = response.json()
    except (requests.RequestException, ValueError) as e:
        print(f"❌ Health check failed: {e}")
        sys.exit(1)
    print(f"✓ Relay is up (model: {health.get('model', 'unknown')})")

    if args.health_only:
        return

    print()
    print("Running a test filter (this may take 10-30 seconds)...")
    sample = Image.new("RGB", (256, 192), (240, 240, 240))
    sample.paste((30, 60, 200), (64, 48, 192, 144))
    try:
        result = generate_filtered_image(sample, "black and white film photo", config=config)
    except Exception as e:
        print(f"❌ Edit failed: {e}")
        sys.exit(1)

    print("✓ Edit successful!")
    print(f"  - Time: {result.elapsed:.2f}s")
    print(f"  - Image size: {result.image.width}x{result.image.height}")
    print()
    print("✅ All checks passed! The relay is working correctly.")


if __name__ == "__main__":
    main()
