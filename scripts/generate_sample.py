#!/usr/bin/env python
"""
Create a sample photo and run one edit operation on it.

Usage:
    python scripts/generate_sample.py [--output FILE] [--filter TEXT] [--transport NAME]
"""

import argparse
import sys
from pathlib import Path

from PIL import Image, ImageDraw

# Add src to path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from pixshop.core.config import Config
from pixshop.core.editor import generate_filtered_image


def _sample_photo() -> Image.Image:
    """A simple landscape: sky, ground and a sun."""
    image = Image.new("RGB", (640, 400), (135, 190, 235))
    draw = ImageDraw.Draw(image)
    draw.rectangle((0, 260, 640, 400), fill=(70, 140, 60))
    draw.ellipse((470, 50, 560, 140), fill=(250, 210, 70))
    return image


def main() -> None:
    """Filter a sample photo."""
    parser = argparse.ArgumentParser(description="Filter a sample photo")
    parser.add_argument(
        "--output",
        default="sample_output.png",
        help="Output filename (default: sample_output.png)"
    )
    parser.add_argument(
        "--filter",
        default="vintage 1970s film photo",
        help="Filter to apply"
    )
    parser.add_argument(
        "--transport",
        choices=["relay", "direct"],
        help="Transport (default: PIXSHOP_TRANSPORT or relay)"
    )

    args = parser.parse_args()

    print(f"Applying filter: {args.filter}")
    print()

    config = Config.from_env()
    if args.transport:
        config.default_transport = args.transport
    config.validate()

    try:
        result = generate_filtered_image(_sample_photo(), args.filter, config=config)
        result.image.save(args.output)

        print("✓ Image edited successfully!")
        print(f"  - Saved to: {args.output}")
        print(f"  - Time: {result.elapsed:.2f}s")
        print(f"  - Transport: {result.transport}")

    except Exception as e:
        print(f"❌ Edit failed: {e}")
        sys.exit(1)


if __name__ == "__main__":
    main()
