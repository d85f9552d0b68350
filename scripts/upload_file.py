"""Upload an image file to Lutim from the command line."""

from __future__ import annotations

import argparse
import sys
from pathlib import Path

from PIL import Image

from config.settings import ConfigurationError, load_config
from modules.ui.layout import build_service
from modules.utils.filename import CaptureDetails
from modules.utils.logging import setup_logging


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Upload an image to a Lutim server.")
    parser.add_argument("image", type=Path, help="Path of the image to upload")
    parser.add_argument("--config", default=None, help="Path of the .env file")
    parser.add_argument("--title", default=None, help="Title used by the filename pattern")
    parser.add_argument(
        "--no-clipboard",
        action="store_true",
        help="Do not copy the resulting link to the clipboard",
    )
    return parser.parse_args()


def main() -> int:
    args = parse_args()
    try:
        config = load_config(args.config)
    except ConfigurationError as exc:
        print(f"配置错误：{exc}", file=sys.stderr)
        return 2
    if args.no_clipboard:
        config.copy_link_to_clipboard = False
    setup_logging(config)

    service = build_service(config)
    try:
        with Image.open(args.image) as image:
            image.load()
            outcome = service.upload(image, CaptureDetails(title=args.title or args.image.stem))
    finally:
        service.runner.shutdown()

    print(outcome.message)
    if not outcome.success:
        return 1
    if outcome.info is not None:
        print(outcome.info.uri)
        print(f"删除链接：{outcome.info.delete_url}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
