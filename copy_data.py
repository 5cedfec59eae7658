"""
Copy the latest export into the dashboard's static data directory.

Usage:
    python copy_data.py
    python copy_data.py --source data/investors.json --target frontend/public/data
"""

import argparse
import logging
import sys

from output.json_writer import DEFAULT_EXPORT_PATH, FRONTEND_DATA_DIR, copy_export

logging.basicConfig(level=logging.INFO, format="%(message)s")
logger = logging.getLogger(__name__)


def parse_args(argv=None):
    parser = argparse.ArgumentParser(description="Copy data/investors.json into the dashboard")
    parser.add_argument("--source", default=DEFAULT_EXPORT_PATH, help=f"Export file (default: {DEFAULT_EXPORT_PATH})")
    parser.add_argument("--target", default=FRONTEND_DATA_DIR, help=f"Target directory (default: {FRONTEND_DATA_DIR})")
    return parser.parse_args(argv)


def main(argv=None) -> int:
    args = parse_args(argv)
    try:
        copy_export(args.source, args.target)
    except FileNotFoundError as e:
        logger.error(f"  ❌  {e}")
        logger.error("  Run the crawler first with exportToJson enabled (python engine.py --export)")
        return 1
    except OSError as e:
        logger.error(f"  ❌  Error copying data: {e}")
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
