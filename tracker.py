#!/usr/bin/env python3
"""SalesTrack - local-first sales pipeline tracker.

Single entry point for the application.

Usage:
    python tracker.py --init          # Create the database schema
    python tracker.py --check-config  # Report configuration issues
    python tracker.py --version       # Show version
"""

import argparse
import logging
import sys

from salestrack import __version__
from salestrack.core.config import get_config, validate_config
from salestrack.core.exceptions import SalesTrackError
from salestrack.core.logging import get_logger, setup_logging


def main(argv=None) -> int:
    """Main entry point for SalesTrack.

    Returns:
        Exit code (0 = success, non-zero = error)
    """
    parser = argparse.ArgumentParser(description="SalesTrack - local-first sales pipeline tracker")
    parser.add_argument("--version", action="store_true", help="Show version and exit")
    parser.add_argument("--init", action="store_true", help="Create the database schema and exit")
    parser.add_argument(
        "--check-config",
        action="store_true",
        help="Print configuration issues and exit",
    )
    parser.add_argument("--debug", action="store_true", help="Enable debug logging")

    args = parser.parse_args(argv)

    if args.version:
        print(f"SalesTrack v{__version__}")
        return 0

    try:
        config = get_config()
    except SalesTrackError as e:
        print(f"Configuration error: {e}", file=sys.stderr)
        return 2

    debug = args.debug or config.debug
    setup_logging(
        config.log_path,
        console_level=logging.DEBUG if debug else logging.INFO,
    )
    logger = get_logger("main")
    logger.info(f"SalesTrack v{__version__} starting...")

    issues = validate_config(config)
    for issue in issues:
        logger.warning(f"Configuration issue: {issue}")

    if args.check_config:
        print(f"\nSalesTrack v{__version__} - Configuration\n")
        print(f"  Database:          {config.db_path}")
        print(f"  Logs:              {config.log_path}")
        print(f"  Default industry:  {config.default_industry}")
        print(f"  Min password len:  {config.min_password_length}")
        if issues:
            print(f"\nConfiguration issues ({len(issues)}):")
            for issue in issues:
                print(f"  ! {issue}")
        print()
        return 1 if issues else 0

    from salestrack.db.database import Database

    try:
        with Database(str(config.db_path)):
            pass
    except SalesTrackError as e:
        logger.error(f"Failed to initialize database: {e}")
        return 1

    if args.init:
        print(f"Database ready at {config.db_path}")
        return 0

    parser.print_help()
    return 0


if __name__ == "__main__":
    sys.exit(main())
