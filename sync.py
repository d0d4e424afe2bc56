#!/usr/bin/env python3
"""
Discover Weekly Sync

Copies the Discover Weekly tracks you saved to your library into your
target playlist. Run it from cron or by hand; the serverless deployment
uses discover_sync.handler.handler instead.
"""

import argparse
import sys

from dotenv import load_dotenv

from discover_sync.sync_service import SyncService
from discover_sync.utils.config import load_config
from discover_sync.utils.logger import setup_logger


def main():
    """Main entry point for CLI."""
    parser = argparse.ArgumentParser(
        description="Copy saved Discover Weekly tracks to a target playlist"
    )
    parser.add_argument(
        '--dry-run',
        action='store_true',
        help='Check the library but do not add tracks'
    )
    parser.add_argument(
        '--env-file',
        type=str,
        default='.env',
        help='Path to a .env file with settings (default: .env)'
    )
    parser.add_argument(
        '--log-file',
        type=str,
        default=None,
        help='Path to log file (optional)'
    )
    parser.add_argument(
        '--report',
        type=str,
        default=None,
        help='Write a JSON run report to this path (optional)'
    )

    args = parser.parse_args()
    load_dotenv(args.env_file)
    logger = setup_logger(log_file=args.log_file)

    try:
        config = load_config()
        service = SyncService(config)
        report = service.run(dry_run=args.dry_run)

        if args.report:
            report.save_to_file(args.report)
            logger.info(f"Report saved to: {args.report}")

        sys.exit(0)

    except KeyboardInterrupt:
        logger.error("Sync interrupted by user")
        sys.exit(1)
    except Exception as e:
        logger.error(f"Sync failed: {e}")
        sys.exit(1)


if __name__ == '__main__':
    main()
