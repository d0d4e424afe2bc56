"""Serverless entry point for the scheduled sync."""

from discover_sync.sync_service import SyncService
from discover_sync.utils.config import load_config
from discover_sync.utils.logger import get_logger


logger = get_logger()


def handler(event=None, context=None):
    """
    Run one sync. Takes no input and returns nothing.

    Failures are logged and re-raised so the platform marks the invocation
    as failed.
    """
    try:
        config = load_config()
        report = SyncService(config).run()
    except Exception as e:
        logger.error(f"Sync failed: {e}")
        raise

    logger.info(f"Sync finished in {report.to_dict()['duration_seconds']:.1f}s")
