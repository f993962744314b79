import asyncio
import logging
import os
import time
from typing import Optional

logger = logging.getLogger(__name__)


def cleanup_old_files(directory: str, retention_seconds: float, now: Optional[float] = None) -> int:
    """Delete regular files in ``directory`` whose mtime is older than the retention window."""
    if not os.path.isdir(directory):
        os.makedirs(directory, exist_ok=True)
        return 0

    now = time.time() if now is None else now
    deleted = 0
    for name in os.listdir(directory):
        path = os.path.join(directory, name)
        try:
            if not os.path.isfile(path):
                continue
            if now - os.path.getmtime(path) > retention_seconds:
                os.remove(path)
                deleted += 1
        except OSError as e:
            logger.error(f"Error cleaning up {path}: {e}")

    if deleted:
        logger.info(f"Cleanup: deleted {deleted} files older than {retention_seconds / 3600:g} hours from {directory}")
    return deleted


async def run_cleanup_loop(directory: str, retention_seconds: float, interval_seconds: float):
    """Run cleanup now, then every ``interval_seconds`` until cancelled."""
    logger.info(f"File cleanup scheduler started ({retention_seconds / 3600:g} hour retention)")
    while True:
        try:
            cleanup_old_files(directory, retention_seconds)
        except OSError as e:
            logger.error(f"Error during file cleanup: {e}")
        await asyncio.sleep(interval_seconds)
