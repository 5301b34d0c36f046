import asyncio
import logging
from app.config import settings
from app.database.supabase_client import SupabaseClient
from app.modules.privacy.service import RetentionService

logger = logging.getLogger(__name__)


async def run_retention_jobs() -> dict:
    """Complete due account deletions and expire old data exports"""
    summary = {"deletions": 0, "expired_exports": 0}
    try:
        service = RetentionService(SupabaseClient.get_service_client())
        summary["deletions"] = service.process_scheduled_deletions()
        summary["expired_exports"] = service.cleanup_expired_exports()
        if summary["deletions"] or summary["expired_exports"]:
            logger.info(f"Retention run: {summary}")
        else:
            logger.debug("Retention run found nothing to do")
    except Exception as e:
        logger.error(f"Error in retention jobs: {str(e)}")
    return summary


async def retention_scheduler_loop():
    """Background task that periodically runs the privacy retention jobs"""
    while True:
        try:
            await run_retention_jobs()
        except Exception as e:
            logger.error(f"Error in retention scheduler loop: {str(e)}")

        await asyncio.sleep(settings.retention_interval_seconds)
