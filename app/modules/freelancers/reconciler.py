import asyncio
import logging

from fastapi import HTTPException
from supabase import Client

from app.config import settings
from app.database.supabase_client import get_service_supabase
from app.modules.freelancers.models import OP_DELETE, STATUS_RECONCILED
from app.modules.freelancers.service import FreelancerService

logger = logging.getLogger(__name__)


def reconcile_profile_operations(supabase: Client) -> int:
    """Converge unsettled profile intents; returns how many were settled"""
    service = FreelancerService(supabase)
    stale = service.operations.unsettled(settings.reconcile_stale_after_seconds)
    if not stale:
        logger.debug("No unsettled profile operations")
        return 0
    logger.info(f"Found {len(stale)} unsettled profile operation(s)")

    settled = 0
    for op in stale:
        user_id = op["user_id"]
        try:
            profile = service.get_profile_row(user_id)
            if op["operation"] == OP_DELETE and profile is not None:
                # Re-running the cascade settles the intent itself or leaves it partial
                service.run_cascade(user_id, profile, op["id"])
                profile = None
            service.users.set_freelancer_flag(user_id, profile is not None)
            service.operations.finish(op["id"], STATUS_RECONCILED)
            settled += 1
        except HTTPException as e:
            logger.warning(f"Profile operation {op['id']} still unsettled: {e.detail}")
        except Exception as e:
            logger.error(f"Error reconciling profile operation {op['id']}: {str(e)}")
    return settled


async def reconciler_loop():
    """Background task that periodically settles interrupted profile writes"""
    while True:
        try:
            await asyncio.to_thread(reconcile_profile_operations, get_service_supabase())
        except Exception as e:
            logger.error(f"Error in profile reconciler loop: {str(e)}")

        await asyncio.sleep(settings.reconcile_interval_seconds)
