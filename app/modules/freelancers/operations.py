"""Journal of multi-step profile writes, so a half-finished one is visible and repairable."""
import logging
from datetime import datetime, timezone, timedelta
from typing import List, Optional, Dict, Any

from fastapi import HTTPException
from supabase import Client

from app.modules.freelancers.models import OPERATIONS_TABLE, STATUS_PENDING, UNSETTLED_STATUSES

logger = logging.getLogger(__name__)


def _now() -> datetime:
    return datetime.now(timezone.utc)


class ProfileOperationLog:
    def __init__(self, supabase: Client):
        self.supabase = supabase

    def start(self, user_id: str, operation: str, payload: Optional[Dict[str, Any]] = None) -> str:
        """Record the intent before the first write; no intent, no write"""
        now = _now().isoformat()
        try:
            result = self.supabase.table(OPERATIONS_TABLE).insert({
                "user_id": user_id,
                "operation": operation,
                "status": STATUS_PENDING,
                "payload": payload or {},
                "created_at": now,
                "updated_at": now
            }).execute()
        except Exception as e:
            logger.error(f"Could not record {operation} intent for {user_id}: {e}")
            raise HTTPException(status_code=500, detail="Failed to start profile operation")
        if not result.data:
            raise HTTPException(status_code=500, detail="Failed to start profile operation")
        op_id = result.data[0]["id"]
        logger.info("Profile %s %s started for user %s", operation, op_id, user_id)
        return op_id

    def finish(
        self,
        op_id: str,
        status: str,
        failed_tables: Optional[List[str]] = None,
        error: Optional[str] = None
    ) -> None:
        """Settle an intent. A failure here leaves it pending for the reconciler."""
        try:
            self.supabase.table(OPERATIONS_TABLE)\
                .update({
                    "status": status,
                    "failed_tables": failed_tables or [],
                    "error": error,
                    "updated_at": _now().isoformat()
                })\
                .eq("id", op_id)\
                .execute()
            logger.info("Profile operation %s -> %s", op_id, status)
        except Exception as e:
            logger.warning(f"Could not settle profile operation {op_id} as {status}: {e}")

    def unsettled(self, older_than_seconds: int) -> List[Dict[str, Any]]:
        cutoff = (_now() - timedelta(seconds=older_than_seconds)).isoformat()
        result = self.supabase.table(OPERATIONS_TABLE)\
            .select("*")\
            .in_("status", UNSETTLED_STATUSES)\
            .lt("updated_at", cutoff)\
            .order("created_at")\
            .execute()
        return result.data or []
