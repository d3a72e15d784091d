import logging
from datetime import datetime, timezone
from typing import Dict, Any, Optional

from fastapi import HTTPException
from supabase import Client
from svix.webhooks import Webhook, WebhookVerificationError

from app.modules.users.models import USERS_TABLE
from app.modules.webhooks.schemas import ClerkEvent, ClerkUserData

logger = logging.getLogger(__name__)

SVIX_HEADERS = ("svix-id", "svix-timestamp", "svix-signature")
USER_UPSERT_EVENTS = ("user.created", "user.updated")
USER_DELETE_EVENT = "user.deleted"


def verify_clerk_event(secret: Optional[str], payload: bytes, headers: Dict[str, Optional[str]]) -> ClerkEvent:
    """Check the Svix signature; nothing touches the store before this passes"""
    if not secret:
        logger.error("CLERK_WEBHOOK_SECRET not configured")
        raise HTTPException(status_code=500, detail="Webhook secret not configured")

    svix_headers = {name: headers.get(name) for name in SVIX_HEADERS}
    if not all(svix_headers.values()):
        logger.error("Missing svix headers")
        raise HTTPException(status_code=400, detail="Missing svix headers")

    try:
        webhook = Webhook(secret)
    except Exception as e:
        logger.error("Invalid webhook secret: %s", e)
        raise HTTPException(status_code=500, detail="Webhook secret not configured")

    try:
        event = webhook.verify(payload, svix_headers)
    except WebhookVerificationError as e:
        logger.warning("Webhook verification failed: %s", e)
        raise HTTPException(status_code=400, detail=f"Webhook error: {str(e)}")

    try:
        return ClerkEvent(**event)
    except Exception as e:
        raise HTTPException(status_code=400, detail=f"Webhook error: {str(e)}")


class ClerkSyncService:
    """Mirror Clerk user lifecycle events into the users table"""

    def __init__(self, supabase: Client):
        self.supabase = supabase

    def handle(self, event: ClerkEvent) -> None:
        logger.info("Webhook verified, event type: %s", event.type)
        if event.type in USER_UPSERT_EVENTS:
            self.sync_user(ClerkUserData(**event.data))
        elif event.type == USER_DELETE_EVENT:
            clerk_id = event.data.get("id")
            if clerk_id:
                self.delete_user(clerk_id)
        else:
            logger.debug("Ignoring webhook event %s", event.type)

    def sync_user(self, user: ClerkUserData) -> None:
        """Insert on first sight; an existing row only gets its email refreshed"""
        now = datetime.now(timezone.utc).isoformat()
        email = user.primary_email()
        try:
            inserted = self.supabase.table(USERS_TABLE).upsert({
                "clerk_id": user.id,
                "email": email,
                "is_freelancer": False,
                "created_at": now,
                "updated_at": now
            }, on_conflict="clerk_id", ignore_duplicates=True).execute()

            if inserted.data:
                logger.info("User %s synced to database", user.id)
                return

            self.supabase.table(USERS_TABLE)\
                .update({"email": email, "updated_at": now})\
                .eq("clerk_id", user.id)\
                .execute()
            logger.info("User %s email refreshed", user.id)
        except Exception as e:
            logger.error("Failed to sync user %s: %s", user.id, e)
            raise HTTPException(status_code=500, detail="Failed to sync user")

    def delete_user(self, clerk_id: str) -> None:
        try:
            result = self.supabase.table(USERS_TABLE)\
                .delete()\
                .eq("clerk_id", clerk_id)\
                .execute()
        except Exception as e:
            logger.error("Failed to delete user %s: %s", clerk_id, e)
            raise HTTPException(status_code=500, detail="Failed to delete user")
        if result.data:
            logger.info("User deleted from database: %s", clerk_id)
        else:
            logger.info("No local row for deleted user %s", clerk_id)
