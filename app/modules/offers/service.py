import logging
from datetime import datetime, timezone
from typing import List, Optional, Dict, Any, Tuple

from fastapi import HTTPException
from supabase import Client

from app.config import settings
from app.database.storage import BucketStorage, PROJECT_SUBMISSIONS_BUCKET
from app.modules.messages.models import MESSAGE_TYPE_FORM, MESSAGE_TYPE_FORM_RESPONSE
from app.modules.messages.service import MessageService
from app.modules.offers.models import (
    FORMS_TABLE, PROJECT_FILES_TABLE, FORM_TYPE_COMMERCIAL, FORM_PENDING, FORM_ACCEPTED
)
from app.modules.offers.schemas import OfferCreate, OfferResponse, ProjectFileResponse, DeliveryResponse

logger = logging.getLogger(__name__)


def _now() -> datetime:
    return datetime.now(timezone.utc)


def delivery_notice(file_count: int, notes: Optional[str], url: Optional[str]) -> str:
    text = "Project delivered!"
    if file_count:
        text += f" ({file_count} file{'s' if file_count > 1 else ''})"
    if notes:
        text += f"\n\nNotes: {notes}"
    if url:
        text += f"\n\nProject link: {url}"
    return text


class OfferService:
    def __init__(self, supabase: Client):
        self.supabase = supabase
        self.messages = MessageService(supabase)
        self.storage = BucketStorage(supabase, PROJECT_SUBMISSIONS_BUCKET)

    def get_form(self, form_id: str) -> Optional[Dict[str, Any]]:
        result = self.supabase.table(FORMS_TABLE)\
            .select("*")\
            .eq("id", form_id)\
            .limit(1)\
            .execute()
        return result.data[0] if result.data else None

    def require_form(self, form_id: str, user_id: str) -> Dict[str, Any]:
        try:
            form = self.get_form(form_id)
        except Exception as e:
            raise HTTPException(status_code=500, detail=str(e))
        if form is None:
            raise HTTPException(status_code=404, detail="Offer not found")
        if user_id not in (form["sender_id"], form["receiver_id"]):
            raise HTTPException(status_code=403, detail="You are not a party to this offer")
        return form

    def create_offer(self, conversation_id: str, sender_id: str, offer: OfferCreate) -> OfferResponse:
        """Insert a pending form addressed to the other participant and post it into the thread"""
        conversation = self.messages.conversations.require_conversation(conversation_id, sender_id)
        receiver_id = conversation["user2_id"] if conversation["user1_id"] == sender_id else conversation["user1_id"]
        try:
            result = self.supabase.table(FORMS_TABLE).insert({
                "conversation_id": conversation_id,
                "sender_id": sender_id,
                "receiver_id": receiver_id,
                "title": offer.title,
                "description": offer.description,
                "price": offer.price,
                "time_estimate": offer.time_estimate,
                "form_type": offer.form_type,
                "status": FORM_PENDING,
                "project_submitted": False
            }).execute()
        except Exception as e:
            logger.error(f"Error creating offer in {conversation_id}: {e}")
            raise HTTPException(status_code=500, detail="Failed to create offer")
        if not result.data:
            raise HTTPException(status_code=500, detail="Failed to create offer")
        form = result.data[0]

        self.messages.send_message(
            sender_id,
            receiver_id,
            f"Sent a {offer.form_type} form: {offer.title}",
            message_type=MESSAGE_TYPE_FORM,
            form_id=form["id"]
        )
        logger.info("Offer %s created in conversation %s", form["id"], conversation_id)
        return OfferResponse(**form)

    def respond(self, form_id: str, user_id: str, decision: str) -> OfferResponse:
        form = self.require_form(form_id, user_id)
        if form["receiver_id"] != user_id:
            raise HTTPException(status_code=403, detail="Only the receiver can respond to an offer")
        if form["status"] != FORM_PENDING:
            raise HTTPException(status_code=409, detail=f"Offer already {form['status']}")
        try:
            result = self.supabase.table(FORMS_TABLE)\
                .update({"status": decision, "responded_at": _now().isoformat()})\
                .eq("id", form_id)\
                .eq("status", FORM_PENDING)\
                .execute()
        except Exception as e:
            logger.error(f"Error responding to offer {form_id}: {e}")
            raise HTTPException(status_code=500, detail="Failed to update offer")
        if not result.data:
            raise HTTPException(status_code=409, detail="Offer is no longer pending")

        self.messages.send_message(
            user_id,
            form["sender_id"],
            f"{decision.capitalize()} the {form['form_type']} form: {form['title']}",
            message_type=MESSAGE_TYPE_FORM_RESPONSE,
            form_id=form_id
        )
        return OfferResponse(**result.data[0])

    def _delivery_target(self, conversation_id: str, user_id: str) -> Dict[str, Any]:
        result = self.supabase.table(FORMS_TABLE)\
            .select("*")\
            .eq("conversation_id", conversation_id)\
            .eq("sender_id", user_id)\
            .eq("status", FORM_ACCEPTED)\
            .execute()
        forms = result.data or []
        if not forms:
            raise HTTPException(status_code=404, detail="No accepted forms found in this conversation")
        target = next((f for f in forms if f.get("form_type") == FORM_TYPE_COMMERCIAL), forms[0])
        if target.get("project_submitted"):
            raise HTTPException(status_code=409, detail="Project has already been submitted for this form")
        return target

    def _store_file(self, user_id: str, form_id: str, upload: Tuple[str, bytes, str]) -> Dict[str, Any]:
        name, content, content_type = upload
        timestamp = int(_now().timestamp() * 1000)
        path = f"{user_id}/{form_id}_{timestamp}_{name}"
        try:
            self.storage.upload_file(content, path, content_type)
        except Exception as e:
            raise HTTPException(status_code=500, detail=f"Failed to upload {name}: {str(e)}")
        try:
            result = self.supabase.table(PROJECT_FILES_TABLE).insert({
                "form_id": form_id,
                "file_name": name,
                "file_path": path,
                "file_size": len(content),
                "file_type": content_type
            }).execute()
            if not result.data:
                raise RuntimeError("empty insert result")
        except Exception as e:
            logger.error(f"Project file row insert failed for {path}, removing object: {e}")
            self.storage.delete_file(path)
            raise HTTPException(status_code=500, detail=f"Failed to save {name}")
        return result.data[0]

    def submit_delivery(
        self,
        conversation_id: str,
        user_id: str,
        files: List[Tuple[str, bytes, str]],
        notes: Optional[str] = None,
        url: Optional[str] = None
    ) -> DeliveryResponse:
        """
        Deliver the project for the caller's accepted form in this conversation.

        A commercial form is preferred over a proposal when both are accepted.
        Files are stored before the form is marked submitted, so a failed
        upload leaves the form open for another attempt.
        """
        self.messages.conversations.require_conversation(conversation_id, user_id)
        try:
            form = self._delivery_target(conversation_id, user_id)
        except HTTPException:
            raise
        except Exception as e:
            logger.error(f"Error loading forms for delivery in {conversation_id}: {e}")
            raise HTTPException(status_code=500, detail="Failed to load forms")

        notes = (notes or "").strip() or None
        url = (url or "").strip() or None
        stored = []
        for upload in files:
            stored.append(self._store_file(user_id, form["id"], upload))

        update = {"project_submitted": True, "project_submitted_at": _now().isoformat()}
        if url:
            update["project_submission_url"] = url
        if notes:
            update["project_notes"] = notes
        try:
            result = self.supabase.table(FORMS_TABLE)\
                .update(update)\
                .eq("id", form["id"])\
                .eq("sender_id", user_id)\
                .execute()
        except Exception as e:
            logger.error(f"Error marking form {form['id']} submitted: {e}")
            raise HTTPException(status_code=500, detail="Failed to submit project")
        form = result.data[0] if result.data else {**form, **update}

        self.messages.send_message(
            user_id,
            form["receiver_id"],
            delivery_notice(len(stored), notes, url),
            form_id=form["id"]
        )
        logger.info("Project delivered for form %s with %d file(s)", form["id"], len(stored))
        return DeliveryResponse(
            form=OfferResponse(**form),
            files=[ProjectFileResponse(**f) for f in stored]
        )

    def list_files(self, form_id: str, user_id: str) -> List[ProjectFileResponse]:
        self.require_form(form_id, user_id)
        try:
            result = self.supabase.table(PROJECT_FILES_TABLE)\
                .select("*")\
                .eq("form_id", form_id)\
                .order("uploaded_at")\
                .execute()
        except Exception as e:
            logger.error(f"Error listing files of form {form_id}: {e}")
            raise HTTPException(status_code=500, detail="Failed to load project files")

        files = []
        for row in result.data or []:
            try:
                link = self.storage.signed_url(row["file_path"], settings.project_file_url_ttl_seconds)
            except Exception as e:
                logger.warning("Could not sign project file %s: %s", row["file_path"], e)
                link = None
            files.append(ProjectFileResponse(**row, url=link))
        return files
