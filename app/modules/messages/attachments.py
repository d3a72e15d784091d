"""Message attachments: upload into the message-attachments bucket and resolve for display."""
import logging
import os
import time
from typing import Optional, Dict, Any

from fastapi import HTTPException
from supabase import Client

from app.config import settings
from app.database.storage import BucketStorage, MESSAGE_ATTACHMENTS_BUCKET, file_extension
from app.modules.messages.models import ATTACHMENT_IMAGE, ATTACHMENT_FILE, IMAGE_EXTENSIONS, FILE_ICONS
from app.modules.messages.schemas import AttachmentUpload, AttachmentView

logger = logging.getLogger(__name__)


def attachment_kind(content_type: Optional[str]) -> str:
    return ATTACHMENT_IMAGE if (content_type or "").startswith("image/") else ATTACHMENT_FILE


def file_icon(file_name: Optional[str]) -> str:
    ext = file_extension(file_name)
    if ext in IMAGE_EXTENSIONS:
        return "image"
    return FILE_ICONS.get(ext, "file")


class AttachmentService:
    def __init__(self, supabase: Client):
        self.storage = BucketStorage(supabase, MESSAGE_ATTACHMENTS_BUCKET)

    def upload(self, user_id: str, file_content: bytes, file_name: str, content_type: Optional[str]) -> AttachmentUpload:
        if len(file_content) > settings.max_attachment_size:
            raise HTTPException(
                status_code=413,
                detail=f"File too large. Please select a file smaller than {settings.max_attachment_size // (1024 * 1024)}MB"
            )
        ext = file_extension(file_name)
        path = f"{user_id}/{int(time.time() * 1000)}" + (f".{ext}" if ext else "")
        try:
            self.storage.upload_file(file_content, path, content_type or "application/octet-stream")
        except Exception as e:
            raise HTTPException(status_code=500, detail=f"Upload failed: {str(e)}")
        return AttachmentUpload(path=path, type=attachment_kind(content_type))

    def resolve(self, message: Dict[str, Any]) -> AttachmentView:
        """Signed URL plus rendering hints; a failed lookup is reported, not left pending"""
        path = message.get("attachment_url")
        if not path:
            raise HTTPException(status_code=404, detail="Message has no attachment")
        file_name = os.path.basename(path)
        ext = file_extension(file_name)
        is_image = message.get("attachment_type") == ATTACHMENT_IMAGE or ext in IMAGE_EXTENSIONS
        view = AttachmentView(
            status="ready",
            kind=ATTACHMENT_IMAGE if is_image else ATTACHMENT_FILE,
            path=path,
            file_name=file_name,
            label=ext.upper() if ext else "File",
            icon="image" if is_image else file_icon(file_name),
        )
        try:
            view.url = self.storage.signed_url(path, settings.attachment_url_ttl_seconds)
        except Exception as e:
            logger.warning("Could not resolve attachment %s: %s", path, e)
            view.status = "failed"
            view.error = "Attachment unavailable"
        return view
