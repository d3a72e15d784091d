"""Private freelancer documents (ID cards and the like)."""
import logging
import re
from datetime import datetime, timezone
from typing import Dict, Any, List

from fastapi import HTTPException
from supabase import Client

from app.config import settings
from app.database.storage import BucketStorage, FREELANCER_DOCUMENTS_BUCKET, IMAGE_CONTENT_TYPES, file_extension
from app.modules.freelancers.models import DOCUMENTS_TABLE
from app.modules.freelancers.schemas import DocumentEntry, DocumentLink

logger = logging.getLogger(__name__)

DOCUMENT_CONTENT_TYPES = IMAGE_CONTENT_TYPES + ["application/pdf"]
DOCUMENT_TYPE_PATTERN = re.compile(r"^[a-z0-9_-]+$")


class DocumentService:
    def __init__(self, supabase: Client):
        self.supabase = supabase
        self.storage = BucketStorage(supabase, FREELANCER_DOCUMENTS_BUCKET)

    def list_documents(self, profile: Dict[str, Any]) -> List[DocumentEntry]:
        result = self.supabase.table(DOCUMENTS_TABLE)\
            .select("*")\
            .eq("freelancer_id", profile["id"])\
            .execute()
        return [DocumentEntry(**d) for d in result.data or []]

    def _require_document(self, profile: Dict[str, Any], document_id: str) -> Dict[str, Any]:
        result = self.supabase.table(DOCUMENTS_TABLE)\
            .select("*")\
            .eq("id", document_id)\
            .eq("freelancer_id", profile["id"])\
            .limit(1)\
            .execute()
        if not result.data:
            raise HTTPException(status_code=404, detail="Document not found")
        return result.data[0]

    def upload(
        self,
        user_id: str,
        profile: Dict[str, Any],
        document_type: str,
        file_content: bytes,
        file_name: str,
        content_type: str
    ) -> DocumentEntry:
        """Store userId/type_timestamp.ext, then record the path"""
        document_type = document_type.strip()
        if not document_type:
            raise HTTPException(status_code=400, detail="Document type is required")
        if not DOCUMENT_TYPE_PATTERN.match(document_type):
            raise HTTPException(
                status_code=400,
                detail="Document type may only contain lowercase letters, digits, dashes and underscores"
            )
        if content_type not in DOCUMENT_CONTENT_TYPES:
            raise HTTPException(status_code=400, detail="Documents must be an image or a PDF")
        if len(file_content) > settings.max_attachment_size:
            raise HTTPException(status_code=413, detail="Document is too large")

        ext = file_extension(file_name) or content_type.split("/")[-1]
        timestamp = int(datetime.now(timezone.utc).timestamp() * 1000)
        path = f"{user_id}/{document_type}_{timestamp}.{ext}"
        try:
            self.storage.upload_file(file_content, path, content_type)
        except Exception as e:
            raise HTTPException(status_code=500, detail=f"Failed to upload document: {str(e)}")

        try:
            result = self.supabase.table(DOCUMENTS_TABLE).insert({
                "freelancer_id": profile["id"],
                "document_type": document_type,
                "document_url": path
            }).execute()
            if not result.data:
                raise RuntimeError("empty insert result")
        except Exception as e:
            logger.error(f"Document row insert failed for {path}, removing object: {e}")
            self.storage.delete_file(path)
            raise HTTPException(status_code=500, detail="Failed to save document")
        return DocumentEntry(**result.data[0])

    def link(self, profile: Dict[str, Any], document_id: str) -> DocumentLink:
        document = self._require_document(profile, document_id)
        ttl = settings.document_url_ttl_seconds
        try:
            url = self.storage.signed_url(document["document_url"], ttl)
        except Exception as e:
            logger.error(f"Could not sign document {document_id}: {e}")
            raise HTTPException(status_code=502, detail="Document is unavailable")
        return DocumentLink(id=document["id"], document_type=document["document_type"], url=url, expires_in=ttl)

    def delete(self, profile: Dict[str, Any], document_id: str) -> None:
        document = self._require_document(profile, document_id)
        self.storage.delete_file(document["document_url"])
        try:
            self.supabase.table(DOCUMENTS_TABLE).delete().eq("id", document_id).execute()
        except Exception as e:
            logger.error(f"Failed to delete document row {document_id}: {e}")
            raise HTTPException(status_code=500, detail="Failed to delete document")
