"""Supabase Storage buckets used by the marketplace."""
import logging
import os
from typing import Optional

from supabase import Client

logger = logging.getLogger(__name__)

AVATARS_BUCKET = "avatars"
PORTFOLIO_BUCKET = "portfolio"
MESSAGE_ATTACHMENTS_BUCKET = "message-attachments"
PROJECT_SUBMISSIONS_BUCKET = "project_submissions"
FREELANCER_DOCUMENTS_BUCKET = "freelancer-documents"

IMAGE_CONTENT_TYPES = ["image/jpeg", "image/png", "image/gif", "image/webp"]


def file_extension(file_name: Optional[str]) -> str:
    """Lower-cased extension without the dot, or an empty string."""
    if not file_name:
        return ""
    return os.path.splitext(file_name)[1].lstrip(".").lower()


class BucketStorage:
    def __init__(self, supabase: Client, bucket_name: str):
        self.bucket_name = bucket_name
        self._bucket = supabase.storage.from_(bucket_name)

    def upload_file(
        self,
        file_content: bytes,
        path: str,
        content_type: str = "application/octet-stream",
        upsert: bool = False
    ) -> str:
        """Upload file and return its storage path"""
        try:
            self._bucket.upload(
                path,
                file_content,
                {"content-type": content_type, "cache-control": "3600", "upsert": "true" if upsert else "false"}
            )
            return path
        except Exception as e:
            logger.error(f"Failed to upload {path} to {self.bucket_name}: {str(e)}")
            raise

    def delete_file(self, path: str) -> bool:
        try:
            self._bucket.remove([path])
            return True
        except Exception as e:
            logger.warning("Failed to delete from %s (%s): %s", self.bucket_name, path, e)
            return False

    def signed_url(self, path: str, expires_in: int) -> str:
        """Time-boxed URL for a private object. Raises when the object cannot be signed."""
        result = self._bucket.create_signed_url(path, expires_in)
        url = None
        if isinstance(result, dict):
            url = result.get("signedURL") or result.get("signedUrl")
        if not url:
            raise ValueError(f"No signed URL returned for {self.bucket_name}/{path}")
        return url

    def public_url(self, path: str) -> str:
        return self._bucket.get_public_url(path)

    def download(self, path: str) -> bytes:
        return self._bucket.download(path)
