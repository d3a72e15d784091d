import logging
from datetime import datetime, timezone
from typing import Dict, Any, List

from fastapi import HTTPException
from supabase import Client

from app.config import settings
from app.database.storage import BucketStorage, PORTFOLIO_BUCKET, IMAGE_CONTENT_TYPES, file_extension
from app.modules.freelancers.models import PROFILES_TABLE
from app.modules.freelancers.schemas import PortfolioImage

logger = logging.getLogger(__name__)


class PortfolioService:
    def __init__(self, supabase: Client):
        self.supabase = supabase
        self.storage = BucketStorage(supabase, PORTFOLIO_BUCKET)

    def _save_paths(self, profile_id: str, paths: List[str]) -> None:
        self.supabase.table(PROFILES_TABLE)\
            .update({
                "portfolio_images": paths,
                "updated_at": datetime.now(timezone.utc).isoformat()
            })\
            .eq("id", profile_id)\
            .execute()

    def images(self, profile: Dict[str, Any]) -> List[PortfolioImage]:
        return [
            PortfolioImage(path=path, url=self.storage.public_url(path))
            for path in profile.get("portfolio_images") or []
        ]

    def add_image(
        self,
        user_id: str,
        profile: Dict[str, Any],
        file_content: bytes,
        file_name: str,
        content_type: str
    ) -> List[PortfolioImage]:
        current = list(profile.get("portfolio_images") or [])
        if len(current) >= settings.max_portfolio_images:
            raise HTTPException(
                status_code=400,
                detail=f"A portfolio holds at most {settings.max_portfolio_images} images"
            )
        if content_type not in IMAGE_CONTENT_TYPES:
            raise HTTPException(
                status_code=400,
                detail="File type not supported. Please upload a JPG, PNG, GIF, or WebP image."
            )
        if len(file_content) > settings.max_portfolio_image_size:
            raise HTTPException(
                status_code=413,
                detail=f"Image size must be less than {settings.max_portfolio_image_size // (1024 * 1024)}MB"
            )

        ext = file_extension(file_name) or content_type.split("/")[-1]
        timestamp = int(datetime.now(timezone.utc).timestamp() * 1000)
        path = f"{user_id}/portfolio/{timestamp}.{ext}"
        try:
            self.storage.upload_file(file_content, path, content_type)
        except Exception as e:
            raise HTTPException(status_code=500, detail=f"Failed to upload image: {str(e)}")

        paths = current + [path]
        try:
            self._save_paths(profile["id"], paths)
        except Exception as e:
            logger.error(f"Failed to record portfolio image {path}, removing object: {e}")
            self.storage.delete_file(path)
            raise HTTPException(status_code=500, detail="Failed to save portfolio image")
        return self.images({**profile, "portfolio_images": paths})

    def remove_image(self, profile: Dict[str, Any], path: str) -> List[PortfolioImage]:
        current = list(profile.get("portfolio_images") or [])
        if path not in current:
            raise HTTPException(status_code=404, detail="Image not found in portfolio")
        paths = [p for p in current if p != path]
        try:
            self._save_paths(profile["id"], paths)
        except Exception as e:
            logger.error(f"Failed to remove portfolio image {path}: {e}")
            raise HTTPException(status_code=500, detail="Failed to update portfolio")
        self.storage.delete_file(path)
        return self.images({**profile, "portfolio_images": paths})
