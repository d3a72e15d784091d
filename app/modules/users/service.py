import logging
import re
from datetime import datetime, timezone
from typing import List, Optional, Dict, Any, Iterable

from fastapi import HTTPException
from supabase import Client

from app.config import settings
from app.database.storage import BucketStorage, AVATARS_BUCKET, IMAGE_CONTENT_TYPES, file_extension
from app.modules.users.models import USERS_TABLE, RECOMMENDED_LIMIT, SEARCH_LIMIT
from app.modules.users.schemas import UserResponse, AvatarResponse, PublicUser

logger = logging.getLogger(__name__)

PROFILE_SUMMARY_COLUMNS = "user_id, display_name, first_name, last_name, occupation"


def get_full_name(user: Optional[Dict[str, Any]], profile: Optional[Dict[str, Any]] = None) -> str:
    """Profile display name, then first + last name, then the email local part."""
    if not user:
        return "Unknown User"
    email_name = (user.get("email") or "").split("@")[0]
    if profile:
        full = f"{profile.get('first_name') or ''} {profile.get('last_name') or ''}".strip()
        return profile.get("display_name") or full or email_name or "Unknown User"
    return email_name or "Unknown User"


def _search_term(query: str) -> str:
    # PostgREST filter syntax reserves these characters
    return re.sub(r"[,()%*]", " ", query).strip()


class UserService:
    def __init__(self, supabase: Client):
        self.supabase = supabase

    def get_by_id(self, user_id: str) -> Optional[Dict[str, Any]]:
        result = self.supabase.table(USERS_TABLE)\
            .select("*")\
            .eq("id", user_id)\
            .limit(1)\
            .execute()
        return result.data[0] if result.data else None

    def get_by_clerk_id(self, clerk_id: str) -> Optional[Dict[str, Any]]:
        result = self.supabase.table(USERS_TABLE)\
            .select("*")\
            .eq("clerk_id", clerk_id)\
            .limit(1)\
            .execute()
        return result.data[0] if result.data else None

    def get_by_subject(self, subject_id: str) -> Optional[Dict[str, Any]]:
        """Local row for an identity-provider subject: Clerk id first, then row id."""
        try:
            return self.get_by_clerk_id(subject_id) or self.get_by_id(subject_id)
        except Exception as e:
            logger.error(f"Error resolving local user for {subject_id}: {e}")
            raise HTTPException(status_code=500, detail="Failed to load user")

    def require_user(self, user_id: str) -> Dict[str, Any]:
        try:
            user = self.get_by_id(user_id)
        except Exception as e:
            raise HTTPException(status_code=500, detail=str(e))
        if user is None:
            raise HTTPException(status_code=404, detail="User not found")
        return user

    def set_freelancer_flag(self, user_id: str, is_freelancer: bool) -> None:
        """Raises on store failure; callers decide how to compensate."""
        self.supabase.table(USERS_TABLE)\
            .update({
                "is_freelancer": is_freelancer,
                "updated_at": datetime.now(timezone.utc).isoformat()
            })\
            .eq("id", user_id)\
            .execute()

    def get_profiles_for(self, user_ids: Iterable[str]) -> Dict[str, Dict[str, Any]]:
        """Map user_id -> freelancer profile summary"""
        ids = list({uid for uid in user_ids if uid})
        if not ids:
            return {}
        result = self.supabase.table("freelancer_profiles")\
            .select(PROFILE_SUMMARY_COLUMNS)\
            .in_("user_id", ids)\
            .execute()
        return {p["user_id"]: p for p in result.data or []}

    def avatar_url(self, user: Dict[str, Any]) -> Optional[str]:
        """Resolve the stored avatar path; users without one have no avatar"""
        path = user.get("avatar_path")
        if not path:
            return None
        try:
            return BucketStorage(self.supabase, AVATARS_BUCKET).signed_url(path, settings.attachment_url_ttl_seconds)
        except Exception as e:
            logger.warning("Could not resolve avatar for %s: %s", user.get("id"), e)
            return None

    def to_response(self, user: Dict[str, Any]) -> UserResponse:
        profile = self.get_profiles_for([user["id"]]).get(user["id"])
        return UserResponse(
            **{k: v for k, v in user.items() if k in UserResponse.model_fields},
            display_name=get_full_name(user, profile),
            avatar_url=self.avatar_url(user)
        )

    def to_public_users(self, users: List[Dict[str, Any]]) -> List[PublicUser]:
        profiles = self.get_profiles_for(u["id"] for u in users)
        results = []
        for user in users:
            profile = profiles.get(user["id"])
            results.append(PublicUser(
                id=user["id"],
                email=user.get("email"),
                full_name=get_full_name(user, profile),
                avatar_url=self.avatar_url(user),
                is_freelancer=bool(user.get("is_freelancer")),
                freelancer_profile=profile
            ))
        return results

    def upload_avatar(self, user: Dict[str, Any], file_content: bytes, file_name: str, content_type: str) -> AvatarResponse:
        """Store userId/avatar.ext and record the exact path and type on the user row"""
        if content_type not in IMAGE_CONTENT_TYPES:
            raise HTTPException(
                status_code=400,
                detail="File type not supported. Please upload a JPG, PNG, GIF, or WebP image."
            )
        if len(file_content) > settings.max_avatar_size:
            raise HTTPException(
                status_code=413,
                detail=f"Image size must be less than {settings.max_avatar_size // (1024 * 1024)}MB"
            )
        ext = file_extension(file_name) or content_type.split("/")[-1]
        path = f"{user['id']}/avatar.{ext}"
        storage = BucketStorage(self.supabase, AVATARS_BUCKET)
        previous = user.get("avatar_path")
        try:
            storage.upload_file(file_content, path, content_type, upsert=True)
        except Exception as e:
            raise HTTPException(status_code=500, detail=f"Failed to upload avatar: {str(e)}")
        try:
            self.supabase.table(USERS_TABLE)\
                .update({
                    "avatar_path": path,
                    "avatar_content_type": content_type,
                    "updated_at": datetime.now(timezone.utc).isoformat()
                })\
                .eq("id", user["id"])\
                .execute()
        except Exception as e:
            if previous != path:
                storage.delete_file(path)
            raise HTTPException(status_code=500, detail=str(e))
        if previous and previous != path:
            storage.delete_file(previous)
        user = {**user, "avatar_path": path, "avatar_content_type": content_type}
        return AvatarResponse(avatar_path=path, avatar_url=self.avatar_url(user))

    def search_users(self, current_user: Dict[str, Any], query: Optional[str] = None) -> List[PublicUser]:
        """Counterparts for a new conversation: clients see freelancers and vice versa"""
        wants_freelancers = not current_user.get("is_freelancer")
        term = _search_term(query or "")
        try:
            if not term:
                result = self.supabase.table(USERS_TABLE)\
                    .select("*")\
                    .eq("is_freelancer", wants_freelancers)\
                    .neq("id", current_user["id"])\
                    .order("created_at", desc=True)\
                    .limit(RECOMMENDED_LIMIT)\
                    .execute()
                return self.to_public_users(result.data or [])

            result = self.supabase.table(USERS_TABLE)\
                .select("*")\
                .eq("is_freelancer", wants_freelancers)\
                .ilike("email", f"%{term}%")\
                .neq("id", current_user["id"])\
                .limit(SEARCH_LIMIT)\
                .execute()
            users = list(result.data or [])

            if wants_freelancers:
                pattern = f"%{term}%"
                profiles = self.supabase.table("freelancer_profiles")\
                    .select("user_id")\
                    .or_(
                        f"display_name.ilike.{pattern},first_name.ilike.{pattern},"
                        f"last_name.ilike.{pattern},occupation.ilike.{pattern}"
                    )\
                    .neq("user_id", current_user["id"])\
                    .limit(SEARCH_LIMIT)\
                    .execute()
                seen = {u["id"] for u in users}
                extra_ids = [p["user_id"] for p in profiles.data or [] if p["user_id"] not in seen]
                if extra_ids:
                    extra = self.supabase.table(USERS_TABLE)\
                        .select("*")\
                        .in_("id", extra_ids)\
                        .eq("is_freelancer", True)\
                        .execute()
                    users.extend(extra.data or [])
            return self.to_public_users(users)
        except HTTPException:
            raise
        except Exception as e:
            logger.error(f"Error searching users: {e}")
            raise HTTPException(status_code=500, detail="Failed to search users")
