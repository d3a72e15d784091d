import logging
from datetime import datetime, timezone
from typing import List, Optional, Dict, Any, Tuple

from fastapi import HTTPException
from supabase import Client

from app.database.storage import BucketStorage, FREELANCER_DOCUMENTS_BUCKET, PORTFOLIO_BUCKET
from app.modules.freelancers.models import (
    PROFILES_TABLE, CATEGORIES_TABLE, CHILD_TABLES,
    PAYMENT_INFO_TABLE, DOCUMENTS_TABLE, CERTIFICATES_TABLE, EDUCATION_TABLE,
    SKILLS_TABLE, FREELANCER_CATEGORIES_TABLE, LANGUAGES_TABLE,
    OP_UPSERT, OP_DELETE,
    STATUS_COMPLETED, STATUS_ABORTED, STATUS_COMPENSATED, STATUS_PARTIAL, STATUS_FAILED,
)
from app.modules.freelancers.operations import ProfileOperationLog
from app.modules.freelancers.schemas import (
    FreelancerProfileUpsert, OnboardingRequest, FreelancerProfileResponse,
    CascadeDeleteResult, CategoryResponse, CategoryEntry, FreelancerCard,
)
from app.modules.users.models import USERS_TABLE
from app.modules.users.service import UserService, get_full_name

logger = logging.getLogger(__name__)


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


def saga_error(message: str, operation_id: Optional[str], failed_tables: List[str]) -> HTTPException:
    return HTTPException(
        status_code=500,
        detail={
            "message": message,
            "operation_id": operation_id,
            "failed_tables": failed_tables
        }
    )


class FreelancerService:
    def __init__(self, supabase: Client):
        self.supabase = supabase
        self.users = UserService(supabase)
        self.operations = ProfileOperationLog(supabase)

    def get_profile_row(self, user_id: str) -> Optional[Dict[str, Any]]:
        result = self.supabase.table(PROFILES_TABLE)\
            .select("*")\
            .eq("user_id", user_id)\
            .limit(1)\
            .execute()
        return result.data[0] if result.data else None

    def require_profile_row(self, user_id: str) -> Dict[str, Any]:
        try:
            profile = self.get_profile_row(user_id)
        except Exception as e:
            logger.error(f"Error loading freelancer profile for {user_id}: {e}")
            raise HTTPException(status_code=500, detail="Failed to load freelancer profile")
        if profile is None:
            raise HTTPException(status_code=404, detail="Freelancer profile not found")
        return profile

    def _children(self, table: str, profile_id: str) -> List[Dict[str, Any]]:
        result = self.supabase.table(table)\
            .select("*")\
            .eq("freelancer_id", profile_id)\
            .execute()
        return result.data or []

    def _category_names(self, category_ids: List[str]) -> Dict[str, str]:
        if not category_ids:
            return {}
        result = self.supabase.table(CATEGORIES_TABLE)\
            .select("id, name")\
            .in_("id", category_ids)\
            .execute()
        return {c["id"]: c["name"] for c in result.data or []}

    def get_profile(self, user_id: str, include_private: bool = False) -> FreelancerProfileResponse:
        """Profile with its child collections; documents and payment info only for the owner"""
        profile = self.require_profile_row(user_id)
        try:
            profile_id = profile["id"]
            categories = self._children(FREELANCER_CATEGORIES_TABLE, profile_id)
            names = self._category_names([c["category_id"] for c in categories])
            base = {k: v for k, v in profile.items() if k in FreelancerProfileResponse.model_fields}
            base["portfolio_images"] = profile.get("portfolio_images") or []
            if include_private:
                base["documents"] = self._children(DOCUMENTS_TABLE, profile_id)
                base["payment_info"] = self._children(PAYMENT_INFO_TABLE, profile_id)
            return FreelancerProfileResponse(
                **base,
                languages=self._children(LANGUAGES_TABLE, profile_id),
                skills=self._children(SKILLS_TABLE, profile_id),
                education=self._children(EDUCATION_TABLE, profile_id),
                certificates=self._children(CERTIFICATES_TABLE, profile_id),
                categories=[
                    CategoryEntry(id=c.get("id"), category_id=c["category_id"], name=names.get(c["category_id"]))
                    for c in categories
                ]
            )
        except Exception as e:
            logger.error(f"Error loading freelancer profile details for {user_id}: {e}")
            raise HTTPException(status_code=500, detail="Failed to load freelancer profile")

    def resolve_categories(self, names: List[str]) -> List[str]:
        """Category ids for names; any unknown name rejects the request"""
        if not names:
            return []
        try:
            result = self.supabase.table(CATEGORIES_TABLE)\
                .select("id, name")\
                .in_("name", names)\
                .execute()
        except Exception as e:
            logger.error(f"Error resolving categories {names}: {e}")
            raise HTTPException(status_code=500, detail="Failed to load categories")
        by_name = {c["name"]: c["id"] for c in result.data or []}
        unknown = [n for n in names if n not in by_name]
        if unknown:
            raise HTTPException(status_code=400, detail=f"Unknown categories: {', '.join(unknown)}")
        return [by_name[n] for n in dict.fromkeys(names)]

    def _restore(self, user_id: str, snapshot: Optional[Dict[str, Any]]) -> None:
        """Put the profile back the way it was before the upsert"""
        if snapshot is None:
            self.supabase.table(PROFILES_TABLE).delete().eq("user_id", user_id).execute()
        else:
            self.supabase.table(PROFILES_TABLE).upsert(snapshot, on_conflict="user_id").execute()

    def _replace_children(self, profile_id: str, children: Dict[str, List[Dict[str, Any]]]) -> List[str]:
        failed = []
        for table, rows in children.items():
            try:
                self.supabase.table(table).delete().eq("freelancer_id", profile_id).execute()
                if rows:
                    self.supabase.table(table)\
                        .insert([{**row, "freelancer_id": profile_id} for row in rows])\
                        .execute()
            except Exception as e:
                logger.error(f"Failed to write {table} for profile {profile_id}: {e}")
                failed.append(table)
        return failed

    def upsert_profile(
        self,
        account: Dict[str, Any],
        data: FreelancerProfileUpsert,
        extra: Optional[Dict[str, Any]] = None,
        children: Optional[Dict[str, List[Dict[str, Any]]]] = None
    ) -> Dict[str, Any]:
        """
        Create or update the caller's profile and mark them a freelancer.

        Runs against a journalled intent: a failed flag write is compensated by
        restoring the prior profile, and anything left unsettled is picked up
        by the reconciler.
        """
        user_id = account["id"]
        fields = {**data.model_dump(exclude_unset=True), **(extra or {})}
        op_id = self.operations.start(user_id, OP_UPSERT, dict(fields))

        try:
            snapshot = self.get_profile_row(user_id)
        except Exception as e:
            self.operations.finish(op_id, STATUS_ABORTED, error=str(e))
            raise saga_error("Failed to read freelancer profile", op_id, [PROFILES_TABLE])

        try:
            result = self.supabase.table(PROFILES_TABLE)\
                .upsert({**fields, "user_id": user_id, "updated_at": _now()}, on_conflict="user_id")\
                .execute()
        except Exception as e:
            logger.error(f"Profile upsert failed for {user_id}: {e}")
            self.operations.finish(op_id, STATUS_ABORTED, [PROFILES_TABLE], str(e))
            raise saga_error("Failed to save freelancer profile", op_id, [PROFILES_TABLE])
        if not result.data:
            self.operations.finish(op_id, STATUS_ABORTED, [PROFILES_TABLE], "empty upsert result")
            raise saga_error("Failed to save freelancer profile", op_id, [PROFILES_TABLE])
        profile = result.data[0]

        if not account.get("is_freelancer"):
            try:
                self.users.set_freelancer_flag(user_id, True)
            except Exception as e:
                logger.error(f"Freelancer flag write failed for {user_id}, compensating: {e}")
                try:
                    self._restore(user_id, snapshot)
                except Exception as restore_error:
                    logger.error(f"Compensation failed for profile operation {op_id}: {restore_error}")
                    self.operations.finish(op_id, STATUS_FAILED, [USERS_TABLE], str(restore_error))
                    raise saga_error("Failed to update user status", op_id, [USERS_TABLE])
                self.operations.finish(op_id, STATUS_COMPENSATED, [USERS_TABLE], str(e))
                raise saga_error("Failed to update user status", op_id, [USERS_TABLE])

        if children:
            failed = self._replace_children(profile["id"], children)
            if failed:
                self.operations.finish(op_id, STATUS_PARTIAL, failed)
                raise saga_error("Profile saved but some details could not be written", op_id, failed)

        self.operations.finish(op_id, STATUS_COMPLETED)
        logger.info("Freelancer profile %s saved for user %s", profile["id"], user_id)
        return profile

    def complete_onboarding(self, account: Dict[str, Any], request: OnboardingRequest) -> Dict[str, Any]:
        category_ids = self.resolve_categories(request.categories)
        children = {
            LANGUAGES_TABLE: [l.model_dump() for l in request.languages],
            FREELANCER_CATEGORIES_TABLE: [{"category_id": cid} for cid in category_ids],
            SKILLS_TABLE: [s.model_dump() for s in request.skills],
            EDUCATION_TABLE: [request.education.model_dump()] if request.education else [],
            CERTIFICATES_TABLE: [c.model_dump() for c in request.certificates],
            PAYMENT_INFO_TABLE: [request.payment_info.model_dump()] if request.payment_info else [],
        }
        return self.upsert_profile(
            account,
            request.profile,
            extra={"onboarding_completed_at": _now()},
            children=children
        )

    def _stored_objects(self, profile: Dict[str, Any]) -> Dict[str, List[str]]:
        """Object paths owned by the profile, keyed by bucket"""
        try:
            documents = self._children(DOCUMENTS_TABLE, profile["id"])
        except Exception as e:
            logger.warning(f"Could not list documents of profile {profile['id']}: {e}")
            documents = []
        return {
            FREELANCER_DOCUMENTS_BUCKET: [d["document_url"] for d in documents if d.get("document_url")],
            PORTFOLIO_BUCKET: list(profile.get("portfolio_images") or []),
        }

    def _remove_stored_objects(self, objects: Dict[str, List[str]]) -> None:
        """Best effort: orphaned objects are harmless, orphaned rows are not"""
        for bucket, paths in objects.items():
            storage = BucketStorage(self.supabase, bucket)
            for path in paths:
                storage.delete_file(path)

    def delete_children(self, profile_id: str) -> Tuple[List[str], List[str]]:
        """Delete every child table in order; a failure is recorded and the rest still run"""
        deleted, failed = [], []
        for table in CHILD_TABLES:
            try:
                self.supabase.table(table).delete().eq("freelancer_id", profile_id).execute()
                deleted.append(table)
            except Exception as e:
                logger.error(f"Failed to delete {table} rows of profile {profile_id}: {e}")
                failed.append(table)
        return deleted, failed

    def run_cascade(self, user_id: str, profile: Dict[str, Any], op_id: str) -> CascadeDeleteResult:
        # Stored files are removed only once the profile row is gone
        objects = self._stored_objects(profile)
        deleted, failed = self.delete_children(profile["id"])
        result = CascadeDeleteResult(
            operation_id=op_id,
            profile_id=profile["id"],
            deleted_tables=deleted,
            failed_tables=failed
        )
        if failed:
            self.operations.finish(op_id, STATUS_PARTIAL, failed, "child deletes failed")
            raise saga_error("Freelancer profile could not be fully deleted", op_id, failed)

        try:
            self.supabase.table(PROFILES_TABLE).delete().eq("id", profile["id"]).execute()
        except Exception as e:
            logger.error(f"Failed to delete profile {profile['id']}: {e}")
            self.operations.finish(op_id, STATUS_PARTIAL, [PROFILES_TABLE], str(e))
            raise saga_error("Freelancer profile could not be fully deleted", op_id, [PROFILES_TABLE])
        result.profile_deleted = True
        self._remove_stored_objects(objects)

        try:
            self.users.set_freelancer_flag(user_id, False)
        except Exception as e:
            logger.error(f"Failed to clear freelancer flag for {user_id}: {e}")
            self.operations.finish(op_id, STATUS_PARTIAL, [USERS_TABLE], str(e))
            raise saga_error("Freelancer profile deleted but user status not updated", op_id, [USERS_TABLE])

        self.operations.finish(op_id, STATUS_COMPLETED)
        logger.info("Freelancer profile %s deleted for user %s", profile["id"], user_id)
        return result

    def delete_profile(self, account: Dict[str, Any]) -> CascadeDeleteResult:
        profile = self.require_profile_row(account["id"])
        op_id = self.operations.start(account["id"], OP_DELETE, {"profile_id": profile["id"]})
        return self.run_cascade(account["id"], profile, op_id)

    def list_categories(self) -> List[CategoryResponse]:
        try:
            result = self.supabase.table(CATEGORIES_TABLE)\
                .select("id, name")\
                .order("name")\
                .execute()
            return [CategoryResponse(**c) for c in result.data or []]
        except Exception as e:
            logger.error(f"Error listing categories: {e}")
            raise HTTPException(status_code=500, detail="Failed to load categories")

    def freelancers_by_category(self, name: str) -> List[FreelancerCard]:
        try:
            category = self.supabase.table(CATEGORIES_TABLE)\
                .select("id")\
                .eq("name", name)\
                .limit(1)\
                .execute()
            if not category.data:
                raise HTTPException(status_code=404, detail="Category not found")

            links = self.supabase.table(FREELANCER_CATEGORIES_TABLE)\
                .select("freelancer_id")\
                .eq("category_id", category.data[0]["id"])\
                .execute()
            profile_ids = [l["freelancer_id"] for l in links.data or []]
            if not profile_ids:
                return []

            profiles = self.supabase.table(PROFILES_TABLE)\
                .select("*")\
                .in_("id", profile_ids)\
                .execute()
            profiles = profiles.data or []
            users = self.supabase.table(USERS_TABLE)\
                .select("*")\
                .in_("id", [p["user_id"] for p in profiles])\
                .execute()
            users_by_id = {u["id"]: u for u in users.data or []}

            return [
                FreelancerCard(
                    user_id=p["user_id"],
                    display_name=get_full_name(users_by_id.get(p["user_id"]), p),
                    occupation=p.get("custom_occupation") or p.get("occupation"),
                    price=p.get("price"),
                    description=p.get("description")
                )
                for p in profiles
            ]
        except HTTPException:
            raise
        except Exception as e:
            logger.error(f"Error listing freelancers in {name}: {e}")
            raise HTTPException(status_code=500, detail="Failed to load freelancers")
