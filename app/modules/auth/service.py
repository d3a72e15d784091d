import hashlib
import hmac
import logging
from datetime import datetime, timezone
from urllib.parse import quote

from supabase import Client
from fastapi import HTTPException
from typing import Dict, Any, Optional

from app.config.settings import settings
from app.modules.auth.models import MIN_PASSWORD_LENGTH, DEFAULT_CALLBACK_NEXT, AUTH_ERROR_PATH
from app.modules.auth.schemas import (
    LoginRequest, RegisterRequest, TokenResponse, RegisterResponse,
    ActionResult, ChatbaseIdentity
)

logger = logging.getLogger(__name__)


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


def _user_to_dict(user) -> Dict[str, Any]:
    return {
        "id": user.id,
        "email": user.email,
        "user_metadata": user.user_metadata or {},
        "app_metadata": user.app_metadata or {},
        "created_at": user.created_at,
        "updated_at": user.updated_at
    }


def safe_next_path(next_path: Optional[str]) -> str:
    """Only site-relative paths are allowed as post-login destinations."""
    if not next_path or not next_path.startswith("/") or next_path.startswith("//"):
        return DEFAULT_CALLBACK_NEXT
    return next_path


def auth_error_redirect(message: str) -> str:
    return settings.site_link(f"{AUTH_ERROR_PATH}?error={quote(message)}")


class AuthService:
    def __init__(self, supabase: Client, admin_supabase: Optional[Client] = None):
        self.supabase = supabase
        self.admin_supabase = admin_supabase or supabase

    def register(self, register_data: RegisterRequest) -> RegisterResponse:
        """Register a new user using Supabase Auth; the user must confirm their email."""
        try:
            user_metadata = {}
            if register_data.full_name:
                user_metadata["full_name"] = register_data.full_name

            auth_response = self.supabase.auth.sign_up({
                "email": register_data.email,
                "password": register_data.password,
                "options": {
                    "data": user_metadata,
                    "email_redirect_to": settings.site_link("/auth/confirm")
                }
            })

            if not auth_response.user:
                raise HTTPException(status_code=400, detail="Failed to register user")

            return RegisterResponse(
                user_id=auth_response.user.id,
                email=auth_response.user.email or register_data.email,
                message="Check your email to confirm your account"
            )
        except HTTPException:
            raise
        except Exception as e:
            error_message = str(e)
            logger.error("Signup error: %s", error_message)
            lowered = error_message.lower()
            if "already registered" in lowered or "duplicate key" in lowered:
                raise HTTPException(status_code=400, detail="This email is already registered. Please sign in instead.")
            if "password" in lowered:
                raise HTTPException(status_code=400, detail=f"Password should be at least {MIN_PASSWORD_LENGTH} characters long.")
            if "database error" in lowered:
                raise HTTPException(status_code=400, detail="Unable to create account. This email may already be in use.")
            raise HTTPException(status_code=500, detail=f"Registration failed: {error_message}")

    def login(self, login_data: LoginRequest) -> TokenResponse:
        """Authenticate user using Supabase Auth"""
        try:
            auth_response = self.supabase.auth.sign_in_with_password({
                "email": login_data.email,
                "password": login_data.password
            })
        except Exception as e:
            error_message = str(e)
            logger.error("Login error: %s", error_message)
            if "not confirmed" in error_message.lower():
                raise HTTPException(status_code=403, detail="Please verify your email before signing in.")
            if "invalid" in error_message.lower() or "credentials" in error_message.lower():
                raise HTTPException(status_code=401, detail="Invalid email or password. Please try again.")
            raise HTTPException(status_code=500, detail=f"Login failed: {error_message}")

        if not auth_response.user or not auth_response.session:
            raise HTTPException(status_code=401, detail="Invalid credentials")

        if not getattr(auth_response.user, "email_confirmed_at", None):
            self.logout(auth_response.session.access_token)
            raise HTTPException(status_code=403, detail="Please verify your email before signing in.")

        return TokenResponse(
            access_token=auth_response.session.access_token,
            refresh_token=auth_response.session.refresh_token,
            token_type="bearer",
            user_id=auth_response.user.id,
            email=auth_response.user.email or login_data.email
        )

    def get_current_user(self, token: str) -> Dict[str, Any]:
        """Get current user details from a Supabase Auth token"""
        try:
            user_response = self.supabase.auth.get_user(jwt=token)
            if not user_response or not user_response.user:
                raise HTTPException(status_code=401, detail="Invalid or expired token")
            return _user_to_dict(user_response.user)
        except HTTPException:
            raise
        except Exception as e:
            error_msg = str(e)
            if "JWT" in error_msg or "expired" in error_msg.lower() or "invalid" in error_msg.lower():
                raise HTTPException(status_code=401, detail="Invalid or expired token")
            raise HTTPException(status_code=401, detail="Authentication failed")

    def logout(self, token: str) -> bool:
        """Logout user using Supabase Auth"""
        try:
            # Supabase Auth tokens are stateless JWTs, so logout is mainly client-side
            self.supabase.auth.sign_out()
            return True
        except Exception as e:
            logger.warning("Error signing out: %s", e)
            return False

    def request_password_reset(self, email: Optional[str]) -> ActionResult:
        if not email or not email.strip():
            return ActionResult.fail("Email is required.")
        try:
            self.supabase.auth.reset_password_for_email(
                email.strip(),
                {"redirect_to": settings.site_link("/reset-password")}
            )
        except Exception as e:
            logger.error("Password reset error: %s", e)
            return ActionResult.fail("Failed to send password reset email. Please try again.")
        return ActionResult.ok()

    def update_password(self, token: Optional[str], password: Optional[str]) -> ActionResult:
        if not password:
            return ActionResult.fail("Password is required.")
        if len(password) < MIN_PASSWORD_LENGTH:
            return ActionResult.fail(f"Password must be at least {MIN_PASSWORD_LENGTH} characters long.")
        if not token:
            return ActionResult.fail("Your session has expired. Please request a new password reset.")
        try:
            user = self.get_current_user(token)
        except HTTPException:
            return ActionResult.fail("Your session has expired. Please request a new password reset.")
        try:
            self.admin_supabase.auth.admin.update_user_by_id(user["id"], {"password": password})
        except Exception as e:
            logger.error("Password update error: %s", e)
            message = str(e)
            if "session" in message or "JWT" in message:
                return ActionResult.fail("Your session has expired. Please request a new password reset.")
            return ActionResult.fail("Failed to update password. Please try again.")
        return ActionResult.ok()

    def chatbase_identity(self, user_data: Dict[str, Any]) -> ChatbaseIdentity:
        """HMAC the user id so the support widget can trust who is talking"""
        if not settings.chatbase_secret_key:
            raise HTTPException(status_code=500, detail="Secret key not configured")
        user_id = user_data["id"]
        user_hash = hmac.new(
            settings.chatbase_secret_key.encode(), user_id.encode(), hashlib.sha256
        ).hexdigest()
        return ChatbaseIdentity(user_id=user_id, user_hash=user_hash, user_email=user_data.get("email"))

    def exchange_code(self, code: str) -> Dict[str, Any]:
        """Exchange an OAuth authorization code for a session and return the user"""
        response = self.supabase.auth.exchange_code_for_session({"auth_code": code})
        user = getattr(response, "user", None)
        if user is None:
            user_response = self.supabase.auth.get_user()
            user = user_response.user if user_response else None
        if user is None:
            raise ValueError("No user found")
        return _user_to_dict(user)


class AccountProvisioner:
    """Best-effort creation of local rows for a freshly authenticated user."""

    def __init__(self, supabase: Client):
        self.supabase = supabase

    def provision(self, user: Dict[str, Any]) -> None:
        try:
            existing = self._ensure_user_row(user)
        except Exception as e:
            # The user is authenticated regardless; never fail the redirect here
            logger.error("Error creating user in public.users for %s: %s", user["id"], e)
            return
        if existing and existing.get("is_freelancer"):
            try:
                self._ensure_freelancer_profile(user)
            except Exception as e:
                logger.error("Error creating freelancer profile for %s: %s", user["id"], e)

    def _ensure_user_row(self, user: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        result = self.supabase.table("users")\
            .select("*")\
            .eq("id", user["id"])\
            .limit(1)\
            .execute()
        if result.data:
            logger.debug("User %s already exists in public.users", user["id"])
            return result.data[0]
        now = _now()
        self.supabase.table("users").insert({
            "id": user["id"],
            "email": user.get("email") or "",
            "is_freelancer": False,
            "created_at": now,
            "updated_at": now
        }).execute()
        logger.info("Created user %s in public.users", user["id"])
        return None

    def _ensure_freelancer_profile(self, user: Dict[str, Any]) -> None:
        result = self.supabase.table("freelancer_profiles")\
            .select("id")\
            .eq("user_id", user["id"])\
            .limit(1)\
            .execute()
        if result.data:
            return
        full_name = (user.get("user_metadata") or {}).get("full_name") or ""
        parts = full_name.split(" ")
        email = user.get("email") or ""
        now = _now()
        self.supabase.table("freelancer_profiles").insert({
            "user_id": user["id"],
            "first_name": parts[0] if full_name else "",
            "last_name": " ".join(parts[1:]) if full_name else "",
            "display_name": full_name or email.split("@")[0],
            "created_at": now,
            "updated_at": now
        }).execute()
        logger.info("Created minimal freelancer profile for %s", user["id"])
