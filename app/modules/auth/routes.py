import logging

from fastapi import APIRouter, Depends, Form, Security
from fastapi.responses import RedirectResponse
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from app.config import settings
from app.database.supabase_client import get_service_supabase, get_session_supabase
from app.modules.auth.schemas import (
    LoginRequest, RegisterRequest, TokenResponse, RegisterResponse,
    ActionResult, ChatbaseIdentity
)
from app.modules.auth.service import (
    AuthService, AccountProvisioner, safe_next_path, auth_error_redirect
)
from app.core.dependencies import get_current_user_id, get_auth_service, get_optional_token
from supabase import Client
from typing import Dict, Optional

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["auth"])

# Security scheme for JWT Bearer token
security = HTTPBearer()


def get_current_token(
    credentials: HTTPAuthorizationCredentials = Security(security)
) -> str:
    """Extract JWT token from Authorization header"""
    return credentials.credentials


@router.post("/register", response_model=RegisterResponse, status_code=201)
async def register(
    register_data: RegisterRequest,
    service: AuthService = Depends(get_auth_service)
):
    """Register a new user; a confirmation email is sent"""
    return service.register(register_data)


@router.post("/login", response_model=TokenResponse)
async def login(
    login_data: LoginRequest,
    service: AuthService = Depends(get_auth_service)
):
    """Login and get access token"""
    return service.login(login_data)


@router.post("/logout", status_code=200)
async def logout(
    token: str = Depends(get_current_token),
    service: AuthService = Depends(get_auth_service)
):
    """Logout and invalidate token"""
    service.logout(token)
    return {"message": "Logged out successfully"}


@router.get("/me")
async def get_current_user(current_user: Dict = Depends(get_current_user_id)):
    """Get current authenticated identity"""
    return current_user


@router.get("/callback")
async def oauth_callback(
    code: Optional[str] = None,
    next: Optional[str] = None,
    session_supabase: Client = Depends(get_session_supabase),
    supabase: Client = Depends(get_service_supabase)
):
    """Finish an OAuth redirect: exchange the code, provision local rows, redirect"""
    if not code:
        return RedirectResponse(auth_error_redirect("no_code"))
    try:
        user = AuthService(session_supabase).exchange_code(code)
    except Exception as e:
        logger.error("Callback error: %s", e)
        return RedirectResponse(auth_error_redirect(str(e) or "Authentication failed"))

    AccountProvisioner(supabase).provision(user)
    return RedirectResponse(settings.site_link(safe_next_path(next)))


@router.post("/password/reset-request", response_model=ActionResult, response_model_exclude_none=True)
async def request_password_reset(
    email: Optional[str] = Form(None),
    service: AuthService = Depends(get_auth_service)
):
    """Send a password recovery link"""
    return service.request_password_reset(email)


@router.post("/password/update", response_model=ActionResult, response_model_exclude_none=True)
async def update_password(
    password: Optional[str] = Form(None),
    token: Optional[str] = Depends(get_optional_token),
    service: AuthService = Depends(get_auth_service)
):
    """Set a new password for the recovery session's user"""
    return service.update_password(token, password)


@router.post("/chatbase", response_model=ChatbaseIdentity)
async def chatbase_identity(
    current_user: Dict = Depends(get_current_user_id),
    service: AuthService = Depends(get_auth_service)
):
    """Signed identity for the support chat widget"""
    return service.chatbase_identity(current_user)
