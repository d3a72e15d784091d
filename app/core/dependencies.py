"""
Core dependencies for route protection and identity resolution
"""

from fastapi import Depends, HTTPException, Security, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from app.database.supabase_client import get_supabase, get_service_supabase
from app.modules.auth.service import AuthService
from app.modules.users.service import UserService
from supabase import Client
from typing import Dict, Any, Optional
import logging

logger = logging.getLogger(__name__)

security = HTTPBearer()
optional_security = HTTPBearer(auto_error=False)


def get_auth_service(
    supabase: Client = Depends(get_supabase),
    admin_supabase: Client = Depends(get_service_supabase)
) -> AuthService:
    return AuthService(supabase, admin_supabase)


def get_user_service(supabase: Client = Depends(get_service_supabase)) -> UserService:
    return UserService(supabase)


def get_current_user_id(
    credentials: HTTPAuthorizationCredentials = Security(security),
    auth_service: AuthService = Depends(get_auth_service)
) -> dict:
    """Extract current user info from JWT token"""
    token = credentials.credentials
    return auth_service.get_current_user(token)


def get_optional_token(
    credentials: Optional[HTTPAuthorizationCredentials] = Security(optional_security)
) -> Optional[str]:
    return credentials.credentials if credentials else None


def get_current_account(
    user_data: dict = Depends(get_current_user_id),
    user_service: UserService = Depends(get_user_service)
) -> Dict[str, Any]:
    """Resolve the caller's local users row (Clerk- or Supabase-provisioned)"""
    account = user_service.get_by_subject(user_data["id"])
    if account is None:
        logger.warning("No local user row for identity %s", user_data["id"])
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")
    return account


def require_participant(conversation: Dict[str, Any], user_id: str) -> None:
    """Only the two members of a conversation may act on it"""
    if user_id not in (conversation.get("user1_id"), conversation.get("user2_id")):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="You are not a participant in this conversation"
        )
