from fastapi import APIRouter, Depends, File, UploadFile
from app.modules.users.schemas import UserResponse, AvatarResponse, PublicUser
from app.modules.users.service import UserService
from app.core.dependencies import get_current_account, get_user_service
from typing import List, Dict, Optional

router = APIRouter(prefix="/users", tags=["users"])


@router.get("/me", response_model=UserResponse)
async def get_me(
    account: Dict = Depends(get_current_account),
    service: UserService = Depends(get_user_service)
):
    """Get the caller's local user row"""
    return service.to_response(account)


@router.post("/me/avatar", response_model=AvatarResponse)
async def upload_avatar(
    file: UploadFile = File(...),
    account: Dict = Depends(get_current_account),
    service: UserService = Depends(get_user_service)
):
    """Upload or replace the caller's avatar"""
    content = await file.read()
    return service.upload_avatar(
        account, content, file.filename or "avatar", file.content_type or "application/octet-stream"
    )


@router.get("/search", response_model=List[PublicUser])
async def search_users(
    q: Optional[str] = None,
    account: Dict = Depends(get_current_account),
    service: UserService = Depends(get_user_service)
):
    """Find people to message: recommended list when q is empty"""
    return service.search_users(account, q)


@router.get("/{user_id}", response_model=UserResponse)
async def get_user(
    user_id: str,
    account: Dict = Depends(get_current_account),
    service: UserService = Depends(get_user_service)
):
    """Get a user by local row id"""
    return service.to_response(service.require_user(user_id))
