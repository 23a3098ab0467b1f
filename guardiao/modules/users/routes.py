from fastapi import APIRouter, Depends, HTTPException, Request, Response, status
from guardiao.database.supabase_client import get_supabase, get_supabase_admin
from guardiao.modules.users.schemas import (
    UserCreate, UserUpdate, UserResponse, UserPermissionsUpdate, UserOrderItem,
    SELF_EDITABLE_FIELDS
)
from guardiao.modules.users.service import UserService
from guardiao.core.dependencies import (
    get_current_user, require_permission, require_any_permission, has_permission, get_access_cache
)
from guardiao.config.permissions_config import Permission
from supabase import Client
from typing import List, Optional, Dict

router = APIRouter(prefix="/users", tags=["users"])


def get_user_service(
    supabase: Client = Depends(get_supabase),
    admin: Client = Depends(get_supabase_admin)
) -> UserService:
    return UserService(supabase, admin)


@router.get("", response_model=List[UserResponse])
async def list_users(
    sector: Optional[str] = None,
    search: Optional[str] = None,
    approved: Optional[bool] = None,
    limit: int = 100,
    offset: int = 0,
    user_data: Dict = Depends(require_permission(Permission.VIEW_PERSONNEL)),
    service: UserService = Depends(get_user_service)
):
    """List militares ordered by display_order"""
    return service.list_users(sector=sector, search=search, approved=approved, limit=limit, offset=offset)


@router.post("", response_model=UserResponse, status_code=201)
async def create_user(
    user_body: UserCreate,
    user_data: Dict = Depends(require_permission(Permission.MANAGE_USERS)),
    service: UserService = Depends(get_user_service)
):
    """Create an already-approved militar"""
    return service.create_user(user_body, approved=True)


@router.get("/by-saram/{saram}", response_model=UserResponse)
async def get_user_by_saram(
    saram: str,
    user_data: Dict = Depends(require_any_permission(Permission.MANAGE_MATERIAL, Permission.VIEW_PERSONNEL)),
    service: UserService = Depends(get_user_service)
):
    """Look up a militar by SARAM (direct cautela release)"""
    return UserResponse.from_row(service.get_user_row_by_saram(saram))


@router.put("/order")
async def reorder_users(
    items: List[UserOrderItem],
    user_data: Dict = Depends(require_permission(Permission.MANAGE_PERSONNEL)),
    service: UserService = Depends(get_user_service)
):
    """Persist the personnel display order"""
    return {"updated": service.reorder_users(items)}


@router.get("/{user_id}", response_model=UserResponse)
async def get_user(
    user_id: str,
    request: Request,
    user_data: Dict = Depends(get_current_user),
    service: UserService = Depends(get_user_service)
):
    """Get user by ID (self, or with view_personnel)"""
    if user_id != user_data["id"] and not has_permission(
        user_data, Permission.VIEW_PERSONNEL, get_access_cache(request)
    ):
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="User not accessible")
    return service.get_user_by_id(user_id)


@router.put("/{user_id}", response_model=UserResponse)
async def update_user(
    user_id: str,
    user_body: UserUpdate,
    request: Request,
    user_data: Dict = Depends(get_current_user),
    service: UserService = Depends(get_user_service)
):
    """Update user. Managers edit any field; a militar edits only their own contact fields."""
    if has_permission(user_data, Permission.MANAGE_PERSONNEL, get_access_cache(request)):
        return service.update_user(user_id, user_body)
    if user_id != user_data["id"]:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="User not accessible")
    return service.update_user(user_id, user_body, allowed_fields=SELF_EDITABLE_FIELDS)


@router.delete("/{user_id}", status_code=204)
async def delete_user(
    user_id: str,
    user_data: Dict = Depends(require_permission(Permission.MANAGE_USERS)),
    service: UserService = Depends(get_user_service)
):
    if user_id == user_data["id"]:
        raise HTTPException(status_code=400, detail="Não é possível excluir o próprio usuário")
    service.delete_user(user_id)
    return None


@router.post("/{user_id}/approve", response_model=UserResponse)
async def approve_user(
    user_id: str,
    user_data: Dict = Depends(require_permission(Permission.MANAGE_PERSONNEL)),
    service: UserService = Depends(get_user_service)
):
    return service.set_approval(user_id, True)


@router.post("/{user_id}/reject", response_model=UserResponse)
async def reject_user(
    user_id: str,
    user_data: Dict = Depends(require_permission(Permission.MANAGE_PERSONNEL)),
    service: UserService = Depends(get_user_service)
):
    """Refuse a pending registration (deletes it) or revoke an approved militar"""
    user = service.reject_user(user_id)
    if user is None:
        return Response(status_code=204)
    return user


@router.put("/{user_id}/permissions", response_model=UserResponse)
async def set_user_permissions(
    user_id: str,
    body: UserPermissionsUpdate,
    user_data: Dict = Depends(require_permission(Permission.MANAGE_PERMISSIONS)),
    service: UserService = Depends(get_user_service)
):
    """Assign a function and custom permissions to a militar"""
    return service.set_permissions(user_id, body)


@router.post("/{user_id}/reset-password")
async def reset_user_password(
    user_id: str,
    user_data: Dict = Depends(require_permission(Permission.MANAGE_USERS)),
    service: UserService = Depends(get_user_service)
):
    """Force a password change at next login; the temporary password is handed to the militar"""
    temporary_password = service.force_password_reset(user_id)
    return {"user_id": user_id, "temporary_password": temporary_password, "reset_password_at_login": True}
