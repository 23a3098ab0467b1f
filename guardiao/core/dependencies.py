"""
Core dependencies for route protection and permission checking
"""

from fastapi import Depends, HTTPException, Request, Security, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from guardiao.config.constants import RANKS, MIN_MISSION_REQUEST_RANK, SOP_SECTORS
from guardiao.config.permissions_config import (
    ALL_PERMISSIONS, ADMIN_FUNCTION, DEFAULT_FUNCTION, function_permissions
)
from guardiao.database.supabase_client import get_supabase
from guardiao.modules.auth.service import AuthService
from supabase import Client
from typing import List, Optional, Dict, Any
import logging

logger = logging.getLogger(__name__)

security = HTTPBearer()


def _get_request_cache(request: Request) -> Dict[str, Any]:
    """Return request-scoped cache for access data (profile, permission names)."""
    if not hasattr(request.state, "access_cache"):
        request.state.access_cache = {}
    return request.state.access_cache


def get_auth_service(supabase: Client = Depends(get_supabase)) -> AuthService:
    return AuthService(supabase)


def get_profile(user_id: str, supabase: Client, cache: Optional[Dict[str, Any]] = None) -> Optional[Dict[str, Any]]:
    """Return the users row for an auth user id. Uses request-scoped cache when provided."""
    if cache is not None and "profile" in cache:
        return cache["profile"]
    try:
        result = supabase.table("users")\
            .select("*")\
            .eq("id", user_id)\
            .limit(1)\
            .execute()
        profile = result.data[0] if result.data else None
    except Exception as e:
        logger.error(f"Error getting user profile: {e}")
        profile = None
    if cache is not None:
        cache["profile"] = profile
    return profile


def get_current_user(
    request: Request,
    credentials: HTTPAuthorizationCredentials = Security(security),
    auth_service: AuthService = Depends(get_auth_service),
    supabase: Client = Depends(get_supabase)
) -> dict:
    """Resolve the bearer token to the militar's profile row, merged with auth metadata"""
    token = credentials.credentials
    auth_user = auth_service.get_current_user(token)
    profile = get_profile(auth_user["id"], supabase, _get_request_cache(request))
    if not profile:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Usuário sem cadastro de militar"
        )
    if profile.get("approved") is False:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Cadastro pendente de aprovação pelo Comandante"
        )
    return {
        **profile,
        "email": profile.get("email") or auth_user.get("email"),
        "app_metadata": auth_user.get("app_metadata", {}),
    }


def is_super_user(user_data: dict) -> bool:
    """Super users: app_metadata type super_user, ADMIN_TOTAL function or OM access level"""
    app_metadata = user_data.get("app_metadata") or {}
    if app_metadata.get("type") == "super_user":
        return True
    if user_data.get("function_id") == ADMIN_FUNCTION:
        return True
    return user_data.get("access_level") == "OM"


def effective_permissions(user_data: dict) -> List[str]:
    """Permissions of the user's function united with custom permissions. Users with neither get PADRAO."""
    if is_super_user(user_data):
        return list(ALL_PERMISSIONS)
    function_id = user_data.get("function_id")
    custom = user_data.get("custom_permissions") or []
    if not function_id and not custom:
        function_id = DEFAULT_FUNCTION
    granted = set(function_permissions(function_id)) if function_id else set()
    granted.update(p for p in custom if p in ALL_PERMISSIONS)
    return [p for p in ALL_PERMISSIONS if p in granted]


def can_request_mission(user_data: Optional[dict]) -> bool:
    """OM access level, or a known rank not junior to 3S. Unknown ranks are denied."""
    if not user_data:
        return False
    if user_data.get("access_level") == "OM":
        return True
    rank = user_data.get("rank")
    if rank not in RANKS:
        return False
    return RANKS.index(rank) <= RANKS.index(MIN_MISSION_REQUEST_RANK)


def is_sop(user_data: Optional[dict]) -> bool:
    return bool(user_data) and user_data.get("sector") in SOP_SECTORS


def has_permission(user_data: dict, permission: str, cache: Optional[Dict[str, Any]] = None) -> bool:
    permission = _permission_name(permission)
    if cache is not None and "permission_names" in cache:
        return permission in cache["permission_names"]
    names = effective_permissions(user_data)
    if cache is not None:
        cache["permission_names"] = names
    return permission in names


def _permission_name(permission) -> str:
    return getattr(permission, "value", permission)


def require_permission(required_permission: str):
    """Factory function to create permission check dependency"""
    required_permission = _permission_name(required_permission)
    def check_permission(
        request: Request,
        user_data: dict = Depends(get_current_user)
    ) -> dict:
        """Dependency to check if user has required permission"""
        cache = _get_request_cache(request)
        if not has_permission(user_data, required_permission, cache):
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail=f"Insufficient permissions. Required: {required_permission}"
            )
        return user_data
    return check_permission


def require_any_permission(*permissions: str):
    """Like require_permission, passing when the user holds at least one of the permissions"""
    permissions = tuple(_permission_name(p) for p in permissions)
    def check_permission(
        request: Request,
        user_data: dict = Depends(get_current_user)
    ) -> dict:
        cache = _get_request_cache(request)
        if not any(has_permission(user_data, p, cache) for p in permissions):
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail=f"Insufficient permissions. Required one of: {', '.join(permissions)}"
            )
        return user_data
    return check_permission


def get_access_cache(request: Request) -> Dict[str, Any]:
    """Dependency that returns request-scoped access cache (populated by require_permission when used)."""
    return _get_request_cache(request)
