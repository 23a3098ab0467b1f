from fastapi import APIRouter, Depends
from guardiao.config.permissions_config import Permission, get_permission_matrix
from guardiao.core.dependencies import require_permission
from typing import Dict

router = APIRouter(prefix="/permissions", tags=["permissions"])


@router.get("/matrix")
async def permission_matrix(
    user_data: Dict = Depends(require_permission(Permission.MANAGE_PERMISSIONS))
):
    """All permissions and the user functions that bundle them (PermissionManagement screen)"""
    return get_permission_matrix()
