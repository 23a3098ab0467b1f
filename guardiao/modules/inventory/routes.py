from fastapi import APIRouter, Depends
from guardiao.database.supabase_client import get_supabase
from guardiao.modules.inventory.schemas import MaterialCreate, MaterialUpdate, MaterialResponse
from guardiao.modules.inventory.service import InventoryService
from guardiao.core.dependencies import require_permission, require_any_permission
from guardiao.config.permissions_config import Permission
from supabase import Client
from typing import List, Optional, Dict

router = APIRouter(prefix="/inventory", tags=["inventory"])


def get_inventory_service(supabase: Client = Depends(get_supabase)) -> InventoryService:
    return InventoryService(supabase)


@router.get("", response_model=List[MaterialResponse])
async def list_materials(
    available_only: bool = False,
    search: Optional[str] = None,
    tipo: Optional[str] = None,
    user_data: Dict = Depends(require_any_permission(Permission.REQUEST_MATERIAL, Permission.MANAGE_MATERIAL)),
    service: InventoryService = Depends(get_inventory_service)
):
    return service.list_materials(available_only=available_only, search=search, tipo=tipo)


@router.get("/{material_id}", response_model=MaterialResponse)
async def get_material(
    material_id: str,
    user_data: Dict = Depends(require_any_permission(Permission.REQUEST_MATERIAL, Permission.MANAGE_MATERIAL)),
    service: InventoryService = Depends(get_inventory_service)
):
    return service.get_material(material_id)


@router.post("", response_model=MaterialResponse, status_code=201)
async def create_material(
    material_data: MaterialCreate,
    user_data: Dict = Depends(require_permission(Permission.MANAGE_MATERIAL)),
    service: InventoryService = Depends(get_inventory_service)
):
    return service.create_material(material_data)


@router.put("/{material_id}", response_model=MaterialResponse)
async def update_material(
    material_id: str,
    material_data: MaterialUpdate,
    user_data: Dict = Depends(require_permission(Permission.MANAGE_MATERIAL)),
    service: InventoryService = Depends(get_inventory_service)
):
    return service.update_material(material_id, material_data)


@router.delete("/{material_id}", status_code=204)
async def delete_material(
    material_id: str,
    user_data: Dict = Depends(require_permission(Permission.MANAGE_MATERIAL)),
    service: InventoryService = Depends(get_inventory_service)
):
    service.delete_material(material_id)
    return None
