from fastapi import APIRouter, Depends, Request
from guardiao.database.supabase_client import get_supabase
from guardiao.modules.mission_orders.schemas import (
    MissionOrderCreate, MissionOrderUpdate, MissionOrderResponse,
    OrderStatusChange, OrderSignature, OrderReport
)
from guardiao.modules.mission_orders.service import MissionOrderService
from guardiao.core.dependencies import require_permission, get_current_user, has_permission, get_access_cache
from guardiao.config.permissions_config import Permission
from supabase import Client
from typing import List, Optional, Dict

router = APIRouter(prefix="/mission-orders", tags=["mission-orders"])


def get_mission_order_service(supabase: Client = Depends(get_supabase)) -> MissionOrderService:
    return MissionOrderService(supabase)


@router.post("", response_model=MissionOrderResponse, status_code=201)
async def create_order(
    order_data: MissionOrderCreate,
    user_data: Dict = Depends(require_permission(Permission.MANAGE_MISSIONS)),
    service: MissionOrderService = Depends(get_mission_order_service)
):
    """Create an OMIS (numbered per calendar year)"""
    return service.create_order(order_data, user_data)


@router.get("", response_model=List[MissionOrderResponse])
async def list_orders(
    status: Optional[str] = None,
    limit: int = 100,
    offset: int = 0,
    user_data: Dict = Depends(require_permission(Permission.MANAGE_MISSIONS)),
    service: MissionOrderService = Depends(get_mission_order_service)
):
    return service.list_orders(status=status, limit=limit, offset=offset)


@router.get("/{order_id}", response_model=MissionOrderResponse)
async def get_order(
    order_id: str,
    user_data: Dict = Depends(require_permission(Permission.MANAGE_MISSIONS)),
    service: MissionOrderService = Depends(get_mission_order_service)
):
    return service.get_order(order_id)


@router.put("/{order_id}", response_model=MissionOrderResponse)
async def update_order(
    order_id: str,
    order_data: MissionOrderUpdate,
    user_data: Dict = Depends(require_permission(Permission.MANAGE_MISSIONS)),
    service: MissionOrderService = Depends(get_mission_order_service)
):
    return service.update_order(order_id, order_data)


@router.delete("/{order_id}", status_code=204)
async def delete_order(
    order_id: str,
    user_data: Dict = Depends(require_permission(Permission.MANAGE_MISSIONS)),
    service: MissionOrderService = Depends(get_mission_order_service)
):
    service.delete_order(order_id)
    return None


@router.post("/{order_id}/status", response_model=MissionOrderResponse)
async def change_order_status(
    order_id: str,
    body: OrderStatusChange,
    user_data: Dict = Depends(require_permission(Permission.MANAGE_MISSIONS)),
    service: MissionOrderService = Depends(get_mission_order_service)
):
    """Apply a workflow transition and record it in the timeline"""
    return service.change_status(order_id, body.status, user_data, body.comment)


@router.post("/{order_id}/sign", response_model=MissionOrderResponse)
async def sign_order(
    order_id: str,
    body: OrderSignature,
    user_data: Dict = Depends(require_permission(Permission.MANAGE_MISSIONS)),
    service: MissionOrderService = Depends(get_mission_order_service)
):
    """CH-SOP signature with PIN; the order becomes ready for execution and personnel are notified"""
    return service.sign_order(order_id, user_data, body.pin)


@router.post("/{order_id}/start", response_model=MissionOrderResponse)
async def start_mission(
    order_id: str,
    request: Request,
    user_data: Dict = Depends(get_current_user),
    service: MissionOrderService = Depends(get_mission_order_service)
):
    is_manager = has_permission(user_data, Permission.MANAGE_MISSIONS, get_access_cache(request))
    return service.start_mission(order_id, user_data, is_manager)


@router.post("/{order_id}/finish", response_model=MissionOrderResponse)
async def finish_mission(
    order_id: str,
    body: OrderReport,
    request: Request,
    user_data: Dict = Depends(get_current_user),
    service: MissionOrderService = Depends(get_mission_order_service)
):
    is_manager = has_permission(user_data, Permission.MANAGE_MISSIONS, get_access_cache(request))
    return service.finish_mission(order_id, user_data, body.report, is_manager)
