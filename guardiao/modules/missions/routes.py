from fastapi import APIRouter, Depends, Request
from guardiao.database.supabase_client import get_supabase
from guardiao.modules.missions.schemas import (
    MissionCreate, MissionUpdate, MissionResponse, MissionComment, MissionDecision, MissionStatistics
)
from guardiao.modules.missions.service import MissionService
from guardiao.modules.mission_orders.schemas import MissionOrderResponse
from guardiao.core.dependencies import (
    get_current_user, require_permission, require_any_permission, has_permission, get_access_cache
)
from guardiao.config.permissions_config import Permission
from supabase import Client
from typing import List, Optional, Dict

router = APIRouter(prefix="/missions", tags=["missions"])


def get_mission_service(supabase: Client = Depends(get_supabase)) -> MissionService:
    return MissionService(supabase)


def _is_manager(request: Request, user_data: Dict) -> bool:
    return has_permission(user_data, Permission.MANAGE_MISSIONS, get_access_cache(request))


@router.post("", response_model=MissionResponse, status_code=201)
async def create_mission(
    mission_data: MissionCreate,
    user_data: Dict = Depends(require_permission(Permission.REQUEST_MISSION)),
    service: MissionService = Depends(get_mission_service)
):
    """Request a mission (or save a draft)"""
    return service.create_mission(mission_data, user_data)


@router.get("/mine", response_model=List[MissionResponse])
async def list_my_missions(
    user_data: Dict = Depends(get_current_user),
    service: MissionService = Depends(get_mission_service)
):
    return service.list_missions(solicitante_id=user_data["id"])


@router.get("", response_model=List[MissionResponse])
async def list_missions(
    status: Optional[str] = None,
    limit: int = 100,
    offset: int = 0,
    user_data: Dict = Depends(require_any_permission(Permission.VIEW_ALL_MISSIONS, Permission.MANAGE_MISSIONS)),
    service: MissionService = Depends(get_mission_service)
):
    """Mission center listing"""
    return service.list_missions(status=status, limit=limit, offset=offset)


@router.get("/statistics", response_model=MissionStatistics)
async def mission_statistics(
    user_data: Dict = Depends(require_any_permission(Permission.VIEW_ALL_MISSIONS, Permission.MANAGE_MISSIONS)),
    service: MissionService = Depends(get_mission_service)
):
    """Mission dashboard totals and rankings"""
    return service.statistics()


@router.get("/{mission_id}", response_model=MissionResponse)
async def get_mission(
    mission_id: str,
    request: Request,
    user_data: Dict = Depends(get_current_user),
    service: MissionService = Depends(get_mission_service)
):
    cache = get_access_cache(request)
    can_view_all = has_permission(user_data, Permission.VIEW_ALL_MISSIONS, cache) or \
        has_permission(user_data, Permission.MANAGE_MISSIONS, cache)
    return service.get_mission(mission_id, user_data, can_view_all)


@router.put("/{mission_id}", response_model=MissionResponse)
async def update_mission(
    mission_id: str,
    mission_data: MissionUpdate,
    request: Request,
    user_data: Dict = Depends(get_current_user),
    service: MissionService = Depends(get_mission_service)
):
    """Edit the request; every changed field is recorded in the historico"""
    return service.update_mission(mission_id, mission_data, user_data, _is_manager(request, user_data))


@router.post("/{mission_id}/comments", response_model=MissionResponse)
async def add_comment(
    mission_id: str,
    body: MissionComment,
    request: Request,
    user_data: Dict = Depends(get_current_user),
    service: MissionService = Depends(get_mission_service)
):
    return service.add_comment(mission_id, body.comentario, user_data, _is_manager(request, user_data))


@router.post("/{mission_id}/submit", response_model=MissionResponse)
async def submit_mission(
    mission_id: str,
    user_data: Dict = Depends(get_current_user),
    service: MissionService = Depends(get_mission_service)
):
    """Send a draft to the SOP"""
    return service.submit_mission(mission_id, user_data)


@router.post("/{mission_id}/decision", response_model=MissionResponse)
async def decide_mission(
    mission_id: str,
    body: MissionDecision,
    user_data: Dict = Depends(require_permission(Permission.MANAGE_MISSIONS)),
    service: MissionService = Depends(get_mission_service)
):
    return service.decide_mission(mission_id, body.decision, body.parecer, user_data)


@router.post("/{mission_id}/order", response_model=MissionOrderResponse, status_code=201)
async def generate_order(
    mission_id: str,
    user_data: Dict = Depends(require_permission(Permission.MANAGE_MISSIONS)),
    service: MissionService = Depends(get_mission_service)
):
    """Generate the OMIS for an approved request"""
    return service.generate_order(mission_id, user_data)
