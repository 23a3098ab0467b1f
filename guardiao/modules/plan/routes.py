from fastapi import APIRouter, Depends
from guardiao.database.supabase_client import get_supabase
from guardiao.modules.plan.schemas import PlanResponse
from guardiao.modules.plan.service import PlanService
from guardiao.core.dependencies import get_current_user
from supabase import Client
from typing import Dict

router = APIRouter(prefix="/me", tags=["plan"])


def get_plan_service(supabase: Client = Depends(get_supabase)) -> PlanService:
    return PlanService(supabase)


@router.get("/plan", response_model=PlanResponse)
async def get_my_plan(
    user_data: Dict = Depends(get_current_user),
    service: PlanService = Depends(get_plan_service)
):
    return service.get_plan(user_data)
