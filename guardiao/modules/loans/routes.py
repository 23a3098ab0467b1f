from fastapi import APIRouter, Depends
from guardiao.database.supabase_client import get_supabase
from guardiao.modules.loans.schemas import (
    LoanCreate, LoanResponse, LoanSignature, LoanReject, DirectMovement, LoanStatistics
)
from guardiao.modules.loans.service import LoanService
from guardiao.core.dependencies import get_current_user, require_permission
from guardiao.config.permissions_config import Permission
from supabase import Client
from typing import List, Optional, Dict

router = APIRouter(prefix="/loans", tags=["loans"])


def get_loan_service(supabase: Client = Depends(get_supabase)) -> LoanService:
    return LoanService(supabase)


@router.post("", response_model=LoanResponse, status_code=201)
async def request_loan(
    loan_data: LoanCreate,
    user_data: Dict = Depends(require_permission(Permission.REQUEST_MATERIAL)),
    service: LoanService = Depends(get_loan_service)
):
    """Request a cautela"""
    return service.request_loan(loan_data, user_data)


@router.get("/mine", response_model=List[LoanResponse])
async def list_my_loans(
    user_data: Dict = Depends(get_current_user),
    service: LoanService = Depends(get_loan_service)
):
    return service.list_user_loans(user_data["id"])


@router.get("/statistics", response_model=LoanStatistics)
async def loan_statistics(
    days: Optional[int] = None,
    user_data: Dict = Depends(require_permission(Permission.VIEW_MATERIAL_PANEL)),
    service: LoanService = Depends(get_loan_service)
):
    return service.statistics(days=days)


@router.get("", response_model=List[LoanResponse])
async def list_loans(
    tab: Optional[str] = None,
    user_data: Dict = Depends(require_permission(Permission.MANAGE_MATERIAL)),
    service: LoanService = Depends(get_loan_service)
):
    """SAP-03 panel; tab is one of Solicitações, Devoluções, Em Uso, Histórico"""
    return service.list_loans(tab)


@router.post("/direct-release", response_model=LoanResponse, status_code=201)
async def direct_release(
    movement: DirectMovement,
    user_data: Dict = Depends(require_permission(Permission.MANAGE_MATERIAL)),
    service: LoanService = Depends(get_loan_service)
):
    """Counter release signed by the militar identified by SARAM"""
    return service.direct_release(movement, user_data)


@router.post("/direct-return", response_model=LoanResponse, status_code=201)
async def direct_return(
    movement: DirectMovement,
    user_data: Dict = Depends(require_permission(Permission.MANAGE_MATERIAL)),
    service: LoanService = Depends(get_loan_service)
):
    return service.direct_return(movement, user_data)


@router.post("/{loan_id}/approve", response_model=LoanResponse)
async def approve_loan(
    loan_id: str,
    user_data: Dict = Depends(require_permission(Permission.MANAGE_MATERIAL)),
    service: LoanService = Depends(get_loan_service)
):
    return service.approve(loan_id, user_data)


@router.post("/{loan_id}/await-confirmation", response_model=LoanResponse)
async def await_confirmation(
    loan_id: str,
    user_data: Dict = Depends(require_permission(Permission.MANAGE_MATERIAL)),
    service: LoanService = Depends(get_loan_service)
):
    return service.await_confirmation(loan_id, user_data)


@router.post("/{loan_id}/release", response_model=LoanResponse)
async def release_loan(
    loan_id: str,
    body: LoanSignature,
    user_data: Dict = Depends(require_permission(Permission.MANAGE_MATERIAL)),
    service: LoanService = Depends(get_loan_service)
):
    """Hand over the material; body carries the requester's PIN"""
    return service.release(loan_id, user_data, body.pin)


@router.post("/{loan_id}/return-request", response_model=LoanResponse)
async def request_return(
    loan_id: str,
    user_data: Dict = Depends(get_current_user),
    service: LoanService = Depends(get_loan_service)
):
    return service.request_return(loan_id, user_data)


@router.post("/{loan_id}/confirm-return", response_model=LoanResponse)
async def confirm_return(
    loan_id: str,
    body: LoanSignature,
    user_data: Dict = Depends(require_permission(Permission.MANAGE_MATERIAL)),
    service: LoanService = Depends(get_loan_service)
):
    return service.confirm_return(loan_id, user_data, body.pin)


@router.post("/{loan_id}/reject", response_model=LoanResponse)
async def reject_loan(
    loan_id: str,
    body: LoanReject,
    user_data: Dict = Depends(require_permission(Permission.MANAGE_MATERIAL)),
    service: LoanService = Depends(get_loan_service)
):
    """Reject a request or a return; loss=true writes the units off the stock"""
    return service.reject(loan_id, user_data, body.reason, body.loss)
