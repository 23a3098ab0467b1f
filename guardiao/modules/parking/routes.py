from fastapi import APIRouter, Depends, File, Form, HTTPException, Request, UploadFile
from pydantic import ValidationError
from guardiao.database.supabase_client import get_supabase
from guardiao.modules.parking.schemas import (
    ParkingRequestCreate, ParkingRequestCreated, ParkingRequestResponse, ParkingDecision, ParkingStatistics
)
from guardiao.modules.parking.service import ParkingService
from guardiao.core.dependencies import require_permission
from guardiao.core.rate_limit import limiter
from guardiao.config.permissions_config import Permission
from guardiao.config import settings
from supabase import Client
from typing import List, Optional, Dict

router = APIRouter(prefix="/parking-requests", tags=["parking"])


def get_parking_service(supabase: Client = Depends(get_supabase)) -> ParkingService:
    return ParkingService(supabase)


@router.post("", response_model=ParkingRequestCreated, status_code=201)
@limiter.limit(settings.public_rate_limit)
async def create_parking_request(
    request: Request,
    nome: str = Form(...),
    email: str = Form(...),
    marca_modelo: str = Form(...),
    placa: str = Form(...),
    inicio: str = Form(...),
    termino: str = Form(...),
    posto: str = Form(""),
    forca: str = Form("FAB"),
    tipo: str = Form("Militar"),
    om: str = Form(""),
    telefone: Optional[str] = Form(None),
    identidade: Optional[str] = Form(None),
    cor: str = Form(""),
    obs: Optional[str] = Form(None),
    doc_identidade: UploadFile = File(...),
    doc_cnh: UploadFile = File(...),
    doc_crlv: UploadFile = File(...),
    service: ParkingService = Depends(get_parking_service)
):
    """Public parking authorization request with identity, CNH and CRLV documents"""
    try:
        request_data = ParkingRequestCreate(
            nome=nome, email=email, marca_modelo=marca_modelo, placa=placa,
            inicio=inicio, termino=termino, posto=posto, forca=forca, tipo=tipo,
            om=om, telefone=telefone, identidade=identidade, cor=cor, obs=obs
        )
    except ValidationError as e:
        raise HTTPException(status_code=400, detail=e.errors()[0]["msg"])
    files = {"identidade": doc_identidade, "cnh": doc_cnh, "crlv": doc_crlv}
    return await service.create_request(request_data, files)


@router.get("", response_model=List[ParkingRequestResponse])
async def list_parking_requests(
    status: Optional[str] = None,
    user_data: Dict = Depends(require_permission(Permission.VIEW_ACCESS_CONTROL)),
    service: ParkingService = Depends(get_parking_service)
):
    return service.list_requests(status)


@router.get("/statistics", response_model=ParkingStatistics)
async def parking_statistics(
    user_data: Dict = Depends(require_permission(Permission.VIEW_ACCESS_CONTROL)),
    service: ParkingService = Depends(get_parking_service)
):
    return service.statistics()


@router.get("/{request_id}", response_model=ParkingRequestResponse)
async def get_parking_request(
    request_id: str,
    user_data: Dict = Depends(require_permission(Permission.VIEW_ACCESS_CONTROL)),
    service: ParkingService = Depends(get_parking_service)
):
    return service.get_request(request_id)


@router.post("/{request_id}/decision", response_model=ParkingRequestResponse)
async def decide_parking_request(
    request_id: str,
    decision: ParkingDecision,
    user_data: Dict = Depends(require_permission(Permission.MANAGE_ACCESS_CONTROL)),
    service: ParkingService = Depends(get_parking_service)
):
    """Approve or reject a Pendente request"""
    return service.decide(request_id, decision, user_data)
