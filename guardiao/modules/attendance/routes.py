from fastapi import APIRouter, Depends, Query
from guardiao.database.supabase_client import get_supabase
from guardiao.modules.attendance.schemas import (
    AttendanceSheetCreate, AttendanceSheetResponse, SheetSignature,
    JustificationCreate, JustificationResponse, WeeklyGrid, ForceMap
)
from guardiao.modules.attendance.service import AttendanceService
from guardiao.core.dependencies import require_permission
from guardiao.config.permissions_config import Permission
from supabase import Client
from typing import List, Optional, Dict
from datetime import date

router = APIRouter(prefix="/attendance", tags=["attendance"])


def get_attendance_service(supabase: Client = Depends(get_supabase)) -> AttendanceService:
    return AttendanceService(supabase)


@router.post("", response_model=AttendanceSheetResponse, status_code=201)
async def save_sheet(
    sheet_data: AttendanceSheetCreate,
    user_data: Dict = Depends(require_permission(Permission.VIEW_DAILY_ATTENDANCE)),
    service: AttendanceService = Depends(get_attendance_service)
):
    """Record (or retake, while unsigned) a roll call"""
    return service.save_sheet(sheet_data, user_data)


@router.get("", response_model=List[AttendanceSheetResponse])
async def list_sheets(
    day: Optional[date] = Query(default=None, alias="date"),
    sector: Optional[str] = None,
    user_data: Dict = Depends(require_permission(Permission.VIEW_DAILY_ATTENDANCE)),
    service: AttendanceService = Depends(get_attendance_service)
):
    return service.list_sheets(day=day, sector=sector)


@router.get("/weekly", response_model=WeeklyGrid)
async def weekly_grid(
    sector: str,
    week_start: date,
    user_data: Dict = Depends(require_permission(Permission.VIEW_DAILY_ATTENDANCE)),
    service: AttendanceService = Depends(get_attendance_service)
):
    return service.weekly_grid(sector, week_start)


@router.get("/justifications", response_model=List[JustificationResponse])
async def list_justifications(
    day: Optional[date] = Query(default=None, alias="date"),
    sector: Optional[str] = None,
    user_data: Dict = Depends(require_permission(Permission.VIEW_DAILY_ATTENDANCE)),
    service: AttendanceService = Depends(get_attendance_service)
):
    return service.list_justifications(day=day, sector=sector)


@router.get("/force-map", response_model=ForceMap)
async def force_map(
    day: Optional[date] = Query(default=None, alias="date"),
    user_data: Dict = Depends(require_permission(Permission.VIEW_PERSONNEL)),
    service: AttendanceService = Depends(get_attendance_service)
):
    """Mapa da Força for the day (today by default)"""
    return service.force_map(day or date.today())


@router.get("/{attendance_id}", response_model=AttendanceSheetResponse)
async def get_sheet(
    attendance_id: str,
    user_data: Dict = Depends(require_permission(Permission.VIEW_DAILY_ATTENDANCE)),
    service: AttendanceService = Depends(get_attendance_service)
):
    return service.get_sheet(attendance_id)


@router.post("/{attendance_id}/sign", response_model=AttendanceSheetResponse)
async def sign_sheet(
    attendance_id: str,
    body: SheetSignature,
    user_data: Dict = Depends(require_permission(Permission.SIGN_DAILY_ATTENDANCE)),
    service: AttendanceService = Depends(get_attendance_service)
):
    return service.sign_sheet(attendance_id, user_data, body.pin)


@router.post("/{attendance_id}/justifications", response_model=JustificationResponse, status_code=201)
async def add_justification(
    attendance_id: str,
    body: JustificationCreate,
    user_data: Dict = Depends(require_permission(Permission.SIGN_DAILY_ATTENDANCE)),
    service: AttendanceService = Depends(get_attendance_service)
):
    """Change a record of a signed sheet, keeping the original status"""
    return service.add_justification(attendance_id, body, user_data)
