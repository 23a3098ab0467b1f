from pydantic import BaseModel, Field, field_validator
from typing import Optional, List, Dict
from datetime import date as Date, datetime
from enum import Enum

from guardiao.config.constants import PRESENCE_STATUS, CALL_TYPES, ALL_SECTORS


class SheetStatus(str, Enum):
    RASCUNHO = "RASCUNHO"
    ASSINADA = "ASSINADA"


def _check_presence(value: str) -> str:
    if value not in PRESENCE_STATUS:
        raise ValueError(f"Status de presença inválido: {value}")
    return value


class AttendanceRecordInput(BaseModel):
    militar_id: str
    status: str = "P"

    @field_validator("status")
    @classmethod
    def check_status(cls, value):
        return _check_presence(value)


class AttendanceSheetCreate(BaseModel):
    date: Date
    sector: str
    call_type: str
    responsible: Optional[str] = None
    records: List[AttendanceRecordInput] = Field(min_length=1)

    @field_validator("sector")
    @classmethod
    def check_sector(cls, value):
        if value not in ALL_SECTORS:
            raise ValueError(f"Setor inválido: {value}")
        return value

    @field_validator("call_type")
    @classmethod
    def check_call_type(cls, value):
        if value not in CALL_TYPES:
            raise ValueError(f"Tipo de chamada inválido: {value}")
        return value


class AttendanceRecordResponse(BaseModel):
    id: Optional[str] = None
    attendance_id: str
    militar_id: str
    militar_name: Optional[str] = None
    militar_rank: Optional[str] = None
    saram: Optional[str] = None
    status: str
    timestamp: Optional[datetime] = None


class AttendanceSheetResponse(BaseModel):
    id: str
    date: Date
    sector: str
    call_type: str
    responsible: Optional[str] = None
    status: str = SheetStatus.RASCUNHO.value
    signed_by: Optional[str] = None
    signed_at: Optional[datetime] = None
    created_at: Optional[datetime] = None
    records: List[AttendanceRecordResponse] = []


class SheetSignature(BaseModel):
    pin: str = Field(min_length=4, max_length=8)


class JustificationCreate(BaseModel):
    militar_id: str
    new_status: str
    justification: str

    @field_validator("new_status")
    @classmethod
    def check_status(cls, value):
        return _check_presence(value)


class JustificationResponse(BaseModel):
    id: Optional[str] = None
    attendance_id: Optional[str] = None
    militar_id: str
    militar_name: Optional[str] = None
    militar_rank: Optional[str] = None
    saram: Optional[str] = None
    original_status: str
    new_status: str
    justification: str
    performed_by: str
    timestamp: datetime
    sector: Optional[str] = None
    date: Optional[Date] = None
    call_type: Optional[str] = None


class WeeklyRow(BaseModel):
    militar_id: str
    militar_name: Optional[str] = None
    militar_rank: Optional[str] = None
    saram: Optional[str] = None
    # {"2026-10-19": {"INICIO": "P", "TERMINO": "P"}}
    days: Dict[str, Dict[str, str]] = {}


class WeeklyGrid(BaseModel):
    sector: str
    week_start: Date
    week_end: Date
    dates: List[Date]
    rows: List[WeeklyRow]


class SectorForce(BaseModel):
    sector: str
    call_type: str
    attendance_id: str
    signed: bool
    total: int
    prontos: int
    baixas: int
    externos: int
    indisponiveis: int


class ForceMap(BaseModel):
    date: Date
    total_efetivo: int
    prontos: int
    baixas: int
    externos: int
    indisponiveis: int
    sectors: List[SectorForce]
    missing_sectors: List[str]
