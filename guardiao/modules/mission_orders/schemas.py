from pydantic import BaseModel, Field, field_validator
from typing import Optional, List, Dict, Any
from datetime import date as Date, datetime
from enum import Enum

from guardiao.config.constants import MISSION_FUNCTIONS, ARMAMENT_OPTIONS


class OrderStatus(str, Enum):
    GERADA = "GERADA"
    PENDENTE_SOP = "PENDENTE_SOP"
    EM_ELABORACAO = "EM_ELABORACAO"
    AGUARDANDO_ASSINATURA = "AGUARDANDO_ASSINATURA"
    PRONTA_PARA_EXECUCAO = "PRONTA_PARA_EXECUCAO"
    EM_MISSAO = "EM_MISSAO"
    CONCLUIDA = "CONCLUIDA"
    REJEITADA = "REJEITADA"
    CANCELADA = "CANCELADA"


O = OrderStatus

ORDER_TRANSITIONS = {
    O.GERADA.value: [O.PENDENTE_SOP, O.CANCELADA],
    O.PENDENTE_SOP.value: [O.EM_ELABORACAO, O.REJEITADA, O.CANCELADA],
    O.EM_ELABORACAO.value: [O.AGUARDANDO_ASSINATURA, O.CANCELADA],
    O.AGUARDANDO_ASSINATURA.value: [O.PRONTA_PARA_EXECUCAO, O.EM_ELABORACAO, O.CANCELADA],
    O.PRONTA_PARA_EXECUCAO.value: [O.EM_MISSAO, O.CANCELADA],
    O.EM_MISSAO.value: [O.CONCLUIDA],
}

# Statuses reached only through /sign, /start and /finish
GUARDED_TARGETS = {O.PRONTA_PARA_EXECUCAO, O.EM_MISSAO, O.CONCLUIDA}

LOCKED_STATUSES = {O.CONCLUIDA.value, O.CANCELADA.value}
DELETABLE_STATUSES = {O.GERADA.value, O.CANCELADA.value}


class OrderPersonnel(BaseModel):
    id: Optional[str] = None
    function: str
    rank: str = ""
    war_name: str = ""
    saram: str = ""
    uniform: str = ""
    armament: str = "Nenhum"
    ammunition: str = ""

    @field_validator("function")
    @classmethod
    def check_function(cls, value):
        if value not in MISSION_FUNCTIONS:
            raise ValueError(f"Função inválida: {value}")
        return value

    @field_validator("armament")
    @classmethod
    def check_armament(cls, value):
        if value not in ARMAMENT_OPTIONS:
            raise ValueError(f"Armamento inválido: {value}")
        return value


class OrderScheduleItem(BaseModel):
    id: Optional[str] = None
    activity: str
    location: str = ""
    date: Optional[str] = None
    time: Optional[str] = None


class MissionOrderBase(BaseModel):
    date: Date
    is_internal: bool = True
    mission: str = Field(min_length=1)
    location: str = Field(min_length=1)
    description: Optional[str] = None
    requester: Optional[str] = None
    transport: bool = False
    food: bool = False
    personnel: List[OrderPersonnel] = []
    schedule: List[OrderScheduleItem] = []
    permanent_orders: Optional[str] = None
    special_orders: Optional[str] = None
    observation: Optional[str] = None
    mission_commander_id: Optional[str] = None


class MissionOrderCreate(MissionOrderBase):
    mission_request_id: Optional[str] = None


class MissionOrderUpdate(BaseModel):
    date: Optional[Date] = None
    is_internal: Optional[bool] = None
    mission: Optional[str] = None
    location: Optional[str] = None
    description: Optional[str] = None
    requester: Optional[str] = None
    transport: Optional[bool] = None
    food: Optional[bool] = None
    personnel: Optional[List[OrderPersonnel]] = None
    schedule: Optional[List[OrderScheduleItem]] = None
    permanent_orders: Optional[str] = None
    special_orders: Optional[str] = None
    observation: Optional[str] = None
    mission_commander_id: Optional[str] = None


class OrderStatusChange(BaseModel):
    status: OrderStatus
    comment: Optional[str] = None


class OrderSignature(BaseModel):
    pin: str = Field(min_length=4, max_length=8)


class OrderReport(BaseModel):
    report: str


class TimelineEntry(BaseModel):
    id: str
    timestamp: str
    user_id: Optional[str] = None
    user_name: str
    text: str
    type: str


class MissionOrderResponse(BaseModel):
    id: str
    omis_number: str
    date: Date
    is_internal: bool = True
    mission: str
    location: str
    description: Optional[str] = None
    requester: Optional[str] = None
    transport: bool = False
    food: bool = False
    personnel: List[Dict[str, Any]] = []
    schedule: List[Dict[str, Any]] = []
    permanent_orders: Optional[str] = None
    special_orders: Optional[str] = None
    created_by: Optional[str] = None
    status: str
    timeline: List[TimelineEntry] = []
    mission_commander_id: Optional[str] = None
    mission_request_id: Optional[str] = None
    observation: Optional[str] = None
    ch_sop_signature: Optional[str] = None
    start_time: Optional[datetime] = None
    end_time: Optional[datetime] = None
    mission_report: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True

    @classmethod
    def from_row(cls, row: dict) -> "MissionOrderResponse":
        return cls(**{
            **row,
            "personnel": row.get("personnel") or [],
            "schedule": row.get("schedule") or [],
            "timeline": row.get("timeline") or [],
        })
