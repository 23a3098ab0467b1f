from pydantic import BaseModel, Field, field_validator, model_validator
from typing import Optional, List, Union, Dict, Any
from datetime import date, datetime
from enum import Enum

from guardiao.config.constants import TIPOS_MISSAO, RANKS


class MissionStatus(str, Enum):
    RASCUNHO = "RASCUNHO"
    PENDENTE = "PENDENTE"
    ESCALONADA = "ESCALONADA"
    APROVADA = "APROVADA"
    REJEITADA = "REJEITADA"
    AGUARDANDO_ORDEM = "AGUARDANDO_ORDEM"
    ATRIBUIDA = "ATRIBUIDA"
    FINALIZADA = "FINALIZADA"


S = MissionStatus

MISSION_TRANSITIONS = {
    S.RASCUNHO.value: [S.PENDENTE],
    S.PENDENTE.value: [S.APROVADA, S.REJEITADA, S.ESCALONADA],
    S.ESCALONADA.value: [S.APROVADA, S.REJEITADA],
    S.APROVADA.value: [S.AGUARDANDO_ORDEM, S.ATRIBUIDA, S.FINALIZADA],
    S.AGUARDANDO_ORDEM.value: [S.ATRIBUIDA, S.FINALIZADA],
    S.ATRIBUIDA.value: [S.FINALIZADA],
}

# Statuses in which the requester may still edit the request
OWNER_EDITABLE = {S.RASCUNHO.value, S.PENDENTE.value}

DECISIONS = [S.APROVADA, S.REJEITADA, S.ESCALONADA, S.AGUARDANDO_ORDEM, S.ATRIBUIDA]

TIME_PATTERN = r"^([01]\d|2[0-3]):[0-5]\d$"


class Responsavel(BaseModel):
    nome: str = ""
    om: str = ""
    telefone: str = ""


class Viaturas(BaseModel):
    operacional: int = Field(default=0, ge=0)
    descaracterizada: int = Field(default=0, ge=0)
    caminhao_tropa: int = Field(default=0, ge=0)


class Alimentacao(BaseModel):
    cafe: bool = False
    almoco: bool = False
    janta: bool = False
    ceia: bool = False
    lanche: bool = False


class DadosMissao(BaseModel):
    posto: str
    nome_guerra: str = Field(min_length=1)
    setor: str
    tipo_missao: str
    data: date
    data_termino: Optional[date] = None
    inicio: str = Field(pattern=TIME_PATTERN)
    termino: str = Field(pattern=TIME_PATTERN)
    local: str = Field(min_length=1)
    responsavel: Optional[Responsavel] = None
    efetivo: str = ""
    viaturas: Optional[Union[Viaturas, str]] = None
    alimentacao: Alimentacao = Alimentacao()

    @field_validator("tipo_missao")
    @classmethod
    def check_tipo_missao(cls, value):
        if value not in TIPOS_MISSAO:
            raise ValueError(f"Tipo de missão inválido: {value}")
        return value

    @field_validator("posto")
    @classmethod
    def check_posto(cls, value):
        if value not in RANKS:
            raise ValueError(f"Posto/graduação inválido: {value}")
        return value

    @model_validator(mode="after")
    def check_schedule(self):
        if self.data_termino is not None and self.data_termino < self.data:
            raise ValueError("A data de término não pode ser anterior à data de início")
        same_day = self.data_termino is None or self.data_termino == self.data
        if same_day and self.termino < self.inicio:
            raise ValueError("O horário de término não pode ser anterior ao de início")
        return self


class MissionCreate(BaseModel):
    dados_missao: DadosMissao
    draft: bool = False


class MissionUpdate(BaseModel):
    dados_missao: DadosMissao


class MissionComment(BaseModel):
    comentario: str


class MissionDecision(BaseModel):
    decision: MissionStatus
    parecer: Optional[str] = None

    @field_validator("decision")
    @classmethod
    def check_decision(cls, value):
        if value not in DECISIONS:
            raise ValueError(f"Decisão inválida: {value.value}")
        return value


class HistoricoItem(BaseModel):
    id: str
    tipo: str
    usuario: str
    usuario_id: Optional[str] = None
    data: str
    campo: Optional[str] = None
    valor_anterior: Optional[Any] = None
    valor_novo: Optional[Any] = None
    comentario: Optional[str] = None


class MissionResponse(BaseModel):
    id: str
    solicitante_id: str
    dados_missao: Dict[str, Any]
    status: str
    parecer_sop: Optional[str] = None
    historico: List[HistoricoItem] = []
    mission_order_id: Optional[str] = None
    data_criacao: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True

    @classmethod
    def from_row(cls, row: dict) -> "MissionResponse":
        return cls(**{**row, "historico": row.get("historico") or []})


class CountItem(BaseModel):
    name: str
    count: int


class MissionStatistics(BaseModel):
    """Mission dashboard: OMIS totals plus request and commander rankings"""
    total_orders: int
    active_orders: int
    completed_orders: int
    awaiting_signature: int
    orders_by_status: Dict[str, int]
    orders_by_category: List[CountItem]
    requests_by_status: Dict[str, int]
    top_requesters: List[CountItem]
    top_commanders: List[CountItem]
