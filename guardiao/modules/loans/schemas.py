from pydantic import BaseModel, Field
from typing import Optional, List, Dict, Any
from datetime import datetime
from enum import Enum


class LoanStatus(str, Enum):
    PENDENTE = "Pendente"
    APROVADO = "Aprovado"
    AGUARDANDO_CONFIRMACAO = "Aguardando Confirmação"
    EM_USO = "Em Uso"
    PENDENTE_DEVOLUCAO = "Pendente Devolução"
    CONCLUIDO = "Concluído"
    REJEITADO = "Rejeitado"


L = LoanStatus

LOAN_TRANSITIONS = {
    L.PENDENTE.value: [L.APROVADO, L.REJEITADO],
    L.APROVADO.value: [L.EM_USO, L.AGUARDANDO_CONFIRMACAO, L.REJEITADO],
    L.AGUARDANDO_CONFIRMACAO.value: [L.EM_USO, L.REJEITADO],
    L.EM_USO.value: [L.PENDENTE_DEVOLUCAO, L.CONCLUIDO, L.REJEITADO],
    L.PENDENTE_DEVOLUCAO.value: [L.CONCLUIDO, L.REJEITADO],
}

# Statuses in which the material is in the requester's hands
IN_HANDS = {L.EM_USO.value, L.PENDENTE_DEVOLUCAO.value}

LOAN_TABS = {
    "Solicitações": [L.PENDENTE.value, L.APROVADO.value, L.AGUARDANDO_CONFIRMACAO.value],
    "Devoluções": [L.PENDENTE_DEVOLUCAO.value],
    "Em Uso": [L.EM_USO.value],
    "Histórico": [L.CONCLUIDO.value, L.REJEITADO.value],
}


class LoanCreate(BaseModel):
    id_material: str
    quantidade: int = Field(default=1, ge=1)
    observacao: Optional[str] = Field(default=None, max_length=500)


class LoanSignature(BaseModel):
    pin: str = Field(min_length=4, max_length=8)


class LoanReject(BaseModel):
    reason: str = Field(min_length=1)
    loss: bool = False


class DirectMovement(BaseModel):
    saram: str
    id_material: str
    quantidade: int = Field(default=1, ge=1)
    pin: str = Field(min_length=4, max_length=8)


class LoanResponse(BaseModel):
    id: str
    id_material: str
    id_usuario: str
    quantidade: int = 1
    status: str
    observacao: Optional[str] = None
    autorizado_por: Optional[str] = None
    entregue_por: Optional[str] = None
    recebido_por: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    material: Optional[Dict[str, Any]] = None
    solicitante: Optional[Dict[str, Any]] = None

    class Config:
        from_attributes = True


class CountItem(BaseModel):
    name: str
    count: int


class LoanStatistics(BaseModel):
    total_items: int
    low_stock: int
    total_loans: int
    active_loans: int
    by_status: Dict[str, int]
    by_material_type: List[CountItem]
    top_materials: List[CountItem]
    top_users: List[CountItem]
