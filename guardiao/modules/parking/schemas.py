from pydantic import BaseModel, EmailStr, Field, field_validator, model_validator
from typing import Optional, List, Dict
from datetime import date, datetime
from enum import Enum

from guardiao.config.constants import FORCAS, TIPOS_PESSOA
from guardiao.core.validators import is_valid_plate, normalize_plate


class ParkingStatus(str, Enum):
    PENDENTE = "Pendente"
    APROVADO = "Aprovado"
    REJEITADO = "Rejeitado"


PARKING_TRANSITIONS = {
    ParkingStatus.PENDENTE.value: [ParkingStatus.APROVADO, ParkingStatus.REJEITADO],
}

EMPTY_MARK = "—"

# Uploaded documents, keyed by form field; values prefix the stored file name
DOCUMENT_KINDS = {
    "identidade": "identity",
    "cnh": "cnh",
    "crlv": "crlv",
}


def _upper(value: Optional[str]) -> str:
    return (value or "").strip().upper()


class ParkingRequestCreate(BaseModel):
    """Public parking authorization form (ParkingRequestModal)"""
    nome: str = Field(min_length=1, max_length=200)
    posto: str = ""
    forca: str = "FAB"
    tipo: str = "Militar"
    om: str = ""
    telefone: Optional[str] = None
    email: EmailStr
    identidade: Optional[str] = None
    marca_modelo: str = Field(min_length=1, max_length=100)
    placa: str
    cor: str = ""
    inicio: date
    termino: date
    obs: Optional[str] = Field(default=None, max_length=1000)

    @field_validator("nome", "marca_modelo", "cor")
    @classmethod
    def upper_text(cls, value):
        return _upper(value)

    @field_validator("posto", "om")
    @classmethod
    def upper_or_mark(cls, value):
        return _upper(value) or EMPTY_MARK

    @field_validator("forca")
    @classmethod
    def check_forca(cls, value):
        if value not in FORCAS:
            raise ValueError(f"Força inválida: {value}")
        return value

    @field_validator("tipo")
    @classmethod
    def check_tipo(cls, value):
        if value not in TIPOS_PESSOA:
            raise ValueError(f"Tipo de pessoa inválido: {value}")
        return value

    @field_validator("placa")
    @classmethod
    def check_placa(cls, value):
        if not is_valid_plate(value):
            raise ValueError("Placa inválida (use ABC1234 ou ABC1D23)")
        return normalize_plate(value)

    @model_validator(mode="after")
    def check_request(self):
        if not self.nome or not self.marca_modelo:
            raise ValueError("Nome e marca/modelo são obrigatórios")
        if self.tipo == "Civil" and not _upper(self.identidade):
            raise ValueError("Identidade é obrigatória para civis")
        if self.termino < self.inicio:
            raise ValueError("A data de término deve ser igual ou posterior à data de início")
        self.identidade = _upper(self.identidade) or None
        return self


class ParkingRequestCreated(BaseModel):
    id: str
    numero_autorizacao: Optional[int] = None
    status: str


class ParkingDecision(BaseModel):
    status: ParkingStatus
    observacao: Optional[str] = Field(default=None, max_length=1000)

    @field_validator("status")
    @classmethod
    def check_decision(cls, value):
        if value == ParkingStatus.PENDENTE:
            raise ValueError("A decisão deve ser Aprovado ou Rejeitado")
        return value


class ParkingRequestResponse(BaseModel):
    id: str
    numero_autorizacao: Optional[int] = None
    nome_completo: str
    posto_graduacao: Optional[str] = None
    forca: Optional[str] = None
    tipo_pessoa: Optional[str] = None
    om: Optional[str] = None
    telefone: Optional[str] = None
    email: Optional[str] = None
    identidade: Optional[str] = None
    ext_marca_modelo: str
    ext_placa: str
    ext_cor: Optional[str] = None
    inicio: date
    termino: date
    observacao: Optional[str] = None
    identidade_url: Optional[str] = None
    cnh_url: Optional[str] = None
    crlv_url: Optional[str] = None
    status: str
    decidido_por: Optional[str] = None
    decidido_em: Optional[datetime] = None
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class CountItem(BaseModel):
    name: str
    count: int


class ParkingStatistics(BaseModel):
    total: int
    by_status: Dict[str, int]
    by_person_type: Dict[str, int]
    by_om: List[CountItem]
    active_today: int
