from pydantic import BaseModel, Field, field_validator
from typing import Optional
from datetime import datetime
from enum import Enum

from guardiao.config.constants import MATERIAL_TYPES, GESTAO_MATERIAL_SETORES


class MaterialStatus(str, Enum):
    DISPONIVEL = "DISPONIVEL"
    MANUTENCAO = "MANUTENCAO"
    BAIXADO = "BAIXADO"


def _check_tipo(value: Optional[str]) -> Optional[str]:
    if value is not None and value not in MATERIAL_TYPES:
        raise ValueError(f"Tipo de material inválido: {value}")
    return value


def _check_setor(value: Optional[str]) -> Optional[str]:
    if value is not None and value not in GESTAO_MATERIAL_SETORES:
        raise ValueError(f"Setor de estoque inválido: {value}")
    return value


class MaterialCreate(BaseModel):
    material: str = Field(min_length=1, max_length=200)
    tipo_de_material: str
    setor: str
    qtdisponivel: int = Field(default=0, ge=0)
    saida: int = Field(default=0, ge=0)
    status: MaterialStatus = MaterialStatus.DISPONIVEL
    descricao: Optional[str] = None

    @field_validator("tipo_de_material")
    @classmethod
    def check_tipo(cls, value):
        return _check_tipo(value)

    @field_validator("setor")
    @classmethod
    def check_setor(cls, value):
        return _check_setor(value)


class MaterialUpdate(BaseModel):
    material: Optional[str] = Field(default=None, min_length=1, max_length=200)
    tipo_de_material: Optional[str] = None
    setor: Optional[str] = None
    qtdisponivel: Optional[int] = Field(default=None, ge=0)
    saida: Optional[int] = Field(default=None, ge=0)
    status: Optional[MaterialStatus] = None
    descricao: Optional[str] = None

    @field_validator("tipo_de_material")
    @classmethod
    def check_tipo(cls, value):
        return _check_tipo(value)

    @field_validator("setor")
    @classmethod
    def check_setor(cls, value):
        return _check_setor(value)


class MaterialResponse(BaseModel):
    id: str
    material: str
    tipo_de_material: Optional[str] = None
    setor: Optional[str] = None
    qtdisponivel: int = 0
    saida: int = 0
    status: str = MaterialStatus.DISPONIVEL.value
    descricao: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True
