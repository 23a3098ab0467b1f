from pydantic import BaseModel, EmailStr, Field, field_validator
from typing import Optional, List
from datetime import datetime

from guardiao.config.constants import RANKS, ALL_SECTORS, ACCESS_LEVELS
from guardiao.core.validators import validate_cpf, validate_saram, validate_phone


def _check_rank(value: Optional[str]) -> Optional[str]:
    if value is not None and value not in RANKS:
        raise ValueError(f"Posto/graduação inválido: {value}")
    return value


def _check_sector(value: Optional[str]) -> Optional[str]:
    if value is not None and value not in ALL_SECTORS:
        raise ValueError(f"Setor inválido: {value}")
    return value


class UserCreate(BaseModel):
    username: str = Field(min_length=3, max_length=40)
    password: str = Field(min_length=8)
    name: str = Field(min_length=3, max_length=120)
    war_name: str = Field(min_length=2, max_length=40)
    email: EmailStr
    rank: str
    saram: str
    cpf: Optional[str] = None
    sector: str
    phone_number: Optional[str] = None
    access_level: Optional[str] = "N1"
    function_id: Optional[str] = None

    @field_validator("rank")
    @classmethod
    def check_rank(cls, value):
        return _check_rank(value)

    @field_validator("sector")
    @classmethod
    def check_sector(cls, value):
        return _check_sector(value)

    @field_validator("saram")
    @classmethod
    def check_saram(cls, value):
        return validate_saram(value)

    @field_validator("cpf")
    @classmethod
    def check_cpf(cls, value):
        return validate_cpf(value)

    @field_validator("phone_number")
    @classmethod
    def check_phone(cls, value):
        return validate_phone(value)

    @field_validator("access_level")
    @classmethod
    def check_access_level(cls, value):
        if value is not None and value not in ACCESS_LEVELS:
            raise ValueError(f"Nível de acesso inválido: {value}")
        return value


class UserUpdate(BaseModel):
    name: Optional[str] = Field(default=None, min_length=3, max_length=120)
    war_name: Optional[str] = Field(default=None, min_length=2, max_length=40)
    email: Optional[EmailStr] = None
    rank: Optional[str] = None
    saram: Optional[str] = None
    cpf: Optional[str] = None
    sector: Optional[str] = None
    phone_number: Optional[str] = None
    access_level: Optional[str] = None
    photo_url: Optional[str] = None

    @field_validator("rank")
    @classmethod
    def check_rank(cls, value):
        return _check_rank(value)

    @field_validator("sector")
    @classmethod
    def check_sector(cls, value):
        return _check_sector(value)

    @field_validator("cpf")
    @classmethod
    def check_cpf(cls, value):
        return validate_cpf(value)

    @field_validator("phone_number")
    @classmethod
    def check_phone(cls, value):
        return validate_phone(value)

    @field_validator("saram")
    @classmethod
    def check_saram(cls, value):
        return validate_saram(value) if value is not None else None

    @field_validator("access_level")
    @classmethod
    def check_access_level(cls, value):
        if value is not None and value not in ACCESS_LEVELS:
            raise ValueError(f"Nível de acesso inválido: {value}")
        return value


# Fields a militar may change on their own profile
SELF_EDITABLE_FIELDS = {"email", "war_name", "phone_number", "photo_url"}


class UserResponse(BaseModel):
    id: str
    username: Optional[str] = None
    name: str
    war_name: Optional[str] = None
    email: Optional[str] = None
    rank: Optional[str] = None
    saram: Optional[str] = None
    cpf: Optional[str] = None
    sector: Optional[str] = None
    access_level: Optional[str] = None
    phone_number: Optional[str] = None
    approved: Optional[bool] = None
    function_id: Optional[str] = None
    custom_permissions: List[str] = []
    display_order: Optional[int] = 0
    photo_url: Optional[str] = None
    pending_password_reset: Optional[bool] = False
    reset_password_at_login: Optional[bool] = False
    has_signature_pin: bool = False
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True

    @classmethod
    def from_row(cls, row: dict) -> "UserResponse":
        data = {k: v for k, v in row.items() if k != "signature_hash"}
        data["has_signature_pin"] = bool(row.get("signature_hash"))
        data["custom_permissions"] = row.get("custom_permissions") or []
        return cls(**{k: v for k, v in data.items() if k in cls.model_fields})


class UserSummary(BaseModel):
    id: str
    name: str
    war_name: Optional[str] = None
    rank: Optional[str] = None
    saram: Optional[str] = None
    sector: Optional[str] = None


class UserPermissionsUpdate(BaseModel):
    function_id: Optional[str] = None
    custom_permissions: List[str] = []


class UserOrderItem(BaseModel):
    id: str
    display_order: int = Field(ge=0)
