from pydantic import BaseModel, Field
from typing import Optional, Dict, Any, List
from datetime import datetime


class BiometricRegisterVerify(BaseModel):
    credential: Dict[str, Any]
    name: Optional[str] = Field(default=None, max_length=60)


class BiometricLoginOptionsRequest(BaseModel):
    identifier: str = Field(min_length=3)


class BiometricLoginVerify(BaseModel):
    identifier: str = Field(min_length=3)
    credential: Dict[str, Any]


class CredentialResponse(BaseModel):
    id: str
    credential_id: str
    name: Optional[str] = None
    sign_count: int = 0
    transports: Optional[List[str]] = None
    created_at: Optional[datetime] = None
    last_used_at: Optional[datetime] = None

    class Config:
        from_attributes = True
