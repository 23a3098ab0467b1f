from pydantic import BaseModel, Field
from typing import Optional, List, Dict

from guardiao.modules.users.schemas import UserCreate, UserResponse


class LoginRequest(BaseModel):
    identifier: str = Field(min_length=3, description="username, SARAM or e-mail")
    password: str = Field(min_length=1)


class TokenResponse(BaseModel):
    access_token: str
    refresh_token: Optional[str] = None
    token_type: str = "bearer"
    user_id: str
    email: str
    must_change_password: bool = False


class RegisterRequest(UserCreate):
    """Self-registration: same fields as an admin-created user; always lands unapproved."""


class RegisterResponse(BaseModel):
    user_id: str
    email: str
    message: str


class PasswordResetRequest(BaseModel):
    saram: str


class ChangePasswordRequest(BaseModel):
    current_password: str
    new_password: str = Field(min_length=8)


class SignaturePinRequest(BaseModel):
    current_password: str
    pin: str = Field(pattern=r"^\d{4,8}$")


class MeResponse(BaseModel):
    user: UserResponse
    permissions: List[str]
    menu: List[Dict[str, str]]
    can_request_mission: bool
