from fastapi import APIRouter, Depends, Request, Security
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from guardiao.database.supabase_client import get_supabase, get_supabase_admin, get_supabase_session
from guardiao.modules.auth.schemas import (
    LoginRequest, RegisterRequest, TokenResponse, RegisterResponse,
    PasswordResetRequest, ChangePasswordRequest, SignaturePinRequest, MeResponse
)
from guardiao.modules.auth.service import AuthService
from guardiao.modules.users.schemas import UserResponse
from guardiao.core.dependencies import get_current_user, effective_permissions, can_request_mission
from guardiao.config.permissions_config import menu_for
from guardiao.config import settings
from guardiao.core.rate_limit import limiter
from supabase import Client
from typing import Dict

router = APIRouter(prefix="/auth", tags=["auth"])

# Security scheme for JWT Bearer token
security = HTTPBearer()


def get_auth_service(
    supabase: Client = Depends(get_supabase),
    admin: Client = Depends(get_supabase_admin)
) -> AuthService:
    return AuthService(supabase, admin)


def get_sign_in_service(
    supabase: Client = Depends(get_supabase),
    admin: Client = Depends(get_supabase_admin),
    session: Client = Depends(get_supabase_session)
) -> AuthService:
    """AuthService for endpoints that check a password"""
    return AuthService(supabase, admin, session)


def get_current_token(
    credentials: HTTPAuthorizationCredentials = Security(security)
) -> str:
    """Extract JWT token from Authorization header"""
    return credentials.credentials


@router.post("/register", response_model=RegisterResponse, status_code=201)
async def register(
    register_data: RegisterRequest,
    service: AuthService = Depends(get_auth_service)
):
    """Self-registration (pending approval)"""
    return service.register(register_data)


@router.post("/login", response_model=TokenResponse)
@limiter.limit(settings.public_rate_limit)
async def login(
    request: Request,
    login_data: LoginRequest,
    service: AuthService = Depends(get_sign_in_service)
):
    """Login with username, SARAM or e-mail and get access token"""
    return service.login(login_data)


@router.post("/logout", status_code=200)
async def logout(
    token: str = Depends(get_current_token),
    service: AuthService = Depends(get_auth_service)
):
    """Logout and invalidate token"""
    service.logout(token)
    return {"message": "Logged out successfully"}


@router.get("/me", response_model=MeResponse)
async def get_me(current_user: Dict = Depends(get_current_user)):
    """Current militar, effective permissions and visible menu (for frontend UI)."""
    permissions = effective_permissions(current_user)
    return MeResponse(
        user=UserResponse.from_row(current_user),
        permissions=permissions,
        menu=menu_for(permissions),
        can_request_mission=can_request_mission(current_user),
    )


@router.post("/password-reset-request", status_code=202)
async def password_reset_request(
    request: PasswordResetRequest,
    service: AuthService = Depends(get_auth_service)
):
    """Ask a manager to reset the password. Always accepted so SARAMs cannot be probed."""
    service.request_password_reset(request.saram)
    return {"message": "Solicitação registrada. Procure a SAP-01."}


@router.post("/change-password", status_code=200)
async def change_password(
    request: ChangePasswordRequest,
    current_user: Dict = Depends(get_current_user),
    service: AuthService = Depends(get_sign_in_service)
):
    service.change_password(current_user, request.current_password, request.new_password)
    return {"message": "Senha atualizada com sucesso"}


@router.put("/signature-pin", status_code=200)
async def set_signature_pin(
    request: SignaturePinRequest,
    current_user: Dict = Depends(get_current_user),
    service: AuthService = Depends(get_sign_in_service)
):
    """Register or replace the PIN used to sign attendance sheets, cautelas and OMIS"""
    service.set_signature_pin(current_user, request.current_password, request.pin)
    return {"message": "PIN de assinatura atualizado"}
