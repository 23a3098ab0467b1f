from fastapi import APIRouter, Depends
from guardiao.database.supabase_client import get_supabase, get_supabase_admin, get_supabase_session
from guardiao.modules.auth.schemas import TokenResponse
from guardiao.modules.biometrics.schemas import (
    BiometricRegisterVerify, BiometricLoginOptionsRequest, BiometricLoginVerify, CredentialResponse
)
from guardiao.modules.biometrics.service import BiometricService
from guardiao.core.dependencies import get_current_user
from supabase import Client
from typing import List, Dict

router = APIRouter(prefix="/biometrics", tags=["biometrics"])


def get_biometric_service(
    supabase: Client = Depends(get_supabase),
    admin: Client = Depends(get_supabase_admin)
) -> BiometricService:
    return BiometricService(supabase, admin)


def get_biometric_login_service(
    supabase: Client = Depends(get_supabase),
    admin: Client = Depends(get_supabase_admin),
    session: Client = Depends(get_supabase_session)
) -> BiometricService:
    return BiometricService(supabase, admin, session)


@router.post("/register/options")
async def registration_options(
    user_data: Dict = Depends(get_current_user),
    service: BiometricService = Depends(get_biometric_service)
):
    """PublicKeyCredentialCreationOptions for navigator.credentials.create()"""
    return service.registration_options(user_data)


@router.post("/register/verify", response_model=CredentialResponse, status_code=201)
async def registration_verify(
    body: BiometricRegisterVerify,
    user_data: Dict = Depends(get_current_user),
    service: BiometricService = Depends(get_biometric_service)
):
    return service.verify_registration(user_data, body.credential, body.name)


@router.post("/login/options")
async def login_options(
    body: BiometricLoginOptionsRequest,
    service: BiometricService = Depends(get_biometric_service)
):
    """PublicKeyCredentialRequestOptions restricted to the militar's registered credentials"""
    return service.authentication_options(body.identifier)


@router.post("/login/verify", response_model=TokenResponse)
async def login_verify(
    body: BiometricLoginVerify,
    service: BiometricService = Depends(get_biometric_login_service)
):
    return service.verify_authentication(body.identifier, body.credential)


@router.get("/credentials", response_model=List[CredentialResponse])
async def list_credentials(
    user_data: Dict = Depends(get_current_user),
    service: BiometricService = Depends(get_biometric_service)
):
    return service.list_credentials(user_data["id"])


@router.delete("/credentials/{credential_id}", status_code=204)
async def delete_credential(
    credential_id: str,
    user_data: Dict = Depends(get_current_user),
    service: BiometricService = Depends(get_biometric_service)
):
    service.delete_credential(user_data["id"], credential_id)
    return None
