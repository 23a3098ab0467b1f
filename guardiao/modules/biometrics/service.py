"""
Server-side WebAuthn ceremonies. Challenges are issued and stored by the
server, consumed once, and expire after webauthn_challenge_ttl_seconds.
A verified assertion mints a regular Supabase session for the militar.
"""
import json
from datetime import datetime, timedelta, timezone
from typing import List, Optional, Dict, Any
import logging

from fastapi import HTTPException
from supabase import Client
from webauthn import (
    generate_registration_options,
    verify_registration_response,
    generate_authentication_options,
    verify_authentication_response,
    options_to_json,
)
from webauthn.helpers import base64url_to_bytes, bytes_to_base64url
from webauthn.helpers.cose import COSEAlgorithmIdentifier
from webauthn.helpers.structs import (
    AuthenticatorSelectionCriteria,
    PublicKeyCredentialDescriptor,
    ResidentKeyRequirement,
    UserVerificationRequirement,
)

from guardiao.config import settings
from guardiao.database.supabase_client import SupabaseClient
from guardiao.modules.auth.schemas import TokenResponse
from guardiao.modules.biometrics.schemas import CredentialResponse
from guardiao.modules.users.service import UserService

logger = logging.getLogger(__name__)

REGISTRATION = "registration"
AUTHENTICATION = "authentication"
CEREMONY_TIMEOUT_MS = 60000


def _parse_ts(value: str) -> datetime:
    parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


class BiometricService:
    def __init__(self, supabase: Client, admin_client: Optional[Client] = None, session_client: Optional[Client] = None):
        self.supabase = supabase
        self.admin = admin_client or supabase
        self.session_client = session_client
        self.users = UserService(supabase, self.admin)

    # Challenges

    def _store_challenge(self, user_id: str, challenge: bytes, purpose: str) -> None:
        expires_at = datetime.now(timezone.utc) + timedelta(seconds=settings.webauthn_challenge_ttl_seconds)
        self.supabase.table("webauthn_challenges").insert({
            "user_id": user_id,
            "challenge": bytes_to_base64url(challenge),
            "purpose": purpose,
            "expires_at": expires_at.isoformat(),
            "used": False,
        }).execute()

    def _consume_challenge(self, user_id: str, purpose: str) -> bytes:
        """Return the latest unused, unexpired challenge and mark it used. 400 when none is pending."""
        result = self.supabase.table("webauthn_challenges")\
            .select("*")\
            .eq("user_id", user_id)\
            .eq("purpose", purpose)\
            .eq("used", False)\
            .order("created_at", desc=True)\
            .limit(1)\
            .execute()
        if not result.data:
            raise HTTPException(status_code=400, detail="Nenhum desafio biométrico pendente")
        row = result.data[0]
        self.supabase.table("webauthn_challenges")\
            .update({"used": True})\
            .eq("id", row["id"])\
            .execute()
        if _parse_ts(row["expires_at"]) <= datetime.now(timezone.utc):
            raise HTTPException(status_code=400, detail="Desafio biométrico expirado")
        return base64url_to_bytes(row["challenge"])

    # Credentials

    def _credentials_for(self, user_id: str) -> List[dict]:
        result = self.supabase.table("webauthn_credentials")\
            .select("*")\
            .eq("user_id", user_id)\
            .execute()
        return result.data or []

    def list_credentials(self, user_id: str) -> List[CredentialResponse]:
        return [CredentialResponse(**row) for row in self._credentials_for(user_id)]

    def delete_credential(self, user_id: str, credential_row_id: str) -> None:
        result = self.supabase.table("webauthn_credentials")\
            .delete()\
            .eq("id", credential_row_id)\
            .eq("user_id", user_id)\
            .execute()
        if not result.data:
            raise HTTPException(status_code=404, detail="Credential not found")
        logger.info(f"Biometric credential {credential_row_id} removed for user {user_id}")

    # Registration

    def registration_options(self, user: dict) -> Dict[str, Any]:
        options = generate_registration_options(
            rp_id=settings.webauthn_rp_id,
            rp_name=settings.webauthn_rp_name,
            user_id=user["id"].encode("utf-8"),
            user_name=user.get("username") or user["email"],
            user_display_name=f"{user.get('rank') or ''} {user.get('war_name') or user.get('name')}".strip(),
            timeout=CEREMONY_TIMEOUT_MS,
            authenticator_selection=AuthenticatorSelectionCriteria(
                user_verification=UserVerificationRequirement.PREFERRED,
                resident_key=ResidentKeyRequirement.PREFERRED,
            ),
            supported_pub_key_algs=[
                COSEAlgorithmIdentifier.ECDSA_SHA_256,
                COSEAlgorithmIdentifier.RSASSA_PKCS1_v1_5_SHA_256,
            ],
            exclude_credentials=[
                PublicKeyCredentialDescriptor(id=base64url_to_bytes(c["credential_id"]))
                for c in self._credentials_for(user["id"])
            ],
        )
        self._store_challenge(user["id"], options.challenge, REGISTRATION)
        return json.loads(options_to_json(options))

    def verify_registration(self, user: dict, credential: Dict[str, Any], name: Optional[str] = None) -> CredentialResponse:
        expected_challenge = self._consume_challenge(user["id"], REGISTRATION)
        try:
            verification = verify_registration_response(
                credential=credential,
                expected_challenge=expected_challenge,
                expected_origin=settings.get_webauthn_origins(),
                expected_rp_id=settings.webauthn_rp_id,
            )
        except Exception as e:
            logger.warning(f"Biometric registration rejected for user {user['id']}: {e}")
            raise HTTPException(status_code=400, detail=f"Registro biométrico inválido: {str(e)}")

        row = {
            "user_id": user["id"],
            "credential_id": bytes_to_base64url(verification.credential_id),
            "public_key": bytes_to_base64url(verification.credential_public_key),
            "sign_count": verification.sign_count,
            "transports": (credential.get("response") or {}).get("transports"),
            "name": name,
        }
        result = self.supabase.table("webauthn_credentials").insert(row).execute()
        if not result.data:
            raise HTTPException(status_code=500, detail="Failed to store credential")
        logger.info(f"Biometric credential registered for user {user['id']}")
        return CredentialResponse(**result.data[0])

    # Authentication

    def _resolve_user(self, identifier: str) -> dict:
        user = self.users.find_by_identifier(identifier)
        if not user:
            raise HTTPException(status_code=404, detail="Militar não encontrado")
        if user.get("approved") is False:
            raise HTTPException(status_code=403, detail="Seu cadastro está pendente de aprovação pelo Comandante.")
        return user

    def authentication_options(self, identifier: str) -> Dict[str, Any]:
        user = self._resolve_user(identifier)
        credentials = self._credentials_for(user["id"])
        if not credentials:
            raise HTTPException(status_code=404, detail="Nenhuma biometria cadastrada para este militar")
        options = generate_authentication_options(
            rp_id=settings.webauthn_rp_id,
            timeout=CEREMONY_TIMEOUT_MS,
            allow_credentials=[
                PublicKeyCredentialDescriptor(id=base64url_to_bytes(c["credential_id"]))
                for c in credentials
            ],
            user_verification=UserVerificationRequirement.PREFERRED,
        )
        self._store_challenge(user["id"], options.challenge, AUTHENTICATION)
        return json.loads(options_to_json(options))

    def verify_authentication(self, identifier: str, credential: Dict[str, Any]) -> TokenResponse:
        user = self._resolve_user(identifier)
        stored = next(
            (c for c in self._credentials_for(user["id"]) if c["credential_id"] == credential.get("id")),
            None
        )
        if not stored:
            raise HTTPException(status_code=401, detail="Credencial biométrica não reconhecida")
        expected_challenge = self._consume_challenge(user["id"], AUTHENTICATION)
        try:
            verification = verify_authentication_response(
                credential=credential,
                expected_challenge=expected_challenge,
                expected_rp_id=settings.webauthn_rp_id,
                expected_origin=settings.get_webauthn_origins(),
                credential_public_key=base64url_to_bytes(stored["public_key"]),
                credential_current_sign_count=stored.get("sign_count") or 0,
            )
        except Exception as e:
            logger.warning(f"Biometric assertion rejected for user {user['id']}: {e}")
            raise HTTPException(status_code=401, detail="Autenticação biométrica falhou")

        self.supabase.table("webauthn_credentials")\
            .update({
                "sign_count": verification.new_sign_count,
                "last_used_at": datetime.now(timezone.utc).isoformat()
            })\
            .eq("id", stored["id"])\
            .execute()
        logger.info(f"User {user['id']} authenticated with biometrics")
        return self._mint_session(user)

    def _mint_session(self, user: dict) -> TokenResponse:
        """Issue a Supabase session for an already-verified militar (magic-link token hash exchanged via verify_otp)."""
        session_client = self.session_client or SupabaseClient.new_session_client()
        try:
            link = self.admin.auth.admin.generate_link({"type": "magiclink", "email": user["email"]})
            session_response = session_client.auth.verify_otp({
                "token_hash": link.properties.hashed_token,
                "type": "magiclink"
            })
        except Exception as e:
            raise HTTPException(status_code=500, detail=f"Failed to create session: {str(e)}")
        if not session_response.session:
            raise HTTPException(status_code=500, detail="Failed to create session")
        return TokenResponse(
            access_token=session_response.session.access_token,
            refresh_token=getattr(session_response.session, "refresh_token", None),
            token_type="bearer",
            user_id=user["id"],
            email=user["email"],
            must_change_password=bool(user.get("reset_password_at_login"))
        )
