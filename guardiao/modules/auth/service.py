import hashlib
import time
from supabase import Client
from guardiao.modules.auth.schemas import (
    LoginRequest, RegisterRequest, TokenResponse, RegisterResponse
)
from guardiao.modules.users.service import UserService
from guardiao.core.validators import only_digits
from guardiao.database.supabase_client import SupabaseClient
from fastapi import HTTPException
from typing import Dict, Any, Optional
from datetime import datetime
import logging

logger = logging.getLogger(__name__)

# In-memory cache for get_current_user to reduce Supabase auth calls (e.g. many parallel requests with same token)
_AUTH_USER_CACHE: Dict[str, tuple] = {}
_AUTH_CACHE_TTL_SEC = 60
_AUTH_CACHE_MAX_SIZE = 500


def clear_auth_cache() -> None:
    _AUTH_USER_CACHE.clear()


class AuthService:
    def __init__(self, supabase: Client, admin_client: Optional[Client] = None, session_client: Optional[Client] = None):
        self.supabase = supabase
        self.admin = admin_client or supabase
        self.session_client = session_client
        self.users = UserService(supabase, self.admin)

    def register(self, register_data: RegisterRequest) -> RegisterResponse:
        """Self-registration; the account stays unapproved until a manager approves it"""
        user = self.users.create_user(register_data, approved=False)
        return RegisterResponse(
            user_id=user.id,
            email=user.email or register_data.email,
            message="Cadastro enviado. Aguarde aprovação pelo Comandante."
        )

    def _sign_in(self, email: str, password: str):
        # Never on self.supabase: signing in rebinds a client to the user's token
        session_client = self.session_client or SupabaseClient.new_session_client()
        try:
            auth_response = session_client.auth.sign_in_with_password({
                "email": email,
                "password": password
            })
        except Exception as e:
            error_message = str(e)
            if "invalid" in error_message.lower() or "credentials" in error_message.lower():
                raise HTTPException(status_code=401, detail="Credenciais inválidas. Verifique usuário e senha.")
            raise HTTPException(status_code=500, detail=f"Login failed: {error_message}")
        if not auth_response.user or not auth_response.session:
            raise HTTPException(status_code=401, detail="Credenciais inválidas. Verifique usuário e senha.")
        return auth_response

    def login(self, login_data: LoginRequest) -> TokenResponse:
        """Authenticate a militar by username, SARAM or e-mail using Supabase Auth"""
        profile = self.users.find_by_identifier(login_data.identifier)
        if not profile or not profile.get("email"):
            raise HTTPException(status_code=401, detail="Credenciais inválidas. Verifique usuário e senha.")
        if profile.get("approved") is False:
            raise HTTPException(status_code=403, detail="Seu cadastro está pendente de aprovação pelo Comandante.")

        auth_response = self._sign_in(profile["email"], login_data.password)
        logger.info(f"User {profile['id']} logged in")
        return TokenResponse(
            access_token=auth_response.session.access_token,
            refresh_token=getattr(auth_response.session, "refresh_token", None),
            token_type="bearer",
            user_id=auth_response.user.id,
            email=auth_response.user.email or profile["email"],
            must_change_password=bool(profile.get("reset_password_at_login"))
        )

    def get_current_user(self, token: str) -> Dict[str, Any]:
        """Get current user details from Supabase Auth token. Uses short TTL cache to reduce auth API calls."""
        try:
            cache_key = hashlib.sha256(token.encode()).hexdigest()
            now = time.monotonic()
            if cache_key in _AUTH_USER_CACHE:
                user_data, expiry = _AUTH_USER_CACHE[cache_key]
                if now < expiry:
                    return user_data
                del _AUTH_USER_CACHE[cache_key]
            user_response = self.supabase.auth.get_user(jwt=token)
            if not user_response or not user_response.user:
                raise HTTPException(status_code=401, detail="Invalid or expired token")
            user = user_response.user
            user_data = {
                "id": user.id,
                "email": user.email,
                "user_metadata": user.user_metadata or {},
                "app_metadata": user.app_metadata or {},
            }
            if len(_AUTH_USER_CACHE) < _AUTH_CACHE_MAX_SIZE:
                _AUTH_USER_CACHE[cache_key] = (user_data, now + _AUTH_CACHE_TTL_SEC)
            return user_data
        except HTTPException:
            raise
        except Exception as e:
            error_msg = str(e)
            if "JWT" in error_msg or "expired" in error_msg.lower() or "invalid" in error_msg.lower():
                raise HTTPException(status_code=401, detail="Invalid or expired token")
            raise HTTPException(status_code=401, detail="Authentication failed")

    def logout(self, token: str) -> bool:
        """Revoke the session behind the token through the Auth admin API"""
        _AUTH_USER_CACHE.pop(hashlib.sha256(token.encode()).hexdigest(), None)
        try:
            self.admin.auth.admin.sign_out(token)
            return True
        except Exception as e:
            logger.warning(f"Logout could not revoke the session: {e}")
            return False

    def request_password_reset(self, saram: str) -> None:
        """Flag pending_password_reset for the SARAM; silent when the SARAM is unknown"""
        row = self.users.find_by_identifier(only_digits(saram))
        if not row:
            logger.info("Password reset requested for unknown SARAM")
            return
        self.supabase.table("users")\
            .update({"pending_password_reset": True})\
            .eq("id", row["id"])\
            .execute()
        logger.info(f"Password reset requested for user {row['id']}")

    def verify_password(self, user: dict, password: str) -> None:
        """Re-authenticate the user with their current password; raises 401 on mismatch"""
        self._sign_in(user["email"], password)

    def change_password(self, user: dict, current_password: str, new_password: str) -> None:
        """Change password through the admin API after re-authenticating"""
        if current_password == new_password:
            raise HTTPException(status_code=400, detail="A nova senha deve ser diferente da atual")
        self.verify_password(user, current_password)
        try:
            self.admin.auth.admin.update_user_by_id(user["id"], {"password": new_password})
        except Exception as e:
            raise HTTPException(status_code=500, detail=f"Failed to update password: {str(e)}")
        self.supabase.table("users")\
            .update({
                "reset_password_at_login": False,
                "pending_password_reset": False,
                "password_status": "ACTIVE",
                "updated_at": datetime.utcnow().isoformat()
            })\
            .eq("id", user["id"])\
            .execute()
        logger.info(f"Password changed for user {user['id']}")

    def set_signature_pin(self, user: dict, current_password: str, pin: str) -> None:
        self.verify_password(user, current_password)
        self.users.set_signature_pin(user["id"], pin)
