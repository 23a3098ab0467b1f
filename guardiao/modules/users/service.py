from supabase import Client
from guardiao.config.permissions_config import USER_FUNCTIONS, DEFAULT_FUNCTION, unknown_permissions
from guardiao.core.security import get_pin_hash
from guardiao.core.validators import only_digits
from guardiao.modules.users.schemas import (
    UserCreate, UserUpdate, UserResponse, UserPermissionsUpdate, UserOrderItem
)
from typing import List, Optional
from fastapi import HTTPException
from datetime import datetime
import logging
import secrets

logger = logging.getLogger(__name__)

# GoTrue wording varies between versions
_DUPLICATE_EMAIL_MARKERS = ("already been registered", "already registered", "already exists")


def _is_duplicate_email(error_message: str) -> bool:
    message = error_message.lower()
    return any(marker in message for marker in _DUPLICATE_EMAIL_MARKERS)


class UserService:
    def __init__(self, supabase: Client, admin_client: Optional[Client] = None):
        self.supabase = supabase
        self.admin = admin_client or supabase

    def _get_row(self, column: str, value: str) -> Optional[dict]:
        result = self.supabase.table("users")\
            .select("*")\
            .eq(column, value)\
            .limit(1)\
            .execute()
        return result.data[0] if result.data else None

    def get_user_row(self, user_id: str) -> dict:
        """Raw users row (includes signature_hash). Raises 404."""
        try:
            row = self._get_row("id", user_id)
        except Exception as e:
            raise HTTPException(status_code=500, detail=str(e))
        if not row:
            raise HTTPException(status_code=404, detail="User not found")
        return row

    def get_user_by_id(self, user_id: str) -> UserResponse:
        """Get user profile by ID"""
        return UserResponse.from_row(self.get_user_row(user_id))

    def get_user_row_by_saram(self, saram: str) -> dict:
        try:
            row = self._get_row("saram", only_digits(saram))
        except Exception as e:
            raise HTTPException(status_code=500, detail=str(e))
        if not row:
            raise HTTPException(status_code=404, detail="Militar não encontrado com este SARAM")
        return row

    def find_by_identifier(self, identifier: str) -> Optional[dict]:
        """Resolve a login identifier: e-mail when it contains '@', SARAM when it is 7 digits, username otherwise."""
        identifier = identifier.strip()
        try:
            if "@" in identifier:
                return self._get_row("email", identifier.lower())
            digits = only_digits(identifier)
            if digits == identifier and len(digits) == 7:
                row = self._get_row("saram", digits)
                if row:
                    return row
            return self._get_row("username", identifier.lower())
        except Exception as e:
            logger.error(f"Error resolving login identifier: {e}")
            return None

    def _ensure_unique(self, user_data: UserCreate) -> None:
        checks = [
            ("saram", user_data.saram, "SARAM"),
            ("username", user_data.username.lower(), "Usuário"),
            ("email", user_data.email.lower(), "E-mail"),
        ]
        if user_data.cpf:
            checks.append(("cpf", user_data.cpf, "CPF"))
        for column, value, label in checks:
            if self._get_row(column, value):
                raise HTTPException(status_code=409, detail=f"{label} já cadastrado")

    def create_user(self, user_data: UserCreate, approved: bool) -> UserResponse:
        """Create the Supabase Auth user and its users row. Self-registrations start unapproved."""
        try:
            self._ensure_unique(user_data)
            function_id = user_data.function_id or DEFAULT_FUNCTION
            if function_id not in USER_FUNCTIONS:
                raise HTTPException(status_code=400, detail=f"Função desconhecida: {function_id}")

            auth_response = self.admin.auth.admin.create_user({
                "email": user_data.email,
                "password": user_data.password,
                "email_confirm": True,
                "user_metadata": {"name": user_data.name, "saram": user_data.saram}
            })
            if not auth_response.user:
                raise HTTPException(status_code=400, detail="Failed to register user")
            auth_id = auth_response.user.id

            row = {
                "id": auth_id,
                "username": user_data.username.lower(),
                "name": user_data.name,
                "war_name": user_data.war_name.upper(),
                "email": user_data.email.lower(),
                "rank": user_data.rank,
                "saram": user_data.saram,
                "cpf": user_data.cpf,
                "sector": user_data.sector,
                "phone_number": user_data.phone_number,
                "access_level": (user_data.access_level or "N1") if approved else "N1",
                "function_id": function_id if approved else DEFAULT_FUNCTION,
                "custom_permissions": [],
                "approved": approved,
                "display_order": 0,
            }
            try:
                result = self.supabase.table("users").insert(row).execute()
            except Exception:
                self.admin.auth.admin.delete_user(auth_id)
                raise
            if not result.data:
                raise HTTPException(status_code=500, detail="Failed to create user")
            logger.info(f"User {row['username']} created (approved={approved})")
            return UserResponse.from_row(result.data[0])
        except HTTPException:
            raise
        except Exception as e:
            error_message = str(e)
            if getattr(e, "code", None) == "email_exists" or _is_duplicate_email(error_message):
                raise HTTPException(status_code=409, detail="E-mail já cadastrado")
            raise HTTPException(status_code=500, detail=error_message)

    def update_user(self, user_id: str, user_data: UserUpdate, allowed_fields: Optional[set] = None) -> UserResponse:
        """Update user profile. allowed_fields restricts which set fields are applied (self-service edits)."""
        try:
            changes = user_data.model_dump(exclude_unset=True, exclude_none=True)
            if allowed_fields is not None:
                forbidden = set(changes) - allowed_fields
                if forbidden:
                    raise HTTPException(
                        status_code=403,
                        detail=f"Campos não editáveis pelo próprio militar: {', '.join(sorted(forbidden))}"
                    )
            if "war_name" in changes:
                changes["war_name"] = changes["war_name"].upper()
            if "email" in changes:
                changes["email"] = changes["email"].lower()
            if "saram" in changes:
                existing = self._get_row("saram", changes["saram"])
                if existing and existing["id"] != user_id:
                    raise HTTPException(status_code=409, detail="SARAM já cadastrado")
            update_data = {"updated_at": datetime.utcnow().isoformat(), **changes}

            result = self.supabase.table("users")\
                .update(update_data)\
                .eq("id", user_id)\
                .execute()

            if not result.data:
                raise HTTPException(status_code=404, detail="User not found")

            return UserResponse.from_row(result.data[0])
        except HTTPException:
            raise
        except Exception as e:
            raise HTTPException(status_code=500, detail=str(e))

    def list_users(
        self,
        sector: Optional[str] = None,
        search: Optional[str] = None,
        approved: Optional[bool] = None,
        limit: int = 100,
        offset: int = 0
    ) -> List[UserResponse]:
        """List militares ordered by display_order; search matches name, war name or SARAM."""
        try:
            query = self.supabase.table("users").select("*")
            if sector:
                query = query.eq("sector", sector)
            if approved is not None:
                query = query.eq("approved", approved)
            result = query.order("display_order").execute()
            rows = result.data or []
            if search:
                term = search.strip().lower()
                rows = [
                    r for r in rows
                    if term in (r.get("name") or "").lower()
                    or term in (r.get("war_name") or "").lower()
                    or term in (r.get("saram") or "")
                ]
            return [UserResponse.from_row(r) for r in rows[offset:offset + limit]]
        except Exception as e:
            raise HTTPException(status_code=500, detail=str(e))

    def delete_user(self, user_id: str) -> bool:
        """Delete user profile and auth user"""
        try:
            self.get_user_row(user_id)
            self.supabase.table("webauthn_credentials")\
                .delete()\
                .eq("user_id", user_id)\
                .execute()
            result = self.supabase.table("users")\
                .delete()\
                .eq("id", user_id)\
                .execute()
            self.admin.auth.admin.delete_user(user_id)
            logger.info(f"User {user_id} deleted")
            return len(result.data) > 0
        except HTTPException:
            raise
        except Exception as e:
            raise HTTPException(status_code=500, detail=str(e))

    def set_approval(self, user_id: str, approved: bool) -> UserResponse:
        self.get_user_row(user_id)
        result = self.supabase.table("users")\
            .update({"approved": approved, "updated_at": datetime.utcnow().isoformat()})\
            .eq("id", user_id)\
            .execute()
        if not result.data:
            raise HTTPException(status_code=404, detail="User not found")
        logger.info(f"User {user_id} approval set to {approved}")
        return UserResponse.from_row(result.data[0])

    def reject_user(self, user_id: str) -> Optional[UserResponse]:
        """A pending registration is removed with its Auth account so the SARAM can register again;
        an approved militar only loses the approval. Returns None when the user was deleted."""
        row = self.get_user_row(user_id)
        if not row.get("approved"):
            self.delete_user(user_id)
            logger.info(f"Pending registration {user_id} refused")
            return None
        return self.set_approval(user_id, False)

    def set_permissions(self, user_id: str, data: UserPermissionsUpdate) -> UserResponse:
        """Assign a user function and custom permissions"""
        if data.function_id and data.function_id not in USER_FUNCTIONS:
            raise HTTPException(status_code=400, detail=f"Função desconhecida: {data.function_id}")
        unknown = unknown_permissions(data.custom_permissions)
        if unknown:
            raise HTTPException(status_code=400, detail=f"Permissões desconhecidas: {', '.join(unknown)}")
        self.get_user_row(user_id)
        result = self.supabase.table("users")\
            .update({
                "function_id": data.function_id,
                "custom_permissions": sorted(set(data.custom_permissions)),
                "updated_at": datetime.utcnow().isoformat()
            })\
            .eq("id", user_id)\
            .execute()
        if not result.data:
            raise HTTPException(status_code=404, detail="User not found")
        logger.info(f"User {user_id} permissions updated (function={data.function_id})")
        return UserResponse.from_row(result.data[0])

    def reorder_users(self, items: List[UserOrderItem]) -> int:
        """Persist display_order for each listed user; returns how many rows were updated."""
        updated = 0
        for item in items:
            try:
                result = self.supabase.table("users")\
                    .update({"display_order": item.display_order})\
                    .eq("id", item.id)\
                    .execute()
                if result.data:
                    updated += 1
            except Exception as e:
                logger.error(f"Error updating user order for {item.id}: {e}")
        return updated

    def force_password_reset(self, user_id: str) -> str:
        """Set a temporary password and require a new one at next login. Returns the temporary password."""
        self.get_user_row(user_id)
        temporary_password = secrets.token_urlsafe(9)
        try:
            self.admin.auth.admin.update_user_by_id(user_id, {"password": temporary_password})
        except Exception as e:
            raise HTTPException(status_code=500, detail=f"Failed to reset password: {str(e)}")
        self.supabase.table("users")\
            .update({
                "reset_password_at_login": True,
                "pending_password_reset": False,
                "password_status": "RESET"
            })\
            .eq("id", user_id)\
            .execute()
        logger.info(f"Password reset forced for user {user_id}")
        return temporary_password

    def set_signature_pin(self, user_id: str, pin: str) -> None:
        self.supabase.table("users")\
            .update({"signature_hash": get_pin_hash(pin), "updated_at": datetime.utcnow().isoformat()})\
            .eq("id", user_id)\
            .execute()
        logger.info(f"Signature PIN set for user {user_id}")
