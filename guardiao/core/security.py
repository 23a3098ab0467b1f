"""
Signature PIN hashing. Militares sign attendance sheets, cautela handovers and
mission orders with a PIN whose bcrypt hash is stored in users.signature_hash.
"""
from typing import Optional

import bcrypt
from fastapi import HTTPException


def get_pin_hash(pin: str) -> str:
    """Generate a bcrypt hash for a signature PIN."""
    salt = bcrypt.gensalt(rounds=12)
    hashed = bcrypt.hashpw(pin.encode("utf-8"), salt)
    return hashed.decode("utf-8")


def verify_pin(plain_pin: str, hashed_pin: Optional[str]) -> bool:
    """Verify a PIN against a bcrypt hash. Missing or malformed hashes never verify."""
    if not plain_pin or not hashed_pin:
        return False
    if isinstance(hashed_pin, str):
        hashed_pin = hashed_pin.encode("utf-8")
    try:
        return bcrypt.checkpw(plain_pin.encode("utf-8"), hashed_pin)
    except ValueError:
        return False


def require_valid_signature(signer: dict, pin: str) -> None:
    """Raise 400 when the signer never registered a PIN, 401 when the PIN does not match."""
    if not signer.get("signature_hash"):
        raise HTTPException(
            status_code=400,
            detail="Militar sem PIN de assinatura cadastrado"
        )
    if not verify_pin(pin, signer["signature_hash"]):
        raise HTTPException(status_code=401, detail="PIN de assinatura incorreto")


def signer_label(user: dict) -> str:
    """'RANK WARNAME' label used in audit fields (autorizado_por, entregue_por...)."""
    name = user.get("war_name") or user.get("name") or ""
    return f"{user.get('rank') or ''} {name}".strip()
