from dataclasses import dataclass

from fastapi import Depends, HTTPException

from app.core.auth_utils import decode_token
from app.models.enums import Actor


@dataclass
class Principal:
    id: str
    role: str

    @property
    def is_admin(self) -> bool:
        return self.role == "admin"

    @property
    def actor(self) -> Actor:
        return Actor.ADMIN if self.is_admin else Actor.CUSTOMER


def get_current_principal(token: str) -> Principal:
    payload = decode_token(token)
    if payload["role"] not in ("user", "admin"):
        raise HTTPException(status_code=401, detail="Invalid role")
    return Principal(id=str(payload["sub"]), role=payload["role"])


def require_user(principal: Principal = Depends(get_current_principal)) -> Principal:
    if principal.role != "user":
        raise HTTPException(status_code=403, detail="Only customers can book bikes")
    return principal


def require_admin(principal: Principal = Depends(get_current_principal)) -> Principal:
    if not principal.is_admin:
        raise HTTPException(status_code=403, detail="Admins only")
    return principal
