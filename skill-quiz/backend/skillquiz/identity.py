"""Caller identity handed over by the upstream auth gateway.

Credentials are verified before requests reach this service; here the
identity is only read from headers and checked against attempt ownership.
"""

from dataclasses import dataclass
from typing import Optional

from fastapi import Header, HTTPException, status

ROLE_USER = "user"
ROLE_ADMIN = "admin"
_ROLES = (ROLE_USER, ROLE_ADMIN)


@dataclass(frozen=True)
class Caller:
    user_id: int
    role: str = ROLE_USER

    @property
    def is_admin(self) -> bool:
        return self.role == ROLE_ADMIN

    def owns(self, owner_id: int) -> bool:
        return self.user_id == owner_id

    def can_read(self, owner_id: int) -> bool:
        return self.owns(owner_id) or self.is_admin


def get_caller(
    x_user_id: Optional[str] = Header(default=None),
    x_user_role: Optional[str] = Header(default=None),
) -> Caller:
    try:
        user_id = int(x_user_id) if x_user_id is not None else 0
    except ValueError:
        user_id = 0
    if user_id <= 0:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Missing or invalid caller identity",
        )
    role = (x_user_role or ROLE_USER).strip().lower()
    if role not in _ROLES:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Unknown caller role",
        )
    return Caller(user_id=user_id, role=role)
