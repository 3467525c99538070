from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Callable

import jwt

from ..access.gate import Caller
from ..core.constants import DEFAULT_TOKEN_TTL_HOURS
from ..core.enums import Role
from ..core.exceptions import AuthenticationError
from .model import User


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class TokenSigner:
    """Issues and verifies HS256 bearer tokens carrying the caller's scope."""

    algorithm = "HS256"

    def __init__(
        self,
        secret: str,
        *,
        ttl_hours: int = DEFAULT_TOKEN_TTL_HOURS,
        clock: Callable[[], datetime] = _utcnow,
    ):
        if not secret:
            raise ValueError("Token secret is not configured")
        self._secret = secret
        self._ttl = timedelta(hours=int(ttl_hours))
        self._clock = clock

    def issue(self, user: User) -> str:
        now = self._clock()
        payload = {
            "sub": user.user_id,
            "role": user.role.value,
            "name": user.name,
            "email": user.email,
            "department": user.department,
            "class_name": user.class_name,
            "iat": now,
            "exp": now + self._ttl,
        }
        return jwt.encode(payload, self._secret, algorithm=self.algorithm)

    def decode(self, token: str) -> Caller:
        try:
            data = jwt.decode(token, self._secret, algorithms=[self.algorithm])
        except jwt.ExpiredSignatureError:
            raise AuthenticationError("Token has expired")
        except jwt.InvalidTokenError:
            raise AuthenticationError("Invalid token")

        try:
            role = Role(data.get("role"))
        except ValueError:
            raise AuthenticationError("Invalid token")

        return Caller(
            user_id=str(data["sub"]),
            role=role,
            name=data.get("name") or "",
            email=data.get("email") or "",
            department=data.get("department"),
            class_name=data.get("class_name"),
        )
