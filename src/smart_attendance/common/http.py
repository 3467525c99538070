from __future__ import annotations

from functools import wraps
from typing import Any, Callable

from flask import g, request

from ..access.gate import Caller
from ..core.exceptions import AuthenticationError
from ..users.tokens import TokenSigner


def make_login_required(signer: TokenSigner) -> Callable:
    """Decorator factory: decode the bearer token into ``g.caller``."""

    def login_required(view):
        @wraps(view)
        def wrapper(*args, **kwargs):
            scheme, _, token = request.headers.get("Authorization", "").partition(" ")
            if scheme.lower() != "bearer" or not token.strip():
                raise AuthenticationError("Access token required")
            g.caller = signer.decode(token.strip())
            return view(*args, **kwargs)

        return wrapper

    return login_required


def current_caller() -> Caller:
    return g.caller


def json_body() -> dict[str, Any]:
    data = request.get_json(silent=True)
    return data if isinstance(data, dict) else {}
