"""Dependency providers for API handlers and background workers."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from trainhub.auth.jwt import ACCESS_TOKEN_USE, decode_jwt
from trainhub.auth.rbac import ROLE_ADMIN, ROLE_SCOPES
from trainhub.core.config import Config, get_config
from trainhub.core.exceptions import AuthenticationError


@dataclass(frozen=True)
class CurrentUser:
    user_id: int
    role: str
    party_id: int | None
    claims: dict[str, Any]

    @property
    def is_admin(self) -> bool:
        return self.role == ROLE_ADMIN


def get_settings() -> Config:
    """Return validated application configuration."""
    return get_config()


def get_current_user(token: str, settings: Config | None = None) -> CurrentUser:
    """Resolve the caller from a bearer token."""
    cfg = settings or get_settings()
    claims = decode_jwt(token=token, secret=cfg.JWT_SECRET)
    if claims.get("token_use") != ACCESS_TOKEN_USE:
        raise AuthenticationError("Token is not an access token.")

    try:
        role = str(claims["role"]).lower()
        party_id = claims.get("party_id")
        user = CurrentUser(
            user_id=int(claims["sub"]),
            role=role,
            party_id=int(party_id) if party_id is not None else None,
            claims=claims,
        )
    except (KeyError, TypeError, ValueError) as exc:
        raise AuthenticationError("Invalid auth claims.") from exc

    if user.role not in ROLE_SCOPES:
        raise AuthenticationError(f"Unknown role: {user.role}")
    if not user.is_admin and user.party_id is None:
        raise AuthenticationError(f"A {user.role} token must name its party.")
    return user
