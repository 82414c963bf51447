"""Role-based authorization helpers."""

from __future__ import annotations

from trainhub.core.enums import Actor
from trainhub.core.exceptions import AuthorizationError

ROLE_ADMIN = "admin"
ROLE_COMPANY = "company"
ROLE_TRAINER = "trainer"

# Scope strings are kept explicit for endpoint-level declarations.
ROLE_SCOPES: dict[str, set[str]] = {
    ROLE_ADMIN: {
        "*",
    },
    ROLE_COMPANY: {
        "trainings.read",
        "trainings.write",
        "requests.read",
        "requests.create",
        "requests.transition",
        "invoices.read",
        "invoices.settle",
    },
    ROLE_TRAINER: {
        "trainings.read",
        "requests.read",
        "requests.transition",
        "invoices.read",
    },
}

ROLE_ACTORS: dict[str, Actor] = {
    ROLE_COMPANY: Actor.COMPANY,
    ROLE_TRAINER: Actor.TRAINER,
}


def get_scopes_for_role(role: str) -> set[str]:
    """Return scopes granted to a role."""
    return ROLE_SCOPES.get(role.lower(), set())


def has_scopes(role: str, required_scopes: list[str] | set[str] | tuple[str, ...]) -> bool:
    """Check if role includes every required scope."""
    granted = get_scopes_for_role(role)
    if "*" in granted:
        return True
    return set(required_scopes).issubset(granted)


def require_scopes(role: str, required_scopes: list[str] | set[str] | tuple[str, ...]) -> None:
    """Raise when a role lacks required scopes."""
    if has_scopes(role=role, required_scopes=required_scopes):
        return
    missing = sorted(set(required_scopes) - get_scopes_for_role(role))
    raise AuthorizationError(f"Missing required scopes: {', '.join(missing)}")


def actor_for_role(role: str) -> Actor:
    """Negotiation party a role speaks for; admins are not a party."""
    actor = ROLE_ACTORS.get(role.lower())
    if actor is None:
        raise AuthorizationError(f"Role '{role}' cannot take part in a negotiation.")
    return actor
