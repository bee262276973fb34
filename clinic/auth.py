import logging
from dataclasses import dataclass
from typing import Optional

from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from .errors import AuthenticationError, AuthorizationError
from .models import Role
from .security import decode_access_token

logger = logging.getLogger(__name__)

security = HTTPBearer(auto_error=False)


@dataclass(frozen=True)
class Identity:
    """Authenticated caller, as carried by the access token"""

    id: int
    email: str
    name: str
    role: Role


# Which roles may invoke each operation. Operations missing here are public.
OPERATION_ROLES: dict[str, frozenset[Role]] = {
    "add_doctor": frozenset({Role.ADMIN}),
    "admin_queue_monitor": frozenset({Role.ADMIN}),
    "patient_count": frozenset({Role.ADMIN}),
    "book_appointment": frozenset({Role.PATIENT}),
    "cancel_appointment": frozenset({Role.PATIENT}),
    "my_appointments": frozenset({Role.PATIENT}),
    "my_turn": frozenset({Role.PATIENT}),
    "schedule_walk_in": frozenset({Role.STAFF}),
    "next_in_queue": frozenset({Role.STAFF}),
    "doctor_queue": frozenset({Role.DOCTOR}),
    "current_patient": frozenset({Role.DOCTOR}),
    "deny_service": frozenset({Role.DOCTOR}),
    "complete_and_advance": frozenset({Role.DOCTOR}),
    "subscribe_notifications": frozenset(Role),
}


def is_permitted(role: Role, operation: str) -> bool:
    allowed = OPERATION_ROLES.get(operation)
    if allowed is None:
        return True
    return role in allowed


def identity_from_token(token: Optional[str]) -> Identity:
    """Verify a bearer token and turn its claims into an Identity"""
    if not token:
        raise AuthenticationError("Authentication failed: No token provided.")

    payload = decode_access_token(token)
    if not payload:
        raise AuthenticationError("Authentication failed: Invalid or expired token.")

    try:
        return Identity(
            id=int(payload["sub"]),
            email=payload.get("email", ""),
            name=payload.get("name", ""),
            role=Role(payload["role"]),
        )
    except (KeyError, ValueError) as e:
        logger.warning(f"⚠️ Token carries unusable claims: {e}")
        raise AuthenticationError("Authentication failed: Invalid token claims.") from e


async def get_current_identity(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
) -> Identity:
    token = credentials.credentials if credentials else None
    identity = identity_from_token(token)
    logger.debug(f"✅ Authenticated {identity.email} as {identity.role.value}")
    return identity


def require_operation(operation: str):
    """
    Create a dependency that authenticates the caller and checks the role policy

    Example usage:
        @router.put("/complete-current-patient")
        async def complete(identity: Identity = Depends(require_operation("complete_and_advance"))):
            ...
    """

    async def role_gate(identity: Identity = Depends(get_current_identity)) -> Identity:
        if not is_permitted(identity.role, operation):
            logger.warning(
                f"🚫 {identity.email} ({identity.role.value}) denied access to {operation}"
            )
            raise AuthorizationError(
                f"Authorization failed: Access denied for role '{identity.role.value}'."
            )
        return identity

    return role_gate
