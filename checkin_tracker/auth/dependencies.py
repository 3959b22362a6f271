# checkin_tracker/auth/dependencies.py
from dataclasses import dataclass
from typing import Callable, Iterable, Optional
import logging

from fastapi import Depends, Header

from checkin_tracker.auth.jwt_handler import decode_jwt
from checkin_tracker.checkins.errors import Forbidden, Unauthenticated

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Identity:
    """Request-scoped caller identity. Role comes from the token, never from the id."""
    employee_id: int
    role: str
    name: str = ""

    @property
    def is_manager(self) -> bool:
        return self.role == "manager"


# -------------------------------------------
# Helper: Extract Bearer token safely
# -------------------------------------------
def _extract_bearer(auth_header: Optional[str]) -> Optional[str]:
    """
    Extract bearer token from Authorization header.
    Returns None if header missing or malformed.
    """
    if not auth_header:
        return None

    parts = auth_header.split()
    if len(parts) != 2 or parts[0].lower() != "bearer":
        return None

    return parts[1]


def identity_from_payload(payload: Optional[dict]) -> Identity:
    if not payload:
        raise Unauthenticated("Invalid or expired token")

    raw_id = payload.get("user_id") or payload.get("sub")
    try:
        employee_id = int(raw_id)
    except (TypeError, ValueError):
        logger.warning("Token subject missing or invalid: keys=%s", list(payload.keys()))
        raise Unauthenticated("Token subject missing")

    role = payload.get("role")
    if not role:
        raise Unauthenticated("Token role missing")

    return Identity(employee_id=employee_id, role=str(role).lower(), name=payload.get("name") or "")


# -------------------------------------------
# Strict JWT-only dependency (API use)
# -------------------------------------------
def get_current_identity(authorization: Optional[str] = Header(None)) -> Identity:
    token = _extract_bearer(authorization)
    if not token:
        raise Unauthenticated("Missing auth token")

    identity = identity_from_payload(decode_jwt(token))
    logger.debug("Authenticated employee_id=%s role=%s", identity.employee_id, identity.role)
    return identity


# -------------------------------------------
# Role check
# Usage: Depends(require_role(["manager"]))
# -------------------------------------------
def require_role(allowed_roles: Iterable[str]) -> Callable:
    allowed = {str(r).lower() for r in allowed_roles}

    def dependency(identity: Identity = Depends(get_current_identity)) -> Identity:
        if identity.role not in allowed:
            raise Forbidden()
        return identity

    return dependency
