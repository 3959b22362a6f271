# checkin_tracker/auth/jwt_handler.py
# Uses python-jose to create/verify JWTs (compatible with dependencies.py)
from datetime import datetime, timedelta, timezone
from typing import Dict, Any, Optional

from jose import jwt, JWTError

from checkin_tracker import config

# the only claims a token may carry; never email, password hash or profile data
ALLOWED_CLAIMS = ("sub", "user_id", "role", "name")


def build_token_payload(user) -> Dict[str, Any]:
    return {
        "sub": str(user.id),
        "user_id": int(user.id),
        "role": user.role,
        "name": user.name,
    }


def create_access_token(payload: Dict[str, Any], expires_minutes: int = None) -> str:
    """
    Create a JWT token with an 'exp' claim.
    payload: a dict, e.g. {"sub": "4", "user_id": 4, "role": "employee", "name": "Ethan"}
    Claims outside ALLOWED_CLAIMS are dropped.
    """
    to_encode = {k: v for k, v in payload.items() if k in ALLOWED_CLAIMS}
    minutes = expires_minutes if expires_minutes is not None else config.ACCESS_TOKEN_EXPIRE_MINUTES
    to_encode["exp"] = datetime.now(timezone.utc) + timedelta(minutes=minutes)
    return jwt.encode(to_encode, config.JWT_SECRET, algorithm=config.ALGORITHM)


def decode_jwt(token: str) -> Optional[Dict[str, Any]]:
    """
    Decode and verify a JWT token. Returns payload dict on success, otherwise None.
    """
    try:
        return jwt.decode(token, config.JWT_SECRET, algorithms=[config.ALGORITHM])
    except JWTError:
        return None
