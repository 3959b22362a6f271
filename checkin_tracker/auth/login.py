# checkin_tracker/auth/login.py
import logging

from fastapi import APIRouter, Depends
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session
from werkzeug.security import check_password_hash

from checkin_tracker.auth.dependencies import Identity, get_current_identity
from checkin_tracker.auth.jwt_handler import build_token_payload, create_access_token
from checkin_tracker.checkins.errors import StorageUnavailable, Unauthenticated
from checkin_tracker.database import get_db
from checkin_tracker.employees.models import Employee
from checkin_tracker.schemas.auth_schema import LoginRequest

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["auth"])


def _public_user(user: Employee) -> dict:
    return {"id": user.id, "name": user.name, "email": user.email, "role": user.role}


@router.post("/login")
def login_post(body: LoginRequest, db: Session = Depends(get_db)):
    email = (body.email or "").strip().lower()

    try:
        user = db.query(Employee).filter(Employee.email == email).first()
    except SQLAlchemyError:
        logger.exception("Login lookup failed for %s", email)
        raise StorageUnavailable()

    if not user or not check_password_hash(user.password_hash, body.password):
        logger.info("Failed login for %s", email)
        raise Unauthenticated("Invalid email or password.")

    token = create_access_token(build_token_payload(user))
    logger.info("User %s logged in (role=%s)", user.id, user.role)
    return {"success": True, "data": {"token": token, "user": _public_user(user)}}


@router.get("/me")
def read_me(identity: Identity = Depends(get_current_identity)):
    return {
        "success": True,
        "data": {"id": identity.employee_id, "name": identity.name, "role": identity.role},
    }
