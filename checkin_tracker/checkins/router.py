# checkin_tracker/checkins/router.py
from typing import Optional
import logging

from fastapi import APIRouter, Depends, status
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from checkin_tracker.auth.dependencies import Identity, get_current_identity
from checkin_tracker.checkins.errors import InvalidInput, StorageUnavailable
from checkin_tracker.checkins.lifecycle import (
    CheckinLifecycleManager,
    validate_client_id,
    summarize_history,
)
from checkin_tracker.checkins.models import CheckinRecord, Client
from checkin_tracker.database import get_db
from checkin_tracker.schemas.checkin_schema import CheckinCreateSchema, ClientOut
from checkin_tracker.utils.date_helper import format_duration
from checkin_tracker.utils.geo import distance_in_meters

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/checkin", tags=["checkin"])


def get_lifecycle(db: Session = Depends(get_db)) -> CheckinLifecycleManager:
    return CheckinLifecycleManager(db)


def _record_out(record: CheckinRecord) -> dict:
    data = record.to_dict()
    data["duration"] = format_duration(record.checkin_time, record.checkout_time)
    return data


# -----------------------------
# Client sites
# -----------------------------
@router.get("/clients")
def list_clients(
    db: Session = Depends(get_db),
    identity: Identity = Depends(get_current_identity),
):
    try:
        clients = db.query(Client).order_by(Client.name).all()
    except SQLAlchemyError:
        logger.exception("Failed to list clients")
        raise StorageUnavailable()
    return {"success": True, "data": [ClientOut.model_validate(c).model_dump() for c in clients]}


# -----------------------------
# Check in
# -----------------------------
@router.post("", status_code=status.HTTP_201_CREATED)
def check_in(
    body: CheckinCreateSchema,
    db: Session = Depends(get_db),
    lifecycle: CheckinLifecycleManager = Depends(get_lifecycle),
    identity: Identity = Depends(get_current_identity),
):
    client_id = validate_client_id(body.client_id)
    try:
        client = db.get(Client, client_id)
    except SQLAlchemyError:
        logger.exception("Failed to load client %s", client_id)
        raise StorageUnavailable()
    if client is None:
        raise InvalidInput(f"Unknown client_id: {client_id}")

    distance = body.distance_from_client
    if (
        distance is None
        and client.latitude is not None
        and client.longitude is not None
        and -90 <= body.latitude <= 90
        and -180 <= body.longitude <= 180
    ):
        distance = distance_in_meters(body.latitude, body.longitude, client.latitude, client.longitude)

    record = lifecycle.start_checkin(
        identity.employee_id,
        client_id,
        body.latitude,
        body.longitude,
        distance_from_client=distance,
        notes=body.notes,
    )
    return {"success": True, "message": "Checked in successfully", "data": _record_out(record)}


# -----------------------------
# Check out
# -----------------------------
@router.put("/checkout")
def check_out(
    lifecycle: CheckinLifecycleManager = Depends(get_lifecycle),
    identity: Identity = Depends(get_current_identity),
):
    record = lifecycle.complete_checkout(identity.employee_id)
    return {"success": True, "message": "Checked out successfully", "data": _record_out(record)}


# -----------------------------
# Active check-in (null when not checked in)
# -----------------------------
@router.get("/active")
def active_checkin(
    lifecycle: CheckinLifecycleManager = Depends(get_lifecycle),
    identity: Identity = Depends(get_current_identity),
):
    record = lifecycle.get_active_checkin(identity.employee_id)
    return {"success": True, "data": _record_out(record) if record else None}


# -----------------------------
# History
# -----------------------------
@router.get("/history")
def checkin_history(
    start_date: Optional[str] = None,
    end_date: Optional[str] = None,
    lifecycle: CheckinLifecycleManager = Depends(get_lifecycle),
    identity: Identity = Depends(get_current_identity),
):
    records = lifecycle.list_history(identity.employee_id, start_date, end_date)
    return {
        "success": True,
        "data": [_record_out(r) for r in records],
        "summary": summarize_history(records),
    }
