# checkin_tracker/dashboard_router.py
from datetime import timedelta
from typing import Any, Dict
import logging

from fastapi import APIRouter, Depends
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from checkin_tracker.auth.dependencies import Identity, get_current_identity
from checkin_tracker.checkins.errors import StorageUnavailable
from checkin_tracker.checkins.models import CheckinRecord, STATUS_OPEN
from checkin_tracker.database import get_db
from checkin_tracker.employees.models import Employee
from checkin_tracker.reports.service import day_bounds
from checkin_tracker.utils.date_helper import today_utc

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/dashboard", tags=["dashboard"])

RECENT_LIMIT = 5


def _manager_stats(db: Session, identity: Identity) -> Dict[str, Any]:
    start, end = day_bounds(today_utc())
    team = (
        db.query(Employee)
        .filter(Employee.manager_id == identity.employee_id)
        .order_by(Employee.name)
        .all()
    )
    team_ids = [e.id for e in team]
    if not team_ids:
        return {"team_members": [], "today_checkins": 0, "active_now": 0, "recent_checkins": []}

    today_checkins = (
        db.query(CheckinRecord)
        .filter(
            CheckinRecord.employee_id.in_(team_ids),
            CheckinRecord.checkin_time >= start,
            CheckinRecord.checkin_time < end,
        )
        .count()
    )
    active_now = (
        db.query(CheckinRecord)
        .filter(CheckinRecord.employee_id.in_(team_ids), CheckinRecord.status == STATUS_OPEN)
        .count()
    )
    recent = (
        db.query(CheckinRecord)
        .filter(CheckinRecord.employee_id.in_(team_ids))
        .order_by(CheckinRecord.checkin_time.desc())
        .limit(RECENT_LIMIT)
        .all()
    )
    names = {e.id: e.name for e in team}
    recent_out = []
    for r in recent:
        row = r.to_dict()
        row["employee_name"] = names.get(r.employee_id)
        recent_out.append(row)

    return {
        "team_members": [{"id": e.id, "name": e.name, "email": e.email} for e in team],
        "today_checkins": today_checkins,
        "active_now": active_now,
        "recent_checkins": recent_out,
    }


def _employee_stats(db: Session, identity: Identity) -> Dict[str, Any]:
    today = today_utc()
    start, end = day_bounds(today)
    week_start, _ = day_bounds(today - timedelta(days=6))
    mine = db.query(CheckinRecord).filter(CheckinRecord.employee_id == identity.employee_id)

    active = mine.filter(CheckinRecord.status == STATUS_OPEN).first()
    recent = mine.order_by(CheckinRecord.checkin_time.desc()).limit(RECENT_LIMIT).all()
    return {
        "today_checkins": mine.filter(
            CheckinRecord.checkin_time >= start, CheckinRecord.checkin_time < end
        ).count(),
        "week_checkins": mine.filter(
            CheckinRecord.checkin_time >= week_start, CheckinRecord.checkin_time < end
        ).count(),
        "active_checkin": active.to_dict() if active else None,
        "recent_checkins": [r.to_dict() for r in recent],
    }


@router.get("/stats")
def dashboard_stats(
    db: Session = Depends(get_db),
    identity: Identity = Depends(get_current_identity),
):
    try:
        if identity.is_manager:
            data = _manager_stats(db, identity)
        else:
            data = _employee_stats(db, identity)
    except SQLAlchemyError:
        logger.exception("Dashboard stats failed for employee %s", identity.employee_id)
        raise StorageUnavailable()
    return {"success": True, "data": data}
