# checkin_tracker/reports/service.py
from datetime import date, datetime, timedelta
from typing import Any, Dict, List, Optional
import logging

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from checkin_tracker.checkins.errors import InvalidInput, StorageUnavailable
from checkin_tracker.checkins.lifecycle import worked_minutes
from checkin_tracker.checkins.models import CheckinRecord
from checkin_tracker.employees.models import Employee
from checkin_tracker.utils.date_helper import format_minutes

logger = logging.getLogger(__name__)


def parse_report_date(value: Optional[str], today: date) -> date:
    if not value:
        raise InvalidInput("Invalid or missing date (YYYY-MM-DD required)")
    try:
        day = date.fromisoformat(value.strip())
    except ValueError:
        raise InvalidInput("Invalid or missing date (YYYY-MM-DD required)")
    if day > today:
        raise InvalidInput("Date cannot be in the future")
    return day


def day_bounds(day: date):
    start = datetime.combine(day, datetime.min.time())
    return start, start + timedelta(days=1)


def empty_team_stats() -> Dict[str, Any]:
    return {"total_employees": 0, "total_checkins": 0, "total_minutes": 0, "total_clients": 0}


def daily_summary(db: Session, manager_id: int, day: date, employee_id: Optional[int] = None) -> Dict[str, Any]:
    """
    Per team member who checked in on ``day`` (UTC): check-in count, distinct
    clients and minutes worked. Members with no check-ins that day are left out,
    so a quiet day yields ``employees == []`` and all-zero team stats.
    """
    start, end = day_bounds(day)
    try:
        q = (
            db.query(Employee, CheckinRecord)
            .join(CheckinRecord, CheckinRecord.employee_id == Employee.id)
            .filter(
                Employee.manager_id == manager_id,
                CheckinRecord.checkin_time >= start,
                CheckinRecord.checkin_time < end,
            )
        )
        if employee_id is not None:
            q = q.filter(Employee.id == employee_id)
        rows = q.order_by(Employee.name, CheckinRecord.checkin_time).all()
    except SQLAlchemyError:
        logger.exception("Daily summary query failed for manager %s on %s", manager_id, day)
        raise StorageUnavailable()

    per_employee: Dict[int, Dict[str, Any]] = {}
    for emp, rec in rows:
        entry = per_employee.setdefault(emp.id, {
            "employee_id": emp.id,
            "employee_name": emp.name,
            "total_checkins": 0,
            "clients": set(),
            "minutes_worked": 0.0,
        })
        entry["total_checkins"] += 1
        entry["clients"].add(rec.client_id)
        entry["minutes_worked"] += worked_minutes(rec)

    employees: List[Dict[str, Any]] = []
    team_stats = empty_team_stats()
    for entry in per_employee.values():
        minutes = round(entry.pop("minutes_worked"), 2)
        clients = entry.pop("clients")
        entry["clients_visited"] = len(clients)
        entry["minutes_worked"] = minutes
        entry["time_worked"] = format_minutes(minutes)
        employees.append(entry)

        team_stats["total_employees"] += 1
        team_stats["total_checkins"] += entry["total_checkins"]
        team_stats["total_minutes"] = round(team_stats["total_minutes"] + minutes, 2)
        team_stats["total_clients"] += entry["clients_visited"]

    return {"date": day.isoformat(), "employees": employees, "team_stats": team_stats}
