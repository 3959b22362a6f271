# checkin_tracker/reports/router.py
from typing import Optional

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from checkin_tracker.auth.dependencies import Identity, require_role
from checkin_tracker.database import get_db
from checkin_tracker.reports.service import daily_summary, parse_report_date
from checkin_tracker.utils.date_helper import today_utc

router = APIRouter(prefix="/reports", tags=["reports"])


@router.get("/daily-summary")
def daily_summary_report(
    date: Optional[str] = None,
    employee_id: Optional[int] = None,
    db: Session = Depends(get_db),
    manager: Identity = Depends(require_role(["manager"])),
):
    day = parse_report_date(date, today_utc())
    return {"success": True, "data": daily_summary(db, manager.employee_id, day, employee_id)}
