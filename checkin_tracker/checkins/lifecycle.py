"""
Check-in lifecycle: the rules that keep "at most one open check-in per
employee" true no matter how requests interleave.

Per employee the state machine is::

    NoActive --start_checkin--> HasActive --complete_checkout--> NoActive

The exclusion itself lives in the database (partial unique index
``uq_checkins_one_open_per_employee``); the pre-check in start_checkin only
produces a friendlier error on the common path. Nothing is cached between
calls, every decision is re-derived from the store.
"""

import logging
import math
from datetime import date, datetime, timedelta
from typing import Callable, List, Optional, Union

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from checkin_tracker.checkins.errors import (
    AlreadyCheckedIn,
    InvalidInput,
    NoActiveCheckin,
    StorageUnavailable,
)
from checkin_tracker.checkins.models import (
    CheckinRecord,
    OPEN_CHECKIN_INDEX,
    STATUS_CLOSED,
    STATUS_OPEN,
)
from checkin_tracker.utils.date_helper import utcnow

logger = logging.getLogger(__name__)

DateLike = Union[date, str, None]


# -----------------------------
# Input validation
# -----------------------------
def validate_client_id(client_id) -> int:
    if client_id is None or isinstance(client_id, bool):
        raise InvalidInput("client_id is required")
    if isinstance(client_id, str):
        client_id = client_id.strip()
        if not client_id:
            raise InvalidInput("client_id is required")
        # isdecimal, not isdigit: superscript digits pass isdigit but not int()
        if not client_id.isdecimal():
            raise InvalidInput(f"Invalid client_id: {client_id!r}")
        try:
            client_id = int(client_id)
        except ValueError:
            raise InvalidInput(f"Invalid client_id: {client_id!r}")
    if not isinstance(client_id, int) or client_id <= 0:
        raise InvalidInput(f"Invalid client_id: {client_id!r}")
    return client_id


def _validate_number(name: str, value, low: float = None, high: float = None, required: bool = True):
    if value is None:
        if required:
            raise InvalidInput(f"{name} is required")
        return None
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise InvalidInput(f"{name} must be a number")
    try:
        value = float(value)
    except OverflowError:
        # ints too large for a float, e.g. a 400-digit JSON literal
        raise InvalidInput(f"{name} must be a finite number")
    if not math.isfinite(value):
        raise InvalidInput(f"{name} must be a finite number")
    if (low is not None and value < low) or (high is not None and value > high):
        raise InvalidInput(f"{name} must be between {low} and {high}")
    return value


def _parse_date(name: str, value: DateLike) -> Optional[date]:
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str):
        try:
            return date.fromisoformat(value.strip())
        except ValueError:
            raise InvalidInput(f"Invalid {name} (YYYY-MM-DD required)")
    raise InvalidInput(f"Invalid {name} (YYYY-MM-DD required)")


def validate_date_range(start_date: DateLike, end_date: DateLike, today: date):
    """
    Return (start, end) as dates, or (None, None) when no filter is requested.

    Both bounds or neither; end must not precede start; neither may be later
    than ``today``.
    """
    start = _parse_date("start_date", start_date)
    end = _parse_date("end_date", end_date)

    if start is None and end is None:
        return None, None
    if start is None or end is None:
        raise InvalidInput("Both start_date and end_date are required to filter history")
    if end < start:
        raise InvalidInput("end_date cannot be before start_date")
    if start > today or end > today:
        raise InvalidInput("Dates cannot be in the future")
    return start, end


def violates_open_checkin_index(exc: IntegrityError) -> bool:
    """True when an insert was rejected by the one-open-check-in index."""
    orig = exc.orig
    diag = getattr(orig, "diag", None)
    constraint = getattr(diag, "constraint_name", None)
    if constraint:
        return constraint == OPEN_CHECKIN_INDEX
    message = str(orig)
    # PostgreSQL names the index, SQLite names the indexed column
    return OPEN_CHECKIN_INDEX in message or "UNIQUE constraint failed: checkins.employee_id" in message


# -----------------------------
# Lifecycle manager
# -----------------------------
class CheckinLifecycleManager:
    def __init__(self, db: Session, clock: Callable[[], datetime] = utcnow):
        self.db = db
        self.clock = clock

    def _active_query(self, employee_id: int):
        return self.db.query(CheckinRecord).filter(
            CheckinRecord.employee_id == employee_id,
            CheckinRecord.status == STATUS_OPEN,
        )

    def get_active_checkin(self, employee_id: int) -> Optional[CheckinRecord]:
        """Return the open record, or None. Absence is a normal state."""
        try:
            return self._active_query(employee_id).first()
        except SQLAlchemyError:
            logger.exception("Failed to load active check-in for employee %s", employee_id)
            raise StorageUnavailable()

    def start_checkin(
        self,
        employee_id: int,
        client_id,
        latitude,
        longitude,
        distance_from_client=None,
        notes: Optional[str] = None,
    ) -> CheckinRecord:
        client_id = validate_client_id(client_id)
        latitude = _validate_number("latitude", latitude, -90, 90)
        longitude = _validate_number("longitude", longitude, -180, 180)
        distance_from_client = _validate_number(
            "distance_from_client", distance_from_client, low=0, required=False
        )
        if notes is not None:
            notes = str(notes).strip() or None

        if self.get_active_checkin(employee_id) is not None:
            logger.warning("Employee %s tried to check in while already checked in", employee_id)
            raise AlreadyCheckedIn()

        now = self.clock()
        record = CheckinRecord(
            employee_id=employee_id,
            client_id=client_id,
            status=STATUS_OPEN,
            checkin_time=now,
            latitude=latitude,
            longitude=longitude,
            distance_from_client=distance_from_client,
            notes=notes,
        )
        try:
            self.db.add(record)
            self.db.flush()
            record_id = record.id
            self.db.commit()
        except IntegrityError as exc:
            self.db.rollback()
            if violates_open_checkin_index(exc):
                logger.warning("Concurrent check-in rejected by constraint for employee %s", employee_id)
                raise AlreadyCheckedIn()
            logger.exception("Check-in insert violated a constraint for employee %s", employee_id)
            raise InvalidInput("Check-in references an unknown employee or client")
        except SQLAlchemyError:
            self.db.rollback()
            logger.exception("Failed to store check-in for employee %s", employee_id)
            raise StorageUnavailable()

        logger.info(
            "Employee %s checked in at client %s (checkin id=%s, %s UTC)",
            employee_id, client_id, record_id, now.isoformat(),
        )
        return self._reload(record_id, "Check-in")

    def complete_checkout(self, employee_id: int) -> CheckinRecord:
        """
        Close the employee's open check-in with one guarded UPDATE.

        The affected row count decides the outcome: a concurrent duplicate
        checkout matches zero rows and gets NoActiveCheckin.
        """
        now = self.clock()
        try:
            record_id = self.db.query(CheckinRecord.id).filter(
                CheckinRecord.employee_id == employee_id,
                CheckinRecord.status == STATUS_OPEN,
            ).scalar()
            if record_id is None:
                raise NoActiveCheckin()

            updated = (
                self.db.query(CheckinRecord)
                .filter(
                    CheckinRecord.id == record_id,
                    CheckinRecord.employee_id == employee_id,
                    CheckinRecord.status == STATUS_OPEN,
                )
                .update(
                    {CheckinRecord.status: STATUS_CLOSED, CheckinRecord.checkout_time: now},
                    synchronize_session=False,
                )
            )
            if updated != 1:
                raise NoActiveCheckin()
            self.db.commit()
        except NoActiveCheckin:
            self.db.rollback()
            logger.info("Employee %s has no active check-in to close", employee_id)
            raise
        except SQLAlchemyError:
            self.db.rollback()
            logger.exception("Failed to check out employee %s", employee_id)
            raise StorageUnavailable()

        logger.info(
            "Employee %s checked out (checkin id=%s, %s UTC)",
            employee_id, record_id, now.isoformat(),
        )
        return self._reload(record_id, "Checkout")

    def _reload(self, record_id: int, action: str) -> CheckinRecord:
        """Read back a record whose change is already committed."""
        try:
            return self.db.get(CheckinRecord, record_id, populate_existing=True)
        except SQLAlchemyError:
            self.db.rollback()
            logger.exception("%s of check-in %s was committed but reading it back failed", action, record_id)
            raise StorageUnavailable(
                f"{action} was saved, but the updated record could not be loaded. Please refresh."
            )

    def list_history(
        self,
        employee_id: int,
        start_date: DateLike = None,
        end_date: DateLike = None,
    ) -> List[CheckinRecord]:
        start, end = validate_date_range(start_date, end_date, today=self.clock().date())

        q = self.db.query(CheckinRecord).filter(CheckinRecord.employee_id == employee_id)
        if start is not None:
            # half-open [start 00:00, end+1 00:00) so the whole end day is included
            q = q.filter(
                CheckinRecord.checkin_time >= datetime.combine(start, datetime.min.time()),
                CheckinRecord.checkin_time < datetime.combine(end + timedelta(days=1), datetime.min.time()),
            )
        try:
            return q.order_by(CheckinRecord.checkin_time.desc(), CheckinRecord.id.desc()).all()
        except SQLAlchemyError:
            logger.exception("Failed to load check-in history for employee %s", employee_id)
            raise StorageUnavailable()


def worked_minutes(record: CheckinRecord) -> float:
    """Minutes between check-in and checkout; open check-ins count zero."""
    if record.checkin_time is None or record.checkout_time is None:
        return 0.0
    secs = (record.checkout_time - record.checkin_time).total_seconds()
    return max(secs, 0) / 60.0


def summarize_history(records: List[CheckinRecord]) -> dict:
    completed = sum(1 for r in records if r.status == STATUS_CLOSED)
    return {
        "total_checkins": len(records),
        "completed": completed,
        "active": len(records) - completed,
        "total_minutes": round(sum(worked_minutes(r) for r in records), 2),
    }
