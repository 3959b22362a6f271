# checkin_tracker/checkins/models.py

from sqlalchemy import Column, Integer, String, Float, DateTime, Text, ForeignKey, Index, text
from sqlalchemy.orm import relationship

from checkin_tracker.database import Base

STATUS_OPEN = "open"
STATUS_CLOSED = "closed"

OPEN_CHECKIN_INDEX = "uq_checkins_one_open_per_employee"

# "YYYY-MM-DD HH:MM:SS", always UTC, no offset marker
TIMESTAMP_FORMAT = "%Y-%m-%d %H:%M:%S"


class Client(Base):
    __tablename__ = "clients"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(150), nullable=False)
    address = Column(String(255), nullable=True)
    latitude = Column(Float, nullable=True)
    longitude = Column(Float, nullable=True)

    def __repr__(self):
        return f"<Client id={self.id} name={self.name}>"


class CheckinRecord(Base):
    __tablename__ = "checkins"
    __table_args__ = (
        # at most one open check-in per employee
        Index(
            OPEN_CHECKIN_INDEX,
            "employee_id",
            unique=True,
            sqlite_where=text("status = 'open'"),
            postgresql_where=text("status = 'open'"),
        ),
    )

    id = Column(Integer, primary_key=True, index=True)
    employee_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    client_id = Column(Integer, ForeignKey("clients.id"), nullable=False)
    status = Column(String(10), nullable=False, default=STATUS_OPEN)   # open / closed
    checkin_time = Column(DateTime, nullable=False)     # naive UTC
    checkout_time = Column(DateTime, nullable=True)     # naive UTC
    latitude = Column(Float, nullable=False)
    longitude = Column(Float, nullable=False)
    distance_from_client = Column(Float, nullable=True)  # meters, display only
    notes = Column(Text, nullable=True)

    client = relationship("Client")

    def to_dict(self):
        client = self.client
        return {
            "id": self.id,
            "employee_id": self.employee_id,
            "client_id": self.client_id,
            "client_name": client.name if client else None,
            "client_lat": client.latitude if client else None,
            "client_lng": client.longitude if client else None,
            "status": self.status,
            "checkin_time": format_timestamp(self.checkin_time),
            "checkout_time": format_timestamp(self.checkout_time),
            "latitude": self.latitude,
            "longitude": self.longitude,
            "distance_from_client": self.distance_from_client,
            "notes": self.notes,
        }

    def __repr__(self):
        return f"<CheckinRecord id={self.id} employee_id={self.employee_id} status={self.status}>"


def format_timestamp(value):
    if value is None:
        return None
    return value.strftime(TIMESTAMP_FORMAT)
