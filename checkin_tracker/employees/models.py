# checkin_tracker/employees/models.py
from sqlalchemy import Column, Integer, String, ForeignKey

from checkin_tracker.database import Base

ROLE_EMPLOYEE = "employee"
ROLE_MANAGER = "manager"


class Employee(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(100), nullable=False)
    email = Column(String(150), nullable=False, unique=True)
    password_hash = Column(String(255), nullable=False)
    role = Column(String(20), nullable=False, default=ROLE_EMPLOYEE)   # employee / manager
    manager_id = Column(Integer, ForeignKey("users.id"), nullable=True)

    def __repr__(self):
        return f"<Employee id={self.id} name={self.name} role={self.role}>"
