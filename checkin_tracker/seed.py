# checkin_tracker/seed.py
# Demo data: python -m checkin_tracker.seed
import logging

from sqlalchemy.exc import SQLAlchemyError
from werkzeug.security import generate_password_hash

from checkin_tracker.checkins.models import Client
from checkin_tracker.database import SessionLocal, init_db
from checkin_tracker.employees.models import Employee, ROLE_EMPLOYEE, ROLE_MANAGER

logger = logging.getLogger(__name__)

MANAGER = ("Amit Manager", "manager@example.com", "managerpass")
EMPLOYEES = [
    ("Rahul Field", "rahul@example.com", "rahulpass"),
    ("Priya Field", "priya@example.com", "priyapass"),
]
CLIENTS = [
    ("ABC Corp", "Connaught Place, New Delhi", 28.6315, 77.2167),
    ("XYZ Ltd", "Sector 18, Noida", 28.5706, 77.3219),
    ("Tech Solutions", "Cyber City, Gurugram", 28.4949, 77.0887),
]


def _get_or_create_user(db, name, email, password, role, manager_id=None):
    user = db.query(Employee).filter(Employee.email == email).first()
    if user:
        logger.info("Skipping (exists): %s", email)
        return user
    user = Employee(
        name=name,
        email=email,
        password_hash=generate_password_hash(password),
        role=role,
        manager_id=manager_id,
    )
    db.add(user)
    db.flush()
    logger.info("Inserted user: %s (%s)", email, role)
    return user


def seed(db):
    manager = _get_or_create_user(db, *MANAGER, role=ROLE_MANAGER)
    for name, email, password in EMPLOYEES:
        _get_or_create_user(db, name, email, password, role=ROLE_EMPLOYEE, manager_id=manager.id)

    for name, address, lat, lng in CLIENTS:
        if db.query(Client).filter(Client.name == name).first():
            continue
        db.add(Client(name=name, address=address, latitude=lat, longitude=lng))
        logger.info("Inserted client: %s", name)
    db.commit()


def main():
    logging.basicConfig(level=logging.INFO)
    init_db()
    db = SessionLocal()
    try:
        seed(db)
    except SQLAlchemyError:
        db.rollback()
        logger.exception("Seeding failed")
        raise
    finally:
        db.close()
    logger.info("Done.")


if __name__ == "__main__":
    main()
