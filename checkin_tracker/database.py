# checkin_tracker/database.py
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, declarative_base

from checkin_tracker import config


def make_engine(url: str = None):
    url = url or config.DATABASE_URL
    connect_args = {}
    if url.startswith("sqlite"):
        # requests are served from a thread pool; writers wait on the file lock
        connect_args = {"check_same_thread": False, "timeout": config.SQLITE_BUSY_TIMEOUT}
    return create_engine(url, echo=config.SQL_ECHO, connect_args=connect_args)


engine = make_engine()

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
Base = declarative_base()


def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def init_db(bind=None):
    # import models so they register on Base.metadata
    from checkin_tracker.employees import models as _employees  # noqa: F401
    from checkin_tracker.checkins import models as _checkins  # noqa: F401

    Base.metadata.create_all(bind=bind or engine)
