# checkin_tracker/config.py
import os
import pathlib

from dotenv import load_dotenv, find_dotenv

# project root (one level above the package)
ROOT = pathlib.Path(__file__).resolve().parent.parent

env_path = ROOT / ".env"
if not env_path.exists():
    env_path = find_dotenv()

# existing environment variables win over .env values
load_dotenv(env_path)


def _as_bool(value, default=False):
    if value is None:
        return default
    return str(value).strip().lower() in ("1", "true", "yes", "on")


DATABASE_URL = os.getenv("DATABASE_URL", f"sqlite:///{ROOT / 'checkin_tracker.db'}")
SQL_ECHO = _as_bool(os.getenv("SQL_ECHO"))
SQLITE_BUSY_TIMEOUT = float(os.getenv("SQLITE_BUSY_TIMEOUT", "30"))

JWT_SECRET = os.getenv("JWT_SECRET", "devsecret123")
ALGORITHM = "HS256"
ACCESS_TOKEN_EXPIRE_MINUTES = int(os.getenv("ACCESS_TOKEN_EXPIRE_MINUTES", "480"))

CORS_ORIGINS = [
    o.strip()
    for o in os.getenv(
        "CORS_ORIGINS",
        "http://localhost:3000,http://127.0.0.1:3000,http://localhost:5173,http://127.0.0.1:5173",
    ).split(",")
    if o.strip()
]

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
