# checkin_tracker/main.py
# config must be imported first: it loads .env from the project root
import logging

from checkin_tracker import config

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from checkin_tracker.auth.login import router as auth_router
from checkin_tracker.checkins.errors import register_exception_handlers
from checkin_tracker.checkins.router import router as checkin_router
from checkin_tracker.dashboard_router import router as dashboard_router
from checkin_tracker.database import init_db
from checkin_tracker.reports.router import router as reports_router

logging.basicConfig(
    level=getattr(logging, config.LOG_LEVEL, logging.INFO),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

app = FastAPI(title="Field Check-in Tracker")

# -------------------- Middleware & error handlers --------------------
app.add_middleware(
    CORSMiddleware,
    allow_origins=config.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "OPTIONS"],
    allow_headers=["*"],
)

register_exception_handlers(app)

# ------------------- Routers (all under /api) -------------------
app.include_router(auth_router, prefix="/api")
app.include_router(checkin_router, prefix="/api")
app.include_router(dashboard_router, prefix="/api")
app.include_router(reports_router, prefix="/api")


@app.get("/api/health")
def health():
    return {"status": "ok"}


# ------------------- STARTUP -------------------
@app.on_event("startup")
def _create_tables():
    init_db()
    logger.info("Database ready (%s)", config.DATABASE_URL.split("@")[-1])
    for r in app.routes:
        if hasattr(r, "path"):
            logger.debug("route %-35s %s", r.path, sorted(getattr(r, "methods", None) or []))
