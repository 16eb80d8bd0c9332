from fastapi import FastAPI, Depends
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session
from sqlalchemy import text

from habitcore.db.base import get_db
from habitcore.core.config import settings
from habitcore.core.logger import setup_logging
from habitcore.routers import habits as habits_router
from habitcore.routers import tracking as tracking_router
from habitcore.routers import analytics as analytics_router
from habitcore.routers import challenges as challenges_router
from habitcore.core.errors import (
    HabitCoreException,
    habitcore_exception_handler,
    validation_exception_handler,
    unhandled_exception_handler,
)

setup_logging(settings.LOG_LEVEL)

app = FastAPI(
    title="Habitcore API",
    description=(
        "**Habit tracking core**\n\n"
        "Schedules, streaks, completion calendars, challenges, correlations "
        "and a productivity score over per-day habit logs.\n\n"
        "Every request carries the owner in `X-User-Id`. "
        "All error responses follow the `{code, message, details}` envelope."
    ),
    version="1.0.0",
    docs_url="/docs",
    redoc_url="/redoc",
)

# --- CORS ---
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins_list,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# --- Exception handlers (most specific first) ---
app.add_exception_handler(HabitCoreException, habitcore_exception_handler)
app.add_exception_handler(RequestValidationError, validation_exception_handler)
app.add_exception_handler(Exception, unhandled_exception_handler)

# --- Routers ---
app.include_router(habits_router.router)
app.include_router(tracking_router.router)
app.include_router(analytics_router.router)
app.include_router(challenges_router.router)


@app.get("/health", tags=["health"], summary="Health check")
def health(db: Session = Depends(get_db)):
    """
    Returns `{"status": "ok", "db": "ok"}` when both the API and the database
    are reachable. Returns HTTP 503 if the DB is down.
    """
    try:
        db.execute(text("SELECT 1"))
        db_status = "ok"
    except SQLAlchemyError:
        db_status = "unreachable"

    if db_status != "ok":
        return JSONResponse(
            status_code=503,
            content={"status": "error", "db": db_status},
        )
    return {"status": "ok", "db": "ok", "env": settings.APP_ENV}
