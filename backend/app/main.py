"""FastAPI application entry point."""
import logging

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from app.config import settings
from app.database import Base, engine
from app.errors import BookingError

# Import routers
from app.routers import facilities, bookings, approvals, recurring_bookings, reminders, reports

# Import all models so Base.metadata knows about them
from app.models.facility import Facility                        # noqa: F401
from app.models.booking import Booking                          # noqa: F401
from app.models.approval import BookingApproval                 # noqa: F401
from app.models.recurring_booking import RecurringBooking       # noqa: F401
from app.models.role import UserRole                            # noqa: F401
from app.models.notification import NotificationOutbox          # noqa: F401
from app.models.reminder import BookingReminder                 # noqa: F401

logging.basicConfig(
    level=settings.LOG_LEVEL.upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

app = FastAPI(
    title="Community Facility Booking",
    description="Facility booking scheduling, approval workflow and recurring bookings for resident communities",
    version="0.1.0",
)

# CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS.split(","),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Register routers
app.include_router(facilities.router, prefix="/api/facilities", tags=["Facilities"])
app.include_router(bookings.router, prefix="/api/bookings", tags=["Bookings"])
app.include_router(approvals.router, prefix="/api/approvals", tags=["Approvals"])
app.include_router(recurring_bookings.router, prefix="/api/recurring-bookings", tags=["RecurringBookings"])
app.include_router(reminders.router, prefix="/api/reminders", tags=["Reminders"])
app.include_router(reports.router, prefix="/api/reports", tags=["Reports"])


@app.exception_handler(BookingError)
def booking_error_handler(request: Request, exc: BookingError):
    """Render domain errors as {error, message, params} with the mapped status code."""
    logger.info("%s %s rejected: %s (%s)", request.method, request.url.path, exc.kind, exc.message)
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


@app.on_event("startup")
def on_startup():
    """Create database tables on startup (for SQLite dev mode)."""
    if settings.DATABASE_URL.startswith("sqlite"):
        Base.metadata.create_all(bind=engine)


@app.get("/api/health")
def health_check():
    return {"status": "ok"}
