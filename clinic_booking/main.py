"""
Main FastAPI application entry point.
Configures the application, middleware, and includes routers.
"""
from dotenv import load_dotenv

# Load environment variables from .env file first
load_dotenv()

from contextlib import asynccontextmanager
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
import logging

from .config import settings
from .database import Base, engine, SessionLocal
from .exceptions import register_exception_handlers
from .core.clock import Clock
from .core.middleware import setup_middlewares
from .core import audit_models  # noqa: F401  registers audit_logs on Base.metadata
from .auth.bootstrap import bootstrap_admin_if_needed
from .auth.router import router as auth_router
from .doctors.router import router as doctors_router
from .appointments.router import router as appointments_router
from .notifications.email import EmailNotifier
from .notifications.outbox import NotificationFailureLog

# Configure logging
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

@asynccontextmanager
async def lifespan(app: FastAPI):
    """Create tables and the bootstrap admin on startup"""
    logger.info("Starting Clinic Booking API...")
    Base.metadata.create_all(bind=engine)

    db = SessionLocal()
    try:
        bootstrap_admin_if_needed(db)
    finally:
        db.close()

    if not settings.email_configured:
        logger.warning("Email settings incomplete, appointment emails will be skipped")
    yield
    logger.info("Clinic Booking API shutting down")

# Create FastAPI application
app = FastAPI(
    title="Clinic Booking API",
    description="API for booking and managing doctor appointments",
    version="1.0.0",
    lifespan=lifespan
)

# Per-application collaborators, replaced in tests through dependency overrides
app.state.clock = Clock(settings.clinic_timezone)
app.state.notifier = EmailNotifier(settings)
app.state.notification_failures = NotificationFailureLog(settings.notification_failure_log_size)

# Register exception handlers
register_exception_handlers(app)

# Configure CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Setup custom middleware
setup_middlewares(app)

# Include routers
app.include_router(auth_router, prefix="/api/v1/auth", tags=["Authentication"])
app.include_router(doctors_router, prefix="/api/v1/doctors", tags=["Doctors"])
app.include_router(appointments_router, prefix="/api/v1/appointments", tags=["Appointments"])

# Root endpoint
@app.get("/")
def root():
    """
    Root endpoint for API health check.

    Returns:
        dict: Simple welcome message
    """
    return {"message": "Welcome to Clinic Booking API"}

# Health check endpoint
@app.get("/health")
async def health_check():
    """
    Health check endpoint for monitoring.

    Returns:
        dict: Health status information
    """
    return {"status": "healthy"}
