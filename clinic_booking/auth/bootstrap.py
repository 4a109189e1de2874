"""
Bootstrap utilities for first admin creation.
Handles automatic creation of the first admin user from environment variables.
"""
import logging
from sqlalchemy.orm import Session
from sqlalchemy.exc import SQLAlchemyError
from .models import User, UserRole
from ..core.security import hash_password
from ..config import settings

logger = logging.getLogger(__name__)

def admin_exists(db: Session) -> bool:
    """
    Check if any admin user exists in the database.

    Args:
        db: Database session

    Returns:
        bool: True if at least one admin exists, False otherwise
    """
    return db.query(User).filter(User.role == UserRole.ADMIN).count() > 0

def create_bootstrap_admin(db: Session) -> bool:
    """
    Create the first admin user from environment variables.

    Args:
        db: Database session

    Returns:
        bool: True if admin was created successfully, False otherwise
    """
    if not settings.bootstrap_admin_email or not settings.bootstrap_admin_password:
        logger.warning("Bootstrap admin credentials not provided in environment variables")
        return False

    email = settings.bootstrap_admin_email.lower()
    existing_user = db.query(User).filter(User.email == email).first()
    if existing_user:
        logger.warning(f"Bootstrap failed: Email {email} already exists")
        return False

    bootstrap_admin = User(
        name=settings.bootstrap_admin_name,
        email=email,
        password_hash=hash_password(settings.bootstrap_admin_password),
        role=UserRole.ADMIN,
        is_active=True
    )

    try:
        db.add(bootstrap_admin)
        db.commit()
        db.refresh(bootstrap_admin)
    except SQLAlchemyError as e:
        logger.error(f"Failed to create bootstrap admin: {str(e)}")
        db.rollback()
        return False

    logger.info(f"Bootstrap admin created successfully: {bootstrap_admin.email} (ID: {bootstrap_admin.id})")
    return True

def bootstrap_admin_if_needed(db: Session) -> None:
    """
    Check if admin exists and create bootstrap admin if needed.
    This function should be called during application startup.

    Args:
        db: Database session
    """
    if admin_exists(db):
        logger.info("Admin users found. Bootstrap not needed.")
        return

    logger.info("No admin users found. Attempting bootstrap admin creation...")

    if not create_bootstrap_admin(db):
        logger.warning("Bootstrap admin creation skipped.")
        logger.info("To create the first admin, set BOOTSTRAP_ADMIN_EMAIL and BOOTSTRAP_ADMIN_PASSWORD in your .env file.")
