"""
Authentication service layer for business logic.
"""
import logging
from datetime import datetime, timezone
from sqlalchemy.orm import Session
from sqlalchemy.exc import IntegrityError
from typing import Dict, Any

from ..core.security import hash_password, verify_password, create_access_token
from .models import User, UserRole
from .exceptions import (
    InvalidCredentialsException,
    EmailAlreadyExistsException,
    InactiveAccountException
)

# Set up logging
logger = logging.getLogger(__name__)

def _token_for(user: User) -> str:
    return create_access_token({"id": user.id, "email": user.email, "role": user.role.value})

def register_user(db: Session, name: str, email: str, password: str) -> Dict[str, Any]:
    """
    Register a new user.

    Args:
        db: Database session
        name: User's display name
        email: User's email address
        password: User's password

    Returns:
        Dict with the created user and an access token

    Raises:
        EmailAlreadyExistsException: If email already exists
    """
    email = email.lower()
    logger.info(f"User registration attempt for email: {email}")

    existing_user = db.query(User).filter(User.email == email).first()
    if existing_user:
        logger.warning(f"Registration failed: Email {email} already registered")
        raise EmailAlreadyExistsException()

    user_obj = User(
        name=name,
        email=email,
        password_hash=hash_password(password),
        role=UserRole.USER,
        is_active=True
    )

    db.add(user_obj)
    try:
        db.commit()
    except IntegrityError:
        # Concurrent registration with the same email
        db.rollback()
        raise EmailAlreadyExistsException()
    db.refresh(user_obj)
    logger.info(f"User account created: {user_obj.id}")

    return {"access_token": _token_for(user_obj), "user": user_obj}

def login_user(db: Session, email: str, password: str) -> Dict[str, Any]:
    """
    Authenticate a user and issue an access token.

    Args:
        db: Database session
        email: User's email address
        password: User's password

    Returns:
        Dict with the user and an access token

    Raises:
        InvalidCredentialsException: If email or password is wrong
        InactiveAccountException: If the account is deactivated
    """
    email = email.lower()
    user = db.query(User).filter(User.email == email).first()
    if not user:
        logger.warning(f"Login failed: unknown email {email}")
        raise InvalidCredentialsException()

    if not user.is_active:
        logger.warning(f"Login failed: account {user.id} is deactivated")
        raise InactiveAccountException()

    if not verify_password(password, user.password_hash):
        logger.warning(f"Login failed: wrong password for user {user.id}")
        raise InvalidCredentialsException()

    user.last_login = datetime.now(timezone.utc)
    db.commit()
    db.refresh(user)
    logger.info(f"User {user.id} logged in")

    return {"access_token": _token_for(user), "user": user}
