"""
FastAPI dependencies for authentication and authorization.
"""
from fastapi import Depends, Request
from fastapi.security import OAuth2PasswordBearer
from sqlalchemy.orm import Session
from typing import List
import logging

from ..database import get_db
from ..core.security import verify_token
from ..exceptions import AccessDeniedException
from .models import User, UserRole
from .exceptions import InvalidTokenException, InactiveAccountException

# Set up logging
logger = logging.getLogger(__name__)

# OAuth2 scheme for JWT token authentication
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/api/v1/auth/login")

def get_current_user(
    request: Request,
    token: str = Depends(oauth2_scheme),
    db: Session = Depends(get_db)
) -> User:
    """
    Get current authenticated user from JWT token with database verification.

    Args:
        request: Current request; the user id is kept on request.state for logging
        token: JWT token from Authorization header
        db: Database session

    Returns:
        User: Current authenticated user

    Raises:
        InvalidTokenException: If token is invalid or user not found
    """
    payload = verify_token(token)
    if not payload:
        raise InvalidTokenException()

    user_id = payload.get("id")
    if not user_id:
        raise InvalidTokenException("Invalid token payload")

    user = db.query(User).filter(User.id == user_id).first()
    if not user:
        raise InvalidTokenException("Invalid token. User not found.")

    request.state.user_id = user.id
    return user

def get_current_active_user(current_user: User = Depends(get_current_user)) -> User:
    """
    Get current user and verify account is active.

    Raises:
        InactiveAccountException: If account is deactivated
    """
    if not current_user.is_active:
        raise InactiveAccountException()
    return current_user

def require_roles(allowed_roles: List[UserRole]):
    """
    Dependency factory to require specific roles.

    Args:
        allowed_roles: List of roles that are allowed access

    Returns:
        Function that checks if user has required role
    """
    def role_checker(current_user: User = Depends(get_current_active_user)) -> User:
        if current_user.role not in allowed_roles:
            logger.warning(f"User {current_user.id} with role {current_user.role.value} denied access")
            raise AccessDeniedException("Access denied. Insufficient permissions.")
        return current_user
    return role_checker

require_admin = require_roles([UserRole.ADMIN])
