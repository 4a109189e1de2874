"""
Authentication routes for the clinic booking system.
"""
from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session
import logging

from ..database import get_db
from .models import User
from .schemas import UserRegistration, UserLogin, UserResponse, LoginResponse
from .dependencies import get_current_active_user
from .service import register_user, login_user

# Set up logging
logger = logging.getLogger(__name__)

router = APIRouter()

@router.post("/register", response_model=LoginResponse, status_code=status.HTTP_201_CREATED, summary="User Self-Registration")
def register_route(payload: UserRegistration, db: Session = Depends(get_db)):
    """
    Register a new user account.

    The account is active immediately and the response carries an access
    token so the client can start booking right away.
    """
    return register_user(db, name=payload.name, email=payload.email, password=payload.password)

@router.post("/login", response_model=LoginResponse, summary="Login")
def login_route(credentials: UserLogin, db: Session = Depends(get_db)):
    """
    Exchange email and password for a bearer token.
    """
    return login_user(db, email=credentials.email, password=credentials.password)

@router.get("/me", response_model=UserResponse)
def get_current_user_profile(current_user: User = Depends(get_current_active_user)):
    """
    Get the profile of the authenticated user.
    """
    return current_user
