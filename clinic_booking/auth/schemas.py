"""
User Schemas - Pydantic models for user data validation and serialization.
"""
import re
from typing import Optional
from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator
from datetime import datetime
from .models import UserRole

class UserBase(BaseModel):
    """
    Base User Schema - Contains fields common to all user-related schemas

    Fields:
    - name: User's display name
    - email: User's email address
    """
    name: str = Field(..., min_length=2, max_length=50)
    email: EmailStr

    @field_validator("name")
    @classmethod
    def strip_name(cls, v: str) -> str:
        v = v.strip()
        if len(v) < 2:
            raise ValueError("Name must be between 2 and 50 characters")
        return v

class UserRegistration(UserBase):
    """
    User Registration Schema - Used for self-registration

    Self-registered accounts always get the USER role.
    """
    password: str = Field(..., min_length=6)

    @field_validator("password")
    @classmethod
    def validate_password_strength(cls, v: str) -> str:
        """Require at least one lowercase letter, one uppercase letter and one digit"""
        if not re.search(r"[a-z]", v) or not re.search(r"[A-Z]", v) or not re.search(r"\d", v):
            raise ValueError(
                "Password must contain at least one lowercase letter, one uppercase letter, and one number"
            )
        return v

class UserLogin(BaseModel):
    """User Login Schema"""
    email: EmailStr
    password: str = Field(..., min_length=1)

class UserResponse(BaseModel):
    """
    User Response Schema - Used when returning user data

    Never includes the password hash.
    """
    id: int
    name: str
    email: str
    role: UserRole
    is_active: bool
    last_login: Optional[datetime] = None
    created_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)

class LoginResponse(BaseModel):
    """Login / registration response carrying the bearer token"""
    access_token: str
    token_type: str = "bearer"
    user: UserResponse
