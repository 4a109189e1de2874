"""
User Model - Stores the accounts that browse doctors and book appointments.
"""
from sqlalchemy import Column, Integer, String, Boolean, DateTime, Enum
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
import enum
from ..database import Base

class UserRole(str, enum.Enum):
    """
    Enumeration for user roles in the booking system.

    Roles:
    - USER: Patients who book, reschedule and cancel their own appointments
    - ADMIN: Administrators who manage doctors and the appointment lifecycle
    """
    USER = "user"
    ADMIN = "admin"

class User(Base):
    """
    User Model - Stores all user information in the system

    Fields:
    - id: Primary key for user identification
    - name: User's display name
    - email: Unique email address for login and communication
    - password_hash: Securely hashed password (never store raw passwords)
    - role: User role (user, admin)
    - is_active: Whether the account may sign in
    - last_login: Timestamp of the last successful login
    - created_at: Timestamp when user was created
    - updated_at: Timestamp when user was last updated
    """
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(50), nullable=False)
    email = Column(String, unique=True, index=True, nullable=False)
    password_hash = Column(String, nullable=False)
    role = Column(
        Enum(UserRole, name="user_role", values_callable=lambda e: [m.value for m in e]),
        default=UserRole.USER,
        nullable=False
    )
    is_active = Column(Boolean, default=True, nullable=False)
    last_login = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    appointments = relationship("Appointment", back_populates="user")

    def __repr__(self):
        """String representation of the User model"""
        return f"<User(id={self.id}, email='{self.email}', role='{self.role}')>"

    @property
    def is_admin(self) -> bool:
        return self.role == UserRole.ADMIN
