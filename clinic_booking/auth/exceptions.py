"""
Authentication-specific exceptions.
"""
from fastapi import status
from ..exceptions import AppException

class AuthException(AppException):
    """Base class for authentication exceptions."""
    kind = "AuthError"

class InvalidCredentialsException(AuthException):
    """Exception raised when credentials are invalid."""
    kind = "InvalidCredentials"

    def __init__(self, detail: str = "Invalid email or password"):
        super().__init__(status_code=status.HTTP_401_UNAUTHORIZED, detail=detail)

class EmailAlreadyExistsException(AuthException):
    """Exception raised when email already exists."""
    kind = "EmailAlreadyExists"

    def __init__(self, detail: str = "User with this email already exists"):
        super().__init__(status_code=status.HTTP_400_BAD_REQUEST, detail=detail)

class InactiveAccountException(AuthException):
    """Exception raised when a deactivated account tries to sign in."""
    kind = "AccountInactive"

    def __init__(self, detail: str = "Account is deactivated"):
        super().__init__(status_code=status.HTTP_401_UNAUTHORIZED, detail=detail)

class InvalidTokenException(AuthException):
    """Exception raised for a missing, expired or malformed bearer token."""
    kind = "InvalidToken"

    def __init__(self, detail: str = "Invalid or expired token"):
        super().__init__(status_code=status.HTTP_401_UNAUTHORIZED, detail=detail)
