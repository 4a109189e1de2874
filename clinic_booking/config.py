"""
Application configuration settings loaded from environment variables.
Uses pydantic_settings for validation and type conversion.
"""
from pydantic_settings import BaseSettings
from typing import List, Optional

class Settings(BaseSettings):
    """
    Application settings class with environment variable validation.

    Attributes:
        database_url: SQLAlchemy connection string
        secret_key: Secret key for JWT token encoding
        algorithm: Algorithm used for JWT encoding (typically HS256)
        access_token_expire_minutes: Access token expiration time in minutes

        # Email settings (all optional, notifications are skipped when incomplete)
        mail_username: SMTP server username
        mail_password: SMTP server password
        mail_from: Sender email address
        mail_port: SMTP server port
        mail_server: SMTP server hostname
        mail_starttls: Whether to use STARTTLS
        mail_timeout: SMTP connection timeout in seconds
        mail_max_retries: Attempts per message for transient SMTP failures

        # Booking policy
        cancellation_window_hours: Minimum lead time for a cancellation
        upcoming_window_days: Default look-ahead for the upcoming list
        reminder_window_days: Default look-ahead for reminder batches
        clinic_timezone: IANA timezone that appointment dates and times are in
        notification_failure_log_size: Failed deliveries kept for inspection

        # Frontend settings
        cors_origins: Allowed CORS origins

        # Bootstrap admin settings (optional)
        bootstrap_admin_email: Optional admin email for first admin creation
        bootstrap_admin_password: Optional admin password for first admin creation
    """
    # Database settings
    database_url: str = "sqlite:///./clinic_booking.db"

    # JWT settings
    secret_key: str
    algorithm: str = "HS256"
    access_token_expire_minutes: int = 30

    # Email settings
    mail_username: Optional[str] = None
    mail_password: Optional[str] = None
    mail_from: Optional[str] = None
    mail_port: int = 587
    mail_server: Optional[str] = None
    mail_starttls: bool = True
    mail_timeout: int = 30
    mail_max_retries: int = 3

    # Booking policy
    cancellation_window_hours: int = 24
    upcoming_window_days: int = 7
    reminder_window_days: int = 1
    clinic_timezone: str = "UTC"
    notification_failure_log_size: int = 100

    # Frontend settings
    cors_origins: List[str] = ["http://localhost:3000"]

    # Bootstrap admin settings (optional - only used for first admin creation)
    bootstrap_admin_email: Optional[str] = None
    bootstrap_admin_password: Optional[str] = None
    bootstrap_admin_name: str = "System Administrator"

    class Config:
        """Configuration for environment variables loading"""
        env_file = ".env"
        case_sensitive = False

    @property
    def email_configured(self) -> bool:
        """Whether every SMTP setting needed to send mail is present"""
        return all([self.mail_server, self.mail_username, self.mail_password, self.mail_from])

# Create settings instance
settings = Settings()
