"""
SMTP email notifier for appointment events.
"""
import logging
import smtplib
import socket
import ssl
import time
from datetime import datetime
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText

from ..config import Settings
from .outbox import AppointmentNotice, NotificationSkipped

# Set up logging
logger = logging.getLogger(__name__)

RETRY_DELAY = 2  # seconds between retries


class NotificationDeliveryError(Exception):
    """Raised when an email could not be sent after all retries."""


class EmailNotifier:
    """
    Sends appointment emails over SMTP with STARTTLS.

    When the mail settings are incomplete every message is skipped with a
    warning and NotificationSkipped, so it is neither counted as delivered
    nor recorded as a failure.
    """

    def __init__(self, settings: Settings, retry_delay: float = RETRY_DELAY):
        self.settings = settings
        self.retry_delay = retry_delay

    def notify_booked(self, notice: AppointmentNotice) -> None:
        self._send(
            notice.user_email,
            "Appointment Booked",
            self._render(
                notice,
                title="Appointment Booked",
                color="#4CAF50",
                intro="Your appointment request has been received and is awaiting confirmation."
            )
        )

    def notify_confirmed(self, notice: AppointmentNotice) -> None:
        self._send(
            notice.user_email,
            "Appointment Confirmed",
            self._render(
                notice,
                title="Appointment Confirmed",
                color="#3498db",
                intro="Your appointment has been confirmed. Please arrive 10 minutes early."
            )
        )

    def notify_cancelled(self, notice: AppointmentNotice) -> None:
        self._send(
            notice.user_email,
            "Appointment Cancelled",
            self._render(
                notice,
                title="Appointment Cancelled",
                color="#e74c3c",
                intro=f"Your appointment has been cancelled. Reason: {notice.cancellation_reason or 'not given'}."
            )
        )

    def notify_rescheduled(self, notice: AppointmentNotice) -> None:
        self._send(
            notice.user_email,
            "Appointment Rescheduled",
            self._render(
                notice,
                title="Appointment Rescheduled",
                color="#f39c12",
                intro="Your appointment has been moved. The new details are below."
            )
        )

    def notify_reminder(self, notice: AppointmentNotice) -> None:
        self._send(
            notice.user_email,
            "Appointment Reminder",
            self._render(
                notice,
                title="Appointment Reminder",
                color="#8e44ad",
                intro="This is a reminder of your upcoming appointment."
            )
        )

    def _render(self, notice: AppointmentNotice, title: str, color: str, intro: str) -> str:
        when = notice.date.strftime("%A, %B %d, %Y")
        return f"""
    <html>
        <head>
            <title>Clinic Booking - {title}</title>
            <style>
                body {{ font-family: Arial, sans-serif; line-height: 1.6; }}
                .container {{ max-width: 600px; margin: 0 auto; padding: 20px; }}
                .header {{ background-color: {color}; color: white; padding: 10px; text-align: center; }}
                .content {{ padding: 20px; border: 1px solid #ddd; }}
                .details {{ background-color: #f8f9fa; padding: 10px; border-left: 4px solid {color}; margin: 15px 0; }}
                .footer {{ text-align: center; margin-top: 20px; font-size: 12px; color: #777; }}
            </style>
        </head>
        <body>
            <div class="container">
                <div class="header">
                    <h1>{title}</h1>
                </div>
                <div class="content">
                    <p>Hello {notice.user_name},</p>
                    <p>{intro}</p>
                    <div class="details">
                        <p><strong>Doctor:</strong> {notice.doctor_name} ({notice.specialty})</p>
                        <p><strong>When:</strong> {when} at {notice.time}</p>
                        <p><strong>Where:</strong> {notice.hospital}, {notice.address}</p>
                        <p><strong>Reason:</strong> {notice.reason}</p>
                        <p><strong>Consultation fee:</strong> {notice.consultation_fee}</p>
                    </div>
                    <p>Best regards,<br>Clinic Booking Team</p>
                </div>
                <div class="footer">
                    &copy; {datetime.now().year} Clinic Booking. All rights reserved.
                </div>
            </div>
        </body>
    </html>
    """

    def _send(self, recipient: str, subject: str, html_content: str) -> None:
        """
        Send one HTML email, retrying transient connection failures.

        Args:
            recipient: Destination address
            subject: Subject line
            html_content: HTML body

        Raises:
            NotificationSkipped: If the mail settings are incomplete
            NotificationDeliveryError: If the message could not be sent
        """
        settings = self.settings
        if not settings.email_configured:
            logger.warning(f"Email configuration is incomplete, skipping '{subject}' to {recipient}")
            raise NotificationSkipped("Email is not configured")

        msg = MIMEMultipart()
        msg["From"] = settings.mail_from
        msg["To"] = recipient
        msg["Subject"] = f"Clinic Booking - {subject}"
        msg.attach(MIMEText(html_content, "html"))

        max_retries = max(1, settings.mail_max_retries)
        last_exception = None

        for attempt in range(1, max_retries + 1):
            try:
                logger.info(f"Email send attempt {attempt}/{max_retries} to {recipient}")
                context = ssl.create_default_context()
                with smtplib.SMTP(settings.mail_server, settings.mail_port, timeout=settings.mail_timeout) as server:
                    server.ehlo()
                    if settings.mail_starttls:
                        server.starttls(context=context)
                        server.ehlo()
                    server.login(settings.mail_username, settings.mail_password)
                    server.send_message(msg)

                logger.info(f"Email sent successfully to {recipient} on attempt {attempt}")
                return

            except smtplib.SMTPAuthenticationError as e:
                logger.error(f"SMTP Authentication failed on attempt {attempt}: {str(e)}")
                last_exception = e
                break  # Don't retry authentication errors

            except smtplib.SMTPRecipientsRefused as e:
                logger.error(f"SMTP Recipients refused on attempt {attempt}: {str(e)}")
                last_exception = e
                break  # Don't retry recipient errors

            except (smtplib.SMTPServerDisconnected, smtplib.SMTPConnectError, socket.timeout, socket.gaierror, OSError) as e:
                logger.warning(f"SMTP connection error on attempt {attempt}: {str(e)}")
                last_exception = e
                if attempt < max_retries:
                    logger.info(f"Retrying in {self.retry_delay} seconds...")
                    time.sleep(self.retry_delay)

        raise NotificationDeliveryError(
            f"Failed to send email after {attempt} attempt(s). Last error: {str(last_exception)}"
        )
