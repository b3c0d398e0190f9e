import smtplib
from email.mime.text import MIMEText
from email.mime.multipart import MIMEMultipart
from typing import Any, Dict, Optional
import logging

from app.config import settings

logger = logging.getLogger(__name__)


class EmailService:
    """Email service for sending transactional emails over SMTP."""

    def __init__(
        self,
        smtp_host: str = "smtp.gmail.com",
        smtp_port: int = 587,
        smtp_user: str = "",
        smtp_password: str = "",
        from_email: str = "",
        from_name: str = "Courier Logistics"
    ):
        self.smtp_host = smtp_host
        self.smtp_port = smtp_port
        self.smtp_user = smtp_user
        self.smtp_password = smtp_password
        self.from_email = from_email or smtp_user
        self.from_name = from_name

    @property
    def is_configured(self) -> bool:
        return bool(self.smtp_user and self.smtp_password)

    def send_email(
        self,
        to_email: str,
        subject: str,
        html_content: str,
        text_content: Optional[str] = None
    ) -> bool:
        """
        Send an email over SMTP with STARTTLS.

        Blocking; observers call it through ``asyncio.to_thread``.

        Returns:
            True if email sent successfully, False otherwise
        """
        if not self.is_configured:
            logger.warning(f"Email not configured. SMTP credentials missing; skipped '{subject}' to {to_email}")
            return False

        try:
            msg = MIMEMultipart('alternative')
            msg['Subject'] = subject
            msg['From'] = f"{self.from_name} <{self.from_email}>"
            msg['To'] = to_email

            if text_content:
                msg.attach(MIMEText(text_content, 'plain'))
            msg.attach(MIMEText(html_content, 'html'))

            with smtplib.SMTP(self.smtp_host, self.smtp_port, timeout=10) as server:
                server.starttls()
                server.login(self.smtp_user, self.smtp_password)
                server.sendmail(self.from_email, to_email, msg.as_string())

            logger.info(f"Email sent successfully to {to_email}")
            return True

        except smtplib.SMTPAuthenticationError:
            logger.error("SMTP Authentication failed. Check email credentials.")
            return False
        except smtplib.SMTPException as e:
            logger.error(f"SMTP error: {e}")
            return False
        except TimeoutError:
            logger.error("SMTP connection timed out")
            return False
        except OSError as e:
            logger.error(f"Network error sending email: {e}")
            return False

    def send_welcome_email(self, user: Dict[str, Any]) -> bool:
        name = user.get("name") or "there"
        subject = f"Welcome to {self.from_name}"
        html_content = f"""
        <html>
        <body style="font-family: Arial, sans-serif; color: #333;">
            <h2>Welcome, {name}!</h2>
            <p>Your account ({user.get('email')}) is ready. You can now book deliveries and track shipments.</p>
            <p>Regards,<br>{self.from_name}</p>
        </body>
        </html>
        """
        text_content = f"Welcome, {name}! Your account ({user.get('email')}) is ready."
        return self.send_email(user["email"], subject, html_content, text_content)

    def send_order_confirmation(self, order: Dict[str, Any], user: Dict[str, Any]) -> bool:
        subject = f"Order {order.get('orderNumber')} confirmed"
        html_content = f"""
        <html>
        <body style="font-family: Arial, sans-serif; color: #333;">
            <h2>Order confirmed</h2>
            <p>Hello {user.get('name') or ''},</p>
            <table>
                <tr><td>Order number</td><td><strong>{order.get('orderNumber')}</strong></td></tr>
                <tr><td>Deliver to</td><td>{order.get('name')}, {order.get('deliveryCity')}</td></tr>
                <tr><td>Delivery type</td><td>{order.get('deliveryType')}</td></tr>
                <tr><td>Amount to collect</td><td>{order.get('amountToBeCollected')}</td></tr>
                <tr><td>Total</td><td>{order.get('totalAmount')}</td></tr>
            </table>
        </body>
        </html>
        """
        text_content = (
            f"Order {order.get('orderNumber')} confirmed. "
            f"Delivery to {order.get('deliveryCity')}, total {order.get('totalAmount')}."
        )
        return self.send_email(user["email"], subject, html_content, text_content)

    def send_shipment_notification(self, shipment: Dict[str, Any], user: Dict[str, Any]) -> bool:
        status = shipment.get("status")
        subject = f"Shipment {shipment.get('trackingNumber')} is now {status}"
        delivered = shipment.get("actualDelivery")
        html_content = f"""
        <html>
        <body style="font-family: Arial, sans-serif; color: #333;">
            <h2>Shipment update</h2>
            <p>Hello {user.get('name') or ''},</p>
            <p>Tracking number <strong>{shipment.get('trackingNumber')}</strong> is now <strong>{status}</strong>.</p>
            {f"<p>Delivered at {delivered}</p>" if delivered else ""}
        </body>
        </html>
        """
        text_content = f"Shipment {shipment.get('trackingNumber')} is now {status}."
        return self.send_email(user["email"], subject, html_content, text_content)

    def send_report_ready(self, to_email: str, report_type: str, result: Dict[str, Any]) -> bool:
        subject = f"Your {report_type} report is ready"
        html_content = f"""
        <html>
        <body style="font-family: Arial, sans-serif; color: #333;">
            <p>The report <strong>{result.get('fileName')}</strong> finished with {result.get('rows')} rows.</p>
            <p>Download it from the reports page using its job id.</p>
        </body>
        </html>
        """
        return self.send_email(to_email, subject, html_content)


def get_email_service() -> EmailService:
    """Get configured email service instance."""
    return EmailService(
        smtp_host=settings.SMTP_HOST,
        smtp_port=settings.SMTP_PORT,
        smtp_user=settings.SMTP_USER,
        smtp_password=settings.SMTP_PASSWORD,
        from_email=settings.SMTP_FROM_EMAIL,
        from_name=settings.SMTP_FROM_NAME,
    )
