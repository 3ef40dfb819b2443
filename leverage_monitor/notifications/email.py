"""Email notification service."""
import logging
import smtplib
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText

from ..config import EmailConfig
from ..models import Alert, AlertLevel
from ..reporting import format_alert

logger = logging.getLogger(__name__)

_SUBJECTS = {
    AlertLevel.CRITICAL: "🚨 CRITICAL: Liquidation Risk!",
    AlertLevel.WARNING: "⚠️ WARNING: Position needs attention",
    AlertLevel.INFO: "ℹ️ Position monitor notice",
}


class EmailNotifier:
    """Send action-required alerts and reports via email."""

    def __init__(self, config: EmailConfig) -> None:
        self.alert_email = config.alert_email
        self.smtp_server = config.smtp_server
        self.smtp_port = config.smtp_port
        self.sender_email = config.sender_email
        self.sender_password = config.sender_password

    def _send(self, subject: str, body: str) -> bool:
        if not self.alert_email:
            logger.debug("No alert email configured, skipping email")
            return False

        if not self.sender_email or not self.sender_password:
            logger.warning("Email credentials not configured")
            return False

        msg = MIMEMultipart()
        msg["From"] = self.sender_email
        msg["To"] = self.alert_email
        msg["Subject"] = subject
        msg.attach(MIMEText(body, "plain"))

        try:
            server = smtplib.SMTP(self.smtp_server, self.smtp_port)
            server.starttls()
            server.login(self.sender_email, self.sender_password)
            server.send_message(msg)
            server.quit()
            logger.info("Email '%s' sent to %s", subject, self.alert_email)
            return True
        except (smtplib.SMTPException, OSError) as e:
            logger.error("Failed to send email: %s", e)
            return False

    async def notify(self, alert: Alert) -> bool:
        """Email only alerts that require action; others are skipped."""
        if not alert.action_required:
            return False
        body = f"{format_alert(alert)}\n\n{alert.timestamp:%Y-%m-%d %H:%M:%S} UTC"
        return self._send(_SUBJECTS[alert.level], body)

    async def send_report(self, report: str) -> bool:
        return self._send("📋 Leverage Position Report", report)
