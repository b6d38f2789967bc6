"""
Email SMTP notifier.
"""

import smtplib
from email.mime.text import MIMEText
from email.mime.multipart import MIMEMultipart

from norm.database.models import Alert
from .base import Notifier, NotificationResult, alert_link


class EmailNotifier(Notifier):
    """Sends notifications via email SMTP."""

    SUBJECT_PREFIX = {
        "low": "[Info]",
        "medium": "[Notice]",
        "high": "[Warning]",
        "critical": "[CRITICAL]",
    }

    SEVERITY_COLOR = {
        "low": "#0891B2",
        "medium": "#D97706",
        "high": "#EA580C",
        "critical": "#DC2626",
    }

    def __init__(
        self,
        smtp_host: str,
        smtp_port: int,
        smtp_user: str,
        smtp_password: str,
        from_address: str,
        to_addresses: list[str],
        dashboard_url: str = "",
    ):
        """
        Initialize email notifier.

        Args:
            smtp_host: SMTP server hostname
            smtp_port: SMTP server port
            smtp_user: SMTP username
            smtp_password: SMTP password
            from_address: Sender email address
            to_addresses: List of recipient email addresses
            dashboard_url: Base URL of the dashboard, linked from each alert
        """
        self.smtp_host = smtp_host
        self.smtp_port = smtp_port
        self.smtp_user = smtp_user
        self.smtp_password = smtp_password
        self.from_address = from_address
        self.to_addresses = to_addresses
        self.dashboard_url = dashboard_url

    def send(self, alert: Alert) -> NotificationResult:
        """Send alert via email."""
        if not self.to_addresses:
            return NotificationResult(
                success=False, channel="email", error="No recipients configured"
            )

        try:
            message = self._create_message(alert)

            with smtplib.SMTP(self.smtp_host, self.smtp_port) as server:
                server.starttls()
                server.login(self.smtp_user, self.smtp_password)
                server.send_message(message)

            return NotificationResult(success=True, channel="email")

        except smtplib.SMTPAuthenticationError as e:
            return NotificationResult(
                success=False,
                channel="email",
                error=f"Authentication failed: {str(e)}",
            )
        except Exception as e:
            return NotificationResult(
                success=False,
                channel="email",
                error=f"SMTP error: {str(e)}",
            )

    def _create_message(self, alert: Alert) -> MIMEMultipart:
        """Create email message."""
        message = MIMEMultipart("alternative")
        message["Subject"] = self._create_subject(alert)
        message["From"] = self.from_address
        message["To"] = ", ".join(self.to_addresses)

        message.attach(MIMEText(self._create_text_body(alert), "plain"))
        message.attach(MIMEText(self._create_body(alert), "html"))

        return message

    def _create_subject(self, alert: Alert) -> str:
        """Create email subject."""
        prefix = self.SUBJECT_PREFIX.get(alert.severity, "[Alert]")
        return f"{prefix} nORM Alert: {alert.title}"

    def _create_text_body(self, alert: Alert) -> str:
        """Create plain text email body."""
        created = alert.created_at.strftime("%Y-%m-%d %H:%M:%S") if alert.created_at else "-"
        link = alert_link(self.dashboard_url, alert) if self.dashboard_url else ""
        return f"""
nORM Reputation Alert

{alert.title}
Severity: {alert.severity.title()}
Type: {alert.alert_type.replace("_", " ").title()}

{alert.message}

Time: {created}
{link}
"""

    def _create_body(self, alert: Alert) -> str:
        """Create HTML email body."""
        color = self.SEVERITY_COLOR.get(alert.severity, "#0891B2")
        created = alert.created_at.strftime("%Y-%m-%d %H:%M:%S") if alert.created_at else "-"
        link_html = ""
        if self.dashboard_url:
            link_html = f"""
        <div class="dashboard-link">
            <a href="{alert_link(self.dashboard_url, alert)}">Open in dashboard →</a>
        </div>"""

        return f"""
<!DOCTYPE html>
<html>
<head>
    <meta charset="utf-8">
    <style>
        body {{ font-family: Arial, sans-serif; margin: 0; padding: 20px; }}
        .alert-box {{
            border-left: 4px solid {color};
            padding: 15px;
            background-color: #f9f9f9;
            margin-bottom: 20px;
        }}
        .title {{ font-size: 20px; font-weight: bold; color: {color}; }}
        .message {{ margin: 15px 0; color: #555; }}
        .meta {{ color: #888; font-size: 12px; }}
        .dashboard-link {{ margin-top: 15px; }}
        .dashboard-link a {{ color: {color}; text-decoration: none; }}
    </style>
</head>
<body>
    <div class="alert-box">
        <div class="title">{alert.title}</div>
        <div class="message">{alert.message}</div>
        <div class="meta">
            Severity: {alert.severity.title()}<br>
            Type: {alert.alert_type.replace("_", " ").title()}<br>
            Time: {created}
        </div>{link_html}
    </div>
</body>
</html>
"""
