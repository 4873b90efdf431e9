"""
Email Service
Sends emails for request decisions, payments and password resets
"""

import smtplib
from email.mime.text import MIMEText
from email.mime.multipart import MIMEMultipart
from typing import Optional, Dict, Any

from r2p.config.settings import settings
from r2p.utils.helpers import format_currency
from r2p.utils.logger import setup_logger

logger = setup_logger()


class EmailService:
    """Email service for request notifications"""

    def __init__(self):
        """Initialize email service with SMTP configuration"""
        self.smtp_server = settings.SMTP_SERVER
        self.smtp_port = settings.SMTP_PORT
        self.smtp_username = settings.SMTP_USERNAME
        self.smtp_password = settings.SMTP_PASSWORD
        self.from_email = settings.FROM_EMAIL or self.smtp_username
        self.from_name = settings.FROM_NAME

        # Check if email is configured
        self.is_configured = bool(self.smtp_username and self.smtp_password)

        if not self.is_configured:
            logger.warning("Email service not configured. Set SMTP credentials in .env file.")

    def send_email(self, to_email: str, subject: str, html_body: str, text_body: str = None) -> bool:
        """
        Send email via SMTP

        Args:
            to_email: Recipient email address
            subject: Email subject
            html_body: HTML email body
            text_body: Plain text fallback (optional)

        Returns:
            bool: True if email sent successfully, False otherwise
        """
        if not self.is_configured:
            logger.warning(f"Email not sent to {to_email} - SMTP not configured")
            return False

        try:
            msg = MIMEMultipart('alternative')
            msg['Subject'] = subject
            msg['From'] = f"{self.from_name} <{self.from_email}>"
            msg['To'] = to_email

            if text_body:
                msg.attach(MIMEText(text_body, 'plain'))
            msg.attach(MIMEText(html_body, 'html'))

            with smtplib.SMTP(self.smtp_server, self.smtp_port) as server:
                server.starttls()
                server.login(self.smtp_username, self.smtp_password)
                server.send_message(msg)

            logger.info(f"Email sent to {to_email}: {subject}")
            return True

        except Exception as e:
            logger.error(f"Failed to send email to {to_email}: {str(e)}")
            return False

    def _render(self, heading: str, color: str, greeting: str, intro: str, rows: Dict[str, Any]) -> str:
        detail_rows = "".join(
            f'<div class="detail-row"><span class="label">{label}:</span> '
            f'<span class="value">{value}</span></div>'
            for label, value in rows.items()
        )
        return f"""
<!DOCTYPE html>
<html>
<head>
    <style>
        body {{ font-family: Arial, sans-serif; line-height: 1.6; color: #333; }}
        .container {{ max-width: 600px; margin: 0 auto; padding: 20px; }}
        .header {{ background: {color}; color: white; padding: 20px; text-align: center; }}
        .content {{ background: #f9f9f9; padding: 20px; border: 1px solid #ddd; }}
        .details {{ background: white; padding: 15px; margin: 15px 0; border-left: 4px solid {color}; }}
        .label {{ font-weight: bold; color: #555; display: inline-block; width: 150px; }}
        .footer {{ background: #333; color: white; padding: 15px; text-align: center; font-size: 12px; }}
    </style>
</head>
<body>
    <div class="container">
        <div class="header"><h1>{heading}</h1></div>
        <div class="content">
            <p>Dear {greeting},</p>
            <p>{intro}</p>
            <div class="details">{detail_rows}</div>
            <p><a href="{settings.FRONTEND_URL}">Open {settings.APP_NAME}</a></p>
        </div>
        <div class="footer">
            <p>This is an automated message from {settings.APP_NAME}. Please do not reply to this email.</p>
        </div>
    </div>
</body>
</html>
"""

    def _text(self, heading: str, greeting: str, intro: str, rows: Dict[str, Any]) -> str:
        lines = [heading.upper(), "", f"Dear {greeting},", "", intro, ""]
        lines += [f"- {label}: {value}" for label, value in rows.items()]
        lines += ["", "---", f"This is an automated message from {settings.APP_NAME}."]
        return "\n".join(lines)

    def _request_rows(self, request_data: dict) -> Dict[str, Any]:
        return {
            "Request ID": request_data.get("id"),
            "Title": request_data.get("title"),
            "Resource": request_data.get("resource_name"),
            "Quantity": request_data.get("quantity"),
            "Estimated Cost": format_currency(request_data.get("estimated_cost") or 0),
            "Status": str(request_data.get("status", "")).upper(),
        }

    def send_approval_notification(
        self,
        to_email: str,
        requester_name: str,
        request_data: dict,
        approver_name: str,
        approver_role: str,
        comment: Optional[str] = None
    ) -> bool:
        """Tell the requester their request was approved at one tier"""
        subject = f"Request Approved - {request_data.get('title')}"
        intro = f"Your request has been approved by {approver_name} ({approver_role})."
        rows = self._request_rows(request_data)
        if comment:
            rows["Comment"] = comment

        html = self._render("Request Approved", "#4CAF50", requester_name, intro, rows)
        text = self._text("Request Approved", requester_name, intro, rows)
        return self.send_email(to_email, subject, html, text)

    def send_rejection_notification(
        self,
        to_email: str,
        requester_name: str,
        request_data: dict,
        rejected_by: str,
        reason: Optional[str] = None
    ) -> bool:
        """Tell the requester their request was rejected"""
        subject = f"Request Rejected - {request_data.get('title')}"
        intro = f"Your request has been rejected by {rejected_by}. You may edit and resubmit it."
        rows = self._request_rows(request_data)
        rows["Reason"] = reason or "Rejected"

        html = self._render("Request Rejected", "#f44336", requester_name, intro, rows)
        text = self._text("Request Rejected", requester_name, intro, rows)
        return self.send_email(to_email, subject, html, text)

    def send_approval_required_notification(
        self,
        to_email: str,
        approver_name: str,
        request_data: dict,
        requester_name: str
    ) -> bool:
        """Ask an approver to review a request"""
        subject = f"Approval Required - {request_data.get('title')}"
        intro = f"A request from {requester_name} is waiting for your review."
        rows = self._request_rows(request_data)

        html = self._render("Approval Required", "#2196F3", approver_name, intro, rows)
        text = self._text("Approval Required", approver_name, intro, rows)
        return self.send_email(to_email, subject, html, text)

    def send_payment_notification(
        self,
        to_email: str,
        requester_name: str,
        request_data: dict,
        payment_data: dict
    ) -> bool:
        """Tell the requester finance has paid their request"""
        subject = f"Payment Processed - {request_data.get('title')}"
        intro = "Finance has processed the payment for your request."
        rows = self._request_rows(request_data)
        rows["Amount Paid"] = format_currency(payment_data.get("amount_paid") or 0)
        rows["Payment Method"] = str(payment_data.get("payment_method", "")).replace("_", " ").title()
        rows["Payment Date"] = payment_data.get("payment_date")

        html = self._render("Payment Processed", "#4CAF50", requester_name, intro, rows)
        text = self._text("Payment Processed", requester_name, intro, rows)
        return self.send_email(to_email, subject, html, text)

    def send_otp_email(self, to_email: str, full_name: str, otp: str) -> bool:
        """Send a password reset code"""
        subject = f"{settings.APP_NAME} - Password Reset Code"
        intro = (
            f"Use the code below to reset your password. "
            f"It expires in {settings.OTP_EXPIRE_MINUTES} minutes."
        )
        rows = {"Reset Code": otp}

        html = self._render("Password Reset", "#FF9800", full_name, intro, rows)
        text = self._text("Password Reset", full_name, intro, rows)
        return self.send_email(to_email, subject, html, text)


# Create singleton instance
email_service = EmailService()
