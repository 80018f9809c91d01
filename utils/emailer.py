import logging
import smtplib
from email.message import EmailMessage
from html import escape

from flask import current_app

logger = logging.getLogger(__name__)

BRAND = "Fortivault"


def send_email(to_email: str, subject: str, body: str, html: str = None):
    """Returns (sent, error). Never raises for delivery problems."""
    host = current_app.config.get("SMTP_HOST")
    port = current_app.config.get("SMTP_PORT", 587)
    username = current_app.config.get("SMTP_USERNAME")
    password = current_app.config.get("SMTP_PASSWORD")
    from_email = current_app.config.get("SMTP_FROM_EMAIL") or username
    use_tls = current_app.config.get("SMTP_USE_TLS", True)

    if not host or not from_email:
        logger.warning("Email not configured; dropping message %r", subject)
        return False, "Email not configured"

    msg = EmailMessage()
    msg["From"] = from_email
    msg["To"] = to_email
    msg["Subject"] = subject
    msg.set_content(body)
    if html:
        msg.add_alternative(html, subtype="html")

    try:
        with smtplib.SMTP(host, port, timeout=10) as server:
            if use_tls:
                server.starttls()
            if username and password:
                server.login(username, password)
            server.send_message(msg)
        return True, None
    except (smtplib.SMTPException, OSError) as exc:
        logger.error("SMTP delivery to %s failed: %s", host, exc)
        return False, str(exc)


def send_otp_email(to_email: str, code: str, case_id: str, ttl_seconds: int):
    minutes = max(ttl_seconds // 60, 1)
    subject = f"Verify Your Email - {BRAND}"
    body = (
        "Thank you for submitting your fraud report. "
        "To proceed with your case, please verify your email address.\n\n"
        f"Your verification code: {code}\n"
        f"Case ID: {case_id}\n"
        f"Valid for: {minutes} minutes\n\n"
        "Never share this code with anyone. Our team will never ask for it "
        "by phone or email.\n\n"
        f"{BRAND} | Built to protect. Trusted to Secure"
    )
    html = f"""
<div style="font-family: Arial, sans-serif; max-width: 600px; margin: 0 auto; padding: 20px;">
  <h1 style="color: #1e3a8a; font-size: 24px;">Email Verification Required</h1>
  <p style="font-size: 16px; color: #334155;">
    Thank you for submitting your fraud report. To proceed with your case, please verify your email address.
  </p>
  <div style="padding: 20px; text-align: center; border: 2px dashed #059669;">
    <p style="font-size: 14px; color: #64748b;">Your Verification Code:</p>
    <h2 style="font-size: 32px; color: #1e3a8a; letter-spacing: 8px; font-family: monospace;">{escape(code)}</h2>
  </div>
  <p style="font-size: 14px; color: #64748b;">
    <strong>Case ID:</strong> {escape(case_id)}<br>
    <strong>Valid for:</strong> {minutes} minutes
  </p>
  <p style="font-size: 14px; color: #92400e;">
    <strong>Security Notice:</strong> Never share this code with anyone.
    Our team will never ask for this code via phone or email.
  </p>
</div>
"""
    return send_email(to_email, subject, body, html=html)


def send_confirmation_email(to_email: str, case_id: str):
    support = current_app.config.get("SUPPORT_EMAIL", "support@fortivault.com")
    subject = f"Fraud Report Received - {BRAND}"
    body = (
        f"Thank you for submitting your fraud report to {BRAND}. "
        "We have received your case and it is now in our system for processing.\n\n"
        f"Case Reference Number: {case_id}\n"
        "Please save this number for your records.\n\n"
        "What happens next?\n"
        "- Our recovery specialists will review your case within 24 hours\n"
        "- You'll receive updates via email as your case progresses\n"
        "- Additional information may be requested as needed\n\n"
        f"Questions? Contact {support}."
    )
    html = f"""
<div style="font-family: Arial, sans-serif; max-width: 600px; margin: 0 auto; padding: 20px;">
  <h1 style="color: #1e3a8a; font-size: 24px;">Fraud Report Confirmation</h1>
  <p style="font-size: 16px; color: #334155;">
    Thank you for submitting your fraud report to {BRAND}. We have received your case and it is now in our system for processing.
  </p>
  <p style="font-size: 14px;"><strong>Case Reference Number:</strong></p>
  <p style="font-size: 18px; font-family: monospace; color: #059669; font-weight: bold;">{escape(case_id)}</p>
  <ul style="color: #065f46; font-size: 14px;">
    <li>Our recovery specialists will review your case within 24 hours</li>
    <li>You'll receive updates via email as your case progresses</li>
    <li>Additional information may be requested as needed</li>
  </ul>
  <p style="font-size: 14px; color: #92400e;"><strong>Questions?</strong> Contact {escape(support)}.</p>
</div>
"""
    return send_email(to_email, subject, body, html=html)
