"""Email utility — sends transactional emails via SMTP (TLS)."""
from __future__ import annotations

import logging
import smtplib
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText

from papad_store.core.config import settings

logger = logging.getLogger(__name__)

_BASE_STYLE = """
    body {{ font-family: Arial, sans-serif; background: #fdf6ec; margin: 0; padding: 0; }}
    .container {{ max-width: 520px; margin: 40px auto; background: #fff;
                  border-radius: 8px; padding: 32px; box-shadow: 0 2px 8px rgba(0,0,0,.1); }}
    .logo {{ font-size: 26px; font-weight: 700; color: #c2410c; margin-bottom: 24px; }}
    .footer {{ margin-top: 24px; font-size: 12px; color: #9ca3af; }}
"""


def _build_smtp_connection() -> smtplib.SMTP:
    """Open an authenticated SMTP TLS connection."""
    conn = smtplib.SMTP(settings.SMTP_HOST, settings.SMTP_PORT, timeout=15)
    conn.ehlo()
    conn.starttls()
    conn.ehlo()
    if settings.SMTP_USER:
        conn.login(settings.SMTP_USER, settings.SMTP_PASS)
    return conn


def send_email(to: str, subject: str, html_body: str, plain_body: str = "") -> bool:
    """
    Send a transactional email. Returns True on success, False on failure.
    """
    try:
        msg = MIMEMultipart("alternative")
        msg["Subject"] = subject
        msg["From"] = f"{settings.EMAIL_FROM_NAME} <{settings.EMAIL_FROM}>"
        msg["To"] = to

        if plain_body:
            msg.attach(MIMEText(plain_body, "plain", "utf-8"))
        msg.attach(MIMEText(html_body, "html", "utf-8"))

        with _build_smtp_connection() as conn:
            conn.sendmail(settings.EMAIL_FROM, [to], msg.as_string())

        logger.info(f"[Email] Sent '{subject}' → {to}")
        return True

    except (smtplib.SMTPException, OSError) as exc:
        logger.error(f"[Email] Failed to send '{subject}' to {to}: {exc}")
        return False


# ── Convenience senders ───────────────────────────────────────────────────────

def send_otp_email(to: str, otp: str, name: str = "") -> bool:
    """Send the registration verification code."""
    greeting = f"Hi {name}," if name else "Hello,"
    minutes = settings.OTP_EXPIRE_MINUTES
    subject = f"Verify Your Email - {settings.EMAIL_FROM_NAME}"
    html_body = f"""
<!DOCTYPE html>
<html>
<head>
  <meta charset="utf-8">
  <style>{_BASE_STYLE.format()}
    .otp {{ font-size: 40px; font-weight: 800; letter-spacing: 10px; color: #c2410c;
            background: #fff7ed; padding: 16px 24px; border-radius: 8px;
            display: inline-block; margin: 16px 0; }}
  </style>
</head>
<body>
  <div class="container">
    <div class="logo">{settings.EMAIL_FROM_NAME}</div>
    <p>{greeting}</p>
    <p>Use the verification code below to complete your registration.
       The code expires in <strong>{minutes} minutes</strong>.</p>
    <div class="otp">{otp}</div>
    <p>If you did not create an account, please ignore this email.</p>
    <div class="footer">
      &copy; {settings.EMAIL_FROM_NAME} &nbsp;|&nbsp; {settings.EMAIL_FROM}
    </div>
  </div>
</body>
</html>
"""
    plain_body = (
        f"{greeting}\n\nYour {settings.EMAIL_FROM_NAME} verification code is: {otp}\n\n"
        f"Expires in {minutes} minutes."
    )
    return send_email(to, subject, html_body, plain_body)


def send_welcome_email(to: str, name: str) -> bool:
    """Greet a freshly verified customer. Failures are only logged."""
    subject = f"Welcome to {settings.EMAIL_FROM_NAME}!"
    html_body = f"""
<!DOCTYPE html>
<html>
<head>
  <meta charset="utf-8">
  <style>{_BASE_STYLE.format()}
    .button {{ display: inline-block; background: #c2410c; color: #fff; padding: 12px 24px;
               border-radius: 6px; text-decoration: none; font-weight: 600; }}
  </style>
</head>
<body>
  <div class="container">
    <div class="logo">{settings.EMAIL_FROM_NAME}</div>
    <p>Hi {name},</p>
    <p>Your email has been verified and your account is ready.
       Crispy, hand-rolled papads are just a click away.</p>
    <p><a class="button" href="{settings.SITE_URL}/products">Start shopping</a></p>
    <div class="footer">
      &copy; {settings.EMAIL_FROM_NAME} &nbsp;|&nbsp; {settings.EMAIL_FROM}
    </div>
  </div>
</body>
</html>
"""
    plain_body = (
        f"Hi {name},\n\nYour email has been verified and your account is ready.\n"
        f"Start shopping: {settings.SITE_URL}/products\n\n— {settings.EMAIL_FROM_NAME}"
    )
    return send_email(to, subject, html_body, plain_body)
