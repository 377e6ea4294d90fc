from __future__ import annotations

from typing import Any

import boto3

from ..observability.logging import get_logger
from ..settings import settings

log = get_logger("email")


class EmailNotConfigured(RuntimeError):
    pass


def _sesv2_client():
    return boto3.client("sesv2", region_name=settings.aws_region)


def send_email(*, to_email: str, subject: str, text: str, html: str | None = None) -> dict[str, Any]:
    to_ = str(to_email or "").strip()
    frm = str(settings.email_from or "").strip()
    if not frm:
        raise EmailNotConfigured("EMAIL_FROM is not set")
    if not to_:
        raise ValueError("missing recipient")

    body: dict[str, Any] = {"Text": {"Data": str(text or "") or "(empty)"}}
    if html:
        body["Html"] = {"Data": html}

    resp = _sesv2_client().send_email(
        FromEmailAddress=frm,
        Destination={"ToAddresses": [to_]},
        Content={
            "Simple": {
                "Subject": {"Data": str(subject or "").strip()[:200]},
                "Body": body,
            }
        },
    )
    msg_id = (resp or {}).get("MessageId") if isinstance(resp, dict) else None
    log.info("email_sent", message_id=msg_id, subject=subject)
    return {"ok": True, "messageId": msg_id}


def password_reset_email(reset_link: str) -> tuple[str, str, str]:
    """(subject, text, html) for a password reset message."""
    subject = "Password Reset Request"
    text = f"Click the following link to reset your password: {reset_link}"
    html = f"""<!DOCTYPE html>
<html lang="en">
  <body style="font-family: Arial, sans-serif; background: #f4f4f7; padding: 24px;">
    <div style="max-width: 480px; margin: auto; background: #ffffff; border-radius: 8px; padding: 32px;">
      <h2>Reset your password</h2>
      <p>We received a request to reset your password for your MemeHub account.</p>
      <p><a href="{reset_link}" style="background: #4f46e5; color: #ffffff; padding: 12px 20px; border-radius: 6px; text-decoration: none;">Reset Password</a></p>
      <p>This link expires in one hour. If you did not request a password reset, you can safely ignore this email.</p>
    </div>
  </body>
</html>"""
    return subject, text, html
