import html
import logging
import os
import smtplib
from datetime import datetime, timezone
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from typing import Any, Dict, Optional, Tuple

from burbar_admin.config import load_config
from services.store import parse_address, short_id

logger = logging.getLogger(__name__)

SUPPORT_EMAIL = "support@burbarshop.com"


def _smtp_config() -> Dict[str, Any]:
    cfg = load_config().get("smtp", {})
    return cfg if isinstance(cfg, dict) else {}


def _get_smtp_credentials(smtp_cfg: Dict[str, Any]) -> Tuple[Optional[str], Optional[str]]:
    """Retrieve SMTP credentials from environment variables."""
    email_var = smtp_cfg.get("sender_email_env_var", "SMTP_EMAIL")
    pass_var = smtp_cfg.get("password_env_var", "SMTP_PASSWORD")
    return os.environ.get(email_var), os.environ.get(pass_var)


def send_email(to: str, subject: str, html_body: str) -> bool:
    """Send an HTML email through the configured SMTP server.

    With SMTP disabled the message is only logged and reported as not sent.
    """
    smtp_cfg = _smtp_config()
    if not smtp_cfg.get("enabled", False):
        logger.info("Email would be sent (SMTP disabled): to=%s subject=%s", to, subject)
        return False

    sender_email, password = _get_smtp_credentials(smtp_cfg)
    if not sender_email or not password:
        logger.error("SMTP credentials not found in environment.")
        return False

    try:
        msg = MIMEMultipart("alternative")
        msg["From"] = smtp_cfg.get("from_address") or sender_email
        msg["To"] = to
        msg["Subject"] = subject
        msg.attach(MIMEText(html_body, "html"))

        host = smtp_cfg.get("host", "smtp.gmail.com")
        port = int(smtp_cfg.get("port", 587))

        server = smtplib.SMTP(host, port)
        try:
            server.starttls()
            server.login(sender_email, password)
            server.sendmail(sender_email, to, msg.as_string())
        finally:
            server.quit()

        logger.info("Email sent to %s", to)
        return True

    except (smtplib.SMTPException, OSError) as e:
        logger.error("Failed to send email to %s: %s", to, e)
        return False


def shipping_notification(
    order: Dict[str, Any],
    tracking_number: str,
    tracking_url: Optional[str] = None,
) -> Tuple[str, str]:
    """Build (subject, html) for the "your order has shipped" email."""
    ref = short_id(order["id"])
    address = parse_address(order.get("shipping_address"))
    esc = html.escape

    track_button = ""
    if tracking_url:
        track_button = (
            '<p style="text-align: center;">'
            f'<a href="{esc(tracking_url, quote=True)}" '
            'style="background-color: #0ea5e9; color: white; padding: 12px 24px; text-decoration: none;">'
            "Track Your Package</a></p>"
        )

    address_lines = ""
    if address:
        name = f"{address.get('firstName', '')} {address.get('lastName', '')}".strip()
        city_line = f"{address.get('city', '')}, {address.get('postalCode', '')}".strip(", ")
        parts = [name, address.get("address", ""), city_line, address.get("country", "")]
        address_lines = "".join(f"<p>{esc(str(p))}</p>" for p in parts if p)

    item_lines = "".join(
        f"<p><strong>{esc(str(item.get('product_title', '')))}</strong>"
        f" ({esc(str(item.get('size') or '-'))}) x {int(item.get('quantity') or 0)}</p>"
        for item in order.get("items", [])
    )

    body = f"""<!DOCTYPE html>
<html>
<head><meta charset="utf-8"><title>Your Order Has Shipped!</title></head>
<body style="font-family: Arial, sans-serif; max-width: 600px; margin: 0 auto; padding: 20px;">
  <h1 style="color: #333; text-align: center;">Your Order Has Shipped!</h1>
  <p style="color: #666; text-align: center;">Your Burbar Shop order is on its way!</p>
  <h2>Tracking Information</h2>
  <p><strong>Order ID:</strong> #{ref}</p>
  <p><strong>Tracking Number:</strong> {esc(tracking_number)}</p>
  <p><strong>Shipped Date:</strong> {datetime.now(timezone.utc).date().isoformat()}</p>
  {track_button}
  <h2>Shipping Address</h2>
  {address_lines or "<p>-</p>"}
  <h2>Items Shipped</h2>
  {item_lines or "<p>-</p>"}
  <p style="color: #666; font-size: 12px; text-align: center;">
    This is an automated email. Please do not reply.<br>
    If you have questions, contact us at {SUPPORT_EMAIL}
  </p>
</body>
</html>
"""
    subject = f"Your Burbar Shop order has shipped! #{ref}"
    return subject, body
