# portl/core/email.py
"""
Email service using Resend for sending transactional emails.
"""
import logging

import resend

from portl.core.config import settings

logger = logging.getLogger(__name__)


def init_resend() -> bool:
    """Initialize Resend with API key. Returns False when email is not configured."""
    if not settings.RESEND_API_KEY:
        return False
    resend.api_key = settings.RESEND_API_KEY
    return True


def format_amount(amount: int, currency: str = "PHP") -> str:
    if amount == 0:
        return "FREE"
    symbol = "₱" if currency == "PHP" else f"{currency} "
    return f"{symbol}{amount:,.2f}"


def send_order_confirmation_email(
    to_email: str,
    order_number: str,
    event_name: str,
    event_date: str,
    venue_name: str,
    ticket_count: int,
    total: str,
    tickets_url: str,
) -> dict:
    """
    Send the order confirmation email.

    Args:
        to_email: Buyer's contact email
        order_number: Human-readable order number (PORTL-XXXXXXXX)
        event_date: Already formatted for display
        total: Already formatted for display ("FREE" for zero)
        tickets_url: Where the buyer can see their tickets

    Returns:
        {"success": bool, ...}; never raises on delivery failure
    """
    if not init_resend():
        logger.warning(f"RESEND_API_KEY not set; skipping confirmation email for {order_number}")
        return {"success": False, "skipped": True}

    ticket_label = "ticket" if ticket_count == 1 else "tickets"
    venue_html = f"<p><strong>Venue:</strong> {venue_name}</p>" if venue_name else ""

    html_content = f"""
    <!DOCTYPE html>
    <html>
    <head>
        <meta charset="utf-8">
        <style>
            body {{ font-family: Arial, sans-serif; line-height: 1.6; color: #333; }}
            .container {{ max-width: 600px; margin: 0 auto; padding: 20px; }}
            .header {{ background: #111827; color: white; padding: 30px; text-align: center; border-radius: 10px 10px 0 0; }}
            .content {{ background: #f9f9f9; padding: 30px; border-radius: 0 0 10px 10px; }}
            .order-box {{ background: white; border: 2px dashed #111827; padding: 20px; text-align: center; margin: 20px 0; border-radius: 8px; }}
            .order-number {{ font-size: 24px; font-weight: bold; letter-spacing: 2px; }}
            .details {{ background: white; padding: 15px; border-radius: 8px; margin: 15px 0; }}
            .button {{ display: inline-block; background: #111827; color: white; padding: 12px 24px; border-radius: 6px; text-decoration: none; }}
            .footer {{ text-align: center; color: #888; font-size: 12px; margin-top: 20px; }}
        </style>
    </head>
    <body>
        <div class="container">
            <div class="header">
                <h1>Your order is confirmed!</h1>
            </div>
            <div class="content">
                <div class="order-box">
                    <p style="margin: 0 0 10px 0; color: #666;">Order Number</p>
                    <div class="order-number">{order_number}</div>
                </div>

                <div class="details">
                    <h3 style="margin-top: 0;">{event_name}</h3>
                    <p><strong>Date:</strong> {event_date}</p>
                    {venue_html}
                    <p><strong>Tickets:</strong> {ticket_count} {ticket_label}</p>
                    <p><strong>Total:</strong> {total}</p>
                </div>

                <p style="text-align: center;">
                    <a class="button" href="{tickets_url}">View your tickets</a>
                </p>
            </div>
            <div class="footer">
                <p>This email was sent by Portl</p>
            </div>
        </div>
    </body>
    </html>
    """

    params = {
        "from": settings.RESEND_FROM_EMAIL,
        "to": [to_email],
        "subject": f"Order Confirmed: {event_name} ({order_number})",
        "html": html_content,
    }

    try:
        response = resend.Emails.send(params)
        logger.info(f"Order confirmation sent to {to_email} for {order_number}")
        return {"success": True, "id": response.get("id")}
    except Exception as e:
        logger.error(f"Failed to send order confirmation to {to_email}: {e}")
        return {"success": False, "error": str(e)}
