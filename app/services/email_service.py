"""
Email service for quote request notifications.
Uses Flask-Mail for SMTP integration with UTF-8 support.

Every sender returns True/False and never raises: notifications are
best effort and must not affect the operation that triggered them.
"""
import logging
from typing import Iterable, Dict, Any
from flask import current_app
from flask_mail import Mail, Message
from markupsafe import escape

from app.models import OrderStatus
from app.utils.formatters import money_de

logger = logging.getLogger(__name__)

mail = Mail()

STATUS_SUBJECTS = {
    OrderStatus.CONFIRMED.value: 'Angebot erstellt',
    OrderStatus.PROCESSING.value: 'Anfrage in Bearbeitung',
    OrderStatus.SHIPPED.value: 'Versandbestätigung',
    OrderStatus.DELIVERED.value: 'Lieferung abgeschlossen',
    OrderStatus.CANCELLED.value: 'Stornierung',
}

STATUS_MESSAGES = {
    OrderStatus.CONFIRMED.value: 'Wir haben Ihre Angebotsanfrage {number} bearbeitet und ein Angebot für Sie erstellt.',
    OrderStatus.PROCESSING.value: 'Ihre Anfrage {number} befindet sich nun in Bearbeitung.',
    OrderStatus.SHIPPED.value: 'Ihre Bestellung {number} wurde versendet.',
    OrderStatus.DELIVERED.value: 'Ihre Bestellung {number} wurde erfolgreich abgeschlossen.',
    OrderStatus.CANCELLED.value: 'Ihre Anfrage {number} wurde storniert.',
}


def init_mail(app):
    """Initialize Flask-Mail with app."""
    mail.init_app(app)


def _mail_enabled() -> bool:
    """
    Check if mail is configured. With MAIL_SUPPRESS_SEND Flask-Mail still
    builds and dispatches the message, it just skips SMTP.
    """
    cfg = current_app.config
    return bool(cfg.get("MAIL_SERVER") and cfg.get("MAIL_USERNAME"))


def _send(to_email: str, subject: str, text_body: str, html_body: str) -> bool:
    if not to_email:
        logger.warning(f"[EMAIL] No recipient for '{subject}', skipped")
        return False

    if not _mail_enabled():
        logger.warning(f"[MAIL DISABLED] '{subject}' skipped for {to_email}")
        return True

    msg = Message(subject=subject, recipients=[to_email], body=text_body, html=html_body)
    mail.send(msg)
    logger.info(f"[EMAIL] ✓ '{subject}' sent to {to_email}")
    return True


def send_order_created_email(
    to_email: str,
    customer_name: str,
    order_number: str,
    items: Iterable[Dict[str, Any]],
    totals: Dict[str, Any]
) -> bool:
    """
    Send the 'order_created' notification for a new quote request.

    Args:
        to_email: Registered address of the customer
        customer_name: Name used in the greeting
        order_number: Human-readable order number
        items: Dicts with product_name, quantity, unit_price, total_price
        totals: Dict with net_total, discount_amount, tax_total, gross_total

    Returns:
        True if sent (or mail disabled), False on failure
    """
    try:
        items = list(items)
        subject = f"Ihre Angebotsanfrage {order_number}"

        rows = "".join(
            f"""
            <tr>
                <td>{escape(item['product_name'])}</td>
                <td align="center">{item['quantity']}</td>
                <td align="right">{money_de(item['unit_price'])}</td>
                <td align="right">{money_de(item['total_price'])}</td>
            </tr>
            """
            for item in items
        )
        discount_row = ""
        if totals.get('discount_amount'):
            discount_row = f"<p>Rabattcode: -{money_de(totals['discount_amount'])}</p>"

        html_body = f"""
        <!DOCTYPE html>
        <html>
        <head><meta charset="UTF-8"></head>
        <body style="font-family: Arial, sans-serif; color: #333;">
            <h2>Vielen Dank für Ihre Anfrage</h2>
            <p>Hallo {escape(customer_name)},</p>
            <p>wir haben Ihre Angebotsanfrage <strong>{escape(order_number)}</strong> erhalten.</p>
            <table border="1" cellpadding="8" cellspacing="0" width="100%">
                <tr><th>Artikel</th><th>Menge</th><th>Einzelpreis (netto)</th><th>Summe (netto)</th></tr>
                {rows}
            </table>
            {discount_row}
            <p>Summe netto: {money_de(totals.get('net_total'))}<br/>
               MwSt.: {money_de(totals.get('tax_total'))}<br/>
               <strong>Gesamt brutto: {money_de(totals.get('gross_total'))}</strong></p>
            <p style="font-size: 13px; color: #666;">Unverbindliche Anfrage, kein Kaufvertrag.</p>
        </body>
        </html>
        """

        lines = "\n".join(
            f"- {item['quantity']} x {item['product_name']}: {money_de(item['total_price'])}"
            for item in items
        )
        text_body = f"""Hallo {customer_name},

wir haben Ihre Angebotsanfrage {order_number} erhalten.

{lines}

Summe netto: {money_de(totals.get('net_total'))}
MwSt.: {money_de(totals.get('tax_total'))}
Gesamt brutto: {money_de(totals.get('gross_total'))}
"""
        return _send(to_email, subject, text_body, html_body)

    except Exception as e:
        logger.exception(f"[EMAIL] ✗ Error sending order notification for {order_number}: {e}")
        return False


def send_order_status_email(to_email: str, customer_name: str, order_number: str, status: str) -> bool:
    """Notify the customer about a status change. Pending has no mail."""
    if status not in STATUS_SUBJECTS:
        return True

    try:
        subject = f"{STATUS_SUBJECTS[status]} - {order_number}"
        message = STATUS_MESSAGES[status].format(number=order_number)
        portal_url = current_app.config.get('PORTAL_URL', '')

        html_body = f"""
        <!DOCTYPE html>
        <html>
        <head><meta charset="UTF-8"></head>
        <body style="font-family: Arial, sans-serif; color: #333;">
            <p>Hallo {escape(customer_name)},</p>
            <p>{message}</p>
            <p><a href="{portal_url}/anfragen">Zu Ihren Anfragen</a></p>
        </body>
        </html>
        """
        text_body = f"Hallo {customer_name},\n\n{message}\n\n{portal_url}/anfragen\n"
        return _send(to_email, subject, text_body, html_body)

    except Exception as e:
        logger.exception(f"[EMAIL] ✗ Error sending status notification for {order_number}: {e}")
        return False
