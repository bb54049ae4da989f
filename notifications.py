"""
Project: Food Truck Kiosk

Description:
Customer email: order confirmation after checkout and "your order is ready"
from the admin board. Confirmation is fire-and-forget: it runs after the order
is saved, its outcome is only logged, and it never fails the checkout.
"""

import logging

from flask import current_app, render_template
from flask_mail import Mail, Message

from broadcaster import socketio
from items import group_items, parse_item

logger = logging.getLogger(__name__)

mail = Mail()


def _context(order):
    lines = []
    for item, quantity in group_items(order["items"]).items():
        name, options = parse_item(item)
        lines.append({"name": name, "options": options, "quantity": quantity})
    return {"order": order, "lines": lines, "store_name": current_app.config["STORE_NAME"]}


def mail_configured():
    cfg = current_app.config
    return bool(cfg.get("MAIL_DEFAULT_SENDER")) and (
        cfg.get("MAIL_SUPPRESS_SEND") or bool(cfg.get("MAIL_USERNAME"))
    )


def send_order_confirmation(order):
    """Send the confirmation email for a serialized order.

    Returns True when the message was handed to the mail transport.
    """
    if not order.get("customerEmail") or not mail_configured():
        logger.info("Skipping confirmation email for order #%s", order.get("orderNumber"))
        return False
    store = current_app.config["STORE_NAME"]
    msg = Message(
        subject=f"Order Confirmation #{order['orderNumber']} - {store}",
        recipients=[order["customerEmail"]],
        html=render_template("emails/order_confirmation.html", **_context(order)),
    )
    mail.send(msg)
    logger.info("Confirmation email sent for order #%s", order["orderNumber"])
    return True


def send_order_ready(order):
    store = current_app.config["STORE_NAME"]
    msg = Message(
        subject=f"Order #{order['orderNumber']} is ready - {store}",
        recipients=[order["customerEmail"]],
        html=render_template("emails/order_ready.html", **_context(order)),
    )
    mail.send(msg)
    logger.info("Ready email sent for order #%s", order["orderNumber"])


def _confirm_in_background(app, order):
    with app.app_context():
        try:
            send_order_confirmation(order)
        except Exception:
            logger.error(
                "Confirmation email for order #%s failed", order.get("orderNumber"), exc_info=True
            )


def dispatch_order_confirmation(order):
    """Queue the confirmation email without waiting for it."""
    app = current_app._get_current_object()
    if app.config.get("MAIL_BACKGROUND", True):
        socketio.start_background_task(_confirm_in_background, app, order)
    else:
        _confirm_in_background(app, order)
