"""
Project: Food Truck Kiosk

Description:
Order lifecycle. An order starts Pending and can be completed or cancelled;
both can be reverted back to Pending. Payment ("paid") and hand-over
progress ("givenItems") are tracked separately from the status. Every
successful change is a single-row commit followed by one broadcast.
"""

import logging
import math
from datetime import datetime

from models import (
    db,
    Order,
    STATUS_PENDING,
    STATUS_COMPLETED,
    STATUS_CANCELLED,
)
from broadcaster import notify_orders_changed
from notifications import dispatch_order_confirmation, send_order_ready
from order_counter import next_order_number
from settings_store import get_settings

logger = logging.getLogger(__name__)

# current status -> statuses it may move to
TRANSITIONS = {
    STATUS_PENDING: {STATUS_COMPLETED, STATUS_CANCELLED},
    STATUS_COMPLETED: {STATUS_PENDING},
    STATUS_CANCELLED: {STATUS_PENDING},
}


class KioskError(Exception):
    status_code = 400
    code = "bad_request"

    def __init__(self, message):
        super().__init__(message)
        self.message = message


class ValidationError(KioskError):
    code = "validation_error"


class PaymentPathDisabled(ValidationError):
    code = "payment_path_disabled"


class OrderNotFound(KioskError):
    status_code = 404
    code = "not_found"

    def __init__(self, order_id):
        super().__init__(f"Order {order_id} not found")
        self.order_id = order_id


class InvalidTransition(KioskError):
    status_code = 409
    code = "invalid_transition"


# --------- validation ---------
def parse_amount(value, field, required=False):
    if value is None:
        if required:
            raise ValidationError(f"{field} is required")
        return None
    if isinstance(value, bool):
        raise ValidationError(f"{field} must be a number")
    try:
        amount = float(value)
    except (TypeError, ValueError):
        raise ValidationError(f"{field} must be a number")
    if not math.isfinite(amount):
        raise ValidationError(f"{field} must be a number")
    if amount < 0:
        raise ValidationError(f"{field} cannot be negative")
    return amount


def _item_list(items):
    if not isinstance(items, list) or not items:
        raise ValidationError("items must be a non-empty list")
    cleaned = []
    for item in items:
        if not isinstance(item, str) or not item.strip():
            raise ValidationError("items must be non-empty strings")
        cleaned.append(item.strip())
    return cleaned


def _check_payment_path(payment_id):
    settings = get_settings()
    if payment_id and not settings.online_payment_enabled:
        raise PaymentPathDisabled("Online payments are currently disabled")
    if not payment_id and not settings.pay_at_counter_enabled:
        raise PaymentPathDisabled("Pay at counter is currently disabled")


# --------- persistence helpers ---------
def get_order(order_id):
    order = db.session.get(Order, order_id)
    if order is None:
        raise OrderNotFound(order_id)
    return order


def list_orders(ignore_reset=False):
    query = Order.query
    if not ignore_reset:
        reset_at = get_settings().orders_reset_at
        if reset_at is not None:
            query = query.filter(Order.created_at >= reset_at)
    return query.order_by(Order.created_at.asc(), Order.id.asc()).all()


def _commit(order, event):
    db.session.commit()
    logger.info("Order %s (#%s) %s", order.id, order.order_number, event)
    notify_orders_changed()
    return order


def _move(order_id, target):
    order = get_order(order_id)
    if target not in TRANSITIONS[order.status]:
        raise InvalidTransition(f"Cannot move order {order_id} from {order.status} to {target}")
    order.status = target
    return _commit(order, f"-> {target}")


# --------- operations ---------
def create_order(
    customer_name,
    items,
    total,
    customer_email=None,
    tip=None,
    notes=None,
    tax_amount=None,
    convenience_fee=None,
    stripe_total=None,
    payment_id=None,
    paid=False,
    today=None,
):
    name = (customer_name or "").strip() if isinstance(customer_name, str) else ""
    if not name:
        raise ValidationError("customerName is required")
    items = _item_list(items)
    total = parse_amount(total, "total", required=True)
    tip = parse_amount(tip, "tip") or 0.0
    tax_amount = parse_amount(tax_amount, "taxAmount")
    convenience_fee = parse_amount(convenience_fee, "convenienceFee")
    stripe_total = parse_amount(stripe_total, "stripeTotal")
    email = customer_email.strip() if isinstance(customer_email, str) and customer_email.strip() else None
    payment_id = payment_id or None
    if not isinstance(paid, bool):
        raise ValidationError("paid must be true or false")

    _check_payment_path(payment_id)

    if stripe_total is None and payment_id and (tax_amount is not None or convenience_fee is not None):
        stripe_total = total + (tax_amount or 0.0) + (convenience_fee or 0.0) + tip

    order = Order(
        order_number=next_order_number(today),
        customer_name=name,
        customer_email=email,
        items=items,
        total=total,
        tip=tip,
        tax_amount=tax_amount,
        convenience_fee=convenience_fee,
        stripe_total=stripe_total,
        payment_id=payment_id,
        paid=paid,
        status=STATUS_PENDING,
        given_items={},
        notes=(notes or "").strip(),
    )
    db.session.add(order)
    _commit(order, "created")

    if email:
        dispatch_order_confirmation(order.to_dict())
    return order


def mark_paid(order_id, paid):
    if not isinstance(paid, bool):
        raise ValidationError("paid must be true or false")
    order = get_order(order_id)
    order.paid = paid
    return _commit(order, "marked paid" if paid else "marked unpaid")


def complete_order(order_id):
    return _move(order_id, STATUS_COMPLETED)


def cancel_order(order_id):
    return _move(order_id, STATUS_CANCELLED)


def revert_order(order_id):
    return _move(order_id, STATUS_PENDING)


def set_item_given(order_id, item_key, is_given):
    """Mark every unit of one distinct item string as handed over (or not)."""
    if not isinstance(is_given, bool):
        raise ValidationError("isGiven must be true or false")
    order = get_order(order_id)
    if order.status != STATUS_PENDING:
        raise InvalidTransition("Items can only be marked while the order is Pending")
    if item_key not in (order.items or []):
        raise ValidationError(f"{item_key!r} is not part of order {order_id}")
    given = dict(order.given_items or {})
    given[item_key] = is_given
    order.given_items = given
    return _commit(order, f"item {item_key!r} given={is_given}")


def edit_order_items(order_id, new_items, new_total):
    """Replace items and subtotal of a Pending order.

    new_total must already be the recomputed subtotal (no tax, fee or tip).
    """
    new_items = _item_list(new_items)
    new_total = parse_amount(new_total, "total", required=True)
    order = get_order(order_id)
    if order.status != STATUS_PENDING:
        raise InvalidTransition("Only Pending orders can be edited")
    order.items = new_items
    order.total = new_total
    kept = set(new_items)
    order.given_items = {k: v for k, v in (order.given_items or {}).items() if k in kept}
    return _commit(order, f"items edited ({len(new_items)} units)")


def reset_order_view(now=None):
    """Hide every existing order from the operational board.

    Orders stay in storage; analytics still sees them with ignore_reset.
    """
    settings = get_settings()
    settings.orders_reset_at = now or datetime.now()
    db.session.commit()
    logger.info("Order view reset at %s", settings.orders_reset_at.isoformat())
    notify_orders_changed()
    return settings


def notify_ready(order_id):
    order = get_order(order_id)
    if not order.customer_email:
        raise ValidationError(f"Order {order_id} has no customer email")
    send_order_ready(order.to_dict())
    return order
