"""
Project: Food Truck Kiosk

Description:
SQLAlchemy models for admin users, the menu, orders, the per-day order
counter and the store-wide settings row.
"""

from flask_sqlalchemy import SQLAlchemy
from datetime import datetime

db = SQLAlchemy()

STATUS_PENDING = "Pending"
STATUS_COMPLETED = "Completed"
STATUS_CANCELLED = "Cancelled"
ORDER_STATUSES = (STATUS_PENDING, STATUS_COMPLETED, STATUS_CANCELLED)

DEFAULT_CATEGORIES = ["Chaat", "Wraps", "Drinks"]


def _iso(value):
    return value.isoformat() if value else None


class User(db.Model):
    id = db.Column(db.Integer, primary_key=True)
    username = db.Column(db.String(80), unique=True, nullable=False)
    password_hash = db.Column(db.String(255), nullable=False)
    role = db.Column(db.String(20), default="admin")


class MenuItem(db.Model):
    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(120), unique=True, nullable=False)
    price = db.Column(db.Float, nullable=False)
    category = db.Column(db.String(80), nullable=False)
    description = db.Column(db.String(500), default="")
    available = db.Column(db.Boolean, default=True)
    options = db.Column(db.JSON, default=list)
    # option label -> surcharge in dollars
    extra_options = db.Column(db.JSON, default=dict)

    def to_dict(self):
        return {
            "id": self.id,
            "name": self.name,
            "price": self.price,
            "category": self.category,
            "description": self.description or "",
            "available": self.available,
            "options": list(self.options or []),
            "extraOptions": dict(self.extra_options or {}),
        }


class Order(db.Model):
    id = db.Column(db.Integer, primary_key=True)
    order_number = db.Column(db.Integer, nullable=False, index=True)
    customer_name = db.Column(db.String(120), nullable=False)
    customer_email = db.Column(db.String(255), nullable=True)
    # one entry per unit, e.g. "Panipuri (Mild, Extra Sev)"
    items = db.Column(db.JSON, nullable=False, default=list)
    total = db.Column(db.Float, nullable=False)
    tip = db.Column(db.Float, nullable=False, default=0.0)
    tax_amount = db.Column(db.Float, nullable=True)
    convenience_fee = db.Column(db.Float, nullable=True)
    stripe_total = db.Column(db.Float, nullable=True)
    payment_id = db.Column(db.String(120), nullable=True)
    paid = db.Column(db.Boolean, nullable=False, default=False)
    status = db.Column(db.String(20), nullable=False, default=STATUS_PENDING, index=True)
    given_items = db.Column(db.JSON, nullable=False, default=dict)
    notes = db.Column(db.String(1000), default="")
    created_at = db.Column(db.DateTime, nullable=False, default=datetime.now, index=True)
    updated_at = db.Column(db.DateTime, nullable=True, default=datetime.now, onupdate=datetime.now)

    def to_dict(self):
        return {
            "id": self.id,
            "orderNumber": self.order_number,
            "customerName": self.customer_name,
            "customerEmail": self.customer_email,
            "items": list(self.items or []),
            "total": self.total,
            "tip": self.tip or 0.0,
            "taxAmount": self.tax_amount,
            "convenienceFee": self.convenience_fee,
            "stripeTotal": self.stripe_total,
            "paymentId": self.payment_id,
            "paid": self.paid,
            "status": self.status,
            "givenItems": dict(self.given_items or {}),
            "notes": self.notes or "",
            "createdAt": _iso(self.created_at),
            "updatedAt": _iso(self.updated_at),
        }


class OrderCounter(db.Model):
    __tablename__ = "order_counter"

    date = db.Column(db.String(10), primary_key=True)
    counter = db.Column(db.Integer, nullable=True, default=0)


class StoreSettings(db.Model):
    __tablename__ = "store_settings"

    id = db.Column(db.Integer, primary_key=True)
    online_payment_enabled = db.Column(db.Boolean, nullable=False, default=True)
    pay_at_counter_enabled = db.Column(db.Boolean, nullable=False, default=True)
    categories = db.Column(db.JSON, nullable=False, default=lambda: list(DEFAULT_CATEGORIES))
    orders_reset_at = db.Column(db.DateTime, nullable=True)

    def to_dict(self):
        return {
            "onlinePaymentEnabled": self.online_payment_enabled,
            "payAtCounterEnabled": self.pay_at_counter_enabled,
            "categories": list(self.categories or []),
            "ordersResetAt": _iso(self.orders_reset_at),
        }
