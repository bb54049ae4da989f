"""
Project: Food Truck Kiosk

Description:
Main application entry point. Initializes Flask, the database, mail and
Socket.IO, and registers the kiosk, admin board and analytics routes.
"""

import logging
from datetime import date

from flask import Flask, Response, request, jsonify, session
from sqlalchemy.exc import SQLAlchemyError
from werkzeug.exceptions import HTTPException
from werkzeug.security import check_password_hash

import accounting
import lifecycle
from broadcaster import socketio
from config import Config, TestConfig
from lifecycle import KioskError, ValidationError, PaymentPathDisabled, parse_amount
from models import db, User, MenuItem
from notifications import mail
from order_counter import peek_order_number
from settings_store import SettingsError, get_settings, update_settings

logger = logging.getLogger(__name__)


def _present(value):
    """Round every float in a response payload to cents."""
    if isinstance(value, float):
        return round(value, 2)
    if isinstance(value, dict):
        return {k: _present(v) for k, v in value.items()}
    if isinstance(value, list):
        return [_present(v) for v in value]
    return value


def _arg_int(name, default):
    raw = request.args.get(name)
    if raw is None:
        return default
    try:
        return int(raw)
    except ValueError:
        raise ValidationError(f"{name} must be an integer")


def _arg_date(name):
    raw = request.args.get(name)
    if not raw:
        return None
    try:
        return date.fromisoformat(raw)
    except ValueError:
        raise ValidationError(f"{name} must be a YYYY-MM-DD date")


def _arg_flag(name, default=False):
    raw = request.args.get(name)
    if raw is None:
        return default
    return raw.lower() in {"1", "true", "yes"}


def _year_month():
    today = date.today()
    year = _arg_int("year", today.year)
    month = _arg_int("month", today.month)
    if not 1 <= year <= 9998:
        raise ValidationError("year must be between 1 and 9998")
    if not 1 <= month <= 12:
        raise ValidationError("month must be between 1 and 12")
    return year, month


def create_app(testing: bool = False):
    app = Flask(__name__)
    app.config.from_object(TestConfig if testing else Config)

    logging.basicConfig(
        level=app.config["LOG_LEVEL"],
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    db.init_app(app)
    mail.init_app(app)
    socketio.init_app(app, async_mode=app.config["SOCKETIO_ASYNC_MODE"])

    # --------- helpers ---------
    def require_admin():
        if not session.get("user_id"):
            return jsonify({"error": "login_required"}), 401
        u = db.session.get(User, session["user_id"])
        if not u or getattr(u, "role", "") != "admin":
            return jsonify({"error": "admin_only"}), 403

    def payload():
        return request.get_json(silent=True) or {}

    def all_orders():
        return [o.to_dict() for o in lifecycle.list_orders(ignore_reset=True)]

    def menu():
        return [m.to_dict() for m in MenuItem.query.order_by(MenuItem.id).all()]

    # --------- errors ---------
    @app.errorhandler(KioskError)
    def kiosk_error(err):
        return jsonify({"error": err.code, "message": err.message}), err.status_code

    @app.errorhandler(SettingsError)
    def settings_error(err):
        return jsonify({"error": "validation_error", "message": str(err)}), 400

    @app.errorhandler(SQLAlchemyError)
    def storage_error(err):
        db.session.rollback()
        logger.error("Storage failure on %s %s", request.method, request.path, exc_info=err)
        return jsonify({"error": "storage_error", "message": "The order store is unavailable"}), 500

    @app.errorhandler(HTTPException)
    def http_error(err):
        return jsonify({"error": err.name.lower().replace(" ", "_"), "message": err.description}), err.code

    # --------- auth ---------
    @app.post("/login")
    def login():
        data = request.form if request.form else payload()
        username = (data.get("username") or "").strip()
        password = data.get("password") or ""
        user = User.query.filter_by(username=username).first()
        if user and check_password_hash(user.password_hash, password):
            session["user_id"] = user.id
            session["username"] = user.username
            return jsonify({"ok": True})
        return jsonify({"ok": False, "error": "Invalid credentials"}), 401

    @app.post("/logout")
    def logout():
        session.clear()
        return jsonify({"ok": True})

    # ---------- SETTINGS ----------
    @app.get("/api/settings")
    def read_settings():
        return jsonify(get_settings().to_dict())

    @app.patch("/api/settings")
    def patch_settings():
        resp = require_admin()
        if resp:
            return resp
        settings = update_settings(payload())
        return jsonify({"success": True, "settings": settings.to_dict()})

    # ---------- MENU ----------
    @app.get("/api/menu")
    def list_menu():
        return jsonify(menu())

    def apply_menu_fields(m, data):
        if "name" in data:
            if not isinstance(data["name"], str) or not data["name"].strip():
                raise ValidationError("name is required")
            clash = MenuItem.query.filter_by(name=data["name"].strip()).first()
            if clash is not None and clash is not m:
                raise ValidationError(f"{clash.name!r} is already on the menu")
            m.name = data["name"].strip()
        if "price" in data:
            m.price = parse_amount(data["price"], "price", required=True)
        if "category" in data:
            if data["category"] not in get_settings().categories:
                raise ValidationError(f"Unknown category {data['category']!r}")
            m.category = data["category"]
        if "description" in data:
            if not isinstance(data["description"], str):
                raise ValidationError("description must be text")
            m.description = data["description"]
        if "available" in data:
            if not isinstance(data["available"], bool):
                raise ValidationError("available must be true or false")
            m.available = data["available"]
        if "options" in data:
            options = data["options"] or []
            if not isinstance(options, list) or not all(isinstance(o, str) and o.strip() for o in options):
                raise ValidationError("options must be a list of non-empty names")
            m.options = [o.strip() for o in options]
        if "extraOptions" in data:
            extras = data["extraOptions"] or {}
            if not isinstance(extras, dict):
                raise ValidationError("extraOptions must map option names to prices")
            m.extra_options = {k: parse_amount(v, f"extraOptions[{k}]", required=True) for k, v in extras.items()}

    @app.post("/api/menu")
    def create_menu():
        resp = require_admin()
        if resp:
            return resp
        data = payload()
        for field in ("name", "price", "category"):
            if field not in data:
                raise ValidationError(f"{field} is required")
        m = MenuItem(options=[], extra_options={}, available=True, description="")
        apply_menu_fields(m, data)
        db.session.add(m)
        db.session.commit()
        return jsonify(m.to_dict()), 201

    @app.put("/api/menu/<int:item_id>")
    def update_menu(item_id):
        resp = require_admin()
        if resp:
            return resp
        m = db.get_or_404(MenuItem, item_id)
        apply_menu_fields(m, payload())
        db.session.commit()
        return jsonify(m.to_dict())

    @app.delete("/api/menu/<int:item_id>")
    def delete_menu(item_id):
        resp = require_admin()
        if resp:
            return resp
        m = db.get_or_404(MenuItem, item_id)
        db.session.delete(m)
        db.session.commit()
        return jsonify({"ok": True})

    # ---------- ORDERS ----------
    @app.post("/api/orders/quote")
    def quote_order():
        if not get_settings().online_payment_enabled:
            raise PaymentPathDisabled("Online payments are currently disabled")
        data = payload()
        quote = accounting.quote_online_checkout(
            parse_amount(data.get("subtotal"), "subtotal", required=True),
            parse_amount(data.get("tip"), "tip") or 0.0,
            tax_rate=app.config["TAX_RATE"],
            fee_rate=app.config["CARD_FEE_RATE"],
            fee_fixed=app.config["CARD_FEE_FIXED"],
        )
        return jsonify(_present(dict(quote)))

    @app.post("/api/orders")
    def create_order():
        data = payload()
        order = lifecycle.create_order(
            customer_name=data.get("customerName"),
            items=data.get("items"),
            total=data.get("total"),
            customer_email=data.get("customerEmail"),
            tip=data.get("tip"),
            notes=data.get("notes"),
            tax_amount=data.get("taxAmount"),
            convenience_fee=data.get("convenienceFee"),
            stripe_total=data.get("stripeTotal"),
            payment_id=data.get("paymentId"),
            paid=data.get("paid", False),
        )
        return jsonify(order.to_dict()), 201

    @app.get("/api/orders/all")
    def list_orders():
        resp = require_admin()
        if resp:
            return resp
        orders = [o.to_dict() for o in lifecycle.list_orders(ignore_reset=_arg_flag("ignoreReset"))]
        for order in orders:
            order["givenProgress"] = accounting.given_progress(order)
        return jsonify(orders)

    @app.get("/api/orders/summary")
    def items_to_prepare():
        resp = require_admin()
        if resp:
            return resp
        orders = [o.to_dict() for o in lifecycle.list_orders()]
        return jsonify(accounting.pending_item_summary(orders))

    @app.get("/api/orders/counter")
    def order_counter():
        resp = require_admin()
        if resp:
            return resp
        return jsonify({"date": date.today().isoformat(), "counter": peek_order_number()})

    @app.post("/api/orders/reset-timestamp")
    def reset_orders_view():
        resp = require_admin()
        if resp:
            return resp
        settings = lifecycle.reset_order_view()
        return jsonify({"success": True, "ordersResetAt": settings.to_dict()["ordersResetAt"]})

    @app.get("/api/orders/<int:order_id>")
    def get_order(order_id):
        resp = require_admin()
        if resp:
            return resp
        return jsonify(lifecycle.get_order(order_id).to_dict())

    @app.patch("/api/orders/<int:order_id>")
    def complete_order(order_id):
        resp = require_admin()
        if resp:
            return resp
        return jsonify(lifecycle.complete_order(order_id).to_dict())

    @app.patch("/api/orders/<int:order_id>/paid")
    def mark_paid(order_id):
        resp = require_admin()
        if resp:
            return resp
        return jsonify(lifecycle.mark_paid(order_id, payload().get("paid")).to_dict())

    @app.patch("/api/orders/<int:order_id>/revert")
    def revert_order(order_id):
        resp = require_admin()
        if resp:
            return resp
        return jsonify(lifecycle.revert_order(order_id).to_dict())

    @app.patch("/api/orders/<int:order_id>/given")
    def set_item_given(order_id):
        resp = require_admin()
        if resp:
            return resp
        data = payload()
        order = lifecycle.set_item_given(order_id, data.get("itemKey"), data.get("isGiven"))
        return jsonify(order.to_dict())

    @app.put("/api/orders/<int:order_id>")
    def edit_order(order_id):
        resp = require_admin()
        if resp:
            return resp
        data = payload()
        return jsonify(lifecycle.edit_order_items(order_id, data.get("items"), data.get("total")).to_dict())

    @app.delete("/api/orders/<int:order_id>")
    def cancel_order(order_id):
        resp = require_admin()
        if resp:
            return resp
        return jsonify(lifecycle.cancel_order(order_id).to_dict())

    @app.post("/api/orders/<int:order_id>/notify-ready")
    def notify_ready(order_id):
        resp = require_admin()
        if resp:
            return resp
        lifecycle.notify_ready(order_id)
        return jsonify({"success": True})

    # ---------- ANALYTICS ----------
    def windowed(orders):
        period = request.args.get("period", "all")
        try:
            selected = accounting.filter_by_window(
                orders, period, _arg_date("start"), _arg_date("end")
            )
        except ValueError as e:
            raise ValidationError(str(e))
        return period, selected

    @app.get("/api/analytics")
    def analytics():
        resp = require_admin()
        if resp:
            return resp
        orders = all_orders()
        period, selected = windowed(orders)
        items = menu()
        body = {
            "period": period,
            "metrics": accounting.summarize(selected),
            "topItems": accounting.top_selling_items(selected, items),
            "categories": accounting.sales_by_category(selected, items),
            "hourly": accounting.orders_by_hour(selected),
            "revenueTrend": accounting.revenue_trend(selected),
            "payments": accounting.payment_breakdown(selected),
            "waitTime": accounting.average_wait_time(selected),
        }
        if _arg_flag("compare"):
            previous = accounting.previous_period(
                orders, period, _arg_date("start"), _arg_date("end")
            )
            body["comparison"] = accounting.compare_periods(selected, previous)
        return jsonify(_present(body))

    @app.get("/api/analytics/heatmap")
    def heatmap():
        resp = require_admin()
        if resp:
            return resp
        year, month = _year_month()
        return jsonify(_present(accounting.monthly_heatmap(all_orders(), year, month)))

    @app.get("/api/analytics/export.csv")
    def export_csv():
        resp = require_admin()
        if resp:
            return resp
        period, selected = windowed(all_orders())
        filename = f"analytics-{period}-{date.today().isoformat()}.csv"
        return Response(
            accounting.orders_csv(selected),
            mimetype="text/csv",
            headers={"Content-Disposition": f"attachment; filename={filename}"},
        )

    @app.get("/api/reports/tax")
    def tax_report():
        resp = require_admin()
        if resp:
            return resp
        year, month = _year_month()
        report = accounting.monthly_tax_report(all_orders(), year, month, tax_rate=app.config["TAX_RATE"])
        if request.args.get("format") == "csv":
            filename = f"Monthly-Tax-Report-{year}-{month:02d}.csv"
            return Response(
                accounting.tax_report_csv(report),
                mimetype="text/csv",
                headers={"Content-Disposition": f"attachment; filename={filename}"},
            )
        return jsonify(_present(report))

    # ---------- HEALTH ----------
    @app.get("/api/health")
    def health():
        return jsonify({"status": "ok"})

    return app


if __name__ == "__main__":
    app = create_app()
    with app.app_context():
        db.create_all()
    # Runs with eventlet server automatically
    socketio.run(app, host="0.0.0.0", port=5013, debug=True)
