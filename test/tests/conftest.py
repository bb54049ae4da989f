"""
Project: Food Truck Kiosk

Description:
Shared fixtures: a fresh in-memory app per test, an admin-authenticated
client, and a Socket.IO client that shares the admin's session.
"""

import os, sys
import pytest
from werkzeug.security import generate_password_hash

# --- Make sure project root is importable ---
PROJECT_ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), os.pardir, os.pardir))
if PROJECT_ROOT not in sys.path:
    sys.path.insert(0, PROJECT_ROOT)

from app import create_app  # noqa: E402
from broadcaster import socketio  # noqa: E402
from models import db, User, MenuItem  # noqa: E402


@pytest.fixture
def app():
    app = create_app(testing=True)
    with app.app_context():
        db.drop_all()
        db.create_all()
        db.session.add(User(username="admin", password_hash=generate_password_hash("password"), role="admin"))
        db.session.commit()
    yield app
    with app.app_context():
        db.session.remove()
        db.drop_all()


@pytest.fixture
def ctx(app):
    """Application context for calling services directly."""
    with app.app_context():
        yield app


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def admin_client(app):
    c = app.test_client()
    resp = c.post("/login", json={"username": "admin", "password": "password"})
    assert resp.status_code == 200
    return c


@pytest.fixture
def socket_client(app, admin_client):
    sio = socketio.test_client(app, flask_test_client=admin_client)
    assert sio.is_connected()
    sio.get_received()
    yield sio
    if sio.is_connected():
        sio.disconnect()


@pytest.fixture
def menu(app):
    with app.app_context():
        db.session.add_all([
            MenuItem(name="Panipuri", price=7.99, category="Chaat",
                     options=["Mild", "Spicy", "Extra Sev (+$1)"], extra_options={"Extra Sev": 1.0}),
            MenuItem(name="Samosa", price=2.0, category="Chaat", options=[], extra_options={}),
            MenuItem(name="Mango Lassi", price=4.5, category="Drinks",
                     options=["Large"], extra_options={"Large": 1.5}),
        ])
        db.session.commit()
        return [m.to_dict() for m in MenuItem.query.order_by(MenuItem.id).all()]
