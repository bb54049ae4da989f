"""
Project: Food Truck Kiosk

Description:
Runtime configuration. Values come from the environment (a local .env file is
loaded first) and are applied with app.config.from_object(Config).
"""

import os
from dotenv import load_dotenv

BASE_DIR = os.path.abspath(os.path.dirname(__file__))
load_dotenv(os.path.join(BASE_DIR, ".env"))


def _env_bool(name, default):
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in {"1", "true", "yes", "on"}


class Config:
    SECRET_KEY = os.getenv("SECRET_KEY", "dev-key")
    SQLALCHEMY_DATABASE_URI = os.getenv("DATABASE_URL", "sqlite:///" + os.path.join(BASE_DIR, "kiosk.db"))
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
    SOCKETIO_ASYNC_MODE = os.getenv("SOCKETIO_ASYNC_MODE", "eventlet")

    STORE_NAME = os.getenv("STORE_NAME", "Chaat Mahal Food Truck")

    # Flask-Mail
    MAIL_SERVER = os.getenv("MAIL_SERVER", "smtp.gmail.com")
    MAIL_PORT = int(os.getenv("MAIL_PORT", "587"))
    MAIL_USE_TLS = _env_bool("MAIL_USE_TLS", True)
    MAIL_USERNAME = os.getenv("EMAIL_USER")
    MAIL_PASSWORD = os.getenv("EMAIL_PASS")
    MAIL_DEFAULT_SENDER = os.getenv("MAIL_DEFAULT_SENDER") or os.getenv("EMAIL_USER")
    # Send from a background task so a slow SMTP server never holds up checkout
    MAIL_BACKGROUND = _env_bool("MAIL_BACKGROUND", True)

    # Online checkout pricing
    TAX_RATE = float(os.getenv("TAX_RATE", "0.0825"))
    CARD_FEE_RATE = float(os.getenv("CARD_FEE_RATE", "0.029"))
    CARD_FEE_FIXED = float(os.getenv("CARD_FEE_FIXED", "0.30"))


class TestConfig(Config):
    TESTING = True
    WTF_CSRF_ENABLED = False
    SQLALCHEMY_DATABASE_URI = "sqlite:///:memory:"
    SOCKETIO_ASYNC_MODE = "threading"
    MAIL_SUPPRESS_SEND = True
    MAIL_DEFAULT_SENDER = "kiosk@example.com"
    MAIL_BACKGROUND = False
