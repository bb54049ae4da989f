"""
Project: Food Truck Kiosk

Description:
The single store-wide settings row. Created with defaults on first read and
changed by partial patch: only the keys provided are touched.
"""

import logging

from models import db, StoreSettings, DEFAULT_CATEGORIES

logger = logging.getLogger(__name__)

# payload key -> (column, expected type)
_PATCHABLE = {
    "onlinePaymentEnabled": ("online_payment_enabled", bool),
    "payAtCounterEnabled": ("pay_at_counter_enabled", bool),
    "categories": ("categories", list),
}


class SettingsError(ValueError):
    pass


def get_settings():
    settings = db.session.get(StoreSettings, 1)
    if settings is None:
        settings = StoreSettings(
            id=1,
            online_payment_enabled=True,
            pay_at_counter_enabled=True,
            categories=list(DEFAULT_CATEGORIES),
        )
        db.session.add(settings)
        db.session.commit()
        logger.info("Created default store settings")
    return settings


def update_settings(patch):
    unknown = sorted(set(patch) - set(_PATCHABLE))
    if unknown:
        raise SettingsError(f"Unknown settings: {', '.join(unknown)}")

    changes = {}
    for key, value in patch.items():
        column, kind = _PATCHABLE[key]
        if not isinstance(value, kind):
            raise SettingsError(f"{key} must be a {kind.__name__}")
        if kind is list:
            if not all(isinstance(c, str) and c.strip() for c in value):
                raise SettingsError(f"{key} must contain non-empty names")
            value = [c.strip() for c in value]
        changes[column] = value

    settings = get_settings()
    for column, value in changes.items():
        setattr(settings, column, value)
    db.session.commit()
    logger.info("Settings updated: %s", settings.to_dict())
    return settings
