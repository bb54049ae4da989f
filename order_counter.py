"""
Project: Food Truck Kiosk

Description:
Per-day order numbers. Each calendar date has its own row; the first order of
a day gets 1. Increments are done in the database and serialized with a
process lock so two simultaneous checkouts never share a number.
"""

import logging
import threading
from datetime import date

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError

from models import db, OrderCounter

logger = logging.getLogger(__name__)

_lock = threading.Lock()


def _date_key(today):
    return (today or date.today()).isoformat()


def _repair_if_corrupt(key):
    row = db.session.get(OrderCounter, key)
    if row is None:
        return False
    if not isinstance(row.counter, int) or row.counter < 0:
        logger.warning("Order counter for %s held %r, restarting from 0", key, row.counter)
        row.counter = 0
        db.session.flush()
    return True


def next_order_number(today=None):
    key = _date_key(today)
    with _lock:
        if _repair_if_corrupt(key):
            db.session.execute(
                update(OrderCounter)
                .where(OrderCounter.date == key)
                .values(counter=OrderCounter.counter + 1)
            )
        else:
            db.session.add(OrderCounter(date=key, counter=1))
            try:
                db.session.flush()
            except IntegrityError:
                # another process opened the day first
                db.session.rollback()
                db.session.execute(
                    update(OrderCounter)
                    .where(OrderCounter.date == key)
                    .values(counter=OrderCounter.counter + 1)
                )
        number = db.session.execute(
            select(OrderCounter.counter).where(OrderCounter.date == key)
        ).scalar_one()
        db.session.commit()
    return number


def peek_order_number(today=None):
    """Last number issued for the day, 0 if none yet."""
    row = db.session.get(OrderCounter, _date_key(today))
    if row is None or not isinstance(row.counter, int) or row.counter < 0:
        return 0
    return row.counter
