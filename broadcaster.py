"""
Project: Food Truck Kiosk

Description:
Live update channel. Admin dashboards connect over Socket.IO and re-fetch the
order list whenever they receive "ordersUpdated". The event carries no
payload and is never replayed.
"""

import logging

from flask import session
from flask_socketio import SocketIO, join_room

logger = logging.getLogger(__name__)

ADMIN_ROOM = "admins"
ORDERS_UPDATED = "ordersUpdated"

# Create SocketIO once (no app yet), then bind inside the factory
socketio = SocketIO(cors_allowed_origins="*")


@socketio.on("connect")
def on_connect(auth=None):
    if session.get("user_id"):
        join_room(ADMIN_ROOM)
        logger.debug("Admin %s joined the live order feed", session.get("username"))


def notify_orders_changed():
    try:
        socketio.emit(ORDERS_UPDATED, to=ADMIN_ROOM)
    except Exception:
        logger.warning("Could not broadcast %s", ORDERS_UPDATED, exc_info=True)
