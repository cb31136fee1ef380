"""Services package for the keyauth client."""

from keyauth.services.dispatcher import Dispatcher, classify_error
from keyauth.services.event_bus import EventBus
from keyauth.services.store import (
    AppInfo,
    ClientSnapshot,
    ClientStore,
    OnlineUser,
    Session,
    Subscription,
    User,
)

__all__ = [
    "Dispatcher",
    "classify_error",
    "EventBus",
    "ClientStore",
    "ClientSnapshot",
    "Session",
    "User",
    "Subscription",
    "AppInfo",
    "OnlineUser",
]
