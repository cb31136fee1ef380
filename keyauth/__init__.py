"""KeyAuth API client.

Example:
    >>> from keyauth import App, ClientApi, ClientStore
    >>> api = ClientApi(App(name="app", ownerid="abc123"))
    >>> store = ClientStore(api)
"""

from keyauth.api import Character, ClientApi, Expiry, Mask, SellerApi
from keyauth.core.config import ClientOptions, LoggerSettings, RateLimitSettings
from keyauth.exceptions import (
    ConfigurationError,
    KeyauthException,
    RateLimitError,
    TransportError,
)
from keyauth.models import ApiResponse, App, ClientEvent, ErrorCode, SellerEvent
from keyauth.services import ClientStore, EventBus

__version__ = "0.1.0"

__all__ = [
    "App",
    "ApiResponse",
    "ClientApi",
    "SellerApi",
    "ClientStore",
    "EventBus",
    "ClientEvent",
    "SellerEvent",
    "ErrorCode",
    "ClientOptions",
    "RateLimitSettings",
    "LoggerSettings",
    "Expiry",
    "Mask",
    "Character",
    "KeyauthException",
    "TransportError",
    "RateLimitError",
    "ConfigurationError",
]
