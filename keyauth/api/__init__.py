"""API wrappers for the keyauth client.

This package provides:
- ClientApi for end-user authentication against ``/api/1.2/``
- SellerApi for license and user administration against ``/api/seller/``
"""

from keyauth.api.base import BaseApi
from keyauth.api.client import ClientApi
from keyauth.api.seller import Character, Expiry, Mask, SellerApi

__all__ = [
    "BaseApi",
    "ClientApi",
    "SellerApi",
    "Expiry",
    "Mask",
    "Character",
]
