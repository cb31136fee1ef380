"""Administrative client for the KeyAuth seller API (``/api/seller/``).

Endpoints are grouped by what they act on: ``seller.license`` and
``seller.user``, each with nested groups (``seller.license.delete``,
``seller.user.var.delete``, ...). Every group shares its parent's dispatcher.
"""

from enum import Enum
from typing import Iterable, Optional

from keyauth.api.base import BaseApi
from keyauth.core.config import ClientOptions, settings
from keyauth.exceptions import ConfigurationError
from keyauth.models import ApiResponse, SellerEvent
from keyauth.transport.base import BaseTransport


class Expiry(str, Enum):
    """Common license durations, in days."""

    LIFETIME = "99999"
    ONE_YEAR = "365"
    SIX_MONTHS = "180"
    THREE_MONTHS = "90"
    TWO_MONTHS = "60"
    ONE_MONTH = "30"
    TWO_WEEKS = "14"
    SEVEN_DAYS = "7"
    FIVE_DAYS = "5"
    THREE_DAYS = "3"
    TWO_DAYS = "2"
    ONE_DAY = "1"
    TWELVE_HOURS = "0.5"
    TEN_HOURS = "0.416666667"
    FIVE_HOURS = "0.208333335"
    THREE_HOURS = "0.125"
    ONE_HOUR = "0.0416666667"
    THIRTY_MINUTES = "0.0208333334"
    FIFTEEN_MINUTES = "0.0104166667"
    TEN_MINUTES = "0.0069444445"


class Mask(str, Enum):
    """License key masks. ``*`` is replaced by a generated character."""

    DEFAULT = "****-***-****"
    FOURS = "****-****-****"
    THREES = "***-***-***"
    ALL = "************"
    SPLIT = "******-******"


class Character(str, Enum):
    RANDOM = "1"
    UPPERCASE = "2"
    LOWERCASE = "3"


DEFAULT_OWNER = "KeyAuthPy"
DEFAULT_NOTE = "Generated via KeyAuthPy/Seller client"

# Server field -> exposed field
_KEY_FIELDS = {
    "id": "id",
    "key": "key",
    "note": "note",
    "expires": "expires",
    "status": "status",
    "level": "level",
    "genby": "gen_by",
    "gendate": "gen_date",
    "usedon": "used_on",
    "usedby": "used_by",
    "app": "app",
    "banned": "banned",
}

_LICENSE_INFO_FIELDS = {
    "duration": "duration",
    "hwid": "hwid",
    "note": "note",
    "status": "status",
    "level": "level",
    "createdby": "created_by",
    "usedby": "used_by",
    "usedon": "used_on",
    "creationdate": "creation_date",
}


def _flag(value: bool) -> str:
    return "1" if value else "0"


def _value(value) -> Optional[str]:
    return value.value if isinstance(value, Enum) else value


def _created_keys(result: ApiResponse) -> ApiResponse:
    keys = result.get("keys")
    if keys is None:
        keys = [result.get("key")] if result.get("key") is not None else []
    return ApiResponse(
        success=result.success,
        message=result.message,
        elapsed_ms=result.elapsed_ms,
        keys=list(keys),
    )


def _renamed_keys(result: ApiResponse) -> ApiResponse:
    keys = result.get("keys")
    if not isinstance(keys, list):
        return result
    return result.with_fields(
        keys=[
            {exposed: key.get(server) for server, exposed in _KEY_FIELDS.items()}
            for key in keys
            if isinstance(key, dict)
        ]
    )


def _license_info(result: ApiResponse) -> ApiResponse:
    fields = {exposed: result.get(server) for server, exposed in _LICENSE_INFO_FIELDS.items()}
    return ApiResponse(
        success=result.success,
        message="Successfully retrieved license information" if result.success else result.message,
        elapsed_ms=result.elapsed_ms,
        **fields,
    )


class _Group:
    """A named group of endpoints bound to one SellerApi."""

    def __init__(self, api: "SellerApi"):
        self._api = api


class LicenseDeleteService(_Group):
    async def single(self, license: str, delete_user_too: bool = False) -> ApiResponse:
        return await self._api._call(
            SellerEvent.DELETE_LICENSE,
            {"key": license, "userToo": _flag(delete_user_too)},
        )

    async def multiple(self, licenses: Iterable[str], delete_user_too: bool = False) -> ApiResponse:
        return await self._api._call(
            SellerEvent.DELETE_MULTIPLE_LICENSE,
            {"key": ", ".join(licenses), "userToo": _flag(delete_user_too)},
        )

    async def unused(self) -> ApiResponse:
        return await self._api._call(SellerEvent.DELETE_UNUSED_LICENSE)

    async def used(self) -> ApiResponse:
        return await self._api._call(SellerEvent.DELETE_USED_LICENSE)

    async def all(self) -> ApiResponse:
        return await self._api._call(SellerEvent.DELETE_ALL_LICENSE)


class LicenseService(_Group):
    """License key management."""

    def __init__(self, api: "SellerApi"):
        super().__init__(api)
        self.delete = LicenseDeleteService(api)

    async def create(
        self,
        expiry: Expiry | str = Expiry.ONE_DAY,
        mask: Mask | str = Mask.DEFAULT,
        level: int | str = 1,
        amount: int | str = 1,
        owner: str = DEFAULT_OWNER,
        character: Character | str = Character.RANDOM,
        note: str = DEFAULT_NOTE,
    ) -> ApiResponse:
        """Generate license keys. The result always lists them under ``keys``."""
        return await self._api._call(
            SellerEvent.CREATE_LICENSE,
            {
                "format": "JSON",
                "expiry": _value(expiry),
                "mask": _value(mask),
                "level": level,
                "amount": amount,
                "owner": owner,
                "character": _value(character),
                "note": note,
            },
            reshape=_created_keys,
        )

    async def verify(self, license: str) -> ApiResponse:
        """Check that a license key exists."""
        return await self._api._call(SellerEvent.VERIFY_LICENSE, {"key": license})

    async def activate(self, license: str, username: str, password: str) -> ApiResponse:
        """Create a user from a license key."""
        return await self._api._call(
            SellerEvent.CREATE_USER_FROM_LICENSE,
            {"key": license, "user": username, "pass": password},
        )

    async def fetch_all(self) -> ApiResponse:
        return await self._api._call(SellerEvent.FETCH_ALL_LICENSE, reshape=_renamed_keys)

    async def add_time(self, time: str) -> ApiResponse:
        """Add ``time`` days to every unused license key."""
        return await self._api._call(SellerEvent.ADD_TIME_TO_UNUSED, {"time": time})

    async def ban(self, license: str, reason: str, ban_user_too: bool = False) -> ApiResponse:
        return await self._api._call(
            SellerEvent.BAN_LICENSE,
            {"key": license, "reason": reason, "userToo": _flag(ban_user_too)},
        )

    async def unban(self, license: str) -> ApiResponse:
        return await self._api._call(SellerEvent.UNBAN_LICENSE, {"key": license})

    async def retrieve(self, username: str) -> ApiResponse:
        """License key a user registered with."""
        return await self._api._call(SellerEvent.GET_LICENSE, {"user": username})

    async def set_note(self, license: str, note: str) -> ApiResponse:
        return await self._api._call(SellerEvent.SET_LICENSE_NOTE, {"key": license, "note": note})

    async def get_info(self, license: str) -> ApiResponse:
        return await self._api._call(
            SellerEvent.GET_LICENSE_INFO, {"key": license}, reshape=_license_info
        )


class UserDeleteService(_Group):
    async def existing(self, username: str) -> ApiResponse:
        return await self._api._call(SellerEvent.DELETE_EXISTING_USER, {"user": username})

    async def expired(self) -> ApiResponse:
        return await self._api._call(SellerEvent.DELETE_EXPIRED_USERS)


class UserHwidService(_Group):
    async def reset(self, username: str) -> ApiResponse:
        return await self._api._call(SellerEvent.RESET_USER_HWID, {"user": username})

    async def reset_all(self) -> ApiResponse:
        return await self._api._call(SellerEvent.RESET_ALL_USERS_HWID)

    async def add(self, username: str, hwid: str) -> ApiResponse:
        """Allow one more hwid for a user."""
        return await self._api._call(SellerEvent.ADD_USER_HWID, {"user": username, "hwid": hwid})


class UserVarDeleteService(_Group):
    async def single(self, username: str, var_name: str) -> ApiResponse:
        return await self._api._call(
            SellerEvent.DELETE_USER_VAR, {"user": username, "var": var_name}
        )

    async def by_name(self, var_name: str) -> ApiResponse:
        """Delete ``var_name`` from every user."""
        return await self._api._call(SellerEvent.DELETE_USER_VAR_BY_NAME, {"name": var_name})


class UserVarService(_Group):
    def __init__(self, api: "SellerApi"):
        super().__init__(api)
        self.delete = UserVarDeleteService(api)

    async def set(
        self, username: str, var_name: str, var_data: str, readonly: bool = False
    ) -> ApiResponse:
        return await self._api._call(
            SellerEvent.SET_USER_VAR,
            {"user": username, "var": var_name, "data": var_data, "readonly": _flag(readonly)},
        )

    async def get(self, username: str, var_name: str) -> ApiResponse:
        return await self._api._call(SellerEvent.GET_USER_VAR, {"user": username, "var": var_name})

    async def get_all(self) -> ApiResponse:
        return await self._api._call(SellerEvent.FETCH_ALL_USER_VARS)


class UserSubscriptionService(_Group):
    async def delete(self, username: str, sub_name: str) -> ApiResponse:
        return await self._api._call(
            SellerEvent.DELETE_USER_SUB, {"user": username, "sub": sub_name}
        )

    async def subtract(self, username: str, sub_name: str, seconds: int) -> ApiResponse:
        return await self._api._call(
            SellerEvent.SUBTRACT_USER_SUB,
            {"user": username, "sub": sub_name, "seconds": seconds},
        )

    async def count(self, sub_name: str) -> ApiResponse:
        return await self._api._call(SellerEvent.COUNT_SUBS, {"name": sub_name})

    async def extend(
        self,
        username: str,
        sub_name: str,
        expiry: Expiry | str,
        active_only: bool = False,
    ) -> ApiResponse:
        """Extend a subscription. ``username="all"`` extends every user."""
        return await self._api._call(
            SellerEvent.EXTEND_USERS_SUB,
            {
                "user": username,
                "sub": sub_name,
                "expiry": _value(expiry),
                "activeOnly": _flag(active_only),
            },
        )


class UserService(_Group):
    """User management."""

    def __init__(self, api: "SellerApi"):
        super().__init__(api)
        self.delete = UserDeleteService(api)
        self.hwid = UserHwidService(api)
        self.var = UserVarService(api)
        self.subscription = UserSubscriptionService(api)

    async def create(
        self,
        username: str,
        password: str,
        sub_name: str = "default",
        expiry: Expiry | str = Expiry.ONE_DAY,
    ) -> ApiResponse:
        return await self._api._call(
            SellerEvent.CREATE_USER,
            {"user": username, "pass": password, "sub": sub_name, "expiry": _value(expiry)},
        )


class SellerApi(BaseApi[SellerEvent]):
    """KeyAuth seller API wrapper.

    Example:
        >>> async with SellerApi("seller-key") as seller:
        ...     created = await seller.license.create(expiry=Expiry.ONE_MONTH, amount=5)
        ...     created.keys
    """

    event_kinds = SellerEvent
    logger_name = "seller"

    def __init__(
        self,
        seller_key: str,
        options: Optional[ClientOptions] = None,
        transport: Optional[BaseTransport] = None,
    ):
        if not seller_key:
            raise ConfigurationError("A seller key is required")
        self.default_base_url = settings.seller_base_url
        super().__init__({"sellerkey": seller_key}, options, transport)
        self.license = LicenseService(self)
        self.user = UserService(self)
