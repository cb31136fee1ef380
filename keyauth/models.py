"""Event kinds and data shapes shared by the dispatch pipeline."""

from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import Any, Mapping, Union

from pydantic import BaseModel, ConfigDict


class ClientEvent(str, Enum):
    """Every event kind a :class:`~keyauth.api.ClientApi` can publish.

    Endpoint kinds double as the ``type`` query parameter sent to the API.
    """

    INIT = "init"
    LOG_IN = "login"
    LOG_OUT = "logout"
    REGISTER = "register"
    LICENSE = "license"
    FETCH_STATS = "fetchStats"
    BAN = "ban"
    CHANGE_USERNAME = "changeUsername"
    CHECK_BLACKLIST = "checkblacklist"
    CHECK = "check"
    DOWNLOAD = "file"
    FETCH_ONLINE = "fetchOnline"
    FORGOT_PASSWORD = "forgot"
    CHAT_GET = "chatget"
    GET_VAR = "getvar"
    LOG = "log"
    CHAT_SEND = "chatsend"
    SET_VAR = "setvar"
    UPGRADE = "upgrade"
    WEBHOOK = "webhook"
    VAR = "var"
    METADATA = "metadata"
    # Cross-cutting kinds
    REQUEST = "request"
    RESPONSE = "response"
    ERROR = "error"
    RATE_LIMIT = "ratelimit"
    INSTANCE = "instance"


class SellerEvent(str, Enum):
    """Every event kind a :class:`~keyauth.api.SellerApi` can publish."""

    CREATE_LICENSE = "add"
    VERIFY_LICENSE = "verify"
    CREATE_USER_FROM_LICENSE = "activate"
    DELETE_LICENSE = "del"
    DELETE_MULTIPLE_LICENSE = "delmultiple"
    DELETE_UNUSED_LICENSE = "delunused"
    DELETE_USED_LICENSE = "delused"
    DELETE_ALL_LICENSE = "delalllicenses"
    FETCH_ALL_LICENSE = "fetchallkeys"
    ADD_TIME_TO_UNUSED = "addtime"
    BAN_LICENSE = "ban"
    UNBAN_LICENSE = "unban"
    GET_LICENSE = "getkey"
    SET_LICENSE_NOTE = "setnote"
    GET_LICENSE_INFO = "info"
    CREATE_USER = "adduser"
    DELETE_EXISTING_USER = "deluser"
    DELETE_EXPIRED_USERS = "delexpusers"
    RESET_USER_HWID = "resetuser"
    RESET_ALL_USERS_HWID = "resetalluser"
    ADD_USER_HWID = "addhwiduser"
    SET_USER_VAR = "setvar"
    GET_USER_VAR = "getvar"
    FETCH_ALL_USER_VARS = "fetchalluservars"
    DELETE_USER_VAR = "deluservar"
    DELETE_USER_VAR_BY_NAME = "massUserVarDelete"
    DELETE_USER_SUB = "delsub"
    SUBTRACT_USER_SUB = "subtract"
    COUNT_SUBS = "countsubs"
    EXTEND_USERS_SUB = "extend"
    # Cross-cutting kinds
    REQUEST = "request"
    RESPONSE = "response"
    ERROR = "error"
    RATE_LIMIT = "ratelimit"
    INSTANCE = "instance"


EventType = Union[ClientEvent, SellerEvent]


class ErrorCode(str, Enum):
    """Closed set of classifications carried by ``error`` events."""

    SESSION_KILLED = "sessionKilled"
    NO_SESSION_ID = "noSessionID"
    NOT_INITIALIZED = "notInitialized"
    NOT_LOGGED_IN = "notLoggedIn"
    UNSUPPORTED_VAR_TYPE = "unsupportedVarType"
    UNKNOWN = "unknown"
    NO_CHAT_CHANNEL = "noChatChannel"
    INVALID_CLIENT_API = "invalidClientApi"


class ApiResponse(BaseModel):
    """Normalized result of one API call.

    Every endpoint returns ``success`` and ``message``; anything else the
    server sends is kept as an extra field. Instances are frozen so the value
    handed back to the caller and the one broadcast to subscribers can be the
    same object.
    """

    model_config = ConfigDict(extra="allow", frozen=True)

    success: bool = False
    message: str = ""
    elapsed_ms: int = 0

    @classmethod
    def from_payload(cls, payload: Mapping[str, Any], **overrides: Any) -> "ApiResponse":
        """Build a result from a decoded body, tolerating missing or null
        ``success``/``message``."""
        data = dict(payload)
        data.update(overrides)
        data["success"] = data.get("success") is True
        data["message"] = str(data.get("message") or "")
        return cls(**data)

    def get(self, key: str, default: Any = None) -> Any:
        """Read a declared or extra field by its wire name."""
        if key in type(self).model_fields:
            return getattr(self, key)
        return (self.model_extra or {}).get(key, default)

    def fields(self) -> dict[str, Any]:
        """All fields, declared and extra, as a new plain dict."""
        return self.model_dump()

    def with_fields(self, **changes: Any) -> "ApiResponse":
        """Copy with ``changes`` applied; the original is left untouched."""
        data = self.fields()
        data.update(changes)
        return type(self).from_payload(data)


@dataclass(frozen=True)
class LogicalRequest:
    """A caller's intent before it is encoded for the transport.

    Attributes:
        endpoint: Event kind of the endpoint, also sent as ``type``
        parameters: Query parameters (without static credentials)
        skip_response: Do not publish the ``response`` event
        skip_error: Do not publish the ``error`` event on ``success: false``
    """

    endpoint: EventType
    parameters: Mapping[str, str] = field(default_factory=dict)
    skip_response: bool = False
    skip_error: bool = False

    def __post_init__(self) -> None:
        params = {"type": self.endpoint.value}
        params.update({k: str(v) for k, v in self.parameters.items() if v is not None})
        object.__setattr__(self, "parameters", MappingProxyType(params))


@dataclass(frozen=True)
class RequestEvent:
    """Audit record published for every completed call."""

    type: EventType
    url: str
    params: Mapping[str, str]
    response: ApiResponse
    elapsed_ms: int


@dataclass(frozen=True)
class ErrorEvent:
    """Published when the API answers ``success: false``."""

    type: EventType
    error_code: ErrorCode
    message: str
    payload: Mapping[str, Any] = field(default_factory=dict)
    success: bool = False


@dataclass(frozen=True)
class App:
    """Application credentials from the KeyAuth dashboard."""

    name: str
    ownerid: str
    version: str = "1.0"

