"""End-user client for the KeyAuth API (``/api/1.2/``).

Each endpoint is one coroutine. The session id returned by :meth:`ClientApi.init`
has to be passed back on every other call; pair the client with a
:class:`~keyauth.services.store.ClientStore` to keep it at hand.
"""

import json
from typing import Any, Optional

from keyauth.api.base import BaseApi
from keyauth.core.config import ClientOptions, settings
from keyauth.core.logging import get_log_context
from keyauth.exceptions import ConfigurationError
from keyauth.models import ApiResponse, App, ClientEvent, ErrorCode, ErrorEvent
from keyauth.transport.base import BaseTransport

# User variable the metadata helpers keep their JSON document in
METADATA_VAR = "metaData"


def _online_users(result: ApiResponse) -> ApiResponse:
    users = [
        {"credential": str(user.get("credential", ""))}
        for user in result.get("users") or []
        if isinstance(user, dict)
    ]
    return result.with_fields(users=users, count=len(users))


def _file_contents(result: ApiResponse) -> ApiResponse:
    contents = result.get("contents")
    if not result.success or not isinstance(contents, str):
        return result
    try:
        return result.with_fields(data=bytes.fromhex(contents))
    except ValueError:
        return result


def _metadata(result: ApiResponse) -> ApiResponse:
    raw = result.get("response")
    if not result.success or not isinstance(raw, str):
        return result.with_fields(metadata=None)
    try:
        return result.with_fields(metadata=json.loads(raw))
    except json.JSONDecodeError:
        return result.with_fields(metadata=raw)


class ClientApi(BaseApi[ClientEvent]):
    """KeyAuth client API wrapper.

    Example:
        >>> async with ClientApi(App(name="app", ownerid="abc123")) as api:
        ...     init = await api.init()
        ...     await api.login(init.sessionid, "user", "secret")
    """

    event_kinds = ClientEvent
    logger_name = "client"

    def __init__(
        self,
        app: App,
        options: Optional[ClientOptions] = None,
        transport: Optional[BaseTransport] = None,
    ):
        """Initialize the client.

        Args:
            app: Application name, owner id and version from the dashboard
            options: Per-instance options
            transport: Optional shared transport
        """
        if not app.name or not app.ownerid:
            raise ConfigurationError("App name and ownerid are required")
        self.default_base_url = settings.client_base_url
        self.app = app
        super().__init__({"name": app.name, "ownerid": app.ownerid}, options, transport)

    async def _session_call(
        self,
        event: ClientEvent,
        session_id: str,
        params: Optional[dict] = None,
        **kwargs: Any,
    ) -> ApiResponse:
        if not session_id:
            message = "No session id provided, call init first"
            self.bus.publish(
                ClientEvent.ERROR,
                ErrorEvent(type=event, error_code=ErrorCode.NO_SESSION_ID, message=message),
            )
            self.logger.error(message, extra=get_log_context(tag=event.value))
            return ApiResponse(success=False, message=message)
        return await self._call(event, {**(params or {}), "sessionid": session_id}, **kwargs)

    # Session

    async def init(self, version: Optional[str] = None) -> ApiResponse:
        """Open a session. The result carries ``sessionid`` and ``newSession``."""
        return await self._call(ClientEvent.INIT, {"ver": version or self.app.version})

    async def check(self, session_id: str) -> ApiResponse:
        """Check that the session is still valid."""
        return await self._session_call(ClientEvent.CHECK, session_id)

    async def logout(self, session_id: str) -> ApiResponse:
        return await self._session_call(ClientEvent.LOG_OUT, session_id)

    # Authentication

    async def login(
        self, session_id: str, username: str, password: str, hwid: Optional[str] = None
    ) -> ApiResponse:
        """Log a user in. The result carries the user ``info`` block."""
        return await self._session_call(
            ClientEvent.LOG_IN,
            session_id,
            {"username": username, "pass": password, "hwid": hwid},
        )

    async def register(
        self,
        session_id: str,
        username: str,
        password: str,
        key: str,
        email: Optional[str] = None,
        hwid: Optional[str] = None,
    ) -> ApiResponse:
        """Create a user from a license key and log it in."""
        return await self._session_call(
            ClientEvent.REGISTER,
            session_id,
            {"username": username, "pass": password, "key": key, "email": email, "hwid": hwid},
        )

    async def license(self, session_id: str, key: str, hwid: Optional[str] = None) -> ApiResponse:
        """Log in with a license key only."""
        return await self._session_call(
            ClientEvent.LICENSE, session_id, {"key": key, "hwid": hwid}
        )

    async def upgrade(self, session_id: str, username: str, key: str) -> ApiResponse:
        """Apply a license key to an existing user. The user has to log in again."""
        return await self._session_call(
            ClientEvent.UPGRADE, session_id, {"username": username, "key": key}
        )

    async def forgot_password(self, session_id: str, username: str, email: str) -> ApiResponse:
        return await self._session_call(
            ClientEvent.FORGOT_PASSWORD, session_id, {"username": username, "email": email}
        )

    async def change_username(self, session_id: str, new_username: str) -> ApiResponse:
        return await self._session_call(
            ClientEvent.CHANGE_USERNAME,
            session_id,
            {"newUsername": new_username},
            reshape=lambda result: result.with_fields(newUsername=new_username),
        )

    async def ban(self, session_id: str, reason: Optional[str] = None) -> ApiResponse:
        """Ban the logged-in user and blacklist its hwid and ip."""
        return await self._session_call(ClientEvent.BAN, session_id, {"reason": reason})

    async def check_blacklist(self, session_id: str, hwid: str) -> ApiResponse:
        return await self._session_call(ClientEvent.CHECK_BLACKLIST, session_id, {"hwid": hwid})

    # Application

    async def fetch_stats(self, session_id: str) -> ApiResponse:
        """Application statistics, under ``appinfo``."""
        return await self._session_call(ClientEvent.FETCH_STATS, session_id)

    async def fetch_online(self, session_id: str) -> ApiResponse:
        """Users currently online, as ``users`` (``[{credential}]``) and ``count``."""
        return await self._session_call(
            ClientEvent.FETCH_ONLINE, session_id, reshape=_online_users
        )

    async def log(self, session_id: str, message: str, pc_user: Optional[str] = None) -> ApiResponse:
        """Send a message to the application's logs."""
        return await self._session_call(
            ClientEvent.LOG, session_id, {"pcuser": pc_user, "message": message}
        )

    async def webhook(
        self,
        session_id: str,
        webhook_id: str,
        params: Optional[str] = None,
        body: Optional[str] = None,
        content_type: Optional[str] = None,
    ) -> ApiResponse:
        """Call a webhook registered in the dashboard without exposing its URL."""
        return await self._session_call(
            ClientEvent.WEBHOOK,
            session_id,
            {"webid": webhook_id, "params": params, "body": body, "conttype": content_type},
        )

    async def download(self, session_id: str, file_id: str) -> ApiResponse:
        """Download a file. Hex ``contents`` are decoded into ``data`` bytes."""
        return await self._session_call(
            ClientEvent.DOWNLOAD, session_id, {"fileid": file_id}, reshape=_file_contents
        )

    # Variables

    async def global_var(self, session_id: str, var_id: str) -> ApiResponse:
        """Read an application-wide variable."""
        return await self._session_call(ClientEvent.VAR, session_id, {"varid": var_id})

    async def get_var(self, session_id: str, var_name: str) -> ApiResponse:
        """Read a variable of the logged-in user."""
        return await self._session_call(ClientEvent.GET_VAR, session_id, {"var": var_name})

    async def set_var(self, session_id: str, var_name: str, data: str) -> ApiResponse:
        """Write a variable of the logged-in user."""
        return await self._session_call(
            ClientEvent.SET_VAR, session_id, {"var": var_name, "data": data}
        )

    async def metadata_get(self, session_id: str) -> ApiResponse:
        """Read the user's metadata document, exposed as ``metadata``."""
        return await self._session_call(
            ClientEvent.GET_VAR,
            session_id,
            {"var": METADATA_VAR},
            reshape=_metadata,
            publish_as=ClientEvent.METADATA,
        )

    async def metadata_set(self, session_id: str, metadata: Any) -> ApiResponse:
        """Replace the user's metadata document with ``metadata`` (JSON-encodable)."""
        return await self._session_call(
            ClientEvent.SET_VAR,
            session_id,
            {"var": METADATA_VAR, "data": json.dumps(metadata)},
            reshape=lambda result: result.with_fields(metadata=metadata if result.success else None),
            publish_as=ClientEvent.METADATA,
        )

    # Chat

    async def chat_get(self, session_id: str, channel: str) -> ApiResponse:
        """Messages of a chat channel, under ``messages``."""
        return await self._session_call(ClientEvent.CHAT_GET, session_id, {"channel": channel})

    async def chat_send(self, session_id: str, channel: str, message: str) -> ApiResponse:
        return await self._session_call(
            ClientEvent.CHAT_SEND, session_id, {"message": message, "channel": channel}
        )
