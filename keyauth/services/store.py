"""Client-side state derived from client events.

ClientStore keeps a snapshot of the session, the logged-in user, application
statistics and the online users. It never issues requests: it only folds the
events a ClientApi publishes, so it can be left out entirely at no cost.
"""

from dataclasses import dataclass, replace
from typing import Any, Callable, List, Optional, Protocol, Tuple

from keyauth.models import ApiResponse, ClientEvent


class EventSource(Protocol):
    """Anything events can be subscribed on (EventBus, ClientApi)."""

    def on(self, kind: ClientEvent, handler: Callable[[Any], None]) -> None: ...

    def off(self, kind: ClientEvent, handler: Callable[[Any], None]) -> bool: ...


@dataclass(frozen=True)
class Session:
    id: str
    is_new: bool = True
    validated: bool = False


@dataclass(frozen=True)
class Subscription:
    subscription: str
    key: Optional[str] = None
    expiry: Optional[str] = None
    timeleft: Optional[int] = None
    level: Optional[str] = None


@dataclass(frozen=True)
class User:
    """The authenticated user, built from the ``info`` block of a login."""

    username: str
    subscriptions: Tuple[Subscription, ...] = ()
    ip: Optional[str] = None
    hwid: Optional[str] = None
    createdate: Optional[str] = None
    lastlogin: Optional[str] = None
    metadata: Any = None

    @classmethod
    def from_info(cls, info: dict, metadata: Any = None) -> "User":
        subscriptions = tuple(
            Subscription(
                subscription=str(sub.get("subscription", "")),
                key=sub.get("key"),
                expiry=None if sub.get("expiry") is None else str(sub.get("expiry")),
                timeleft=sub.get("timeleft"),
                level=None if sub.get("level") is None else str(sub.get("level")),
            )
            for sub in info.get("subscriptions") or []
            if isinstance(sub, dict)
        )
        return cls(
            username=str(info.get("username", "")),
            subscriptions=subscriptions,
            ip=info.get("ip"),
            hwid=info.get("hwid"),
            createdate=None if info.get("createdate") is None else str(info.get("createdate")),
            lastlogin=None if info.get("lastlogin") is None else str(info.get("lastlogin")),
            metadata=metadata,
        )


@dataclass(frozen=True)
class AppInfo:
    num_users: int = 0
    num_online_users: int = 0
    num_keys: int = 0
    version: str = ""
    customer_panel_link: str = ""

    @classmethod
    def from_payload(cls, appinfo: dict) -> "AppInfo":
        def as_int(value: Any) -> int:
            try:
                return int(value)
            except (TypeError, ValueError):
                return 0

        return cls(
            num_users=as_int(appinfo.get("numUsers")),
            num_online_users=as_int(appinfo.get("numOnlineUsers")),
            num_keys=as_int(appinfo.get("numKeys")),
            version=str(appinfo.get("version") or ""),
            customer_panel_link=str(appinfo.get("customerPanelLink") or ""),
        )


@dataclass(frozen=True)
class OnlineUser:
    credential: str


@dataclass(frozen=True)
class ClientSnapshot:
    initialized: bool = False
    session: Optional[Session] = None
    user: Optional[User] = None
    app_info: Optional[AppInfo] = None
    online_users: Tuple[OnlineUser, ...] = ()
    last_response: Optional[ApiResponse] = None


class ClientStore:
    """Snapshot of client state, kept in sync by observing events.

    Each observed event replaces parts of an immutable ClientSnapshot, so
    readers always see a consistent state and replaying an event is harmless.
    Events missing an optional field leave the matching part unchanged.
    """

    def __init__(self, source: EventSource):
        """Subscribe to ``source``.

        Args:
            source: The ClientApi (or its EventBus) to observe
        """
        self._snapshot = ClientSnapshot()
        self._source = source
        self._handlers: List[Tuple[ClientEvent, Callable[[Any], None]]] = [
            (ClientEvent.INIT, self._on_init),
            (ClientEvent.LOG_IN, self._on_login),
            (ClientEvent.REGISTER, self._on_login),
            (ClientEvent.LICENSE, self._on_login),
            (ClientEvent.LOG_OUT, self._on_logout),
            (ClientEvent.BAN, self._on_user_removed),
            (ClientEvent.UPGRADE, self._on_user_removed),
            (ClientEvent.CHANGE_USERNAME, self._on_change_username),
            (ClientEvent.METADATA, self._on_metadata),
            (ClientEvent.FETCH_STATS, self._on_fetch_stats),
            (ClientEvent.FETCH_ONLINE, self._on_fetch_online),
            (ClientEvent.RESPONSE, self._on_response),
        ]
        for kind, handler in self._handlers:
            source.on(kind, handler)

    def close(self) -> None:
        """Stop observing the source. The last snapshot stays readable."""
        for kind, handler in self._handlers:
            self._source.off(kind, handler)
        self._handlers = []

    def _update(self, **changes: Any) -> None:
        self._snapshot = replace(self._snapshot, **changes)

    # Folds

    def _on_init(self, event: ApiResponse) -> None:
        if not event.success:
            return
        self._update(
            initialized=True,
            session=Session(
                id=str(event.get("sessionid") or ""),
                is_new=bool(event.get("newSession", True)),
                validated=False,
            ),
        )

    def _on_login(self, event: ApiResponse) -> None:
        if not event.success:
            return
        changes: dict = {}
        info = event.get("info")
        if isinstance(info, dict):
            metadata = event.get("metadata")
            if metadata is None:
                # Login answers carry it under the API's own name
                metadata = event.get("metaData")
            changes["user"] = User.from_info(info, metadata=metadata)
        if self._snapshot.session is not None:
            changes["session"] = replace(self._snapshot.session, validated=True)
        if changes:
            self._update(**changes)

    def _on_logout(self, event: ApiResponse) -> None:
        session = self._snapshot.session
        self._update(
            user=None,
            session=None if session is None else replace(session, validated=False),
        )

    def _on_user_removed(self, event: ApiResponse) -> None:
        self._update(user=None)

    def _on_change_username(self, event: ApiResponse) -> None:
        new_username = event.get("newUsername")
        if not event.success or self._snapshot.user is None or not new_username:
            return
        self._update(user=replace(self._snapshot.user, username=str(new_username)))

    def _on_metadata(self, event: ApiResponse) -> None:
        if not event.success or self._snapshot.user is None or event.get("metadata") is None:
            return
        self._update(user=replace(self._snapshot.user, metadata=event.get("metadata")))

    def _on_fetch_stats(self, event: ApiResponse) -> None:
        appinfo = event.get("appinfo")
        if isinstance(appinfo, dict):
            self._update(app_info=AppInfo.from_payload(appinfo))

    def _on_fetch_online(self, event: ApiResponse) -> None:
        users = event.get("users")
        if not isinstance(users, list):
            return
        self._update(
            online_users=tuple(
                OnlineUser(credential=str(user.get("credential", "")))
                for user in users
                if isinstance(user, dict)
            )
        )

    def _on_response(self, event: ApiResponse) -> None:
        self._update(last_response=event)

    # Readers

    def snapshot(self) -> ClientSnapshot:
        return self._snapshot

    @property
    def initialized(self) -> bool:
        return self._snapshot.initialized

    @property
    def session(self) -> Optional[Session]:
        return self._snapshot.session

    @property
    def user(self) -> Optional[User]:
        return self._snapshot.user

    @property
    def app_info(self) -> Optional[AppInfo]:
        return self._snapshot.app_info

    @property
    def online_users(self) -> Tuple[OnlineUser, ...]:
        return self._snapshot.online_users

    @property
    def last_response(self) -> Optional[ApiResponse]:
        return self._snapshot.last_response
