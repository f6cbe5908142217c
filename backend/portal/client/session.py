"""Client-side session: the persisted token and the application context.

The only thing persisted on the client is the access token, stored as
``{"token": "<jwt>"}`` in a small JSON file. ``AppContext`` owns that
token for the life of the app:

    ctx = AppContext()
    await ctx.startup()          # hydrate token (and profile) from storage
    await ctx.login(email, pw)   # store token
    ...
    await ctx.logout()           # clear token, drop profile

Any 401 from the API clears the token through ``on_unauthorized``.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Callable

import httpx

from portal.client.api import PortalClient
from portal.client.errors import ApiError, AuthenticationError
from portal.config import settings
from portal.domain.records import UserProfile, UserRole

logger = logging.getLogger(__name__)

TOKEN_KEY = "token"


class TokenStore:
    """JSON key-value file holding the single ``token`` entry."""

    def __init__(self, path: str | Path | None = None):
        self.path = Path(path or settings.token_store_path)

    def _read(self) -> dict:
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
        except FileNotFoundError:
            return {}
        except (OSError, ValueError) as exc:
            logger.warning(f"Ignoring unreadable token store {self.path}: {exc}")
            return {}
        return data if isinstance(data, dict) else {}

    def _write(self, data: dict) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_text(json.dumps(data), encoding="utf-8")

    def load(self) -> str | None:
        token = self._read().get(TOKEN_KEY)
        return token if isinstance(token, str) and token else None

    def save(self, token: str) -> None:
        data = self._read()
        data[TOKEN_KEY] = token
        self._write(data)

    def clear(self) -> None:
        data = self._read()
        if TOKEN_KEY in data:
            del data[TOKEN_KEY]
            self._write(data)


class AppContext:
    """Explicit replacement for global auth state.

    Holds the token, the signed-in profile and the API client. Listeners
    registered with ``subscribe`` run whenever the signed-in state changes.
    """

    def __init__(
        self,
        store: TokenStore | None = None,
        *,
        base_url: str | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.store = store or TokenStore()
        self.token: str | None = None
        self.user: UserProfile | None = None
        self.api = PortalClient(
            base_url,
            token_provider=lambda: self.token,
            on_unauthorized=self.clear,
            transport=transport,
        )
        self._listeners: list[Callable[[], None]] = []

    async def __aenter__(self) -> "AppContext":
        await self.startup()
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.api.aclose()

    # ── State ───────────────────────────────────────────────

    @property
    def is_authenticated(self) -> bool:
        return self.token is not None

    @property
    def role(self) -> UserRole | None:
        return self.user.role if self.user else None

    def subscribe(self, listener: Callable[[], None]) -> Callable[[], None]:
        self._listeners.append(listener)
        return lambda: self._listeners.remove(listener)

    def _notify(self) -> None:
        for listener in list(self._listeners):
            listener()

    # ── Lifecycle ───────────────────────────────────────────

    async def startup(self) -> None:
        """Hydrate the token from storage and load the profile it belongs to.

        A stored token the API rejects (401) is cleared. Other failures keep
        the token so the next call can retry.
        """
        self.token = self.store.load()
        if self.token is None:
            return
        try:
            self.user = await self.api.get_profile()
        except AuthenticationError:
            logger.info("Stored token rejected, signed out")
        except ApiError as exc:
            logger.warning(f"Could not load profile on startup: {exc.message}")
        self._notify()

    async def login(self, email: str, password: str) -> UserProfile:
        token, user = await self.api.login(email, password)
        return self._signed_in(token, user)

    async def register(
        self, email: str, password: str, first_name: str, last_name: str, **extra
    ) -> UserProfile:
        """Create a citizen account; the new account is signed in straight away."""
        token, user = await self.api.register(email, password, first_name, last_name, **extra)
        return self._signed_in(token, user)

    def _signed_in(self, token: str, user: UserProfile) -> UserProfile:
        self.token = token
        self.user = user
        self.store.save(token)
        logger.info(f"Signed in as {user.id}")
        self._notify()
        return user

    def clear(self) -> None:
        """Drop the token and profile, in memory and on disk."""
        was_signed_in = self.token is not None
        self.token = None
        self.user = None
        self.store.clear()
        if was_signed_in:
            self._notify()

    async def logout(self) -> None:
        self.clear()
        logger.info("Signed out")
