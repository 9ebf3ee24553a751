"""Signed-in user state: session, user record and profile."""

from __future__ import annotations

import json
import logging
from collections.abc import MutableMapping
from typing import Any
from urllib.parse import urlparse

import httpx

from studio.models import PROFILES_TABLE
from studio.platform import AuthError, PlatformClient, PlatformError

logger = logging.getLogger(__name__)

TOKEN_PREFIX = "sb-"


def storage_key(platform_url: str) -> str:
    """Key under which the session token is persisted, e.g. ``sb-abcd-auth-token``."""
    host = urlparse(platform_url).hostname or "local"
    return f"{TOKEN_PREFIX}{host.split('.')[0]}-auth-token"


class AuthSession:
    """Holds the current user and profile and wraps the platform auth calls.

    Auth calls return ``None`` on success or the ``PlatformError`` on failure,
    so callers can show the message without a try/except.
    """

    def __init__(
        self,
        client: PlatformClient,
        storage: MutableMapping[str, Any] | None = None,
        redirect_url: str | None = None,
    ) -> None:
        self.client = client
        self.storage: MutableMapping[str, Any] = storage if storage is not None else {}
        self.redirect_url = redirect_url
        self.user: dict | None = None
        self.session: dict | None = None
        self.profile: dict | None = None
        self._key = storage_key(client.url)

    @property
    def is_authenticated(self) -> bool:
        return self.user is not None

    @property
    def is_admin(self) -> bool:
        return bool(self.profile) and self.profile.get("role") == "admin"

    @property
    def display_name(self) -> str:
        if self.profile and self.profile.get("full_name"):
            return self.profile["full_name"]
        return "User"

    def require_user(self) -> dict:
        if not self.user:
            raise AuthError("User not authenticated", status=401)
        return self.user

    # --- session lifecycle ---

    def _apply_session(self, session: dict | None) -> None:
        self.session = session
        self.user = (session or {}).get("user")
        if session and session.get("access_token"):
            self.client.access_token = session["access_token"]
            self.storage[self._key] = json.dumps(session)
        self.profile = self.fetch_profile(self.user["id"]) if self.user else None

    def restore(self) -> bool:
        """Re-establish a session from client storage. Returns True if signed in."""
        raw = self.storage.get(self._key)
        if not raw:
            return False
        try:
            session = json.loads(raw) if isinstance(raw, str) else dict(raw)
            user = self.client.auth.get_user(session.get("access_token"))
        except (ValueError, PlatformError, httpx.HTTPError) as e:
            logger.error("Error restoring session: %s", e)
            self.storage.pop(self._key, None)
            return False
        session["user"] = user
        self._apply_session(session)
        return True

    def fetch_profile(self, user_id: str) -> dict | None:
        try:
            return (
                self.client.table(PROFILES_TABLE)
                .select("*")
                .eq("id", user_id)
                .single()
                .execute()
            )
        except (PlatformError, httpx.HTTPError) as e:
            logger.error("Error fetching profile: %s", e)
            return None

    def refresh_profile(self) -> None:
        if self.user:
            self.profile = self.fetch_profile(self.user["id"])

    # --- auth actions ---

    def sign_in(self, email: str, password: str) -> PlatformError | None:
        try:
            session = self.client.auth.sign_in_with_password(email, password)
        except PlatformError as e:
            return e
        except httpx.HTTPError as e:
            return PlatformError(str(e))
        self._apply_session(session)
        logger.info("Signed in as %s", email)
        return None

    def sign_up(self, email: str, password: str, full_name: str) -> PlatformError | None:
        try:
            session = self.client.auth.sign_up(email, password, full_name=full_name)
        except PlatformError as e:
            return e
        except httpx.HTTPError as e:
            return PlatformError(str(e))
        # Projects with email confirmation return no session until confirmed.
        if session.get("access_token"):
            self._apply_session(session)
        return None

    def sign_out(self) -> None:
        token = (self.session or {}).get("access_token") or self.client.access_token

        for key in [k for k in self.storage if str(k).startswith(TOKEN_PREFIX)]:
            del self.storage[key]

        self.user = None
        self.session = None
        self.profile = None

        try:
            self.client.auth.sign_out(token)
        except (PlatformError, httpx.HTTPError) as e:
            logger.warning("Remote sign-out failed (already cleared locally): %s", e)

    def reset_password(self, email: str) -> PlatformError | None:
        try:
            self.client.auth.reset_password_for_email(email, redirect_to=self.redirect_url)
        except PlatformError as e:
            return e
        except httpx.HTTPError as e:
            return PlatformError(str(e))
        return None

    def update_password(self, new_password: str) -> PlatformError | None:
        try:
            self.client.auth.update_user(password=new_password)
        except PlatformError as e:
            return e
        except httpx.HTTPError as e:
            return PlatformError(str(e))
        return None
