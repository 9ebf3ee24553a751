"""Thin httpx client for the managed platform (relational REST, auth, storage, functions)."""

from __future__ import annotations

import logging
import re
from typing import Any

import httpx

from studio.config import Settings

logger = logging.getLogger(__name__)

CLIENT_INFO = "visionary-studio-py/1.0.0"


class PlatformError(RuntimeError):
    """A failed call against the managed platform."""

    def __init__(self, message: str, status: int | None = None, details: Any = None) -> None:
        super().__init__(message)
        self.message = message
        self.status = status
        self.details = details


class AuthError(PlatformError):
    pass


def _literal(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    if value is None:
        return "null"
    return str(value)


def _error_message(response: httpx.Response) -> tuple[str, Any]:
    try:
        payload = response.json()
    except ValueError:
        return response.text or f"HTTP {response.status_code}", None
    if isinstance(payload, dict):
        for key in ("message", "msg", "error_description", "error"):
            value = payload.get(key)
            if isinstance(value, str) and value:
                return value, payload
    return f"HTTP {response.status_code}", payload


def normalize_storage_url(url: str, platform_url: str, public_url: str = "") -> str:
    """Rewrite an internal storage URL to the publicly served one."""
    if public_url:
        return url.replace(platform_url, public_url)
    return re.sub(r"^http://([^/:]+):\d+(/.*)$", r"https://\1\2", url)


class TableQuery:
    """Fluent query against one table, executed with ``execute()``."""

    def __init__(self, client: PlatformClient, table: str) -> None:
        self._client = client
        self.table = table
        self._method = "GET"
        self._columns: str | None = None
        self._filters: list[tuple[str, str]] = []
        self._order: list[str] = []
        self._limit: int | None = None
        self._payload: Any = None
        self._on_conflict: str | None = None
        self._cardinality: str | None = None

    # --- verbs ---

    def select(self, columns: str = "*") -> TableQuery:
        self._columns = columns
        return self

    def insert(self, rows: dict | list[dict]) -> TableQuery:
        self._method = "POST"
        self._payload = rows
        return self

    def upsert(self, rows: dict | list[dict], on_conflict: str | None = None) -> TableQuery:
        self._method = "UPSERT"
        self._payload = rows
        self._on_conflict = on_conflict
        return self

    def update(self, values: dict) -> TableQuery:
        self._method = "PATCH"
        self._payload = values
        return self

    def delete(self) -> TableQuery:
        self._method = "DELETE"
        return self

    # --- modifiers ---

    def eq(self, column: str, value: Any) -> TableQuery:
        self._filters.append((column, f"eq.{_literal(value)}"))
        return self

    def neq(self, column: str, value: Any) -> TableQuery:
        self._filters.append((column, f"neq.{_literal(value)}"))
        return self

    def in_(self, column: str, values: list[Any]) -> TableQuery:
        joined = ",".join(_literal(v) for v in values)
        self._filters.append((column, f"in.({joined})"))
        return self

    def order(self, column: str, ascending: bool = True) -> TableQuery:
        self._order.append(f"{column}.{'asc' if ascending else 'desc'}")
        return self

    def limit(self, count: int) -> TableQuery:
        self._limit = count
        return self

    def single(self) -> TableQuery:
        self._cardinality = "single"
        return self

    def maybe_single(self) -> TableQuery:
        self._cardinality = "maybe"
        return self

    # --- execution ---

    def build_params(self) -> list[tuple[str, str]]:
        params: list[tuple[str, str]] = []
        if self._columns is not None:
            params.append(("select", self._columns))
        elif self._method == "GET":
            params.append(("select", "*"))
        params.extend(self._filters)
        if self._order:
            params.append(("order", ",".join(self._order)))
        if self._limit is not None:
            params.append(("limit", str(self._limit)))
        if self._on_conflict:
            params.append(("on_conflict", self._on_conflict))
        return params

    def build_headers(self) -> dict[str, str]:
        headers: dict[str, str] = {}
        prefer = []
        if self._method in ("POST", "PATCH", "UPSERT", "DELETE"):
            prefer.append("return=representation")
        if self._method == "UPSERT":
            prefer.append("resolution=merge-duplicates")
        if prefer:
            headers["Prefer"] = ",".join(prefer)
        if self._cardinality == "single":
            headers["Accept"] = "application/vnd.pgrst.object+json"
        return headers

    def execute(self) -> Any:
        method = "POST" if self._method == "UPSERT" else self._method
        response = self._client.request(
            method,
            f"/rest/v1/{self.table}",
            params=self.build_params(),
            json=self._payload,
            headers=self.build_headers(),
        )
        data = response.json() if response.content else None
        if self._cardinality == "maybe":
            if isinstance(data, list):
                return data[0] if data else None
            return data
        return data


class AuthAPI:
    def __init__(self, client: PlatformClient) -> None:
        self._client = client

    def sign_in_with_password(self, email: str, password: str) -> dict:
        response = self._client.request(
            "POST",
            "/auth/v1/token",
            params={"grant_type": "password"},
            json={"email": email, "password": password},
            error_cls=AuthError,
        )
        session = response.json()
        self._client.access_token = session.get("access_token")
        return session

    def sign_up(self, email: str, password: str, full_name: str = "") -> dict:
        response = self._client.request(
            "POST",
            "/auth/v1/signup",
            json={"email": email, "password": password, "data": {"full_name": full_name}},
            error_cls=AuthError,
        )
        session = response.json()
        if session.get("access_token"):
            self._client.access_token = session["access_token"]
        return session

    def sign_out(self, access_token: str | None = None) -> None:
        token = access_token or self._client.access_token
        self._client.access_token = None
        if not token:
            return
        self._client.request(
            "POST",
            "/auth/v1/logout",
            headers={"Authorization": f"Bearer {token}"},
            error_cls=AuthError,
        )

    def get_user(self, access_token: str | None = None) -> dict:
        token = access_token or self._client.access_token
        if not token:
            raise AuthError("No access token", status=401)
        response = self._client.request(
            "GET",
            "/auth/v1/user",
            headers={"Authorization": f"Bearer {token}"},
            error_cls=AuthError,
        )
        return response.json()

    def update_user(self, password: str) -> dict:
        response = self._client.request(
            "PUT", "/auth/v1/user", json={"password": password}, error_cls=AuthError
        )
        return response.json()

    def reset_password_for_email(self, email: str, redirect_to: str | None = None) -> None:
        params = {"redirect_to": redirect_to} if redirect_to else None
        self._client.request(
            "POST", "/auth/v1/recover", params=params, json={"email": email}, error_cls=AuthError
        )


class StorageAPI:
    def __init__(self, client: PlatformClient) -> None:
        self._client = client

    def upload(
        self,
        bucket: str,
        path: str,
        data: bytes,
        content_type: str = "application/octet-stream",
        upsert: bool = False,
    ) -> dict:
        response = self._client.request(
            "POST",
            f"/storage/v1/object/{bucket}/{path}",
            content=data,
            headers={"Content-Type": content_type, "x-upsert": "true" if upsert else "false"},
        )
        return response.json() if response.content else {}

    def get_public_url(self, bucket: str, path: str) -> str:
        return f"{self._client.url}/storage/v1/object/public/{bucket}/{path}"


class PlatformClient:
    """Entry point for everything the app reads from or writes to the managed platform."""

    def __init__(
        self,
        url: str,
        anon_key: str,
        http: httpx.Client | None = None,
        timeout: float = 30.0,
    ) -> None:
        if not url or not anon_key:
            raise ValueError(
                "Managed platform is not configured. Set SUPABASE_URL and SUPABASE_ANON_KEY."
            )
        self.url = url.rstrip("/")
        self.anon_key = anon_key
        self.access_token: str | None = None
        self._http = http or httpx.Client(base_url=self.url, timeout=timeout)
        self.auth = AuthAPI(self)
        self.storage = StorageAPI(self)

    @classmethod
    def from_settings(cls, settings: Settings, http: httpx.Client | None = None) -> PlatformClient:
        settings.require_platform()
        return cls(settings.platform_url, settings.platform_anon_key, http=http)

    def _headers(self, extra: dict[str, str] | None = None) -> dict[str, str]:
        headers = {
            "apikey": self.anon_key,
            "Authorization": f"Bearer {self.access_token or self.anon_key}",
            "X-Client-Info": CLIENT_INFO,
        }
        if extra:
            headers.update(extra)
        return headers

    def request(
        self,
        method: str,
        path: str,
        params: Any = None,
        json: Any = None,
        content: bytes | None = None,
        headers: dict[str, str] | None = None,
        error_cls: type[PlatformError] = PlatformError,
    ) -> httpx.Response:
        kwargs: dict[str, Any] = {"params": params, "headers": self._headers(headers)}
        if content is not None:
            kwargs["content"] = content
        elif json is not None:
            kwargs["json"] = json
        response = self._http.request(method, path, **kwargs)
        if response.is_error:
            message, details = _error_message(response)
            logger.debug("Platform %s %s failed: %s", method, path, message)
            raise error_cls(message, status=response.status_code, details=details)
        return response

    def table(self, name: str) -> TableQuery:
        return TableQuery(self, name)

    def rpc(self, function: str, params: dict | None = None) -> Any:
        response = self.request("POST", f"/rest/v1/rpc/{function}", json=params or {})
        return response.json() if response.content else None

    def invoke_function(self, name: str, body: dict) -> Any:
        """Call a serverless function. Error bodies are returned, not raised."""
        response = self._http.request(
            "POST",
            f"/functions/v1/{name}",
            json=body,
            headers=self._headers({"Content-Type": "application/json"}),
        )
        try:
            return response.json()
        except ValueError:
            if response.is_error:
                raise PlatformError(
                    response.text or f"HTTP {response.status_code}", status=response.status_code
                )
            return {}

    def close(self) -> None:
        self._http.close()
