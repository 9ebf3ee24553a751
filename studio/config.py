"""Application settings loaded from the environment (and an optional .env file)."""

from __future__ import annotations

import os
from dataclasses import dataclass

from dotenv import load_dotenv

DEFAULT_PROXY_FUNCTION = "gemini-proxy"


def resolve_api_key(explicit: str | None, *env_names: str) -> str:
    """Return an explicit key if given, else the first non-empty env variable."""
    if explicit and explicit.strip():
        return explicit.strip()
    for name in env_names:
        value = os.environ.get(name, "").strip()
        if value:
            return value
    return ""


def _env_flag(name: str, default: bool = False) -> bool:
    raw = os.environ.get(name)
    if raw is None:
        return default
    return raw.strip().lower() in {"1", "true", "yes", "on"}


@dataclass
class Settings:
    platform_url: str = ""
    platform_anon_key: str = ""
    platform_public_url: str = ""
    gemini_api_key: str = ""
    proxy_function: str = DEFAULT_PROXY_FUNCTION
    proxy_require_auth: bool = False
    app_url: str = "http://localhost:8501"
    video_poll_interval: float = 5.0
    log_level: str = "INFO"

    @classmethod
    def from_env(cls, dotenv: bool = True) -> Settings:
        if dotenv:
            load_dotenv()
        return cls(
            platform_url=os.environ.get("SUPABASE_URL", "").rstrip("/"),
            platform_anon_key=os.environ.get("SUPABASE_ANON_KEY", ""),
            platform_public_url=os.environ.get("SUPABASE_PUBLIC_URL", "").rstrip("/"),
            gemini_api_key=resolve_api_key(None, "GEMINI_API_KEY", "GOOGLE_API_KEY"),
            proxy_function=os.environ.get("GEMINI_PROXY_FUNCTION", DEFAULT_PROXY_FUNCTION),
            proxy_require_auth=_env_flag("PROXY_REQUIRE_AUTH"),
            app_url=os.environ.get("APP_URL", "http://localhost:8501"),
            video_poll_interval=float(os.environ.get("VIDEO_POLL_INTERVAL", "5")),
            log_level=os.environ.get("LOG_LEVEL", "INFO").upper(),
        )

    @property
    def platform_configured(self) -> bool:
        return bool(self.platform_url and self.platform_anon_key)

    def require_platform(self) -> None:
        if not self.platform_configured:
            raise ValueError(
                "Managed platform is not configured. Set SUPABASE_URL and SUPABASE_ANON_KEY."
            )
