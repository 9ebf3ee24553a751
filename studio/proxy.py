"""Serverless generation proxy: forwards action requests to the Gemini REST API.

The proxy is stateless. Every request carries ``{"action": ..., **options}``
and the upstream JSON is returned as-is, so clients never hold the API key.
"""

from __future__ import annotations

import json
import logging
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any

import httpx

from studio.config import Settings
from studio.generation import GenerationError, upstream_error_message
from studio.platform import PlatformClient, PlatformError

logger = logging.getLogger(__name__)

GEMINI_BASE_URL = "https://generativelanguage.googleapis.com/v1beta"

CORS_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Headers": "authorization, x-client-info, apikey, content-type",
}


class ProxyError(GenerationError):
    """An error that maps to a specific HTTP status."""

    def __init__(self, message: str, status: int = 500, details: Any = None) -> None:
        super().__init__(message, details=details)
        self.status = status


@dataclass
class ProxyResponse:
    status: int
    body: str
    headers: dict[str, str] = field(default_factory=dict)

    @classmethod
    def json(cls, payload: Any, status: int = 200) -> ProxyResponse:
        return cls(status, json.dumps(payload), {**CORS_HEADERS, "Content-Type": "application/json"})

    def to_lambda(self) -> dict[str, Any]:
        """Shape expected by the Python serverless runtime."""
        return {"statusCode": self.status, "headers": self.headers, "body": self.body}


def _model_path(model: str) -> str:
    if not model:
        raise ProxyError("Missing model", status=400)
    return model if model.startswith("models/") else f"models/{model}"


def _normalize_contents(contents: Any) -> list[dict]:
    if isinstance(contents, str):
        return [{"role": "user", "parts": [{"text": contents}]}]
    if isinstance(contents, dict):
        return [contents]
    return list(contents or [])


class GenerationProxy:
    """Dispatches proxy actions to the upstream model API.

    When ``platform`` is given, callers must present a bearer token the platform
    accepts.
    """

    def __init__(
        self,
        api_key: str,
        http: httpx.Client | None = None,
        platform: PlatformClient | None = None,
        base_url: str = GEMINI_BASE_URL,
        timeout: float = 120.0,
    ) -> None:
        self.api_key = api_key
        self.platform = platform
        self.base_url = base_url.rstrip("/")
        self._http = http or httpx.Client(timeout=timeout)

    @classmethod
    def from_settings(cls, settings: Settings, http: httpx.Client | None = None) -> GenerationProxy:
        platform = None
        if settings.proxy_require_auth:
            platform = PlatformClient.from_settings(settings)
        return cls(settings.gemini_api_key, http=http, platform=platform)

    # --- request handling ---

    def handle(
        self,
        method: str,
        body: bytes | str | None,
        headers: Mapping[str, str] | None = None,
    ) -> ProxyResponse:
        if method.upper() == "OPTIONS":
            return ProxyResponse(200, "ok", dict(CORS_HEADERS))

        lowered = {k.lower(): v for k, v in (headers or {}).items()}

        try:
            if self.platform is not None:
                self._verify(lowered.get("authorization"))

            try:
                payload = json.loads(body or b"{}")
            except (TypeError, ValueError):
                raise ProxyError("Invalid JSON body", status=400)
            if not isinstance(payload, dict):
                raise ProxyError("Request body must be a JSON object", status=400)

            action = payload.pop("action", None)
            status, result = self.dispatch(action, payload)
            return ProxyResponse.json(result, status=status)
        except ProxyError as e:
            logger.warning("Proxy request rejected (%d): %s", e.status, e)
            return ProxyResponse.json({"error": str(e)}, status=e.status)
        except Exception as e:
            logger.exception("Function error: %s", e)
            return ProxyResponse.json({"error": str(e)}, status=500)

    def _verify(self, authorization: str | None) -> None:
        if not authorization:
            raise ProxyError("Missing authorization header", status=401)
        token = authorization.replace("Bearer ", "", 1)
        try:
            user = self.platform.auth.get_user(token)
        except (PlatformError, httpx.HTTPError) as e:
            logger.info("Token verification failed: %s", e)
            raise ProxyError("Unauthorized", status=401)
        if not user or not user.get("id"):
            raise ProxyError("Unauthorized", status=401)

    def dispatch(self, action: str | None, options: dict[str, Any]) -> tuple[int, Any]:
        """Run one action and return ``(status, json_payload)``."""
        if not self.api_key:
            return 500, {"error": "GEMINI_API_KEY not set in edge function secrets"}

        if action == "generateContent":
            return self._generate_content(options)
        if action == "generateVideos":
            return 200, self._generate_videos(options)
        if action == "getVideosOperation":
            return 200, self._get_videos_operation(options)
        if action == "embedContent":
            return 200, self._embed_content(options)
        raise ProxyError(f"Unknown action: {action}", status=400)

    # --- upstream calls ---

    def _post(self, path: str, body: dict) -> httpx.Response:
        return self._http.post(f"{self.base_url}/{path}", params={"key": self.api_key}, json=body)

    @staticmethod
    def _upstream_json(response: httpx.Response) -> Any:
        """Upstream JSON, error bodies included, returned unchanged."""
        try:
            return response.json()
        except ValueError:
            raise ProxyError(response.text or f"Upstream HTTP {response.status_code}")

    def _generate_content(self, options: dict[str, Any]) -> tuple[int, Any]:
        config = dict(options.get("config") or {})
        system_instruction = options.get("systemInstruction") or config.pop("systemInstruction", None)
        tools = options.get("tools") or config.pop("tools", None)

        body: dict[str, Any] = {"contents": _normalize_contents(options.get("contents"))}
        if system_instruction:
            body["systemInstruction"] = {"parts": [{"text": system_instruction}]}
        if config:
            body["generationConfig"] = config
        if tools:
            body["tools"] = tools

        response = self._post(f"{_model_path(options.get('model', ''))}:generateContent", body)
        data = self._upstream_json(response)
        if response.is_error:
            message = upstream_error_message(data)
            logger.error("Gemini API error %d: %s", response.status_code, message)
            return response.status_code, {"error": message, "details": data}
        return 200, data

    def _generate_videos(self, options: dict[str, Any]) -> Any:
        instance: dict[str, Any] = {"prompt": options.get("prompt", "")}
        image = options.get("image")
        if image:
            if not isinstance(image, dict):
                raise ProxyError("image must be an object", status=400)
            instance["image"] = {
                "bytesBase64Encoded": image.get("imageBytes") or image.get("bytesBase64Encoded"),
                "mimeType": image.get("mimeType", "image/png"),
            }
        parameters = dict(options.get("config") or {})
        if "numberOfVideos" in parameters:
            parameters["sampleCount"] = parameters.pop("numberOfVideos")

        body = {"instances": [instance], "parameters": parameters}
        response = self._post(f"{_model_path(options.get('model', ''))}:predictLongRunning", body)
        return self._upstream_json(response)

    def _get_videos_operation(self, options: dict[str, Any]) -> Any:
        operation = options.get("operation") or {}
        if not isinstance(operation, dict):
            raise ProxyError("operation must be an object", status=400)
        name = operation.get("name")
        if not name:
            raise ProxyError("Missing operation name", status=400)
        response = self._http.get(f"{self.base_url}/{name}", params={"key": self.api_key})
        return self._upstream_json(response)

    def _embed_content(self, options: dict[str, Any]) -> Any:
        body = {"content": {"parts": [{"text": options.get("contents", "")}]}}
        response = self._post(f"{_model_path(options.get('model', ''))}:embedContent", body)
        return self._upstream_json(response)

    def close(self) -> None:
        self._http.close()
