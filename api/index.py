"""Serverless entrypoint hosting the generation proxy.

Requests arrive as ``/functions/v1/<name>`` (or with that prefix already
stripped by the gateway) and are routed by function name.
"""

from __future__ import annotations

import json
import logging
import sys
from pathlib import Path
from typing import Any

sys.path.insert(0, str(Path(__file__).resolve().parents[1]))

from studio.config import Settings  # noqa: E402
from studio.proxy import GenerationProxy  # noqa: E402

logger = logging.getLogger(__name__)

FUNCTIONS = {"gemini-proxy"}


def function_name(path: str) -> str | None:
    parts = [p for p in path.split("?", 1)[0].split("/") if p and p not in ("functions", "v1")]
    return parts[0] if parts else None


def _request_parts(request: Any) -> tuple[str, str, Any, dict]:
    """Pull method, path, body and headers out of a dict- or object-shaped request."""
    if isinstance(request, dict):
        return (
            request.get("method") or request.get("httpMethod") or "GET",
            request.get("path") or request.get("url") or "/",
            request.get("body"),
            dict(request.get("headers") or {}),
        )
    return (
        getattr(request, "method", "GET"),
        getattr(request, "path", None) or getattr(request, "url", "/"),
        getattr(request, "body", None),
        dict(getattr(request, "headers", None) or {}),
    )


def route(method: str, path: str, body: Any, headers: dict, proxy: GenerationProxy | None = None) -> dict:
    name = function_name(path)
    if not name:
        return _json(404, {"error": "No function name in path", "path": path})
    if name not in FUNCTIONS:
        logger.error("Unknown function %r", name)
        return _json(404, {"error": f"Function not found: {name}", "function": name})

    if proxy is None:
        try:
            proxy = GenerationProxy.from_settings(Settings.from_env())
        except ValueError as e:
            logger.error("Proxy misconfigured: %s", e)
            return _json(500, {"error": str(e), "function": name})
    return proxy.handle(method, body, headers).to_lambda()


def _json(status: int, payload: dict) -> dict:
    return {
        "statusCode": status,
        "headers": {"content-type": "application/json"},
        "body": json.dumps(payload),
    }


def handler(request):
    """Vercel Python serverless function handler."""
    method, path, body, headers = _request_parts(request)
    return route(method, path, body, headers)
