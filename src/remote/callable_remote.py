# src/remote/callable_remote.py — v1
"""Remote generation through an HTTPS callable cloud function.

Callable protocol: POST {"data": {...}} and receive either
{"result": {...}} or {"error": {"status", "message", "details"}}.
The blocking urllib call runs in a worker thread.
"""

from __future__ import annotations

import asyncio
import json
import logging
import socket
import urllib.error
import urllib.request
from typing import Any

from ridecoach.core.errors import RemoteCallError
from ridecoach.remote.base_remote import BaseRemoteGeneration

logger = logging.getLogger(__name__)


class CallableRemoteGeneration(BaseRemoteGeneration):
    """Invoke the step generator exposed as a callable function.

    Args:
        endpoint_url: Full URL of the callable function.
        auth_token: Bearer token (user ID token). Empty = unauthenticated.
        timeout_s: Socket timeout per call; expiry surfaces as transient.
    """

    def __init__(
        self, endpoint_url: str, auth_token: str = "", timeout_s: float = 300.0
    ) -> None:
        if not endpoint_url:
            raise ValueError("endpoint_url is required")
        self._endpoint_url = endpoint_url
        self._auth_token = auth_token
        self._timeout_s = timeout_s

    @property
    def provider_name(self) -> str:
        return "callable"

    async def invoke(self, step_number: int, payload: dict[str, Any]) -> dict[str, Any]:
        body = json.dumps({"data": {**payload, "step": step_number}}).encode("utf-8")
        logger.debug("POST %s (step %d, %d bytes)", self._endpoint_url, step_number, len(body))
        return await asyncio.to_thread(self._post, body)

    def _post(self, body: bytes) -> dict[str, Any]:
        headers = {"Content-Type": "application/json"}
        if self._auth_token:
            headers["Authorization"] = f"Bearer {self._auth_token}"
        req = urllib.request.Request(
            self._endpoint_url, data=body, headers=headers, method="POST"
        )
        try:
            with urllib.request.urlopen(req, timeout=self._timeout_s) as resp:
                raw = resp.read().decode("utf-8")
        except urllib.error.HTTPError as e:
            raise _error_from_http(e) from e
        except (socket.timeout, TimeoutError) as e:
            raise RemoteCallError(f"Remote call timed out after {self._timeout_s}s") from e
        except urllib.error.URLError as e:
            raise RemoteCallError(f"Network error: {e.reason}") from e

        return _unwrap(raw)


def _unwrap(raw: str) -> dict[str, Any]:
    try:
        envelope = json.loads(raw)
    except json.JSONDecodeError as e:
        raise RemoteCallError(f"Malformed JSON response: {e}") from e
    if not isinstance(envelope, dict):
        raise RemoteCallError("Malformed response: expected a JSON object")
    if "error" in envelope:
        raise _error_from_body(envelope["error"], status=None)
    result = envelope.get("result")
    if not isinstance(result, dict):
        raise RemoteCallError("Malformed response: missing 'result' object")
    return result


def _error_from_http(error: urllib.error.HTTPError) -> RemoteCallError:
    try:
        envelope = json.loads(error.read().decode("utf-8"))
    except (json.JSONDecodeError, UnicodeDecodeError, OSError):
        envelope = None
    if isinstance(envelope, dict) and isinstance(envelope.get("error"), dict):
        return _error_from_body(envelope["error"], status=error.code)
    return RemoteCallError(f"HTTP {error.code}: {error.reason}", status=error.code)


def _error_from_body(body: Any, status: int | None) -> RemoteCallError:
    if not isinstance(body, dict):
        return RemoteCallError(f"Remote error: {body}", status=status)
    details = body.get("details") if isinstance(body.get("details"), dict) else {}
    retryable = details.get("retryable")
    return RemoteCallError(
        body.get("message") or "Remote error",
        status=status,
        code=body.get("status"),
        retryable=retryable if isinstance(retryable, bool) else None,
    )
