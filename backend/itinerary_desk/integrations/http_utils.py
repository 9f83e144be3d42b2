from __future__ import annotations

from typing import Any

import httpx

DEFAULT_TIMEOUT = httpx.Timeout(10.0, connect=5.0, read=10.0)


def build_timeout(seconds: float) -> httpx.Timeout:
    return httpx.Timeout(seconds, connect=min(seconds, 5.0))


def send_request(
    method: str,
    url: str,
    *,
    params: dict[str, Any] | None = None,
    json: Any = None,
    content: bytes | None = None,
    headers: dict[str, str] | None = None,
    timeout: httpx.Timeout | None = None,
    trust_env: bool = False,
) -> httpx.Response:
    """Send one request with a bounded timeout.

    Every outbound call here is a write, so nothing is retried; a timed-out
    upload or email may already have gone through.
    """
    with httpx.Client(timeout=timeout or DEFAULT_TIMEOUT, trust_env=trust_env) as client:
        return client.request(
            method,
            url,
            params=params,
            json=json,
            content=content,
            headers=headers,
        )


def safe_json(response: httpx.Response) -> Any:
    try:
        return response.json()
    except ValueError:
        return response.text
