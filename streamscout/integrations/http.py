"""
Shared HTTP plumbing for the upstream clients.

Calls go through a blocking `requests.Session` run on a worker thread so the
event loop keeps serving other requests. There are no retries: a failed call is
reported once and the caller decides whether it matters.
"""
from __future__ import annotations

import asyncio
import logging
import time
from typing import Any, Mapping

import requests

from streamscout.log_context import redact_url

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT_SECONDS = 10.0
# Extra room for the worker thread before the loop gives up on it.
_THREAD_GRACE_SECONDS = 0.5


class UpstreamError(RuntimeError):
    def __init__(
        self,
        message: str,
        *,
        upstream: str | None = None,
        status_code: int | None = None,
        body_snippet: str | None = None,
    ) -> None:
        super().__init__(message)
        self.upstream = upstream
        self.status_code = status_code
        self.body_snippet = body_snippet


def new_session() -> requests.Session:
    session = requests.Session()
    session.headers.update({"accept": "application/json", "user-agent": "streamscout/1.0"})
    return session


def send_get(
    session: requests.Session,
    url: str,
    *,
    upstream: str,
    params: Mapping[str, Any] | None = None,
    headers: Mapping[str, str] | None = None,
    timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS,
) -> requests.Response:
    """GET `url`; network failures become `UpstreamError` without echoing the request (it may hold a key)."""
    try:
        return session.get(url, params=params, headers=dict(headers or {}), timeout=timeout_seconds)
    except requests.RequestException as exc:
        raise UpstreamError(
            f"{upstream} request to {redact_url(url)} failed: {type(exc).__name__}",
            upstream=upstream,
        ) from exc


def request_json(
    session: requests.Session,
    url: str,
    *,
    upstream: str,
    params: Mapping[str, Any] | None = None,
    headers: Mapping[str, str] | None = None,
    timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS,
) -> dict[str, Any]:
    start = time.perf_counter()
    resp = send_get(session, url, upstream=upstream, params=params, headers=headers, timeout_seconds=timeout_seconds)
    elapsed_ms = (time.perf_counter() - start) * 1000
    logger.debug(
        f"{upstream} GET {redact_url(url)} -> {resp.status_code} in {elapsed_ms:.0f}ms",
        extra={"upstream": upstream, "statusCode": resp.status_code, "duration": round(elapsed_ms, 1)},
    )

    if not 200 <= resp.status_code < 300:
        raise UpstreamError(
            f"{upstream} request failed with HTTP {resp.status_code}.",
            upstream=upstream,
            status_code=resp.status_code,
            body_snippet=(resp.text or "")[:400],
        )

    try:
        payload = resp.json()
    except ValueError as exc:
        raise UpstreamError(
            f"{upstream} returned non-JSON response.",
            upstream=upstream,
            status_code=resp.status_code,
            body_snippet=(resp.text or "")[:400],
        ) from exc

    if not isinstance(payload, dict):
        raise UpstreamError(f"{upstream} returned unexpected JSON shape (not an object).", upstream=upstream)
    return payload


async def fetch_json(
    session: requests.Session,
    url: str,
    *,
    upstream: str,
    params: Mapping[str, Any] | None = None,
    headers: Mapping[str, str] | None = None,
    timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS,
) -> dict[str, Any]:
    """Async wrapper around `request_json` with a hard deadline."""
    try:
        return await asyncio.wait_for(
            asyncio.to_thread(
                request_json,
                session,
                url,
                upstream=upstream,
                params=params,
                headers=headers,
                timeout_seconds=timeout_seconds,
            ),
            timeout=timeout_seconds + _THREAD_GRACE_SECONDS,
        )
    except TimeoutError as exc:
        raise UpstreamError(f"{upstream} request timed out after {timeout_seconds:g}s.", upstream=upstream) from exc
