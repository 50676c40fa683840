"""
api_logging.py
~~~~~~~~~~~~~~
One concise log line per outbound HTTP request, plus the JSON fetch helper
every upstream client goes through.

Example
-------
>>> async with httpx.AsyncClient() as cli:
...     data = await fetch_json(cli, "https://opensky-network.org/api/states/all",
...                             provider="opensky")
"""

from __future__ import annotations

import logging
import re
import time
from typing import Any

import httpx

from .errors import NotFoundError, UpstreamError

LOG = logging.getLogger("extapi")

_SECRET_RE = re.compile(r"((?:api_key|access_key)=)[^&]+", re.I)


def redact(url: str) -> str:
    """Hide API keys before a URL reaches the logs."""
    return _SECRET_RE.sub(r"\1***", url)


async def logged_request_async(
    client: httpx.AsyncClient,
    method: str,
    url: str,
    *args: Any,
    **kwargs: Any,
) -> httpx.Response:
    """
    Send *method* to *url* through *client* and log verb, redacted URL,
    status and latency on the ``extapi`` logger.

    The response is returned as-is; mapping statuses to errors is the job of
    :func:`fetch_json`.  Server errors (5xx) log at WARNING, everything else
    at INFO, including the 404s that per-aircraft endpoints answer routinely.
    A transport failure logs a ``FAIL`` line and is re-raised.
    """
    verb = method.upper()
    t0 = time.perf_counter()
    try:
        response = await getattr(client, method.lower())(url, *args, **kwargs)
    except Exception as exc:
        latency_ms = (time.perf_counter() - t0) * 1000.0
        LOG.warning("FAIL %s %s %.0f ms %s", verb, redact(url), latency_ms, exc)
        raise

    latency_ms = (time.perf_counter() - t0) * 1000.0
    code = response.status_code
    shown = redact(str(response.request.url)) if _has_request(response) else redact(url)

    if code >= 500:
        LOG.warning("%s %s → %s (%.0f ms)", verb, shown, code, latency_ms)
    else:
        LOG.info("%s %s → %s (%.0f ms)", verb, shown, code, latency_ms)

    return response


def _has_request(response: httpx.Response) -> bool:
    try:
        response.request
    except RuntimeError:
        return False
    return True


async def fetch_json(
    client: httpx.AsyncClient,
    url: str,
    *,
    provider: str,
    not_found_ok: bool = False,
    strict: bool = False,
    **kwargs: Any,
) -> Any:
    """
    GET *url* and return its decoded JSON body.

    Raises:
        UpstreamError: transport failure, non-2xx status or malformed JSON.
        NotFoundError: HTTP 404 when neither *not_found_ok* nor *strict* is set.

    With *strict* a 404 is just another failed status (UpstreamError).

    Returns None for a 404 when *not_found_ok* is True.
    """
    try:
        resp = await logged_request_async(client, "get", url, **kwargs)
    except httpx.HTTPError as exc:
        raise UpstreamError(
            provider, f"{provider} request failed", details=str(exc) or type(exc).__name__
        ) from exc

    if resp.status_code == 404 and not strict:
        if not_found_ok:
            return None
        raise NotFoundError(f"{provider} has no matching record")

    if not resp.is_success:
        raise UpstreamError(
            provider,
            f"{provider} API error: {resp.status_code}",
            status=resp.status_code,
            details=resp.text[:200] or None,
        )

    try:
        return resp.json()
    except ValueError as exc:
        raise UpstreamError(
            provider, f"{provider} returned malformed JSON", details=str(exc)
        ) from exc


__all__ = ["fetch_json", "logged_request_async", "redact"]
