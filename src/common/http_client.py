"""Shared HTTP helpers used by the artifact transport.

Encapsulates request logging and timing so the transport avoids duplicating
try/except blocks. Errors are logged and re-raised; deciding whether a failed
request is fatal belongs to the caller.
"""
from __future__ import annotations

import logging
from typing import Any, Optional

import requests

from constants import Constants
from common.logging_utils import extra_context, is_debug_enabled, safe_url, Timer

logger = logging.getLogger(__name__)


def safe_get(
    url: str,
    *,
    context: str,
    session: Optional[requests.Session] = None,
    timeout: Optional[float] = None,
    **kwargs: Any,
) -> requests.Response:
    """Perform a GET request with consistent error logging and DEBUG traces.

    Args:
        url: Target URL.
        context: Human-readable source tag for logs (e.g. a repository id).
        session: Optional ``requests.Session`` to reuse connections.
        timeout: Seconds before giving up; defaults to Constants.REQUEST_TIMEOUT.
        **kwargs: Passed through to ``requests.get``.

    Returns:
        requests.Response: The HTTP response object, whatever its status.

    Raises:
        requests.RequestException: On timeouts and connection errors.
    """
    safe_target = safe_url(url)
    getter = session.get if session is not None else requests.get
    headers = {"User-Agent": Constants.USER_AGENT}
    headers.update(kwargs.pop("headers", None) or {})
    with Timer() as t:
        if is_debug_enabled(logger):
            logger.debug(
                "HTTP request",
                extra=extra_context(
                    event="http_request",
                    component="http_client",
                    action="GET",
                    target=safe_target,
                    context=context,
                ),
            )
        try:
            res = getter(
                url,
                timeout=timeout if timeout is not None else Constants.REQUEST_TIMEOUT,
                headers=headers,
                **kwargs,
            )
        except requests.Timeout:
            logger.error(
                "%s request timed out after %s seconds",
                context,
                timeout if timeout is not None else Constants.REQUEST_TIMEOUT,
                extra=extra_context(
                    event="http_error", outcome="timeout", target=safe_target
                ),
            )
            raise
        except requests.RequestException as exc:  # includes ConnectionError
            logger.error(
                "%s connection error: %s",
                context,
                exc,
                extra=extra_context(
                    event="http_error", outcome="exception", target=safe_target
                ),
            )
            raise
        if is_debug_enabled(logger):
            logger.debug(
                "HTTP response",
                extra=extra_context(
                    event="http_response",
                    component="http_client",
                    action="GET",
                    outcome="success" if res.status_code == 200 else "non_2xx",
                    status_code=res.status_code,
                    duration_ms=t.duration_ms(),
                    target=safe_target,
                    context=context,
                ),
            )
        return res
