"""
HTTP plumbing shared by the provider clients.

All requests go through :func:`post_json`, which performs exactly one POST
under a total deadline and converts every failure into a
:class:`~ai_commit.llm.errors.TransportError` carrying a user-safe
message. Vendor error bodies are never part of that message; they are
logged at DEBUG level and kept on ``TransportError.detail``.
"""

from __future__ import annotations

import json
import logging
import time
from typing import Any, Dict, Mapping, Optional

import requests
from requests.adapters import HTTPAdapter

from ai_commit.llm.errors import TransportError, TransportErrorKind


logger = logging.getLogger(__name__)
if not logger.handlers:
    logger.addHandler(logging.NullHandler())
    logger.propagate = False


CONNECT_TIMEOUT = 10.0
TOTAL_TIMEOUT = 30.0
# A larger read blocks until it is filled, so a slow sender would hide from
# the deadline check.
BODY_CHUNK_SIZE = 1

AUTH_FAILED_MESSAGE = "Authentication failed. Please check your API key."
FORBIDDEN_MESSAGE = "Access forbidden. Your API key may not have permission for this model."
RATE_LIMITED_MESSAGE = "Rate limit exceeded. Please try again later."
SERVER_ERROR_MESSAGE = "The AI service is experiencing issues. Please try again later."
TIMEOUT_MESSAGE = "The request to the AI service timed out."
NETWORK_MESSAGE = "Could not connect to the AI service. Please check your network connection."
INVALID_BODY_MESSAGE = "The AI service returned a response that could not be decoded."


def classify_status(status_code: int) -> str:
    """Map a non-2xx HTTP status to a fixed, user-safe message."""
    if status_code == 401:
        return AUTH_FAILED_MESSAGE
    if status_code == 403:
        return FORBIDDEN_MESSAGE
    if status_code == 429:
        return RATE_LIMITED_MESSAGE
    if 500 <= status_code <= 599:
        return SERVER_ERROR_MESSAGE
    return f"Request to the AI service failed (HTTP {status_code})."


def create_session() -> requests.Session:
    """Create a session that never retries on its own."""
    session = requests.Session()
    adapter = HTTPAdapter(max_retries=0)
    session.mount("https://", adapter)
    session.mount("http://", adapter)
    return session


def _timeout_error(provider: str, detail: str) -> TransportError:
    logger.debug("Request to %s timed out: %s", provider, detail)
    return TransportError(TIMEOUT_MESSAGE, TransportErrorKind.TIMEOUT, detail=detail)


def _read_body(response: requests.Response, deadline: float, provider: str) -> str:
    """Drain a streamed response, giving up once ``deadline`` has passed."""
    chunks = []
    try:
        for chunk in response.iter_content(chunk_size=BODY_CHUNK_SIZE):
            chunks.append(chunk)
            if time.monotonic() > deadline:
                raise _timeout_error(provider, "total request time exceeded while reading the response")
    except requests.RequestException as exc:
        # A stalled read surfaces as a connection error once the socket gives up.
        if isinstance(exc, requests.Timeout) or time.monotonic() > deadline:
            raise _timeout_error(provider, str(exc)) from exc
        logger.debug("Connection to %s broke while reading the response: %s", provider, exc)
        raise TransportError(NETWORK_MESSAGE, TransportErrorKind.NETWORK, detail=str(exc)) from exc
    if time.monotonic() > deadline:
        raise _timeout_error(provider, "total request time exceeded")

    body = b"".join(chunks)
    try:
        return body.decode(response.encoding or "utf-8", errors="replace")
    except LookupError:
        return body.decode("utf-8", errors="replace")


def post_json(
    session: requests.Session,
    url: str,
    headers: Mapping[str, str],
    payload: Dict[str, Any],
    provider: str,
    connect_timeout: float = CONNECT_TIMEOUT,
    total_timeout: float = TOTAL_TIMEOUT,
) -> Dict[str, Any]:
    """POST ``payload`` as JSON to ``url`` and return the decoded JSON reply.

    The whole exchange, from connecting to reading the last byte of the
    body, is bounded by ``total_timeout``. The body is streamed so the
    deadline is enforced even when the server keeps trickling bytes.

    Parameters
    ----------
    session : requests.Session
        Session owned by the calling client.
    url : str
        Full endpoint URL.
    headers : Mapping[str, str]
        Request headers, including credentials. Never logged.
    payload : Dict[str, Any]
        Request body.
    provider : str
        Provider name, used in log lines only.
    connect_timeout : float, optional
        Seconds allowed for establishing the connection.
    total_timeout : float, optional
        Seconds allowed for the whole request.

    Returns
    -------
    Dict[str, Any]
        The decoded response body.

    Raises
    ------
    TransportError
        On timeout, connection failure, non-2xx status or an undecodable body.
    """
    logger.debug("Sending request to %s at %s (model=%s)", provider, url, payload.get("model"))
    deadline = time.monotonic() + total_timeout
    try:
        response = session.post(
            url,
            headers=dict(headers),
            json=payload,
            timeout=(connect_timeout, total_timeout),
            stream=True,
        )
    except requests.Timeout as exc:
        raise _timeout_error(provider, str(exc)) from exc
    except requests.RequestException as exc:
        logger.debug("Failed to connect to %s: %s", provider, exc)
        raise TransportError(NETWORK_MESSAGE, TransportErrorKind.NETWORK, detail=str(exc)) from exc

    try:
        text = _read_body(response, deadline, provider)
    finally:
        response.close()

    status = response.status_code
    if not 200 <= status < 300:
        logger.debug("%s returned HTTP %s: %s", provider, status, text)
        raise TransportError(
            classify_status(status),
            TransportErrorKind.HTTP,
            status_code=status,
            detail=text,
        )

    try:
        data = json.loads(text)
    except ValueError as exc:
        logger.debug("Failed to decode %s response: %s", provider, exc)
        raise TransportError(
            INVALID_BODY_MESSAGE,
            TransportErrorKind.INVALID_RESPONSE,
            status_code=status,
            detail=text,
        ) from exc
    if not isinstance(data, dict):
        raise TransportError(
            INVALID_BODY_MESSAGE,
            TransportErrorKind.INVALID_RESPONSE,
            status_code=status,
            detail=text,
        )
    return data


def no_usable_response(provider: str, data: Optional[Any] = None) -> TransportError:
    """Build the error raised when a 2xx reply carries no text."""
    return TransportError(
        f"No usable response from {provider}.",
        TransportErrorKind.INVALID_RESPONSE,
        detail=json.dumps(data) if data is not None else None,
    )
