# src/jobradar/clients/secretary.py

"""
Plain-function client for the secretary service's template extraction endpoint.

Design goals:
- Keep *all* HTTP details here so the flows never worry about form bodies,
  headers, deadlines or status codes.
- Exactly one POST per call. No retries and no caching on our side; the
  service is LLM-backed and slow, so the caller decides what to do on failure.
- Every failure comes out classified (see jobradar.errors).
"""

from __future__ import annotations

import functools
import logging
import urllib.parse
from typing import Any, Callable, Dict, Optional

import httpx

from jobradar.config import Settings
from jobradar.errors import (
    ClientValidationError,
    ExtractionTimeout,
    HttpError,
    NetworkError,
)
from jobradar.models import ExtractionRequest, ExtractionResult, ProcessInfo, StructuredRecord

log = logging.getLogger(__name__)

Extractor = Callable[[ExtractionRequest], ExtractionResult]

DEFAULT_TIMEOUT = 60.0


# ---- Internal helpers ---------------------------------------------------------

def _template_url(base_url: str) -> str:
    return f"{base_url.rstrip('/')}/transformer/template"


def _default_headers(api_key: Optional[str]) -> Dict[str, str]:
    headers = {
        "Accept": "application/json",
        "User-Agent": "job-radar-import/0.1",
    }
    if api_key:
        headers["Authorization"] = f"Bearer {api_key}"
        headers["X-Secretary-Api-Key"] = api_key
    return headers


def is_valid_url(url: str) -> bool:
    """Absolute URL with a scheme and a host, e.g. https://example.com/jobs."""
    if not url or not url.strip():
        return False
    try:
        parts = urllib.parse.urlsplit(url.strip())
    except ValueError:
        return False
    return bool(parts.scheme) and bool(parts.netloc)


def _error_message(resp: httpx.Response) -> tuple[str, Any]:
    """
    Pull the service's own explanation out of an error response.
    The service puts actionable diagnostics there, so read it before giving up.
    """
    fallback = f"HTTP {resp.status_code}: {resp.reason_phrase}"
    try:
        body = resp.json()
    except ValueError:
        return fallback, resp.text or None

    if isinstance(body, dict):
        err = body.get("error")
        if isinstance(err, dict) and isinstance(err.get("message"), str) and err["message"].strip():
            return err["message"].strip(), body
        for key in ("message", "error", "detail"):
            value = body.get(key)
            if isinstance(value, str) and value.strip():
                return value.strip(), body
    return fallback, body


def _parse_envelope(body: Any, request: ExtractionRequest) -> ExtractionResult:
    if not isinstance(body, dict):
        return ExtractionResult(status="error", error_message="Unexpected response shape from extraction service")

    process = ProcessInfo.from_json(body.get("process"))
    if body.get("status") != "success":
        err = body.get("error") if isinstance(body.get("error"), dict) else {}
        return ExtractionResult(
            status="error",
            process=process,
            error_code=err.get("code"),
            error_message=err.get("message") or body.get("message") or "Unknown extraction error",
        )

    data = body.get("data") if isinstance(body.get("data"), dict) else {}
    structured = data.get("structured_data")
    record = None
    if structured is not None:
        record = StructuredRecord(
            payload=structured,
            template=request.template if not request.template_content else "(inline)",
            source_url=request.url,
        )
    return ExtractionResult(status="success", process=process, record=record)


def _post(client: httpx.Client, url: str, form: Dict[str, str], headers: Dict[str, str], timeout: float) -> httpx.Response:
    try:
        return client.post(url, data=form, headers=headers, timeout=timeout)
    except httpx.ConnectTimeout as e:
        # never got a connection, so it is a network problem, not a slow service
        raise NetworkError(f"Could not connect to extraction service: {e}") from e
    except httpx.TimeoutException as e:
        raise ExtractionTimeout(f"Extraction service did not answer within {timeout:g}s") from e
    except httpx.TransportError as e:
        raise NetworkError(f"Extraction service not reachable: {e}") from e


# ---- Public API ---------------------------------------------------------------

def extract_structured_data(
    request: ExtractionRequest,
    *,
    base_url: str,
    api_key: Optional[str] = None,
    timeout: float = DEFAULT_TIMEOUT,
    client: Optional[httpx.Client] = None,
) -> ExtractionResult:
    """
    Ask the service to turn `request.url` into a structured record.

    Returns the parsed envelope (which may itself say `status: error`).
    Raises:
    - ClientValidationError: request.url is not an absolute URL (no call made)
    - HttpError: non-2xx answer, message taken from the body when possible
    - NetworkError / ExtractionTimeout: no (timely) answer
    """
    if not is_valid_url(request.url):
        raise ClientValidationError(f"Invalid URL: {request.url!r}")

    endpoint = _template_url(base_url)
    form = request.form_fields()
    headers = _default_headers(api_key)

    log.info("Extracting %s (template=%s)", request.url, form.get("template", "(inline)"))

    if client is None:
        with httpx.Client() as own:
            resp = _post(own, endpoint, form, headers, timeout)
            return _handle_response(resp, request)
    resp = _post(client, endpoint, form, headers, timeout)
    return _handle_response(resp, request)


def _handle_response(resp: httpx.Response, request: ExtractionRequest) -> ExtractionResult:
    if not resp.is_success:
        message, body = _error_message(resp)
        log.warning("Extraction of %s failed with HTTP %s: %s", request.url, resp.status_code, message)
        raise HttpError(resp.status_code, message, body)

    try:
        body = resp.json()
    except ValueError as e:
        preview = resp.text[:200].replace("\n", " ")
        raise HttpError(resp.status_code, f"Extraction service sent invalid JSON; body starts: {preview!r}", resp.text) from e

    result = _parse_envelope(body, request)
    if result.status == "error":
        log.warning("Extraction service reported an error for %s: %s", request.url, result.error_message)
    elif result.process and result.process.is_from_cache:
        log.debug("Result for %s served from service cache", request.url)
    return result


def make_extractor(settings: Settings, client: Optional[httpx.Client] = None) -> Extractor:
    """Bind service URL, key and deadline so flows can just call `extract(request)`."""
    return functools.partial(
        extract_structured_data,
        base_url=settings.require_service_url(),
        api_key=settings.api_key or None,
        timeout=settings.timeout,
        client=client,
    )
