"""
Request pipeline building blocks.

Everything here is free of I/O: building outbound requests (headers, JSON
and multipart bodies) and classifying raw responses into a ``Result``. The
clients in ``client.py`` do the sending.
"""

import json
import uuid
from typing import Any, Dict, Mapping, Optional, Tuple
from urllib.parse import quote, urlencode

import httpx

from .errors import HttpError, NetworkError, ProtocolError, UnauthenticatedError
from .types import SESSION_HEADER, OutboundRequest, Result


SDK_VERSION = "v1.0"
USER_AGENT = f"BaasBox Python SDK - {SDK_VERSION}"
APPCODE_HEADER = "X-BAASBOX-APPCODE"
JSON_CONTENT_TYPE = "application/json"
BOUNDARY = "BAASBOX_BOUNDARY_STRING"
MULTIPART_CONTENT_TYPE = f"multipart/form-data; boundary={BOUNDARY}"

OK_SENTINEL = "ok"


def build_headers(
    appcode: str,
    session_token: str = "",
    content_type: str = JSON_CONTENT_TYPE,
    extra: Optional[Mapping[str, str]] = None,
) -> Tuple[Tuple[str, str], ...]:
    """Headers for one request; the session header only when authenticated."""
    headers: Dict[str, str] = {
        "Cache-Control": "no-cache",
        "Content-Type": content_type,
        APPCODE_HEADER: appcode,
        "User-Agent": USER_AGENT,
        **(extra or {}),
    }
    if session_token:
        headers[SESSION_HEADER] = session_token
    return tuple(headers.items())


def build_url(base_url: str, path: str, params: Optional[Mapping[str, Any]] = None) -> str:
    url = base_url + (path if path.startswith("/") else "/" + path)
    if params:
        url += "?" + urlencode(params, doseq=True)
    return url


def path_segment(value: str) -> str:
    """Escape a caller value used as a single path segment."""
    return quote(value, safe="")


def encode_json(body: Optional[Mapping[str, Any]]) -> bytes:
    return json.dumps(dict(body or {}), separators=(",", ":")).encode("utf-8")


def encode_multipart(
    data: bytes,
    attached_data: Optional[Mapping[str, Any]] = None,
    acl: Optional[Mapping[str, Any]] = None,
    filename: Optional[str] = None,
    mimetype: str = "application/octet-stream",
) -> bytes:
    """
    Three-part upload body: the file, ``attachedData`` JSON and ``acl`` JSON.

    Uses the fixed ``BOUNDARY`` so the content-type header of a replayed
    upload is identical to the original.
    """
    name = filename or uuid.uuid4().hex
    delimiter = f"--{BOUNDARY}\r\n".encode("ascii")
    parts = [
        delimiter,
        f'Content-Disposition: form-data; name="file"; filename="{name}"\r\n'.encode("utf-8"),
        f"Content-Type: {mimetype}\r\n\r\n".encode("ascii"),
        data,
        b"\r\n",
        delimiter,
        b'Content-Disposition: form-data; name="attachedData"\r\n',
        b"Content-Type: application/json\r\n\r\n",
        encode_json(attached_data),
        b"\r\n",
        delimiter,
        b'Content-Disposition: form-data; name="acl"\r\n',
        b"Content-Type: application/json\r\n\r\n",
        encode_json(acl),
        b"\r\n",
        f"--{BOUNDARY}--\r\n".encode("ascii"),
    ]
    return b"".join(parts)


def build_request(
    base_url: str,
    appcode: str,
    method: str,
    path: str,
    *,
    timeout: float,
    session_token: str = "",
    params: Optional[Mapping[str, Any]] = None,
    body: Optional[Mapping[str, Any]] = None,
    content: Optional[bytes] = None,
    content_type: str = JSON_CONTENT_TYPE,
    extra_headers: Optional[Mapping[str, str]] = None,
) -> OutboundRequest:
    """
    Build an immutable outbound request.

    GET parameters go to the query string; other verbs carry ``body`` as
    JSON unless a pre-encoded ``content`` (e.g. multipart) is given.
    """
    method = method.upper()
    if method == "GET":
        url = build_url(base_url, path, params)
        payload = b""
    else:
        url = build_url(base_url, path)
        payload = content if content is not None else encode_json(body)
    return OutboundRequest(
        method=method,
        url=url,
        headers=build_headers(appcode, session_token, content_type, extra_headers),
        body=payload,
        timeout=timeout,
    )


def _decode(content: bytes) -> Any:
    if not content:
        return None
    try:
        return json.loads(content.decode("utf-8"))
    except ValueError:
        return None


def _message(payload: Any, default: str) -> str:
    if isinstance(payload, dict) and isinstance(payload.get("message"), str):
        return payload["message"]
    return default


def classify_response(status_code: int, content: bytes) -> Result:
    """
    Map a raw response onto the result channel.

    - status >= 400: ``UnauthenticatedError`` for 401, ``HttpError`` otherwise
    - status < 400: success only if the envelope is ``{"result": "ok", ...}``;
      anything else is a ``ProtocolError``
    """
    payload = _decode(content)

    if status_code >= 400:
        message = _message(payload, f"HTTP {status_code}")
        if status_code == 401:
            return Result.fail(UnauthenticatedError(message))
        return Result.fail(HttpError(status_code, message))

    if not isinstance(payload, dict):
        return Result.fail(ProtocolError("Response body is not a JSON object", status_code))
    if payload.get("result") != OK_SENTINEL:
        return Result.fail(
            ProtocolError(_message(payload, "Response result is not ok"), status_code)
        )
    return Result.ok(payload.get("data"))


def transport_error(error: httpx.RequestError, timeout: float) -> NetworkError:
    """Translate an httpx transport failure."""
    if isinstance(error, httpx.TimeoutException):
        return NetworkError("Request timeout", {"timeout": timeout})
    return NetworkError(str(error) or type(error).__name__)
