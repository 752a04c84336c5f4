"""Response decoding for the tracker backend.

A response body is read exactly once. Decoding a response whose body was
already read raises :class:`BodyConsumedError` instead of returning stale
content.
"""

import json
import logging
from typing import Any

logger = logging.getLogger(__name__)


class TrackerAPIError(Exception):
    """Domain exception for tracker backend failures."""

    def __init__(self, message: str, original_exception: Exception = None):
        super().__init__(message)
        self.original_exception = original_exception

    @property
    def message(self) -> str:
        return str(self)


class TransportError(TrackerAPIError):
    """The backend could not be reached."""


class ApiRequestError(TrackerAPIError):
    """The backend answered with a non-success status."""

    def __init__(
        self, message: str, status_code: int, original_exception: Exception = None
    ):
        super().__init__(message, original_exception)
        self.status_code = status_code


class InvalidResponseError(TrackerAPIError):
    """The backend answered with a success status but an undecodable body."""


class NotAuthenticatedError(TrackerAPIError):
    """An operation needing a bearer token was attempted without one."""


class BodyConsumedError(RuntimeError):
    """A response body was read a second time."""


class ApiResponse:
    """A backend response whose body can be read only once."""

    def __init__(self, status_code: int, body: bytes | str | None, url: str = ""):
        self.status_code = status_code
        self.url = url
        self._body = body
        self._body_used = False

    @classmethod
    def from_response(cls, response: Any) -> "ApiResponse":
        """Wrap a niquests response."""
        return cls(response.status_code, response.content, str(response.url or ""))

    @property
    def ok(self) -> bool:
        return 200 <= self.status_code < 300

    @property
    def body_used(self) -> bool:
        return self._body_used

    def read(self) -> bytes | str:
        """Return the raw body and mark it consumed."""
        if self._body_used:
            raise BodyConsumedError("Response body has already been consumed")
        self._body_used = True
        body, self._body = self._body, None
        return body if body is not None else b""

    def text(self) -> str:
        """Return the body as strictly decoded UTF-8 text.

        Raises:
            UnicodeDecodeError: the body is not valid UTF-8.
        """
        return _decode(self.read())


def _decode(body: bytes | str, errors: str = "strict") -> str:
    if isinstance(body, bytes):
        return body.decode("utf-8", errors=errors)
    return body


def _failure_message(text: str) -> str:
    try:
        payload = json.loads(text)
    except ValueError:
        return f"API request failed: {text}"
    if isinstance(payload, dict) and payload.get("error"):
        return str(payload["error"])
    return "API request failed"


def ensure_success(response: ApiResponse) -> str:
    """Read the body once and raise if the status is not a success.

    Unlike :func:`decode_response` the body is not required to be JSON, so
    this suits endpoints that may answer with an empty body. A success body
    that is not valid UTF-8 raises :class:`InvalidResponseError`; a failure
    body is decoded leniently since it only feeds the error message.
    """
    body = response.read()
    if not response.ok:
        text = _decode(body, errors="replace")
        raise ApiRequestError(_failure_message(text), response.status_code)
    try:
        return _decode(body)
    except UnicodeDecodeError as exc:
        logger.error("Undecodable response body from %s", response.url)
        raise InvalidResponseError("Invalid UTF-8 response from API", exc) from exc


def decode_response(response: ApiResponse) -> Any:
    """Read the body once and return the decoded JSON payload.

    Raises:
        ApiRequestError: the status is not a success; the message is taken
            from the body's ``error`` field, or the raw body when it is not
            JSON.
        InvalidResponseError: the status is a success but the body is not
            valid JSON.
        BodyConsumedError: the body was already read.
    """
    text = ensure_success(response)
    try:
        return json.loads(text)
    except ValueError as exc:
        logger.error("Invalid JSON response from %s: %s", response.url, text)
        raise InvalidResponseError("Invalid JSON response from API", exc) from exc
