"""Turning errors into HTTP error responses."""

from __future__ import annotations

from dataclasses import dataclass, field


@dataclass
class EncodedError:
    """An HTTP response that reports an error."""

    status: int
    headers: list[tuple[str, str]] = field(default_factory=list)
    body: bytes = b""


def default_error_encoder(error: BaseException) -> EncodedError:
    """Encode an error as a response.

    The body is the error's text, served as text/plain with status 500.
    An error with a ``to_json()`` method that succeeds is served as JSON;
    one with ``headers()`` adds those headers; one with ``status_code()``
    sets the status.
    """
    content_type = "text/plain; charset=utf-8"
    body = str(error).encode("utf-8")

    to_json = getattr(error, "to_json", None)
    if callable(to_json):
        try:
            encoded = to_json()
        except Exception:
            pass
        else:
            content_type = "application/json; charset=utf-8"
            body = encoded if isinstance(encoded, bytes) else str(encoded).encode("utf-8")

    headers = [("Content-Type", content_type)]
    extra_headers = getattr(error, "headers", None)
    if callable(extra_headers):
        for name, values in extra_headers().items():
            headers.extend((name, value) for value in values)

    status = 500
    status_code = getattr(error, "status_code", None)
    if callable(status_code):
        status = status_code()

    return EncodedError(status=status, headers=headers, body=body)