"""Decoding of request and response bodies by their content type."""

from __future__ import annotations

import io
import json
from dataclasses import dataclass
from email import errors as email_errors
from email.message import Message
from email.parser import BytesParser
from email.utils import collapse_rfc2231_value
from typing import IO, Any, Callable, Mapping, Optional, Union

from .errors import ParseError, ParseErrorKind
from .params import SerializationMethod, _QueryDecoder, decode_value

Schema = Mapping[str, Any]
PREFIX_UNSUPPORTED_CT = "unsupported content type"
JSON_PREFIXES: tuple[bytes, ...] = (b")]}',\n",)

_PRIMITIVE_TYPES = ("string", "integer", "number", "boolean")
_MULTIPART_DEFECTS = (
    email_errors.NoBoundaryInMultipartDefect,
    email_errors.StartBoundaryNotFoundDefect,
    email_errors.CloseBoundaryNotFoundDefect,
)


@dataclass
class Encoding:
    """How one property of a form body is encoded."""

    content_type: str = ""
    style: str = ""
    explode: bool | None = None
    allow_reserved: bool = False

    def serialization_method(self) -> SerializationMethod:
        """Return the style and explode flag; form and explode by default."""
        style = self.style or "form"
        explode = True if self.explode is None else self.explode
        return SerializationMethod(style, explode)


EncodingFn = Callable[[str], Optional[Encoding]]
BodyDecoder = Callable[[IO[bytes], Mapping[str, str], Optional[Schema], Optional[EncodingFn]], Any]
Body = Union[bytes, bytearray, str, IO[bytes], None]

_body_decoders: dict[str, BodyDecoder] = {}


def _quote(text: str) -> str:
    return json.dumps(text, ensure_ascii=False)


def _header(headers: Mapping[str, str], name: str) -> str:
    wanted = name.lower()
    for key, value in headers.items():
        if key.lower() == wanted:
            return value
    return ""


def _media_type(content_type: str) -> str:
    return content_type.split(";", 1)[0].strip()


def _as_stream(body: Body) -> IO[bytes]:
    if body is None:
        return io.BytesIO(b"")
    if isinstance(body, str):
        return io.BytesIO(body.encode("utf-8"))
    if isinstance(body, (bytes, bytearray)):
        return io.BytesIO(bytes(body))
    return body


def _to_text(data: bytes) -> str:
    return data.decode("utf-8", errors="surrogateescape")


def registered_body_decoder(content_type: str) -> BodyDecoder | None:
    """Return the decoder registered for a content type, or None."""
    return _body_decoders.get(content_type)


def register_body_decoder(content_type: str, decoder: BodyDecoder) -> None:
    """Register a body decoder, replacing any decoder already registered."""
    if not content_type:
        raise ValueError("contentType is empty")
    if decoder is None:
        raise ValueError("decoder is not defined")
    _body_decoders[content_type] = decoder


def unregister_body_decoder(content_type: str) -> None:
    """Remove the decoder of a content type; decoding it then fails."""
    if not content_type:
        raise ValueError("contentType is empty")
    _body_decoders.pop(content_type, None)


def decode_body(
    body: Body,
    headers: Mapping[str, str],
    schema: Schema | None,
    encoding_fn: EncodingFn | None,
) -> Any:
    """Decode a body with the decoder registered for its Content-Type.

    Raises ParseError when the content type is unsupported or the body is
    malformed.
    """
    media_type = _media_type(_header(headers, "Content-Type"))
    decoder = _body_decoders.get(media_type)
    if decoder is None:
        raise ParseError(
            kind=ParseErrorKind.UNSUPPORTED_FORMAT,
            reason=f"{PREFIX_UNSUPPORTED_CT} {_quote(media_type)}",
        )
    return decoder(_as_stream(body), headers, schema, encoding_fn)


def plain_body_decoder(body, headers, schema, encoding_fn) -> str:
    """Return the body as text."""
    try:
        return _to_text(body.read())
    except OSError as exc:
        raise ParseError(kind=ParseErrorKind.INVALID_FORMAT, cause=exc) from exc


def _reject_constant(name: str) -> Any:
    raise ValueError(f"invalid JSON constant {name}")


_JSON = json.JSONDecoder(parse_int=float, parse_constant=_reject_constant)


def json_body_decoder(body, headers, schema, encoding_fn) -> Any:
    """Decode the first JSON value of the body; numbers become floats."""
    try:
        text = body.read().decode("utf-8").lstrip(" \t\r\n")
        value, _ = _JSON.raw_decode(text)
    except (ValueError, OSError) as exc:
        raise ParseError(kind=ParseErrorKind.INVALID_FORMAT, cause=exc) from exc
    return value


def urlencoded_body_decoder(body, headers, schema, encoding_fn) -> dict[str, Any]:
    """Decode a URL-encoded form into an object described by ``schema``."""
    if not schema or schema.get("type") != "object":
        raise ValueError("unsupported schema of request body")
    properties = schema.get("properties") or {}
    for name, prop in properties.items():
        prop_type = prop.get("type")
        unsupported = prop_type == "object" or (
            prop_type == "array" and (prop.get("items") or {}).get("type") not in _PRIMITIVE_TYPES
        )
        if unsupported:
            raise ValueError(f"unsupported schema of request body's property {_quote(name)}")

    from urllib.parse import parse_qs

    values = parse_qs(body.read().decode("utf-8"), keep_blank_values=True)
    decoder = _QueryDecoder(values)
    obj = {}
    for name, prop in properties.items():
        encoding = encoding_fn(name) if encoding_fn is not None else None
        method = (encoding or Encoding()).serialization_method()
        obj[name] = decode_value(decoder, name, method, prop, False)
    return obj


def _parse_multipart(content_type: str, data: bytes) -> Message:
    if not content_type:
        raise ValueError("mime: no media type")
    head = f"MIME-Version: 1.0\r\nContent-Type: {content_type}\r\n\r\n".encode("latin-1")
    message = BytesParser().parsebytes(head + data)
    if not message.is_multipart() or any(
        isinstance(defect, _MULTIPART_DEFECTS) for defect in message.defects
    ):
        raise ValueError("multipart: malformed body")
    return message


def _form_name(part: Message) -> str:
    if part.get_content_disposition() != "form-data":
        return ""
    name = part.get_param("name", header="content-disposition")
    return collapse_rfc2231_value(name) if name else ""


def _undefined_part(name: str) -> ParseError:
    return ParseError(kind=ParseErrorKind.OTHER, cause=ValueError(f"part {name}: undefined"))


def multipart_body_decoder(body, headers, schema, encoding_fn) -> dict[str, Any]:
    """Decode a multipart form, each part by its own Content-Type."""
    if not schema or schema.get("type") != "object":
        raise ValueError("unsupported schema of request body")
    message = _parse_multipart(_header(headers, "Content-Type"), body.read())

    properties = schema.get("properties") or {}
    additional = schema.get("additionalProperties")
    extra_properties = (additional.get("properties") or {}) if isinstance(additional, Mapping) else {}

    values: dict[str, list[Any]] = {}
    for part in message.get_payload():
        name = _form_name(part)
        encoding = encoding_fn(name) if encoding_fn is not None else None
        value_schema = properties.get(name)
        if value_schema is None:
            if additional is True:
                continue
            if name not in extra_properties:
                raise _undefined_part(name)
            value_schema = extra_properties[name]
        if value_schema.get("type") == "array":
            value_schema = value_schema.get("items")

        try:
            value = decode_body(
                part.get_payload(decode=True) or b"",
                dict(part.items()),
                value_schema,
                lambda _name, _enc=encoding: _enc,
            )
        except ParseError as exc:
            raise ParseError(path=[name], cause=exc) from exc
        except ValueError as exc:
            raise ValueError(f"part {name}: {exc}") from exc
        values.setdefault(name, []).append(value)

    obj = {}
    for name, prop in {**properties, **extra_properties}.items():
        found = values.get(name)
        if not found:
            continue
        obj[name] = found if prop.get("type") == "array" else found[0]
    return obj


def file_body_decoder(body, headers, schema, encoding_fn) -> str:
    """Return the content of a file body as text."""
    return _to_text(body.read())


def trim_json_prefix(data: bytes) -> bytes:
    """Strip one known anti-hijacking prefix from JSON data."""
    for prefix in JSON_PREFIXES:
        if data.startswith(prefix):
            return data[len(prefix):]
    return data


register_body_decoder("text/plain", plain_body_decoder)
register_body_decoder("application/json", json_body_decoder)
register_body_decoder("application/problem+json", json_body_decoder)
register_body_decoder("application/x-www-form-urlencoded", urlencoded_body_decoder)
register_body_decoder("multipart/form-data", multipart_body_decoder)
register_body_decoder("application/octet-stream", file_body_decoder)