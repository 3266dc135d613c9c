"""Decoding of operation parameters from path, query, header and cookie values.

Schemas are JSON-schema style mappings such as ``{"type": "integer"}``.
"""

from __future__ import annotations

import json
import math
import re
from dataclasses import dataclass, field
from typing import Any, Callable, Mapping, Protocol, Sequence
from urllib.parse import parse_qs

from .errors import ParseError, ParseErrorKind

Schema = Mapping[str, Any]
ContentParameterDecoder = Callable[["Parameter", list], tuple]

_LOCATIONS = ("path", "query", "header", "cookie")


@dataclass(frozen=True)
class SerializationMethod:
    """How a parameter value is serialised: a style and an explode flag."""

    style: str
    explode: bool


@dataclass
class Parameter:
    """An operation parameter as declared in an API description."""

    name: str
    location: str
    required: bool = False
    style: str = ""
    explode: bool | None = None
    schema: Schema | None = None
    content: Mapping[str, Mapping[str, Any]] | None = None

    def serialization_method(self) -> SerializationMethod:
        """Return the style and explode flag, filling in the defaults."""
        if self.location in ("path", "header"):
            style = self.style or "simple"
            explode = False if self.explode is None else self.explode
        elif self.location in ("query", "cookie"):
            style = self.style or "form"
            explode = True if self.explode is None else self.explode
        else:
            raise ValueError(f"unexpected parameter.in: {json.dumps(self.location)}")
        return SerializationMethod(style, explode)


@dataclass
class RequestInput:
    """The parts of an HTTP request that parameters are read from.

    ``query_params`` may be given as a raw query string. Header names are
    matched without regard to case.
    """

    path_params: dict[str, str] = field(default_factory=dict)
    query_params: dict[str, list[str]] | str = field(default_factory=dict)
    headers: dict[str, str] = field(default_factory=dict)
    cookies: dict[str, str] = field(default_factory=dict)

    def __post_init__(self) -> None:
        if isinstance(self.query_params, str):
            self.query_params = parse_qs(self.query_params, keep_blank_values=True)
        self.headers = {name.lower(): value for name, value in self.headers.items()}


class _ValueDecoder(Protocol):
    def decode_primitive(self, name: str, method: SerializationMethod, schema: Schema) -> Any: ...

    def decode_array(self, name: str, method: SerializationMethod, schema: Schema) -> list | None: ...

    def decode_object(self, name: str, method: SerializationMethod, schema: Schema) -> dict | None: ...


def _quote(text: str) -> str:
    return json.dumps(text)


def _invalid_method(method: SerializationMethod) -> ValueError:
    return ValueError(
        f"invalid serialization method: style={_quote(method.style)}, "
        f"explode={str(method.explode).lower()}"
    )


def _split(text: str, delim: str) -> list[str]:
    return text.split(delim) if delim else list(text)


def _cut_prefix(raw: str, prefix: str) -> str:
    if not prefix:
        return raw
    if not raw.startswith(prefix):
        raise ParseError(
            kind=ParseErrorKind.INVALID_FORMAT,
            value=raw,
            reason=f"a value must be prefixed with {_quote(prefix)}",
        )
    return raw[len(prefix):]


class _PathDecoder:
    def __init__(self, path_params: Mapping[str, str]) -> None:
        self.path_params = path_params

    def _source(self, name: str, prefix: str) -> str | None:
        raw = self.path_params.get(name) if self.path_params else None
        if not raw:
            return None
        return _cut_prefix(raw, prefix)

    def decode_primitive(self, name, method, schema):
        match method.style:
            case "simple":
                prefix = ""
            case "label":
                prefix = "."
            case "matrix":
                prefix = f";{name}="
            case _:
                raise _invalid_method(method)
        src = self._source(name, prefix)
        return None if src is None else parse_primitive(src, schema)

    def decode_array(self, name, method, schema):
        match method.style, method.explode:
            case "simple", _:
                prefix, delim = "", ","
            case "label", False:
                prefix, delim = ".", ","
            case "label", True:
                prefix, delim = ".", "."
            case "matrix", False:
                prefix, delim = f";{name}=", ","
            case "matrix", True:
                prefix, delim = f";{name}=", f";{name}="
            case _:
                raise _invalid_method(method)
        src = self._source(name, prefix)
        return None if src is None else parse_array(_split(src, delim), schema)

    def decode_object(self, name, method, schema):
        match method.style, method.explode:
            case "simple", False:
                prefix, props_delim, value_delim = "", ",", ","
            case "simple", True:
                prefix, props_delim, value_delim = "", ",", "="
            case "label", False:
                prefix, props_delim, value_delim = ".", ",", ","
            case "label", True:
                prefix, props_delim, value_delim = ".", ".", "="
            case "matrix", False:
                prefix, props_delim, value_delim = f";{name}=", ",", ","
            case "matrix", True:
                prefix, props_delim, value_delim = ";", ";", "="
            case _:
                raise _invalid_method(method)
        src = self._source(name, prefix)
        if src is None:
            return None
        return make_object(props_from_string(src, props_delim, value_delim), schema)


_ARRAY_DELIMS = {"form": ",", "spaceDelimited": " ", "pipeDelimited": "|"}


class _QueryDecoder:
    def __init__(self, values: Mapping[str, Sequence[str]]) -> None:
        self.values = values

    def decode_primitive(self, name, method, schema):
        if method.style != "form":
            raise _invalid_method(method)
        values = self.values.get(name)
        if not values:
            return None
        return parse_primitive(values[0], schema)

    def decode_array(self, name, method, schema):
        if method.style == "deepObject":
            raise _invalid_method(method)
        values = self.values.get(name)
        if not values:
            return None
        items = list(values)
        if not method.explode:
            items = _split(items[0], _ARRAY_DELIMS.get(method.style, ""))
        return parse_array(items, schema)

    def decode_object(self, name, method, schema):
        if method.style == "form":
            props = self._form_props(name, method)
        elif method.style == "deepObject":
            props = self._deep_object_props(name)
        else:
            raise _invalid_method(method)
        if props is None:
            return None
        return make_object(props, schema)

    def _form_props(self, name, method):
        if not self.values:
            return None
        if method.explode:
            return {key: values[0] for key, values in self.values.items() if values}
        values = self.values.get(name)
        if not values:
            return None
        return props_from_string(values[0], ",", ",")

    def _deep_object_props(self, name):
        pattern = re.compile(rf"{re.escape(name)}\[(.+?)\]")
        props = {}
        for key, values in self.values.items():
            match = pattern.search(key)
            if match and values:
                props[match.group(1)] = values[0]
        return props or None


class _HeaderDecoder:
    def __init__(self, headers: Mapping[str, str]) -> None:
        self.headers = headers

    def _raw(self, name, method) -> str:
        if method.style != "simple":
            raise _invalid_method(method)
        return self.headers.get(name.lower(), "")

    def decode_primitive(self, name, method, schema):
        return parse_primitive(self._raw(name, method), schema)

    def decode_array(self, name, method, schema):
        raw = self._raw(name, method)
        if not raw:
            return None
        return parse_array(raw.split(","), schema)

    def decode_object(self, name, method, schema):
        raw = self._raw(name, method)
        value_delim = "=" if method.explode else ","
        if not raw:
            return None
        return make_object(props_from_string(raw, ",", value_delim), schema)


class _CookieDecoder:
    def __init__(self, cookies: Mapping[str, str]) -> None:
        self.cookies = cookies

    def decode_primitive(self, name, method, schema):
        if method.style != "form":
            raise _invalid_method(method)
        if name not in self.cookies:
            return None
        return parse_primitive(self.cookies[name], schema)

    def decode_array(self, name, method, schema):
        if method.style != "form" or method.explode:
            raise _invalid_method(method)
        if name not in self.cookies:
            return None
        return parse_array(self.cookies[name].split(","), schema)

    def decode_object(self, name, method, schema):
        if method.style != "form" or method.explode:
            raise _invalid_method(method)
        if name not in self.cookies:
            return None
        return make_object(props_from_string(self.cookies[name], ",", ","), schema)


def decode_styled_parameter(param: Parameter, request: RequestInput) -> Any:
    """Decode a parameter declared with a schema and a serialization style.

    Returns None when the request carries no value; raises ParseError when
    the value is malformed.
    """
    method = param.serialization_method()
    decoder: _ValueDecoder
    if param.location == "path":
        if not request.path_params:
            return None
        decoder = _PathDecoder(request.path_params)
    elif param.location == "query":
        if not request.query_params:
            return None
        decoder = _QueryDecoder(request.query_params)
    elif param.location == "header":
        decoder = _HeaderDecoder(request.headers)
    elif param.location == "cookie":
        decoder = _CookieDecoder(request.cookies)
    else:
        raise ValueError(f"unsupported parameter's 'in': {param.location}")
    if param.schema is None:
        raise ValueError(f"parameter {_quote(param.name)} has no schema")
    return decode_value(decoder, param.name, method, param.schema, param.required)


def decode_value(
    decoder: _ValueDecoder,
    name: str,
    method: SerializationMethod,
    schema: Schema,
    required: bool,
) -> Any:
    """Decode a value by a schema, following allOf, anyOf and oneOf."""
    if schema.get("allOf"):
        value = None
        for sub in schema["allOf"]:
            value = decode_value(decoder, name, method, sub, required)
            if value is None:
                break
        return value

    if schema.get("anyOf"):
        for sub in schema["anyOf"]:
            value = _try_decode(decoder, name, method, sub, required)
            if value is not None:
                return value
        if required:
            raise ValueError(f"decoding anyOf for parameter {_quote(name)} failed")
        return None

    if schema.get("oneOf"):
        matched = [
            value
            for value in (
                _try_decode(decoder, name, method, sub, required) for sub in schema["oneOf"]
            )
            if value is not None
        ]
        if len(matched) == 1:
            return matched[0]
        if len(matched) > 1:
            raise ValueError(f"decoding oneOf failed: {len(matched)} schemas matched")
        if required:
            raise ValueError(f"decoding oneOf failed: {_quote(name)} is required")
        return None

    if schema.get("not") is not None:
        raise ValueError("decoding 'not' is not supported")

    schema_type = schema.get("type", "")
    if schema_type == "array":
        return decoder.decode_array(name, method, schema)
    if schema_type == "object":
        return decoder.decode_object(name, method, schema)
    if schema_type:
        return decoder.decode_primitive(name, method, schema)
    return None


def _try_decode(decoder, name, method, schema, required) -> Any:
    try:
        return decode_value(decoder, name, method, schema, required)
    except (ParseError, ValueError):
        return None


def decode_content_parameter(
    param: Parameter,
    request: RequestInput,
    decoder: ContentParameterDecoder | None = None,
) -> tuple[Any, Schema | None]:
    """Decode a parameter declared through ``content``.

    Returns the value and the schema to validate it with; both are None
    when the request carries no value for an optional parameter.
    """
    values: list[str] | None = None
    if param.location == "path":
        if param.name in request.path_params:
            values = [request.path_params[param.name]]
    elif param.location == "query":
        if param.name in request.query_params:
            values = list(request.query_params[param.name])
    elif param.location == "header":
        header = request.headers.get(param.name.lower(), "")
        if header:
            values = [header]
    elif param.location == "cookie":
        if param.name in request.cookies:
            values = [request.cookies[param.name]]
    else:
        raise ValueError(f"unsupported parameter.in: {_quote(param.location)}")

    if values is None:
        if param.required:
            raise ValueError(f"parameter {_quote(param.name)} is required, but missing")
        return None, None

    return (decoder or default_content_parameter_decoder)(param, values)


def _reject_constant(name: str) -> Any:
    raise ValueError(f"invalid JSON constant {name}")


def _load_json(text: str) -> Any:
    return json.loads(text, parse_int=float, parse_constant=_reject_constant)


def default_content_parameter_decoder(
    param: Parameter, values: Sequence[str]
) -> tuple[Any, Schema | None]:
    """Decode parameter values whose only content type is application/json."""
    if len(values) > 1 and param.location != "query":
        raise ValueError(
            f"{param.location} parameter {_quote(param.name)} cannot have multiple values"
        )
    if param.content is None:
        raise ValueError(f"parameter {_quote(param.name)} expected to have content")
    if len(param.content) != 1:
        raise ValueError(f"multiple content types for parameter {_quote(param.name)}")
    media_type = param.content.get("application/json")
    if media_type is None:
        raise ValueError(f"parameter {_quote(param.name)} has no content schema")
    schema = media_type.get("schema")

    try:
        if len(values) == 1:
            value = _load_json(values[0])
        else:
            value = [_load_json(item) for item in values]
    except ValueError as exc:
        raise ValueError(f"error unmarshaling parameter {_quote(param.name)}") from exc
    return value, schema


def props_from_string(src: str, prop_delim: str, value_delim: str) -> dict[str, str]:
    """Split ``src`` into object properties.

    With equal delimiters names and values alternate; otherwise every
    piece is ``name<value_delim>value``.
    """
    pairs = src.split(prop_delim)
    invalid = ParseError(
        kind=ParseErrorKind.INVALID_FORMAT,
        value=src,
        reason=(
            f'a value must be a list of object\'s properties in format '
            f'"name{value_delim}value" separated by {prop_delim}'
        ),
    )
    if prop_delim == value_delim:
        if len(pairs) % 2:
            raise invalid
        return dict(zip(pairs[::2], pairs[1::2]))

    props = {}
    for pair in pairs:
        prop = pair.split(value_delim)
        if len(prop) != 2:
            raise invalid
        props[prop[0]] = prop[1]
    return props


def make_object(props: Mapping[str, str], schema: Schema) -> dict[str, Any]:
    """Build an object from the schema's properties, parsing each as a primitive."""
    obj = {}
    for prop_name, prop_schema in (schema.get("properties") or {}).items():
        try:
            obj[prop_name] = parse_primitive(props.get(prop_name, ""), prop_schema)
        except ParseError as exc:
            raise ParseError(path=[prop_name], cause=exc) from exc
        except ValueError as exc:
            raise ValueError(f"property {_quote(prop_name)}: {exc}") from exc
    return obj


def parse_array(raw: Sequence[str], schema: Schema) -> list[Any]:
    """Parse every item of ``raw`` as a primitive of the schema's items type."""
    items_schema = schema.get("items")
    result = []
    for index, item in enumerate(raw):
        try:
            result.append(parse_primitive(item, items_schema))
        except ParseError as exc:
            raise ParseError(path=[index], cause=exc) from exc
        except ValueError as exc:
            raise ValueError(f"item {index}: {exc}") from exc
    return result


_FLOAT_SPECIALS = {"inf", "+inf", "-inf", "infinity", "+infinity", "-infinity", "nan"}
_TRUE = {"1", "t", "T", "TRUE", "true", "True"}
_FALSE = {"0", "f", "F", "FALSE", "false", "False"}


def _parse_float(raw: str) -> float:
    text = raw.lower()
    if text in _FLOAT_SPECIALS:
        return float(text)
    syntax_error = ValueError(f"parsing {_quote(raw)}: invalid syntax")
    if raw != raw.strip() or "_" in raw or "inf" in text or "nan" in text:
        raise syntax_error
    body = text[1:] if text[:1] in "+-" else text
    try:
        if body.startswith("0x"):
            if "p" not in body:
                raise syntax_error
            result = float.fromhex(text)
        else:
            result = float(text)
    except (ValueError, OverflowError):
        raise syntax_error from None
    if math.isinf(result):
        raise ValueError(f"parsing {_quote(raw)}: value out of range")
    return result


def _parse_bool(raw: str) -> bool:
    if raw in _TRUE:
        return True
    if raw in _FALSE:
        return False
    raise ValueError(f"parsing {_quote(raw)}: invalid syntax")


def parse_primitive(raw: str, schema: Schema | None) -> Any:
    """Parse ``raw`` as the primitive type of ``schema``.

    Returns None for an empty string; numbers come back as floats. Raises
    TypeError when the schema's type is not primitive.
    """
    if raw == "":
        return None
    schema_type = (schema or {}).get("type", "")
    if schema_type in ("integer", "number"):
        try:
            return _parse_float(raw)
        except ValueError as exc:
            raise ParseError(
                kind=ParseErrorKind.INVALID_FORMAT,
                value=raw,
                reason=f"an invalid {schema_type}",
                cause=exc,
            ) from exc
    if schema_type == "boolean":
        try:
            return _parse_bool(raw)
        except ValueError as exc:
            raise ParseError(
                kind=ParseErrorKind.INVALID_FORMAT,
                value=raw,
                reason="an invalid number",
                cause=exc,
            ) from exc
    if schema_type == "string":
        return raw
    raise TypeError(f"schema has non primitive type {_quote(schema_type)}")