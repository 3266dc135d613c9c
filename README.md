# oasfilter

Helpers for reading HTTP traffic the way an OpenAPI 3 description says it
is serialised:

- decoding path, query, header and cookie parameters according to their
  `style` and `explode` settings (`oasfilter.params`);
- decoding request and response bodies by content type, with a registry
  you can extend (`oasfilter.body`);
- a structured `ParseError` for malformed values (`oasfilter.errors`);
- client-facing `ValidationError` objects (`oasfilter.validation_error`)
  and a default way of turning any exception into an HTTP status, headers
  and body (`oasfilter.kit`).

The package has no dependencies beyond the standard library.

## Installation

```
pip install .
```

To run the tests:

```
pip install .[test]
pytest
```

## Decoding parameters

Schemas are plain mappings in JSON-schema style.

```python
from oasfilter.params import Parameter, RequestInput, decode_styled_parameter

param = Parameter(
    name="ids",
    location="query",
    schema={"type": "array", "items": {"type": "integer"}},
)
request = RequestInput(query_params="ids=1&ids=2")
decode_styled_parameter(param, request)   # [1.0, 2.0]
```

`RequestInput` holds `path_params`, `query_params` (a mapping of lists or a
raw query string), `headers` (matched without regard to case) and
`cookies`. `Parameter.serialization_method()` fills in the default style
and explode flag for the parameter's location. Integers and numbers come
back as floats; an empty value decodes to `None`. `allOf`, `anyOf` and
`oneOf` schemas are followed by `decode_value`.

Parameters declared through `content` are decoded with
`decode_content_parameter`, which by default accepts only
`application/json` and returns the value together with its schema. A
different decoder can be passed as its third argument.

A value that does not fit raises `oasfilter.errors.ParseError`. Its `kind`
is a `ParseErrorKind` (`OTHER`, `UNSUPPORTED_FORMAT`, `INVALID_FORMAT`),
`path()` gives the item indexes or property names leading to the fault and
`root_cause()` the innermost underlying error. A serialization style that
does not apply to the location raises `ValueError`.

## Decoding bodies

```python
from oasfilter.body import decode_body, register_body_decoder

decode_body(b'{"a": 1}', {"Content-Type": "application/json"}, None, None)   # {"a": 1.0}

def csv_decoder(body, headers, schema, encoding_fn):
    return body.read().decode().split(",")

register_body_decoder("text/csv", csv_decoder)
```

Decoders are registered for `text/plain`, `application/json`,
`application/problem+json`, `application/x-www-form-urlencoded`,
`multipart/form-data` and `application/octet-stream`. A decoder receives a
binary stream, the headers, the schema and a function that returns the
`Encoding` of a form property. `registered_body_decoder` and
`unregister_body_decoder` look up and remove entries. An unknown content
type raises a `ParseError` of kind `UNSUPPORTED_FORMAT`.

Form bodies need an object schema. In multipart forms, parts not named by
the schema's properties are skipped when `additionalProperties` is `true`,
looked up in the `additionalProperties` schema's properties otherwise, and
rejected when not found there.

`trim_json_prefix` strips the `)]}',\n` guard some servers put before JSON.

## Errors for clients

`ValidationError` carries `status`, `code`, `id`, `title`, `detail` and an
optional `ValidationErrorSource` (a JSON `pointer` or a `parameter` name).
Its text looks like
`[422][][] Field must be set to array [source pointer=/photoUrls]`.

`default_error_encoder(error)` returns an `EncodedError` with `status`,
`headers` and `body`: the error text as `text/plain; charset=utf-8` with
status 500, unless the error provides `to_json()` (served as JSON),
`headers()` (added to the response) or `status_code()` (used as status).

## What is not included

The package decodes values; it does not check decoded values against a
schema, load API descriptions, match requests to routes or run as a
server or middleware. It does not generate schemas from Python types.