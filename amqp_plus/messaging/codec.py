"""
Message body encoding and decoding.

The content type is derived from the Python type of the value:

- ``str`` is sent as UTF-8 ``text/plain``
- mappings, lists and tuples are sent as ``application/json``
- bytes-like values are sent untouched, with no content type of their own

``TextContent``, ``StructuredContent`` and ``BinaryContent`` force one of
these encodings explicitly.
"""

import json
from collections.abc import Mapping
from dataclasses import dataclass
from functools import singledispatch
from typing import Any

from amqp_plus.exceptions import ContentDecodeError, ContentEncodeError

TEXT_PLAIN = "text/plain"
APPLICATION_JSON = "application/json"

Encoded = tuple[bytes, str | None]


@dataclass(frozen=True)
class TextContent:
    """Text payload."""

    text: str


@dataclass(frozen=True)
class StructuredContent:
    """JSON-serializable payload."""

    data: Any


@dataclass(frozen=True)
class BinaryContent:
    """Opaque payload with an optional caller-chosen content type."""

    data: bytes
    content_type: str | None = None


@singledispatch
def encode(value: Any) -> Encoded:
    """
    Encode a value into a message body.

    Args:
        value: Content to send

    Returns:
        Tuple of (body, content type); the content type is None for binary payloads

    Raises:
        ContentEncodeError: If the value has no known encoding
    """
    raise ContentEncodeError(value)


@encode.register
def _(value: str) -> Encoded:
    return value.encode("utf-8"), TEXT_PLAIN


def _encode_json(value: Any) -> Encoded:
    try:
        body = json.dumps(value, separators=(",", ":"))
    except (TypeError, ValueError) as e:
        raise ContentEncodeError(value) from e
    return body.encode("utf-8"), APPLICATION_JSON


@encode.register(Mapping)
@encode.register(list)
@encode.register(tuple)
def _(value: Any) -> Encoded:
    return _encode_json(value)


@encode.register(bytes)
@encode.register(bytearray)
@encode.register(memoryview)
def _(value: Any) -> Encoded:
    return bytes(value), None


@encode.register
def _(value: TextContent) -> Encoded:
    return encode(value.text)


@encode.register
def _(value: StructuredContent) -> Encoded:
    return _encode_json(value.data)


@encode.register
def _(value: BinaryContent) -> Encoded:
    return bytes(value.data), value.content_type


def decode(body: bytes, content_type: str | None) -> Any:
    """
    Decode a message body according to its content type.

    Args:
        body: Raw message body
        content_type: Content type from the message properties

    Returns:
        Parsed JSON for ``application/json``, text for ``text/plain``,
        otherwise the untouched body

    Raises:
        ContentDecodeError: If the body does not match its content type
    """
    if content_type == APPLICATION_JSON:
        try:
            return json.loads(body.decode("utf-8"))
        except (UnicodeDecodeError, json.JSONDecodeError) as e:
            raise ContentDecodeError(content_type, f"Malformed JSON body: {e}") from e

    if content_type == TEXT_PLAIN:
        try:
            return body.decode("utf-8")
        except UnicodeDecodeError as e:
            raise ContentDecodeError(content_type, f"Body is not valid UTF-8: {e}") from e

    return body
