"""Structured-data codecs used by ProjectedMap serialization.

A decoder is any callable taking an already-parsed JSON-like value (dicts,
lists, strings, numbers, booleans, None) and returning a Python value, raising
DecodeError when the input has the wrong shape. An encoder is the reverse: it
takes a Python value and returns a JSON-like value. Decoders and encoders
compose as plain functions, so callers can build them for any value type.

JSON text is handled by the standard json module through loads() and dumps().
Object field order is preserved in both directions, which keeps encoded maps
in ascending surrogate order.

Examples:
    >>> from projmap.codec import decode_int, list_of, loads
    >>> loads("[1, 2, 3]", list_of(decode_int))
    [1, 2, 3]
"""

from __future__ import annotations

import json
import logging
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any, Callable, Iterable, List, Optional, Tuple, Union

__all__ = [
    "DEFAULT_JSON_OPTIONS",
    "DecodeError",
    "Decoder",
    "Encoder",
    "JsonOptions",
    "decode_bool",
    "decode_float",
    "decode_int",
    "decode_object",
    "decode_pairs",
    "decode_str",
    "dumps",
    "encode_object",
    "encode_pairs",
    "identity",
    "list_of",
    "loads",
    "pair_decoder",
    "pair_encoder",
    "run_decoder",
]

type PathSegment = Union[str, int]
type Decoder[T] = Callable[[Any], T]
type Encoder[T] = Callable[[T], Any]


class DecodeError(ValueError):
    """Raised when structured data cannot be decoded.

    Attributes:
        message: The underlying failure message, without location.
        path: Object fields and list indices leading to the failing value,
            outermost first.
    """

    def __init__(self, message: str, path: Tuple[PathSegment, ...] = ()) -> None:
        super().__init__(message)
        self.message = message
        self.path = path

    def at(self, segment: PathSegment) -> DecodeError:
        """Return a copy of this error nested one level deeper under segment."""
        return DecodeError(self.message, (segment, *self.path))

    def __str__(self) -> str:
        if not self.path:
            return self.message
        return f"{_render_path(self.path)}: {self.message}"


def _render_path(path: Tuple[PathSegment, ...]) -> str:
    parts = ["$"]
    for segment in path:
        if isinstance(segment, int):
            parts.append(f"[{segment}]")
        elif segment.isidentifier():
            parts.append(f".{segment}")
        else:
            parts.append(f"[{json.dumps(segment)}]")
    return "".join(parts)


def run_decoder[T](decoder: Decoder[T], raw: Any, segment: PathSegment) -> T:
    """Apply decoder to raw, locating any failure at segment.

    ValueError and TypeError raised by the decoder are converted into
    DecodeError so that a single exception type escapes a decode.
    """
    try:
        return decoder(raw)
    except DecodeError as err:
        nested = err.at(segment)
        logging.debug(
            "Decode failed at %s: %s", _render_path(nested.path), err.message
        )
        raise nested from err
    except (ValueError, TypeError) as err:
        nested = DecodeError(str(err), (segment,))
        logging.debug("Decode failed at %s: %s", _render_path(nested.path), err)
        raise nested from err


def identity(raw: Any) -> Any:
    return raw


def decode_str(raw: Any) -> str:
    if not isinstance(raw, str):
        raise DecodeError(f"Expected a string but got {raw!r}")
    return raw


def decode_int(raw: Any) -> int:
    # bool is a subclass of int but never a JSON number
    if isinstance(raw, bool) or not isinstance(raw, int):
        raise DecodeError(f"Expected an integer but got {raw!r}")
    return raw


def decode_float(raw: Any) -> float:
    if isinstance(raw, bool) or not isinstance(raw, (int, float)):
        raise DecodeError(f"Expected a number but got {raw!r}")
    return float(raw)


def decode_bool(raw: Any) -> bool:
    if not isinstance(raw, bool):
        raise DecodeError(f"Expected a boolean but got {raw!r}")
    return raw


def list_of[T](item_decoder: Decoder[T]) -> Decoder[List[T]]:
    """Build a decoder for a JSON array whose items all use item_decoder."""

    def decode(raw: Any) -> List[T]:
        items = _expect_array(raw)
        return [run_decoder(item_decoder, item, ix) for ix, item in enumerate(items)]

    return decode


def _expect_array(raw: Any) -> List[Any]:
    if not isinstance(raw, (list, tuple)):
        raise DecodeError(f"Expected an array but got {raw!r}")
    return list(raw)


def pair_decoder[K, V](
    key_decoder: Decoder[K], value_decoder: Decoder[V]
) -> Decoder[Tuple[K, V]]:
    """Build a decoder for a two-element array [key, value]."""

    def decode(raw: Any) -> Tuple[K, V]:
        items = _expect_array(raw)
        if len(items) != 2:
            raise DecodeError(f"Expected a [key, value] pair but got {raw!r}")
        key = run_decoder(key_decoder, items[0], 0)
        value = run_decoder(value_decoder, items[1], 1)
        return (key, value)

    return decode


def pair_encoder[K, V](
    key_encoder: Encoder[K], value_encoder: Encoder[V]
) -> Callable[[K, V], Any]:
    """Build an encoder producing two-element arrays [key, value]."""

    def encode(key: K, value: V) -> Any:
        return [key_encoder(key), value_encoder(value)]

    return encode


def decode_object[V](raw: Any, value_decoder: Decoder[V]) -> List[Tuple[str, V]]:
    """Decode a JSON object into (field, value) pairs in field order.

    Raises:
        DecodeError: If raw is not an object or any value fails to decode.
    """
    if not isinstance(raw, Mapping):
        raise DecodeError(f"Expected an object but got {raw!r}")
    pairs: List[Tuple[str, V]] = []
    for field, item in raw.items():
        if not isinstance(field, str):
            raise DecodeError(f"Expected a string field name but got {field!r}")
        pairs.append((field, run_decoder(value_decoder, item, field)))
    return pairs


def encode_object[V](
    pairs: Iterable[Tuple[str, V]], value_encoder: Encoder[V]
) -> dict[str, Any]:
    """Encode (field, value) pairs as a JSON object, keeping pair order.

    A repeated field keeps its first position and its last value.
    """
    return {field: value_encoder(value) for field, value in pairs}


def decode_pairs[K, V](
    raw: Any, pair_dec: Decoder[Tuple[K, V]]
) -> List[Tuple[K, V]]:
    """Decode a JSON array of entries into (key, value) pairs in array order."""
    items = _expect_array(raw)
    return [run_decoder(pair_dec, item, ix) for ix, item in enumerate(items)]


def encode_pairs[K, V](
    pairs: Iterable[Tuple[K, V]], pair_enc: Callable[[K, V], Any]
) -> List[Any]:
    """Encode (key, value) pairs as a JSON array, keeping pair order."""
    return [pair_enc(key, value) for key, value in pairs]


@dataclass(frozen=True)
class JsonOptions:
    """Rendering options for dumps().

    Keys are never sorted: encoded maps rely on insertion order to keep
    ascending surrogate order.
    """

    indent: Optional[int] = None
    ensure_ascii: bool = True
    separators: Optional[Tuple[str, str]] = None


DEFAULT_JSON_OPTIONS = JsonOptions()


def dumps(value: Any, options: JsonOptions = DEFAULT_JSON_OPTIONS) -> str:
    """Render an encoded value as JSON text."""
    return json.dumps(
        value,
        indent=options.indent,
        ensure_ascii=options.ensure_ascii,
        separators=options.separators,
        sort_keys=False,
    )


def loads[T](text: str, decoder: Decoder[T] = identity) -> T:
    """Parse JSON text and run decoder over the result.

    Raises:
        DecodeError: If the text is not valid JSON or the decoder fails.
    """
    try:
        raw = json.loads(text)
    except json.JSONDecodeError as err:
        logging.debug("Invalid JSON text: %s", err)
        raise DecodeError(
            f"Invalid JSON: {err.msg} at line {err.lineno} column {err.colno}"
        ) from err
    try:
        return decoder(raw)
    except DecodeError:
        raise
    except (ValueError, TypeError) as err:
        raise DecodeError(str(err)) from err
