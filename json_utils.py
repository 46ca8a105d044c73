"""
JSON utilities for the Lumina study pipeline
============================================

Thin orjson wrapper exposing the subset of the standard ``json`` interface the
pipeline uses. Model output and proxy bodies arrive as ``str``; orjson also
accepts ``bytes`` directly, which saves a decode on raw HTTP bodies.
"""

from typing import Any, Callable, Optional, Union

import orjson


JSONDecodeError = orjson.JSONDecodeError


def dumps(obj: Any, indent: Optional[int] = None, default: Optional[Callable[[Any], Any]] = None) -> str:
    """
    Serialize obj to a JSON string.

    Args:
        obj: Object to serialize
        indent: Any non-None value pretty prints with two-space indentation
        default: Callable for objects orjson cannot serialize natively

    Returns:
        JSON string (orjson itself returns bytes)
    """
    option = orjson.OPT_SERIALIZE_UUID | orjson.OPT_NON_STR_KEYS
    if indent is not None:
        option |= orjson.OPT_INDENT_2
    return orjson.dumps(obj, default=default, option=option).decode("utf-8")


def dumps_bytes(obj: Any) -> bytes:
    """Serialize obj straight to bytes for HTTP request bodies."""
    return orjson.dumps(obj, option=orjson.OPT_SERIALIZE_UUID)


def loads(s: Union[str, bytes, bytearray]) -> Any:
    """
    Deserialize a JSON document.

    Raises:
        JSONDecodeError: If the document is not valid JSON
    """
    return orjson.loads(s)
