"""JSON encoding for gradebook values.

Shared by the JSON columns (module breakdowns, audit metadata), CLI output and
the log formatter. Pydantic models, timestamps, enums and sets all come out as
plain JSON values; the id types are strings already.
"""

from __future__ import annotations

import datetime
import enum
import functools
import json as pyjson
import typing as t

import pydantic as p

JSONPrimitive = str | int | float | bool | None
JSONValue = JSONPrimitive | list["JSONValue"] | dict[str, "JSONValue"]


@functools.singledispatch
def encode(obj: t.Any) -> JSONValue:
    """Convert `obj` into something the stdlib encoder handles natively.

    Raises:
        TypeError: no conversion is registered for the type
    """
    raise TypeError(f"Object of type {type(obj).__name__} is not JSON serializable")


@encode.register
def _(obj: p.BaseModel) -> JSONValue:
    return obj.model_dump(mode="json")


@encode.register
def _(obj: datetime.date) -> JSONValue:
    # datetime is a date subclass, so this covers both
    return obj.isoformat()


@encode.register
def _(obj: enum.Enum) -> JSONValue:
    return obj.value


@encode.register(set)
@encode.register(frozenset)
def _(obj: set[t.Any] | frozenset[t.Any]) -> JSONValue:
    return sorted(obj, key=repr)


def dumps(
    obj: t.Any,
    *,
    default: t.Callable[[t.Any], JSONValue] = encode,
    indent: int | str | None = None,
    sort_keys: bool = False,
    **kw: t.Any,
) -> str:
    return pyjson.dumps(obj, default=default, indent=indent, sort_keys=sort_keys, **kw)


def loads(s: str | bytes | bytearray, **kw: t.Any) -> t.Any:
    return pyjson.loads(s, **kw)
