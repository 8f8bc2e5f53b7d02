import json as basejson
from typing import Any
from time import struct_time
from datetime import date, datetime
from dataclasses import is_dataclass
from pathlib import Path
from enum import Enum


TLiteral = bool | int | float | str | bytes
TComposite = (
	list[TLiteral] | dict[TLiteral, TLiteral] | set[TLiteral] | tuple[TLiteral, ...]
)
TPrimitive = bool | int | float | str | bytes | TComposite | None


def asPrimitive(value: Any) -> Any:
	"""Converts the given value to a primitive value, that can be converted
	to JSON"""
	if value is None or type(value) in (bool, float, int, str):
		return value
	elif isinstance(value, tuple) and hasattr(value, "_fields"):
		return {k: asPrimitive(getattr(value, k)) for k in value._fields}
	elif isinstance(value, list) or isinstance(value, tuple) or isinstance(value, set):
		return [asPrimitive(v) for v in value]
	elif is_dataclass(value) and not isinstance(value, type):
		return {k: asPrimitive(getattr(value, k)) for k in value.__annotations__}
	elif isinstance(value, Enum):
		return asPrimitive(value.value)
	elif isinstance(value, dict):
		return {asPrimitive(k): asPrimitive(v) for k, v in value.items()}
	elif isinstance(value, Path):
		return str(value)
	elif isinstance(value, datetime) or isinstance(value, date):
		return value.isoformat()
	elif isinstance(value, struct_time):
		return tuple(value)
	else:
		return value


def json(value: Any) -> bytes:
	"""Serializes the value as compact UTF-8 JSON, ie. `{"a":1}`."""
	return basejson.dumps(asPrimitive(value), separators=(",", ":")).encode("utf8")


# EOF
