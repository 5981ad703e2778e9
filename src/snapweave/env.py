"""Environment-driven defaults for serializer instances."""

from __future__ import annotations

import os
import sys
from dataclasses import dataclass, field

ENV_SNAPWEAVE_JSON_INDENT = "SNAPWEAVE_JSON_INDENT"
ENV_SNAPWEAVE_MAX_DEPTH = "SNAPWEAVE_MAX_DEPTH"

MIN_DEFAULT_MAX_DEPTH = 100


def default_max_depth() -> int:
	"""Nesting limit used when none is configured.

	The walker itself is iterative; the JSON codec is not, and it spends about
	two interpreter frames per typed node, so the limit follows the current
	recursion limit.
	"""
	return max(MIN_DEFAULT_MAX_DEPTH, sys.getrecursionlimit() // 3)


def _read_int(name: str) -> int | None:
	raw = os.environ.get(name, "").strip()
	if not raw:
		return None
	try:
		value = int(raw)
	except ValueError:
		raise ValueError(f"{name} must be an integer, got {raw!r}") from None
	if value < 0:
		raise ValueError(f"{name} must be non-negative, got {value}")
	return value


def json_indent() -> int | None:
	return _read_int(ENV_SNAPWEAVE_JSON_INDENT)


def max_depth() -> int:
	value = _read_int(ENV_SNAPWEAVE_MAX_DEPTH)
	if value is None:
		return default_max_depth()
	if value == 0:
		raise ValueError(f"{ENV_SNAPWEAVE_MAX_DEPTH} must be positive")
	return value


@dataclass(slots=True)
class SerializerConfig:
	"""Per-serializer options.

	Attributes:
		indent: JSON indentation for produced text. ``None`` writes compact text.
		max_depth: Maximum nesting of typed nodes before the walk is aborted.
	"""

	indent: int | None = None
	max_depth: int = field(default_factory=default_max_depth)

	@classmethod
	def from_env(cls) -> "SerializerConfig":
		return cls(indent=json_indent(), max_depth=max_depth())


__all__ = [
	"ENV_SNAPWEAVE_JSON_INDENT",
	"ENV_SNAPWEAVE_MAX_DEPTH",
	"MIN_DEFAULT_MAX_DEPTH",
	"SerializerConfig",
	"default_max_depth",
	"json_indent",
	"max_depth",
]
