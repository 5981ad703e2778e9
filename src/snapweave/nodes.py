"""Tagged-node tree shared by the walker and the envelope codec.

A node is one of:

- a literal (``None``, ``bool``, ``int``, ``str`` or a finite ``float``),
  written inline without a wrapper;
- a :class:`DefinitionNode`, written the first time an instance is visited;
- a :class:`ReferenceNode`, a bare pointer to a definition with the same id.

The body of a definition is a literal, a list of nodes or a str-keyed dict of
nodes.
"""

from __future__ import annotations

import math
from collections.abc import Iterator
from dataclasses import dataclass
from typing import Any, TypeAlias

Scalar: TypeAlias = None | bool | int | float | str

LITERAL_TYPES: frozenset[type] = frozenset({type(None), bool, int, float, str})


@dataclass(slots=True)
class DefinitionNode:
	ref_id: str
	type_name: str
	value: "Body"


@dataclass(slots=True, frozen=True)
class ReferenceNode:
	ref_id: str


Node: TypeAlias = Scalar | DefinitionNode | ReferenceNode
Body: TypeAlias = Scalar | list[Node] | dict[str, Node]


@dataclass(slots=True, frozen=True)
class Envelope:
	format_version: str
	root: Node


def is_literal(value: Any) -> bool:
	"""Return True for values written inline on the wire.

	Exact type checks keep ``bool``/``int`` subclasses such as ``IntEnum``
	members on the registry path. Non-finite floats are not valid JSON.
	"""
	kind = type(value)
	if kind not in LITERAL_TYPES:
		return False
	if kind is float:
		return math.isfinite(value)
	return True


def iter_definitions(root: Node) -> Iterator[DefinitionNode]:
	"""Yield every definition node in document (pre-order) order."""
	stack: list[Node] = [root]
	while stack:
		node = stack.pop()
		if not isinstance(node, DefinitionNode):
			continue
		yield node
		body = node.value
		if isinstance(body, list):
			stack.extend(reversed(body))
		elif isinstance(body, dict):
			stack.extend(reversed(list(body.values())))


__all__ = [
	"Body",
	"DefinitionNode",
	"Envelope",
	"LITERAL_TYPES",
	"Node",
	"ReferenceNode",
	"Scalar",
	"is_literal",
	"iter_definitions",
]
