"""Value walker: values to tagged nodes and back.

Both directions are written as generators. Whenever a descriptor callback
returns an awaitable, the walker yields it and resumes with the awaited
result. :func:`run_sync` refuses awaitables, :func:`run_async` awaits them,
so one traversal serves both the sync and the async entry points.

Serializing is a single pre-order depth-first pass. Ids are handed out in
visitation order and every instance after its first visit is written as a
reference node.

Deserializing runs in order:

1. allocate: every definition node gets its descriptor resolved, and an
   empty shell is created and bound for two-phase types;
2. cycle check: cycles through types without ``create_empty`` are rejected;
3. populate: shells are filled with ``update_instance``, other types are
   built with ``from_plain`` once their members exist.

Every pass keeps its own explicit stack, so graph depth is bounded by
``max_depth`` and not by the interpreter recursion limit.
"""

from __future__ import annotations

import inspect
import logging
from collections.abc import Awaitable, Generator, Iterator
from dataclasses import dataclass
from typing import Any, TypeVar

from snapweave.descriptor import TypeDescriptor
from snapweave.errors import (
	CircularDependencyError,
	InvalidPayloadError,
	SerializerError,
)
from snapweave.nodes import DefinitionNode, Node, ReferenceNode, is_literal
from snapweave.reftable import ReferenceTable
from snapweave.registry import TypeResolver

logger = logging.getLogger(__name__)

T = TypeVar("T")
Walk = Generator[Awaitable[Any], Any, T]

# Marks a step that opened a container frame instead of producing a value.
_OPEN: Any = object()


@dataclass(slots=True)
class _Frame:
	"""A container body being filled, one entry at a time."""

	ref_id: str
	type_name: str
	body: list[Any] | dict[str, Any]
	entries: Iterator[tuple[Any, Any]]
	key: Any = None

	def attach(self, value: Any) -> None:
		if isinstance(self.body, list):
			self.body.append(value)
		else:
			self.body[self.key] = value


def _frame(ref_id: str, type_name: str, items: list[Any] | dict[str, Any]) -> _Frame:
	if isinstance(items, dict):
		return _Frame(ref_id, type_name, {}, iter(list(items.items())))
	return _Frame(ref_id, type_name, [], ((None, item) for item in list(items)))


def _too_deep(max_depth: int, where: str) -> SerializerError:
	return SerializerError(f"Maximum nesting depth of {max_depth} exceeded at {where}")


class Encoder:
	"""Turns one value graph into a tagged-node tree."""

	__slots__: tuple[str, ...] = ("resolver", "table", "max_depth")

	resolver: TypeResolver
	table: ReferenceTable
	max_depth: int

	def __init__(self, resolver: TypeResolver, *, max_depth: int) -> None:
		self.resolver = resolver
		self.table = ReferenceTable()
		self.max_depth = max_depth

	def encode(self, value: Any) -> Walk[Node]:
		stack: list[_Frame] = []
		while True:
			node = yield from self._enter(value, stack)
			while True:
				if node is not _OPEN:
					if not stack:
						return node
					stack[-1].attach(node)
				frame = stack[-1]
				entry = next(frame.entries, None)
				if entry is not None:
					frame.key, value = entry
					break
				stack.pop()
				node = DefinitionNode(frame.ref_id, frame.type_name, frame.body)

	def _enter(self, value: Any, stack: list[_Frame]) -> Walk[Node]:
		if is_literal(value):
			return value
		if self.table.known(value):
			return ReferenceNode(self.table.id_for(value))
		if len(stack) >= self.max_depth:
			raise _too_deep(self.max_depth, type(value).__qualname__)
		# Allocate before descending so self-references resolve to this id.
		ref_id = self.table.id_for(value)
		descriptor = self.resolver.resolve_by_instance(value)
		plain = descriptor.to_plain(value)
		if inspect.isawaitable(plain):
			plain = yield plain
		if isinstance(plain, (list, tuple)):
			stack.append(_frame(ref_id, descriptor.name, plain))
			return _OPEN
		if isinstance(plain, dict):
			for key in plain:
				if type(key) is not str:
					raise SerializerError(
						f"to_plain() of '{descriptor.name}' returned a non-string key {key!r}"
					)
			stack.append(_frame(ref_id, descriptor.name, plain))
			return _OPEN
		if is_literal(plain):
			return DefinitionNode(ref_id, descriptor.name, plain)
		raise SerializerError(
			f"to_plain() of '{descriptor.name}' must return a literal, list or dict, "
			+ f"got {type(plain).__qualname__}"
		)


class Decoder:
	"""Rebuilds a value graph from a tagged-node tree."""

	__slots__: tuple[str, ...] = (
		"resolver",
		"table",
		"_definitions",
		"_descriptors",
		"_edges",
		"_populated",
		"max_depth",
	)

	resolver: TypeResolver
	table: ReferenceTable
	_definitions: dict[str, DefinitionNode]
	_descriptors: dict[str, TypeDescriptor[Any]]
	_edges: dict[str, list[str]]
	_populated: set[str]
	max_depth: int

	def __init__(self, resolver: TypeResolver, *, max_depth: int) -> None:
		self.resolver = resolver
		self.max_depth = max_depth
		self.table = ReferenceTable()
		self._definitions = {}
		self._descriptors = {}
		self._edges = {}
		self._populated = set()

	def decode(self, root: Node) -> Walk[Any]:
		self._allocate(root)
		self._check_cycles()
		logger.debug(
			"Allocated %d definitions (%d shells)",
			len(self._definitions),
			sum(1 for d in self._descriptors.values() if d.two_phase),
		)
		if not isinstance(root, (DefinitionNode, ReferenceNode)):
			return root
		return (yield from self._materialize(root.ref_id))

	# Allocate pass

	def _allocate(self, root: Node) -> None:
		stack: list[tuple[Node, str | None]] = [(root, None)]
		while stack:
			node, owner = stack.pop()
			if isinstance(node, ReferenceNode):
				if owner is not None:
					self._edges[owner].append(node.ref_id)
				continue
			if not isinstance(node, DefinitionNode):
				if not is_literal(node):
					raise InvalidPayloadError(
						f"Unexpected {type(node).__qualname__} in node tree"
					)
				continue
			ref_id = node.ref_id
			if ref_id in self._definitions:
				raise InvalidPayloadError(f"Reference '{ref_id}' is defined twice")
			if owner is not None:
				self._edges[owner].append(ref_id)
			descriptor = self.resolver.resolve_by_name(node.type_name)
			self._definitions[ref_id] = node
			self._descriptors[ref_id] = descriptor
			self._edges[ref_id] = []
			if descriptor.create_empty is not None:
				self.table.bind(ref_id, descriptor.create_empty())
			body = node.value
			if isinstance(body, list):
				stack.extend((child, ref_id) for child in reversed(body))
			elif isinstance(body, dict):
				stack.extend((child, ref_id) for child in reversed(list(body.values())))

	def _check_cycles(self) -> None:
		for component in _strongly_connected(self._definitions, self._edges):
			if len(component) == 1:
				ref_id = component[0]
				if ref_id not in self._edges.get(ref_id, ()):
					continue
			for ref_id in component:
				descriptor = self._descriptors[ref_id]
				if not descriptor.two_phase:
					raise CircularDependencyError(descriptor.name, ref_id)

	# Populate pass

	def _materialize(self, ref_id: str) -> Walk[Any]:
		stack: list[_Frame] = []
		while True:
			value = yield from self._enter(ref_id, stack)
			while True:
				if value is not _OPEN:
					if not stack:
						return value
					stack[-1].attach(value)
				frame = stack[-1]
				child = self._advance(frame)
				if child is not None:
					ref_id = child
					break
				stack.pop()
				value = yield from self._build(frame.ref_id, frame.body)

	def _enter(self, ref_id: str, stack: list[_Frame]) -> Walk[Any]:
		if ref_id in self._populated or ref_id not in self._definitions:
			# A shell (possibly still being populated), or a dangling id.
			return self.table.instance_for(ref_id)
		if len(stack) >= self.max_depth:
			raise _too_deep(self.max_depth, f"reference '{ref_id}'")
		self._populated.add(ref_id)
		definition = self._definitions[ref_id]
		if isinstance(definition.value, (list, dict)):
			stack.append(_frame(ref_id, definition.type_name, definition.value))
			return _OPEN
		return (yield from self._build(ref_id, definition.value))

	def _advance(self, frame: _Frame) -> str | None:
		"""Attach literal entries; return the ref id of the next node entry."""
		for key, child in frame.entries:
			frame.key = key
			if isinstance(child, (DefinitionNode, ReferenceNode)):
				return child.ref_id
			frame.attach(child)
		return None

	def _build(self, ref_id: str, plain: Any) -> Walk[Any]:
		descriptor = self._descriptors[ref_id]
		if descriptor.update_instance is not None:
			instance = self.table.instance_for(ref_id)
			result = descriptor.update_instance(instance, plain)
			if inspect.isawaitable(result):
				yield result
			return instance
		instance = descriptor.from_plain(plain)
		if inspect.isawaitable(instance):
			instance = yield instance
		self.table.bind(ref_id, instance)
		return instance


def _strongly_connected(
	nodes: dict[str, Any], edges: dict[str, list[str]]
) -> list[list[str]]:
	"""Tarjan's algorithm, iterative so deep graphs do not hit the recursion limit."""
	index: dict[str, int] = {}
	lowlink: dict[str, int] = {}
	on_stack: set[str] = set()
	stack: list[str] = []
	components: list[list[str]] = []

	def visit(node: str) -> None:
		index[node] = lowlink[node] = len(index)
		stack.append(node)
		on_stack.add(node)

	for start in nodes:
		if start in index:
			continue
		visit(start)
		work: list[tuple[str, Iterator[str]]] = [(start, iter(edges.get(start, ())))]
		while work:
			node, children = work[-1]
			for child in children:
				if child not in nodes:
					continue
				if child not in index:
					visit(child)
					work.append((child, iter(edges.get(child, ()))))
					break
				if child in on_stack:
					lowlink[node] = min(lowlink[node], index[child])
			else:
				work.pop()
				if work:
					parent = work[-1][0]
					lowlink[parent] = min(lowlink[parent], lowlink[node])
				if lowlink[node] == index[node]:
					component: list[str] = []
					while True:
						member = stack.pop()
						on_stack.discard(member)
						component.append(member)
						if member == node:
							break
					components.append(component)
	return components


def run_sync(walk: Walk[T]) -> T:
	try:
		pending = next(walk)
	except StopIteration as stop:
		return stop.value
	if inspect.iscoroutine(pending):
		pending.close()
	walk.close()
	raise SerializerError(
		"A descriptor returned an awaitable; use the async entry points (aserialize/adeserialize)"
	)


async def run_async(walk: Walk[T]) -> T:
	result: Any = None
	while True:
		try:
			pending = walk.send(result)
		except StopIteration as stop:
			return stop.value
		try:
			result = await pending
		except BaseException:
			walk.close()
			raise


__all__ = ["Decoder", "Encoder", "run_async", "run_sync"]
