from __future__ import annotations

import logging
import threading
from collections.abc import Iterable
from dataclasses import replace
from typing import Any, Protocol

from snapweave.builtins import BUILTIN_DESCRIPTORS
from snapweave.descriptor import TypeDescriptor, same_origin
from snapweave.errors import DuplicateTypeError, UnknownTypeError

logger = logging.getLogger(__name__)


class TypeResolver(Protocol):
	def resolve_by_name(self, name: str) -> TypeDescriptor[Any]: ...
	def resolve_by_instance(self, value: Any) -> TypeDescriptor[Any]: ...


def _class_label(cls: type) -> str:
	return f"{cls.__module__}.{cls.__qualname__}"


def as_descriptor(
	item: TypeDescriptor[Any] | type,
	*,
	name: str | None = None,
	aliases: Iterable[str] = (),
) -> TypeDescriptor[Any]:
	"""Coerce a descriptor or a self-describing class into a descriptor."""
	if isinstance(item, TypeDescriptor):
		return item
	if isinstance(item, type):
		# Local import to avoid an import cycle with snapweave.snapshot.
		from snapweave.snapshot import describe_class

		return describe_class(item, name=name, aliases=tuple(aliases))
	raise TypeError(
		f"Expected a TypeDescriptor or a class, got {type(item).__name__}"
	)


class TypeRegistry:
	"""Process-wide mapping from wire type names to descriptors.

	Registration is additive: names are never removed. Reads are lock-free;
	writers are serialized so two racing registrations of one name with
	different descriptors surface as :class:`DuplicateTypeError`.
	"""

	_by_name: dict[str, TypeDescriptor[Any]]
	_by_type: dict[type, TypeDescriptor[Any]]
	_lock: threading.Lock

	def __init__(self, *, builtins: bool = True) -> None:
		self._by_name = {}
		self._by_type = {}
		self._lock = threading.Lock()
		if builtins:
			for descriptor in BUILTIN_DESCRIPTORS:
				self.register(descriptor.name, descriptor)

	def register(
		self,
		key: str | type,
		descriptor: TypeDescriptor[Any] | None = None,
		*,
		name: str | None = None,
		aliases: Iterable[str] = (),
	) -> TypeDescriptor[Any]:
		"""Bind a wire name to a descriptor.

		Args:
			key: Wire name, or the Python class instances of which should be
				dispatched to the descriptor.
			descriptor: Serialization behavior. When omitted, ``key`` must be a
				class and the descriptor is derived from its capabilities.
			name: Wire name when deriving the descriptor from a class.
			aliases: Extra wire names accepted when deserializing.

		Returns:
			The descriptor now bound to the name.

		Raises:
			DuplicateTypeError: If the name, an alias or the class is already
				bound to a different descriptor.
		"""
		descriptor = self._coerce(key, descriptor, name, tuple(aliases))
		with self._lock:
			current = self._by_name.get(descriptor.name)
			if current == descriptor and all(
				self._by_name.get(alias) is current for alias in descriptor.aliases
			):
				return current
			replaced = False
			for wire_name in descriptor.names:
				existing = self._by_name.get(wire_name)
				if existing is None or existing == descriptor:
					continue
				if same_origin(existing, descriptor):
					replaced = True
					continue
				raise DuplicateTypeError(wire_name)
			if descriptor.type is not None:
				existing = self._by_type.get(descriptor.type)
				if existing is not None and existing.name != descriptor.name:
					raise DuplicateTypeError(
						descriptor.name,
						f"Class {_class_label(descriptor.type)} is already registered as '{existing.name}'",
					)
			for wire_name in descriptor.names:
				self._by_name[wire_name] = descriptor
			if descriptor.type is not None:
				self._by_type[descriptor.type] = descriptor
		if replaced:
			logger.debug("Replaced re-imported type '%s'", descriptor.name)
		else:
			logger.debug("Registered type '%s'", descriptor.name)
		return descriptor

	def _coerce(
		self,
		key: str | type,
		descriptor: TypeDescriptor[Any] | None,
		name: str | None,
		aliases: tuple[str, ...],
	) -> TypeDescriptor[Any]:
		if descriptor is None:
			if not isinstance(key, type):
				raise TypeError(f"register('{key}') requires a descriptor")
			return as_descriptor(key, name=name, aliases=aliases)
		overrides: dict[str, Any] = {}
		if isinstance(key, str):
			if key != descriptor.name:
				overrides["name"] = key
		elif isinstance(key, type):
			if descriptor.type is None:
				overrides["type"] = key
			elif descriptor.type is not key:
				raise ValueError(
					f"Descriptor '{descriptor.name}' is bound to {_class_label(descriptor.type)}, not {_class_label(key)}"
				)
		else:
			raise TypeError(f"Expected a type name or a class, got {type(key).__name__}")
		if name is not None and name != overrides.get("name", descriptor.name):
			overrides["name"] = name
		if aliases:
			overrides["aliases"] = tuple(dict.fromkeys((*descriptor.aliases, *aliases)))
		if not overrides:
			return descriptor
		return replace(descriptor, **overrides)

	def resolve_by_name(self, name: str) -> TypeDescriptor[Any]:
		descriptor = self._by_name.get(name)
		if descriptor is None:
			raise UnknownTypeError(name)
		return descriptor

	def resolve_by_instance(self, value: Any) -> TypeDescriptor[Any]:
		descriptor = self._by_type.get(type(value))
		if descriptor is None:
			raise UnknownTypeError(_class_label(type(value)))
		return descriptor

	def has(self, name: str) -> bool:
		return name in self._by_name

	def __contains__(self, name: object) -> bool:
		return name in self._by_name

	def names(self) -> list[str]:
		return sorted(self._by_name)

	def descriptors(self) -> list[TypeDescriptor[Any]]:
		return list({id(d): d for d in self._by_name.values()}.values())

	def scoped(
		self, extra_classes: Iterable[TypeDescriptor[Any] | type] | None
	) -> "TypeRegistry | ScopedRegistry":
		"""Return a resolver that falls back to ``extra_classes`` for this call."""
		if not extra_classes:
			return self
		return ScopedRegistry(self, extra_classes)


class ScopedRegistry:
	"""Call-scoped overlay of extra descriptors over an ambient registry.

	The ambient registry always wins; extras are consulted only for names and
	classes it does not know. Nothing is written to the ambient registry.
	"""

	__slots__: tuple[str, ...] = ("base", "_by_name", "_by_type")

	base: TypeRegistry
	_by_name: dict[str, TypeDescriptor[Any]]
	_by_type: dict[type, TypeDescriptor[Any]]

	def __init__(
		self, base: TypeRegistry, extra_classes: Iterable[TypeDescriptor[Any] | type]
	) -> None:
		self.base = base
		self._by_name = {}
		self._by_type = {}
		for item in extra_classes:
			descriptor = as_descriptor(item)
			for wire_name in descriptor.names:
				existing = self._by_name.get(wire_name)
				if existing is not None and existing != descriptor:
					raise DuplicateTypeError(wire_name)
				self._by_name[wire_name] = descriptor
			if descriptor.type is not None:
				self._by_type[descriptor.type] = descriptor

	def resolve_by_name(self, name: str) -> TypeDescriptor[Any]:
		try:
			return self.base.resolve_by_name(name)
		except UnknownTypeError:
			descriptor = self._by_name.get(name)
			if descriptor is None:
				raise
			logger.debug("Resolved type '%s' from extra classes", name)
			return descriptor

	def resolve_by_instance(self, value: Any) -> TypeDescriptor[Any]:
		try:
			return self.base.resolve_by_instance(value)
		except UnknownTypeError:
			descriptor = self._by_type.get(type(value))
			if descriptor is None:
				raise
			return descriptor

	def has(self, name: str) -> bool:
		return self.base.has(name) or name in self._by_name


DEFAULT_REGISTRY: TypeRegistry = TypeRegistry()


__all__ = [
	"DEFAULT_REGISTRY",
	"ScopedRegistry",
	"TypeRegistry",
	"TypeResolver",
	"as_descriptor",
]
