"""Snapshot protocol for domain objects that take part in serialization.

A participating class exposes ``create_snapshot()``/``load_snapshot()``; the
serializer pairs them with an empty constructor so every such type supports
two-phase construction and may appear in reference cycles.

Example:

```python
class UserMessage(Serializable, type_name="UserMessage"):
    def __init__(self, content: str) -> None:
        self.content = content

    def create_snapshot(self):
        return {"content": self.content}

    def load_snapshot(self, snapshot):
        self.content = snapshot["content"]
```
"""

from __future__ import annotations

import dataclasses
import inspect
from collections.abc import Awaitable, Callable, Iterable
from dataclasses import dataclass
from enum import Enum
from typing import Any, ClassVar, Protocol, Self, TypeVar, runtime_checkable

from snapweave.descriptor import TypeDescriptor
from snapweave.registry import DEFAULT_REGISTRY, TypeRegistry
from snapweave.serializer import Serializer

T = TypeVar("T")
C = TypeVar("C", bound=type)


@runtime_checkable
class SnapshotCapable(Protocol):
	def create_snapshot(self) -> Any: ...
	def load_snapshot(self, snapshot: Any) -> Any: ...


@dataclass(frozen=True, slots=True)
class _Allocate:
	cls: type

	def __call__(self) -> Any:
		return self.cls.__new__(self.cls)


@dataclass(frozen=True, slots=True)
class _Restore:
	"""``from_plain`` for snapshot types: allocate, then load in place."""

	cls: type
	create_empty: Callable[[], Any]
	load: Callable[[Any, Any], Any]

	def __call__(self, snapshot: Any) -> Any:
		instance = self.create_empty()
		result = self.load(instance, snapshot)
		if inspect.isawaitable(result):
			return _await_then(result, instance)
		return instance


async def _await_then(pending: Awaitable[Any], instance: T) -> T:
	await pending
	return instance


def snapshot_descriptor(
	cls: type, name: str, aliases: Iterable[str] = ()
) -> TypeDescriptor[Any]:
	"""Compose ``create_snapshot``/``load_snapshot`` into a two-phase descriptor."""
	create_empty = getattr(cls, "create_empty", None) or _Allocate(cls)
	return TypeDescriptor(
		name=name,
		to_plain=cls.create_snapshot,
		from_plain=_Restore(cls, create_empty, cls.load_snapshot),
		create_empty=create_empty,
		update_instance=cls.load_snapshot,
		type=cls,
		aliases=tuple(aliases),
	)


# Dataclasses


def _dataclass_to_plain(value: Any) -> dict[str, Any]:
	return {f.name: getattr(value, f.name) for f in dataclasses.fields(value)}


def _dataclass_update(instance: Any, plain: dict[str, Any]) -> None:
	for f in dataclasses.fields(instance):
		if f.name in plain:
			# object.__setattr__ also populates frozen dataclasses
			object.__setattr__(instance, f.name, plain[f.name])


def dataclass_descriptor(
	cls: type, name: str, aliases: Iterable[str] = ()
) -> TypeDescriptor[Any]:
	if not dataclasses.is_dataclass(cls):
		raise TypeError(f"{cls.__qualname__} is not a dataclass")
	create_empty = _Allocate(cls)
	return TypeDescriptor(
		name=name,
		to_plain=_dataclass_to_plain,
		from_plain=_Restore(cls, create_empty, _dataclass_update),
		create_empty=create_empty,
		update_instance=_dataclass_update,
		type=cls,
		aliases=tuple(aliases),
	)


# Enums


def _enum_to_plain(member: Enum) -> Any:
	return member.value


def enum_descriptor(
	cls: type[Enum], name: str, aliases: Iterable[str] = ()
) -> TypeDescriptor[Any]:
	"""Members travel as their ``value``; values should be literals."""
	return TypeDescriptor(
		name=name,
		to_plain=_enum_to_plain,
		from_plain=cls,
		type=cls,
		aliases=tuple(aliases),
	)


def describe_class(
	cls: type, *, name: str | None = None, aliases: tuple[str, ...] = ()
) -> TypeDescriptor[Any]:
	"""Derive a descriptor from what a class can do.

	Checked in order: a prebuilt ``Serializable`` descriptor, the snapshot
	pair, ``to_plain``/``from_plain`` (with optional ``create_empty`` and
	``update_instance``), dataclasses and enums. The wire name comes from
	``name`` or the class' declared ``type_name``; it is never derived from
	the class name.
	"""
	prebuilt = cls.__dict__.get("__descriptor__")
	if isinstance(prebuilt, TypeDescriptor):
		if name is None and not aliases:
			return prebuilt
		return dataclasses.replace(
			prebuilt,
			name=name or prebuilt.name,
			aliases=tuple(dict.fromkeys((*prebuilt.aliases, *aliases))),
		)

	wire_name = name or cls.__dict__.get("__type_name__")
	if not wire_name:
		raise TypeError(f"{cls.__qualname__} needs an explicit type name")

	if callable(getattr(cls, "create_snapshot", None)) and callable(
		getattr(cls, "load_snapshot", None)
	):
		return snapshot_descriptor(cls, wire_name, aliases)

	if callable(getattr(cls, "to_plain", None)) and callable(
		getattr(cls, "from_plain", None)
	):
		return TypeDescriptor(
			name=wire_name,
			to_plain=cls.to_plain,
			from_plain=cls.from_plain,
			create_empty=getattr(cls, "create_empty", None),
			update_instance=getattr(cls, "update_instance", None),
			type=cls,
			aliases=aliases,
		)

	if dataclasses.is_dataclass(cls):
		return dataclass_descriptor(cls, wire_name, aliases)

	if issubclass(cls, Enum):
		return enum_descriptor(cls, wire_name, aliases)

	raise TypeError(
		f"{cls.__qualname__} exposes neither create_snapshot/load_snapshot nor to_plain/from_plain"
	)


def serializable(
	name: str,
	*,
	aliases: Iterable[str] = (),
	registry: TypeRegistry | None = None,
) -> Callable[[C], C]:
	"""Class decorator registering a class under an explicit wire name."""

	def decorator(cls: C) -> C:
		(registry or DEFAULT_REGISTRY).register(cls, name=name, aliases=aliases)
		return cls

	return decorator


def register_enum(
	cls: type[Enum],
	name: str,
	*,
	aliases: Iterable[str] = (),
	registry: TypeRegistry | None = None,
) -> TypeDescriptor[Any]:
	return (registry or DEFAULT_REGISTRY).register(
		cls, enum_descriptor(cls, name, aliases)
	)


def _own_descriptor(cls: type) -> list[TypeDescriptor[Any]]:
	descriptor = cls.__dict__.get("__descriptor__")
	return [descriptor] if descriptor is not None else []


class Serializable:
	"""Base class for self-describing, self-registering domain objects.

	Subclasses pick their wire name with a class keyword::

	    class SystemMessage(Serializable, type_name="SystemMessage"): ...

	Keywords:
		type_name: Wire name. Subclasses without one are not registered.
		aliases: Former wire names still accepted when deserializing.
		register: When False the class describes itself but stays out of the
			ambient registry; pass it through ``extra_classes`` instead.
		registry: Registry to join instead of the default one.

	Subclasses implement ``create_snapshot`` and ``load_snapshot``. A
	customized subclass of a registered type must declare its own
	``type_name``; it never reuses its parent's descriptor.
	"""

	__type_name__: ClassVar[str | None] = None
	__descriptor__: ClassVar[TypeDescriptor[Any] | None] = None
	__registry__: ClassVar[TypeRegistry] = DEFAULT_REGISTRY

	def __init_subclass__(
		cls,
		*,
		type_name: str | None = None,
		aliases: Iterable[str] = (),
		register: bool = True,
		registry: TypeRegistry | None = None,
		**kwargs: Any,
	) -> None:
		super().__init_subclass__(**kwargs)
		cls.__type_name__ = type_name
		cls.__descriptor__ = None
		if registry is not None:
			cls.__registry__ = registry
		if type_name is None:
			return
		cls.__descriptor__ = snapshot_descriptor(cls, type_name, aliases)
		if register:
			cls.__registry__.register(cls, cls.__descriptor__)

	def create_snapshot(self) -> Any:
		raise NotImplementedError(
			f"{type(self).__qualname__} must implement create_snapshot()"
		)

	def load_snapshot(self, snapshot: Any) -> Any:
		raise NotImplementedError(
			f"{type(self).__qualname__} must implement load_snapshot()"
		)

	@classmethod
	def create_empty(cls) -> Self:
		return cls.__new__(cls)

	@classmethod
	def descriptor(cls) -> TypeDescriptor[Any]:
		descriptor = cls.__dict__.get("__descriptor__")
		if descriptor is None:
			raise TypeError(f"{cls.__qualname__} declares no type_name")
		return descriptor

	@classmethod
	def from_snapshot(cls, snapshot: Any) -> Self | Awaitable[Self]:
		"""Build an instance from a snapshot.

		Returns an awaitable when ``load_snapshot`` is a coroutine function.
		"""
		instance = cls.create_empty()
		result = instance.load_snapshot(snapshot)
		if inspect.isawaitable(result):
			return _await_then(result, instance)
		return instance

	@classmethod
	def from_serialized(
		cls,
		text: str,
		*,
		extra_classes: Iterable[TypeDescriptor[Any] | type] | None = None,
	) -> Self:
		"""Deserialize ``text`` and check the root is an instance of ``cls``."""
		extras = [*_own_descriptor(cls), *(extra_classes or ())]
		value = Serializer(cls.__registry__).deserialize(text, extra_classes=extras)
		if not isinstance(value, cls):
			raise TypeError(
				f"Expected {cls.__qualname__} at the payload root, got {type(value).__qualname__}"
			)
		return value

	def serialize(self) -> str:
		return Serializer(self.__registry__).serialize(
			self, extra_classes=_own_descriptor(type(self))
		)

	def clone(self) -> Self:
		"""Deep copy through a snapshot round trip, sharing nothing with ``self``."""
		return Serializer(self.__registry__).clone(
			self, extra_classes=_own_descriptor(type(self))
		)


__all__ = [
	"Serializable",
	"SnapshotCapable",
	"dataclass_descriptor",
	"describe_class",
	"enum_descriptor",
	"register_enum",
	"serializable",
	"snapshot_descriptor",
]
