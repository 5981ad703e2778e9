from __future__ import annotations

import dataclasses
import inspect
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any, Generic, TypeVar

T = TypeVar("T")


@dataclass(frozen=True, slots=True)
class TypeDescriptor(Generic[T]):
	"""Serialization behavior bound to a wire type name.

	Attributes:
		name: Wire name written as ``__class``. Unique within a registry.
		to_plain: Returns the plain body for an instance (``None``, ``bool``,
			``int``, ``float``, ``str``, ``list``, ``tuple`` or a str-keyed
			``dict``). Members of the body may be any serializable value.
		from_plain: Builds an instance from a fully resolved body.
		create_empty: Allocates an unpopulated instance. Together with
			``update_instance`` it lets the type take part in reference cycles.
		update_instance: Populates an instance from ``create_empty`` in place.
		type: Python class dispatched to this descriptor during serialization.
		aliases: Additional wire names accepted when deserializing.

	``to_plain``, ``from_plain`` and ``update_instance`` may return awaitables;
	those are only supported by the async entry points.
	"""

	name: str
	to_plain: Callable[[T], Any]
	from_plain: Callable[[Any], T]
	create_empty: Callable[[], T] | None = None
	update_instance: Callable[[T, Any], Any] | None = None
	type: type[T] | None = None
	aliases: tuple[str, ...] = ()

	def __post_init__(self) -> None:
		if not isinstance(self.name, str) or not self.name:
			raise ValueError("Type name must be a non-empty string")
		if (self.create_empty is None) != (self.update_instance is None):
			raise ValueError(
				f"Type '{self.name}' must define both create_empty and update_instance, or neither"
			)
		if self.name in self.aliases:
			raise ValueError(f"Type '{self.name}' lists its own name as an alias")

	@property
	def two_phase(self) -> bool:
		return self.create_empty is not None

	@property
	def names(self) -> tuple[str, ...]:
		return (self.name, *self.aliases)


def _defined_on(fn: Any, cls: type) -> bool:
	qualname = getattr(fn, "__qualname__", "")
	return (
		getattr(fn, "__module__", None) == cls.__module__
		and qualname.startswith(f"{cls.__qualname__}.")
		and "<lambda>" not in qualname
	)


def _same_role(x: Any, y: Any, old: type, new: type) -> bool:
	"""True when callable ``y`` plays for ``new`` the part ``x`` plays for ``old``."""
	if x is None or y is None:
		return x is y
	if x is old and y is new:
		return True
	if x == y:
		return True
	owner_x = getattr(x, "__self__", None)
	owner_y = getattr(y, "__self__", None)
	if owner_x is not None or owner_y is not None:
		if not (owner_x is owner_y or (owner_x is old and owner_y is new)):
			return False
	fx = getattr(x, "__func__", x)
	fy = getattr(y, "__func__", y)
	if inspect.isfunction(fx) and inspect.isfunction(fy):
		if fx is fy:
			return True
		return (
			fx.__qualname__ == fy.__qualname__
			and _defined_on(fx, old)
			and _defined_on(fy, new)
		)
	# Composite callables (e.g. allocate-then-load wrappers) match field by field.
	if type(x) is type(y) and dataclasses.is_dataclass(x):
		return all(
			_same_role(getattr(x, f.name), getattr(y, f.name), old, new)
			for f in dataclasses.fields(x)
		)
	return False


def same_origin(a: TypeDescriptor[Any], b: TypeDescriptor[Any]) -> bool:
	"""True when ``b`` is ``a`` rebuilt by re-importing the defining module.

	The classes must be distinct objects with the same module and qualname,
	and every callable must be shared or defined on the respective class.
	"""
	old, new = a.type, b.type
	if a.name != b.name or old is None or new is None or old is new:
		return False
	if (old.__module__, old.__qualname__) != (new.__module__, new.__qualname__):
		return False
	return all(
		_same_role(getattr(a, attr), getattr(b, attr), old, new)
		for attr in ("to_plain", "from_plain", "create_empty", "update_instance")
	)


__all__ = ["TypeDescriptor", "same_origin"]
