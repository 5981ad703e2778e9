import threading
from concurrent.futures import ThreadPoolExecutor
from typing import Any

import pytest
from snapweave import (
	DuplicateTypeError,
	ScopedRegistry,
	Serializable,
	TypeDescriptor,
	TypeRegistry,
	UnknownTypeError,
)


class Point:
	def __init__(self, x: int, y: int) -> None:
		self.x = x
		self.y = y


def _point_to_plain(point: Point) -> list[int]:
	return [point.x, point.y]


def _point_from_plain(plain: list[int]) -> Point:
	return Point(*plain)


POINT = TypeDescriptor(
	name="Point", to_plain=_point_to_plain, from_plain=_point_from_plain, type=Point
)


def test_builtins_are_preregistered(registry: TypeRegistry):
	for name in ("list", "dict", "set", "tuple", "datetime", "bytes"):
		assert registry.has(name)
	assert TypeRegistry(builtins=False).names() == []


def test_register_and_resolve(registry: TypeRegistry):
	registry.register("Point", POINT)

	assert registry.resolve_by_name("Point") is POINT
	assert registry.resolve_by_instance(Point(1, 2)) is POINT
	assert "Point" in registry


def test_unknown_name(registry: TypeRegistry):
	with pytest.raises(UnknownTypeError) as exc:
		registry.resolve_by_name("Nope")
	assert exc.value.type_name == "Nope"
	assert "extra_classes" in str(exc.value)


def test_identical_registration_is_a_no_op(registry: TypeRegistry):
	first = registry.register("Point", POINT)
	second = registry.register("Point", POINT)
	assert first is second is POINT


def test_equal_descriptor_is_a_no_op(registry: TypeRegistry):
	registry.register("Point", POINT)
	again = TypeDescriptor(
		name="Point", to_plain=_point_to_plain, from_plain=_point_from_plain, type=Point
	)
	registry.register("Point", again)
	assert registry.resolve_by_name("Point") is POINT


def test_conflicting_registration_raises(registry: TypeRegistry):
	registry.register("Point", POINT)
	other = TypeDescriptor(name="Point", to_plain=str, from_plain=str)

	with pytest.raises(DuplicateTypeError) as exc:
		registry.register("Point", other)
	assert exc.value.type_name == "Point"
	assert registry.resolve_by_name("Point") is POINT


def test_builtin_names_are_taken(registry: TypeRegistry):
	with pytest.raises(DuplicateTypeError):
		registry.register("list", TypeDescriptor(name="list", to_plain=list, from_plain=list))


def test_class_bound_to_two_names_raises(registry: TypeRegistry):
	registry.register("Point", POINT)
	with pytest.raises(DuplicateTypeError, match="already registered as 'Point'"):
		registry.register(
			"Point2",
			TypeDescriptor(
				name="Point2", to_plain=_point_to_plain, from_plain=_point_from_plain, type=Point
			),
		)


def test_register_key_overrides_name(registry: TypeRegistry):
	descriptor = registry.register("geo.Point", POINT)
	assert descriptor.name == "geo.Point"
	assert registry.has("geo.Point")
	assert not registry.has("Point")


def test_register_class_key_sets_dispatch_type(registry: TypeRegistry):
	untyped = TypeDescriptor(name="Point", to_plain=_point_to_plain, from_plain=_point_from_plain)
	descriptor = registry.register(Point, untyped)
	assert descriptor.type is Point
	assert registry.resolve_by_instance(Point(0, 0)) is descriptor


def test_aliases_resolve_to_the_same_descriptor(registry: TypeRegistry):
	descriptor = registry.register("Point", POINT, aliases=["LegacyPoint"])
	assert registry.resolve_by_name("LegacyPoint") is descriptor
	assert "LegacyPoint" in registry.names()


def test_descriptor_validation():
	with pytest.raises(ValueError):
		TypeDescriptor(name="", to_plain=str, from_plain=str)
	with pytest.raises(ValueError, match="both create_empty and update_instance"):
		TypeDescriptor(name="Half", to_plain=list, from_plain=list, create_empty=list)
	with pytest.raises(ValueError, match="own name"):
		TypeDescriptor(name="X", to_plain=str, from_plain=str, aliases=("X",))


def test_register_class_without_name_raises(registry: TypeRegistry):
	with pytest.raises(TypeError, match="explicit type name"):
		registry.register(Point)


def test_reimported_class_replaces_previous(registry: TypeRegistry):
	def define() -> type[Any]:
		class Note(Serializable, type_name="Note", registry=registry):
			def create_snapshot(self) -> str:
				return "note"

			def load_snapshot(self, snapshot: str) -> None:
				pass

		return Note

	first = define()
	second = define()

	assert first is not second
	assert registry.resolve_by_name("Note").type is second
	assert registry.resolve_by_instance(second()) is second.descriptor()


def test_scoped_registry_prefers_base(registry: TypeRegistry):
	registry.register("Point", POINT)
	shadow = TypeDescriptor(name="Point", to_plain=str, from_plain=str)
	scoped = registry.scoped([shadow])

	assert isinstance(scoped, ScopedRegistry)
	assert scoped.resolve_by_name("Point") is POINT


def test_scoped_registry_does_not_mutate_base(registry: TypeRegistry):
	scoped = registry.scoped([POINT])

	assert scoped.resolve_by_name("Point") is POINT
	assert scoped.resolve_by_instance(Point(1, 1)) is POINT
	assert scoped.has("Point")
	assert not registry.has("Point")
	with pytest.raises(UnknownTypeError):
		scoped.resolve_by_name("Missing")


def test_scoped_registry_conflicting_extras(registry: TypeRegistry):
	other = TypeDescriptor(name="Point", to_plain=str, from_plain=str)
	with pytest.raises(DuplicateTypeError):
		ScopedRegistry(registry, [POINT, other])


def test_empty_scope_is_the_registry_itself(registry: TypeRegistry):
	assert registry.scoped(None) is registry
	assert registry.scoped([]) is registry


def test_lambda_descriptors_for_one_class_conflict(registry: TypeRegistry):
	registry.register(
		"Point",
		TypeDescriptor(
			name="Point", to_plain=lambda p: [p.x, p.y], from_plain=lambda v: Point(*v), type=Point
		),
	)
	swapped = TypeDescriptor(
		name="Point", to_plain=lambda p: [p.y, p.x], from_plain=lambda v: Point(v[1], v[0]), type=Point
	)

	with pytest.raises(DuplicateTypeError):
		registry.register("Point", swapped)
	assert registry.resolve_by_name("Point") is not swapped


def test_same_qualname_with_lambdas_is_not_a_reimport(registry: TypeRegistry):
	def define(flip: bool) -> type[Any]:
		class Pair:
			def __init__(self, a: int, b: int) -> None:
				self.a = a
				self.b = b

		if flip:
			to_plain = lambda p: [p.b, p.a]  # noqa: E731
		else:
			to_plain = lambda p: [p.a, p.b]  # noqa: E731
		registry.register(
			Pair, TypeDescriptor(name="Pair", to_plain=to_plain, from_plain=lambda v: Pair(*v))
		)
		return Pair

	define(False)
	with pytest.raises(DuplicateTypeError):
		define(True)


def test_concurrent_registrations_of_one_name(registry: TypeRegistry):
	workers = 8
	barrier = threading.Barrier(workers)

	def attempt(index: int) -> TypeDescriptor[Any] | DuplicateTypeError:
		descriptor = TypeDescriptor(
			name="Contested", to_plain=str, from_plain=lambda plain, index=index: index
		)
		barrier.wait()
		try:
			return registry.register("Contested", descriptor)
		except DuplicateTypeError as exc:
			return exc

	with ThreadPoolExecutor(max_workers=workers) as pool:
		outcomes = list(pool.map(attempt, range(workers)))

	winners = [o for o in outcomes if isinstance(o, TypeDescriptor)]
	losers = [o for o in outcomes if isinstance(o, DuplicateTypeError)]
	assert len(winners) == 1
	assert len(losers) == workers - 1
	assert registry.resolve_by_name("Contested") is winners[0]


def test_concurrent_registrations_of_distinct_names(registry: TypeRegistry):
	workers = 8
	barrier = threading.Barrier(workers)

	def attempt(index: int) -> TypeDescriptor[Any]:
		descriptor = TypeDescriptor(name=f"Kind{index}", to_plain=str, from_plain=str)
		barrier.wait()
		return registry.register(descriptor.name, descriptor)

	with ThreadPoolExecutor(max_workers=workers) as pool:
		bound = list(pool.map(attempt, range(workers)))

	for index, descriptor in enumerate(bound):
		assert registry.resolve_by_name(f"Kind{index}") is descriptor
