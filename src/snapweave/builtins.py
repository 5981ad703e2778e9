"""Descriptors for Python built-ins that serialize without registration."""

from __future__ import annotations

import base64
import datetime as dt
from decimal import Decimal
from typing import Any
from uuid import UUID

from snapweave.descriptor import TypeDescriptor


# Containers


def _list_update(instance: list[Any], plain: list[Any]) -> None:
	instance.extend(plain)


def _dict_to_plain(value: dict[Any, Any]) -> dict[str, Any] | list[list[Any]]:
	if all(type(key) is str for key in value):
		return value
	# Non-string keys travel as [key, value] pairs; lists keep the pairs two-phase.
	return [[key, entry] for key, entry in value.items()]


def _dict_items(plain: dict[str, Any] | list[list[Any]]):
	if isinstance(plain, dict):
		return plain.items()
	return ((pair[0], pair[1]) for pair in plain)


def _dict_from_plain(plain: dict[str, Any] | list[list[Any]]) -> dict[Any, Any]:
	return dict(_dict_items(plain))


def _dict_update(instance: dict[Any, Any], plain: dict[str, Any] | list[list[Any]]) -> None:
	instance.update(_dict_items(plain))


def _set_update(instance: set[Any], plain: list[Any]) -> None:
	instance.update(plain)


# Scalars wrapped as strings


def _float_to_plain(value: float) -> str:
	# Only non-finite floats reach the registry; finite ones are literals.
	return repr(value)


def _bytes_to_plain(value: bytes | bytearray) -> str:
	return base64.b64encode(value).decode("ascii")


def _bytes_from_plain(plain: str) -> bytes:
	return base64.b64decode(plain.encode("ascii"), validate=True)


def _bytearray_from_plain(plain: str) -> bytearray:
	return bytearray(_bytes_from_plain(plain))


def _timedelta_to_plain(value: dt.timedelta) -> list[int]:
	return [value.days, value.seconds, value.microseconds]


def _timedelta_from_plain(plain: list[int]) -> dt.timedelta:
	days, seconds, microseconds = plain
	return dt.timedelta(days=days, seconds=seconds, microseconds=microseconds)


def _complex_to_plain(value: complex) -> list[float]:
	return [value.real, value.imag]


def _complex_from_plain(plain: list[float]) -> complex:
	real, imag = plain
	return complex(real, imag)


def _isoformat(value: dt.datetime | dt.date | dt.time) -> str:
	return value.isoformat()


BUILTIN_DESCRIPTORS: tuple[TypeDescriptor[Any], ...] = (
	TypeDescriptor(
		name="list",
		type=list,
		to_plain=list.copy,
		from_plain=list,
		create_empty=list,
		update_instance=_list_update,
	),
	TypeDescriptor(
		name="dict",
		type=dict,
		to_plain=_dict_to_plain,
		from_plain=_dict_from_plain,
		create_empty=dict,
		update_instance=_dict_update,
	),
	TypeDescriptor(
		name="set",
		type=set,
		to_plain=list,
		from_plain=set,
		create_empty=set,
		update_instance=_set_update,
	),
	TypeDescriptor(name="tuple", type=tuple, to_plain=list, from_plain=tuple),
	TypeDescriptor(name="frozenset", type=frozenset, to_plain=list, from_plain=frozenset),
	TypeDescriptor(name="float", type=float, to_plain=_float_to_plain, from_plain=float),
	TypeDescriptor(
		name="complex",
		type=complex,
		to_plain=_complex_to_plain,
		from_plain=_complex_from_plain,
	),
	TypeDescriptor(
		name="datetime",
		type=dt.datetime,
		to_plain=_isoformat,
		from_plain=dt.datetime.fromisoformat,
	),
	TypeDescriptor(
		name="date", type=dt.date, to_plain=_isoformat, from_plain=dt.date.fromisoformat
	),
	TypeDescriptor(
		name="time", type=dt.time, to_plain=_isoformat, from_plain=dt.time.fromisoformat
	),
	TypeDescriptor(
		name="timedelta",
		type=dt.timedelta,
		to_plain=_timedelta_to_plain,
		from_plain=_timedelta_from_plain,
	),
	TypeDescriptor(
		name="bytes", type=bytes, to_plain=_bytes_to_plain, from_plain=_bytes_from_plain
	),
	TypeDescriptor(
		name="bytearray",
		type=bytearray,
		to_plain=_bytes_to_plain,
		from_plain=_bytearray_from_plain,
	),
	TypeDescriptor(name="Decimal", type=Decimal, to_plain=str, from_plain=Decimal),
	TypeDescriptor(name="UUID", type=UUID, to_plain=str, from_plain=UUID),
)


__all__ = ["BUILTIN_DESCRIPTORS"]
