from __future__ import annotations

from typing import Any

from snapweave.errors import DanglingReferenceError, SerializerError


class ReferenceTable:
	"""Identity bookkeeping for a single serialize or deserialize call.

	On the way out, ``id_for`` hands out ids in visitation order, keyed by
	object identity. On the way in, ``bind`` and ``instance_for`` map ids back
	to instances. A table is never shared between calls.
	"""

	__slots__: tuple[str, ...] = ("_ids", "_instances", "_next")

	_ids: dict[int, tuple[str, Any]]
	_instances: dict[str, Any]
	_next: int

	def __init__(self) -> None:
		# The instance is stored next to its id so that id() values stay
		# unique for the lifetime of the call.
		self._ids = {}
		self._instances = {}
		self._next = 1

	def known(self, instance: Any) -> bool:
		return id(instance) in self._ids

	def id_for(self, instance: Any) -> str:
		entry = self._ids.get(id(instance))
		if entry is not None:
			return entry[0]
		ref_id = str(self._next)
		self._next += 1
		self._ids[id(instance)] = (ref_id, instance)
		return ref_id

	def bind(self, ref_id: str, instance: Any) -> None:
		if ref_id in self._instances:
			raise SerializerError(f"Reference '{ref_id}' is already bound")
		self._instances[ref_id] = instance

	def is_bound(self, ref_id: str) -> bool:
		return ref_id in self._instances

	def instance_for(self, ref_id: str) -> Any:
		try:
			return self._instances[ref_id]
		except KeyError:
			raise DanglingReferenceError(ref_id) from None

	def __len__(self) -> int:
		return max(len(self._ids), len(self._instances))


__all__ = ["ReferenceTable"]
