from __future__ import annotations


class SerializerError(RuntimeError):
	"""Base error for serialization and deserialization failures."""


class UnknownTypeError(SerializerError, LookupError):
	"""Raised when a type name or runtime class has no registered descriptor.

	Recoverable: pass the missing type through ``extra_classes`` and retry.
	"""

	type_name: str

	def __init__(self, type_name: str, message: str | None = None) -> None:
		self.type_name = type_name
		super().__init__(
			message
			or f"Type '{type_name}' is not registered. Register it or pass it via extra_classes."
		)


class DuplicateTypeError(SerializerError):
	"""Raised when a name or class is already bound to a different descriptor."""

	type_name: str

	def __init__(self, type_name: str, message: str | None = None) -> None:
		self.type_name = type_name
		super().__init__(
			message
			or f"Type '{type_name}' is already registered with a different descriptor"
		)


class DanglingReferenceError(SerializerError):
	"""Raised when a reference id has no allocated instance."""

	ref_id: str

	def __init__(self, ref_id: str, message: str | None = None) -> None:
		self.ref_id = ref_id
		super().__init__(message or f"Reference '{ref_id}' points to no known instance")


class CircularDependencyError(SerializerError):
	"""Raised when a reference cycle touches a type without two-phase construction."""

	type_name: str
	ref_id: str

	def __init__(self, type_name: str, ref_id: str) -> None:
		self.type_name = type_name
		self.ref_id = ref_id
		super().__init__(
			f"Type '{type_name}' (ref '{ref_id}') is part of a reference cycle but "
			+ "provides no create_empty/update_instance"
		)


class UnsupportedFormatVersionError(SerializerError):
	"""Raised when a payload was written with an incompatible format version."""

	version: str | None
	supported: str

	def __init__(self, version: str | None, supported: str) -> None:
		self.version = version
		self.supported = supported
		super().__init__(
			f"Unsupported format version {version!r} (supported: {supported})"
		)


class InvalidPayloadError(SerializerError):
	"""Raised when serialized text or a node tree is structurally broken."""


__all__ = [
	"CircularDependencyError",
	"DanglingReferenceError",
	"DuplicateTypeError",
	"InvalidPayloadError",
	"SerializerError",
	"UnknownTypeError",
	"UnsupportedFormatVersionError",
]
