from __future__ import annotations

import logging
from collections.abc import Iterable
from typing import Any

from snapweave import envelope
from snapweave.descriptor import TypeDescriptor
from snapweave.env import SerializerConfig
from snapweave.nodes import Envelope, Node
from snapweave.registry import DEFAULT_REGISTRY, TypeRegistry, TypeResolver
from snapweave.walker import Decoder, Encoder, run_async, run_sync

logger = logging.getLogger(__name__)

ExtraClasses = Iterable[TypeDescriptor[Any] | type] | None


class Serializer:
	"""Entry point tying a registry to the walker and the envelope codec.

	Each call builds its own encoder or decoder (and with it its own
	reference table), so one serializer can be used from many threads or
	tasks at once.

	Args:
		registry: Registry to resolve types against. Defaults to the
			process-wide registry.
		config: Output and safety options. Defaults to values read from the
			environment.
	"""

	__slots__: tuple[str, ...] = ("registry", "config")

	registry: TypeRegistry
	config: SerializerConfig

	def __init__(
		self,
		registry: TypeRegistry | None = None,
		*,
		config: SerializerConfig | None = None,
	) -> None:
		self.registry = registry if registry is not None else DEFAULT_REGISTRY
		self.config = config if config is not None else SerializerConfig.from_env()

	def register(
		self,
		key: str | type,
		descriptor: TypeDescriptor[Any] | None = None,
		*,
		name: str | None = None,
		aliases: Iterable[str] = (),
	) -> TypeDescriptor[Any]:
		return self.registry.register(key, descriptor, name=name, aliases=aliases)

	def _resolver(self, extra_classes: ExtraClasses) -> TypeResolver:
		return self.registry.scoped(list(extra_classes) if extra_classes else None)

	def _encoder(self, extra_classes: ExtraClasses) -> Encoder:
		return Encoder(self._resolver(extra_classes), max_depth=self.config.max_depth)

	def _decoder(self, extra_classes: ExtraClasses) -> Decoder:
		return Decoder(self._resolver(extra_classes), max_depth=self.config.max_depth)

	# Value <-> node tree

	def to_nodes(self, value: Any, *, extra_classes: ExtraClasses = None) -> Node:
		encoder = self._encoder(extra_classes)
		root = run_sync(encoder.encode(value))
		logger.debug("Encoded %d instances", len(encoder.table))
		return root

	def from_nodes(self, root: Node, *, extra_classes: ExtraClasses = None) -> Any:
		return run_sync(self._decoder(extra_classes).decode(root))

	# Text

	def serialize(self, value: Any, *, extra_classes: ExtraClasses = None) -> str:
		"""Serialize a value graph to text.

		``extra_classes`` lets this call serialize types missing from the
		registry without registering them.

		Raises:
			UnknownTypeError: If a value in the graph has no descriptor.
			SerializerError: If a descriptor returns an awaitable (use
				:meth:`aserialize`) or the graph is nested too deeply.
		"""
		root = self.to_nodes(value, extra_classes=extra_classes)
		return envelope.encode(root, indent=self.config.indent)

	def deserialize(self, text: str | bytes, *, extra_classes: ExtraClasses = None) -> Any:
		"""Rebuild a value graph from text.

		Args:
			text: Output of :meth:`serialize`, possibly from another process.
			extra_classes: Descriptors or self-describing classes used for this
				call only, when the registry lacks the requested name.

		Raises:
			UnsupportedFormatVersionError: If the payload's major version differs.
			UnknownTypeError: If a type is neither registered nor supplied.
			CircularDependencyError: If a cycle passes through a type without
				two-phase construction.
			DanglingReferenceError: If a reference points at no definition.
			InvalidPayloadError: If the text is not a well-formed payload.
		"""
		value, _ = self.deserialize_envelope(text, extra_classes=extra_classes)
		return value

	def deserialize_envelope(
		self, text: str | bytes, *, extra_classes: ExtraClasses = None
	) -> tuple[Any, Envelope]:
		"""Like :meth:`deserialize`, also returning the decoded envelope."""
		document = envelope.decode_envelope(text)
		logger.debug("Decoding payload (format %s)", document.format_version)
		value = self.from_nodes(document.root, extra_classes=extra_classes)
		return value, document

	async def aserialize(self, value: Any, *, extra_classes: ExtraClasses = None) -> str:
		"""Serialize, awaiting descriptors whose ``to_plain`` is asynchronous."""
		encoder = self._encoder(extra_classes)
		root = await run_async(encoder.encode(value))
		logger.debug("Encoded %d instances", len(encoder.table))
		return envelope.encode(root, indent=self.config.indent)

	async def adeserialize(
		self, text: str | bytes, *, extra_classes: ExtraClasses = None
	) -> Any:
		"""Deserialize, awaiting asynchronous ``from_plain``/``update_instance``."""
		document = envelope.decode_envelope(text)
		return await run_async(self._decoder(extra_classes).decode(document.root))

	def clone(self, value: Any, *, extra_classes: ExtraClasses = None) -> Any:
		"""Deep copy a value graph through the node tree, skipping the text step."""
		root = self.to_nodes(value, extra_classes=extra_classes)
		return self.from_nodes(root, extra_classes=extra_classes)


def default_serializer() -> Serializer:
	"""Serializer over the process-wide registry, configured from the environment."""
	return Serializer(DEFAULT_REGISTRY)


def register(
	key: str | type,
	descriptor: TypeDescriptor[Any] | None = None,
	*,
	name: str | None = None,
	aliases: Iterable[str] = (),
) -> TypeDescriptor[Any]:
	"""Register a type in the process-wide registry."""
	return DEFAULT_REGISTRY.register(key, descriptor, name=name, aliases=aliases)


def serialize(value: Any, *, extra_classes: ExtraClasses = None) -> str:
	return default_serializer().serialize(value, extra_classes=extra_classes)


def deserialize(text: str | bytes, *, extra_classes: ExtraClasses = None) -> Any:
	return default_serializer().deserialize(text, extra_classes=extra_classes)


def deserialize_envelope(
	text: str | bytes, *, extra_classes: ExtraClasses = None
) -> tuple[Any, Envelope]:
	return default_serializer().deserialize_envelope(text, extra_classes=extra_classes)


async def aserialize(value: Any, *, extra_classes: ExtraClasses = None) -> str:
	return await default_serializer().aserialize(value, extra_classes=extra_classes)


async def adeserialize(text: str | bytes, *, extra_classes: ExtraClasses = None) -> Any:
	return await default_serializer().adeserialize(text, extra_classes=extra_classes)


def clone(value: Any, *, extra_classes: ExtraClasses = None) -> Any:
	return default_serializer().clone(value, extra_classes=extra_classes)


__all__ = [
	"Serializer",
	"adeserialize",
	"aserialize",
	"clone",
	"default_serializer",
	"deserialize",
	"deserialize_envelope",
	"register",
	"serialize",
]
