"""JSON envelope around a tagged-node tree.

Wire shape::

    {"__version": "1.0", "__root": <node>}

    definition: {"__serializer": true, "__class": "list", "__ref": "1", "__value": [...]}
    reference:  {"__serializer": true, "__ref": "1"}

Literals are written inline. Inside a definition body, a JSON array is a list
of nodes and a JSON object maps keys to nodes; wherever a single node is
expected, a JSON object is always a wrapper.
"""

from __future__ import annotations

import json
import math
from typing import Any

from snapweave.errors import (
	InvalidPayloadError,
	SerializerError,
	UnsupportedFormatVersionError,
)
from snapweave.nodes import Body, DefinitionNode, Envelope, Node, ReferenceNode, is_literal

FORMAT_VERSION = "1.0"

VERSION_KEY = "__version"
ROOT_KEY = "__root"
MARKER_KEY = "__serializer"
CLASS_KEY = "__class"
REF_KEY = "__ref"
VALUE_KEY = "__value"


def _major(version: Any) -> int | None:
	if not isinstance(version, str):
		return None
	head = version.split(".", 1)[0]
	if not head.isdigit():
		return None
	return int(head)


def check_version(version: Any) -> str:
	"""Accept any version sharing our major; minors only add ignorable data."""
	major = _major(version)
	if major is None or major != _major(FORMAT_VERSION):
		raise UnsupportedFormatVersionError(
			version if isinstance(version, str) else None, FORMAT_VERSION
		)
	return version


# Node tree -> JSON-compatible data


def node_to_json(node: Node) -> Any:
	if isinstance(node, DefinitionNode):
		return {
			MARKER_KEY: True,
			CLASS_KEY: node.type_name,
			REF_KEY: node.ref_id,
			VALUE_KEY: _body_to_json(node.value),
		}
	if isinstance(node, ReferenceNode):
		return {MARKER_KEY: True, REF_KEY: node.ref_id}
	if is_literal(node):
		return node
	raise InvalidPayloadError(f"Cannot encode {type(node).__qualname__} as a node")


def _body_to_json(body: Body) -> Any:
	if isinstance(body, list):
		return [node_to_json(child) for child in body]
	if isinstance(body, dict):
		return {key: node_to_json(child) for key, child in body.items()}
	return node_to_json(body)


def encode(
	root: Node, *, indent: int | None = None, version: str = FORMAT_VERSION
) -> str:
	try:
		document = {VERSION_KEY: version, ROOT_KEY: node_to_json(root)}
		return json.dumps(document, indent=indent, ensure_ascii=False, allow_nan=False)
	except RecursionError:
		raise SerializerError(
			"Node tree is nested too deeply to be written as JSON"
		) from None


# JSON-compatible data -> node tree


def node_from_json(data: Any) -> Node:
	if isinstance(data, dict):
		if data.get(MARKER_KEY) is not True:
			raise InvalidPayloadError(
				f"Expected a serializer node, got an object with keys {sorted(data)}"
			)
		ref_id = data.get(REF_KEY)
		if not isinstance(ref_id, str) or not ref_id:
			raise InvalidPayloadError(f"Node is missing a valid '{REF_KEY}'")
		if CLASS_KEY not in data:
			return ReferenceNode(ref_id)
		type_name = data[CLASS_KEY]
		if not isinstance(type_name, str) or not type_name:
			raise InvalidPayloadError(f"Node '{ref_id}' has an invalid '{CLASS_KEY}'")
		if VALUE_KEY not in data:
			raise InvalidPayloadError(f"Node '{ref_id}' is missing '{VALUE_KEY}'")
		return DefinitionNode(ref_id, type_name, _body_from_json(data[VALUE_KEY]))
	if isinstance(data, list):
		raise InvalidPayloadError("Expected a serializer node, got a bare array")
	if isinstance(data, float) and not math.isfinite(data):
		raise InvalidPayloadError("Non-finite numbers are not valid node literals")
	if is_literal(data):
		return data
	raise InvalidPayloadError(f"Unexpected {type(data).__qualname__} in payload")


def _body_from_json(data: Any) -> Body:
	if isinstance(data, list):
		return [node_from_json(child) for child in data]
	if isinstance(data, dict):
		return {key: node_from_json(child) for key, child in data.items()}
	return node_from_json(data)


def decode_envelope(text: str | bytes) -> Envelope:
	try:
		document = json.loads(text)
	except RecursionError:
		raise InvalidPayloadError("Payload is nested too deeply") from None
	except (TypeError, ValueError) as exc:
		raise InvalidPayloadError(f"Payload is not valid JSON: {exc}") from exc
	if not isinstance(document, dict) or ROOT_KEY not in document:
		raise InvalidPayloadError(
			f"Payload must be an object with '{VERSION_KEY}' and '{ROOT_KEY}'"
		)
	version = check_version(document.get(VERSION_KEY))
	try:
		root = node_from_json(document[ROOT_KEY])
	except RecursionError:
		raise InvalidPayloadError("Payload is nested too deeply") from None
	return Envelope(format_version=version, root=root)


def decode(text: str | bytes) -> Node:
	return decode_envelope(text).root


__all__ = [
	"FORMAT_VERSION",
	"check_version",
	"decode",
	"decode_envelope",
	"encode",
	"node_from_json",
	"node_to_json",
]
