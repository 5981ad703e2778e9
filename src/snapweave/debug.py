"""Developer helpers for looking inside serialized payloads."""

from __future__ import annotations

from rich.console import Console
from rich.markup import escape
from rich.tree import Tree

from snapweave import envelope
from snapweave.nodes import DefinitionNode, Node, ReferenceNode, iter_definitions
from snapweave.registry import DEFAULT_REGISTRY, TypeRegistry


def _as_root(payload: str | bytes | Node) -> tuple[Node, str | None]:
	if isinstance(payload, (str, bytes)):
		document = envelope.decode_envelope(payload)
		return document.root, document.format_version
	return payload, None


def _label(node: Node, registry: TypeRegistry | None) -> str:
	if isinstance(node, DefinitionNode):
		style = "bold cyan"
		if registry is not None and not registry.has(node.type_name):
			style = "bold red"
		return f"[{style}]{escape(node.type_name)}[/] [dim]#{node.ref_id}[/]"
	if isinstance(node, ReferenceNode):
		return f"[magenta]-> #{node.ref_id}[/]"
	return f"[green]{escape(repr(node))}[/]"


def _add(parent: Tree, node: Node, registry: TypeRegistry | None, key: str | None) -> None:
	label = _label(node, registry)
	if key is not None:
		label = f"[yellow]{escape(key)}[/]: {label}"
	branch = parent.add(label)
	if not isinstance(node, DefinitionNode):
		return
	body = node.value
	if isinstance(body, list):
		for index, child in enumerate(body):
			_add(branch, child, registry, str(index))
	elif isinstance(body, dict):
		for name, child in body.items():
			_add(branch, child, registry, name)
	else:
		branch.add(f"[green]{escape(repr(body))}[/]")


def payload_tree(
	payload: str | bytes | Node, *, registry: TypeRegistry | None = None
) -> Tree:
	"""Build a rich tree of a payload's tagged nodes.

	With ``registry`` given, type names it cannot resolve are highlighted.
	"""
	root, version = _as_root(payload)
	title = "payload" if version is None else f"payload [dim]v{escape(version)}[/]"
	tree = Tree(title)
	_add(tree, root, registry, None)
	return tree


def print_payload(
	payload: str | bytes | Node,
	*,
	console: Console | None = None,
	registry: TypeRegistry | None = None,
) -> None:
	(console or Console()).print(payload_tree(payload, registry=registry))


def missing_types(
	payload: str | bytes | Node, registry: TypeRegistry | None = None
) -> list[str]:
	"""Type names used by a payload that ``registry`` cannot resolve.

	Useful for assembling the ``extra_classes`` of a retry after an
	``UnknownTypeError``.
	"""
	root, _ = _as_root(payload)
	registry = registry if registry is not None else DEFAULT_REGISTRY
	missing: dict[str, None] = {}
	for definition in iter_definitions(root):
		if not registry.has(definition.type_name):
			missing.setdefault(definition.type_name)
	return list(missing)


__all__ = ["missing_types", "payload_tree", "print_payload"]
