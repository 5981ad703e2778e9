import json

import pytest
from snapweave import (
	DanglingReferenceError,
	DefinitionNode,
	InvalidPayloadError,
	ReferenceNode,
	SerializerError,
	UnsupportedFormatVersionError,
	deserialize,
	deserialize_envelope,
	serialize,
)
from snapweave.envelope import FORMAT_VERSION, decode, encode


def _node(ref: str, cls: str, value: object) -> dict[str, object]:
	return {"__serializer": True, "__class": cls, "__ref": ref, "__value": value}


def _payload(root: object, version: str = FORMAT_VERSION) -> str:
	return json.dumps({"__version": version, "__root": root})


def test_encode_decode_node_tree():
	root = DefinitionNode("1", "list", [1, ReferenceNode("1"), "x"])
	decoded = decode(encode(root))

	assert isinstance(decoded, DefinitionNode)
	assert decoded.type_name == "list"
	assert decoded.value == [1, ReferenceNode("1"), "x"]


def test_major_version_mismatch_is_rejected():
	text = _payload(_node("1", "list", [1]), version="2.0")
	with pytest.raises(UnsupportedFormatVersionError) as exc:
		deserialize(text)
	assert exc.value.version == "2.0"
	assert exc.value.supported == FORMAT_VERSION


@pytest.mark.parametrize("version", [None, "", "one", 1])
def test_malformed_version_is_rejected(version: object):
	text = json.dumps({"__version": version, "__root": 1})
	with pytest.raises(UnsupportedFormatVersionError):
		deserialize(text)


def test_newer_minor_and_unknown_keys_are_accepted():
	text = json.dumps(
		{"__version": "1.7", "__root": _node("1", "list", [1, 2]), "__producer": "other"}
	)
	value, document = deserialize_envelope(text)

	assert value == [1, 2]
	assert document.format_version == "1.7"


def test_invalid_json():
	with pytest.raises(InvalidPayloadError, match="not valid JSON"):
		deserialize("{not json")


def test_missing_root():
	with pytest.raises(InvalidPayloadError):
		deserialize(json.dumps({"__version": FORMAT_VERSION}))
	with pytest.raises(InvalidPayloadError):
		deserialize(json.dumps([1, 2]))


def test_untagged_object_is_rejected():
	with pytest.raises(InvalidPayloadError, match="serializer node"):
		deserialize(_payload({"a": 1}))


def test_bare_array_is_rejected():
	with pytest.raises(InvalidPayloadError, match="bare array"):
		deserialize(_payload([1, 2]))


def test_definition_without_value_is_rejected():
	node = {"__serializer": True, "__class": "list", "__ref": "1"}
	with pytest.raises(InvalidPayloadError, match="__value"):
		deserialize(_payload(node))


def test_dangling_reference():
	root = _node("1", "list", [{"__serializer": True, "__ref": "9"}])
	with pytest.raises(DanglingReferenceError) as exc:
		deserialize(_payload(root))
	assert exc.value.ref_id == "9"


def test_duplicate_definition_is_rejected():
	root = _node("1", "list", [_node("2", "list", []), _node("2", "list", [])])
	with pytest.raises(InvalidPayloadError, match="defined twice"):
		deserialize(_payload(root))


def test_output_is_valid_json_with_unicode():
	text = serialize({"greeting": "héllo ✓"})
	assert "héllo ✓" in text
	assert json.loads(text)["__root"]["__value"]["greeting"] == "héllo ✓"


def test_deeply_nested_text_is_an_invalid_payload():
	levels = 3000
	head = "".join(
		f'{{"__serializer": true, "__class": "list", "__ref": "{n}", "__value": ['
		for n in range(1, levels + 1)
	)
	text = '{"__version": "1.0", "__root": ' + head + "]}" * levels + "}"

	with pytest.raises(InvalidPayloadError, match="nested too deeply"):
		deserialize(text)


def test_deeply_nested_node_tree_cannot_be_written():
	root: DefinitionNode = DefinitionNode("1", "list", [])
	for n in range(2, 3002):
		root = DefinitionNode(str(n), "list", [root])

	with pytest.raises(SerializerError, match="nested too deeply"):
		encode(root)
