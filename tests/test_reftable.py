import pytest
from snapweave import DanglingReferenceError, ReferenceTable, SerializerError


def test_ids_follow_visitation_order():
	table = ReferenceTable()
	a, b = object(), object()

	assert table.id_for(a) == "1"
	assert table.id_for(b) == "2"
	assert table.id_for(a) == "1"
	assert table.known(a)
	assert not table.known(object())
	assert len(table) == 2


def test_identity_not_equality():
	table = ReferenceTable()
	first: list[int] = []
	second: list[int] = []

	assert table.id_for(first) != table.id_for(second)


def test_bind_and_lookup():
	table = ReferenceTable()
	instance = object()
	table.bind("7", instance)

	assert table.is_bound("7")
	assert table.instance_for("7") is instance


def test_double_bind_raises():
	table = ReferenceTable()
	table.bind("1", object())
	with pytest.raises(SerializerError, match="already bound"):
		table.bind("1", object())


def test_dangling_lookup():
	table = ReferenceTable()
	with pytest.raises(DanglingReferenceError) as exc:
		table.instance_for("42")
	assert exc.value.ref_id == "42"
