from pathlib import Path

import pytest
from snapweave import Serializer, SerializerConfig, TypeRegistry

FIXTURES = Path(__file__).parent / "fixtures"


@pytest.fixture
def registry() -> TypeRegistry:
	return TypeRegistry()


@pytest.fixture
def serializer(registry: TypeRegistry) -> Serializer:
	return Serializer(registry, config=SerializerConfig())


@pytest.fixture
def memory_snapshot() -> str:
	return (FIXTURES / "memory_snapshot.json").read_text()
