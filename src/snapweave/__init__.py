"""snapweave: identity-preserving object-graph serialization.

Typical use:

```python
import snapweave as sw

text = sw.serialize(graph)
copy = sw.deserialize(text, extra_classes=[UserMessage])
```
"""

from snapweave.descriptor import TypeDescriptor
from snapweave.env import SerializerConfig
from snapweave.envelope import FORMAT_VERSION
from snapweave.errors import (
	CircularDependencyError,
	DanglingReferenceError,
	DuplicateTypeError,
	InvalidPayloadError,
	SerializerError,
	UnknownTypeError,
	UnsupportedFormatVersionError,
)
from snapweave.nodes import DefinitionNode, Envelope, ReferenceNode
from snapweave.reftable import ReferenceTable
from snapweave.registry import DEFAULT_REGISTRY, ScopedRegistry, TypeRegistry
from snapweave.serializer import (
	Serializer,
	adeserialize,
	aserialize,
	clone,
	default_serializer,
	deserialize,
	deserialize_envelope,
	register,
	serialize,
)
from snapweave.snapshot import (
	Serializable,
	SnapshotCapable,
	dataclass_descriptor,
	describe_class,
	enum_descriptor,
	register_enum,
	serializable,
	snapshot_descriptor,
)

__version__ = "0.1.0"

__all__ = [
	"DEFAULT_REGISTRY",
	"FORMAT_VERSION",
	"CircularDependencyError",
	"DanglingReferenceError",
	"DefinitionNode",
	"DuplicateTypeError",
	"Envelope",
	"InvalidPayloadError",
	"ReferenceNode",
	"ReferenceTable",
	"ScopedRegistry",
	"Serializable",
	"SerializerConfig",
	"SerializerError",
	"Serializer",
	"SnapshotCapable",
	"TypeDescriptor",
	"TypeRegistry",
	"UnknownTypeError",
	"UnsupportedFormatVersionError",
	"adeserialize",
	"aserialize",
	"clone",
	"dataclass_descriptor",
	"default_serializer",
	"describe_class",
	"deserialize",
	"deserialize_envelope",
	"enum_descriptor",
	"register",
	"register_enum",
	"serializable",
	"serialize",
	"snapshot_descriptor",
]
