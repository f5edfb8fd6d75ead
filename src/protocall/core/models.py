"""Domain models for protocall.

Schema types describe messages independently of protobuf so that the
core never imports a third-party package.  Field, enum and oneof
descriptions are frozen dataclasses; :class:`MessageSchema` is filled
in incrementally so that recursive message types can refer to
themselves.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum

from protocall.exceptions import SchemaError


# ---------------------------------------------------------------------------
# Field kinds
# ---------------------------------------------------------------------------

class FieldKind(str, Enum):
    """Declared wire kind of a field."""

    DOUBLE = "double"
    FLOAT = "float"
    INT32 = "int32"
    INT64 = "int64"
    UINT32 = "uint32"
    UINT64 = "uint64"
    FIXED32 = "fixed32"
    FIXED64 = "fixed64"
    SFIXED32 = "sfixed32"
    SFIXED64 = "sfixed64"
    SINT32 = "sint32"
    SINT64 = "sint64"
    BOOL = "bool"
    STRING = "string"
    BYTES = "bytes"
    MESSAGE = "message"
    ENUM = "enum"
    GROUP = "group"
    MAP = "map"

    @property
    def is_supported(self) -> bool:
        return self not in (FieldKind.GROUP, FieldKind.MAP)

    @property
    def is_scalar(self) -> bool:
        """True for kinds whose value is read as a single line of text."""
        return self.is_supported and self not in (FieldKind.MESSAGE, FieldKind.ENUM)


# ---------------------------------------------------------------------------
# Enumerations and oneof groups
# ---------------------------------------------------------------------------

@dataclass(frozen=True, slots=True)
class EnumValue:
    name: str
    number: int


@dataclass(frozen=True, slots=True)
class EnumSchema:
    """A named enumeration shared by any number of fields."""

    full_name: str
    """Fully-qualified name; the deduplication key within a pass."""

    name: str
    values: tuple[EnumValue, ...]

    def value_named(self, name: str) -> EnumValue | None:
        for value in self.values:
            if value.name == name:
                return value
        return None


@dataclass(frozen=True, slots=True)
class OneofRef:
    """Identity of the oneof group a field belongs to."""

    full_name: str
    name: str


@dataclass(frozen=True, slots=True)
class OneofGroup:
    """A mutually-exclusive set of fields within one message."""

    full_name: str
    name: str
    members: tuple[str, ...]
    """Member field names in declaration order."""


# ---------------------------------------------------------------------------
# Fields and messages
# ---------------------------------------------------------------------------

@dataclass(frozen=True, slots=True)
class FieldSchema:
    """One field of a message type."""

    name: str
    kind: FieldKind
    number: int = 0
    repeated: bool = False
    message: MessageSchema | None = None
    """Nested schema when :attr:`kind` is ``MESSAGE``."""

    oneof: OneofRef | None = None
    enum: EnumSchema | None = None


@dataclass(slots=True, eq=False)
class MessageSchema:
    """Ordered field descriptions for one structured type.

    Field order drives prompt order and assembly order.  Field names are
    unique within a schema.
    """

    full_name: str
    name: str
    fields: list[FieldSchema] = field(default_factory=list)
    oneofs: list[OneofGroup] = field(default_factory=list)

    def __post_init__(self) -> None:
        initial, self.fields = self.fields, []
        for f in initial:
            self.add_field(f)

    def __repr__(self) -> str:
        # Recursive schemas would otherwise recurse forever.
        return f"MessageSchema({self.full_name!r}, fields={[f.name for f in self.fields]})"

    def add_field(self, f: FieldSchema) -> None:
        """Append *f*, rejecting a duplicate name."""
        if any(existing.name == f.name for existing in self.fields):
            raise SchemaError(f"duplicate field {f.name!r} in message {self.full_name}")
        self.fields.append(f)

    def field_named(self, name: str) -> FieldSchema:
        for f in self.fields:
            if f.name == name:
                return f
        raise SchemaError(f"message {self.full_name} has no field {name!r}")

    def oneof_named(self, full_name: str) -> OneofGroup:
        for group in self.oneofs:
            if group.full_name == full_name:
                return group
        raise SchemaError(f"message {self.full_name} has no oneof {full_name!r}")

    def oneof_candidates(self, full_name: str) -> list[FieldSchema]:
        """Return the member fields of a oneof group in declaration order."""
        return [self.field_named(name) for name in self.oneof_named(full_name).members]


# ---------------------------------------------------------------------------
# Procedures
# ---------------------------------------------------------------------------

@dataclass(frozen=True, slots=True)
class ProcedureSchema:
    """A unary remote procedure together with its message schemas."""

    package: str
    service: str
    name: str
    request: MessageSchema
    response: MessageSchema

    @property
    def endpoint(self) -> str:
        """Invocation path, ``/{package}.{service}/{procedure}``, unescaped.

        Services declared without a package are addressed as
        ``/{service}/{procedure}``.
        """
        if not self.package:
            return f"/{self.service}/{self.name}"
        return f"/{self.package}.{self.service}/{self.name}"


# ---------------------------------------------------------------------------
# Collected input
# ---------------------------------------------------------------------------

@dataclass(frozen=True, slots=True)
class ScalarInput:
    """Raw text captured for one leaf field."""

    field: FieldSchema
    raw: str


@dataclass(frozen=True, slots=True)
class CompositeInput:
    """Collected children of a nested message field."""

    field: FieldSchema
    children: tuple[CollectedField, ...]


CollectedField = ScalarInput | CompositeInput
"""One entry of a collected input tree."""


@dataclass(frozen=True, slots=True)
class ResolvedChoice:
    """Transient result of resolving a oneof group or an enumeration.

    Exactly one of :attr:`field` (oneof) or :attr:`enum_value` (enum)
    is set.
    """

    label: str
    field: FieldSchema | None = None
    enum_value: EnumValue | None = None
