"""Core / service layer — schema walking, coercion and call orchestration.

Rules
-----
* No ``print()`` calls.
* No network or terminal I/O; collaborators arrive through protocols.
* No imports from ``cli`` or ``infra``, and no grpc/protobuf imports.
"""

from protocall.core.assembler import MessageAssembler
from protocall.core.call_service import CallService
from protocall.core.coercion import coerce, coerce_scalar
from protocall.core.models import (
    CompositeInput,
    EnumSchema,
    EnumValue,
    FieldKind,
    FieldSchema,
    MessageSchema,
    OneofGroup,
    OneofRef,
    ProcedureSchema,
    ResolvedChoice,
    ScalarInput,
)
from protocall.core.resolver import ChoiceResolver, ResolutionState
from protocall.core.walker import SchemaWalker, render_label

__all__: list[str] = [
    "CallService",
    "ChoiceResolver",
    "CompositeInput",
    "EnumSchema",
    "EnumValue",
    "FieldKind",
    "FieldSchema",
    "MessageAssembler",
    "MessageSchema",
    "OneofGroup",
    "OneofRef",
    "ProcedureSchema",
    "ResolutionState",
    "ResolvedChoice",
    "ScalarInput",
    "SchemaWalker",
    "coerce",
    "coerce_scalar",
    "render_label",
]
