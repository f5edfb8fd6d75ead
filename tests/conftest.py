"""Shared pytest fixtures and fakes for the protocall test suite.

Guidelines
----------
* No external network access; transport tests use mocks or a loopback server.
* Core tests use the in-memory fakes below instead of a terminal.
* Protobuf tests build descriptors in memory; only the ``.proto``
  compilation test runs ``protoc``.
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from contextlib import contextmanager
from typing import Any, Iterator

import pytest

from protocall.core.models import (
    EnumSchema,
    EnumValue,
    FieldKind,
    FieldSchema,
    MessageSchema,
    OneofGroup,
    OneofRef,
    ProcedureSchema,
)


# ---------------------------------------------------------------------------
# Fakes for the core protocols
# ---------------------------------------------------------------------------

class FakePromptSource:
    """Answers prompts from a fixed list; raises ``EOFError`` when exhausted."""

    def __init__(self, answers: Iterable[str] = ()) -> None:
        self._answers = list(answers)
        self.labels: list[str] = []
        self.accents: list[int] = []

    def read(self, label: str, accent: int) -> str:
        self.labels.append(label)
        self.accents.append(accent)
        if not self._answers:
            raise EOFError
        return self._answers.pop(0)


class FakeChoiceSource:
    """Picks by title from a mapping, falling back to the first option."""

    def __init__(self, picks: dict[str, str] | None = None) -> None:
        self._picks = dict(picks or {})
        self.calls: list[tuple[str, tuple[str, ...]]] = []

    def select(self, title: str, options: Sequence[str]) -> str:
        self.calls.append((title, tuple(options)))
        return self._picks.get(title, options[0] if options else "")


class FakeTarget:
    """Dict-backed message target recording every mutation."""

    def __init__(self) -> None:
        self.values: dict[str, Any] = {}

    def set_field(self, field: FieldSchema, value: Any) -> None:
        self.values[field.name] = value

    def new_child(self, field: FieldSchema) -> FakeTarget:
        return FakeTarget()

    def attach(self, field: FieldSchema, child: FakeTarget) -> None:
        self.values[field.name] = child.values


class FakeMessageFactory:
    def __init__(self) -> None:
        self.created: list[FakeTarget] = []

    def new_message(self, schema: MessageSchema) -> FakeTarget:
        target = FakeTarget()
        self.created.append(target)
        return target


class FakeTransport:
    """Records dial/invoke calls and echoes the request values."""

    def __init__(self, *, error: Exception | None = None) -> None:
        self.error = error
        self.dialled: list[tuple[str, int]] = []
        self.released = 0
        self.endpoints: list[str] = []

    @contextmanager
    def dial(self, host: str, port: int) -> Iterator[str]:
        self.dialled.append((host, port))
        try:
            yield "conn"
        finally:
            self.released += 1

    def invoke(self, connection: Any, endpoint: str, request: FakeTarget, response_schema: Any) -> Any:
        self.endpoints.append(endpoint)
        if self.error is not None:
            raise self.error
        return request.values


class FakeFormatter:
    def format(self, response: Any) -> str:
        return repr(response)


class FakeSchemaProvider:
    def __init__(self, *procedures: ProcedureSchema) -> None:
        self._procedures = {p.name: p for p in procedures}

    def get_procedure(self, name: str) -> ProcedureSchema:
        from protocall.exceptions import ProcedureNotFoundError

        try:
            return self._procedures[name]
        except KeyError:
            raise ProcedureNotFoundError(f"procedure not found: {name}") from None

    def list_procedures(self) -> list[ProcedureSchema]:
        return list(self._procedures.values())


# ---------------------------------------------------------------------------
# Schema factories
# ---------------------------------------------------------------------------

def scalar(name: str, kind: FieldKind = FieldKind.STRING, **kwargs: Any) -> FieldSchema:
    return FieldSchema(name=name, kind=kind, **kwargs)


def message(full_name: str, *fields: FieldSchema, oneofs: Sequence[OneofGroup] = ()) -> MessageSchema:
    return MessageSchema(
        full_name=full_name,
        name=full_name.rsplit(".", 1)[-1],
        fields=list(fields),
        oneofs=list(oneofs),
    )


def nested(name: str, schema: MessageSchema, **kwargs: Any) -> FieldSchema:
    return FieldSchema(name=name, kind=FieldKind.MESSAGE, message=schema, **kwargs)


COLOR = EnumSchema(
    full_name="demo.Color",
    name="Color",
    values=(EnumValue("RED", 0), EnumValue("GREEN", 1), EnumValue("BLUE", 2)),
)


def color_field(name: str) -> FieldSchema:
    return FieldSchema(name=name, kind=FieldKind.ENUM, enum=COLOR)


def oneof_message(full_name: str = "demo.Contact") -> MessageSchema:
    """Message with a two-member oneof ``channel`` between two plain fields."""
    ref = OneofRef(f"{full_name}.channel", "channel")
    return message(
        full_name,
        scalar("name"),
        scalar("email", oneof=ref),
        scalar("phone", oneof=ref),
        scalar("note"),
        oneofs=[OneofGroup(ref.full_name, ref.name, ("email", "phone"))],
    )


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------

@pytest.fixture()
def prompts() -> FakePromptSource:
    return FakePromptSource()


@pytest.fixture()
def choices() -> FakeChoiceSource:
    return FakeChoiceSource()


@pytest.fixture()
def greet_procedure() -> ProcedureSchema:
    """``demo.Greeter/Greet`` taking ``{name: string, meta: {count: int32}}``."""
    meta = message("demo.Meta", scalar("count", FieldKind.INT32))
    request = message("demo.GreetRequest", scalar("name"), nested("meta", meta))
    response = message("demo.GreetReply", scalar("message"))
    return ProcedureSchema("demo", "Greeter", "Greet", request, response)


# ---------------------------------------------------------------------------
# In-memory protobuf descriptors
# ---------------------------------------------------------------------------

def _field(name: str, number: int, ftype: int, *, type_name: str = "", repeated: bool = False, **extra: Any) -> Any:
    from google.protobuf import descriptor_pb2

    fdp = descriptor_pb2.FieldDescriptorProto
    proto = fdp(
        name=name,
        number=number,
        type=ftype,
        label=fdp.LABEL_REPEATED if repeated else fdp.LABEL_OPTIONAL,
        **extra,
    )
    if type_name:
        proto.type_name = type_name
    return proto


def demo_file_proto() -> Any:
    """``demo.proto``: a ``Greeter`` service exercising every schema feature.

    * ``GreetRequest`` — scalars, a nested message, an enum, a oneof,
      repeated fields and a proto3 ``optional`` field.
    * ``Labeled`` — a map field.
    * ``Node`` — a self-referencing message.
    """
    from google.protobuf import descriptor_pb2

    fdp = descriptor_pb2.FieldDescriptorProto
    file_proto = descriptor_pb2.FileDescriptorProto(name="demo.proto", package="demo", syntax="proto3")

    color = file_proto.enum_type.add(name="Color")
    color.value.add(name="RED", number=0)
    color.value.add(name="GREEN", number=1)

    meta = file_proto.message_type.add(name="Meta")
    meta.field.append(_field("count", 1, fdp.TYPE_INT32))

    request = file_proto.message_type.add(name="GreetRequest")
    request.field.extend(
        [
            _field("name", 1, fdp.TYPE_STRING),
            _field("meta", 2, fdp.TYPE_MESSAGE, type_name=".demo.Meta"),
            _field("color", 3, fdp.TYPE_ENUM, type_name=".demo.Color"),
            _field("email", 4, fdp.TYPE_STRING, oneof_index=0),
            _field("phone", 5, fdp.TYPE_STRING, oneof_index=0),
            _field("tags", 6, fdp.TYPE_STRING, repeated=True),
            _field("history", 7, fdp.TYPE_MESSAGE, type_name=".demo.Meta", repeated=True),
            _field("nick", 8, fdp.TYPE_STRING, oneof_index=1, proto3_optional=True),
            _field("weight", 9, fdp.TYPE_FLOAT),
            _field("payload", 10, fdp.TYPE_BYTES),
        ]
    )
    request.oneof_decl.add(name="contact")
    request.oneof_decl.add(name="_nick")

    reply = file_proto.message_type.add(name="GreetReply")
    reply.field.extend(
        [
            _field("message", 1, fdp.TYPE_STRING),
            _field("reply_count", 2, fdp.TYPE_INT32),
        ]
    )

    labeled = file_proto.message_type.add(name="Labeled")
    entry = labeled.nested_type.add(name="LabelsEntry")
    entry.field.extend([_field("key", 1, fdp.TYPE_STRING), _field("value", 2, fdp.TYPE_STRING)])
    entry.options.map_entry = True
    labeled.field.append(
        _field("labels", 1, fdp.TYPE_MESSAGE, type_name=".demo.Labeled.LabelsEntry", repeated=True)
    )

    node = file_proto.message_type.add(name="Node")
    node.field.extend(
        [
            _field("value", 1, fdp.TYPE_STRING),
            _field("next", 2, fdp.TYPE_MESSAGE, type_name=".demo.Node"),
        ]
    )

    service = file_proto.service.add(name="Greeter")
    service.method.add(name="Greet", input_type=".demo.GreetRequest", output_type=".demo.GreetReply")
    service.method.add(name="Walk", input_type=".demo.Node", output_type=".demo.Node")
    service.method.add(
        name="Chat",
        input_type=".demo.GreetRequest",
        output_type=".demo.GreetReply",
        client_streaming=True,
        server_streaming=True,
    )
    return file_proto


def bare_file_proto() -> Any:
    """``bare.proto``: an ``Echo`` service declared without a package."""
    from google.protobuf import descriptor_pb2

    fdp = descriptor_pb2.FieldDescriptorProto
    file_proto = descriptor_pb2.FileDescriptorProto(name="bare.proto", syntax="proto3")
    msg = file_proto.message_type.add(name="EchoMessage")
    msg.field.append(_field("text", 1, fdp.TYPE_STRING))
    service = file_proto.service.add(name="Echo")
    service.method.add(name="Say", input_type=".EchoMessage", output_type=".EchoMessage")
    return file_proto


def descriptor_set(*files: Any) -> Any:
    from google.protobuf import descriptor_pb2

    return descriptor_pb2.FileDescriptorSet(file=list(files))


@pytest.fixture()
def demo_pool() -> Any:
    from protocall.infra.descriptor_provider import build_pool

    return build_pool([descriptor_set(demo_file_proto())])


@pytest.fixture()
def demo_provider(demo_pool: Any) -> Any:
    from protocall.infra.descriptor_provider import DescriptorSchemaProvider

    return DescriptorSchemaProvider(demo_pool, ["demo.proto"])
