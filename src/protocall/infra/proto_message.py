"""Dynamic protobuf messages behind the core's message protocols.

Message classes are generated at runtime from the descriptor pool, so
no ``*_pb2`` module is ever needed.  Values protobuf rejects (wrong
type, out of range) are re-raised as
:class:`~protocall.exceptions.CoercionError`.
"""

from __future__ import annotations

from typing import Any

from google.protobuf import message_factory

from protocall.core.models import FieldSchema, MessageSchema
from protocall.exceptions import CoercionError, SchemaError


class ProtoMessageTarget:
    """Wraps a protobuf message so the assembler can fill it in.

    Repeated scalar fields receive the value as a single element;
    repeated message fields receive one added element.
    """

    def __init__(self, message: Any) -> None:
        self.message = message

    def set_field(self, field: FieldSchema, value: Any) -> None:
        try:
            if field.repeated:
                getattr(self.message, field.name).append(value)
            else:
                setattr(self.message, field.name, value)
        except (TypeError, ValueError) as exc:
            raise CoercionError(field.name, field.kind, str(value), reason=str(exc)) from exc

    def new_child(self, field: FieldSchema) -> ProtoMessageTarget:
        fd = self.message.DESCRIPTOR.fields_by_name.get(field.name)
        if fd is None or fd.message_type is None:
            raise SchemaError(
                f"{self.message.DESCRIPTOR.full_name} has no message field {field.name!r}",
            )
        return ProtoMessageTarget(message_factory.GetMessageClass(fd.message_type)())

    def attach(self, field: FieldSchema, child: ProtoMessageTarget) -> None:
        if field.repeated:
            getattr(self.message, field.name).add().MergeFrom(child.message)
            return
        slot = getattr(self.message, field.name)
        # Marks presence (and the oneof case) even for an empty child.
        slot.SetInParent()
        slot.MergeFrom(child.message)


class ProtoMessageFactory:
    """Creates empty dynamic messages from a descriptor pool."""

    def __init__(self, pool: Any) -> None:
        self._pool = pool

    def message_class(self, schema: MessageSchema) -> Any:
        try:
            descriptor = self._pool.FindMessageTypeByName(schema.full_name)
        except KeyError as exc:
            raise SchemaError(f"message type not found: {schema.full_name}") from exc
        return message_factory.GetMessageClass(descriptor)

    def new_message(self, schema: MessageSchema) -> ProtoMessageTarget:
        return ProtoMessageTarget(self.message_class(schema)())
