"""Protocols (interfaces) consumed by the core layer.

These define the contracts that infrastructure and CLI adapters must
satisfy.  Core code depends ONLY on these protocols — never on grpc,
protobuf, or terminal libraries — preserving the dependency inversion
principle.
"""

from __future__ import annotations

from collections.abc import Sequence
from contextlib import AbstractContextManager
from typing import Any, Protocol

from protocall.core.models import FieldSchema, MessageSchema, ProcedureSchema


class SchemaProvider(Protocol):
    """Contract for schema lookup backends."""

    def get_procedure(self, name: str) -> ProcedureSchema:
        """Return the named procedure of the current service.

        Raises
        ------
        ProcedureNotFoundError
            When no procedure called *name* exists.
        """
        ...  # pragma: no cover

    def list_procedures(self) -> list[ProcedureSchema]:
        """Return every unary procedure of the current service."""
        ...  # pragma: no cover


class PromptSource(Protocol):
    """Contract for reading one line of raw text from a human."""

    def read(self, label: str, accent: int) -> str:
        """Prompt with *label* rendered in colour slot *accent*.

        Raises
        ------
        EOFError
            When the user ends input; the whole collection pass aborts.
        """
        ...  # pragma: no cover


class ChoiceSource(Protocol):
    """Contract for picking one option from a list."""

    def select(self, title: str, options: Sequence[str]) -> str:
        """Return one element of *options*.

        Raises
        ------
        ChoiceResolutionError
            When no selection is made.
        """
        ...  # pragma: no cover


class MessageTarget(Protocol):
    """A message instance being filled in by the assembler."""

    def set_field(self, field: FieldSchema, value: Any) -> None:
        """Set a scalar or enum value on *field*."""
        ...  # pragma: no cover

    def new_child(self, field: FieldSchema) -> MessageTarget:
        """Create a fresh, detached instance of *field*'s message type."""
        ...  # pragma: no cover

    def attach(self, field: FieldSchema, child: MessageTarget) -> None:
        """Store a child built by :meth:`new_child` under *field*."""
        ...  # pragma: no cover


class MessageFactory(Protocol):
    """Creates empty message instances for a schema."""

    def new_message(self, schema: MessageSchema) -> MessageTarget:
        ...  # pragma: no cover


class Transport(Protocol):
    """Contract for the RPC transport.

    Implementations map every backend exception to
    :class:`~protocall.exceptions.TransportError`.
    """

    def dial(self, host: str, port: int) -> AbstractContextManager[Any]:
        """Open a connection; closing the context releases it."""
        ...  # pragma: no cover

    def invoke(
        self,
        connection: Any,
        endpoint: str,
        request: MessageTarget,
        response_schema: MessageSchema,
    ) -> Any:
        """Invoke *endpoint* with *request* and return the response instance."""
        ...  # pragma: no cover


class ResponseFormatter(Protocol):
    """Renders a response instance as indented structured text."""

    def format(self, response: Any) -> str:
        ...  # pragma: no cover
