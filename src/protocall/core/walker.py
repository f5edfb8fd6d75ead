"""Schema walker — collects raw input for every leaf of a message schema.

Fields are visited in declaration order, depth-first: a nested
message's children are fully collected before its next sibling is
prompted.  Nothing is converted here; the walker only gathers text and
structure for :class:`~protocall.core.assembler.MessageAssembler`.

Cancellation
------------
An :class:`EOFError` raised by the prompt source propagates unchanged
so that the caller can abort the whole call silently.

Recursive messages
------------------
A message field whose type is already being collected further up the
chain is not entered automatically.  The choice source is asked to
``fill`` or ``skip`` it at every such level; a skipped field is left
unset.
"""

from __future__ import annotations

from collections.abc import Sequence

from loguru import logger

from protocall.core.models import (
    CollectedField,
    CompositeInput,
    FieldKind,
    FieldSchema,
    MessageSchema,
    ScalarInput,
)
from protocall.core.protocols import PromptSource
from protocall.core.resolver import ChoiceResolver, ResolutionState
from protocall.exceptions import SchemaError, UnsupportedKindError

DEFAULT_PROMPT_FORMAT = "{name}{ancestor} ({type}) => "
DEFAULT_ANCESTOR_DELIMITER = "::"


def render_label(
    template: str,
    ancestors: Sequence[str],
    delimiter: str,
    field: FieldSchema,
) -> str:
    """Render the prompt label for *field*.

    ``{ancestor}`` becomes ``@`` followed by the ancestor path joined
    with *delimiter* (empty at the top level); ``{name}`` and ``{type}``
    become the field name and kind.
    """
    ancestor = delimiter.join(ancestors)
    if ancestor:
        ancestor = "@" + ancestor
    return (
        template.replace("{ancestor}", ancestor)
        .replace("{name}", field.name)
        .replace("{type}", field.kind.value)
    )


class SchemaWalker:
    """Walks a :class:`MessageSchema` and gathers raw input.

    Parameters
    ----------
    prompts:
        Source of raw text for scalar fields.
    resolver:
        Resolver used for oneof groups and enumerations.
    prompt_format:
        Label template with ``{ancestor}``, ``{name}`` and ``{type}``
        placeholders.
    ancestor_delimiter:
        Separator between ancestor field names in ``{ancestor}``.
    """

    def __init__(
        self,
        prompts: PromptSource,
        resolver: ChoiceResolver,
        *,
        prompt_format: str = DEFAULT_PROMPT_FORMAT,
        ancestor_delimiter: str = DEFAULT_ANCESTOR_DELIMITER,
    ) -> None:
        self._prompts = prompts
        self._resolver = resolver
        self._prompt_format = prompt_format
        self._delimiter = ancestor_delimiter

    def collect(
        self,
        ancestors: Sequence[str],
        schema: MessageSchema,
        accent: int = 0,
        state: ResolutionState | None = None,
    ) -> tuple[CollectedField, ...]:
        """Collect input for every field of *schema*.

        *state* is created fresh when omitted, which starts a new
        collection pass.
        """
        if state is None:
            state = ResolutionState()
        if not state.encloses(schema.full_name):
            state.lineage = (*state.lineage, schema.full_name)

        collected: list[CollectedField] = []
        for f in schema.fields:
            if not f.kind.is_supported:
                raise UnsupportedKindError(f.kind, field_name=f.name)

            if f.oneof is not None:
                choice = self._resolver.resolve_oneof(schema, f.oneof, state)
                if choice is None:
                    continue
                if choice.field is None:
                    raise SchemaError(f"oneof {f.oneof.full_name} resolved without a field")
                f = choice.field
                if not f.kind.is_supported:
                    raise UnsupportedKindError(f.kind, field_name=f.name)

            item = self._collect_field(ancestors, f, accent, state)
            if item is not None:
                collected.append(item)

        logger.debug(
            "collected {} field(s) for {}",
            len(collected),
            schema.full_name,
        )
        return tuple(collected)

    # ------------------------------------------------------------------
    # Per-field handling
    # ------------------------------------------------------------------

    def _collect_field(
        self,
        ancestors: Sequence[str],
        f: FieldSchema,
        accent: int,
        state: ResolutionState,
    ) -> CollectedField | None:
        if f.kind is FieldKind.ENUM:
            if f.enum is None:
                raise SchemaError(f"enum field {f.name!r} has no enumeration attached")
            choice = self._resolver.resolve_enum(f.enum, state)
            return ScalarInput(field=f, raw=choice.label)

        if f.kind is FieldKind.MESSAGE:
            if f.message is None:
                raise SchemaError(f"message field {f.name!r} has no message type attached")
            if state.encloses(f.message.full_name):
                path = self._delimiter.join([*ancestors, f.name])
                if not self._resolver.resolve_recursion(path, f.message):
                    return None
            children = self.collect(
                [*ancestors, f.name],
                f.message,
                accent + 1,
                state.descend(f.message.full_name),
            )
            return CompositeInput(field=f, children=children)

        label = render_label(self._prompt_format, ancestors, self._delimiter, f)
        return ScalarInput(field=f, raw=self._prompts.read(label, accent))
