"""Message assembler — turns collected input into a typed message.

Assembly runs in two steps:

1. **Coerce** — every scalar in the tree is converted through the
   coercion table.  Any failure aborts here, before the target message
   is touched.
2. **Apply** — typed values are set on the target and nested messages
   are created, filled and attached.

Both steps follow the order of the collected input tree.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass

from loguru import logger

from protocall.core.coercion import ScalarValue, coerce
from protocall.core.models import CollectedField, CompositeInput, FieldSchema, ScalarInput
from protocall.core.protocols import MessageTarget


@dataclass(frozen=True, slots=True)
class _TypedScalar:
    field: FieldSchema
    value: ScalarValue


@dataclass(frozen=True, slots=True)
class _TypedMessage:
    field: FieldSchema
    children: tuple[_TypedEntry, ...]


_TypedEntry = _TypedScalar | _TypedMessage


class MessageAssembler:
    """Stateless assembler from collected input to a message target."""

    def assemble(self, target: MessageTarget, collected: Sequence[CollectedField]) -> None:
        """Fill *target* from *collected*.

        Raises
        ------
        CoercionError
            If a raw value does not parse for its field's kind.  The
            target is left unmodified.
        UnsupportedKindError
            If a scalar declares a kind outside the coercion table.
        """
        typed = self._coerce_all(collected)
        self._apply(target, typed)

    # ------------------------------------------------------------------
    # Steps
    # ------------------------------------------------------------------

    @classmethod
    def _coerce_all(cls, collected: Sequence[CollectedField]) -> tuple[_TypedEntry, ...]:
        entries: list[_TypedEntry] = []
        for item in collected:
            if isinstance(item, ScalarInput):
                entries.append(_TypedScalar(item.field, coerce(item.field, item.raw)))
            elif isinstance(item, CompositeInput):
                entries.append(_TypedMessage(item.field, cls._coerce_all(item.children)))
            else:
                raise TypeError(f"unexpected collected field: {item!r}")
        return tuple(entries)

    @classmethod
    def _apply(cls, target: MessageTarget, entries: Sequence[_TypedEntry]) -> None:
        for entry in entries:
            if isinstance(entry, _TypedScalar):
                logger.debug("set {} = {!r}", entry.field.name, entry.value)
                target.set_field(entry.field, entry.value)
            else:
                child = target.new_child(entry.field)
                cls._apply(child, entry.children)
                target.attach(entry.field, child)
