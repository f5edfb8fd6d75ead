"""Oneof and enumeration resolution.

A oneof group collapses to the single member the user picks; an
enumeration collapses to one named value.  :class:`ResolutionState`
records what has already been resolved so each identity is offered to
the :class:`~protocall.core.protocols.ChoiceSource` at most once:

* enumerations are keyed by full name across the whole collection pass,
  descendants included;
* oneof groups are keyed by full name within one message level, so a
  recursive message resolves its nested oneofs independently;
* the chain of enclosing message types is tracked so a field that would
  re-enter one of them is offered as fill-or-skip instead of being
  entered unconditionally.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from loguru import logger

from protocall.core.models import EnumSchema, EnumValue, MessageSchema, OneofRef, ResolvedChoice
from protocall.core.protocols import ChoiceSource
from protocall.exceptions import ChoiceResolutionError

RECURSION_SKIP = "skip"
RECURSION_FILL = "fill"


@dataclass(slots=True)
class ResolutionState:
    """Resolved identities for one collection pass."""

    enums: dict[str, EnumValue] = field(default_factory=dict)
    oneofs: set[str] = field(default_factory=set)
    lineage: tuple[str, ...] = ()

    def descend(self, into: str | None = None) -> ResolutionState:
        """State for a nested message: shared enums, fresh oneof scope.

        *into* is the full name of the nested message type; it is
        appended to :attr:`lineage`.
        """
        lineage = self.lineage if into is None else (*self.lineage, into)
        return ResolutionState(enums=self.enums, lineage=lineage)

    def encloses(self, full_name: str) -> bool:
        """Whether *full_name* is one of the message types being collected."""
        return full_name in self.lineage


class ChoiceResolver:
    """Resolves oneof groups and enumerations through a choice source."""

    def __init__(self, choices: ChoiceSource) -> None:
        self._choices: ChoiceSource = choices

    def resolve_oneof(
        self,
        schema: MessageSchema,
        ref: OneofRef,
        state: ResolutionState,
    ) -> ResolvedChoice | None:
        """Pick the member of *ref* to populate.

        Returns ``None`` when the group was already resolved at this
        level; the caller skips the field.
        """
        if ref.full_name in state.oneofs:
            return None
        state.oneofs.add(ref.full_name)

        candidates = {f.name: f for f in schema.oneof_candidates(ref.full_name)}
        label = self._select(ref.name, list(candidates))
        logger.debug("oneof {} resolved to {}", ref.full_name, label)
        return ResolvedChoice(label=label, field=candidates[label])

    def resolve_enum(self, enum: EnumSchema, state: ResolutionState) -> ResolvedChoice:
        """Return the value chosen for *enum*, asking only the first time."""
        cached = state.enums.get(enum.full_name)
        if cached is not None:
            return ResolvedChoice(label=cached.name, enum_value=cached)

        by_name = {v.name: v for v in enum.values}
        label = self._select(enum.name, list(by_name))
        value = by_name[label]
        state.enums[enum.full_name] = value
        logger.debug("enum {} resolved to {}", enum.full_name, label)
        return ResolvedChoice(label=label, enum_value=value)

    def resolve_recursion(self, path: str, schema: MessageSchema) -> bool:
        """Ask whether to fill a field that re-enters an enclosing *schema*.

        Returns ``True`` to collect the nested message, ``False`` to leave
        the field unset.  Skipping is offered first.
        """
        label = self._select(f"{path} ({schema.full_name})", [RECURSION_SKIP, RECURSION_FILL])
        logger.debug("recursive field {} of {}: {}", path, schema.full_name, label)
        return label == RECURSION_FILL

    def _select(self, title: str, options: list[str]) -> str:
        if not options:
            raise ChoiceResolutionError(f"{title} has no options to choose from")
        choice = self._choices.select(title, options)
        if choice not in options:
            raise ChoiceResolutionError(
                f"{choice!r} is not a valid choice for {title}",
                hint=f"Expected one of: {', '.join(options)}",
            )
        return choice
