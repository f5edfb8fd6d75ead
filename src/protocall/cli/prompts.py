"""Interactive prompt and choice sources for the CLI layer.

This module is responsible for:

* Reading one line of text per scalar field with prompt_toolkit,
  colouring the label by nesting depth.
* Presenting oneof members, enum values, services and procedures as a
  questionary arrow-key selector.

Both libraries are imported lazily so that ``--help``, ``--version``
and ``doctor`` work without them.
"""

from __future__ import annotations

from collections.abc import Sequence
from typing import Any

from protocall.exceptions import ChoiceResolutionError, missing_dependency

ACCENT_PALETTE: tuple[str, ...] = (
    "ansigreen",
    "ansicyan",
    "ansiyellow",
    "ansimagenta",
    "ansiblue",
    "ansired",
)
"""Label colours; nested message levels advance one slot."""


def _import_questionary() -> Any:
    """Import questionary lazily for interactive selection."""
    try:
        import questionary
    except ModuleNotFoundError as exc:
        raise missing_dependency("questionary") from exc
    return questionary


def _import_prompt_toolkit() -> tuple[Any, Any]:
    """Import ``prompt_toolkit.prompt`` and ``Style`` lazily."""
    try:
        from prompt_toolkit import prompt
        from prompt_toolkit.styles import Style
    except ModuleNotFoundError as exc:
        raise missing_dependency("prompt_toolkit") from exc
    return prompt, Style


def accent_colour(accent: int) -> str:
    """Map an accent slot to a palette colour, wrapping around."""
    return ACCENT_PALETTE[accent % len(ACCENT_PALETTE)]


# ---------------------------------------------------------------------------
# Prompt source
# ---------------------------------------------------------------------------

class TerminalPromptSource:
    """Reads field values from the terminal.

    Ctrl+D raises :class:`EOFError`, which ends the collection pass;
    Ctrl+C raises :class:`KeyboardInterrupt`.
    """

    def read(self, label: str, accent: int) -> str:
        prompt, style_class = _import_prompt_toolkit()
        style = style_class.from_dict({"label": f"{accent_colour(accent)} bold"})
        return prompt([("class:label", label)], style=style)


# ---------------------------------------------------------------------------
# Choice source
# ---------------------------------------------------------------------------

class QuestionaryChoiceSource:
    """Arrow-key selector backed by questionary."""

    def select(self, title: str, options: Sequence[str]) -> str:
        """Return the option the user picks.

        Raises
        ------
        ChoiceResolutionError
            If the user cancels the prompt (Esc / Ctrl+C).
        """
        questionary = _import_questionary()
        selected: str | None = questionary.select(
            title,
            choices=list(options),
            use_arrow_keys=True,
            use_shortcuts=False,
        ).ask()  # Returns None on Ctrl+C / Esc

        if selected is None:
            raise ChoiceResolutionError(
                f"No option selected for {title}.",
                hint="Use arrow keys to pick an option, then press Enter.",
            )
        return selected
