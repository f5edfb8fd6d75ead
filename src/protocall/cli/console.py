"""CLI console helpers with optional Rich support.

Diagnostics go to stderr through Rich when it is installed; response
output is written to stdout by the caller and never passes through
Rich, so it stays byte-exact.
"""

from __future__ import annotations

import sys
from typing import Any

from protocall.exceptions import EnvironmentError, missing_dependency


def _load_rich_console_class() -> type[Any]:
    """Return ``rich.console.Console`` class or raise ``EnvironmentError``."""
    try:
        from rich.console import Console
    except ModuleNotFoundError as exc:
        raise missing_dependency("rich") from exc
    return Console


def get_rich_console() -> Any:
    """Create a Rich console instance targeting stderr."""
    console_class = _load_rich_console_class()
    return console_class(stderr=True)


class _ConsoleProxy:
    """Minimal ``print``-compatible proxy with plain-stderr fallback."""

    def print(self, *objects: object) -> None:
        try:
            rich_console = get_rich_console()
        except EnvironmentError:
            print(*objects, file=sys.stderr)
            return
        rich_console.print(*objects)


console = _ConsoleProxy()
