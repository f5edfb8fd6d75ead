"""``protocall doctor`` — environment diagnostics command.

Gathers interpreter and library versions and renders a Rich table
summarising whether the runtime environment satisfies protocall's
requirements.  Falls back to plain text when Rich is missing.
"""

from __future__ import annotations

import platform
import sys
from importlib import metadata

from protocall.cli import exit_codes
from protocall.cli.console import console
from protocall.version import __version__

_REQUIRED: tuple[tuple[str, str], ...] = (
    ("grpcio", "grpcio"),
    ("protobuf", "protobuf"),
    ("questionary", "questionary"),
    ("prompt_toolkit", "prompt_toolkit"),
)
"""(label, distribution) pairs needed for ``protocall call``."""

_OPTIONAL: tuple[tuple[str, str], ...] = (
    ("grpcio-tools", "grpcio-tools"),
    ("rich", "rich"),
)
"""Distributions whose absence only degrades some features."""


# ---------------------------------------------------------------------------
# Diagnostic collectors
# ---------------------------------------------------------------------------

def _python_version_check() -> tuple[str, str, str]:
    """Return (label, value, status) for the Python version row."""
    version = platform.python_version()
    ok = sys.version_info[:2] >= (3, 10)
    status = "[green]OK[/green]" if ok else "[red]FAIL (>=3.10 required)[/red]"
    return "Python", version, status


def _package_check(label: str, distribution: str, *, required: bool) -> tuple[str, str, str]:
    """Return (label, value, status) for an installed distribution."""
    try:
        version = metadata.version(distribution)
    except metadata.PackageNotFoundError:
        status = "[red]FAIL[/red]" if required else "[yellow]WARN[/yellow]"
        return label, "NOT INSTALLED", status
    return label, version, "[green]OK[/green]"


def _os_check() -> tuple[str, str, str]:
    """Return (label, value, status) for the OS row."""
    system_raw = platform.system()
    system_display = {"Darwin": "macOS"}.get(system_raw, system_raw)
    value = f"{system_display} {platform.release()} ({platform.machine()})"
    return "OS", value, "[green]OK[/green]"


def _status_plain(status: str) -> str:
    """Convert rich-markup status to plain text."""
    for word in ("FAIL", "WARN", "OK"):
        if word in status:
            return word
    return status


def _print_plain_doctor_table(checks: list[tuple[str, str, str]]) -> None:
    """Render doctor output without Rich."""
    print("\nprotocall doctor", file=sys.stderr)
    print("=" * 56, file=sys.stderr)
    print(f"{'Component':<16} {'Value':<28} {'Status':<8}", file=sys.stderr)
    print("-" * 56, file=sys.stderr)
    for label, value, status in checks:
        print(f"{label:<16} {value:<28} {_status_plain(status):<8}", file=sys.stderr)
    print(file=sys.stderr)


# ---------------------------------------------------------------------------
# Public entry point
# ---------------------------------------------------------------------------

def collect_checks() -> list[tuple[str, str, str]]:
    """Run every diagnostic and return its rows."""
    return [
        ("protocall", __version__, "[green]OK[/green]"),
        _python_version_check(),
        *(_package_check(label, dist, required=True) for label, dist in _REQUIRED),
        *(_package_check(label, dist, required=False) for label, dist in _OPTIONAL),
        _os_check(),
    ]


def run_doctor() -> int:
    """Execute all diagnostic checks and render a summary table.

    Returns
    -------
    int
        :data:`exit_codes.SUCCESS` when all required checks pass,
        :data:`exit_codes.GENERAL_ERROR` otherwise.
    """
    checks = collect_checks()
    has_failure = any("FAIL" in status for _, _, status in checks)

    try:
        from rich.table import Table
    except ModuleNotFoundError:
        _print_plain_doctor_table(checks)
        print("Some checks failed." if has_failure else "All checks passed.", file=sys.stderr)
        return exit_codes.GENERAL_ERROR if has_failure else exit_codes.SUCCESS

    table = Table(
        title="protocall doctor",
        show_header=True,
        header_style="bold cyan",
        border_style="dim",
    )
    table.add_column("Component", style="bold", min_width=12)
    table.add_column("Value", min_width=20)
    table.add_column("Status", justify="center", min_width=8)
    for label, value, status in checks:
        table.add_row(label, value, status)

    console.print()
    console.print(table)
    console.print()

    if has_failure:
        console.print("[bold red]Some checks failed.[/bold red]")
        return exit_codes.GENERAL_ERROR
    console.print("[bold green]All checks passed.[/bold green]")
    return exit_codes.SUCCESS
