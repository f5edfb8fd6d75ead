"""``protocall list`` — table of services and their procedures."""

from __future__ import annotations

import sys
from collections.abc import Sequence

from protocall.cli.console import console
from protocall.infra.descriptor_provider import DescriptorSchemaProvider, ServiceInfo


def _rows(provider: DescriptorSchemaProvider, services: Sequence[ServiceInfo]) -> list[tuple[str, str, str, str]]:
    """Return (service, procedure, request, response) rows."""
    rows: list[tuple[str, str, str, str]] = []
    for info in services:
        for procedure in provider.procedures_of(info):
            rows.append(
                (
                    info.full_name,
                    procedure.name,
                    procedure.request.full_name,
                    procedure.response.full_name,
                )
            )
        for name in info.streaming:
            rows.append((info.full_name, name, "(streaming)", "(unsupported)"))
    return rows


def _print_plain_table(rows: list[tuple[str, str, str, str]]) -> None:
    """Render the listing without Rich."""
    print(f"{'Service':<32} {'Procedure':<24} {'Request':<32} Response", file=sys.stderr)
    print("-" * 100, file=sys.stderr)
    for service, name, request, response in rows:
        print(f"{service:<32} {name:<24} {request:<32} {response}", file=sys.stderr)


def list_procedures(provider: DescriptorSchemaProvider) -> list[tuple[str, str, str, str]]:
    """Render every procedure of every loaded service."""
    rows = _rows(provider, provider.services)

    try:
        from rich.table import Table
    except ModuleNotFoundError:
        _print_plain_table(rows)
        return rows

    table = Table(
        title="Procedures",
        show_header=True,
        header_style="bold magenta",
        border_style="dim",
    )
    table.add_column("Service", style="bold")
    table.add_column("Procedure")
    table.add_column("Request", style="cyan")
    table.add_column("Response", style="green")
    for row in rows:
        table.add_row(*row)

    console.print(table)
    return rows
