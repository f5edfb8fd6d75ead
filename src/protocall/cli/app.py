"""CLI application entry point and command routing for protocall.

This module is the **sole error boundary** for the entire application.
It catches :class:`~protocall.exceptions.ProtocallError`,
``KeyboardInterrupt``, and any unexpected ``Exception``, rendering
user-friendly messages and returning well-defined exit codes.

Architecture notes
------------------
* No business logic lives here — work is delegated to the core and
  infrastructure layers.
* Diagnostics go to stderr; only the response JSON is written to stdout.
* This module is the only place that translates between the domain world
  and the OS process exit code.
"""

from __future__ import annotations

import argparse
import sys
from pathlib import Path
from typing import TYPE_CHECKING

from loguru import logger

from protocall.cli import exit_codes
from protocall.cli.console import console
from protocall.config import Settings, get_settings
from protocall.exceptions import ProcedureNotFoundError, ProtocallError
from protocall.logging_utils import configure_logging
from protocall.version import __version__

if TYPE_CHECKING:
    from protocall.infra.descriptor_provider import DescriptorSchemaProvider


# ---------------------------------------------------------------------------
# Argument parser
# ---------------------------------------------------------------------------

def _add_schema_options(parser: argparse.ArgumentParser) -> None:
    group = parser.add_argument_group("schema")
    group.add_argument(
        "--proto",
        action="append",
        type=Path,
        default=[],
        metavar="FILE",
        help="A .proto file to load (repeatable; requires grpcio-tools).",
    )
    group.add_argument(
        "--protoset",
        action="append",
        type=Path,
        default=[],
        metavar="FILE",
        help="A compiled FileDescriptorSet to load (repeatable).",
    )
    group.add_argument(
        "-I",
        "--import-path",
        action="append",
        type=Path,
        default=[],
        metavar="DIR",
        help="Import path for --proto files (repeatable).",
    )
    group.add_argument("--package", default=None, help="Package of the target service.")
    group.add_argument("--service", default=None, help="Name of the target service.")


def _add_server_options(parser: argparse.ArgumentParser) -> None:
    group = parser.add_argument_group("server")
    group.add_argument("--host", default=None, help="Server host (default 127.0.0.1).")
    group.add_argument("--port", type=int, default=None, help="Server port (default 50051).")
    group.add_argument(
        "--timeout",
        type=float,
        default=None,
        help="Call deadline in seconds (default: none).",
    )


def _build_parser() -> argparse.ArgumentParser:
    """Construct the top-level argument parser.

    Commands:
    * ``protocall call [RPC]``  — interactive unary call
    * ``protocall list``        — show services and procedures
    * ``protocall doctor``      — environment diagnostics
    * ``protocall --version``
    """
    parser = argparse.ArgumentParser(
        prog="protocall",
        description="Interactive, schema-driven gRPC client.",
    )
    parser.add_argument(
        "-V",
        "--version",
        action="version",
        version=f"%(prog)s {__version__}",
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Log debug information to stderr.",
    )
    commands = parser.add_subparsers(dest="command", metavar="COMMAND")

    call = commands.add_parser("call", help="Fill in a request interactively and call a procedure.")
    call.add_argument("rpc", nargs="?", default=None, help="Procedure name (prompted when omitted).")
    _add_schema_options(call)
    _add_server_options(call)

    listing = commands.add_parser("list", help="List services and their procedures.")
    _add_schema_options(listing)

    commands.add_parser("doctor", help="Check the runtime environment.")
    return parser


# ---------------------------------------------------------------------------
# Command dispatch
# ---------------------------------------------------------------------------

def _load_provider(args: argparse.Namespace, settings: Settings) -> DescriptorSchemaProvider:
    from protocall.infra.descriptor_provider import DescriptorSchemaProvider

    return DescriptorSchemaProvider.from_sources(
        protos=args.proto,
        protosets=args.protoset,
        import_paths=args.import_path,
        package=settings.package,
        service=settings.service,
    )


def _handle_call(args: argparse.Namespace, settings: Settings) -> int:
    """Dispatch one interactive call.

    Flow:
    1. Load descriptors and settle the service context.
    2. Pick the procedure (argument or interactive selection).
    3. Wire infra adapters into the core call service and invoke.
    4. Write the response to stdout.
    """
    from protocall.cli.prompts import QuestionaryChoiceSource, TerminalPromptSource
    from protocall.core.call_service import CallService
    from protocall.core.resolver import ChoiceResolver
    from protocall.core.walker import SchemaWalker
    from protocall.infra.grpc_transport import GrpcTransport
    from protocall.infra.json_formatter import JsonResponseFormatter
    from protocall.infra.proto_message import ProtoMessageFactory

    provider = _load_provider(args, settings)
    choices = QuestionaryChoiceSource()

    if provider.selected_service is None and provider.services:
        by_name = {s.full_name: s for s in provider.services}
        picked = by_name[choices.select("Service", list(by_name))]
        provider.use_service(picked.package, picked.name)

    rpc: str | None = args.rpc
    if rpc is None:
        current = provider.current_service
        if not current.procedures:
            raise ProcedureNotFoundError(
                f"{current.full_name} has no unary procedures",
                hint="Streaming methods are listed by `protocall list` but cannot be called.",
            )
        rpc = choices.select("Procedure", current.procedures)

    messages = ProtoMessageFactory(provider.pool)
    walker = SchemaWalker(
        TerminalPromptSource(),
        ChoiceResolver(choices),
        prompt_format=settings.input_prompt_format,
        ancestor_delimiter=settings.ancestor_delimiter,
    )
    service = CallService(
        provider,
        walker,
        messages,
        GrpcTransport(messages, timeout=settings.timeout),
        JsonResponseFormatter(preserve_field_names=settings.preserve_field_names),
        host=settings.host,
        port=settings.port,
    )

    output = service.invoke(rpc)
    sys.stdout.write(output)
    sys.stdout.flush()
    return exit_codes.SUCCESS


def _handle_list(args: argparse.Namespace, settings: Settings) -> int:
    """Dispatch the ``list`` command."""
    from protocall.cli.listing import list_procedures

    list_procedures(_load_provider(args, settings))
    return exit_codes.SUCCESS


def _handle_doctor() -> int:
    """Dispatch the ``doctor`` diagnostics command."""
    from protocall.cli.doctor import run_doctor

    return run_doctor()


# ---------------------------------------------------------------------------
# Main entry point
# ---------------------------------------------------------------------------

def main(argv: list[str] | None = None) -> int:
    """Run the protocall CLI.

    Parameters
    ----------
    argv:
        Explicit argument list.  When ``None`` (default), ``sys.argv[1:]``
        is used.  Accepting *argv* enables deterministic testing without
        monkeypatching.

    Returns
    -------
    int
        OS process exit code.
    """
    parser = _build_parser()
    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        return exit_codes.SUCCESS

    if args.command == "doctor":
        return _handle_doctor()

    settings = get_settings(
        host=getattr(args, "host", None),
        port=getattr(args, "port", None),
        timeout=getattr(args, "timeout", None),
        package=args.package,
        service=args.service,
    )
    configure_logging("DEBUG" if args.verbose else settings.log_level)
    logger.debug("settings: {}", settings)

    if args.command == "list":
        return _handle_list(args, settings)
    return _handle_call(args, settings)


# ---------------------------------------------------------------------------
# Script-level error boundary
# ---------------------------------------------------------------------------

def cli() -> None:
    """Top-level error boundary invoked by the console-script entry point.

    This function wraps :func:`main` and guarantees the process never
    exits with a raw stack trace during normal usage.
    """
    try:
        code = main()
        sys.exit(code)
    except ProtocallError as exc:
        console.print(f"[bold red]Error:[/bold red] {exc}")
        if exc.hint:
            console.print(f"[yellow]Hint:[/yellow] {exc.hint}")
        sys.exit(exit_codes.GENERAL_ERROR)
    except KeyboardInterrupt:
        console.print("\n[yellow]Aborted by user.[/yellow]")
        sys.exit(exit_codes.KEYBOARD_INTERRUPT)
    except Exception as exc:  # noqa: BLE001
        console.print(
            "[bold red]Unexpected error.[/bold red] "
            "Please report this issue.\n"
            f"  {type(exc).__name__}: {exc}"
        )
        sys.exit(exit_codes.UNEXPECTED_ERROR)
