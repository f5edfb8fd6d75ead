"""Process exit codes returned by :func:`protocall.cli.app.main`."""

from __future__ import annotations

SUCCESS: int = 0
"""The command finished, including a call the user ended with Ctrl+D."""

GENERAL_ERROR: int = 1
"""A :class:`~protocall.exceptions.ProtocallError` was reported to the user."""

UNEXPECTED_ERROR: int = 2
"""Any other exception reached the error boundary (argparse uses 2 as well)."""

KEYBOARD_INTERRUPT: int = 130
"""Ctrl+C: 128 + SIGINT."""
