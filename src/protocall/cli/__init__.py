"""Terminal front end: argparse commands, prompts, tables and exit codes.

Only this package talks to the user.  ``core`` and ``infra`` never
import from it.
"""
