"""Custom exception hierarchy for protocall.

All exceptions that cross layer boundaries inherit from
:class:`ProtocallError`.  Raw third-party exceptions (grpc, protobuf)
must not propagate beyond the infrastructure layer — they are caught
there and re-raised as a typed subclass defined here.

End of input during interactive collection is signalled with the
built-in :class:`EOFError`; it is a cancellation, not an error, and is
deliberately absent from this hierarchy.

Hierarchy
---------
ProtocallError
├── SchemaError
│   ├── SchemaLoadError
│   └── ProcedureNotFoundError
├── UnsupportedKindError
├── CoercionError
├── ChoiceResolutionError
├── InputCollectionError
├── AssemblyError
├── TransportError
├── ConfigurationError
└── EnvironmentError
"""

from __future__ import annotations


class ProtocallError(Exception):
    """Base exception for all protocall errors.

    Every user-visible error condition maps to a subclass of this
    exception so that the CLI error boundary can render a clean message
    without leaking internal stack traces.
    """

    def __init__(self, message: str, *, hint: str | None = None) -> None:
        super().__init__(message)
        self.hint: str | None = hint
        """Optional actionable guidance shown below the error message."""


# --- Schema ----------------------------------------------------------------

class SchemaError(ProtocallError):
    """Raised when a message or service schema is malformed or ambiguous."""


class SchemaLoadError(SchemaError):
    """Raised when descriptor sources cannot be read or compiled."""


class ProcedureNotFoundError(SchemaError):
    """Raised when the named procedure does not exist in the current service."""


# --- Field values ----------------------------------------------------------

class UnsupportedKindError(ProtocallError):
    """Raised when a field declares a kind this client cannot handle."""

    def __init__(self, kind: object, *, field_name: str | None = None) -> None:
        kind_text = getattr(kind, "value", kind)
        where = f" (field {field_name!r})" if field_name else ""
        super().__init__(f"unsupported kind: {kind_text}{where}")
        self.kind = kind
        self.field_name = field_name


class CoercionError(ProtocallError):
    """Raised when raw text cannot be converted to the field's declared kind."""

    def __init__(self, field_name: str, kind: object, raw: str, *, reason: str | None = None) -> None:
        kind_text = getattr(kind, "value", kind)
        message = f"cannot parse {raw!r} as {kind_text} for field {field_name!r}"
        if reason:
            message = f"{message}: {reason}"
        super().__init__(message)
        self.field_name = field_name
        self.kind = kind
        self.raw = raw


class ChoiceResolutionError(ProtocallError):
    """Raised when a oneof or enum selection cannot be obtained."""


# --- Stage wrappers --------------------------------------------------------

class InputCollectionError(ProtocallError):
    """Raised when collecting input for a request fails."""


class AssemblyError(ProtocallError):
    """Raised when the collected input cannot be assembled into a request."""


# --- Transport -------------------------------------------------------------

class TransportError(ProtocallError):
    """Raised when dialling the server or invoking a procedure fails."""

    def __init__(self, message: str, *, code: str | None = None, hint: str | None = None) -> None:
        super().__init__(message, hint=hint)
        self.code: str | None = code
        """gRPC status code name (e.g. ``"UNAVAILABLE"``) when known."""


# --- Configuration -------------------------------------------------------

class ConfigurationError(ProtocallError):
    """Raised when settings from the environment or flags are invalid."""


# --- Environment / tooling -------------------------------------------------

class EnvironmentError(ProtocallError):
    """Raised when a required runtime dependency is not available."""


def missing_dependency(package: str) -> EnvironmentError:
    """Build the standard error for a missing optional dependency."""
    return EnvironmentError(
        f"{package} is not installed. Install with: pip install {package}",
    )
