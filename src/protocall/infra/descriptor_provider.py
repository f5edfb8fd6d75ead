"""Protobuf descriptor backed implementation of
:class:`~protocall.core.protocols.SchemaProvider`.

Descriptors are loaded into a private ``DescriptorPool`` from compiled
descriptor sets (``protoc --descriptor_set_out --include_imports``) or
from ``.proto`` sources compiled on the fly with ``grpcio-tools``.
They are then converted into the core's protobuf-free schema model.

All protobuf exceptions are caught here and re-raised as
:class:`~protocall.exceptions.SchemaError` subclasses.
"""

from __future__ import annotations

import importlib.resources
import tempfile
from collections.abc import Iterable, Iterator, Sequence
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from google.protobuf import descriptor_pb2, descriptor_pool
from google.protobuf.descriptor import FieldDescriptor
from google.protobuf.message import DecodeError
from loguru import logger

from protocall.core.models import (
    EnumSchema,
    EnumValue,
    FieldKind,
    FieldSchema,
    MessageSchema,
    OneofGroup,
    OneofRef,
    ProcedureSchema,
)
from protocall.exceptions import (
    ProcedureNotFoundError,
    SchemaError,
    SchemaLoadError,
    UnsupportedKindError,
    missing_dependency,
)

_KINDS: dict[int, FieldKind] = {
    FieldDescriptor.TYPE_DOUBLE: FieldKind.DOUBLE,
    FieldDescriptor.TYPE_FLOAT: FieldKind.FLOAT,
    FieldDescriptor.TYPE_INT64: FieldKind.INT64,
    FieldDescriptor.TYPE_UINT64: FieldKind.UINT64,
    FieldDescriptor.TYPE_INT32: FieldKind.INT32,
    FieldDescriptor.TYPE_FIXED64: FieldKind.FIXED64,
    FieldDescriptor.TYPE_FIXED32: FieldKind.FIXED32,
    FieldDescriptor.TYPE_BOOL: FieldKind.BOOL,
    FieldDescriptor.TYPE_STRING: FieldKind.STRING,
    FieldDescriptor.TYPE_GROUP: FieldKind.GROUP,
    FieldDescriptor.TYPE_MESSAGE: FieldKind.MESSAGE,
    FieldDescriptor.TYPE_BYTES: FieldKind.BYTES,
    FieldDescriptor.TYPE_UINT32: FieldKind.UINT32,
    FieldDescriptor.TYPE_ENUM: FieldKind.ENUM,
    FieldDescriptor.TYPE_SFIXED32: FieldKind.SFIXED32,
    FieldDescriptor.TYPE_SFIXED64: FieldKind.SFIXED64,
    FieldDescriptor.TYPE_SINT32: FieldKind.SINT32,
    FieldDescriptor.TYPE_SINT64: FieldKind.SINT64,
}


@dataclass(frozen=True, slots=True)
class ServiceInfo:
    """A service found in the loaded descriptors."""

    package: str
    name: str
    full_name: str
    procedures: tuple[str, ...]
    """Unary method names in declaration order."""

    streaming: tuple[str, ...] = ()
    """Streaming method names; listed but never callable."""


# ---------------------------------------------------------------------------
# Descriptor set loading
# ---------------------------------------------------------------------------

def read_descriptor_set(path: Path) -> descriptor_pb2.FileDescriptorSet:
    """Parse a serialized ``FileDescriptorSet`` from *path*."""
    try:
        data = path.read_bytes()
    except OSError as exc:
        raise SchemaLoadError(f"cannot read descriptor set {path}: {exc}") from exc
    try:
        return descriptor_pb2.FileDescriptorSet.FromString(data)
    except DecodeError as exc:
        raise SchemaLoadError(
            f"{path} is not a valid descriptor set: {exc}",
            hint="Generate one with: protoc --include_imports --descriptor_set_out=FILE ...",
        ) from exc


def compile_protos(
    protos: Sequence[Path],
    import_paths: Sequence[Path] = (),
) -> descriptor_pb2.FileDescriptorSet:
    """Compile ``.proto`` sources into a descriptor set with grpcio-tools."""
    try:
        from grpc_tools import protoc
    except ModuleNotFoundError as exc:
        raise missing_dependency("grpcio-tools") from exc

    includes = [*import_paths] or sorted({p.resolve().parent for p in protos})
    well_known = importlib.resources.files("grpc_tools") / "_proto"

    with tempfile.TemporaryDirectory(prefix="protocall-") as tmp:
        out = Path(tmp) / "descriptors.pb"
        args = [
            "grpc_tools.protoc",
            *(f"-I{p}" for p in includes),
            f"-I{well_known}",
            "--include_imports",
            f"--descriptor_set_out={out}",
            *(str(p) for p in protos),
        ]
        logger.debug("compiling protos: {}", " ".join(args[1:]))
        if protoc.main(args) != 0:
            raise SchemaLoadError(
                "failed to compile proto files: " + ", ".join(str(p) for p in protos),
                hint="Check the protoc output above and the --import-path options.",
            )
        return read_descriptor_set(out)


def build_pool(descriptor_sets: Iterable[descriptor_pb2.FileDescriptorSet]) -> Any:
    """Add every file of *descriptor_sets* to a fresh descriptor pool.

    Files already present (shared imports across sets) are skipped.
    """
    pool = descriptor_pool.DescriptorPool()
    seen: set[str] = set()
    for fds in descriptor_sets:
        for file_proto in fds.file:
            if file_proto.name in seen:
                continue
            seen.add(file_proto.name)
            try:
                pool.AddSerializedFile(file_proto.SerializeToString())
            except Exception as exc:
                raise SchemaLoadError(f"cannot load {file_proto.name}: {exc}") from exc
    return pool


# ---------------------------------------------------------------------------
# Provider
# ---------------------------------------------------------------------------

class DescriptorSchemaProvider:
    """Concrete :class:`SchemaProvider` over a protobuf descriptor pool.

    The provider keeps a *current service* context; procedures are
    looked up inside it.  When *package* or *service* is omitted the
    only available candidate is used.

    This class satisfies the :class:`~protocall.core.protocols.SchemaProvider`
    protocol structurally — no explicit inheritance required.
    """

    def __init__(
        self,
        pool: Any,
        file_names: Sequence[str],
        *,
        package: str | None = None,
        service: str | None = None,
    ) -> None:
        self.pool = pool
        self._file_names = tuple(file_names)
        self._messages: dict[str, MessageSchema] = {}
        self._optional_fields: dict[str, frozenset[str]] = {}
        self._services = self._discover_services()
        self._current: ServiceInfo | None = None
        if package is not None or service is not None or len(self._services) == 1:
            self.use_service(package, service)

    @classmethod
    def from_sources(
        cls,
        *,
        protos: Sequence[Path] = (),
        protosets: Sequence[Path] = (),
        import_paths: Sequence[Path] = (),
        package: str | None = None,
        service: str | None = None,
    ) -> DescriptorSchemaProvider:
        """Load descriptors from descriptor sets and/or ``.proto`` files."""
        if not protos and not protosets:
            raise SchemaLoadError(
                "no schema sources given",
                hint="Pass --proto FILE or --protoset FILE.",
            )
        sets = [read_descriptor_set(p) for p in protosets]
        if protos:
            sets.append(compile_protos(protos, import_paths))
        pool = build_pool(sets)
        names = list(dict.fromkeys(f.name for fds in sets for f in fds.file))
        logger.debug("loaded {} descriptor file(s)", len(names))
        return cls(pool, names, package=package, service=service)

    # ------------------------------------------------------------------
    # Service context
    # ------------------------------------------------------------------

    @property
    def services(self) -> tuple[ServiceInfo, ...]:
        return self._services

    @property
    def selected_service(self) -> ServiceInfo | None:
        """The current service, or ``None`` while the choice is ambiguous."""
        return self._current

    @property
    def current_service(self) -> ServiceInfo:
        if self._current is None:
            if not self._services:
                raise SchemaError("no service is defined in the loaded descriptors")
            raise SchemaError(
                "no service selected",
                hint="Use --package/--service. Available: "
                + ", ".join(s.full_name for s in self._services),
            )
        return self._current

    def use_service(self, package: str | None, service: str | None) -> ServiceInfo:
        """Select the service that procedure lookups refer to."""
        candidates = [
            s
            for s in self._services
            if (package is None or s.package == package)
            and (service is None or s.name == service or s.full_name == service)
        ]
        if not candidates:
            wanted = ".".join(p for p in (package, service) if p) or "any service"
            raise SchemaError(
                f"service not found: {wanted}",
                hint="Available: " + ", ".join(s.full_name for s in self._services),
            )
        if len(candidates) > 1:
            raise SchemaError(
                "more than one service matches; choose one",
                hint="Use --package/--service. Available: "
                + ", ".join(s.full_name for s in candidates),
            )
        self._current = candidates[0]
        return self._current

    # ------------------------------------------------------------------
    # Protocol methods
    # ------------------------------------------------------------------

    def get_procedure(self, name: str) -> ProcedureSchema:
        """Return the unary procedure *name* of the current service.

        Raises
        ------
        ProcedureNotFoundError
            When the current service has no such unary method.
        """
        return self.procedure_of(self.current_service, name)

    def list_procedures(self) -> list[ProcedureSchema]:
        return self.procedures_of(self.current_service)

    def procedures_of(self, info: ServiceInfo) -> list[ProcedureSchema]:
        """Return every unary procedure of *info*, independent of the current service."""
        return [self.procedure_of(info, name) for name in info.procedures]

    def procedure_of(self, current: ServiceInfo, name: str) -> ProcedureSchema:
        """Return the unary procedure *name* of service *current*."""
        if name in current.streaming:
            raise SchemaError(
                f"{name} is a streaming procedure; only unary calls are supported",
            )
        if name not in current.procedures:
            raise ProcedureNotFoundError(
                f"procedure not found: {name}",
                hint=f"{current.full_name} has: {', '.join(current.procedures) or 'none'}",
            )
        method = self.pool.FindServiceByName(current.full_name).methods_by_name[name]
        return ProcedureSchema(
            package=current.package,
            service=current.name,
            name=name,
            request=self.message_schema(method.input_type),
            response=self.message_schema(method.output_type),
        )

    # ------------------------------------------------------------------
    # Descriptor → schema conversion
    # ------------------------------------------------------------------

    def message_schema(self, descriptor: Any) -> MessageSchema:
        """Convert a message descriptor, memoized so cycles terminate."""
        cached = self._messages.get(descriptor.full_name)
        if cached is not None:
            return cached

        schema = MessageSchema(full_name=descriptor.full_name, name=descriptor.name)
        self._messages[descriptor.full_name] = schema

        for oneof in descriptor.oneofs:
            if self._is_synthetic(oneof):
                continue
            schema.oneofs.append(
                OneofGroup(
                    full_name=oneof.full_name,
                    name=oneof.name,
                    members=tuple(f.name for f in oneof.fields),
                )
            )
        for fd in descriptor.fields:
            schema.add_field(self._field_schema(fd))
        return schema

    def _field_schema(self, fd: Any) -> FieldSchema:
        kind = _KINDS.get(fd.type)
        if kind is None:
            raise UnsupportedKindError(fd.type, field_name=fd.name)

        message: MessageSchema | None = None
        if kind is FieldKind.MESSAGE:
            if fd.message_type.GetOptions().map_entry:
                kind = FieldKind.MAP
            else:
                message = self.message_schema(fd.message_type)

        enum: EnumSchema | None = None
        if kind is FieldKind.ENUM:
            enum = EnumSchema(
                full_name=fd.enum_type.full_name,
                name=fd.enum_type.name,
                values=tuple(EnumValue(v.name, v.number) for v in fd.enum_type.values),
            )

        oneof: OneofRef | None = None
        if fd.containing_oneof is not None and not self._is_synthetic(fd.containing_oneof):
            oneof = OneofRef(fd.containing_oneof.full_name, fd.containing_oneof.name)

        return FieldSchema(
            name=fd.name,
            kind=kind,
            number=fd.number,
            repeated=_is_repeated(fd),
            message=message,
            oneof=oneof,
            enum=enum,
        )

    def _is_synthetic(self, oneof: Any) -> bool:
        """True for the implicit oneof protoc creates for a proto3 ``optional`` field."""
        fields = list(oneof.fields)
        if len(fields) != 1:
            return False
        return fields[0].full_name in self._proto3_optional_fields(oneof.containing_type.file)

    def _proto3_optional_fields(self, file_desc: Any) -> frozenset[str]:
        # The flag lives on FieldDescriptorProto only; read it back from the file.
        cached = self._optional_fields.get(file_desc.name)
        if cached is None:
            proto = descriptor_pb2.FileDescriptorProto()
            file_desc.CopyToProto(proto)
            scope = f"{proto.package}." if proto.package else ""
            cached = frozenset(_proto3_optional_names(proto.message_type, scope))
            self._optional_fields[file_desc.name] = cached
        return cached

    def _discover_services(self) -> tuple[ServiceInfo, ...]:
        found: list[ServiceInfo] = []
        for file_name in self._file_names:
            file_desc = self.pool.FindFileByName(file_name)
            for service in file_desc.services_by_name.values():
                found.append(
                    ServiceInfo(
                        package=file_desc.package,
                        name=service.name,
                        full_name=service.full_name,
                        procedures=tuple(m.name for m in service.methods if _is_unary(m)),
                        streaming=tuple(m.name for m in service.methods if not _is_unary(m)),
                    )
                )
        return tuple(found)


def _proto3_optional_names(messages: Iterable[Any], scope: str) -> Iterator[str]:
    for msg in messages:
        name = scope + msg.name
        for f in msg.field:
            if f.proto3_optional:
                yield f"{name}.{f.name}"
        yield from _proto3_optional_names(msg.nested_type, name + ".")


def _is_repeated(fd: Any) -> bool:
    # Newer protobuf releases expose ``is_repeated`` and deprecate ``label``.
    is_repeated = getattr(fd, "is_repeated", None)
    if is_repeated is not None:
        return bool(is_repeated)
    return fd.label == FieldDescriptor.LABEL_REPEATED


def _is_unary(method: Any) -> bool:
    client = getattr(method, "client_streaming", None)
    server = getattr(method, "server_streaming", None)
    if client is not None and server is not None:
        return not client and not server
    proto = descriptor_pb2.MethodDescriptorProto()
    method.CopyToProto(proto)
    return not proto.client_streaming and not proto.server_streaming
