"""Infrastructure layer — protobuf descriptors, dynamic messages, gRPC.

Every raw third-party exception is caught here and re-raised as a
:class:`~protocall.exceptions.ProtocallError` subclass.

Rules
-----
* No imports from ``cli``.
* No user-facing output (no ``print()``, no Rich rendering).
* Must expose clean, typed interfaces consumed by the core layer.
"""

from protocall.infra.descriptor_provider import DescriptorSchemaProvider, ServiceInfo
from protocall.infra.grpc_transport import GrpcTransport
from protocall.infra.json_formatter import JsonResponseFormatter
from protocall.infra.proto_message import ProtoMessageFactory, ProtoMessageTarget

__all__: list[str] = [
    "DescriptorSchemaProvider",
    "GrpcTransport",
    "JsonResponseFormatter",
    "ProtoMessageFactory",
    "ProtoMessageTarget",
    "ServiceInfo",
]
