"""grpc backed implementation of :class:`~protocall.core.protocols.Transport`.

This module is the **only** place in the codebase that imports
``grpc``.  Every ``grpc.RpcError`` is caught here and re-raised as
:class:`~protocall.exceptions.TransportError` carrying the status code
name.
"""

from __future__ import annotations

from collections.abc import Iterator
from contextlib import contextmanager
from typing import Any

import grpc
from loguru import logger

from protocall.core.models import MessageSchema
from protocall.exceptions import TransportError
from protocall.infra.proto_message import ProtoMessageFactory, ProtoMessageTarget


class GrpcTransport:
    """Concrete :class:`Transport` over an insecure gRPC channel.

    Parameters
    ----------
    messages:
        Factory used to resolve response message classes.
    timeout:
        Optional per-call deadline in seconds.  Also bounds the wait for
        the channel to become ready when dialling.
    """

    def __init__(self, messages: ProtoMessageFactory, *, timeout: float | None = None) -> None:
        self._messages = messages
        self._timeout = timeout

    @contextmanager
    def dial(self, host: str, port: int) -> Iterator[grpc.Channel]:
        """Open a channel to ``host:port``; it is closed when the context exits."""
        target = f"{host}:{port}"
        logger.debug("dialling {}", target)
        with grpc.insecure_channel(target) as channel:
            if self._timeout is not None:
                try:
                    grpc.channel_ready_future(channel).result(timeout=self._timeout)
                except grpc.FutureTimeoutError as exc:
                    raise TransportError(
                        f"cannot connect to {target} within {self._timeout}s",
                        code="UNAVAILABLE",
                        hint="Check --host/--port and that the server is running.",
                    ) from exc
            yield channel

    def invoke(
        self,
        connection: grpc.Channel,
        endpoint: str,
        request: ProtoMessageTarget,
        response_schema: MessageSchema,
    ) -> Any:
        """Invoke *endpoint* with *request* and return the response message.

        Raises
        ------
        TransportError
            For any RPC failure, including errors reported by the server.
        """
        response_class = self._messages.message_class(response_schema)
        call = connection.unary_unary(
            endpoint,
            request_serializer=lambda message: message.SerializeToString(),
            response_deserializer=response_class.FromString,
        )
        logger.debug("invoking {}", endpoint)
        try:
            return call(request.message, timeout=self._timeout)
        except grpc.RpcError as exc:
            raise _map_rpc_error(endpoint, exc) from exc


def _map_rpc_error(endpoint: str, exc: grpc.RpcError) -> TransportError:
    code_fn = getattr(exc, "code", None)
    details_fn = getattr(exc, "details", None)
    code = code_fn() if callable(code_fn) else None
    details = details_fn() if callable(details_fn) else None
    code_name = code.name if code is not None else None

    hint = None
    if code is grpc.StatusCode.UNAVAILABLE:
        hint = "Check --host/--port and that the server is running."
    elif code is grpc.StatusCode.UNIMPLEMENTED:
        hint = "The server does not implement this procedure; check --package/--service."
    return TransportError(
        f"{endpoint} failed: {code_name or 'UNKNOWN'}: {details or exc}",
        code=code_name,
        hint=hint,
    )
