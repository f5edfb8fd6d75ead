"""Core call service — orchestrates one interactive unary call.

Flow
----
1. Resolve the procedure through the
   :class:`~protocall.core.protocols.SchemaProvider`.
2. Walk the request schema, collecting raw input.
3. Assemble the request message.
4. Dial the server, invoke the endpoint, release the connection.
5. Format the response.

Errors raised while walking or assembling are wrapped with the stage
that failed; transport, formatting and choice errors pass through
unchanged.  End of input (:class:`EOFError`) during collection aborts
the call and yields an empty result.
"""

from __future__ import annotations

from loguru import logger

from protocall.core.assembler import MessageAssembler
from protocall.core.protocols import MessageFactory, ResponseFormatter, SchemaProvider, Transport
from protocall.core.walker import SchemaWalker
from protocall.exceptions import (
    AssemblyError,
    ChoiceResolutionError,
    InputCollectionError,
    ProtocallError,
)


class CallService:
    """Drives the walk → assemble → invoke → format pipeline.

    Parameters
    ----------
    schemas:
        Procedure lookup.
    walker:
        Collects raw input for the request schema.
    messages:
        Creates empty request instances.
    transport:
        Dials the server and invokes endpoints.
    formatter:
        Renders the response instance.
    host, port:
        Address of the remote server.
    """

    def __init__(
        self,
        schemas: SchemaProvider,
        walker: SchemaWalker,
        messages: MessageFactory,
        transport: Transport,
        formatter: ResponseFormatter,
        *,
        host: str,
        port: int,
        assembler: MessageAssembler | None = None,
    ) -> None:
        self._schemas = schemas
        self._walker = walker
        self._messages = messages
        self._transport = transport
        self._formatter = formatter
        self._assembler = assembler or MessageAssembler()
        self._host = host
        self._port = port

    def invoke(self, procedure_name: str) -> str:
        """Call *procedure_name* interactively and return the formatted response.

        Returns an empty string when the user ends input during
        collection.

        Raises
        ------
        ProcedureNotFoundError
            If the procedure does not exist.
        InputCollectionError
            If collecting input fails.
        AssemblyError
            If the collected input cannot be assembled.
        ChoiceResolutionError
            If a oneof or enum selection is not made.
        TransportError
            If dialling or invoking fails.
        """
        procedure = self._schemas.get_procedure(procedure_name)
        logger.debug("calling {}", procedure.endpoint)

        try:
            collected = self._walker.collect([], procedure.request)
        except EOFError:
            logger.debug("input ended; call to {} aborted", procedure.endpoint)
            return ""
        except ChoiceResolutionError:
            raise
        except ProtocallError as exc:
            raise InputCollectionError(f"failed to read inputs: {exc}", hint=exc.hint) from exc

        request = self._messages.new_message(procedure.request)
        try:
            self._assembler.assemble(request, collected)
        except ProtocallError as exc:
            raise AssemblyError(f"failed to assemble request: {exc}", hint=exc.hint) from exc

        with self._transport.dial(self._host, self._port) as connection:
            response = self._transport.invoke(
                connection,
                procedure.endpoint,
                request,
                procedure.response,
            )

        return self._formatter.format(response) + "\n"
