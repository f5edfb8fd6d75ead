"""protocall — interactive, schema-driven gRPC client.

Walks the request message of a unary procedure, prompts for every leaf
field, and invokes the procedure on a remote server.
"""

from protocall.version import __version__

__all__: list[str] = ["__version__"]
