"""JSON rendering of response messages."""

from __future__ import annotations

from typing import Any

from google.protobuf import json_format


class JsonResponseFormatter:
    """Renders a protobuf message as two-space indented JSON.

    Field names follow the protobuf JSON mapping (lowerCamelCase) unless
    *preserve_field_names* is set.
    """

    def __init__(self, *, preserve_field_names: bool = False) -> None:
        self._preserve = preserve_field_names

    def format(self, response: Any) -> str:
        return json_format.MessageToJson(
            response,
            indent=2,
            preserving_proto_field_name=self._preserve,
        )
