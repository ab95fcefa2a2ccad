"""
Stage 1: Parse the editor snapshot into a strongly typed FlowGraph.
"""

from __future__ import annotations

import json
from typing import Any, Mapping

from pydantic import ValidationError

from suiquencer.errors import ValidationPhaseError
from suiquencer.schema.models import FlowGraph


def parse_flow_graph(payload: Any) -> FlowGraph:
    """
    Accepts a JSON string, a mapping with ``nodes`` / ``edges`` or an already
    built FlowGraph and returns a validated FlowGraph instance.
    """

    if isinstance(payload, FlowGraph):
        return payload

    if isinstance(payload, str):
        try:
            data = json.loads(payload)
        except json.JSONDecodeError as exc:
            raise ValidationPhaseError(f"Invalid graph JSON payload: {exc}") from exc
    elif isinstance(payload, Mapping):
        data = payload
    else:
        raise ValidationPhaseError(
            f"Unsupported payload type {type(payload).__name__}; expected str, Mapping or FlowGraph"
        )

    try:
        return FlowGraph.model_validate(data)
    except ValidationError as exc:
        raise ValidationPhaseError(f"Graph validation failed: {exc}") from exc
