"""
Shared exception hierarchy for the sequence engine.

Every error that relates to a specific position in the compiled sequence
carries the 0-based ``step_index``; the rendered message uses the 1-based
"Step N" label the editor shows next to each node.
"""

from __future__ import annotations

import re
from decimal import Decimal
from typing import Optional

_USER_REJECTION_PATTERN = re.compile(
    r"user rejected|rejected the request|rejected the transaction", re.IGNORECASE
)


def step_label(step_index: int) -> str:
    return f"Step {step_index + 1}"


class SequenceEngineError(Exception):
    """Base class for all engine related errors."""

    def __init__(self, message: str, *, step_index: Optional[int] = None) -> None:
        self.step_index = step_index
        self.reason = message
        if step_index is not None:
            message = f"{step_label(step_index)}: {message}"
        super().__init__(message)


class ValidationPhaseError(SequenceEngineError):
    """Raised when the graph or a step's configuration fails pre-flight checks."""


class PredicateError(SequenceEngineError):
    """Raised when a branch predicate cannot be fetched (network, bad address...)."""


class ResourceError(SequenceEngineError):
    """Raised when the signer cannot cover a step's input, immediately or cumulatively."""

    def __init__(
        self,
        message: str,
        *,
        asset: str,
        shortfall: Decimal,
        step_index: Optional[int] = None,
    ) -> None:
        super().__init__(message, step_index=step_index)
        self.asset = asset
        self.shortfall = shortfall


class ExecutionError(SequenceEngineError):
    """Raised for assembly issues (unknown adapter, protocol lookups, missing routes)."""


class SubmissionError(SequenceEngineError):
    """Raised when the ledger rejects the signed transaction."""


class UserRejectedError(SubmissionError):
    """The signer declined a prompt. Deliberate user action, never surfaced as an error."""


class BridgeError(SequenceEngineError):
    """Raised for cross-chain routing or execution failures."""


class RouteSimulationError(BridgeError):
    """Pre-flight simulation of a route failed before the signer confirmed anything."""


class RunInProgressError(SequenceEngineError):
    """Raised when a run is triggered while another one is still in flight."""


def is_user_rejection(exc: BaseException) -> bool:
    if isinstance(exc, UserRejectedError):
        return True
    cause = exc.__cause__
    message = str(exc) or (str(cause) if cause else "")
    return bool(_USER_REJECTION_PATTERN.search(message))


def user_message(exc: BaseException) -> Optional[str]:
    """
    The single terminating message an aborted run reports to the user, or
    ``None`` when the run ended because the user rejected a signature.
    """

    if is_user_rejection(exc):
        return None
    return str(exc) or "Execution failed"
