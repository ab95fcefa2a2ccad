"""
Suiquencer: compile a visual graph of Sui operations into an ordered step list
and run it as one atomic transaction followed by tracked cross-chain transfers.
"""

from suiquencer.compiler.parse import parse_flow_graph
from suiquencer.compiler.sequence import Step, build_sequence_plan, compile_sequence
from suiquencer.errors import (
    BridgeError,
    ExecutionError,
    PredicateError,
    ResourceError,
    RunInProgressError,
    SequenceEngineError,
    SubmissionError,
    UserRejectedError,
    ValidationPhaseError,
)
from suiquencer.runtime.balances import EffectiveBalanceEstimator
from suiquencer.runtime.context import RunServices, RunSettings
from suiquencer.runtime.execution import SequenceRunner
from suiquencer.schema.results import BridgePhase, BridgeStatus, ExecutionResult

__all__ = [
    "parse_flow_graph",
    "compile_sequence",
    "build_sequence_plan",
    "Step",
    "SequenceRunner",
    "RunServices",
    "RunSettings",
    "EffectiveBalanceEstimator",
    "ExecutionResult",
    "BridgeStatus",
    "BridgePhase",
    "SequenceEngineError",
    "ValidationPhaseError",
    "PredicateError",
    "ResourceError",
    "ExecutionError",
    "SubmissionError",
    "UserRejectedError",
    "BridgeError",
    "RunInProgressError",
]
