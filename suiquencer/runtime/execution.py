"""
Runs one graph end to end: compile, resolve names, validate, evaluate branches,
assemble and submit the same-chain transaction, then run bridge steps.
"""

from __future__ import annotations

from typing import Any, Callable, List, Optional

from shared.logger import get_logger
from suiquencer.compiler.graph_view import GraphView
from suiquencer.compiler.names import resolve_step_names
from suiquencer.compiler.parse import parse_flow_graph
from suiquencer.compiler.sequence import compile_sequence
from suiquencer.compiler.validate_steps import validate_steps
from suiquencer.errors import (
    ExecutionError,
    RunInProgressError,
    SequenceEngineError,
    SubmissionError,
    UserRejectedError,
    ValidationPhaseError,
    is_user_rejection,
    user_message,
)
from suiquencer.runtime.assembler import TransactionAssembler
from suiquencer.runtime.bridge import BridgeOrchestrator, StatusListener
from suiquencer.runtime.conditions import apply_conditions
from suiquencer.runtime.context import RunServices, RunSettings
from suiquencer.runtime.ledger import LedgerTransaction
from suiquencer.schema.results import BridgeResult, BridgeStatus, ExecutionResult

logger = get_logger(__name__)

ALL_SKIPPED_MESSAGE = "All operations skipped - logic condition(s) not met"


class SequenceRunner:
    """
    Entry point for executing a graph. One run at a time; bridge status
    updates are pushed to listeners registered with ``subscribe``.
    """

    def __init__(self, services: RunServices, *, settings: RunSettings | None = None) -> None:
        self.services = services
        self.settings = settings or RunSettings.from_config()
        self._in_progress = False
        self._listeners: List[StatusListener] = []
        self.bridge_status: Optional[BridgeStatus] = None
        self.last_error: Optional[str] = None

    @property
    def in_progress(self) -> bool:
        return self._in_progress

    def subscribe(self, listener: StatusListener) -> Callable[[], None]:
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    async def run(self, graph: Any) -> ExecutionResult:
        if self._in_progress:
            raise RunInProgressError("A sequence is already executing")

        self._in_progress = True
        self.bridge_status = None
        self.last_error = None
        try:
            return await self._run(graph)
        except SequenceEngineError as exc:
            self.last_error = user_message(exc)
            if self.last_error is None:
                logger.info("Run cancelled: signature rejected by user")
            else:
                logger.error("Run aborted: %s", self.last_error)
            raise
        finally:
            self._in_progress = False

    async def _run(self, payload: Any) -> ExecutionResult:
        services, settings = self.services, self.settings
        graph = parse_flow_graph(payload)
        view = GraphView(graph, position_epsilon=settings.position_epsilon)

        steps = compile_sequence(view)
        if not steps:
            raise ValidationPhaseError("No transactions to execute")
        logger.info("Executing sequence of %d step(s)", len(steps))

        names = await resolve_step_names(steps, services.names)
        validate_steps(
            steps,
            tokens=services.tokens,
            names=names,
            strict_branch_config=settings.strict_branch_config,
        )
        await apply_conditions(
            steps,
            view,
            services.predicates,
            tokens=services.tokens,
            names=names,
            tolerance=settings.comparison_tolerance,
        )

        signer_address = services.signer.address
        assembler = TransactionAssembler(
            adapters=services.adapters,
            tokens=services.tokens,
            ledger=services.ledger,
            swap_router=services.swap_router,
            gas_reserve=settings.sui_gas_reserve,
            slippage=settings.swap_slippage,
        )
        assembly = await assembler.assemble(steps, signer_address=signer_address, names=names)

        if assembly.actual_step_count == 0 and not assembly.bridge_steps:
            logger.info(ALL_SKIPPED_MESSAGE)
            return ExecutionResult(step_count=0, message=ALL_SKIPPED_MESSAGE)

        if assembly.bridge_steps and services.routes is None:
            raise ExecutionError("Bridging is not available: no route service configured", step_index=assembly.bridge_steps[0].index)

        digest: Optional[str] = None
        if assembly.transaction is not None:
            digest = await self._submit(assembly.transaction)
            logger.info("Transaction confirmed: %s", digest)

        bridge_results: List[BridgeResult] = []
        if assembly.bridge_steps:
            orchestrator = BridgeOrchestrator(
                services.routes,
                publish=self._publish,
                max_attempts=settings.max_bridge_attempts,
                tracking_base_url=settings.bridge_tracking_base_url,
            )
            bridge_results = await orchestrator.run(assembly.bridge_steps, signer_address=signer_address, names=names)

        step_count = assembly.actual_step_count + len(assembly.bridge_steps)
        return ExecutionResult(
            same_chain_tx_id=digest,
            bridge_results=bridge_results,
            step_count=step_count,
            message=_summary(assembly.actual_step_count, bridge_results),
        )

    async def _submit(self, transaction: LedgerTransaction) -> str:
        try:
            return await self.services.signer.sign_and_submit(transaction)
        except SequenceEngineError:
            raise
        except Exception as exc:
            if is_user_rejection(exc):
                raise UserRejectedError(str(exc)) from exc
            raise SubmissionError(f"Transaction failed: {exc}") from exc

    def _publish(self, status: BridgeStatus) -> None:
        self.bridge_status = status
        for listener in list(self._listeners):
            try:
                listener(status)
            except Exception:
                logger.exception("Bridge status listener failed")


def _summary(operations: int, bridges: List[BridgeResult]) -> str:
    parts = []
    if operations:
        parts.append(f"Transaction confirmed ({operations} operation{'s' if operations != 1 else ''})")
    if bridges:
        succeeded = sum(1 for result in bridges if result.succeeded)
        parts.append(f"{succeeded}/{len(bridges)} bridge step(s) submitted")
    return "; ".join(parts)
