"""
Cross-chain steps.

Each bridge step runs after the same-chain transaction, one at a time. Its
status moves signing -> pending -> bridging -> done | failed as the routing
service reports sub-process updates, and every transition is published to the
runner's listeners. A route that fails before anything was signed is retried
with a fresh route that avoids the failed provider; once the source-chain
transaction exists the step is never retried.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, replace
from decimal import ROUND_DOWN, Decimal
from typing import Callable, List, Optional, Sequence, Tuple

from shared.config import config
from shared.logger import get_logger
from suiquencer.compiler.names import ResolvedNames
from suiquencer.compiler.sequence import Step
from suiquencer.errors import BridgeError, RouteSimulationError, UserRejectedError, is_user_rejection
from suiquencer.registry import chains
from suiquencer.runtime.services import RouteService
from suiquencer.schema.models import BridgeNode
from suiquencer.schema.results import BridgePhase, BridgeProcess, BridgeResult, BridgeStatus
from suiquencer.schema.routes import Route, RouteRequest

logger = get_logger(__name__)

_RETRYABLE_PATTERN = re.compile(r"Dry run failed|MoveAbort|422")

StatusListener = Callable[[BridgeStatus], None]


def derive_phase(processes: Sequence[BridgeProcess]) -> BridgePhase:
    if not processes:
        return BridgePhase.signing
    if any(process.status == "FAILED" for process in processes):
        return BridgePhase.failed
    if all(process.status == "DONE" for process in processes):
        return BridgePhase.done
    if any(process.type == "CROSS_CHAIN" and process.status in ("PENDING", "DONE") for process in processes):
        return BridgePhase.bridging
    if any(process.tx_hash for process in processes):
        return BridgePhase.pending
    return BridgePhase.signing


def is_retryable(exc: BaseException) -> bool:
    if isinstance(exc, RouteSimulationError):
        return True
    return bool(_RETRYABLE_PATTERN.search(str(exc)))


@dataclass(frozen=True)
class RetryState:
    attempt: int = 1
    denied_providers: Tuple[str, ...] = ()
    route_requests: int = 0

    def requested(self) -> "RetryState":
        return replace(self, route_requests=self.route_requests + 1)

    def after_failure(self, failed_provider: str) -> "RetryState":
        denied = self.denied_providers
        if failed_provider and failed_provider not in denied:
            denied = denied + (failed_provider,)
        return replace(self, attempt=self.attempt + 1, denied_providers=denied)


@dataclass
class _AttemptTracker:
    """Collects route-execution updates for one attempt and publishes derived status."""

    status: BridgeStatus
    publish: StatusListener
    source_tx_hash: Optional[str] = None

    def on_update(self, processes: Sequence[BridgeProcess], tool: Optional[str]) -> None:
        records = [p if isinstance(p, BridgeProcess) else BridgeProcess.model_validate(p) for p in processes]
        if self.source_tx_hash is None:
            self.source_tx_hash = next((p.tx_hash for p in records if p.tx_hash), None)
        self.status = self.status.model_copy(
            update={
                "phase": derive_phase(records),
                "processes": records,
                "tool": tool or self.status.tool,
            }
        )
        self.publish(self.status)


class BridgeOrchestrator:
    def __init__(
        self,
        routes: RouteService,
        *,
        publish: StatusListener | None = None,
        max_attempts: int | None = None,
        tracking_base_url: str | None = None,
    ) -> None:
        self.routes = routes
        self.publish = publish or (lambda status: None)
        self.max_attempts = max_attempts or config.max_bridge_attempts
        self.tracking_base_url = tracking_base_url or config.bridge_tracking_base_url

    def tracking_url(self, tx_hash: str) -> str:
        return f"{self.tracking_base_url}{tx_hash}"

    async def run(
        self,
        steps: Sequence[Step],
        *,
        signer_address: str,
        names: ResolvedNames | None = None,
    ) -> List[BridgeResult]:
        """Execute bridge steps one after another; a failed step does not stop the next."""

        results: List[BridgeResult] = []
        for step in steps:
            result = await self.execute_step(step, signer_address=signer_address, names=names)
            results.append(result)
        return results

    async def execute_step(
        self,
        step: Step,
        *,
        signer_address: str,
        names: ResolvedNames | None = None,
    ) -> BridgeResult:
        node: BridgeNode = step.node
        data = node.data
        request = build_route_request(step, signer_address, names or ResolvedNames())
        status = BridgeStatus(
            phase=BridgePhase.signing,
            from_asset=data.bridge_asset,
            to_asset=data.bridge_output_asset,
            from_chain="sui",
            to_chain=data.bridge_chain,
        )
        self.publish(status)
        logger.info(
            "%s: bridging %s %s -> %s on %s",
            step.label,
            data.bridge_amount,
            data.bridge_asset,
            data.bridge_output_asset,
            data.bridge_chain,
        )

        state = RetryState()
        route, state, error = await self._request_route(request, state)
        while route is not None:
            tracker = _AttemptTracker(status=status.model_copy(update={"tool": route.tool}), publish=self.publish)
            self.publish(tracker.status)
            try:
                await self.routes.execute_route(route, tracker.on_update)
            except Exception as exc:
                if is_user_rejection(exc):
                    self._finish(tracker.status, BridgePhase.failed)
                    raise UserRejectedError(str(exc), step_index=step.index) from exc

                if tracker.source_tx_hash:
                    # The source chain already moved the funds; the relay finishes on its own.
                    logger.warning("%s: tracking interrupted after source tx %s: %s", step.label, tracker.source_tx_hash, exc)
                    final = self._finish(
                        tracker.status,
                        BridgePhase.bridging,
                        tracking_url=self.tracking_url(tracker.source_tx_hash),
                    )
                    return self._result(step, final, tracker.source_tx_hash, state)

                if not is_retryable(exc):
                    logger.error("%s: bridge failed: %s", step.label, exc)
                    final = self._finish(tracker.status, BridgePhase.failed, error=str(exc))
                    return self._result(step, final, None, state)

                if state.attempt >= self.max_attempts:
                    logger.error("%s: bridge failed after %d attempt(s): %s", step.label, state.attempt, exc)
                    final = self._finish(
                        tracker.status,
                        BridgePhase.failed,
                        error=f"Bridge failed after {state.attempt} attempts: {exc}",
                    )
                    return self._result(step, final, None, state)

                logger.warning(
                    "%s: route via %s failed simulation (attempt %d/%d), requesting another route",
                    step.label,
                    route.tool,
                    state.attempt,
                    self.max_attempts,
                )
                state = state.after_failure(route.tool)
                route, state, error = await self._request_route(
                    request.model_copy(update={"deny_bridges": list(state.denied_providers)}),
                    state,
                )
                continue

            if tracker.status.phase is BridgePhase.failed:
                logger.error("%s: routing service reported a failed sub-process", step.label)
                final = self._finish(tracker.status, BridgePhase.failed, error="Bridge execution failed")
                return self._result(step, final, tracker.source_tx_hash, state)

            changes = {}
            if tracker.source_tx_hash:
                changes["tracking_url"] = self.tracking_url(tracker.source_tx_hash)
            final = self._finish(tracker.status, BridgePhase.done, **changes)
            logger.info("%s: bridge complete", step.label)
            return self._result(step, final, tracker.source_tx_hash, state)

        logger.error("%s: %s", step.label, error)
        final = self._finish(status, BridgePhase.failed, error=error)
        return self._result(step, final, None, state)

    async def _request_route(
        self,
        request: RouteRequest,
        state: RetryState,
    ) -> Tuple[Optional[Route], RetryState, Optional[str]]:
        state = state.requested()
        try:
            routes = await self.routes.get_routes(request)
        except Exception as exc:
            logger.warning("Route request failed: %s", exc)
            return None, state, f"Route request failed: {exc}"
        if not routes:
            message = "No alternative routes available" if request.deny_bridges else "No bridge routes found"
            return None, state, message
        route = routes[0]
        logger.debug("Route %s via %s (denied: %s)", route.id, route.tool, ", ".join(request.deny_bridges) or "-")
        return route, state, None

    def _finish(self, status: BridgeStatus, phase: BridgePhase, **changes) -> BridgeStatus:
        final = status.model_copy(update={"phase": phase, **changes})
        self.publish(final)
        return final

    @staticmethod
    def _result(step: Step, status: BridgeStatus, source_tx_hash: Optional[str], state: RetryState) -> BridgeResult:
        return BridgeResult(
            step_index=step.index,
            node_id=step.node.id,
            status=status,
            source_tx_hash=source_tx_hash,
            attempts=state.attempt,
            route_requests=state.route_requests,
        )


def build_route_request(step: Step, signer_address: str, names: ResolvedNames) -> RouteRequest:
    data = step.node.data
    chain_id = chains.dest_chain_id(data.bridge_chain)
    from_token = chains.source_token_address(data.bridge_asset)
    to_token = chains.dest_token_address(data.bridge_output_asset, chain_id) if chain_id is not None else None
    if chain_id is None or from_token is None or to_token is None:
        raise BridgeError(
            f"No route parameters for {data.bridge_asset} -> {data.bridge_output_asset} on {data.bridge_chain}",
            step_index=step.index,
        )

    decimals = chains.source_decimals(data.bridge_asset)
    amount = int((Decimal(data.bridge_amount) * (Decimal(10) ** decimals)).to_integral_value(rounding=ROUND_DOWN))
    return RouteRequest(
        from_chain_id=chains.SUI_CHAIN_ID,
        to_chain_id=chain_id,
        from_token_address=from_token,
        to_token_address=to_token,
        from_amount=str(amount),
        from_address=signer_address,
        to_address=names.lookup(data.ethereum_address),
    )
