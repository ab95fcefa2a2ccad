from __future__ import annotations

from typing import List

import pytest

from suiquencer.compiler.names import ResolvedNames
from suiquencer.compiler.parse import parse_flow_graph
from suiquencer.compiler.sequence import compile_sequence
from suiquencer.errors import BridgeError, RouteSimulationError, UserRejectedError
from suiquencer.registry import chains
from suiquencer.runtime.bridge import BridgeOrchestrator, RetryState, build_route_request, derive_phase, is_retryable
from suiquencer.schema.results import BridgePhase, BridgeProcess, BridgeStatus
from suiquencer.tests.fakes import (
    EVM_ADDRESS,
    SIGNER,
    FakeRouteService,
    chain,
    completes,
    confirms_then_fails,
    fails,
    node,
    route,
    wallet,
)

TRACKING = "https://scan.li.fi/tx/"


def _bridge_node(node_id: str = "bridge", y: float = 100, **overrides):
    data = {
        "bridgeAsset": "USDC",
        "bridgeOutputAsset": "USDC",
        "bridgeChain": "arbitrum",
        "bridgeAmount": "10",
        "ethereumAddress": EVM_ADDRESS,
    }
    data.update(overrides)
    return node(node_id, "bridge", y=y, **data)


def _bridge_steps(*nodes):
    return compile_sequence(parse_flow_graph(chain(wallet(), *(nodes or (_bridge_node(),)))), position_epsilon=50)


def _orchestrator(routes: FakeRouteService, published: List[BridgeStatus] | None = None) -> BridgeOrchestrator:
    sink = published if published is not None else []
    return BridgeOrchestrator(routes, publish=sink.append, max_attempts=3, tracking_base_url=TRACKING)


def _phases(published: List[BridgeStatus]) -> List[BridgePhase]:
    phases: List[BridgePhase] = []
    for status in published:
        if not phases or phases[-1] is not status.phase:
            phases.append(status.phase)
    return phases


@pytest.mark.parametrize(
    "processes, phase",
    [
        ([], BridgePhase.signing),
        ([BridgeProcess(type="SWAP", status="STARTED")], BridgePhase.signing),
        ([BridgeProcess(type="SWAP", status="PENDING", tx_hash="0x1")], BridgePhase.pending),
        (
            [BridgeProcess(type="SWAP", status="DONE", tx_hash="0x1"), BridgeProcess(type="CROSS_CHAIN", status="PENDING")],
            BridgePhase.bridging,
        ),
        (
            [BridgeProcess(type="SWAP", status="DONE"), BridgeProcess(type="CROSS_CHAIN", status="DONE")],
            BridgePhase.done,
        ),
        (
            [BridgeProcess(type="SWAP", status="DONE"), BridgeProcess(type="CROSS_CHAIN", status="FAILED")],
            BridgePhase.failed,
        ),
    ],
)
def test_derive_phase(processes, phase) -> None:
    assert derive_phase(processes) is phase


def test_retryable_errors() -> None:
    assert is_retryable(RuntimeError("Dry run failed: insufficient gas"))
    assert is_retryable(RuntimeError("MoveAbort in 0x2::coin"))
    assert is_retryable(RuntimeError("HTTP 422 Unprocessable Entity"))
    assert is_retryable(RouteSimulationError("simulation rejected"))
    assert not is_retryable(RuntimeError("insufficient liquidity"))


def test_retry_state_denies_each_provider_once() -> None:
    state = RetryState().requested().after_failure("mayan").requested().after_failure("mayan")

    assert state.attempt == 3
    assert state.route_requests == 2
    assert state.denied_providers == ("mayan",)


def test_route_request_uses_source_decimals_and_resolved_destination() -> None:
    (step,) = _bridge_steps(_bridge_node(ethereumAddress="vitalik.eth", bridgeAmount="2.5"))

    request = build_route_request(step, SIGNER, ResolvedNames({"vitalik.eth": EVM_ADDRESS}))

    assert request.from_chain_id == chains.SUI_CHAIN_ID
    assert request.to_chain_id == 42161
    assert request.from_amount == "2500000"
    assert request.from_address == SIGNER
    assert request.to_address == EVM_ADDRESS
    assert request.deny_bridges == []


def test_route_request_rejects_unknown_pair() -> None:
    (step,) = _bridge_steps(_bridge_node(bridgeOutputAsset="WBTC", bridgeChain="base"))

    with pytest.raises(BridgeError, match="Step 1: No route parameters"):
        build_route_request(step, SIGNER, ResolvedNames())


@pytest.mark.asyncio
async def test_successful_bridge_walks_through_every_phase() -> None:
    routes = FakeRouteService([[route("r1", "mayan")]], [completes("0xsource")])
    published: List[BridgeStatus] = []

    (result,) = await _orchestrator(routes, published).run(_bridge_steps(), signer_address=SIGNER)

    assert result.status.phase is BridgePhase.done
    assert result.source_tx_hash == "0xsource"
    assert result.status.tracking_url == TRACKING + "0xsource"
    assert result.attempts == 1
    assert _phases(published) == [BridgePhase.signing, BridgePhase.pending, BridgePhase.bridging, BridgePhase.done]
    assert published[-1].tool == "mayan"


@pytest.mark.asyncio
async def test_simulation_failure_retries_with_failed_provider_denied() -> None:
    routes = FakeRouteService(
        [[route("r1", "mayan")], [route("r2", "allbridge")]],
        [fails("Dry run failed: MoveAbort(0x2::balance, 2)"), completes("0xsecond")],
    )

    (result,) = await _orchestrator(routes).run(_bridge_steps(), signer_address=SIGNER)

    assert result.status.phase is BridgePhase.done
    assert result.route_requests == 2
    assert result.attempts == 2
    assert routes.requests[0].deny_bridges == []
    assert routes.requests[1].deny_bridges == ["mayan"]
    assert [executed.tool for executed in routes.executed] == ["mayan", "allbridge"]


@pytest.mark.asyncio
async def test_failure_after_source_confirmation_is_not_retried() -> None:
    routes = FakeRouteService(
        [[route("r1", "mayan")], [route("r2", "allbridge")]],
        [confirms_then_fails("0xabc", "Dry run failed while polling status")],
    )

    (result,) = await _orchestrator(routes).run(_bridge_steps(), signer_address=SIGNER)

    assert result.status.phase is BridgePhase.bridging
    assert result.status.tracking_url == "https://scan.li.fi/tx/0xabc"
    assert result.source_tx_hash == "0xabc"
    assert result.succeeded
    assert len(routes.requests) == 1


@pytest.mark.asyncio
async def test_retries_stop_after_max_attempts() -> None:
    routes = FakeRouteService(
        [[route("r1", "mayan")], [route("r2", "allbridge")], [route("r3", "cctp")], [route("r4", "stargate")]],
        [fails("MoveAbort 1"), fails("MoveAbort 2"), fails("MoveAbort 3")],
    )

    (result,) = await _orchestrator(routes).run(_bridge_steps(), signer_address=SIGNER)

    assert result.status.phase is BridgePhase.failed
    assert result.status.error == "Bridge failed after 3 attempts: MoveAbort 3"
    assert result.route_requests == 3
    assert routes.requests[2].deny_bridges == ["mayan", "allbridge"]


@pytest.mark.asyncio
async def test_non_retryable_error_fails_immediately() -> None:
    routes = FakeRouteService([[route("r1", "mayan")], [route("r2", "allbridge")]], [fails("insufficient liquidity")])

    (result,) = await _orchestrator(routes).run(_bridge_steps(), signer_address=SIGNER)

    assert result.status.phase is BridgePhase.failed
    assert result.status.error == "insufficient liquidity"
    assert result.route_requests == 1
    assert not result.succeeded


@pytest.mark.asyncio
async def test_no_routes_reported_as_failure() -> None:
    (result,) = await _orchestrator(FakeRouteService([], [])).run(_bridge_steps(), signer_address=SIGNER)

    assert result.status.phase is BridgePhase.failed
    assert result.status.error == "No bridge routes found"


@pytest.mark.asyncio
async def test_exhausted_alternatives_reported_as_failure() -> None:
    routes = FakeRouteService([[route("r1", "mayan")], []], [fails("Dry run failed")])

    (result,) = await _orchestrator(routes).run(_bridge_steps(), signer_address=SIGNER)

    assert result.status.phase is BridgePhase.failed
    assert result.status.error == "No alternative routes available"


@pytest.mark.asyncio
async def test_failed_sub_process_marks_step_failed() -> None:
    async def _reports_failure(route, on_update):
        on_update([BridgeProcess(type="CROSS_CHAIN", status="FAILED", tx_hash="0xdead")], route.tool)

    routes = FakeRouteService([[route("r1", "mayan")]], [_reports_failure])

    (result,) = await _orchestrator(routes).run(_bridge_steps(), signer_address=SIGNER)

    assert result.status.phase is BridgePhase.failed
    assert result.status.error == "Bridge execution failed"


@pytest.mark.asyncio
async def test_user_rejection_aborts_without_error_message() -> None:
    routes = FakeRouteService([[route("r1", "mayan")]], [fails("User rejected the request.")])
    published: List[BridgeStatus] = []

    with pytest.raises(UserRejectedError) as excinfo:
        await _orchestrator(routes, published).run(_bridge_steps(), signer_address=SIGNER)

    assert excinfo.value.step_index == 0
    assert published[-1].phase is BridgePhase.failed
    assert published[-1].error is None


@pytest.mark.asyncio
async def test_failed_bridge_does_not_stop_the_next_one() -> None:
    steps = _bridge_steps(_bridge_node("first", y=100), _bridge_node("second", y=200, bridgeChain="base"))
    routes = FakeRouteService(
        [[route("r1", "mayan")], [route("r2", "cctp")]],
        [fails("insufficient liquidity"), completes("0xsecond")],
    )

    results = await _orchestrator(routes).run(steps, signer_address=SIGNER)

    assert [result.node_id for result in results] == ["first", "second"]
    assert [result.status.phase for result in results] == [BridgePhase.failed, BridgePhase.done]
    assert routes.requests[1].to_chain_id == 8453
