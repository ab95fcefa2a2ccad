from __future__ import annotations

import pytest

from suiquencer.compiler.names import ResolvedNames, is_ens_name, is_suins_name, resolve_step_names
from suiquencer.compiler.parse import parse_flow_graph
from suiquencer.compiler.sequence import compile_sequence
from suiquencer.compiler.validate_steps import parse_json_array, validate_steps
from suiquencer.errors import ValidationPhaseError
from suiquencer.registry.tokens import default_token_registry
from suiquencer.tests.fakes import EVM_ADDRESS, RECIPIENT, SIGNER, VALIDATOR, FakeResolver, chain, node, wallet

TOKENS = default_token_registry()


def _steps(*nodes):
    return compile_sequence(parse_flow_graph(chain(wallet(), *nodes)), position_epsilon=50)


def _validate(*nodes, names=None, strict=False):
    validate_steps(_steps(*nodes), tokens=TOKENS, names=names, strict_branch_config=strict)


def _bridge(**overrides):
    data = {
        "bridgeAsset": "USDC",
        "bridgeOutputAsset": "USDC",
        "bridgeChain": "arbitrum",
        "bridgeAmount": "10",
        "ethereumAddress": EVM_ADDRESS,
    }
    data.update(overrides)
    return node("bridge", "bridge", y=500, **data)


@pytest.mark.parametrize(
    "bad_node, message",
    [
        (node("t", "transfer", y=100, amount="1"), "Recipient address is required"),
        (node("t", "transfer", y=100, recipientAddress=RECIPIENT, amount="0"), "Transfer amount must be greater than zero"),
        (node("t", "transfer", y=100, recipientAddress=RECIPIENT, amount="abc"), "Transfer amount must be greater than zero"),
        (node("t", "transfer", y=100, recipientAddress=RECIPIENT, amount="1", asset="DOGE"), "Asset 'DOGE' is not supported"),
        (node("s", "swap", y=100, fromAsset="SUI", toAsset="SUI", amount="1"), "Cannot swap SUI to itself"),
        (node("s", "swap", y=100, fromAsset="SUI", amount="1"), "both a source and a destination"),
        (node("l", "lend", y=100, lendProtocol="navi", lendAction="repay", lendAmount="1"), "Navi repay is not supported"),
        (node("l", "lend", y=100, lendProtocol="aave", lendAmount="1"), "Unsupported lending protocol"),
        (node("st", "stake", y=100, stakeAmount="0.5", stakeValidator=VALIDATOR), "Minimum stake amount is 1 SUI"),
        (node("st", "stake", y=100, stakeAmount="2"), "Please select a validator"),
        (node("c", "custom", y=100, customPackageId="0x1", customModule="m"), "requires a package, module and function"),
        (
            node("c", "custom", y=100, customPackageId="0x1", customModule="m", customFunction="f", customArguments='{"a": 1}'),
            "Must be a valid JSON array",
        ),
        (_bridge(ethereumAddress="0x1234"), "Invalid destination address"),
        (_bridge(bridgeChain="solana"), "Unsupported destination chain"),
        (_bridge(bridgeOutputAsset="WBTC", bridgeChain="base"), "WBTC is not available on base"),
        (_bridge(bridgeAmount=""), "Bridge amount must be greater than zero"),
    ],
)
def test_invalid_step_configuration_is_rejected(bad_node, message) -> None:
    with pytest.raises(ValidationPhaseError, match=message) as excinfo:
        _validate(bad_node)

    assert excinfo.value.step_index == 0


def test_first_failing_step_is_reported() -> None:
    good = node("ok", "transfer", y=100, recipientAddress=RECIPIENT, amount="1")
    bad = node("bad", "swap", y=200, fromAsset="SUI", toAsset="USDC", amount="")

    with pytest.raises(ValidationPhaseError) as excinfo:
        _validate(good, bad)

    assert str(excinfo.value) == "Step 2: Swap amount must be greater than zero"


def test_valid_sequence_passes() -> None:
    _validate(
        node("t", "transfer", y=100, recipientAddress=RECIPIENT, amount="1.5", asset="usdc"),
        node("st", "stake", y=200, stakeAmount="1", stakeValidator=VALIDATOR),
        node("l", "lend", y=300, lendProtocol="scallop", lendAction="repay", lendAsset="USDT", lendAmount="4"),
        _bridge(),
    )


def test_incomplete_logic_only_rejected_in_strict_mode() -> None:
    logic = node("cond", "logic", y=100, logicType="balance", balanceAddress=SIGNER)

    _validate(logic)
    with pytest.raises(ValidationPhaseError, match="missing operator, compare value"):
        _validate(logic, strict=True)


def test_unresolved_ens_destination_is_rejected() -> None:
    with pytest.raises(ValidationPhaseError, match="Could not resolve ENS name vitalik.eth"):
        _validate(_bridge(ethereumAddress="vitalik.eth"))

    _validate(_bridge(ethereumAddress="vitalik.eth"), names=ResolvedNames({"vitalik.eth": EVM_ADDRESS}))


def test_name_patterns() -> None:
    assert is_suins_name("alice.sui")
    assert is_suins_name("@alice")
    assert not is_suins_name(RECIPIENT)
    assert is_ens_name("vitalik.eth")
    assert not is_ens_name(EVM_ADDRESS)


def test_parse_json_array_accepts_lists_and_strings() -> None:
    assert parse_json_array('["0x1", 2]', "arguments") == ["0x1", 2]
    assert parse_json_array([1], "arguments") == [1]
    assert parse_json_array("  ", "arguments") == []
    with pytest.raises(ValueError):
        parse_json_array("not json", "arguments")


@pytest.mark.asyncio
async def test_each_name_is_resolved_once_and_reused() -> None:
    resolver = FakeResolver({"alice.sui": RECIPIENT, "vitalik.eth": EVM_ADDRESS})
    steps = _steps(
        node("t1", "transfer", y=100, recipientAddress="alice.sui", amount="1"),
        node("t2", "transfer", y=200, recipientAddress="Alice.sui", amount="2"),
        node("cond", "logic", y=300, logicType="balance", balanceAddress="alice.sui", comparisonOperator="gt", compareValue="1"),
        _bridge(ethereumAddress="vitalik.eth"),
    )

    names = await resolve_step_names(steps, resolver)

    assert resolver.calls == ["alice.sui", "vitalik.eth"]
    assert names.lookup("alice.sui") == RECIPIENT
    assert names.lookup("ALICE.SUI") == RECIPIENT
    assert names.lookup(RECIPIENT) == RECIPIENT
    validate_steps(steps, tokens=TOKENS, names=names)


@pytest.mark.asyncio
async def test_unknown_name_fails_its_step() -> None:
    steps = _steps(
        node("t1", "transfer", y=100, recipientAddress=RECIPIENT, amount="1"),
        node("t2", "transfer", y=200, recipientAddress="nobody.sui", amount="1"),
    )

    with pytest.raises(ValidationPhaseError, match='Step 2: Name "nobody.sui" does not resolve'):
        await resolve_step_names(steps, FakeResolver())
