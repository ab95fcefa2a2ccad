"""
Branch evaluation: decides, before assembly, which steps are skipped.

Each logic step is evaluated once, in sequence order. A condition that is not
met, or not fully configured, marks every node reachable from the branch as
skipped. A predicate that cannot be fetched aborts the run.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal, InvalidOperation
from typing import Any, Iterable, List, Optional, Sequence

from shared.config import config
from shared.logger import get_logger
from suiquencer.compiler.graph_view import GraphView
from suiquencer.compiler.names import ResolvedNames
from suiquencer.compiler.sequence import Step
from suiquencer.compiler.validate_steps import missing_predicate_fields, parse_json_array
from suiquencer.errors import PredicateError
from suiquencer.registry.tokens import TokenRegistry
from suiquencer.runtime.services import PredicateFetcher
from suiquencer.schema.models import ComparisonOperator, LogicData, LogicNode, LogicType

logger = get_logger(__name__)


@dataclass(frozen=True)
class ConditionOutcome:
    satisfied: bool
    observed: Optional[Decimal] = None
    reason: Optional[str] = None


def compare(
    actual: Decimal,
    operator: ComparisonOperator,
    expected: Decimal,
    *,
    tolerance: float | None = None,
) -> bool:
    epsilon = Decimal(str(config.comparison_tolerance if tolerance is None else tolerance))
    if operator is ComparisonOperator.gt:
        return actual > expected
    if operator is ComparisonOperator.gte:
        return actual >= expected
    if operator is ComparisonOperator.lt:
        return actual < expected
    if operator is ComparisonOperator.lte:
        return actual <= expected
    if operator is ComparisonOperator.eq:
        return abs(actual - expected) < epsilon
    if operator is ComparisonOperator.ne:
        return abs(actual - expected) >= epsilon
    raise ValueError(f"Unknown comparison operator: {operator}")


def to_number(value: Any) -> Decimal:
    """
    Interpret the first return value of a read-only call as a number. Values
    come back either already decoded (int, str, bool) or as raw little-endian
    bytes of an unsigned integer.
    """

    if isinstance(value, bool):
        return Decimal(int(value))
    if isinstance(value, (int, Decimal)):
        return Decimal(value)
    if isinstance(value, float):
        return Decimal(str(value))
    if isinstance(value, str):
        try:
            return Decimal(value.strip())
        except InvalidOperation as exc:
            raise ValueError(f"Cannot interpret {value!r} as a number") from exc
    if isinstance(value, (bytes, bytearray)):
        return Decimal(int.from_bytes(bytes(value), "little"))
    if isinstance(value, (list, tuple)) and value and all(isinstance(b, int) and 0 <= b < 256 for b in value):
        return Decimal(int.from_bytes(bytes(value), "little"))
    raise ValueError(f"Cannot interpret {type(value).__name__} as a number")


async def evaluate_condition(
    step: Step,
    fetcher: PredicateFetcher,
    *,
    tokens: TokenRegistry,
    names: ResolvedNames | None = None,
    tolerance: float | None = None,
) -> ConditionOutcome:
    node = step.node
    if not isinstance(node, LogicNode):
        raise TypeError(f"{step.label} is not a logic node")

    data = node.data
    missing = missing_predicate_fields(data)
    if missing:
        logger.warning("%s: logic condition incomplete (missing %s); treating as not met", step.label, ", ".join(missing))
        return ConditionOutcome(satisfied=False, reason="incomplete configuration")

    if data.logic_type is LogicType.balance:
        observed = await _fetch_balance(step, data, fetcher, tokens, names or ResolvedNames())
        operator, expected = data.comparison_operator, data.compare_value
    else:
        observed = await _fetch_contract_value(step, data, fetcher)
        operator, expected = data.contract_comparison_operator, data.contract_compare_value

    satisfied = compare(observed, operator, expected, tolerance=tolerance)
    logger.info(
        "%s: condition %s %s %s -> %s",
        step.label,
        observed,
        operator.value,
        expected,
        "met" if satisfied else "not met",
    )
    return ConditionOutcome(satisfied=satisfied, observed=observed)


async def _fetch_balance(
    step: Step,
    data: LogicData,
    fetcher: PredicateFetcher,
    tokens: TokenRegistry,
    names: ResolvedNames,
) -> Decimal:
    token = tokens.maybe_get(data.balance_asset)
    if token is None:
        raise PredicateError(f"Unsupported asset '{data.balance_asset}'", step_index=step.index)
    address = names.lookup(data.balance_address)
    try:
        raw = await fetcher.get_balance(address, token.coin_type)
    except Exception as exc:
        raise PredicateError(f"Failed to fetch {token.symbol} balance of {address}: {exc}", step_index=step.index) from exc
    return token.from_base_units(int(raw))


async def _fetch_contract_value(step: Step, data: LogicData, fetcher: PredicateFetcher) -> Decimal:
    target = f"{data.contract_package_id}::{data.contract_module}::{data.contract_function}"
    try:
        arguments = parse_json_array(data.contract_arguments, "contract arguments")
    except ValueError as exc:
        raise PredicateError(str(exc), step_index=step.index) from exc

    try:
        values: Sequence[Any] = await fetcher.query_contract(target, arguments)
    except Exception as exc:
        raise PredicateError(f"Contract query {target} failed: {exc}", step_index=step.index) from exc

    if not values:
        raise PredicateError(f"Contract query {target} returned no value", step_index=step.index)
    try:
        return to_number(values[0])
    except ValueError as exc:
        raise PredicateError(f"Contract query {target}: {exc}", step_index=step.index) from exc


def mark_downstream(graph: GraphView, branch_node_id: str, steps: Iterable[Step]) -> List[int]:
    """Mark every step reachable from the branch node as skipped; returns the newly marked indexes."""

    downstream = graph.descendants(branch_node_id)
    marked: List[int] = []
    for step in steps:
        if step.node.id in downstream and not step.skipped:
            step.mark_skipped()
            marked.append(step.index)
    return marked


async def apply_conditions(
    steps: Sequence[Step],
    graph: GraphView,
    fetcher: Optional[PredicateFetcher],
    *,
    tokens: TokenRegistry,
    names: ResolvedNames | None = None,
    tolerance: float | None = None,
) -> List[int]:
    """Evaluate every live branch in order; returns the indexes of all skipped steps."""

    for step in steps:
        if not step.is_branch:
            continue
        if step.skipped:
            logger.debug("%s: branch already skipped upstream, not evaluated", step.label)
            continue
        if fetcher is None:
            raise PredicateError("No predicate fetcher configured", step_index=step.index)

        outcome = await evaluate_condition(step, fetcher, tokens=tokens, names=names, tolerance=tolerance)
        if not outcome.satisfied:
            marked = mark_downstream(graph, step.node.id, steps)
            if marked:
                logger.info(
                    "%s: skipping step(s) %s",
                    step.label,
                    ", ".join(str(index + 1) for index in marked),
                )
    return [step.index for step in steps if step.skipped]
