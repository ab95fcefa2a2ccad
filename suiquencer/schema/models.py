"""
Pydantic models describing the graph snapshot handed over by the editor.

Every node kind is its own model in a discriminated union on ``type`` and
carries only the fields that kind needs. The editor speaks camelCase and
sprinkles UI-only keys into ``data``; both are tolerated here so the engine
can take a snapshot as-is.
"""

from __future__ import annotations

from decimal import Decimal, InvalidOperation
from enum import Enum
from typing import Annotated, Any, ClassVar, Dict, List, Literal, Optional, Tuple, Union

from pydantic import (
    AliasChoices,
    BaseModel,
    BeforeValidator,
    ConfigDict,
    Field,
    model_validator,
)
from pydantic.alias_generators import to_camel


# -----------------------------
# Loose editor values
# -----------------------------
def _to_decimal_or_none(value: Any) -> Any:
    """Blank or unparsable amounts count as "unset" rather than a parse failure."""
    if value is None or isinstance(value, Decimal):
        return value
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return Decimal(str(value))
    if isinstance(value, str):
        text = value.strip()
        if not text:
            return None
        try:
            parsed = Decimal(text)
        except InvalidOperation:
            return None
        return parsed if parsed.is_finite() else None
    return value


def _blank_to_none(value: Any) -> Any:
    if isinstance(value, str) and not value.strip():
        return None
    return value


def _blank_to_native(value: Any) -> Any:
    """An asset picker left empty means the native coin."""
    if value is None or (isinstance(value, str) and not value.strip()):
        return "SUI"
    return value


Amount = Annotated[Optional[Decimal], BeforeValidator(_to_decimal_or_none)]
OptionalText = Annotated[Optional[str], BeforeValidator(_blank_to_none)]
AssetSymbol = Annotated[str, BeforeValidator(_blank_to_native)]


class EditorModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="ignore",
    )


class NodeCategory(str, Enum):
    root = "root"
    passthrough = "passthrough"
    branch = "branch"
    operation = "operation"


class ComparisonOperator(str, Enum):
    gt = "gt"
    gte = "gte"
    lt = "lt"
    lte = "lte"
    eq = "eq"
    ne = "ne"


_OPERATOR_SYMBOLS = {
    ">": "gt",
    ">=": "gte",
    "<": "lt",
    "<=": "lte",
    "==": "eq",
    "=": "eq",
    "!=": "ne",
}


def _normalize_operator(value: Any) -> Any:
    value = _blank_to_none(value)
    if isinstance(value, str):
        return _OPERATOR_SYMBOLS.get(value.strip(), value.strip().lower())
    return value


Operator = Annotated[Optional[ComparisonOperator], BeforeValidator(_normalize_operator)]


class LogicType(str, Enum):
    balance = "balance"
    contract = "contract"


class Position(EditorModel):
    x: float = 0.0
    y: float = 0.0


# -----------------------------
# Node payloads
# -----------------------------
class WalletData(EditorModel):
    label: Optional[str] = None


class SelectorData(EditorModel):
    label: Optional[str] = None
    selected_asset: OptionalText = None


class LogicData(EditorModel):
    logic_type: Optional[LogicType] = None

    # balance comparison
    balance_address: OptionalText = None
    balance_asset: AssetSymbol = "SUI"
    comparison_operator: Operator = None
    compare_value: Amount = None

    # contract-state comparison
    contract_package_id: OptionalText = None
    contract_module: OptionalText = None
    contract_function: OptionalText = None
    contract_arguments: Optional[Union[str, List[Any]]] = None
    contract_comparison_operator: Operator = None
    contract_compare_value: Amount = None


class TransferData(EditorModel):
    recipient_address: OptionalText = None
    amount: Amount = None
    asset: AssetSymbol = "SUI"


class SwapData(EditorModel):
    from_asset: OptionalText = None
    to_asset: OptionalText = None
    amount: Amount = None
    # UI preview values from the quote hook; advisory only.
    estimated_amount_out: Amount = None
    estimated_amount_out_symbol: OptionalText = None


class LendData(EditorModel):
    lend_action: str = "deposit"
    lend_asset: str = "SUI"
    lend_amount: Amount = None
    lend_protocol: str = "scallop"
    lend_obligation_id: OptionalText = None
    lend_obligation_key_id: OptionalText = None


class StakeData(EditorModel):
    stake_amount: Amount = None
    stake_protocol: str = "native"
    stake_validator: OptionalText = None


class BridgeData(EditorModel):
    bridge_asset: OptionalText = None
    bridge_output_asset: OptionalText = None
    bridge_chain: OptionalText = None
    bridge_amount: Amount = None
    ethereum_address: OptionalText = None
    bridge_protocol: str = "none"


class CustomData(EditorModel):
    custom_package_id: OptionalText = None
    custom_module: OptionalText = None
    custom_function: OptionalText = None
    custom_arguments: Optional[Union[str, List[Any]]] = None
    custom_type_arguments: Optional[Union[str, List[str]]] = None


# -----------------------------
# Nodes
# -----------------------------
class NodeBase(EditorModel):
    id: str = Field(min_length=1)
    type: str
    position: Position = Field(default_factory=Position)

    category: ClassVar[NodeCategory] = NodeCategory.operation

    @property
    def is_passthrough(self) -> bool:
        return self.category in (NodeCategory.root, NodeCategory.passthrough)


class WalletNode(NodeBase):
    type: Literal["wallet"] = "wallet"
    data: WalletData = Field(default_factory=WalletData)

    category: ClassVar[NodeCategory] = NodeCategory.root


class SelectorNode(NodeBase):
    type: Literal["selector"] = "selector"
    data: SelectorData = Field(default_factory=SelectorData)

    category: ClassVar[NodeCategory] = NodeCategory.passthrough


class LogicNode(NodeBase):
    type: Literal["logic"] = "logic"
    data: LogicData = Field(default_factory=LogicData)

    category: ClassVar[NodeCategory] = NodeCategory.branch


class OperationNodeBase(NodeBase):
    def adapter_key(self) -> Tuple[str, str]:
        """(step kind, protocol) pair the assembler dispatches on."""
        raise NotImplementedError


class TransferNode(OperationNodeBase):
    type: Literal["transfer"] = "transfer"
    data: TransferData = Field(default_factory=TransferData)

    def adapter_key(self) -> Tuple[str, str]:
        return ("transfer", "native")


class SwapNode(OperationNodeBase):
    type: Literal["swap"] = "swap"
    data: SwapData = Field(default_factory=SwapData)

    def adapter_key(self) -> Tuple[str, str]:
        return ("swap", "aggregator")


class LendNode(OperationNodeBase):
    type: Literal["lend"] = "lend"
    data: LendData = Field(default_factory=LendData)

    def adapter_key(self) -> Tuple[str, str]:
        return ("lend", self.data.lend_protocol)


class StakeNode(OperationNodeBase):
    type: Literal["stake"] = "stake"
    data: StakeData = Field(default_factory=StakeData)

    def adapter_key(self) -> Tuple[str, str]:
        return ("stake", self.data.stake_protocol)


class BridgeNode(OperationNodeBase):
    type: Literal["bridge"] = "bridge"
    data: BridgeData = Field(default_factory=BridgeData)

    def adapter_key(self) -> Tuple[str, str]:
        return ("bridge", "lifi")


class CustomNode(OperationNodeBase):
    type: Literal["custom"] = "custom"
    data: CustomData = Field(default_factory=CustomData)

    def adapter_key(self) -> Tuple[str, str]:
        return ("custom", "move_call")


OperationNode = Union[TransferNode, SwapNode, LendNode, StakeNode, BridgeNode, CustomNode]

Node = Annotated[
    Union[
        WalletNode,
        SelectorNode,
        LogicNode,
        TransferNode,
        SwapNode,
        LendNode,
        StakeNode,
        BridgeNode,
        CustomNode,
    ],
    Field(discriminator="type"),
]


class Edge(EditorModel):
    id: str = Field(min_length=1)
    source: str = Field(validation_alias=AliasChoices("source", "sourceNodeId", "source_node_id"))
    target: str = Field(validation_alias=AliasChoices("target", "targetNodeId", "target_node_id"))


class FlowGraph(EditorModel):
    """
    Read-only snapshot of the editor canvas: exactly one wallet root, and edges
    that only reference nodes present in the snapshot.
    """

    nodes: List[Node] = Field(default_factory=list)
    edges: List[Edge] = Field(default_factory=list)
    meta: Dict[str, Any] = Field(default_factory=dict)

    @model_validator(mode="after")
    def _check_structure(self) -> "FlowGraph":
        roots = [node for node in self.nodes if isinstance(node, WalletNode)]
        if len(roots) != 1:
            raise ValueError(f"graph must contain exactly one wallet node, found {len(roots)}")

        ids = [node.id for node in self.nodes]
        duplicates = sorted({node_id for node_id in ids if ids.count(node_id) > 1})
        if duplicates:
            raise ValueError(f"duplicate node ids: {', '.join(duplicates)}")

        known = set(ids)
        for edge in self.edges:
            missing = [end for end in (edge.source, edge.target) if end not in known]
            if missing:
                raise ValueError(f"edge '{edge.id}' references unknown node(s): {', '.join(missing)}")
        return self

    @property
    def root(self) -> WalletNode:
        return next(node for node in self.nodes if isinstance(node, WalletNode))
