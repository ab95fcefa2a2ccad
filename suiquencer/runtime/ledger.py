"""
In-progress ledger transaction.

The engine does not serialize Sui programmable transactions itself; it records
the commands (split, merge, transfer, move call) together with opaque argument
handles and hands the finished recording to the signer collaborator, which
turns it into real transaction bytes. Handles mirror the programmable
transaction argument kinds: the gas coin, owned/shared objects, pure values
and (nested) results of earlier commands.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Sequence


class HandleKind(str, Enum):
    gas = "gas"
    object = "object"
    pure = "pure"
    result = "result"
    nested_result = "nested_result"


@dataclass(frozen=True)
class Handle:
    kind: HandleKind
    value: Any = None
    type_tag: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {"kind": self.kind.value}
        if self.value is not None:
            payload["value"] = list(self.value) if isinstance(self.value, tuple) else self.value
        if self.type_tag:
            payload["type"] = self.type_tag
        return payload


class OperationKind(str, Enum):
    split_coins = "SplitCoins"
    merge_coins = "MergeCoins"
    transfer_objects = "TransferObjects"
    move_call = "MoveCall"


@dataclass(frozen=True)
class LedgerOperation:
    kind: OperationKind
    params: Dict[str, Any]

    def to_dict(self) -> Dict[str, Any]:
        return {"kind": self.kind.value, **{k: _serialize(v) for k, v in self.params.items()}}


@dataclass
class LedgerTransaction:
    sender: str
    operations: List[LedgerOperation] = field(default_factory=list)

    @property
    def gas(self) -> Handle:
        return Handle(HandleKind.gas)

    def object(self, object_id: str) -> Handle:
        return Handle(HandleKind.object, object_id)

    def pure(self, value: Any, type_tag: Optional[str] = None) -> Handle:
        return Handle(HandleKind.pure, value, type_tag)

    def split_coins(self, coin: Handle, amounts: Sequence[int]) -> List[Handle]:
        for amount in amounts:
            if amount <= 0:
                raise ValueError(f"split amount must be positive, got {amount}")
        index = self._append(OperationKind.split_coins, coin=coin, amounts=list(amounts))
        return [Handle(HandleKind.nested_result, (index, position)) for position in range(len(amounts))]

    def merge_coins(self, destination: Handle, sources: Sequence[Handle]) -> None:
        if not sources:
            return
        self._append(OperationKind.merge_coins, destination=destination, sources=list(sources))

    def transfer_objects(self, objects: Sequence[Handle], recipient: str) -> None:
        self._append(OperationKind.transfer_objects, objects=list(objects), recipient=recipient)

    def move_call(
        self,
        target: str,
        arguments: Sequence[Handle] = (),
        type_arguments: Sequence[str] = (),
    ) -> Handle:
        index = self._append(
            OperationKind.move_call,
            target=target,
            arguments=list(arguments),
            type_arguments=list(type_arguments),
        )
        return Handle(HandleKind.result, index)

    def count(self, kind: OperationKind) -> int:
        return sum(1 for op in self.operations if op.kind == kind)

    def of_kind(self, kind: OperationKind) -> List[LedgerOperation]:
        return [op for op in self.operations if op.kind == kind]

    def to_dict(self) -> Dict[str, Any]:
        return {"sender": self.sender, "commands": [op.to_dict() for op in self.operations]}

    def _append(self, kind: OperationKind, **params: Any) -> int:
        self.operations.append(LedgerOperation(kind=kind, params=params))
        return len(self.operations) - 1


def _serialize(value: Any) -> Any:
    if isinstance(value, Handle):
        return value.to_dict()
    if isinstance(value, (list, tuple)):
        return [_serialize(item) for item in value]
    return value


def split_one(tx: LedgerTransaction, coin: Handle, amount: int) -> Handle:
    (piece,) = tx.split_coins(coin, [amount])
    return piece
