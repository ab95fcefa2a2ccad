"""
Where a step's input coin comes from.

Value produced earlier in the same transaction (a withdrawal, a borrow) sits
in the ``IntermediateResourcePool`` and is always consumed first. Anything
else is sourced from the signer's wallet through ``ExternalCoinSource``, which
tracks what earlier steps of the run already committed so a shortfall is
caught before signing rather than at execution.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal
from typing import Dict, List, Optional

from shared.logger import get_logger
from suiquencer.errors import ResourceError
from suiquencer.registry.tokens import TokenInfo
from suiquencer.runtime.ledger import Handle, LedgerTransaction, split_one
from suiquencer.runtime.services import CoinRecord, LedgerClient

logger = get_logger(__name__)


@dataclass
class IntermediateResource:
    asset_key: str
    handle: Handle
    amount: int


class IntermediateResourcePool:
    """Produced-but-unconsumed coins of the transaction being assembled, keyed by coin type."""

    def __init__(self) -> None:
        self._entries: Dict[str, IntermediateResource] = {}

    def __contains__(self, asset_key: object) -> bool:
        return asset_key in self._entries

    def __len__(self) -> int:
        return len(self._entries)

    def get(self, asset_key: str) -> Optional[IntermediateResource]:
        return self._entries.get(asset_key)

    def available(self, asset_key: str) -> int:
        entry = self._entries.get(asset_key)
        return entry.amount if entry else 0

    def deposit(self, tx: LedgerTransaction, asset_key: str, handle: Handle, amount: int) -> None:
        existing = self._entries.get(asset_key)
        if existing is None:
            self._entries[asset_key] = IntermediateResource(asset_key, handle, amount)
            return
        tx.merge_coins(existing.handle, [handle])
        existing.amount += amount

    def withdraw(self, tx: LedgerTransaction, asset_key: str, amount: int) -> Handle:
        entry = self._entries.get(asset_key)
        if entry is None or entry.amount < amount:
            raise KeyError(f"pool holds {self.available(asset_key)} of {asset_key}, {amount} requested")
        # A fully drained transaction result cannot be left dangling; hand the
        # whole coin over instead of splitting it down to zero.
        if entry.amount == amount:
            del self._entries[asset_key]
            return entry.handle
        entry.amount -= amount
        return split_one(tx, entry.handle, amount)

    def take(self, asset_key: str) -> Optional[IntermediateResource]:
        return self._entries.pop(asset_key, None)

    def drain(self) -> List[IntermediateResource]:
        entries = list(self._entries.values())
        self._entries.clear()
        return entries


@dataclass
class _CoinState:
    coins: List[CoinRecord]
    next_index: int = 0
    primary: Optional[Handle] = None
    primary_balance: int = 0
    spent: int = 0

    @property
    def remaining(self) -> int:
        return self.primary_balance + sum(coin.balance for coin in self.coins[self.next_index:])


@dataclass
class ExternalCoinSource:
    """
    Wallet-side coin sourcing for one assembly. Balances and coin lists are
    fetched once per coin type; later steps draw down what is left.
    """

    ledger: LedgerClient
    owner: str
    gas_reserve: int = 0
    _native_available: Optional[int] = field(default=None, init=False)
    _coins: Dict[str, _CoinState] = field(default_factory=dict, init=False)

    async def acquire(self, tx: LedgerTransaction, token: TokenInfo, amount: int, *, step_index: int) -> Handle:
        if token.is_native:
            return await self._acquire_native(tx, token, amount, step_index)
        return await self._acquire_coin(tx, token, amount, step_index)

    async def _acquire_native(self, tx: LedgerTransaction, token: TokenInfo, amount: int, step_index: int) -> Handle:
        if self._native_available is None:
            balance = await self.ledger.get_balance(self.owner, token.coin_type)
            self._native_available = max(balance - self.gas_reserve, 0)
            logger.debug("Native balance %s, spendable after gas reserve %s", balance, self._native_available)

        if amount > self._native_available:
            raise _shortfall(token, amount, self._native_available, step_index)
        self._native_available -= amount
        return split_one(tx, tx.gas, amount)

    async def _acquire_coin(self, tx: LedgerTransaction, token: TokenInfo, amount: int, step_index: int) -> Handle:
        state = self._coins.get(token.coin_type)
        if state is None:
            coins = await self.ledger.get_coins(self.owner, token.coin_type)
            state = _CoinState(coins=sorted(coins, key=lambda coin: coin.balance, reverse=True))
            self._coins[token.coin_type] = state
            logger.debug("Loaded %d %s coin(s)", len(coins), token.symbol)

        if not state.coins:
            raise ResourceError(
                f"No {token.symbol} coins found in wallet",
                asset=token.symbol,
                shortfall=token.from_base_units(amount),
                step_index=step_index,
            )
        if state.remaining < amount:
            raise _shortfall(token, amount, state.remaining, step_index)

        # Largest coins first; everything selected is merged into the first one.
        merged: List[Handle] = []
        while state.primary_balance < amount:
            coin = state.coins[state.next_index]
            state.next_index += 1
            handle = tx.object(coin.coin_object_id)
            if state.primary is None:
                state.primary = handle
            else:
                merged.append(handle)
            state.primary_balance += coin.balance
        tx.merge_coins(state.primary, merged)

        state.primary_balance -= amount
        state.spent += amount
        return split_one(tx, state.primary, amount)


def _shortfall(token: TokenInfo, needed: int, available: int, step_index: int) -> ResourceError:
    shortfall: Decimal = token.from_base_units(needed - available)
    return ResourceError(
        f"Insufficient {token.symbol} balance. Need {token.from_base_units(needed)}, "
        f"have {token.from_base_units(available)} available",
        asset=token.symbol,
        shortfall=shortfall,
        step_index=step_index,
    )
