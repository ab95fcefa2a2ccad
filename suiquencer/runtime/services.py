"""
Interfaces of the external collaborators the engine talks to. Concrete
implementations live in ``suiquencer.clients`` (HTTP) or are supplied by the
wallet integration; tests use in-memory fakes.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional, Protocol, Sequence

from suiquencer.runtime.ledger import Handle, LedgerTransaction
from suiquencer.schema.results import BridgeProcess
from suiquencer.schema.routes import Route, RouteRequest


@dataclass(frozen=True)
class CoinRecord:
    coin_object_id: str
    balance: int


@dataclass(frozen=True)
class SwapQuote:
    amount_in: int
    amount_out: int
    hops: int = 1
    raw: Dict[str, Any] = field(default_factory=dict)


RouteUpdateHook = Callable[[Sequence[BridgeProcess], Optional[str]], None]


class LedgerClient(Protocol):
    async def get_balance(self, owner: str, coin_type: str) -> int:
        """Total balance in base units."""

    async def get_coins(self, owner: str, coin_type: str) -> List[CoinRecord]:
        """Every coin object of ``coin_type`` owned by ``owner``."""

    async def get_owned_objects(self, owner: str, struct_type: str) -> List[str]:
        """Object ids of ``struct_type`` owned by ``owner``."""

    async def get_active_validators(self) -> List[str]:
        """Addresses of the active validator set."""


class PredicateFetcher(Protocol):
    async def get_balance(self, owner: str, coin_type: str) -> int:
        """Total balance in base units."""

    async def query_contract(self, target: str, arguments: Sequence[Any]) -> Sequence[Any]:
        """Run a read-only ``package::module::function`` call and return its values."""


class NameResolver(Protocol):
    async def resolve(self, name: str) -> Optional[str]:
        """Canonical address for a human-readable name, or None when unknown."""


class Signer(Protocol):
    address: str

    async def sign_and_submit(self, transaction: LedgerTransaction) -> str:
        """Sign, submit and return the transaction digest."""


class RouteService(Protocol):
    async def get_routes(self, request: RouteRequest) -> List[Route]:
        """Quoted routes, best first."""

    async def execute_route(self, route: Route, on_update: RouteUpdateHook) -> None:
        """Sign and execute ``route``, pushing sub-process updates to ``on_update``."""


class SwapRouter(Protocol):
    async def find_route(self, from_coin_type: str, to_coin_type: str, amount: int) -> Optional[SwapQuote]:
        """Best aggregator route for ``amount`` base units, or None."""

    async def build_swap(
        self,
        tx: LedgerTransaction,
        quote: SwapQuote,
        input_coin: Handle,
        slippage: float,
    ) -> Handle:
        """Append the swap commands and return the output coin handle."""
