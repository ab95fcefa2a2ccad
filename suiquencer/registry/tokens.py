"""
Registry of Sui mainnet coin types the engine knows how to move.

Amounts in the graph are human-readable decimals ("1.5"); every ledger call
works in base units, so the registry also owns the conversion.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import ROUND_DOWN, Decimal
from typing import Dict, Iterable, MutableMapping, Optional


NATIVE_SYMBOL = "SUI"


@dataclass(frozen=True)
class TokenInfo:
    symbol: str
    decimals: int
    coin_type: str

    @property
    def is_native(self) -> bool:
        return self.symbol == NATIVE_SYMBOL

    def to_base_units(self, amount: Decimal) -> int:
        scaled = Decimal(amount) * (Decimal(10) ** self.decimals)
        return int(scaled.to_integral_value(rounding=ROUND_DOWN))

    def from_base_units(self, amount: int) -> Decimal:
        return Decimal(amount) / (Decimal(10) ** self.decimals)


class TokenNotFoundError(KeyError):
    """Raised when an asset symbol is not registered."""


class TokenRegistry:
    """
    Symbol -> TokenInfo lookup. Symbols are matched case-insensitively.
    """

    def __init__(self, initial: Iterable[TokenInfo] | None = None) -> None:
        self._tokens: MutableMapping[str, TokenInfo] = {}
        for token in initial or ():
            self.register(token)

    def register(self, token: TokenInfo) -> None:
        self._tokens[token.symbol.upper()] = token

    def get(self, symbol: str) -> TokenInfo:
        try:
            return self._tokens[symbol.upper()]
        except (KeyError, AttributeError) as exc:
            raise TokenNotFoundError(f"Asset '{symbol}' is not supported") from exc

    def maybe_get(self, symbol: Optional[str]) -> Optional[TokenInfo]:
        if not symbol:
            return None
        return self._tokens.get(symbol.upper())

    def by_coin_type(self, coin_type: str) -> Optional[TokenInfo]:
        for token in self._tokens.values():
            if token.coin_type == coin_type:
                return token
        return None

    def symbols(self) -> list[str]:
        return [token.symbol for token in self._tokens.values()]


MAINNET_TOKENS: Dict[str, TokenInfo] = {
    token.symbol: token
    for token in (
        TokenInfo("SUI", 9, "0x2::sui::SUI"),
        TokenInfo(
            "USDC",
            6,
            "0xdba34672e30cb065b1f93e3ab55318768fd6fef66c15942c9f7cb846e2f900e7::usdc::USDC",
        ),
        TokenInfo(
            "USDT",
            6,
            "0x375f70cf2ae4c00bf37117d0c85a2c71545e6ee05c4a5c7d282cd66a4504b068::usdt::USDT",
        ),
        TokenInfo(
            "WAL",
            9,
            "0x356a26eb9e012a68958082340d4c4116e7f55615cf27affcff209cf0ae544f59::wal::WAL",
        ),
        TokenInfo(
            "CETUS",
            9,
            "0x06864a6f921804860930db6ddbe2e16acdf8504495ea7481637a1c8b9a8fe54b::cetus::CETUS",
        ),
        TokenInfo(
            "DEEP",
            6,
            "0xdeeb7a4662eec9f2f3def03fb937a663dddaa2e215b8078a284d026b7946c270::deep::DEEP",
        ),
        TokenInfo(
            "BLUE",
            9,
            "0xe1b45a0e641b9955a20aa0ad1c1f4ad86aad8afb07296d4085e349a50e90bdca::blue::BLUE",
        ),
        TokenInfo(
            "BUCK",
            9,
            "0xce7ff77a83ea0cb6fd39bd8748e2ec89a3f41e8efdc3f4eb123e0ca37b184db2::buck::BUCK",
        ),
        TokenInfo(
            "AUSD",
            6,
            "0x2053d08c1e2bd02791056171aab0fd12bd7cd7efad2ab8f6b9c8902f14df2ff2::ausd::AUSD",
        ),
    )
}


def default_token_registry() -> TokenRegistry:
    return TokenRegistry(MAINNET_TOKENS.values())
