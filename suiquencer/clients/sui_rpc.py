"""
Minimal Sui JSON-RPC client covering what assembly and branch evaluation read:
balances, coin objects, owned objects, the validator set and SuiNS lookups.
"""

from __future__ import annotations

import itertools
from typing import Any, Dict, List, Optional

import httpx

from shared.config import config
from shared.logger import get_logger
from suiquencer.runtime.services import CoinRecord

logger = get_logger(__name__)

_PAGE_SIZE = 50


class SuiRpcError(Exception):
    """Raised when the node answers with a JSON-RPC error object."""

    def __init__(self, method: str, error: Dict[str, Any]) -> None:
        self.method = method
        self.code = error.get("code")
        super().__init__(f"{method} failed ({self.code}): {error.get('message', 'unknown error')}")


class SuiRpcClient:
    def __init__(
        self,
        url: str | None = None,
        *,
        client: httpx.AsyncClient | None = None,
        timeout: float | None = None,
    ) -> None:
        self.url = url or config.sui_rpc_url
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(timeout=timeout or config.http_timeout_seconds)
        self._ids = itertools.count(1)

    async def __aenter__(self) -> "SuiRpcClient":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    async def call(self, method: str, params: List[Any]) -> Any:
        payload = {"jsonrpc": "2.0", "id": next(self._ids), "method": method, "params": params}
        logger.debug("RPC %s %s", method, params)
        response = await self._client.post(self.url, json=payload)
        response.raise_for_status()
        body = response.json()
        if body.get("error"):
            raise SuiRpcError(method, body["error"])
        return body.get("result")

    # -----------------------------
    # LedgerClient / PredicateFetcher
    # -----------------------------
    async def get_balance(self, owner: str, coin_type: str) -> int:
        result = await self.call("suix_getBalance", [owner, coin_type])
        return int(result["totalBalance"])

    async def get_coins(self, owner: str, coin_type: str) -> List[CoinRecord]:
        coins: List[CoinRecord] = []
        cursor: Optional[str] = None
        while True:
            page = await self.call("suix_getCoins", [owner, coin_type, cursor, _PAGE_SIZE])
            coins.extend(
                CoinRecord(coin_object_id=item["coinObjectId"], balance=int(item["balance"]))
                for item in page.get("data", [])
            )
            if not page.get("hasNextPage"):
                return coins
            cursor = page.get("nextCursor")

    async def get_owned_objects(self, owner: str, struct_type: str) -> List[str]:
        query = {"filter": {"StructType": struct_type}, "options": {"showType": True}}
        object_ids: List[str] = []
        cursor: Optional[str] = None
        while True:
            page = await self.call("suix_getOwnedObjects", [owner, query, cursor, _PAGE_SIZE])
            for item in page.get("data", []):
                object_id = (item.get("data") or {}).get("objectId")
                if object_id:
                    object_ids.append(object_id)
            if not page.get("hasNextPage"):
                return object_ids
            cursor = page.get("nextCursor")

    async def get_active_validators(self) -> List[str]:
        state = await self.call("suix_getLatestSuiSystemState", [])
        return [validator["suiAddress"] for validator in state.get("activeValidators", [])]

    # -----------------------------
    # NameResolver
    # -----------------------------
    async def resolve(self, name: str) -> Optional[str]:
        return await self.call("suix_resolveNameServiceAddress", [name])
