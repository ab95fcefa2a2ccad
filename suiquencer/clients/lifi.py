"""
LI.FI routing client.

Quoting is plain REST and handled here. Executing a route needs the user's
wallet to sign on the source chain, so execution is delegated to a
``RouteExecutor`` supplied by the wallet integration.
"""

from __future__ import annotations

from typing import Any, Awaitable, Callable, Dict, List, Optional

import httpx

from shared.config import config
from shared.logger import get_logger
from suiquencer.errors import BridgeError
from suiquencer.runtime.services import RouteUpdateHook
from suiquencer.schema.routes import Route, RouteRequest

logger = get_logger(__name__)

RouteExecutor = Callable[[Route, RouteUpdateHook], Awaitable[None]]


class LifiRouteClient:
    def __init__(
        self,
        *,
        base_url: str | None = None,
        executor: Optional[RouteExecutor] = None,
        client: httpx.AsyncClient | None = None,
        timeout: float | None = None,
    ) -> None:
        self.base_url = (base_url or config.lifi_api_url).rstrip("/")
        self.executor = executor
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(timeout=timeout or config.http_timeout_seconds)

    async def __aenter__(self) -> "LifiRouteClient":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    async def get_routes(self, request: RouteRequest) -> List[Route]:
        body = route_request_body(request)
        try:
            response = await self._client.post(
                f"{self.base_url}/advanced/routes",
                json=body,
                headers=config.lifi_headers,
            )
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            logger.error(f"LI.FI API error: {e.response.status_code} - {e.response.text[:200]}")
            raise BridgeError(f"Route request failed ({e.response.status_code}): {e.response.text[:200]}") from e

        routes = [parse_route(raw) for raw in response.json().get("routes", [])]
        logger.info(
            "LI.FI returned %d route(s) for %s -> %s (denied: %s)",
            len(routes),
            request.from_chain_id,
            request.to_chain_id,
            ", ".join(request.deny_bridges) or "-",
        )
        return routes

    async def execute_route(self, route: Route, on_update: RouteUpdateHook) -> None:
        if self.executor is None:
            raise BridgeError("No route executor configured; connect a wallet to bridge")
        await self.executor(route, on_update)


def route_request_body(request: RouteRequest) -> Dict[str, Any]:
    options: Dict[str, Any] = {"order": request.order, "integrator": config.lifi_integrator}
    if request.deny_bridges:
        options["bridges"] = {"deny": list(request.deny_bridges)}
    return {
        "fromChainId": request.from_chain_id,
        "toChainId": request.to_chain_id,
        "fromTokenAddress": request.from_token_address,
        "toTokenAddress": request.to_token_address,
        "fromAmount": request.from_amount,
        "fromAddress": request.from_address,
        "toAddress": request.to_address,
        "options": options,
    }


def parse_route(raw: Dict[str, Any]) -> Route:
    steps = raw.get("steps") or []
    tool = steps[0].get("tool") if steps else None
    return Route(
        id=str(raw.get("id", "")),
        tool=tool or "unknown",
        to_address=raw.get("toAddress"),
        from_amount=raw.get("fromAmount"),
        to_amount=raw.get("toAmount"),
        raw=raw,
    )
