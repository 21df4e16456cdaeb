"""
IG REST API client.

``IGClient`` owns one ``httpx.AsyncClient`` and delegates every broker
operation to a small service object sharing it. All methods return an
:class:`~ig_mcp.models.IGResponse`; broker and network faults are reported
in that result instead of being raised.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Mapping, Optional

import httpx

from ig_mcp.config import DEFAULT_API_URL
from ig_mcp.models import IGCredentials, IGResponse, IGSession
from ig_mcp.services import (
    AccountService,
    AuthService,
    MarketService,
    OrderService,
    PassthroughService,
    PositionService,
    TradeRequest,
)


@dataclass
class IGClient:
    """
    Broker client for one connection.

    ``transport`` is handed to httpx unchanged, which lets tests plug in an
    ``httpx.MockTransport``.
    """

    api_key: str
    base_url: str = DEFAULT_API_URL
    timeout: float = 30.0
    transport: Optional[httpx.AsyncBaseTransport] = None
    http: httpx.AsyncClient = field(init=False, repr=False)
    auth_service: AuthService = field(init=False, repr=False)
    account_service: AccountService = field(init=False, repr=False)
    position_service: PositionService = field(init=False, repr=False)
    order_service: OrderService = field(init=False, repr=False)
    market_service: MarketService = field(init=False, repr=False)
    passthrough_service: PassthroughService = field(init=False, repr=False)

    def __post_init__(self) -> None:
        self.http = httpx.AsyncClient(
            base_url=self.base_url,
            headers={
                "Content-Type": "application/json",
                "Accept": "application/json",
                "X-IG-API-KEY": self.api_key,
                "Version": "2",
            },
            timeout=self.timeout,
            transport=self.transport,
        )
        self.auth_service = AuthService(self.http)
        self.account_service = AccountService(self.http)
        self.position_service = PositionService(self.http)
        self.order_service = OrderService(self.http)
        self.market_service = MarketService(self.http)
        self.passthrough_service = PassthroughService(self.http)

    async def aclose(self) -> None:
        await self.http.aclose()

    async def authenticate(self, credentials: IGCredentials) -> IGResponse:
        """
        Open an IG session with the given credentials.

        On success ``data`` is an :class:`IGSession` and its tokens become
        default headers of this client.
        """
        return await self.auth_service.authenticate(credentials)

    def set_session(self, session: IGSession) -> None:
        self.auth_service.set_session(session)

    async def get_accounts(self) -> IGResponse:
        return await self.account_service.get_accounts()

    async def get_account_balance(self, account_id: str) -> IGResponse:
        return await self.account_service.get_account_balance(account_id)

    async def get_positions(self) -> IGResponse:
        return await self.position_service.get_positions()

    async def get_open_positions(self) -> IGResponse:
        return await self.position_service.get_open_positions()

    async def close_position(self, deal_id: str, direction: str, size: float) -> IGResponse:
        """Close ``size`` of a position; the deal goes out in the opposite direction."""
        return await self.position_service.close_position(deal_id, direction, size)

    async def place_order(self, request: TradeRequest, account_id: Optional[str] = None) -> IGResponse:
        return await self.order_service.place_order(request, account_id)

    async def get_working_orders(self) -> IGResponse:
        return await self.order_service.get_working_orders()

    async def delete_working_order(self, deal_id: str) -> IGResponse:
        return await self.order_service.delete_working_order(deal_id)

    async def get_market_data(self, epic: str) -> IGResponse:
        return await self.market_service.get_market_data(epic)

    async def search_instruments(self, search_term: str) -> IGResponse:
        return await self.market_service.search_instruments(search_term)

    async def get_historical_prices(
        self,
        epic: str,
        resolution: str,
        start: str,
        end: str,
        page_size: int = 100,
    ) -> IGResponse:
        return await self.market_service.get_historical_prices(
            epic, resolution, start, end, page_size
        )

    async def get_watchlists(self) -> IGResponse:
        return await self.market_service.get_watchlists()

    async def get_watchlist_markets(self, watchlist_id: str) -> IGResponse:
        return await self.market_service.get_watchlist_markets(watchlist_id)

    async def call_api(
        self,
        method: str,
        endpoint: str,
        payload: Optional[Mapping[str, Any]] = None,
        version: str = "1",
        additional_headers: Optional[Mapping[str, Any]] = None,
    ) -> IGResponse:
        """Generic caller for endpoints without a dedicated method."""
        return await self.passthrough_service.call_api(
            method, endpoint, payload, version, additional_headers
        )


__all__ = ["IGClient", "TradeRequest"]
