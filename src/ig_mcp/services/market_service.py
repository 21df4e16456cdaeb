"""Market data, instrument search, price history and watchlists."""

from __future__ import annotations

from dataclasses import dataclass

from ig_mcp.common.payloads import pick
from ig_mcp.models import IGResponse

from .base import IGService

RESOLUTIONS = (
    "MINUTE",
    "MINUTE_2",
    "MINUTE_3",
    "MINUTE_5",
    "MINUTE_10",
    "MINUTE_15",
    "MINUTE_30",
    "HOUR",
    "HOUR_2",
    "HOUR_3",
    "HOUR_4",
    "DAY",
    "WEEK",
    "MONTH",
)


@dataclass(slots=True)
class MarketService(IGService):
    """Read-only market endpoints."""

    async def get_market_data(self, epic: str) -> IGResponse:
        return await self._request(
            "GET",
            f"/markets/{epic}",
            version="3",
            failure=f"Failed to retrieve market data for {epic}",
            success=f"Market data for {epic} retrieved successfully",
        )

    async def search_instruments(self, search_term: str) -> IGResponse:
        return await self._request(
            "GET",
            "/markets",
            version="1",
            failure=f'Failed to search for instruments matching "{search_term}"',
            success=f'Search results for "{search_term}" retrieved successfully',
            params={"searchTerm": search_term},
        )

    async def get_historical_prices(
        self,
        epic: str,
        resolution: str,
        start: str,
        end: str,
        page_size: int = 100,
    ) -> IGResponse:
        result = await self._request(
            "GET",
            f"/prices/{epic}/{resolution}/{start}/{end}",
            version="2",
            failure=f"Failed to retrieve historical prices for {epic}",
            success=f"Historical prices for {epic} retrieved successfully",
            params={"pageSize": page_size},
        )
        if result.success:
            result.data = {"prices": pick(result.data, "prices", [])}
        return result

    async def get_watchlists(self) -> IGResponse:
        return await self._request(
            "GET",
            "/watchlists",
            version="1",
            failure="Failed to retrieve watchlists",
            success="Watchlists retrieved successfully",
        )

    async def get_watchlist_markets(self, watchlist_id: str) -> IGResponse:
        return await self._request(
            "GET",
            f"/watchlists/{watchlist_id}",
            version="1",
            failure=f"Failed to retrieve watchlist {watchlist_id} markets",
            success=f"Watchlist {watchlist_id} markets retrieved successfully",
        )
