"""Position listing and closing."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, List

from ig_mcp.common.payloads import pick
from ig_mcp.models import IGResponse

from .base import IGService

OPPOSITE_DIRECTION = {"BUY": "SELL", "SELL": "BUY"}


@dataclass(slots=True)
class PositionService(IGService):
    """Wraps the ``/positions`` endpoints."""

    async def get_positions(self) -> IGResponse:
        result = await self._request(
            "GET",
            "/positions",
            version="2",
            failure="Failed to retrieve positions",
            success="Positions retrieved successfully",
        )
        if result.success:
            result.data = pick(result.data, "positions", [])
        return result

    async def get_open_positions(self) -> IGResponse:
        """Positions whose ``status`` is ``OPEN``, in the broker's order."""
        result = await self.get_positions()
        if not result.success:
            return result

        open_positions: List[Dict[str, Any]] = [
            position
            for position in result.data
            if isinstance(position, dict) and self._status(position) == "OPEN"
        ]
        return IGResponse.ok(open_positions, "Open positions retrieved successfully")

    @staticmethod
    def _status(position: Dict[str, Any]) -> Any:
        # v2 responses nest the deal under "position"; flat rows are also accepted.
        status = position.get("status")
        if status is None and isinstance(position.get("position"), dict):
            status = position["position"].get("status")
        return status

    async def close_position(self, deal_id: str, direction: str, size: float) -> IGResponse:
        """Flatten a position by dealing the opposite direction at market."""
        payload = {
            "dealId": deal_id,
            "direction": OPPOSITE_DIRECTION[direction],
            "size": size,
            "orderType": "MARKET",
            "timeInForce": "FILL_OR_KILL",
        }
        return await self._request(
            "DELETE",
            "/positions/otc",
            version="1",
            failure=f"Failed to close position {deal_id}",
            success=f"Position {deal_id} closed successfully",
            json=payload,
        )
