"""Order placement and working order management."""

from __future__ import annotations

import json
from dataclasses import dataclass
from typing import Any, Dict, Optional

from loguru import logger

from ig_mcp.common.payloads import pick, strip_none
from ig_mcp.models import IGResponse

from .base import IGService


@dataclass(slots=True)
class TradeRequest:
    """Fields accepted by ``POST /positions/otc``."""

    epic: str
    direction: str
    size: float
    expiry: Optional[str] = None
    order_type: Optional[str] = None
    level: Optional[float] = None
    time_in_force: Optional[str] = None
    good_till_date: Optional[str] = None
    guaranteed_stop: Optional[bool] = None
    stop_level: Optional[float] = None
    stop_distance: Optional[float] = None
    limit_level: Optional[float] = None
    limit_distance: Optional[float] = None
    currency_code: Optional[str] = None
    force_open: Optional[bool] = None

    def to_payload(self) -> Dict[str, Any]:
        """Broker payload with defaults applied and unset fields removed."""
        return strip_none(
            {
                "epic": self.epic,
                "expiry": self.expiry,
                "direction": self.direction,
                "size": self.size,
                "orderType": self.order_type or "MARKET",
                "timeInForce": self.time_in_force or "EXECUTE_AND_ELIMINATE",
                "level": self.level,
                "guaranteedStop": bool(self.guaranteed_stop),
                "stopLevel": self.stop_level,
                "stopDistance": self.stop_distance,
                "limitLevel": self.limit_level,
                "limitDistance": self.limit_distance,
                "currencyCode": self.currency_code,
                "forceOpen": self.force_open is not False,
                "goodTillDate": self.good_till_date,
            }
        )


@dataclass(slots=True)
class OrderService(IGService):
    """Wraps OTC deal creation and the ``/workingorders`` endpoints."""

    async def place_order(self, request: TradeRequest, account_id: Optional[str] = None) -> IGResponse:
        payload = request.to_payload()
        logger.info(
            "Placing IG order | epic={epic} direction={direction} size={size} type={order_type} account={account}",
            epic=request.epic,
            direction=request.direction,
            size=request.size,
            order_type=payload["orderType"],
            account=account_id,
        )
        headers = {"IG-ACCOUNT-ID": account_id} if account_id else None
        result = await self._request(
            "POST",
            "/positions/otc",
            version="2",
            failure="Failed to place order",
            success="Order placed successfully",
            json=payload,
            headers=headers,
        )
        if not result.success:
            return result

        deal_reference = pick(result.data, "dealReference") or pick(result.data, "dealReferenceId")
        deal_id = pick(result.data, "dealId")
        if deal_reference:
            result.user_message = f"Order placed successfully. Deal reference: {deal_reference}"
        elif deal_id:
            result.user_message = f"Order placed successfully. Deal ID: {deal_id}"
        else:
            logger.warning("IG accepted the order without a deal reference or deal id")
            result.user_message = (
                "Order accepted but no deal reference received. "
                f"Response: {json.dumps(result.data, default=str)}"
            )
        return result

    async def get_working_orders(self) -> IGResponse:
        result = await self._request(
            "GET",
            "/workingorders",
            version="2",
            failure="Failed to retrieve working orders",
            success="Working orders retrieved successfully",
        )
        if result.success:
            result.data = pick(result.data, "workingOrders", [])
        return result

    async def delete_working_order(self, deal_id: str) -> IGResponse:
        return await self._request(
            "DELETE",
            f"/workingorders/otc/{deal_id}",
            version="2",
            failure=f"Failed to delete working order {deal_id}",
            success=f"Working order {deal_id} deleted successfully",
        )
