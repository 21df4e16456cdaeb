"""Service helpers that keep `client.IGClient` slim."""

from .account_service import AccountService
from .auth_service import AuthService
from .market_service import RESOLUTIONS, MarketService
from .order_service import OrderService, TradeRequest
from .passthrough_service import PassthroughService
from .position_service import OPPOSITE_DIRECTION, PositionService

__all__ = [
    "AccountService",
    "AuthService",
    "MarketService",
    "OrderService",
    "PassthroughService",
    "PositionService",
    "TradeRequest",
    "OPPOSITE_DIRECTION",
    "RESOLUTIONS",
]
