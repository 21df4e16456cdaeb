"""Account related helpers."""

from __future__ import annotations

from dataclasses import dataclass

from ig_mcp.common.payloads import pick
from ig_mcp.models import IGResponse

from .base import IGService


@dataclass(slots=True)
class AccountService(IGService):
    """Encapsulates the account listing and balance lookups."""

    async def get_accounts(self) -> IGResponse:
        result = await self._request(
            "GET",
            "/accounts",
            version="1",
            failure="Failed to retrieve account information",
            success="Account information retrieved successfully",
        )
        if result.success:
            result.data = pick(result.data, "accounts", [])
        return result

    async def get_account_balance(self, account_id: str) -> IGResponse:
        return await self._request(
            "GET",
            f"/accounts/{account_id}",
            version="1",
            failure=f"Failed to retrieve balance for account {account_id}",
            success=f"Account balance for {account_id} retrieved successfully",
        )
