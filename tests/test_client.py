"""Tests for ig_mcp.client.IGClient against the fake gateway.

Focus: request shapes (paths, Version headers, payloads) and the mapping of
broker failures into IGResponse errors.
"""

import httpx
import pytest

from ig_mcp.common.errors import FRIENDLY_MESSAGES
from ig_mcp.common.payloads import MASK
from ig_mcp.models import ErrorKind, IGSession
from ig_mcp.services import TradeRequest

from tests.fakes import session_response


# ---------------------------------------------------------------------------
# Authentication
# ---------------------------------------------------------------------------

class TestAuthenticate:
    async def test_success_returns_session_and_sets_tokens(self, broker, ig_client, credentials):
        result = await ig_client.authenticate(credentials)

        assert result.success
        session = result.data
        assert isinstance(session, IGSession)
        assert session.authenticated
        assert session.account_id == "ABC123"
        assert session.account_type == "SPREADBET"
        assert session.cst == "cst-token"

        sent = broker.last()
        assert sent.headers["Version"] == "2"
        assert sent.headers["X-IG-API-KEY"] == "ig-key"
        assert broker.last_json() == {"identifier": "trader", "password": "s3cret"}

        broker.on("GET", "/accounts", httpx.Response(200, json={"accounts": []}))
        await ig_client.get_accounts()
        assert broker.last().headers["CST"] == "cst-token"
        assert broker.last().headers["X-SECURITY-TOKEN"] == "xst-token"

    async def test_current_account_id_fallback(self, broker, ig_client, credentials):
        broker.on(
            "POST",
            "/session",
            httpx.Response(
                200,
                json={"currentAccountId": "XYZ"},
                headers={"CST": "c", "X-SECURITY-TOKEN": "x"},
            ),
        )
        result = await ig_client.authenticate(credentials)
        assert result.data.account_id == "XYZ"

    async def test_missing_tokens_is_an_authentication_error(self, broker, ig_client, credentials):
        broker.on("POST", "/session", httpx.Response(200, json={"accountId": "A"}))
        result = await ig_client.authenticate(credentials)

        assert not result.success
        assert result.kind is ErrorKind.AUTHENTICATION
        assert result.error.error_code == "AUTH_ERROR"

    async def test_rejected_login_masks_password(self, broker, ig_client, credentials):
        broker.on(
            "POST",
            "/session",
            httpx.Response(401, json={"errorCode": "error.security.invalid-details"}),
        )
        result = await ig_client.authenticate(credentials)

        assert not result.success
        assert result.kind is ErrorKind.AUTHENTICATION
        assert result.error.error_code == "error.security.invalid-details"
        assert result.debug["request"]["data"]["password"] == MASK
        assert result.debug["request"]["data"]["identifier"] == "trader"


# ---------------------------------------------------------------------------
# Error mapping
# ---------------------------------------------------------------------------

class TestErrorMapping:
    @pytest.mark.parametrize("status,kind", [
        (401, ErrorKind.AUTHENTICATION),
        (404, ErrorKind.NOT_FOUND),
        (429, ErrorKind.RATE_LIMITED),
        (502, ErrorKind.UNAVAILABLE),
    ])
    async def test_friendly_messages(self, broker, ig_client, status, kind):
        broker.on("GET", "/accounts", httpx.Response(status, json={"errorCode": "some.code"}))
        result = await ig_client.get_accounts()

        assert not result.success
        assert result.data is None
        assert result.kind is kind
        assert result.user_message == FRIENDLY_MESSAGES[kind]
        assert result.debug["status"] == status
        assert result.debug["response"] == {"errorCode": "some.code"}
        assert result.debug["request"]["method"] == "GET"

    async def test_other_status_surfaces_upstream_code(self, broker, ig_client):
        broker.on(
            "POST",
            "/positions/otc",
            httpx.Response(400, json={"errorCode": "validation.null-not-allowed.request.expiry"}),
        )
        result = await ig_client.place_order(TradeRequest(epic="CS.D.EURUSD.CFD.IP", direction="BUY", size=1))

        assert result.kind is ErrorKind.UPSTREAM
        assert "validation.null-not-allowed.request.expiry" in result.user_message
        assert result.user_message.startswith("Failed to place order")

    async def test_text_body_becomes_error_message(self, broker, ig_client):
        broker.on("GET", "/watchlists", httpx.Response(400, text="bad things"))
        result = await ig_client.get_watchlists()

        assert result.error.error_code == "UNKNOWN_ERROR"
        assert result.error.error_message == "bad things"
        assert result.debug["response"] == "bad things"

    async def test_network_failure_is_reported_not_raised(self, broker, ig_client):
        def refuse(request):
            raise httpx.ConnectError("connection refused", request=request)

        broker.on("GET", "/positions", refuse)
        result = await ig_client.get_positions()

        assert not result.success
        assert result.kind is ErrorKind.TRANSPORT
        assert result.debug["error"] == "ConnectError"
        assert result.user_message == "Failed to retrieve positions"

    async def test_malformed_success_body(self, broker, ig_client):
        broker.on("GET", "/accounts", httpx.Response(200, text="<html>"))
        result = await ig_client.get_accounts()

        assert not result.success
        assert result.kind is ErrorKind.TRANSPORT


# ---------------------------------------------------------------------------
# Positions and orders
# ---------------------------------------------------------------------------

class TestPositions:
    async def test_get_positions_unwraps_list(self, broker, ig_client):
        broker.on("GET", "/positions", httpx.Response(200, json={"positions": [{"dealId": "D1"}]}))
        result = await ig_client.get_positions()

        assert result.data == [{"dealId": "D1"}]
        assert broker.last().headers["Version"] == "2"

    async def test_open_positions_keep_order_and_filter(self, broker, ig_client):
        positions = [
            {"dealId": "D1", "status": "OPEN"},
            {"dealId": "D2", "status": "CLOSED"},
            {"position": {"dealId": "D3", "status": "OPEN"}},
            {"dealId": "D4"},
            {"dealId": "D5", "status": "OPEN"},
        ]
        broker.on("GET", "/positions", httpx.Response(200, json={"positions": positions}))
        result = await ig_client.get_open_positions()

        assert result.success
        assert [p.get("dealId") or p["position"]["dealId"] for p in result.data] == ["D1", "D3", "D5"]

    async def test_open_positions_propagates_failure(self, broker, ig_client):
        broker.on("GET", "/positions", httpx.Response(500))
        result = await ig_client.get_open_positions()
        assert result.kind is ErrorKind.UNAVAILABLE

    @pytest.mark.parametrize("held,sent", [("BUY", "SELL"), ("SELL", "BUY")])
    async def test_close_inverts_direction(self, broker, ig_client, held, sent):
        broker.on("DELETE", "/positions/otc", httpx.Response(200, json={"dealReference": "REF"}))
        result = await ig_client.close_position("DEAL1", held, 2.5)

        assert result.success
        request = broker.last()
        assert request.method == "DELETE"
        assert request.headers["Version"] == "1"
        assert broker.last_json() == {
            "dealId": "DEAL1",
            "direction": sent,
            "size": 2.5,
            "orderType": "MARKET",
            "timeInForce": "FILL_OR_KILL",
        }


class TestOrders:
    async def test_defaults_and_deal_reference(self, broker, ig_client):
        broker.on("POST", "/positions/otc", httpx.Response(200, json={"dealReference": "REF123"}))
        result = await ig_client.place_order(
            TradeRequest(epic="IX.D.FTSE.IFM.IP", direction="BUY", size=1, stop_distance=20),
            account_id="ACC9",
        )

        assert result.success
        assert result.data == {"dealReference": "REF123"}
        assert "REF123" in result.user_message
        request = broker.last()
        assert request.headers["Version"] == "2"
        assert request.headers["IG-ACCOUNT-ID"] == "ACC9"
        assert broker.last_json() == {
            "epic": "IX.D.FTSE.IFM.IP",
            "direction": "BUY",
            "size": 1,
            "orderType": "MARKET",
            "timeInForce": "EXECUTE_AND_ELIMINATE",
            "guaranteedStop": False,
            "stopDistance": 20,
            "forceOpen": True,
        }

    def test_force_open_only_false_when_explicit(self):
        base = dict(epic="E", direction="SELL", size=1)
        assert TradeRequest(**base).to_payload()["forceOpen"] is True
        assert TradeRequest(**base, force_open=False).to_payload()["forceOpen"] is False

    async def test_no_account_header_by_default(self, broker, ig_client):
        broker.on("POST", "/positions/otc", httpx.Response(200, json={"dealId": "DID"}))
        result = await ig_client.place_order(TradeRequest(epic="E", direction="BUY", size=1))

        assert "IG-ACCOUNT-ID" not in broker.last().headers
        assert "DID" in result.user_message

    async def test_missing_reference_still_succeeds(self, broker, ig_client):
        broker.on("POST", "/positions/otc", httpx.Response(200, json={"status": "?"}))
        result = await ig_client.place_order(TradeRequest(epic="E", direction="BUY", size=1))

        assert result.success
        assert "no deal reference" in result.user_message

    async def test_working_orders(self, broker, ig_client):
        broker.on("GET", "/workingorders", httpx.Response(200, json={"workingOrders": [{"id": 1}]}))
        broker.on("DELETE", "/workingorders/otc/WO1", httpx.Response(200, json={"dealReference": "R"}))

        listed = await ig_client.get_working_orders()
        assert listed.data == [{"id": 1}]

        deleted = await ig_client.delete_working_order("WO1")
        assert deleted.success
        assert broker.last().headers["Version"] == "2"


# ---------------------------------------------------------------------------
# Market data and passthrough
# ---------------------------------------------------------------------------

class TestMarkets:
    async def test_market_data_uses_v3(self, broker, ig_client):
        broker.on("GET", "/markets/CS.D.EURUSD.CFD.IP", httpx.Response(200, json={"snapshot": {"bid": 1.1}}))
        result = await ig_client.get_market_data("CS.D.EURUSD.CFD.IP")

        assert result.data == {"snapshot": {"bid": 1.1}}
        assert broker.last().headers["Version"] == "3"

    async def test_search_sends_term_as_query(self, broker, ig_client):
        broker.on("GET", "/markets", httpx.Response(200, json={"markets": []}))
        await ig_client.search_instruments("EUR/USD")

        assert broker.last().url.params["searchTerm"] == "EUR/USD"
        assert broker.last().headers["Version"] == "1"

    async def test_historical_prices_path_and_page_size(self, broker, ig_client):
        path = "/prices/E/HOUR/2024-01-01T00:00:00/2024-01-02T00:00:00"
        broker.on("GET", path, httpx.Response(200, json={"prices": [{"x": 1}], "metadata": {}}))
        result = await ig_client.get_historical_prices(
            "E", "HOUR", "2024-01-01T00:00:00", "2024-01-02T00:00:00", 50
        )

        assert result.data == {"prices": [{"x": 1}]}
        assert broker.last().url.params["pageSize"] == "50"

    async def test_watchlist_markets(self, broker, ig_client):
        broker.on("GET", "/watchlists/W1", httpx.Response(200, json={"markets": []}))
        result = await ig_client.get_watchlist_markets("W1")
        assert result.success


class TestCallApi:
    async def test_get_payload_becomes_query(self, broker, ig_client):
        broker.on("GET", "/history/activity", httpx.Response(200, json={"activities": []}))
        result = await ig_client.call_api("get", "history/activity", {"from": "2024-01-01"})

        assert result.success
        request = broker.last()
        assert request.url.params["from"] == "2024-01-01"
        assert request.headers["Version"] == "1"
        assert request.content == b""

    async def test_post_payload_becomes_body_with_headers(self, broker, ig_client):
        broker.on("PUT", "/positions/otc/D1", httpx.Response(200, json={"dealReference": "R"}))
        await ig_client.call_api(
            "PUT",
            "/positions/otc/D1",
            {"stopLevel": 10},
            version="2",
            additional_headers={"X-Count": 3},
        )

        request = broker.last()
        assert broker.last_json() == {"stopLevel": 10}
        assert request.headers["Version"] == "2"
        assert request.headers["X-Count"] == "3"

    @pytest.mark.parametrize("headers", [
        {"X-Note": "caf\u00e9"},
        {"X-Note": "line\r\nX-Injected: 1"},
        {"Bad Name": "v"},
    ])
    async def test_unsendable_headers_are_rejected(self, broker, ig_client, headers):
        result = await ig_client.call_api("GET", "/accounts", additional_headers=headers)

        assert not result.success
        assert result.kind is ErrorKind.UPSTREAM
        assert result.error.error_code == "INVALID_HEADER"
        assert result.debug["headers"] == list(headers)
        assert broker.call_count == 0

    @pytest.mark.parametrize("endpoint", ["https://evil.test/steal", "//evil.test/steal"])
    async def test_absolute_endpoints_are_rejected(self, broker, ig_client, endpoint):
        result = await ig_client.call_api("GET", endpoint)

        assert not result.success
        assert result.error.error_code == "INVALID_ENDPOINT"
        assert broker.call_count == 0
