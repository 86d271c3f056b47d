"""
test_envato_connector.py — Tests for the Envato catalog connector

Covers: request shape (bearer token, id param), reading extraction
(cents to price, classification/site fallback), and error mapping
(timeout, 429 with Retry-After, other status, transport error).
"""

from unittest.mock import AsyncMock, MagicMock, patch

import httpx
import pytest

from salestrack.connectors.envato import EnvatoConnector
from salestrack.errors import SourceError, SourceRateLimited, SourceTimeout


def _response(status_code=200, payload=None, headers=None, reason="OK"):
    resp = MagicMock()
    resp.status_code = status_code
    resp.reason_phrase = reason
    resp.headers = headers or {}
    resp.json.return_value = payload or {}
    return resp


AVADA_PAYLOAD = {
    "id": 2833226,
    "name": "Avada | Website Builder For WordPress & WooCommerce",
    "number_of_sales": 987654,
    "price_cents": 6900,
    "author_username": "ThemeFusion",
    "classification": "wordpress/corporate",
    "site": "themeforest.net",
}


class TestFetchItem:
    @pytest.mark.asyncio
    async def test_reading_from_payload(self):
        c = EnvatoConnector(api_token="tok-123", timeout=10)
        with patch("salestrack.connectors.envato.http") as mock_client:
            mock_client.get = AsyncMock(return_value=_response(payload=AVADA_PAYLOAD))
            reading = await c.fetch_item("2833226")

        assert reading.sales_count == 987654
        assert reading.price == 69.0
        assert reading.author == "ThemeFusion"
        assert reading.category == "wordpress/corporate"

        kwargs = mock_client.get.call_args.kwargs
        assert kwargs["params"] == {"id": "2833226"}
        assert kwargs["headers"]["Authorization"] == "Bearer tok-123"
        assert kwargs["timeout"] == 10

    @pytest.mark.asyncio
    async def test_no_token_no_auth_header(self):
        c = EnvatoConnector()
        with patch("salestrack.connectors.envato.http") as mock_client:
            mock_client.get = AsyncMock(return_value=_response(payload=AVADA_PAYLOAD))
            await c.fetch_item("2833226")
        assert "Authorization" not in mock_client.get.call_args.kwargs["headers"]

    @pytest.mark.asyncio
    async def test_category_falls_back_to_site_and_price_optional(self):
        payload = {"number_of_sales": 12, "site": "codecanyon.net", "classification": ""}
        with patch("salestrack.connectors.envato.http") as mock_client:
            mock_client.get = AsyncMock(return_value=_response(payload=payload))
            reading = await EnvatoConnector().fetch_item("1")
        assert reading.category == "codecanyon.net"
        assert reading.price is None
        assert reading.author is None

    @pytest.mark.asyncio
    async def test_missing_sales_count_is_an_error(self):
        with patch("salestrack.connectors.envato.http") as mock_client:
            mock_client.get = AsyncMock(return_value=_response(payload={"name": "x"}))
            with pytest.raises(SourceError):
                await EnvatoConnector().fetch_item("1")


class TestErrors:
    @pytest.mark.asyncio
    async def test_rate_limited_with_retry_after(self):
        with patch("salestrack.connectors.envato.http") as mock_client:
            mock_client.get = AsyncMock(return_value=_response(429, headers={"Retry-After": "30"}, reason="Too Many Requests"))
            with pytest.raises(SourceRateLimited) as exc:
                await EnvatoConnector().fetch_item("2833226")
        assert exc.value.retry_after == 30
        assert exc.value.kind == "rate_limited"
        assert "Retry after 30 seconds" in str(exc.value)

    @pytest.mark.asyncio
    async def test_rate_limited_without_hint(self):
        with patch("salestrack.connectors.envato.http") as mock_client:
            mock_client.get = AsyncMock(return_value=_response(429))
            with pytest.raises(SourceRateLimited) as exc:
                await EnvatoConnector().fetch_item("2833226")
        assert exc.value.retry_after is None

    @pytest.mark.asyncio
    async def test_timeout(self):
        with patch("salestrack.connectors.envato.http") as mock_client:
            mock_client.get = AsyncMock(side_effect=httpx.ReadTimeout("timed out"))
            with pytest.raises(SourceTimeout) as exc:
                await EnvatoConnector().fetch_item("2833226")
        assert exc.value.source_id == "2833226"

    @pytest.mark.asyncio
    async def test_server_error(self):
        with patch("salestrack.connectors.envato.http") as mock_client:
            mock_client.get = AsyncMock(return_value=_response(503, reason="Service Unavailable"))
            with pytest.raises(SourceError) as exc:
                await EnvatoConnector().fetch_item("2833226")
        assert exc.value.status_code == 503
        assert not isinstance(exc.value, (SourceTimeout, SourceRateLimited))

    @pytest.mark.asyncio
    async def test_transport_error(self):
        with patch("salestrack.connectors.envato.http") as mock_client:
            mock_client.get = AsyncMock(side_effect=httpx.ConnectError("refused"))
            with pytest.raises(SourceError):
                await EnvatoConnector().fetch_item("2833226")
