"""Envato Market catalog API connector."""

import logging
from dataclasses import dataclass

import httpx

from ..errors import SourceError, SourceRateLimited, SourceTimeout
from ..http_client import http
from ..utils import safe_float, safe_int

log = logging.getLogger(__name__)


@dataclass(frozen=True)
class SourceReading:
    """What one catalog lookup tells us about an item."""

    sales_count: int
    price: float | None = None
    author: str | None = None
    category: str | None = None


class EnvatoConnector:
    """Envato v3 catalog API — optional bearer token, no retries.

    Failures are raised as SourceError subclasses so the scan loop can count
    them per item and move on.
    """

    ITEM_URL = "https://api.envato.com/v3/market/catalog/item"

    def __init__(self, api_token: str = "", timeout: float = 10.0, item_url: str | None = None):
        self.api_token = api_token
        self.timeout = timeout
        self.item_url = item_url or self.ITEM_URL

    def _headers(self) -> dict:
        headers = {"User-Agent": "ThemeForest Sales Tracker"}
        if self.api_token:
            headers["Authorization"] = f"Bearer {self.api_token}"
        return headers

    async def get_item(self, source_id: str) -> dict:
        """Raw catalog payload for one item."""
        try:
            r = await http.get(
                self.item_url,
                params={"id": source_id},
                headers=self._headers(),
                timeout=self.timeout,
            )
        except httpx.TimeoutException as e:
            log.warning("Envato timeout for item %s", source_id)
            raise SourceTimeout(f"Request timeout for item {source_id}", source_id=source_id) from e
        except httpx.HTTPError as e:
            log.warning("Envato request error for item %s: %s", source_id, e)
            raise SourceError(f"Request failed for item {source_id}: {e}", source_id=source_id) from e

        if r.status_code == 429:
            retry_after = safe_int(r.headers.get("Retry-After"))
            hint = f"Retry after {retry_after} seconds" if retry_after is not None else "Please wait before retrying"
            raise SourceRateLimited(f"Rate limit exceeded. {hint}", source_id=source_id, retry_after=retry_after)
        if r.status_code != 200:
            raise SourceError(
                f"API request failed: {r.status_code} {r.reason_phrase}",
                source_id=source_id,
                status_code=r.status_code,
            )

        data = r.json()
        log.debug("Fetched Envato item %s: %s", source_id, data.get("name"))
        return data

    async def fetch_item(self, source_id: str) -> SourceReading:
        data = await self.get_item(source_id)
        sales = safe_int(data.get("number_of_sales"))
        if sales is None:
            raise SourceError(f"No sales count in response for item {source_id}", source_id=source_id)

        cents = safe_float(data.get("price_cents"))
        return SourceReading(
            sales_count=sales,
            price=cents / 100 if cents is not None else None,
            author=data.get("author_username") or None,
            category=data.get("classification") or data.get("site") or None,
        )
