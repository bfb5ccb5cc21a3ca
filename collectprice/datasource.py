from __future__ import annotations

from typing import Any, Optional
from urllib.parse import quote

import requests

from collectprice import get_logger
from collectprice.config import EngineSettings
from collectprice.models import PriceSnapshot, RawListing

LOGGER = get_logger("datasource")

LISTING_COLUMNS = "image_url,total_price,ebay_url,seller_username,condition_name"
SNAPSHOT_COLUMNS = "avg_price_with_shipping"


class DataSourceError(RuntimeError):
    def __init__(self, message: str, *, status_code: Optional[int] = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class MarketplaceDataSource:
    """HTTP client for the listing tables, the price summaries and the generic collectible API."""

    def __init__(self, settings: EngineSettings, session: Optional[requests.Session] = None) -> None:
        self.settings = settings
        self.session = session or requests.Session()

    def close(self) -> None:
        self.session.close()

    def _headers(self) -> dict[str, str]:
        if not self.settings.api_key:
            return {}
        return {
            "apikey": self.settings.api_key,
            "Authorization": f"Bearer {self.settings.api_key}",
        }

    def _get_json(
        self,
        url: str,
        params: Optional[dict[str, Any]] = None,
        *,
        authenticated: bool = True,
    ) -> Any:
        headers = self._headers() if authenticated else {}
        try:
            response = self.session.get(
                url,
                params=params,
                headers=headers,
                timeout=self.settings.request_timeout_s,
            )
        except requests.RequestException as exc:
            raise DataSourceError(f"Request to {url} failed: {exc}") from exc
        if not 200 <= response.status_code < 300:
            raise DataSourceError(
                f"Request to {url} returned HTTP {response.status_code}",
                status_code=response.status_code,
            )
        try:
            return response.json()
        except ValueError as exc:
            raise DataSourceError(f"Response from {url} was not valid JSON") from exc

    def _table_url(self, table: str) -> str:
        return f"{self.settings.supabase_url}/rest/v1/{table}"

    def fetch_listings(self, table: str) -> list[RawListing]:
        payload = self._get_json(self._table_url(table), params={"select": LISTING_COLUMNS})
        if not isinstance(payload, list):
            raise DataSourceError(f"Listing table {table} did not return a list")
        listings: list[RawListing] = []
        for record in payload:
            if not isinstance(record, dict):
                continue
            listings.append(RawListing.from_record(record))
        LOGGER.debug("Fetched %s listing(s) from %s", len(listings), table)
        return listings

    def fetch_latest_snapshot(self, table: str) -> PriceSnapshot:
        payload = self._get_json(
            self._table_url(table),
            params={"select": SNAPSHOT_COLUMNS, "order": "timestamp.desc", "limit": 1},
        )
        record = payload[0] if isinstance(payload, list) and payload else None
        if not isinstance(record, dict):
            record = None
        return PriceSnapshot.from_record(record)

    def fetch_collectible_record(self, collectible_id: str) -> dict[str, Any]:
        url = f"{self.settings.external_api_url}/collectibles/{quote(collectible_id, safe='')}"
        payload = self._get_json(url, authenticated=False)
        if not isinstance(payload, dict):
            raise DataSourceError(f"Collectible record for {collectible_id} was not an object")
        return payload
