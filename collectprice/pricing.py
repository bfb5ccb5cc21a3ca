from __future__ import annotations

import math
from typing import Any, Optional

from collectprice import get_logger
from collectprice.catalog import CollectibleCatalog
from collectprice.datasource import DataSourceError, MarketplaceDataSource
from collectprice.models import PriceResolution, PriceSnapshot, parse_price

LOGGER = get_logger("pricing")

UNKNOWN_COLLECTIBLE_PRICE = 0.0
TOKENS_PER_USD = 100

REASON_UNKNOWN = "unknown_collectible"
REASON_TRANSPORT = "transport"
REASON_MISSING_FIELD = "missing_field"


class PriceResolver:
    def __init__(self, catalog: CollectibleCatalog, source: MarketplaceDataSource) -> None:
        self.catalog = catalog
        self.source = source

    def resolve_price(self, collectible_id: str) -> float:
        return self.resolve(collectible_id).value

    def resolve(self, collectible_id: str) -> PriceResolution:
        config = self.catalog.get_config(collectible_id)
        if config is None:
            return self._resolve_unknown(collectible_id)

        try:
            snapshot = self.source.fetch_latest_snapshot(config.market_summary_table)
        except DataSourceError as exc:
            LOGGER.warning(
                "Failed to fetch price from %s, using fallback %.2f: %s",
                config.market_summary_table,
                config.fallback_price,
                exc,
            )
            return PriceResolution.fallback(config.fallback_price, REASON_TRANSPORT)
        except Exception:
            LOGGER.exception("Failed to fetch price for %s", collectible_id)
            return PriceResolution.fallback(config.fallback_price, REASON_TRANSPORT)

        if snapshot.avg_price_with_shipping is None:
            LOGGER.warning(
                "No shipping-inclusive price data available for %s, using fallback %.2f",
                collectible_id,
                config.fallback_price,
            )
            return PriceResolution.fallback(config.fallback_price, REASON_MISSING_FIELD)
        return PriceResolution.ok(snapshot.avg_price_with_shipping)

    def _resolve_unknown(self, collectible_id: str) -> PriceResolution:
        if not collectible_id:
            return PriceResolution.fallback(UNKNOWN_COLLECTIBLE_PRICE, REASON_UNKNOWN)
        try:
            record = self.source.fetch_collectible_record(collectible_id)
        except Exception as exc:
            LOGGER.error("Failed to fetch price for unknown collectible %s: %s", collectible_id, exc)
            return PriceResolution.fallback(UNKNOWN_COLLECTIBLE_PRICE, REASON_TRANSPORT)
        price = parse_price(record.get("current_price"))
        if not price:
            LOGGER.warning("Collectible %s has no usable current_price", collectible_id)
            return PriceResolution.fallback(UNKNOWN_COLLECTIBLE_PRICE, REASON_MISSING_FIELD)
        return PriceResolution.ok(price)

    def token_price(self, collectible_id: str, record: Optional[dict[str, Any]]) -> int:
        """Price in platform tokens (1 USD = 100 tokens) from a summary record."""
        config = self.catalog.get_config(collectible_id)
        if config is None:
            return 0
        usd = PriceSnapshot.from_record(record).avg_price_with_shipping
        if usd is None:
            usd = config.fallback_price
        # Round half up.
        return int(math.floor(usd * TOKENS_PER_USD + 0.5))
