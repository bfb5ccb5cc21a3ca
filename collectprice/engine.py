from __future__ import annotations

from typing import Optional

from collectprice import get_logger
from collectprice.cache import ScoreCache, ScoreCacheProtocol
from collectprice.catalog import CollectibleCatalog, default_catalog
from collectprice.config import EngineSettings
from collectprice.datasource import MarketplaceDataSource
from collectprice.models import CollectibleConfig, CollectibleDisplayData, PriceResolution, ResolvedListing
from collectprice.pricing import PriceResolver
from collectprice.selection import ListingSelector

LOGGER = get_logger("engine")


class ListingEngine:
    """Entry point used by the UI layer.

    Resolves a collectible's current price and picks the marketplace listing
    shown next to it. None of the public methods raise: failures degrade to the
    configured fallback price, ``0.0`` or ``None``.
    """

    def __init__(
        self,
        settings: Optional[EngineSettings] = None,
        *,
        catalog: Optional[CollectibleCatalog] = None,
        source: Optional[MarketplaceDataSource] = None,
        cache: Optional[ScoreCacheProtocol] = None,
    ) -> None:
        self.settings = settings or EngineSettings()
        self.catalog = catalog or default_catalog()
        self.source = source or MarketplaceDataSource(self.settings)
        self.cache = cache if cache is not None else ScoreCache(self.settings.score_cache_ttl_seconds)
        self.prices = PriceResolver(self.catalog, self.source)
        self.selector = ListingSelector(self.catalog, self.source, self.cache, self.settings)

    @classmethod
    def from_env(cls, **overrides: object) -> "ListingEngine":
        return cls(EngineSettings.from_env(**overrides))

    def close(self) -> None:
        self.source.close()

    def __enter__(self) -> "ListingEngine":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def resolve_price(self, collectible_id: str) -> float:
        return self.resolve_price_detail(collectible_id).value

    def resolve_price_detail(self, collectible_id: str) -> PriceResolution:
        try:
            return self.prices.resolve(collectible_id)
        except Exception:
            LOGGER.exception("Price resolution failed for %s", collectible_id)
            config = self.catalog.get_config(collectible_id)
            fallback = config.fallback_price if config else 0.0
            return PriceResolution.fallback(fallback, "error")

    def select_listing(self, collectible_id: str, target_price: float) -> Optional[ResolvedListing]:
        try:
            return self.selector.select(collectible_id, target_price)
        except Exception:
            LOGGER.exception("Listing lookup failed for %s", collectible_id)
            return None

    def resolve_listing(self, collectible_id: str) -> tuple[float, Optional[ResolvedListing]]:
        price = self.resolve_price(collectible_id)
        return price, self.select_listing(collectible_id, price)

    def token_price(self, collectible_id: str, record: Optional[dict] = None) -> int:
        return self.prices.token_price(collectible_id, record)

    def get_collectible_config(self, collectible_id: str) -> Optional[CollectibleConfig]:
        return self.catalog.get_config(collectible_id)

    def get_collectible_display_data(self, collectible_id: str) -> Optional[CollectibleDisplayData]:
        return self.catalog.get_display_data(collectible_id)
