from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Optional


def parse_price(value: Any) -> Optional[float]:
    if value is None or isinstance(value, bool):
        return None
    try:
        parsed = float(str(value).strip().lstrip("$").replace(",", ""))
    except ValueError:
        return None
    if parsed != parsed or parsed in (float("inf"), float("-inf")):
        return None
    return parsed


def clamp_score(value: float) -> float:
    return max(0.0, min(1.0, float(value)))


@dataclass(frozen=True, slots=True)
class CollectibleConfig:
    uuid: str
    market_summary_table: str
    price_history_table: str
    fallback_price: float

    @property
    def listings_table(self) -> str:
        # ebay_<name>_market_summary -> ebay_<name>_listings
        suffix = "_market_summary"
        if self.market_summary_table.endswith(suffix):
            return self.market_summary_table[: -len(suffix)] + "_listings"
        return self.market_summary_table + "_listings"


@dataclass(frozen=True, slots=True)
class CollectibleDisplayData:
    id: str
    name: str
    image_url: str
    set_name: str


@dataclass(frozen=True, slots=True)
class RawListing:
    image_ref: str
    item_ref: str
    total_price: str
    seller_name: Optional[str] = None
    condition_name: Optional[str] = None

    @property
    def price_value(self) -> Optional[float]:
        return parse_price(self.total_price)

    def price_distance(self, target_price: float) -> float:
        price = self.price_value
        if price is None:
            return float("inf")
        return abs(price - target_price)

    @classmethod
    def from_record(cls, record: dict[str, Any]) -> "RawListing":
        total_price = record.get("total_price")
        condition = record.get("condition_name")
        seller = record.get("seller_username")
        return cls(
            image_ref=str(record.get("image_url") or ""),
            item_ref=str(record.get("ebay_url") or ""),
            total_price="" if total_price is None else str(total_price),
            seller_name=str(seller) if seller else None,
            condition_name=str(condition) if condition else None,
        )


@dataclass(frozen=True, slots=True)
class ResolvedListing:
    image_url: str
    external_url: str
    total_price: str
    seller_name: str

    def to_dict(self) -> dict[str, str]:
        return {
            "image_url": self.image_url,
            "ebay_url": self.external_url,
            "total_price": self.total_price,
            "seller_username": self.seller_name,
        }


@dataclass(frozen=True, slots=True)
class ScoreCacheEntry:
    score: float
    computed_at_ms: int

    def __post_init__(self) -> None:
        object.__setattr__(self, "score", clamp_score(self.score))


@dataclass(frozen=True, slots=True)
class PriceSnapshot:
    avg_price_with_shipping: Optional[float]

    @classmethod
    def from_record(cls, record: Optional[dict[str, Any]]) -> "PriceSnapshot":
        if not record:
            return cls(avg_price_with_shipping=None)
        value = parse_price(record.get("avg_price_with_shipping"))
        # A zero average is how the summary tables mark "no data yet".
        if not value:
            value = None
        return cls(avg_price_with_shipping=value)


@dataclass(frozen=True, slots=True)
class PriceResolution:
    """Resolved price plus the reason it came from a fallback, if it did."""

    value: float
    fallback_reason: Optional[str] = None

    @property
    def is_fallback(self) -> bool:
        return self.fallback_reason is not None

    @classmethod
    def ok(cls, value: float) -> "PriceResolution":
        return cls(value=value)

    @classmethod
    def fallback(cls, value: float, reason: str) -> "PriceResolution":
        return cls(value=value, fallback_reason=reason)
