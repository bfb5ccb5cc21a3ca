from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Optional

DEFAULT_SUPABASE_URL = "https://rrhdrkmomngxcjsatcpy.supabase.co"
DEFAULT_EXTERNAL_API_URL = "https://token-market-backend-production.up.railway.app"
DEFAULT_MARKETPLACE_HOST = "www.ebay.com"

DEFAULT_REQUEST_TIMEOUT_S = 10.0
DEFAULT_SCORE_CACHE_TTL_HOURS = 24

PREFERRED_CONDITION = "ungraded"
PRICE_TOLERANCE = 3.0
HEURISTIC_CANDIDATE_CAP = 2
DEFAULT_SCORER_WORKERS = 3
DEFAULT_SELLER_NAME = "eBay seller"


def _env_str(name: str, default: str) -> str:
    value = os.getenv(name)
    if value is None or not value.strip():
        return default
    return value.strip()


def _env_optional(name: str) -> Optional[str]:
    value = os.getenv(name)
    if value is None or not value.strip():
        return None
    return value.strip()


def _env_float(name: str, default: float) -> float:
    raw_value = os.getenv(name)
    if not raw_value:
        return default
    try:
        return float(raw_value)
    except ValueError:
        return default


def _env_int(name: str, default: int) -> int:
    raw_value = os.getenv(name)
    if not raw_value:
        return default
    try:
        return int(raw_value)
    except ValueError:
        return default


@dataclass(slots=True)
class EngineSettings:
    supabase_url: str = DEFAULT_SUPABASE_URL
    api_key: Optional[str] = None
    external_api_url: str = DEFAULT_EXTERNAL_API_URL
    marketplace_host: str = DEFAULT_MARKETPLACE_HOST
    request_timeout_s: float = DEFAULT_REQUEST_TIMEOUT_S
    score_cache_ttl_hours: int = DEFAULT_SCORE_CACHE_TTL_HOURS
    preferred_condition: Optional[str] = PREFERRED_CONDITION
    price_tolerance: float = PRICE_TOLERANCE
    heuristic_candidate_cap: int = HEURISTIC_CANDIDATE_CAP
    scorer_workers: int = DEFAULT_SCORER_WORKERS
    default_seller_name: str = DEFAULT_SELLER_NAME

    @property
    def score_cache_ttl_seconds(self) -> int:
        return self.score_cache_ttl_hours * 60 * 60

    @classmethod
    def from_env(cls, **overrides: object) -> "EngineSettings":
        preferred_condition: Optional[str] = _env_str("PREFERRED_CONDITION", PREFERRED_CONDITION)
        if preferred_condition and preferred_condition.lower() in {"none", "any", "off"}:
            preferred_condition = None
        kwargs: dict[str, object] = {
            "supabase_url": _env_str("SUPABASE_URL", DEFAULT_SUPABASE_URL).rstrip("/"),
            "api_key": _env_optional("VRNO_API_KEY"),
            "external_api_url": _env_str("EXTERNAL_API_URL", DEFAULT_EXTERNAL_API_URL).rstrip("/"),
            "marketplace_host": _env_str("MARKETPLACE_HOST", DEFAULT_MARKETPLACE_HOST),
            "request_timeout_s": max(1.0, _env_float("REQUEST_TIMEOUT_S", DEFAULT_REQUEST_TIMEOUT_S)),
            "score_cache_ttl_hours": max(
                1, _env_int("SCORE_CACHE_TTL_HOURS", DEFAULT_SCORE_CACHE_TTL_HOURS)
            ),
            "preferred_condition": preferred_condition,
            "price_tolerance": max(0.0, _env_float("PRICE_TOLERANCE", PRICE_TOLERANCE)),
            "heuristic_candidate_cap": max(
                1, _env_int("HEURISTIC_CANDIDATE_CAP", HEURISTIC_CANDIDATE_CAP)
            ),
            "scorer_workers": max(1, _env_int("SCORER_WORKERS", DEFAULT_SCORER_WORKERS)),
            "default_seller_name": _env_str("DEFAULT_SELLER_NAME", DEFAULT_SELLER_NAME),
        }
        kwargs.update(overrides)
        return cls(**kwargs)
