from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from typing import Iterable, Optional, Sequence

from collectprice import get_logger
from collectprice.cache import ScoreCacheProtocol
from collectprice.catalog import (
    MATCH_IMAGE_REF,
    MODE_HEURISTIC,
    MODE_PRICE,
    MODE_SPECIFIC_ID,
    CollectibleCatalog,
    SelectionPolicy,
)
from collectprice.config import EngineSettings
from collectprice.datasource import DataSourceError, MarketplaceDataSource
from collectprice.heuristics import Scorer, build_scorer
from collectprice.models import RawListing, ResolvedListing
from collectprice.urls import canonicalize_item_url, upgrade_image

LOGGER = get_logger("selection")


@dataclass(frozen=True, slots=True)
class ScoredCandidate:
    listing: RawListing
    score: float
    distance: float


def filter_by_condition(listings: Sequence[RawListing], preferred: Optional[str]) -> list[RawListing]:
    if not preferred:
        return list(listings)
    expected = preferred.strip().lower()
    matching = [
        listing
        for listing in listings
        if listing.condition_name and listing.condition_name.strip().lower() == expected
    ]
    return matching or list(listings)


def filter_by_price_window(
    listings: Sequence[RawListing],
    target_price: float,
    tolerance: float,
) -> list[RawListing]:
    within = [listing for listing in listings if listing.price_distance(target_price) <= tolerance]
    return within or list(listings)


def find_specific(listings: Iterable[RawListing], target: str, field: str) -> Optional[RawListing]:
    for listing in listings:
        value = listing.image_ref if field == MATCH_IMAGE_REF else listing.item_ref
        if value and target in value:
            return listing
    return None


def rank_candidates(
    candidates: Sequence[RawListing],
    target_price: float,
    *,
    scorer: Optional[Scorer] = None,
    workers: int = 1,
) -> list[ScoredCandidate]:
    """Score candidates and order them best first.

    Without a scorer the score is the negated price distance. Ties on score are
    broken by price distance, and full ties keep their input order.
    """
    if scorer is None:
        scored = []
        for listing in candidates:
            distance = listing.price_distance(target_price)
            scored.append(ScoredCandidate(listing, -distance, distance))
    else:
        images = [upgrade_image(listing.image_ref) for listing in candidates]
        if len(images) > 1 and workers > 1:
            with ThreadPoolExecutor(max_workers=min(workers, len(images))) as executor:
                scores = list(executor.map(scorer.score, images))
        else:
            scores = [scorer.score(image) for image in images]
        scored = [
            ScoredCandidate(listing, score, listing.price_distance(target_price))
            for listing, score in zip(candidates, scores)
        ]
    return sorted(scored, key=lambda candidate: (-candidate.score, candidate.distance))


def select_listing(
    raw_listings: Sequence[RawListing],
    target_price: float,
    policy: SelectionPolicy,
    settings: EngineSettings,
    *,
    scorer: Optional[Scorer] = None,
) -> Optional[ResolvedListing]:
    if not raw_listings:
        return None

    candidates = filter_by_condition(raw_listings, settings.preferred_condition)
    if len(candidates) < len(raw_listings):
        LOGGER.debug("Condition filter kept %s of %s listing(s)", len(candidates), len(raw_listings))

    selected: Optional[RawListing] = None
    if policy.mode == MODE_SPECIFIC_ID:
        selected = find_specific(candidates, policy.specific_target or "", policy.specific_field)
        if selected is None:
            LOGGER.info(
                "Specific listing %s not found, using closest price match",
                policy.specific_target,
            )
            selected = rank_candidates(candidates, target_price)[0].listing
    elif policy.mode == MODE_HEURISTIC:
        if scorer is None:
            raise ValueError("Heuristic selection requires a scorer.")
        tolerance = (
            policy.price_tolerance if policy.price_tolerance is not None else settings.price_tolerance
        )
        cap = policy.candidate_cap if policy.candidate_cap is not None else settings.heuristic_candidate_cap
        candidates = filter_by_price_window(candidates, target_price, tolerance)[: max(1, cap)]
        ranked = rank_candidates(
            candidates,
            target_price,
            scorer=scorer,
            workers=settings.scorer_workers,
        )
        selected = ranked[0].listing
        LOGGER.info(
            "Selected listing with %s score %.1f%% (price %s, target %.2f)",
            scorer.kind,
            ranked[0].score * 100,
            selected.total_price,
            target_price,
        )
    elif policy.mode == MODE_PRICE:
        selected = rank_candidates(candidates, target_price)[0].listing
    else:
        raise ValueError(f"Unknown selection mode: {policy.mode}")

    return resolve(selected, policy, settings)


def resolve(listing: RawListing, policy: SelectionPolicy, settings: EngineSettings) -> ResolvedListing:
    image_url = policy.pinned_image_url or upgrade_image(listing.image_ref)
    external_url = canonicalize_item_url(listing.item_ref, settings.marketplace_host)
    return ResolvedListing(
        image_url=image_url,
        external_url=external_url,
        total_price=listing.total_price,
        seller_name=listing.seller_name or settings.default_seller_name,
    )


class ListingSelector:
    def __init__(
        self,
        catalog: CollectibleCatalog,
        source: MarketplaceDataSource,
        cache: ScoreCacheProtocol,
        settings: EngineSettings,
    ) -> None:
        self.catalog = catalog
        self.source = source
        self.cache = cache
        self.settings = settings
        self._scorers: dict[str, Scorer] = {}

    def scorer_for(self, profile: str) -> Scorer:
        scorer = self._scorers.get(profile)
        if scorer is None:
            scorer = build_scorer(profile, self.cache, workers=self.settings.scorer_workers)
            self._scorers[profile] = scorer
        return scorer

    def select(self, collectible_id: str, target_price: float) -> Optional[ResolvedListing]:
        entry = self.catalog.get_entry(collectible_id)
        if entry is None:
            LOGGER.warning("No listing source configured for collectible %s", collectible_id)
            return None
        table = entry.config.listings_table
        try:
            listings = self.source.fetch_listings(table)
        except DataSourceError as exc:
            LOGGER.warning("Failed to fetch listings from %s: %s", table, exc)
            return None
        if not listings:
            LOGGER.warning("No listings found in %s", table)
            return None

        try:
            scorer = self.scorer_for(entry.policy.heuristic) if entry.policy.mode == MODE_HEURISTIC else None
            resolved = select_listing(listings, target_price, entry.policy, self.settings, scorer=scorer)
        except Exception:
            LOGGER.exception("Listing selection failed for %s", collectible_id)
            return None
        if resolved is not None:
            LOGGER.info(
                "Resolved %s listing at %s (target %.2f) from %s candidate(s)",
                entry.display.name,
                resolved.total_price,
                target_price,
                len(listings),
            )
        return resolved
