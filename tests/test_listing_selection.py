from __future__ import annotations

from typing import Optional

import pytest

from collectprice.cache import ScoreCache
from collectprice.catalog import (
    MATCH_IMAGE_REF,
    MODE_HEURISTIC,
    MODE_PRICE,
    MODE_SPECIFIC_ID,
    PRICE_POLICY,
    SelectionPolicy,
)
from collectprice.config import EngineSettings
from collectprice.heuristics import build_scorer
from collectprice.models import RawListing
from collectprice.selection import (
    filter_by_condition,
    filter_by_price_window,
    rank_candidates,
    select_listing,
)
from collectprice.urls import upgrade_image

HEURISTIC_POLICY = SelectionPolicy(mode=MODE_HEURISTIC, heuristic="brown")


def _listing(
    price: str,
    *,
    item_id: str = "100",
    condition: Optional[str] = None,
    image: Optional[str] = None,
    seller: Optional[str] = "seller",
) -> RawListing:
    return RawListing(
        image_ref=image or f"https://i.ebayimg.com/images/g/img{item_id}/s-l225.jpg",
        item_ref=f"https://api.ebay.com/buy/browse/v1/item/v1|{item_id}|0",
        total_price=price,
        seller_name=seller,
        condition_name=condition,
    )


class _MapScorer:
    kind = "mapped"

    def __init__(self, scores: dict[str, float], default: float = 0.5) -> None:
        self.scores = scores
        self.default = default
        self.seen: list[str] = []

    def score(self, image_ref: str) -> float:
        self.seen.append(image_ref)
        for marker, value in self.scores.items():
            if marker in image_ref:
                return value
        return self.default


def test_empty_candidates_return_none() -> None:
    assert select_listing([], 10.0, PRICE_POLICY, EngineSettings()) is None


def test_condition_preference_beats_price_proximity() -> None:
    listings = [
        _listing("10", item_id="111", condition="Used"),
        _listing("12", item_id="222", condition="Ungraded"),
    ]
    resolved = select_listing(listings, 11.0, PRICE_POLICY, EngineSettings())
    assert resolved is not None
    assert resolved.total_price == "12"
    assert resolved.external_url == "https://www.ebay.com/itm/222"
    assert resolved.image_url == "https://i.ebayimg.com/images/g/img222/s-l1600.webp"


def test_condition_filter_falls_back_to_all_candidates() -> None:
    listings = [_listing("10", condition="Used"), _listing("30", condition=None)]
    assert filter_by_condition(listings, "ungraded") == listings
    assert filter_by_condition(listings, None) == listings


def test_condition_filter_is_case_insensitive() -> None:
    graded = _listing("10", condition="PSA 10")
    ungraded = _listing("30", condition="UNGRADED")
    assert filter_by_condition([graded, ungraded], "Ungraded") == [ungraded]


def test_price_mode_picks_closest_price() -> None:
    listings = [_listing("30", item_id="1"), _listing("19.5", item_id="2"), _listing("25", item_id="3")]
    resolved = select_listing(listings, 20.0, PRICE_POLICY, EngineSettings())
    assert resolved.total_price == "19.5"


def test_unparsable_price_ranks_last() -> None:
    listings = [_listing("n/a", item_id="1"), _listing("500", item_id="2")]
    resolved = select_listing(listings, 20.0, PRICE_POLICY, EngineSettings())
    assert resolved.total_price == "500"


def test_specific_id_short_circuits_price_distance() -> None:
    policy = SelectionPolicy(mode=MODE_SPECIFIC_ID, specific_target="205537827685")
    listings = [
        _listing("20", item_id="111"),
        _listing("95", item_id="205537827685"),
        _listing("21", item_id="333"),
    ]
    resolved = select_listing(listings, 20.0, policy, EngineSettings())
    assert resolved.total_price == "95"
    assert resolved.external_url == "https://www.ebay.com/itm/205537827685"


def test_specific_id_falls_back_to_price_when_missing() -> None:
    policy = SelectionPolicy(mode=MODE_SPECIFIC_ID, specific_target="205537827685")
    listings = [_listing("40", item_id="111"), _listing("21", item_id="333")]
    resolved = select_listing(listings, 20.0, policy, EngineSettings())
    assert resolved.total_price == "21"


def test_specific_id_can_match_image_reference() -> None:
    policy = SelectionPolicy(
        mode=MODE_SPECIFIC_ID,
        specific_target="OCAAAeSwM6BoHP8J",
        specific_field=MATCH_IMAGE_REF,
    )
    listings = [
        _listing("20", item_id="111"),
        _listing("70", item_id="222", image="https://i.ebayimg.com/images/g/OCAAAeSwM6BoHP8J/s-l225.jpg"),
    ]
    resolved = select_listing(listings, 20.0, policy, EngineSettings())
    assert resolved.total_price == "70"


def test_specific_id_only_searches_preferred_condition() -> None:
    policy = SelectionPolicy(mode=MODE_SPECIFIC_ID, specific_target="205537827685")
    listings = [
        _listing("95", item_id="205537827685", condition="Graded"),
        _listing("21", item_id="333", condition="Ungraded"),
    ]
    resolved = select_listing(listings, 20.0, policy, EngineSettings())
    assert resolved.total_price == "21"


def test_heuristic_mode_prefers_higher_score() -> None:
    scorer = _MapScorer({"imgA": 0.2, "imgB": 0.9})
    listings = [_listing("20", item_id="A"), _listing("21", item_id="B")]
    resolved = select_listing(listings, 20.0, HEURISTIC_POLICY, EngineSettings(), scorer=scorer)
    assert resolved.total_price == "21"


def test_heuristic_mode_scores_upgraded_images() -> None:
    scorer = _MapScorer({})
    listings = [_listing("20", item_id="A"), _listing("21", item_id="B")]
    select_listing(listings, 20.0, HEURISTIC_POLICY, EngineSettings(), scorer=scorer)
    assert sorted(scorer.seen) == [
        "https://i.ebayimg.com/images/g/imgA/s-l1600.webp",
        "https://i.ebayimg.com/images/g/imgB/s-l1600.webp",
    ]


def test_heuristic_tie_breaks_on_price_distance() -> None:
    scorer = _MapScorer({})
    listings = [_listing("22", item_id="A"), _listing("18.5", item_id="B")]
    resolved = select_listing(listings, 20.0, HEURISTIC_POLICY, EngineSettings(), scorer=scorer)
    assert resolved.total_price == "18.5"


def test_exact_tie_keeps_first_encountered() -> None:
    scorer = _MapScorer({})
    first = select_listing(
        [_listing("18", item_id="A"), _listing("22", item_id="B")],
        20.0,
        HEURISTIC_POLICY,
        EngineSettings(),
        scorer=scorer,
    )
    assert first.total_price == "18"
    reversed_order = select_listing(
        [_listing("22", item_id="A"), _listing("18", item_id="B")],
        20.0,
        HEURISTIC_POLICY,
        EngineSettings(),
        scorer=scorer,
    )
    assert reversed_order.total_price == "22"


def test_heuristic_price_window_excludes_far_listings() -> None:
    scorer = _MapScorer({"imgFar": 0.99}, default=0.1)
    listings = [_listing("50", item_id="Far"), _listing("21", item_id="Near")]
    resolved = select_listing(listings, 20.0, HEURISTIC_POLICY, EngineSettings(), scorer=scorer)
    assert resolved.total_price == "21"


def test_price_window_falls_back_when_nothing_is_close() -> None:
    listings = [_listing("50"), _listing("80")]
    assert filter_by_price_window(listings, 20.0, 3.0) == listings


def test_heuristic_candidate_cap_limits_scoring() -> None:
    scorer = _MapScorer({"imgC": 0.99}, default=0.1)
    listings = [_listing("20", item_id="A"), _listing("21", item_id="B"), _listing("20", item_id="C")]
    resolved = select_listing(listings, 20.0, HEURISTIC_POLICY, EngineSettings(), scorer=scorer)
    assert resolved.total_price == "20"
    assert len(scorer.seen) == 2
    assert all("imgC" not in ref for ref in scorer.seen)


def test_policy_overrides_tolerance_and_cap() -> None:
    policy = SelectionPolicy(mode=MODE_HEURISTIC, heuristic="brown", price_tolerance=50.0, candidate_cap=3)
    scorer = _MapScorer({"imgC": 0.99}, default=0.1)
    listings = [_listing("20", item_id="A"), _listing("21", item_id="B"), _listing("60", item_id="C")]
    resolved = select_listing(listings, 20.0, policy, EngineSettings(), scorer=scorer)
    assert resolved.total_price == "60"


def test_heuristic_mode_requires_scorer() -> None:
    with pytest.raises(ValueError):
        select_listing([_listing("20")], 20.0, HEURISTIC_POLICY, EngineSettings())


def test_heuristic_scores_are_cached_by_upgraded_image() -> None:
    cache = ScoreCache()
    scorer = build_scorer("brown", cache)
    listing = _listing("20", item_id="A")
    select_listing([listing], 20.0, HEURISTIC_POLICY, EngineSettings(), scorer=scorer)
    upgraded = upgrade_image(listing.image_ref)
    assert cache.get(f"brown:{upgraded}") is not None
    assert cache.get(f"brown:{listing.image_ref}") is None


@pytest.mark.parametrize("mode", [MODE_PRICE, MODE_HEURISTIC, MODE_SPECIFIC_ID])
def test_non_empty_candidates_always_resolve(mode: str) -> None:
    policy = SelectionPolicy(mode=mode, heuristic="brown", specific_target="999999")
    listings = [_listing("500", item_id="1", condition="Graded"), _listing("700", item_id="2", condition="Used")]
    scorer = build_scorer("brown", ScoreCache()) if mode == MODE_HEURISTIC else None
    resolved = select_listing(listings, 10.0, policy, EngineSettings(), scorer=scorer)
    assert resolved is not None


def test_pinned_image_replaces_listing_image() -> None:
    policy = SelectionPolicy(pinned_image_url="https://i.ebayimg.com/images/g/pinned/s-l1600.webp")
    resolved = select_listing([_listing("20")], 20.0, policy, EngineSettings())
    assert resolved.image_url == "https://i.ebayimg.com/images/g/pinned/s-l1600.webp"


def test_missing_seller_uses_default_name() -> None:
    resolved = select_listing([_listing("20", seller=None)], 20.0, PRICE_POLICY, EngineSettings())
    assert resolved.seller_name == "eBay seller"
    assert resolved.to_dict()["seller_username"] == "eBay seller"


def test_non_composite_item_ref_is_passed_through_unchanged() -> None:
    listing = RawListing("img.jpg", "javascript:alert(1)", "20", "seller", None)
    resolved = select_listing([listing], 20.0, PRICE_POLICY, EngineSettings())
    assert resolved.external_url == "javascript:alert(1)"
    assert resolved.image_url == "img.jpg"


def test_rank_candidates_orders_best_first() -> None:
    listings = [_listing("30", item_id="1"), _listing("21", item_id="2"), _listing("10", item_id="3")]
    ranked = rank_candidates(listings, 20.0)
    assert [candidate.listing.total_price for candidate in ranked] == ["21", "30", "10"]
    assert ranked[0].distance == 1.0
