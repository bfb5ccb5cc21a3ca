"""Visual heuristic scorers.

A scorer maps an image reference to a score in [0, 1] for one visual property.
The current scorers are deterministic stand-ins for pixel analysis: they look
the image's filename stem up in a small table of base scores and add a bounded
jitter derived from the stem's characters. Callers only rely on the
``score(image_ref) -> float`` contract, so a real image analyser can replace
``HeuristicScorer`` without touching the selector.
"""

from __future__ import annotations

import math
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from typing import Mapping, Optional, Protocol

from collectprice import get_logger
from collectprice.cache import ScoreCacheProtocol, score_key
from collectprice.models import clamp_score

LOGGER = get_logger("heuristics")


class Scorer(Protocol):
    kind: str

    def score(self, image_ref: str) -> float:
        ...


def image_token(image_ref: str) -> str:
    if not image_ref:
        return ""
    filename = image_ref.split("/")[-1]
    return filename.split(".")[0]


def token_jitter(token: str) -> float:
    char_sum = sum(ord(char) for char in token)
    return (char_sum % 100) / 1000 - 0.05


@dataclass(frozen=True, slots=True)
class HeuristicScorer:
    kind: str
    base_scores: Mapping[str, float]
    default: float

    def base_score(self, token: str) -> float:
        if token in self.base_scores:
            return self.base_scores[token]
        for name, value in self.base_scores.items():
            if name and name in token:
                return value
        return self.default

    def score(self, image_ref: str) -> float:
        token = image_token(image_ref)
        return clamp_score(self.base_score(token) + token_jitter(token))


BROWN = HeuristicScorer(
    "brown",
    {
        "chestnut_1": 0.243,
        "cocoa_variant": 0.287,
        "dark_brown": 0.256,
        "light_chestnut": 0.189,
        "tan_variant": 0.167,
    },
    default=0.200,
)
BLUE = HeuristicScorer(
    "blue",
    {"blue_variant": 0.584, "navy_blue": 0.623, "light_blue": 0.453, "ocean_blue": 0.567},
    default=0.480,
)
WHITE = HeuristicScorer(
    "white",
    {"white_variant": 0.670, "cream_white": 0.623, "pure_white": 0.734, "off_white": 0.567},
    default=0.580,
)
CENTRIC_BLUE = HeuristicScorer(
    "centric_blue",
    {"centric_blue": 0.523, "navy_center": 0.467, "deep_blue": 0.589, "royal_blue": 0.534},
    default=0.480,
)
CENTRIC_GRAY = HeuristicScorer(
    "centric_gray",
    {"gray_center": 0.402, "silver_gray": 0.356, "charcoal_gray": 0.423, "neutral_gray": 0.378},
    default=0.385,
)
WHITE_MIDDLE = HeuristicScorer(
    "white_middle",
    {"white_middle": 0.105, "center_white": 0.089, "pure_center": 0.123, "bright_middle": 0.094},
    default=0.095,
)
CENTRAL_PINK = HeuristicScorer(
    "central_pink",
    {"pink_center": 0.696, "berry_pink": 0.643, "magenta_center": 0.721, "lychee_pink": 0.678},
    default=0.665,
)
NON_CENTRIC_WHITE = HeuristicScorer(
    "non_centric_white",
    {"outer_white": 0.602, "edge_white": 0.567, "non_center": 0.634, "border_white": 0.589},
    default=0.595,
)

BASE_SCORERS: dict[str, HeuristicScorer] = {
    scorer.kind: scorer
    for scorer in (
        BROWN,
        BLUE,
        WHITE,
        CENTRIC_BLUE,
        CENTRIC_GRAY,
        WHITE_MIDDLE,
        CENTRAL_PINK,
        NON_CENTRIC_WHITE,
    )
}


class CachedScorer:
    def __init__(self, scorer: Scorer, cache: ScoreCacheProtocol) -> None:
        self.scorer = scorer
        self.cache = cache
        self.kind = scorer.kind

    def score(self, image_ref: str) -> float:
        key = score_key(self.kind, image_ref)
        cached = self.cache.get(key)
        if cached is not None:
            LOGGER.debug("Score cache hit for %s", key)
            return cached.score
        value = clamp_score(self.scorer.score(image_ref))
        self.cache.set(key, value)
        LOGGER.debug("Computed %s score %.3f for %s", self.kind, value, image_ref)
        return value


@dataclass(frozen=True, slots=True)
class WeightedTerm:
    """``weight`` times the score of ``kinds``; several kinds contribute their max."""

    weight: float
    kinds: tuple[str, ...]


HEURISTIC_PROFILES: dict[str, tuple[WeightedTerm, ...]] = {
    "big_energy": (
        WeightedTerm(0.6, ("non_centric_white",)),
        WeightedTerm(0.4, ("centric_blue",)),
    ),
    "sea_salt": (
        WeightedTerm(0.4, ("centric_blue", "centric_gray")),
        WeightedTerm(0.6, ("non_centric_white",)),
    ),
    "brown": (WeightedTerm(1.0, ("brown",)),),
    "white": (WeightedTerm(1.0, ("white",)),),
    "white_middle": (WeightedTerm(1.0, ("white_middle",)),),
    "central_pink": (WeightedTerm(1.0, ("central_pink",)),),
}


class CombinedScorer:
    def __init__(
        self,
        name: str,
        terms: tuple[WeightedTerm, ...],
        cache: ScoreCacheProtocol,
        *,
        scorers: Optional[Mapping[str, Scorer]] = None,
        workers: int = 3,
    ) -> None:
        if not terms:
            raise ValueError(f"Heuristic profile {name} has no terms.")
        total = sum(term.weight for term in terms)
        if not math.isclose(total, 1.0, abs_tol=1e-9):
            raise ValueError(f"Heuristic profile {name} weights sum to {total}, expected 1.0.")
        available = scorers if scorers is not None else BASE_SCORERS
        kinds = sorted({kind for term in terms for kind in term.kinds})
        missing = [kind for kind in kinds if kind not in available]
        if missing:
            raise ValueError(f"Heuristic profile {name} uses unknown scorers: {', '.join(missing)}")
        self.name = name
        self.kind = f"combined_{name}"
        self.terms = terms
        self.cache = cache
        self.workers = max(1, workers)
        self._scorers = {kind: CachedScorer(available[kind], cache) for kind in kinds}

    def component_scores(self, image_ref: str) -> dict[str, float]:
        if len(self._scorers) == 1:
            kind, scorer = next(iter(self._scorers.items()))
            return {kind: scorer.score(image_ref)}
        with ThreadPoolExecutor(max_workers=min(self.workers, len(self._scorers))) as executor:
            futures = {
                kind: executor.submit(scorer.score, image_ref)
                for kind, scorer in self._scorers.items()
            }
            return {kind: future.result() for kind, future in futures.items()}

    def score(self, image_ref: str) -> float:
        key = score_key(self.kind, image_ref)
        cached = self.cache.get(key)
        if cached is not None:
            return cached.score
        try:
            components = self.component_scores(image_ref)
        except Exception:
            LOGGER.exception("Heuristic %s failed for %s", self.name, image_ref)
            return 0.0
        combined = clamp_score(
            sum(term.weight * max(components[kind] for kind in term.kinds) for term in self.terms)
        )
        self.cache.set(key, combined)
        return combined


def build_scorer(profile: str, cache: ScoreCacheProtocol, *, workers: int = 3) -> CombinedScorer:
    terms = HEURISTIC_PROFILES.get(profile)
    if terms is None:
        raise KeyError(f"Unknown heuristic profile: {profile}")
    return CombinedScorer(profile, terms, cache, workers=workers)
