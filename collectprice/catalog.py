"""Static collectible catalog.

Every collectible is defined once and registered under each of its aliases
(UUID and, where one exists, a human-readable slug). Alias lookups hand back
the same frozen records, so a config resolved by slug is identical to the one
resolved by UUID.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, Iterator, Optional

from collectprice.models import CollectibleConfig, CollectibleDisplayData

MODE_PRICE = "price"
MODE_HEURISTIC = "heuristic"
MODE_SPECIFIC_ID = "specific_id"
SELECTION_MODES = (MODE_PRICE, MODE_HEURISTIC, MODE_SPECIFIC_ID)

MATCH_ITEM_REF = "item_ref"
MATCH_IMAGE_REF = "image_ref"


@dataclass(frozen=True, slots=True)
class SelectionPolicy:
    mode: str = MODE_PRICE
    heuristic: Optional[str] = None
    specific_target: Optional[str] = None
    specific_field: str = MATCH_ITEM_REF
    pinned_image_url: Optional[str] = None
    # None means "use EngineSettings".
    price_tolerance: Optional[float] = None
    candidate_cap: Optional[int] = None

    def __post_init__(self) -> None:
        if self.mode not in SELECTION_MODES:
            raise ValueError(f"Unknown selection mode: {self.mode}")
        if self.mode == MODE_HEURISTIC and not self.heuristic:
            raise ValueError("Heuristic selection requires a heuristic profile name.")
        if self.mode == MODE_SPECIFIC_ID and not self.specific_target:
            raise ValueError("Specific-id selection requires a target substring.")
        if self.specific_field not in (MATCH_ITEM_REF, MATCH_IMAGE_REF):
            raise ValueError(f"Unknown specific-id match field: {self.specific_field}")


PRICE_POLICY = SelectionPolicy()


@dataclass(frozen=True, slots=True)
class CatalogEntry:
    config: CollectibleConfig
    display: CollectibleDisplayData
    slug: Optional[str] = None
    policy: SelectionPolicy = PRICE_POLICY

    @property
    def aliases(self) -> tuple[str, ...]:
        if self.slug:
            return (self.config.uuid, self.slug)
        return (self.config.uuid,)


class CollectibleCatalog:
    def __init__(self, entries: Iterable[CatalogEntry]) -> None:
        self._entries: dict[str, CatalogEntry] = {}
        for entry in entries:
            for alias in entry.aliases:
                key = _norm_alias(alias)
                if key in self._entries:
                    raise ValueError(f"Duplicate collectible alias: {alias}")
                self._entries[key] = entry

    def __contains__(self, collectible_id: object) -> bool:
        return isinstance(collectible_id, str) and _norm_alias(collectible_id) in self._entries

    def __iter__(self) -> Iterator[CatalogEntry]:
        seen: set[str] = set()
        for entry in self._entries.values():
            if entry.config.uuid in seen:
                continue
            seen.add(entry.config.uuid)
            yield entry

    def get_entry(self, collectible_id: Optional[str]) -> Optional[CatalogEntry]:
        if not collectible_id:
            return None
        return self._entries.get(_norm_alias(collectible_id))

    def get_config(self, collectible_id: Optional[str]) -> Optional[CollectibleConfig]:
        entry = self.get_entry(collectible_id)
        return entry.config if entry else None

    def get_display_data(self, collectible_id: Optional[str]) -> Optional[CollectibleDisplayData]:
        entry = self.get_entry(collectible_id)
        return entry.display if entry else None

    def get_policy(self, collectible_id: Optional[str]) -> Optional[SelectionPolicy]:
        entry = self.get_entry(collectible_id)
        return entry.policy if entry else None


def _norm_alias(alias: str) -> str:
    return alias.strip().lower()


def _uuid(number: int) -> str:
    return f"00000000-0000-0000-0000-{number:012d}"


def _card(
    number: int,
    table_stem: str,
    fallback_price: float,
    name: str,
    image_url: str,
    set_name: str,
    *,
    slug: Optional[str] = None,
    policy: SelectionPolicy = PRICE_POLICY,
) -> CatalogEntry:
    uuid = _uuid(number)
    return CatalogEntry(
        config=CollectibleConfig(
            uuid=uuid,
            market_summary_table=f"ebay_{table_stem}_market_summary",
            price_history_table=f"ebay_{table_stem}_price_history",
            fallback_price=fallback_price,
        ),
        display=CollectibleDisplayData(id=uuid, name=name, image_url=image_url, set_name=set_name),
        slug=slug,
        policy=policy,
    )


def _figure(
    number: int,
    table_stem: str,
    fallback_price: float,
    name: str,
    image_name: str,
    *,
    slug: str,
    heuristic: str,
) -> CatalogEntry:
    return _card(
        number,
        table_stem,
        fallback_price,
        name,
        f"{FIGURE_IMAGE_BASE}/{image_name}.webp",
        "Pop Mart Collection",
        slug=slug,
        policy=SelectionPolicy(mode=MODE_HEURISTIC, heuristic=heuristic),
    )


CARD_IMAGE_BASE = "https://tcgplayer-cdn.tcgplayer.com/product"
FIGURE_IMAGE_BASE = "https://storage.googleapis.com/vrno-tcg-images"
_PLACEHOLDER_CARD_IMAGE = f"{CARD_IMAGE_BASE}/642617_in_1000x1000.jpg"

DEFAULT_ENTRIES: tuple[CatalogEntry, ...] = (
    _card(
        1,
        "genesect",
        16.94,
        "Genesect EX Black Bolt 161/086",
        f"{CARD_IMAGE_BASE}/623603_in_1000x1000.jpg",
        "Black Bolt Series",
        slug="genesect-ex-black-bolt-161-086",
    ),
    _card(
        2,
        "ethan_ho_oh",
        16.0,
        "Ethan's Ho-oh EX #209 Destined Rivals",
        f"{CARD_IMAGE_BASE}/633009_in_1000x1000.jpg",
        "Destined Rivals",
        slug="ethan-hooh-ex-209-destined-rivals",
        policy=SelectionPolicy(
            pinned_image_url="https://i.ebayimg.com/images/g/xA4AAeSwmzpojOuU/s-l1600.webp",
        ),
    ),
    _card(
        3,
        "hilda",
        44.11,
        "Hilda #164 White Flare",
        f"{CARD_IMAGE_BASE}/642281_in_1000x1000.jpg",
        "White Flare",
        slug="hilda-164-white-flare",
    ),
    _card(
        4,
        "kyurem",
        25.0,
        "Kyurem EX Black Bolt 165/086",
        _PLACEHOLDER_CARD_IMAGE,
        "Black Bolt Series",
        policy=SelectionPolicy(
            pinned_image_url="https://i.ebayimg.com/images/g/DDkAAeSwytdogZBl/s-l1600.webp",
        ),
    ),
    _card(
        5,
        "volcanion",
        18.0,
        "Volcanion EX Journey Together 182/159",
        f"{CARD_IMAGE_BASE}/623609_in_1000x1000.jpg",
        "Journey Together",
    ),
    _card(
        6,
        "salamence",
        22.0,
        "Salamence EX Journey Together 187/159",
        _PLACEHOLDER_CARD_IMAGE,
        "Journey Together",
        slug="salamence-ex-journey-together-187-159",
    ),
    _card(
        7,
        "iron_hands",
        35.0,
        "Iron Hands EX Prismatic Evolutions 154/131",
        _PLACEHOLDER_CARD_IMAGE,
        "Prismatic Evolutions",
        slug="iron-hands-ex-prismatic-evolutions-154-131",
        policy=SelectionPolicy(
            mode=MODE_SPECIFIC_ID,
            specific_target="205537827685",
            pinned_image_url="https://i.ebayimg.com/images/g/AEQAAOSw-nhn2PJf/s-l1600.webp",
        ),
    ),
    _card(
        8,
        "pikachu",
        42.0,
        "Pikachu EX Prismatic Evolutions 179/131",
        _PLACEHOLDER_CARD_IMAGE,
        "Prismatic Evolutions",
    ),
    _card(
        9,
        "iron_crown",
        28.0,
        "Iron Crown EX Prismatic Evolutions",
        _PLACEHOLDER_CARD_IMAGE,
        "Prismatic Evolutions",
        policy=SelectionPolicy(
            mode=MODE_SPECIFIC_ID,
            specific_target="OCAAAeSwM6BoHP8J",
            specific_field=MATCH_IMAGE_REF,
            pinned_image_url="https://i.ebayimg.com/images/g/OCAAAeSwM6BoHP8J/s-l1600.jpg",
        ),
    ),
    _card(
        10,
        "hydreigon",
        32.0,
        "Hydreigon EX White Flare 169/086",
        _PLACEHOLDER_CARD_IMAGE,
        "White Flare",
    ),
    _card(
        11,
        "n_plan",
        15.0,
        "N's Plan Black Bolt 170/086",
        _PLACEHOLDER_CARD_IMAGE,
        "Black Bolt Series",
    ),
    _card(
        12,
        "oshawott",
        8.0,
        "Oshawott White Flare 105/086",
        f"{CARD_IMAGE_BASE}/642281_in_1000x1000.jpg",
        "White Flare",
        slug="oshawott-white-flare-105-086",
    ),
    _card(
        14,
        "iono_bellibolt",
        38.0,
        "Iono's Bellibolt EX Journey Together 183/159",
        f"{FIGURE_IMAGE_BASE}/iono-bellibolt-ex-journey-together-183-159.webp",
        "Journey Together",
    ),
    _figure(
        15,
        "labubu_big_energy_hope",
        25.0,
        "Labubu Big Energy Hope",
        "labubu-big-energy-hope",
        slug="labubu-big-energy-hope",
        heuristic="big_energy",
    ),
    _figure(
        16,
        "labubu_monster_chestnut",
        30.0,
        "Labubu The Monster Secret Chestnut Cocoa",
        "labubu-monster-chestnut-cocoa",
        slug="labubu-monster-chestnut-cocoa",
        heuristic="brown",
    ),
    _figure(
        17,
        "labubu_coca_cola",
        35.0,
        "Labubu Coca-Cola Surprise Shake",
        "labubu-coca-cola-surprise-shake",
        slug="labubu-coca-cola-surprise-shake",
        heuristic="white",
    ),
    _figure(
        18,
        "labubu_seat_baba",
        28.0,
        "Labubu Have a Seat Baba",
        "labubu-have-a-seat-baba",
        slug="labubu-have-a-seat-baba",
        heuristic="white_middle",
    ),
    _figure(
        19,
        "labubu_macaron_lychee",
        25.0,
        "Labubu Exciting Macaron Lychee Berry",
        "labubu-macaron-lychee-berry",
        slug="labubu-macaron-lychee",
        heuristic="central_pink",
    ),
    _figure(
        20,
        "labubu_macaron_salt",
        28.0,
        "Labubu Macaron Sea Salt",
        "labubu-macaron-sea-salt",
        slug="labubu-macaron-sea-salt",
        heuristic="sea_salt",
    ),
)


def default_catalog() -> CollectibleCatalog:
    return CollectibleCatalog(DEFAULT_ENTRIES)
