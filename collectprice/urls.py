from __future__ import annotations

from collectprice.config import DEFAULT_MARKETPLACE_HOST

HIGH_RES_SUFFIX = "s-l1600.webp"

# Tried in order, first match wins.
IMAGE_UPGRADES: tuple[tuple[str, str], ...] = (
    ("s-l64.jpg", HIGH_RES_SUFFIX),
    ("s-l225.jpg", HIGH_RES_SUFFIX),
    ("s-l300.jpg", HIGH_RES_SUFFIX),
    ("s-l500.jpg", HIGH_RES_SUFFIX),
    ("s-l1600.jpg", HIGH_RES_SUFFIX),
)


def upgrade_image(image_ref: str) -> str:
    if not image_ref:
        return image_ref
    for low_res, high_res in IMAGE_UPGRADES:
        if low_res in image_ref:
            return image_ref.replace(low_res, high_res)
    return image_ref


def canonicalize_item_url(item_ref: str, host: str = DEFAULT_MARKETPLACE_HOST) -> str:
    """Turn a composite ``.../v1|<item id>|<sub index>`` reference into a direct item link.

    References without a ``|`` are already direct URLs and pass through.
    Anything that does not have the expected shape is returned unchanged.
    """
    if not item_ref or "|" not in item_ref:
        return item_ref
    tail = item_ref.split("/")[-1]
    if "|" not in tail:
        return item_ref
    segments = tail.split("|")
    if len(segments) < 2:
        return item_ref
    item_id = segments[1].strip()
    if not item_id:
        return item_ref
    return f"https://{host}/itm/{item_id}"
