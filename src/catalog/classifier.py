"""Classify Epic Games Store catalog entries as "free now".

Catalog entries are raw dicts from the freeGamesPromotions endpoint. Every
field along promotions -> promotionalOffers -> promotionalOffers may be
missing or null, so nothing here raises on malformed input: a broken entry
is simply not free, and a broken date is unknown.
"""
from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Iterator, Optional
from urllib.parse import quote

from src.catalog.base import FreePromotion

STORE_BASE_URL = "https://store.epicgames.com"
PRODUCT_URL = STORE_BASE_URL + "/{locale}/p/{slug}"
SEARCH_URL = STORE_BASE_URL + "/{locale}/browse?q={query}"


def _get(value: Any, key: str) -> Any:
    return value.get(key) if isinstance(value, dict) else None


def _as_list(value: Any) -> list:
    return value if isinstance(value, list) else []


def _is_zero(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool) and value == 0


def _iter_offers(entry: Any) -> Iterator[dict]:
    """Yield every dated offer, group by group, in response order."""
    groups = _as_list(_get(_get(entry, "promotions"), "promotionalOffers"))
    for group in groups:
        for offer in _as_list(_get(group, "promotionalOffers")):
            if isinstance(offer, dict):
                yield offer


def is_free(entry: Any) -> bool:
    """True if any active offer brings the entry down to zero cost."""
    discount_price = _get(_get(_get(entry, "price"), "totalPrice"), "discountPrice")
    for offer in _iter_offers(entry):
        if _is_zero(_get(_get(offer, "discountSetting"), "discountPercentage")):
            return True
        # Upstream sometimes reports a non-zero percentage on a zero-priced entry
        if _is_zero(discount_price):
            return True
    return False


def _parse_timestamp(value: Any) -> Optional[datetime]:
    if not isinstance(value, str):
        return None
    try:
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def get_promotion_end_date(entry: Any) -> Optional[datetime]:
    """Return the first endDate found among the offers, or None if unknown."""
    for offer in _iter_offers(entry):
        end_date = offer.get("endDate")
        if end_date:
            return _parse_timestamp(end_date)
    return None


def build_game_url(entry: Any, locale_path: str = "it") -> str:
    """Best available store link for an entry.

    Tries, in order: the explicit url, the product slug, the first offer
    mapping's page slug, the entry id, and finally a store search by title.
    """
    url = _get(entry, "url")
    if url:
        return url

    product_slug = _get(entry, "productSlug")
    if product_slug:
        return PRODUCT_URL.format(locale=locale_path, slug=product_slug)

    mappings = _as_list(_get(entry, "offerMappings"))
    if mappings:
        page_slug = _get(mappings[0], "pageSlug")
        if page_slug:
            return PRODUCT_URL.format(locale=locale_path, slug=page_slug)

    entry_id = _get(entry, "id")
    if entry_id:
        return PRODUCT_URL.format(locale=locale_path, slug=entry_id)

    title = _get(entry, "title")
    query = quote(str(title) if title is not None else "", safe="!~*'()")
    return SEARCH_URL.format(locale=locale_path, query=query)


def classify(entry: Any, locale_path: str = "it") -> Optional[FreePromotion]:
    """Build a FreePromotion for a free entry; None when it is not free."""
    if not is_free(entry):
        return None

    entry_id = _get(entry, "id")
    if not entry_id:
        return None

    title = _get(entry, "title")
    return FreePromotion(
        id=str(entry_id),
        title=str(title) if title else str(entry_id),
        url=build_game_url(entry, locale_path),
        end_date=get_promotion_end_date(entry),
    )
