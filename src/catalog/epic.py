from __future__ import annotations

from typing import Any, Dict, List, Optional

import httpx
from loguru import logger

from src.catalog.base import FetchFailed, FreePromotion
from src.catalog.classifier import classify, is_free

FREE_GAMES_URL = (
    "https://store-site-backend-static.ak.epicgames.com/freeGamesPromotions"
)
USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) "
    "AppleWebKit/537.36 (KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
)


def build_accept_language(locale: str) -> str:
    """e.g. "it-IT" -> "it-IT,it;q=0.9,en;q=0.8"."""
    language = locale.split("-")[0]
    if language == "en":
        return f"{locale},en;q=0.9"
    return f"{locale},{language};q=0.9,en;q=0.8"


def extract_elements(payload: Any) -> Optional[List[Any]]:
    """Pull data.Catalog.searchStore.elements out of a response body."""
    node = payload
    for key in ("data", "Catalog", "searchStore", "elements"):
        if not isinstance(node, dict):
            return None
        node = node.get(key)
    return node if isinstance(node, list) else None


class EpicGamesFetcher:
    """Fetch the current free games from the Epic Games Store backend."""

    def __init__(
        self,
        locale: str = "it-IT",
        country: str = "IT",
        timeout: float = 30.0,
        client: Optional[httpx.Client] = None,
    ):
        self.locale = locale
        self.country = country
        self.locale_path = locale.split("-")[0].lower() or "en"
        self.client = client or httpx.Client(
            timeout=timeout,
            headers={
                "User-Agent": USER_AGENT,
                "Accept-Language": build_accept_language(locale),
            },
        )

    @classmethod
    def from_settings(cls, settings) -> "EpicGamesFetcher":
        return cls(
            locale=settings.catalog_locale,
            country=settings.catalog_country,
            timeout=settings.fetch_timeout,
        )

    def fetch_elements(self) -> List[Any]:
        """Raw catalog entries, in response order.

        Raises FetchFailed on transport errors, bad status or a non-JSON body.
        A JSON body of unexpected shape yields no entries.
        """
        params = {
            "locale": self.locale,
            "country": self.country,
            "allowCountries": self.country,
        }
        try:
            resp = self.client.get(FREE_GAMES_URL, params=params)
            resp.raise_for_status()
            payload = resp.json()
        except httpx.HTTPStatusError as e:
            raise FetchFailed(
                f"Epic catalog returned {e.response.status_code}"
            ) from e
        except httpx.HTTPError as e:
            raise FetchFailed(f"Epic catalog request failed: {e}") from e
        except ValueError as e:
            raise FetchFailed(f"Epic catalog body is not JSON: {e}") from e

        elements = extract_elements(payload)
        if elements is None:
            logger.warning("Epic catalog response has no element list, treating as empty")
            return []
        return elements

    def fetch_free_now(self) -> List[FreePromotion]:
        elements = self.fetch_elements()
        promotions = []
        for entry in elements:
            promotion = classify(entry, self.locale_path)
            if promotion is not None:
                promotions.append(promotion)

        logger.info(
            f"Found {len(promotions)} free games for {self.country}: "
            f"{[p.title for p in promotions]}"
        )
        return promotions

    def get_free_games(self) -> List[FreePromotion]:
        """Like fetch_free_now, but a failed fetch is logged and yields []."""
        try:
            return self.fetch_free_now()
        except FetchFailed as e:
            logger.error(f"Error fetching free games: {e}")
            return []

    def catalog_summary(self) -> Dict[str, Any]:
        """Counts used by the `api-test` CLI command."""
        elements = self.fetch_elements()
        free = [entry for entry in elements if is_free(entry)]
        no_promotion = [
            entry
            for entry in elements
            if not (isinstance(entry, dict) and entry.get("promotions"))
        ]
        return {
            "locale": self.locale,
            "country": self.country,
            "total_games": len(elements),
            "free_games": len(free),
            "paid_games": len(elements) - len(free),
            "no_promotion_games": len(no_promotion),
        }

    def close(self) -> None:
        self.client.close()
