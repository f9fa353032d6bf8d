from __future__ import annotations

from datetime import datetime, timezone
from typing import Optional, Sequence

import pytz

from src.catalog.base import FreePromotion
from src.config import get_settings
from src.notifications.telegram import escape_markdown_v2

UNKNOWN_END_DATE = "Data non disponibile"


def format_end_date(end_date: Optional[datetime], tz_name: Optional[str] = None) -> str:
    """dd/mm/yyyy in the display timezone, as the it-IT store shows it.

    Naive datetimes are taken as UTC.
    """
    if end_date is None:
        return UNKNOWN_END_DATE
    if end_date.tzinfo is None:
        end_date = end_date.replace(tzinfo=timezone.utc)
    tz = pytz.timezone(tz_name or get_settings().display_timezone)
    return end_date.astimezone(tz).strftime("%d/%m/%Y")


def format_intro(promotions: Sequence[FreePromotion]) -> str:
    count = len(promotions)
    if count == 1:
        headline = "C'è 1 gioco gratuito sull'Epic Games Store!"
        body = "Ecco il gioco gratuito disponibile:"
    else:
        headline = f"Ci sono {count} giochi gratuiti sull'Epic Games Store!"
        body = "Ecco i giochi gratuiti disponibili:"
    return f"🎮 *{escape_markdown_v2(headline)}*\n\n{escape_markdown_v2(body)}"


def format_promotion(promotion: FreePromotion) -> str:
    """One message per game; the bare URL at the end drives the link preview."""
    end_date = format_end_date(promotion.end_date)
    return (
        f"🎯 *{escape_markdown_v2(promotion.title)}*\n\n"
        f"⏰ *{escape_markdown_v2('Disponibile fino al:')}* {escape_markdown_v2(end_date)}\n\n"
        f"{escape_markdown_v2(promotion.url)}"
    )


def format_closing() -> str:
    tip = (
        "Collega il tuo account Epic Games per ricevere questi giochi "
        "permanentemente nella tua libreria!"
    )
    return f"💡 *{escape_markdown_v2('Consiglio:')}* {escape_markdown_v2(tip)}"
