"""Card price resolution across CardMarket (EUR) and TCGPlayer (USD)."""

import logging
from typing import Optional
from urllib.parse import quote_plus

from supabase import Client

from config import settings
from models.card import CardVariant
from models.pricing import PriceSource, PriceType
from services.currency_service import currency_service
from services.errors import NotFoundError

logger = logging.getLogger(__name__)

SOURCE_CURRENCY = {
    PriceSource.CARDMARKET: "EUR",
    PriceSource.TCGPLAYER: "USD",
}

_CARDMARKET_REGULAR = {
    PriceType.AVERAGE: "cardmarket_avg_sell_price",
    PriceType.LOW: "cardmarket_low_price",
    PriceType.TREND: "cardmarket_trend_price",
}

# Variants without an entry here use the regular fields.
CARDMARKET_FIELDS = {
    CardVariant.REVERSE_HOLO: {
        PriceType.AVERAGE: "cardmarket_reverse_holo_sell",
        PriceType.LOW: "cardmarket_reverse_holo_low",
        PriceType.TREND: "cardmarket_reverse_holo_trend",
    },
    CardVariant.FIRST_EDITION: {
        PriceType.AVERAGE: "cardmarket_1st_edition_avg",
        PriceType.LOW: "cardmarket_1st_edition_low",
        PriceType.TREND: "cardmarket_1st_edition_trend",
    },
}

# Ordered candidates; the first positive value wins.
TCGPLAYER_FIELDS = {
    CardVariant.NORMAL: {
        PriceType.AVERAGE: ["tcgplayer_unlimited_normal_market"],
    },
    CardVariant.HOLO: {
        PriceType.AVERAGE: ["tcgplayer_unlimited_holofoil_market"],
    },
    CardVariant.REVERSE_HOLO: {
        PriceType.AVERAGE: ["tcgplayer_reverse_foil_market"],
        PriceType.LOW: ["tcgplayer_reverse_foil_low"],
        PriceType.TREND: ["tcgplayer_reverse_foil_mid"],
    },
    CardVariant.FIRST_EDITION: {
        PriceType.AVERAGE: ["tcgplayer_1st_edition_holofoil_market", "tcgplayer_1st_edition_normal_market"],
        PriceType.LOW: ["tcgplayer_1st_edition_holofoil_low", "tcgplayer_1st_edition_normal_low"],
        PriceType.TREND: ["tcgplayer_1st_edition_holofoil_mid", "tcgplayer_1st_edition_normal_mid"],
    },
}


def _positive(value) -> Optional[float]:
    if value is None:
        return None
    value = float(value)
    return value if value > 0 else None


def cardmarket_price(card: dict, price_type: PriceType = PriceType.AVERAGE,
                     variant: CardVariant = CardVariant.NORMAL) -> Optional[float]:
    variant, price_type = CardVariant(variant), PriceType(price_type)
    field = CARDMARKET_FIELDS.get(variant, _CARDMARKET_REGULAR)[price_type]
    return _positive(card.get(field))


def tcgplayer_price(card: dict, price_type: PriceType = PriceType.AVERAGE,
                    variant: CardVariant = CardVariant.NORMAL) -> Optional[float]:
    variant, price_type = CardVariant(variant), PriceType(price_type)
    for field in TCGPLAYER_FIELDS.get(variant, {}).get(price_type, []):
        value = _positive(card.get(field))
        if value is not None:
            return value
    return None


_LOOKUPS = {
    PriceSource.CARDMARKET: cardmarket_price,
    PriceSource.TCGPLAYER: tcgplayer_price,
}

_SOURCE_LABELS = {
    PriceSource.CARDMARKET: "CardMarket",
    PriceSource.TCGPLAYER: "TCGPlayer",
}


def get_card_price(
    card: dict,
    source: PriceSource = PriceSource.CARDMARKET,
    price_type: PriceType = PriceType.AVERAGE,
    variant: CardVariant = CardVariant.NORMAL,
) -> Optional[dict]:
    """Price from the preferred source, falling back to the other one.

    Returns None when neither source has a positive value.
    """
    source = PriceSource(source)
    other = PriceSource.TCGPLAYER if source == PriceSource.CARDMARKET else PriceSource.CARDMARKET

    amount = _LOOKUPS[source](card, price_type, variant)
    if amount is not None:
        return {
            "price": amount,
            "currency": SOURCE_CURRENCY[source],
            "source": source,
            "is_fallback": False,
            "fallback_reason": None,
        }

    amount = _LOOKUPS[other](card, price_type, variant)
    if amount is not None:
        return {
            "price": amount,
            "currency": SOURCE_CURRENCY[other],
            "source": other,
            "is_fallback": True,
            "fallback_reason": (
                f"{_SOURCE_LABELS[other]} {SOURCE_CURRENCY[other]} pricing "
                f"({_SOURCE_LABELS[source]} unavailable)"
            ),
        }

    return None


def variant_pricing(card: dict, variants: list[CardVariant],
                    source: PriceSource = PriceSource.CARDMARKET) -> list[dict]:
    return [
        {"variant": variant, "price": get_card_price(card, source, PriceType.AVERAGE, variant)}
        for variant in variants
    ]


def calculate_total_value(items: list[tuple[dict, CardVariant, int]],
                          source: PriceSource = PriceSource.CARDMARKET) -> Optional[dict]:
    """Sum (card, variant, quantity) items per currency.

    The total is reported in the preferred source's currency when any item
    priced in it, otherwise in the other currency.
    """
    totals: dict[str, float] = {}
    for card, variant, quantity in items:
        price = get_card_price(card, source, PriceType.AVERAGE, variant)
        if price:
            totals[price["currency"]] = totals.get(price["currency"], 0.0) + price["price"] * quantity

    if not totals:
        return None

    currency = SOURCE_CURRENCY[PriceSource(source)]
    if currency not in totals:
        currency = next(iter(totals))

    return {
        "total": round(totals[currency], 2),
        "currency": currency,
        "totals_by_currency": {code: round(amount, 2) for code, amount in totals.items()},
    }


def fetch_card(client: Client, card_id: str) -> dict:
    result = client.table("cards").select("*").eq("id", card_id).execute()
    if not result.data:
        raise NotFoundError("Card not found")
    return result.data[0]


def fetch_cards(client: Client, card_ids: list[str]) -> dict[str, dict]:
    if not card_ids:
        return {}
    result = client.table("cards").select("*").in_("id", list(set(card_ids))).execute()
    return {row["id"]: row for row in result.data or []}


def total_value_for_items(client: Client, items: list, source: PriceSource) -> Optional[dict]:
    cards = fetch_cards(client, [item.card_id for item in items])
    priced = [
        (cards[item.card_id], item.variant, item.quantity)
        for item in items
        if item.card_id in cards
    ]
    return calculate_total_value(priced, source)


def marketplace_url(card: dict) -> str:
    query = card.get("name", "")
    if card.get("number"):
        query = f"{query} {card['number']}"
    return f"{settings.MARKETPLACE_SEARCH_URL}{quote_plus(query)}"


def price_display(client: Client, card_id: str, preferences: dict,
                  variant: CardVariant = CardVariant.NORMAL) -> dict:
    """A card's price in the user's preferred source, converted to their currency."""
    card = fetch_card(client, card_id)
    currency = preferences["preferred_currency"]
    price = get_card_price(card, preferences["price_source"], PriceType.AVERAGE, variant)

    display = {
        "card_id": card_id,
        "variant": variant,
        "price": price,
        "converted_amount": None,
        "currency": currency,
        "formatted": None,
        "buy_url": marketplace_url(card),
    }
    if price is None:
        return display

    conversion = currency_service.convert(price["price"], price["currency"], currency)
    display["converted_amount"] = round(conversion["converted_amount"], 2)
    display["formatted"] = currency_service.format_with_conversion(conversion)
    return display
