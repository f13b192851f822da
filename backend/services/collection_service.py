"""Owned cards, tracked per (card, variant, condition) row."""

import logging
from datetime import date, datetime, timezone
from typing import Optional

from postgrest.exceptions import APIError
from supabase import Client

from models.card import CardVariant
from services import achievement_service, wishlist_service
from services.errors import NotFoundError, ValidationFailedError
from services.pricing_service import cardmarket_price

logger = logging.getLogger(__name__)

CARD_JOIN = (
    "*, cards(id, name, set_id, number, rarity, image_small, image_large, "
    "cardmarket_avg_sell_price, cardmarket_reverse_holo_sell, cardmarket_1st_edition_avg, sets(name))"
)

FOIL_VARIANTS = (CardVariant.HOLO, CardVariant.REVERSE_HOLO)


def empty_variant_counts() -> dict[str, int]:
    return {variant.value: 0 for variant in CardVariant}


def summarize_variants(rows: list[dict]) -> tuple[int, dict[str, int]]:
    """Total quantity and per-variant quantities of one card's rows."""
    counts = empty_variant_counts()
    total = 0
    for row in rows:
        quantity = row.get("quantity") or 0
        variant = row.get("variant") or CardVariant.NORMAL.value
        if variant in counts:
            counts[variant] += quantity
        total += quantity
    return total, counts


def _find_entry(client: Client, user_id: str, card_id: str, variant: str, condition: str) -> Optional[dict]:
    result = (
        client.table("user_collections")
        .select("*")
        .eq("user_id", user_id)
        .eq("card_id", card_id)
        .eq("condition", condition)
        .eq("variant", variant)
        .execute()
    )
    return result.data[0] if result.data else None


def _remove_from_wishlist_quietly(client: Client, user_id: str, card_id: str) -> bool:
    try:
        return wishlist_service.remove_by_card(client, user_id, card_id)
    except APIError as e:
        logger.warning("Failed to remove %s from wishlist of %s: %s", card_id, user_id, e)
        return False


def add_copies(client: Client, user_id: str, card_id: str, variant: CardVariant,
               quantity: int, condition: str, notes: Optional[str] = None) -> dict:
    """Increment the matching row or insert a new one. Returns the stored row."""
    variant = CardVariant(variant)
    existing = _find_entry(client, user_id, card_id, variant.value, condition)

    if existing:
        result = client.table("user_collections").update({
            "quantity": existing["quantity"] + quantity,
            "updated_at": datetime.now(timezone.utc).isoformat(),
        }).eq("id", existing["id"]).execute()
    else:
        result = client.table("user_collections").insert({
            "user_id": user_id,
            "card_id": card_id,
            "variant": variant.value,
            "quantity": quantity,
            "condition": condition,
            "is_foil": variant in FOIL_VARIANTS,
            "acquired_date": date.today().isoformat(),
            "notes": notes,
        }).execute()

    if not result.data:
        raise ValidationFailedError("Failed to add card to collection")
    return result.data[0]


def remove_copies(client: Client, user_id: str, card_id: str, variant: CardVariant,
                  quantity: int, condition: str, remove_all: bool = False) -> Optional[dict]:
    """Decrement the matching row, deleting it when nothing is left.

    Returns the updated row, or None when the row was deleted.
    """
    variant = CardVariant(variant)
    existing = _find_entry(client, user_id, card_id, variant.value, condition)
    if not existing:
        raise NotFoundError("Card not found in collection")

    new_quantity = existing["quantity"] - quantity
    if remove_all or new_quantity <= 0:
        client.table("user_collections").delete().eq("id", existing["id"]).execute()
        return None

    result = client.table("user_collections").update({
        "quantity": new_quantity,
        "updated_at": datetime.now(timezone.utc).isoformat(),
    }).eq("id", existing["id"]).execute()
    return result.data[0] if result.data else None


def add_to_collection(client: Client, user_id: str, payload) -> dict:
    entry = add_copies(
        client, user_id, payload.card_id, payload.variant,
        payload.quantity, payload.condition.value, payload.notes,
    )
    removed = _remove_from_wishlist_quietly(client, user_id, payload.card_id)
    achievements = achievement_service.check_achievements_quietly(client, user_id)

    return {
        "entry": entry,
        "removed_from_wishlist": removed,
        "achievements_unlocked": achievements["unlocked"],
        "achievements_revoked": achievements["revoked"],
    }


def remove_from_collection(client: Client, user_id: str, card_id: str, payload) -> dict:
    entry = remove_copies(
        client, user_id, card_id, payload.variant,
        payload.quantity, payload.condition.value, payload.remove_all,
    )
    achievements = achievement_service.check_achievements_quietly(client, user_id)

    return {
        "entry": entry,
        "removed_from_wishlist": False,
        "achievements_unlocked": achievements["unlocked"],
        "achievements_revoked": achievements["revoked"],
    }


def _card_summary(card: Optional[dict]) -> Optional[dict]:
    if not card:
        return None
    return {**card, "set_name": (card.get("sets") or {}).get("name")}


def get_collection(
    client: Client,
    user_id: str,
    set_id: Optional[str] = None,
    rarity: Optional[str] = None,
    condition: Optional[str] = None,
    page: int = 1,
    limit: int = 24,
) -> list[dict]:
    """Collection rows grouped per card, newest acquisitions first."""
    query = client.table("user_collections").select(CARD_JOIN).eq("user_id", user_id)

    if condition:
        query = query.eq("condition", condition)

    result = query.order("acquired_date", desc=True).execute()

    grouped: dict[str, list[dict]] = {}
    cards: dict[str, dict] = {}
    for row in result.data or []:
        card = row.get("cards") or {}
        if set_id and card.get("set_id") != set_id:
            continue
        if rarity and card.get("rarity") != rarity:
            continue
        grouped.setdefault(row["card_id"], []).append(row)
        cards.setdefault(row["card_id"], card)

    collection = []
    for card_id, rows in grouped.items():
        total, variants = summarize_variants(rows)
        collection.append({
            "card_id": card_id,
            "card": _card_summary(cards.get(card_id)),
            "total_quantity": total,
            "variants": variants,
            "entries": rows,
        })

    start = (page - 1) * limit
    return collection[start:start + limit]


def card_ownership(client: Client, user_id: str, card_id: str) -> dict:
    result = (
        client.table("user_collections")
        .select("quantity, variant")
        .eq("user_id", user_id)
        .eq("card_id", card_id)
        .execute()
    )
    total, variants = summarize_variants(result.data or [])
    return {
        "card_id": card_id,
        "owned": total > 0,
        "total_quantity": total,
        "variants": variants,
    }


def clear_collection(client: Client, user_id: str) -> int:
    existing = client.table("user_collections").select("id").eq("user_id", user_id).execute()
    deleted_count = len(existing.data or [])

    if deleted_count:
        client.table("user_collections").delete().eq("user_id", user_id).execute()
        achievement_service.check_achievements_quietly(client, user_id)

    logger.info("Cleared %d collection rows for %s", deleted_count, user_id)
    return deleted_count


def collection_stats(client: Client, user_id: str) -> dict:
    result = (
        client.table("user_collections")
        .select(CARD_JOIN)
        .eq("user_id", user_id)
        .order("created_at", desc=True)
        .execute()
    )
    rows = result.data or []

    rarity_breakdown: dict[str, int] = {}
    set_breakdown: dict[str, int] = {}
    total_value = 0.0

    for row in rows:
        card = row.get("cards") or {}
        quantity = row["quantity"]

        rarity = card.get("rarity") or "Unknown"
        rarity_breakdown[rarity] = rarity_breakdown.get(rarity, 0) + quantity

        set_name = (card.get("sets") or {}).get("name") or card.get("set_id") or "Unknown"
        set_breakdown[set_name] = set_breakdown.get(set_name, 0) + quantity

        price = cardmarket_price(card, variant=row.get("variant") or CardVariant.NORMAL.value)
        total_value += (price or 0.0) * quantity

    return {
        "user_id": user_id,
        "total_cards": sum(row["quantity"] for row in rows),
        "unique_cards": len({row["card_id"] for row in rows}),
        "total_value_eur": round(total_value, 2),
        "rarity_breakdown": rarity_breakdown,
        "set_breakdown": set_breakdown,
        "recent_additions": rows[:10],
    }
