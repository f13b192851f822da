"""Wishlist items: cards a user wants, with priority and price limits."""

import logging
from datetime import datetime, timezone
from typing import Optional

from supabase import Client

from models.wishlist import SortOrder, WishlistSort
from services.errors import ConflictError, NotFoundError, ValidationFailedError

logger = logging.getLogger(__name__)

CARD_JOIN = (
    "*, cards(id, name, set_id, number, rarity, image_small, image_large, "
    "cardmarket_avg_sell_price, sets(name))"
)


def attach_card(row: dict) -> dict:
    """Move the joined `cards` object to `card`, flattening the set name."""
    card = row.get("cards")
    item = {key: value for key, value in row.items() if key != "cards"}
    if card:
        item["card"] = {**card, "set_name": (card.get("sets") or {}).get("name")}
    return item


def current_price(item: dict) -> float:
    return (item.get("card") or {}).get("cardmarket_avg_sell_price") or 0


def sort_items(items: list[dict], sort_by: WishlistSort, order: SortOrder) -> list[dict]:
    reverse = order == SortOrder.DESC
    if sort_by == WishlistSort.NAME:
        key = lambda item: ((item.get("card") or {}).get("name") or "").lower()
    elif sort_by == WishlistSort.PRICE:
        key = current_price
    elif sort_by == WishlistSort.CREATED_AT:
        key = lambda item: item.get("created_at") or ""
    else:
        key = lambda item: item.get("priority") or 0
    return sorted(items, key=key, reverse=reverse)


def _options(payload) -> dict:
    return {
        "priority": payload.priority,
        "max_price_eur": payload.max_price_eur,
        "condition_preference": payload.condition_preference.value,
        "notes": payload.notes,
    }


def find_item(client: Client, user_id: str, card_id: str) -> Optional[dict]:
    result = (
        client.table("wishlists")
        .select("*")
        .eq("user_id", user_id)
        .eq("card_id", card_id)
        .execute()
    )
    return result.data[0] if result.data else None


def add_item(client: Client, user_id: str, payload) -> dict:
    if find_item(client, user_id, payload.card_id):
        raise ConflictError("Card is already in your wishlist")

    now = datetime.now(timezone.utc).isoformat()
    data = {
        "user_id": user_id,
        "card_id": payload.card_id,
        "wishlist_list_id": str(payload.wishlist_list_id) if payload.wishlist_list_id else None,
        **_options(payload),
        "created_at": now,
        "updated_at": now,
    }
    result = client.table("wishlists").insert(data).execute()

    if not result.data:
        raise ValidationFailedError("Failed to add card to wishlist")
    return result.data[0]


def add_many(client: Client, user_id: str, payload) -> dict:
    """Add several cards with the same options, skipping ones already wanted."""
    card_ids = list(dict.fromkeys(payload.card_ids))
    existing = (
        client.table("wishlists")
        .select("card_id")
        .eq("user_id", user_id)
        .in_("card_id", card_ids)
        .execute()
    )
    existing_ids = {row["card_id"] for row in existing.data or []}
    new_ids = [card_id for card_id in card_ids if card_id not in existing_ids]

    if not new_ids:
        return {
            "added_count": 0,
            "skipped_count": len(card_ids),
            "message": "All cards are already in your wishlist",
        }

    now = datetime.now(timezone.utc).isoformat()
    options = _options(payload)
    rows = [
        {
            "user_id": user_id,
            "card_id": card_id,
            "wishlist_list_id": str(payload.wishlist_list_id) if payload.wishlist_list_id else None,
            **options,
            "created_at": now,
            "updated_at": now,
        }
        for card_id in new_ids
    ]
    client.table("wishlists").insert(rows).execute()

    return {
        "added_count": len(new_ids),
        "skipped_count": len(existing_ids),
        "message": None,
    }


def remove_item(client: Client, user_id: str, item_id: str) -> None:
    result = client.table("wishlists").delete().eq("id", item_id).eq("user_id", user_id).execute()
    if not result.data:
        raise NotFoundError("Wishlist item not found")


def remove_by_card(client: Client, user_id: str, card_id: str) -> bool:
    """Remove a card from the user's wishlist. Returns whether anything was removed."""
    result = client.table("wishlists").delete().eq("user_id", user_id).eq("card_id", card_id).execute()
    return bool(result.data)


def update_item(client: Client, user_id: str, item_id: str, update) -> dict:
    update_data = update.model_dump(exclude_unset=True, mode="json")
    if not update_data:
        raise ValidationFailedError("No fields to update")

    update_data["updated_at"] = datetime.now(timezone.utc).isoformat()
    result = (
        client.table("wishlists")
        .update(update_data)
        .eq("id", item_id)
        .eq("user_id", user_id)
        .execute()
    )
    if not result.data:
        raise NotFoundError("Wishlist item not found")
    return result.data[0]


def list_items(
    client: Client,
    user_id: str,
    wishlist_list_id: Optional[str] = None,
    priority: Optional[int] = None,
    sort_by: WishlistSort = WishlistSort.PRIORITY,
    order: SortOrder = SortOrder.ASC,
    page: int = 1,
    limit: int = 50,
) -> list[dict]:
    query = client.table("wishlists").select(CARD_JOIN).eq("user_id", user_id)
    if wishlist_list_id:
        query = query.eq("wishlist_list_id", wishlist_list_id)
    if priority:
        query = query.eq("priority", priority)

    result = query.execute()
    items = sort_items([attach_card(row) for row in result.data or []], sort_by, order)

    start = (page - 1) * limit
    return items[start:start + limit]


def check_card(client: Client, user_id: str, card_id: str) -> dict:
    item = find_item(client, user_id, card_id)
    return {"card_id": card_id, "in_wishlist": item is not None, "item": item}


def wishlist_stats(client: Client, user_id: str) -> dict:
    result = client.table("wishlists").select(CARD_JOIN).eq("user_id", user_id).execute()
    items = [attach_card(row) for row in result.data or []]

    if not items:
        return {
            "total_items": 0,
            "average_priority": 0,
            "total_max_budget": 0,
            "priority_breakdown": {},
            "condition_preferences": {},
            "recent_additions": [],
        }

    priority_breakdown: dict[int, int] = {}
    condition_preferences: dict[str, int] = {}
    for item in items:
        priority_breakdown[item["priority"]] = priority_breakdown.get(item["priority"], 0) + 1
        condition = item.get("condition_preference") or "any"
        condition_preferences[condition] = condition_preferences.get(condition, 0) + 1

    return {
        "total_items": len(items),
        "average_priority": sum(item["priority"] for item in items) / len(items),
        "total_max_budget": sum(item.get("max_price_eur") or 0 for item in items),
        "priority_breakdown": priority_breakdown,
        "condition_preferences": condition_preferences,
        "recent_additions": sort_items(items, WishlistSort.CREATED_AT, SortOrder.DESC)[:10],
    }


def affordable_items(client: Client, user_id: str, budget: float) -> list[dict]:
    """Items priced within both the budget and their own max price, best priority then cheapest first."""
    items = list_items(client, user_id, limit=100)

    affordable = []
    for item in items:
        price = current_price(item)
        max_price = item.get("max_price_eur") or budget
        if 0 < price <= min(max_price, budget):
            affordable.append(item)

    return sorted(affordable, key=lambda item: (item["priority"], current_price(item)))


def price_alerts(client: Client, user_id: str) -> list[dict]:
    items = list_items(client, user_id, limit=100)
    return [
        item for item in items
        if item.get("max_price_eur") and 0 < current_price(item) <= item["max_price_eur"]
    ]
