"""Named wishlist lists. Each user has one default list, created by the backend."""

import logging
from datetime import datetime, timezone
from typing import Optional

from postgrest.exceptions import APIError
from supabase import Client

from models.wishlist import SortOrder, WishlistSort
from services.errors import (
    ConflictError,
    NotFoundError,
    PermissionDeniedError,
    ValidationFailedError,
)
from services.wishlist_service import CARD_JOIN, attach_card, sort_items

logger = logging.getLogger(__name__)

DUPLICATE_NAME = "A wishlist with this name already exists"


def _require_name(name: str) -> str:
    name = (name or "").strip()
    if not name:
        raise ValidationFailedError("Wishlist name is required")
    return name


def _name_taken(client: Client, user_id: str, name: str, exclude_id: Optional[str] = None) -> bool:
    query = client.table("wishlist_lists").select("id").eq("user_id", user_id).eq("name", name)
    if exclude_id:
        query = query.neq("id", exclude_id)
    return bool(query.execute().data)


def _item_counts(client: Client, user_id: str) -> dict[str, int]:
    result = client.table("wishlists").select("wishlist_list_id").eq("user_id", user_id).execute()
    counts: dict[str, int] = {}
    for row in result.data or []:
        list_id = row.get("wishlist_list_id")
        if list_id:
            counts[list_id] = counts.get(list_id, 0) + 1
    return counts


def list_lists(client: Client, user_id: str) -> list[dict]:
    """The user's lists, default first, then in creation order, with item counts."""
    result = (
        client.table("wishlist_lists")
        .select("*")
        .eq("user_id", user_id)
        .order("is_default", desc=True)
        .order("created_at")
        .execute()
    )
    lists = result.data or []
    if not lists:
        return []

    counts = _item_counts(client, user_id)
    return [{**row, "item_count": counts.get(str(row["id"]), 0)} for row in lists]


def get_list(client: Client, user_id: str, list_id: str) -> dict:
    result = (
        client.table("wishlist_lists")
        .select("*")
        .eq("id", list_id)
        .eq("user_id", user_id)
        .execute()
    )
    if not result.data:
        raise NotFoundError("Wishlist not found")
    return result.data[0]


def get_default_list(client: Client, user_id: str) -> dict:
    result = (
        client.table("wishlist_lists")
        .select("*")
        .eq("user_id", user_id)
        .eq("is_default", True)
        .execute()
    )
    if not result.data:
        raise NotFoundError("Default wishlist not found")
    return result.data[0]


def public_lists(client: Client, limit: int = 20, offset: int = 0) -> list[dict]:
    result = (
        client.table("wishlist_lists")
        .select("*, profiles(username, display_name)")
        .eq("is_public", True)
        .order("updated_at", desc=True)
        .range(offset, offset + limit - 1)
        .execute()
    )

    lists = []
    for row in result.data or []:
        profile = row.get("profiles") or {}
        lists.append({
            **{k: v for k, v in row.items() if k != "profiles"},
            "owner_username": profile.get("username"),
            "owner_display_name": profile.get("display_name"),
        })
    return lists


def create_list(client: Client, user_id: str, payload) -> dict:
    name = _require_name(payload.name)
    if _name_taken(client, user_id, name):
        raise ConflictError(DUPLICATE_NAME)

    result = client.table("wishlist_lists").insert({
        "user_id": user_id,
        "name": name,
        "description": payload.description,
        "is_public": payload.is_public,
        "is_default": False,
    }).execute()

    if not result.data:
        raise ValidationFailedError("Failed to create wishlist")
    return result.data[0]


def update_list(client: Client, user_id: str, list_id: str, update) -> dict:
    existing = get_list(client, user_id, list_id)
    update_data = update.model_dump(exclude_unset=True)

    # Default lists keep their visibility.
    if existing.get("is_default"):
        update_data.pop("is_public", None)

    if "name" in update_data:
        update_data["name"] = _require_name(update_data["name"])
        if update_data["name"] != existing["name"] and _name_taken(client, user_id, update_data["name"], list_id):
            raise ConflictError(DUPLICATE_NAME)

    if not update_data:
        raise ValidationFailedError("No fields to update")

    update_data["updated_at"] = datetime.now(timezone.utc).isoformat()
    result = (
        client.table("wishlist_lists")
        .update(update_data)
        .eq("id", list_id)
        .eq("user_id", user_id)
        .execute()
    )
    if not result.data:
        raise NotFoundError("Wishlist not found")
    return result.data[0]


def delete_list(client: Client, user_id: str, list_id: str) -> None:
    existing = get_list(client, user_id, list_id)
    if existing.get("is_default"):
        raise ValidationFailedError("Cannot delete the default wishlist")

    client.table("wishlist_lists").delete().eq("id", list_id).eq("user_id", user_id).execute()


def _list_card_ids(client: Client, list_id: str) -> set[str]:
    result = client.table("wishlists").select("card_id").eq("wishlist_list_id", list_id).execute()
    return {row["card_id"] for row in result.data or []}


def _item_row(user_id: str, list_id: str, card_id: str, payload) -> dict:
    now = datetime.now(timezone.utc).isoformat()
    return {
        "user_id": user_id,
        "wishlist_list_id": list_id,
        "card_id": card_id,
        "priority": payload.priority,
        "max_price_eur": payload.max_price_eur,
        "condition_preference": payload.condition_preference.value,
        "notes": payload.notes,
        "created_at": now,
        "updated_at": now,
    }


def add_card_to_list(client: Client, user_id: str, list_id: str, payload) -> dict:
    get_list(client, user_id, list_id)
    if payload.card_id in _list_card_ids(client, list_id):
        raise ConflictError("Card is already in this wishlist")

    result = client.table("wishlists").insert(_item_row(user_id, list_id, payload.card_id, payload)).execute()
    if not result.data:
        raise ValidationFailedError("Failed to add card to wishlist")
    return result.data[0]


def add_cards_to_list(client: Client, user_id: str, list_id: str, payload) -> dict:
    get_list(client, user_id, list_id)
    card_ids = list(dict.fromkeys(payload.card_ids))
    present = _list_card_ids(client, list_id)
    new_ids = [card_id for card_id in card_ids if card_id not in present]

    if not new_ids:
        raise ConflictError("All cards are already in this wishlist")

    client.table("wishlists").insert(
        [_item_row(user_id, list_id, card_id, payload) for card_id in new_ids]
    ).execute()

    return {
        "added_count": len(new_ids),
        "skipped_count": len(card_ids) - len(new_ids),
        "message": None,
    }


def list_items(
    client: Client,
    user_id: str,
    list_id: str,
    sort_by: WishlistSort = WishlistSort.CREATED_AT,
    order: SortOrder = SortOrder.DESC,
) -> list[dict]:
    wishlist = _readable_list(client, user_id, list_id)
    result = client.table("wishlists").select(CARD_JOIN).eq("wishlist_list_id", str(wishlist["id"])).execute()
    return sort_items([attach_card(row) for row in result.data or []], sort_by, order)


def _readable_list(client: Client, user_id: str, list_id: str) -> dict:
    result = client.table("wishlist_lists").select("*").eq("id", list_id).execute()
    if not result.data:
        raise NotFoundError("Wishlist not found")

    wishlist = result.data[0]
    if wishlist["user_id"] != user_id and not wishlist.get("is_public"):
        raise PermissionDeniedError("You do not have permission to view this wishlist")
    return wishlist


def duplicate_list(client: Client, user_id: str, source_list_id: str, new_name: str) -> dict:
    """Copy an owned or public list, with its items, into a new private list."""
    source = _readable_list(client, user_id, source_list_id)
    name = _require_name(new_name)
    if _name_taken(client, user_id, name):
        raise ConflictError(DUPLICATE_NAME)

    created = client.table("wishlist_lists").insert({
        "user_id": user_id,
        "name": name,
        "description": f'Copied from "{source["name"]}"',
        "is_public": False,
        "is_default": False,
    }).execute()
    if not created.data:
        raise ValidationFailedError("Failed to create wishlist")
    new_list = created.data[0]

    items = client.table("wishlists").select("*").eq("wishlist_list_id", source_list_id).execute()
    if items.data:
        rows = [
            {
                "user_id": user_id,
                "wishlist_list_id": str(new_list["id"]),
                "card_id": item["card_id"],
                "priority": item["priority"],
                "max_price_eur": item.get("max_price_eur"),
                "condition_preference": item.get("condition_preference") or "any",
                "notes": item.get("notes"),
            }
            for item in items.data
        ]
        try:
            client.table("wishlists").insert(rows).execute()
        except APIError:
            client.table("wishlist_lists").delete().eq("id", str(new_list["id"])).execute()
            logger.exception("Failed to copy items into wishlist %s", new_list["id"])
            raise

    return {**new_list, "item_count": len(items.data or [])}
