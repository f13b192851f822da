"""User profiles: own profile, public view, recent activity and insights."""

import logging
from datetime import date, datetime, timedelta, timezone
from typing import Optional

from supabase import Client

from config import settings
from models.profile import ActivityType, GrowthTrend, PrivacyLevel
from services import community_service, friends_service
from services.achievement_service import ACHIEVEMENT_DEFINITIONS, DEFINITIONS_BY_TYPE, compute_stats
from services.collection_service import CARD_JOIN
from services.errors import ConflictError, NotFoundError, PermissionDeniedError, ValidationFailedError
from services.pricing_service import cardmarket_price

logger = logging.getLogger(__name__)

PROFILE_FIELDS = (
    "id, username, display_name, avatar_url, banner_url, bio, location, favorite_set_id, "
    "privacy_level, show_collection_value, created_at, updated_at"
)

GROWTH_WINDOW_DAYS = 30


def get_profile(client: Client, user_id: str) -> Optional[dict]:
    result = client.table("profiles").select(PROFILE_FIELDS).eq("id", user_id).execute()
    return result.data[0] if result.data else None


def ensure_profile(client: Client, user_id: str) -> dict:
    """Return the user's profile, creating one with defaults on first access."""
    profile = get_profile(client, user_id)
    if profile:
        return profile

    username = f"user_{user_id[:8]}"
    now = datetime.now(timezone.utc).isoformat()
    result = client.table("profiles").insert({
        "id": user_id,
        "username": username,
        "display_name": username,
        "privacy_level": PrivacyLevel.PUBLIC.value,
        "show_collection_value": True,
        "preferred_currency": settings.DEFAULT_CURRENCY,
        "preferred_language": "en",
        "created_at": now,
        "updated_at": now,
    }).execute()

    logger.info("Created profile for %s", user_id)
    return result.data[0]


def update_profile(client: Client, user_id: str, update) -> dict:
    update_data = update.model_dump(exclude_unset=True, exclude_none=True, mode="json")
    if not update_data:
        raise ValidationFailedError("No fields to update")

    if "username" in update_data:
        taken = (
            client.table("profiles")
            .select("id")
            .eq("username", update_data["username"])
            .neq("id", user_id)
            .execute()
        )
        if taken.data:
            raise ConflictError("Username is already taken")

    update_data["updated_at"] = datetime.now(timezone.utc).isoformat()
    result = client.table("profiles").update(update_data).eq("id", user_id).execute()
    if not result.data:
        raise NotFoundError("Profile not found")
    return result.data[0]


def _collection_rows(client: Client, user_id: str) -> list[dict]:
    result = (
        client.table("user_collections")
        .select(CARD_JOIN)
        .eq("user_id", user_id)
        .order("created_at", desc=True)
        .execute()
    )
    return result.data or []


def public_stats(rows: list[dict], include_value: bool) -> dict:
    """Collection summary shown to other users."""
    per_card: dict[str, dict] = {}
    total_value = 0.0
    for row in rows:
        card = row.get("cards") or {}
        price = cardmarket_price(card, variant=row.get("variant") or "normal") or 0.0
        total_value += price * row["quantity"]
        best = per_card.get(row["card_id"])
        if best is None or price > best["value"]:
            per_card[row["card_id"]] = {
                "card_id": row["card_id"],
                "name": card.get("name"),
                "image_small": card.get("image_small"),
                "value": round(price, 2),
            }

    top_value_cards = sorted(
        (card for card in per_card.values() if card["value"] > 0),
        key=lambda card: card["value"],
        reverse=True,
    )[:3]
    return {
        "total_cards": sum(row["quantity"] for row in rows),
        "unique_cards": len(per_card),
        "sets_with_cards": len({(row.get("cards") or {}).get("set_id") for row in rows} - {None}),
        "top_value_cards": top_value_cards,
        "total_value_eur": round(total_value, 2) if include_value else None,
    }


def get_public_profile(client: Client, viewer_id: str, user_id: str) -> dict:
    """Another user's profile as `viewer_id` may see it.

    Private profiles are hidden from everyone but their owner. Collection stats
    are shown on public profiles, and on friends-only profiles to friends.
    """
    profile = get_profile(client, user_id)
    if profile is None:
        raise NotFoundError("Profile not found")

    is_self = viewer_id == user_id
    privacy = profile.get("privacy_level") or PrivacyLevel.PUBLIC.value
    if privacy == PrivacyLevel.PRIVATE.value and not is_self:
        raise PermissionDeniedError("Profile is private")

    show_stats = (
        is_self
        or privacy == PrivacyLevel.PUBLIC.value
        or friends_service.are_friends(client, viewer_id, user_id)
    )
    stats = None
    if show_stats:
        include_value = is_self or profile.get("show_collection_value", True) is not False
        stats = public_stats(_collection_rows(client, user_id), include_value)

    return {"profile": profile, "stats": stats}


def recent_activity(client: Client, user_id: str, limit: int = 20) -> list[dict]:
    """Card additions, unlocked achievements, new friends and completed trades, newest first."""
    activities = []

    cards = (
        client.table("user_collections")
        .select("id, card_id, quantity, created_at, cards(id, name, image_small, set_id, sets(name))")
        .eq("user_id", user_id)
        .order("created_at", desc=True)
        .limit(10)
        .execute()
    )
    for row in cards.data or []:
        card = row.get("cards") or {}
        name = card.get("name") or row["card_id"]
        activities.append({
            "id": f"card_{row['id']}",
            "type": ActivityType.CARD_ADDED,
            "title": "Added new card",
            "description": f"Added {row['quantity']}x {name} to collection",
            "timestamp": row.get("created_at"),
            "metadata": {
                "card_id": row["card_id"],
                "card_name": name,
                "card_image": card.get("image_small"),
                "set_id": card.get("set_id"),
                "set_name": (card.get("sets") or {}).get("name"),
            },
        })

    achievements = (
        client.table("user_achievements")
        .select("id, achievement_type, unlocked_at")
        .eq("user_id", user_id)
        .order("unlocked_at", desc=True)
        .limit(5)
        .execute()
    )
    for row in achievements.data or []:
        definition = DEFINITIONS_BY_TYPE.get(row["achievement_type"])
        if definition is None:
            continue
        activities.append({
            "id": f"achievement_{row['id']}",
            "type": ActivityType.ACHIEVEMENT_UNLOCKED,
            "title": "Achievement unlocked",
            "description": f'Unlocked "{definition["name"]}" achievement',
            "timestamp": row.get("unlocked_at"),
            "metadata": {"achievement_type": row["achievement_type"]},
        })

    friendships = (
        client.table("friendships")
        .select("id, requester_id, addressee_id, updated_at")
        .eq("status", "accepted")
        .or_(f"requester_id.eq.{user_id},addressee_id.eq.{user_id}")
        .order("updated_at", desc=True)
        .limit(5)
        .execute()
    )
    friend_rows = friendships.data or []
    friend_ids = [
        row["addressee_id"] if row["requester_id"] == user_id else row["requester_id"]
        for row in friend_rows
    ]
    profiles = friends_service.fetch_profiles(client, friend_ids)
    for row, friend_id in zip(friend_rows, friend_ids):
        friend = profiles.get(friend_id) or {}
        friend_name = friend.get("display_name") or friend.get("username") or "Unknown"
        activities.append({
            "id": f"friend_{row['id']}",
            "type": ActivityType.FRIEND_ADDED,
            "title": "New friend",
            "description": f"Connected with {friend_name}",
            "timestamp": row.get("updated_at"),
            "metadata": {"friend_id": friend_id, "friend_name": friend_name},
        })

    trades = (
        client.table("trades")
        .select("id, initiator_id, recipient_id, updated_at")
        .eq("status", "completed")
        .or_(f"initiator_id.eq.{user_id},recipient_id.eq.{user_id}")
        .order("updated_at", desc=True)
        .limit(5)
        .execute()
    )
    for row in trades.data or []:
        activities.append({
            "id": f"trade_{row['id']}",
            "type": ActivityType.TRADE_COMPLETED,
            "title": "Trade completed",
            "description": "Completed a trade",
            "timestamp": row.get("updated_at"),
            "metadata": {"trade_id": row["id"]},
        })

    # Supabase serializes every timestamptz the same way, so string order is time order.
    activities.sort(key=lambda a: a["timestamp"] or "", reverse=True)
    return activities[:limit]


def growth_trend(rows: list[dict], today: Optional[date] = None) -> GrowthTrend:
    """Compare cards added in the last 30 days with the 30 days before."""
    today = today or date.today()
    recent_since = today - timedelta(days=GROWTH_WINDOW_DAYS)
    previous_since = recent_since - timedelta(days=GROWTH_WINDOW_DAYS)

    recent = previous = 0
    for row in rows:
        if not row.get("created_at"):
            continue
        added = date.fromisoformat(str(row["created_at"])[:10])
        if added > recent_since:
            recent += row["quantity"]
        elif added > previous_since:
            previous += row["quantity"]

    if recent > previous:
        return GrowthTrend.UP
    if recent < previous:
        return GrowthTrend.DOWN
    return GrowthTrend.STABLE


def next_achievement(stats: dict, unlocked_types: set[str]) -> Optional[dict]:
    """The locked achievement closest to completion, ignoring ones with no progress yet."""
    best, best_ratio = None, 0.0
    for definition in ACHIEVEMENT_DEFINITIONS:
        if definition["type"] in unlocked_types:
            continue
        for key, required in definition["requirements"].items():
            progress = stats.get(key, 0)
            ratio = min(progress / required, 1.0)
            if ratio > best_ratio:
                best_ratio = ratio
                best = {"type": definition["type"], "name": definition["name"],
                        "progress": progress, "required": required}
    return best


def collection_rank(client: Client, user_id: str) -> Optional[int]:
    """Position by collection value among all collectors, 1 being the most valuable."""
    totals = community_service.cache.get_or_set(
        "collector_totals",
        lambda: community_service.collector_totals(community_service.fetch_collection_rows(client)),
    )
    if user_id not in totals:
        return None
    ranked = sorted(totals, key=lambda uid: totals[uid]["total_value"], reverse=True)
    return ranked.index(user_id) + 1


def profile_insights(client: Client, user_id: str, today: Optional[date] = None) -> dict:
    rows = _collection_rows(client, user_id)

    rarities: dict[str, int] = {}
    for row in rows:
        rarity = (row.get("cards") or {}).get("rarity") or "Unknown"
        rarities[rarity] = rarities.get(rarity, 0) + row["quantity"]
    top_category = max(rarities, key=rarities.get) if rarities else "Unknown"

    stats = compute_stats(client, user_id)
    unlocked = client.table("user_achievements").select("achievement_type").eq("user_id", user_id).execute()
    unlocked_types = {row["achievement_type"] for row in unlocked.data or []}

    sets_with_cards = len({(row.get("cards") or {}).get("set_id") for row in rows} - {None})
    suggestions = []
    if stats["cards"] < 10:
        suggestions.append("Add more cards to your collection to unlock achievements")
    if sets_with_cards < 3:
        suggestions.append("Try collecting cards from different sets")
    if stats["collection_value_eur"] < 50:
        suggestions.append("Look for rare cards to increase your collection value")

    return {
        "collection_growth_trend": growth_trend(rows, today),
        "top_collection_category": top_category,
        "next_achievement": next_achievement(stats, unlocked_types),
        "collection_rank": collection_rank(client, user_id),
        "suggestions": suggestions,
    }
