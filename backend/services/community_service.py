"""Community-wide statistics: totals, popular sets, trending cards and leaderboards.

The two stored procedures (`get_community_stats`, `get_leaderboards_data`)
aggregate in the database. When either fails, the same numbers are computed
here from the raw collection rows. Results are cached for
`COMMUNITY_STATS_TTL_SECONDS`.
"""

import logging
import re
import time
from datetime import date, timedelta
from typing import Callable, Optional

from postgrest.exceptions import APIError
from supabase import Client

from config import settings
from services.friends_service import fetch_profiles
from services.pricing_service import cardmarket_price

logger = logging.getLogger(__name__)

COLLECTION_COLUMNS = (
    "user_id, card_id, quantity, variant, created_at, "
    "cards(id, name, rarity, set_id, image_small, cardmarket_avg_sell_price, "
    "cardmarket_reverse_holo_sell, cardmarket_1st_edition_avg, "
    "sets(id, name, symbol_url, release_date, total_cards))"
)

LEADERBOARD_SIZE = 20
RECENT_ACTIVITY_DAYS = 30

# board -> (stat it is ranked by, stats copied into each entry's metadata)
BOARDS = {
    "top_collectors": ("total_value", ("total_cards", "unique_cards", "total_value")),
    "biggest_collections": ("total_cards", ("total_cards", "unique_cards", "total_value")),
    "most_valuable": (
        "most_valuable_card_price",
        ("total_cards", "unique_cards", "total_value", "most_valuable_card_name"),
    ),
    "duplicate_collectors": ("duplicate_cards", ("total_cards", "unique_cards", "duplicate_cards")),
    "set_completionists": ("sets_completed", ("unique_cards", "sets_collected", "sets_completed")),
    "recently_active": ("recent_activity", ("total_cards", "recent_activity")),
}

COMMUNITY_GOALS = [
    {
        "type": "community_cards",
        "name": "Card Collection Milestone",
        "description": "Collect 100,000 cards as a community!",
        "icon": "🎴",
        "stat": "total_cards",
        "goal": 100_000,
        "reached": "Amazing! The community has reached this milestone!",
        "remaining": "{remaining:,} cards to go!",
    },
    {
        "type": "community_collectors",
        "name": "Growing Community",
        "description": "Reach 100 active collectors!",
        "icon": "👥",
        "stat": "total_users",
        "goal": 100,
        "reached": "Incredible! Our community is thriving!",
        "remaining": "{remaining:,} more collectors needed!",
    },
    {
        # 500,000 kr in EUR
        "type": "community_value",
        "name": "Treasure Vault",
        "description": "Build a community collection worth 500,000 kr!",
        "icon": "💰",
        "stat": "total_value",
        "goal": 43_478.26,
        "reached": "Legendary! Our community vault is overflowing!",
        "remaining": "More value needed to unlock!",
    },
    {
        "type": "community_diversity",
        "name": "Card Diversity Master",
        "description": "Discover 10,000 different cards together!",
        "icon": "🌟",
        "stat": "unique_cards",
        "goal": 10_000,
        "reached": "Phenomenal! Our collection spans the entire Pokémon universe!",
        "remaining": "{remaining:,} more unique cards to discover!",
    },
]


class TTLCache:
    """Keeps computed values for `ttl_seconds`, keyed by name and arguments."""

    def __init__(
        self,
        ttl_seconds: Optional[int] = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.ttl_seconds = settings.COMMUNITY_STATS_TTL_SECONDS if ttl_seconds is None else ttl_seconds
        self._clock = clock
        self._entries: dict = {}

    def get_or_set(self, key, loader: Callable[[], object]):
        now = self._clock()
        cached = self._entries.get(key)
        if cached is not None and now - cached[0] <= self.ttl_seconds:
            return cached[1]
        value = loader()
        self._entries[key] = (now, value)
        return value

    def clear(self) -> None:
        self._entries.clear()


cache = TTLCache()


def _day(value) -> Optional[date]:
    if not value:
        return None
    return date.fromisoformat(str(value)[:10])


def _snake(key: str) -> str:
    return re.sub(r"(?<!^)(?=[A-Z])", "_", key).lower()


def _rpc_object(client: Client, name: str) -> Optional[dict]:
    """JSON result of a stored procedure, or None when it fails or returns nothing."""
    try:
        data = client.rpc(name, {}).execute().data
    except APIError as e:
        logger.warning("%s failed, aggregating from collections instead: %s", name, e)
        return None
    if isinstance(data, list):
        data = data[0] if data else None
    return data or None


def fetch_collection_rows(client: Client) -> list[dict]:
    result = client.table("user_collections").select(COLLECTION_COLUMNS).execute()
    return result.data or []


def _profile_fields(user_id: str, profiles: dict[str, dict]) -> dict:
    profile = profiles.get(user_id) or {}
    return {
        "user_id": user_id,
        "username": profile.get("username") or "Unknown",
        "display_name": profile.get("display_name"),
        "avatar_url": profile.get("avatar_url"),
    }


# ============== Aggregation ==============

def collector_totals(rows: list[dict], today: Optional[date] = None) -> dict[str, dict]:
    """Per-user aggregates over collection rows, valued at CardMarket average prices."""
    recent_since = (today or date.today()) - timedelta(days=RECENT_ACTIVITY_DAYS)
    totals: dict[str, dict] = {}

    for row in rows:
        card = row.get("cards") or {}
        quantity = row["quantity"]
        user = totals.setdefault(row["user_id"], {
            "total_cards": 0,
            "total_value": 0.0,
            "card_quantities": {},
            "set_cards": {},
            "set_sizes": {},
            "recent_activity": 0,
            "most_valuable_card_price": 0.0,
            "most_valuable_card_name": None,
        })

        price = cardmarket_price(card, variant=row.get("variant") or "normal") or 0.0
        user["total_cards"] += quantity
        user["total_value"] += price * quantity
        user["card_quantities"][row["card_id"]] = user["card_quantities"].get(row["card_id"], 0) + quantity

        if price > user["most_valuable_card_price"]:
            user["most_valuable_card_price"] = price
            user["most_valuable_card_name"] = card.get("name")

        card_set = card.get("sets") or {}
        set_id = card_set.get("id") or card.get("set_id")
        if set_id:
            user["set_cards"].setdefault(set_id, set()).add(row["card_id"])
            if card_set.get("total_cards"):
                user["set_sizes"][set_id] = card_set["total_cards"]

        added = _day(row.get("created_at"))
        if added is not None and added >= recent_since:
            user["recent_activity"] += quantity

    for user in totals.values():
        quantities = user.pop("card_quantities")
        set_cards = user.pop("set_cards")
        set_sizes = user.pop("set_sizes")
        user["unique_cards"] = len(quantities)
        user["duplicate_cards"] = sum(q - 1 for q in quantities.values() if q > 1)
        user["sets_collected"] = len(set_cards)
        user["sets_completed"] = sum(
            1 for set_id, cards in set_cards.items()
            if set_sizes.get(set_id) and len(cards) >= set_sizes[set_id]
        )
        user["total_value"] = round(user["total_value"], 2)
        user["most_valuable_card_price"] = round(user["most_valuable_card_price"], 2)

    return totals


def rank_board(totals: dict[str, dict], profiles: dict[str, dict], stat: str,
               metadata_keys: tuple, size: int = LEADERBOARD_SIZE) -> list[dict]:
    ranked = sorted(
        ((user_id, stats) for user_id, stats in totals.items() if stats[stat] > 0),
        key=lambda item: item[1][stat],
        reverse=True,
    )[:size]
    return [
        {
            **_profile_fields(user_id, profiles),
            "value": stats[stat],
            "rank": rank,
            "metadata": {key: stats[key] for key in metadata_keys},
        }
        for rank, (user_id, stats) in enumerate(ranked, start=1)
    ]


def rank_sets(rows: list[dict], limit: int = 10) -> list[dict]:
    """Sets ordered by how many collectors own cards from them."""
    sets: dict[str, dict] = {}
    for row in rows:
        card = row.get("cards") or {}
        card_set = card.get("sets") or {}
        set_id = card_set.get("id") or card.get("set_id")
        if not set_id:
            continue
        entry = sets.setdefault(set_id, {"set": card_set, "owners": {}, "total_cards_owned": 0})
        entry["owners"].setdefault(row["user_id"], set()).add(row["card_id"])
        entry["total_cards_owned"] += row["quantity"]

    popular = []
    for set_id, entry in sets.items():
        size = entry["set"].get("total_cards")
        owned = [len(cards) for cards in entry["owners"].values()]
        completion = sum(owned) / len(owned) / size * 100 if size else 0.0
        popular.append({
            "set_id": set_id,
            "set_name": entry["set"].get("name"),
            "symbol_url": entry["set"].get("symbol_url"),
            "release_date": entry["set"].get("release_date"),
            "collectors_count": len(owned),
            "total_cards_owned": entry["total_cards_owned"],
            "average_completion": round(min(completion, 100.0), 1),
        })

    popular.sort(key=lambda s: (s["collectors_count"], s["total_cards_owned"]), reverse=True)
    return popular[:limit]


def rank_trending(rows: list[dict], limit: int = 10, days: int = 7, today: Optional[date] = None) -> list[dict]:
    """Cards added in the last `days`, most added first."""
    since = (today or date.today()) - timedelta(days=days)
    cards: dict[str, dict] = {}
    for row in rows:
        entry = cards.setdefault(row["card_id"], {
            "card": row.get("cards") or {},
            "owners": set(),
            "total_quantity": 0,
            "recent_adds": 0,
        })
        entry["owners"].add(row["user_id"])
        entry["total_quantity"] += row["quantity"]
        added = _day(row.get("created_at"))
        if added is not None and added >= since:
            entry["recent_adds"] += row["quantity"]

    trending = [
        {
            "card_id": card_id,
            "card_name": entry["card"].get("name"),
            "set_name": (entry["card"].get("sets") or {}).get("name"),
            "image_small": entry["card"].get("image_small"),
            "rarity": entry["card"].get("rarity"),
            "owners_count": len(entry["owners"]),
            "total_quantity": entry["total_quantity"],
            "average_value": cardmarket_price(entry["card"]) or 0.0,
            "recent_adds": entry["recent_adds"],
        }
        for card_id, entry in cards.items()
        if entry["recent_adds"] > 0
    ]
    trending.sort(key=lambda c: (c["recent_adds"], c["owners_count"]), reverse=True)
    return trending[:limit]


def global_achievements(stats: dict) -> list[dict]:
    achievements = []
    for goal in COMMUNITY_GOALS:
        progress = stats.get(goal["stat"], 0)
        target = goal["goal"]
        completed = progress >= target
        achievements.append({
            "type": goal["type"],
            "name": goal["name"],
            "description": goal["description"],
            "icon": goal["icon"],
            "current_progress": progress,
            "target_goal": target,
            "percentage": round(min(progress / target * 100, 100.0), 1),
            "encouraging_message": (
                goal["reached"] if completed
                else goal["remaining"].format(remaining=max(int(target - progress), 0))
            ),
            "is_completed": completed,
        })
    return achievements


# ============== Queries ==============

def basic_stats(client: Client) -> dict:
    users = client.table("profiles").select("id", count="exact").execute()
    total_users = users.count or 0

    summary = _rpc_object(client, "get_community_stats")
    if summary:
        return {
            "total_users": total_users,
            "total_collections": int(summary.get("totalCollections") or 0),
            "total_cards": int(summary.get("totalCards") or 0),
            "total_value": round(float(summary.get("totalValue") or 0), 2),
            "average_collection_size": round(float(summary.get("averageSize") or 0), 2),
        }

    totals = collector_totals(fetch_collection_rows(client))
    total_cards = sum(user["total_cards"] for user in totals.values())
    return {
        "total_users": total_users,
        "total_collections": len(totals),
        "total_cards": total_cards,
        "total_value": round(sum(user["total_value"] for user in totals.values()), 2),
        "average_collection_size": round(total_cards / len(totals), 2) if totals else 0.0,
    }


def _top_collectors(client: Client, limit: int) -> list[dict]:
    totals = collector_totals(fetch_collection_rows(client))
    ranked = sorted(totals.items(), key=lambda item: item[1]["total_value"], reverse=True)[:limit]
    profiles = fetch_profiles(client, [user_id for user_id, _ in ranked])
    return [
        {
            **_profile_fields(user_id, profiles),
            "total_cards": stats["total_cards"],
            "unique_cards": stats["unique_cards"],
            "total_value": stats["total_value"],
            "sets_collected": stats["sets_collected"],
            "rank": rank,
        }
        for rank, (user_id, stats) in enumerate(ranked, start=1)
    ]


def top_collectors(client: Client, limit: int = 10) -> list[dict]:
    return cache.get_or_set(("top_collectors", limit), lambda: _top_collectors(client, limit))


def _leaderboards(client: Client) -> dict:
    data = _rpc_object(client, "get_leaderboards_data")
    if data:
        boards = {}
        for name, entries in data.items():
            board = _snake(name)
            if board not in BOARDS:
                continue
            boards[board] = [
                {
                    "user_id": entry["userId"],
                    "username": entry.get("username") or "Unknown",
                    "display_name": entry.get("displayName"),
                    "avatar_url": entry.get("avatarUrl"),
                    "value": entry.get("value") or 0,
                    "rank": entry.get("rank") or position,
                    "metadata": {_snake(key): value for key, value in (entry.get("metadata") or {}).items()},
                }
                for position, entry in enumerate(entries or [], start=1)
            ]
        return boards

    totals = collector_totals(fetch_collection_rows(client))
    profiles = fetch_profiles(client, list(totals))
    return {
        board: rank_board(totals, profiles, stat, metadata_keys)
        for board, (stat, metadata_keys) in BOARDS.items()
    }


def leaderboards(client: Client) -> dict:
    return cache.get_or_set("leaderboards", lambda: _leaderboards(client))


def popular_sets(client: Client, limit: int = 10) -> list[dict]:
    return cache.get_or_set(("popular_sets", limit), lambda: rank_sets(fetch_collection_rows(client), limit))


def trending_cards(client: Client, limit: int = 10, days: int = 7) -> list[dict]:
    return cache.get_or_set(
        ("trending_cards", limit, days),
        lambda: rank_trending(fetch_collection_rows(client), limit, days),
    )


def _community_stats(client: Client) -> dict:
    stats = basic_stats(client)
    owned = client.table("user_collections").select("card_id").execute()
    unique_cards = len({row["card_id"] for row in owned.data or []})
    return {
        **stats,
        "top_collectors": top_collectors(client),
        "global_achievements": global_achievements({**stats, "unique_cards": unique_cards}),
        "leaderboards": leaderboards(client),
    }


def community_stats(client: Client) -> dict:
    return cache.get_or_set("community_stats", lambda: _community_stats(client))
