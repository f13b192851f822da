"""Wishlist matching between a user and their friends."""

import logging
import time

from postgrest.exceptions import APIError
from supabase import Client

from config import settings
from models.matching import MatchSort
from services import friends_service

logger = logging.getLogger(__name__)

ALL_FRIENDS = "all"


def _fetch_with_retry(client: Client, user_id: str) -> tuple[list, list, list]:
    """Call the three matching procedures, retrying the bundle with a growing delay."""
    attempts = max(1, settings.MATCHING_FETCH_ATTEMPTS)
    params = {"user_id_param": user_id}

    for attempt in range(1, attempts + 1):
        try:
            i_want = client.rpc("get_cards_i_want_friends_have", params).execute()
            they_want = client.rpc("get_cards_friends_want_i_have", params).execute()
            summary = client.rpc("get_wishlist_matching_summary", params).execute()
            return i_want.data or [], they_want.data or [], summary.data or []
        except APIError as e:
            if attempt == attempts:
                logger.error("Wishlist matching failed after %d attempts: %s", attempts, e)
                raise
            delay = settings.MATCHING_RETRY_BACKOFF_SECONDS * attempt
            logger.warning("Wishlist matching attempt %d failed, retrying in %.1fs: %s", attempt, delay, e)
            time.sleep(delay)


def filter_by_friend(matches: list[dict], friend_id: str) -> list[dict]:
    if friend_id == ALL_FRIENDS:
        return list(matches)
    return [match for match in matches if str(match["friend_id"]) == friend_id]


def sort_matches(matches: list[dict], sort_by: MatchSort) -> list[dict]:
    if sort_by == MatchSort.PRICE:
        return sorted(matches, key=lambda m: m.get("card_price") or 0, reverse=True)
    if sort_by == MatchSort.RARITY:
        return sorted(matches, key=lambda m: (m.get("card_rarity") or "").lower())
    return sorted(matches, key=lambda m: (m.get("card_name") or "").lower())


def friend_options(*match_lists: list[dict]) -> list[dict]:
    """The "All Friends" option, then each distinct friend in first-seen order."""
    options = [{"id": ALL_FRIENDS, "name": "All Friends"}]
    seen = set()
    for matches in match_lists:
        for match in matches:
            friend_id = str(match["friend_id"])
            if friend_id in seen:
                continue
            seen.add(friend_id)
            name = match.get("friend_display_name") or match.get("friend_username") or "Unknown"
            options.append({"id": friend_id, "name": name})
    return options


def summarize(rows: list[dict]) -> dict:
    """Totals come from the first row; every row with a friend adds a per-friend count."""
    if not rows:
        return {"total_matches": 0, "i_want_they_have": 0, "they_want_i_have": 0, "friends": []}

    first = rows[0]
    friends = [
        {
            "friend_id": str(row["friend_id"]),
            "friend_username": row.get("friend_username"),
            "friend_display_name": row.get("friend_display_name"),
            "friend_avatar_url": row.get("friend_avatar_url"),
            "match_count": row.get("friend_match_count") or 0,
            "i_want_count": row.get("friend_i_want_count") or 0,
            "they_want_count": row.get("friend_they_want_count") or 0,
        }
        for row in rows
        if row.get("friend_id")
    ]
    return {
        "total_matches": first.get("total_matches") or 0,
        "i_want_they_have": first.get("i_want_they_have") or 0,
        "they_want_i_have": first.get("they_want_i_have") or 0,
        "friends": friends,
    }


def get_matches(client: Client, user_id: str, friend_id: str = ALL_FRIENDS,
                sort_by: MatchSort = MatchSort.NAME) -> dict:
    i_want, they_want, summary_rows = _fetch_with_retry(client, user_id)

    return {
        "cards_i_want": sort_matches(filter_by_friend(i_want, friend_id), sort_by),
        "cards_they_want": sort_matches(filter_by_friend(they_want, friend_id), sort_by),
        "summary": summarize(summary_rows),
        "friend_options": friend_options(i_want, they_want),
    }


FRIEND_VARIANTS = ("normal", "holo", "reverse_holo", "pokeball_pattern", "masterball_pattern")


def friends_with_card(client: Client, user_id: str, card_id: str) -> list[dict]:
    """Friends who own `card_id`, one entry per friend with summed quantities."""
    friend_ids = friends_service.get_friend_ids(client, user_id)
    if not friend_ids:
        return []

    result = (
        client.table("user_collections")
        .select("user_id, quantity, variant")
        .eq("card_id", card_id)
        .in_("user_id", friend_ids)
        .gt("quantity", 0)
        .execute()
    )
    rows = result.data or []
    if not rows:
        return []

    profiles = friends_service.fetch_profiles(client, [row["user_id"] for row in rows])

    owners: dict[str, dict] = {}
    for row in rows:
        owner_id = row["user_id"]
        if owner_id not in owners:
            profile = profiles.get(owner_id, {})
            owners[owner_id] = {
                "id": owner_id,
                "username": profile.get("username"),
                "display_name": profile.get("display_name"),
                "avatar_url": profile.get("avatar_url"),
                "owns_card": True,
                "total_quantity": 0,
                "variants": {variant: 0 for variant in FRIEND_VARIANTS},
            }
        owner = owners[owner_id]
        owner["total_quantity"] += row["quantity"]
        variant = row.get("variant") or "normal"
        if variant in owner["variants"]:
            owner["variants"][variant] += row["quantity"]

    return list(owners.values())
