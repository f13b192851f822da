"""Achievement definitions and the unlock/revoke check."""

import logging

from supabase import Client

from models.achievement import AchievementCategory
from services.friends_service import get_friend_ids
from services.pricing_service import cardmarket_price

logger = logging.getLogger(__name__)

RARE_RARITIES = {"rare", "ultra rare", "secret rare", "rainbow rare"}


def _definition(type_, name, description, icon, category, points, **requirements):
    return {
        "type": type_,
        "name": name,
        "description": description,
        "icon": icon,
        "category": category,
        "points": points,
        "requirements": requirements,
    }


_C = AchievementCategory.COLLECTION
_S = AchievementCategory.SOCIAL
_T = AchievementCategory.TRADING

ACHIEVEMENT_DEFINITIONS = [
    _definition("first_card", "First Steps", "Add your first card to your collection", "🎯", _C, 10, cards=1),
    _definition("collector_10", "Getting Started", "Collect 10 unique cards", "📚", _C, 25, unique_cards=10),
    _definition("collector_25", "Card Enthusiast", "Collect 25 unique cards", "📚", _C, 50, unique_cards=25),
    _definition("collector_50", "Dedicated Collector", "Collect 50 unique cards", "📚", _C, 100, unique_cards=50),
    _definition("collector_100", "Serious Collector", "Collect 100 unique cards", "📚", _C, 250, unique_cards=100),
    _definition("collector_250", "Master Collector", "Collect 250 unique cards", "🏆", _C, 500, unique_cards=250),
    _definition("collector_500", "Elite Collector", "Collect 500 unique cards", "🏆", _C, 1000, unique_cards=500),
    _definition("collector_1000", "Pokédex Master", "Collect 1000 unique cards", "👑", _C, 2000, unique_cards=1000),

    _definition("valuable_collection_100", "Valuable Collection", "Reach a collection value of €100",
                "💰", _C, 150, collection_value_eur=100),
    _definition("valuable_collection_500", "Investment Guru", "Reach a collection value of €500",
                "💰", _C, 600, collection_value_eur=500),
    _definition("valuable_collection_1000", "High Roller", "Reach a collection value of €1000",
                "💎", _C, 1200, collection_value_eur=1000),

    _definition("rare_collector", "Rare Hunter", "Own 10 rare cards", "⭐", _C, 200, rare_cards=10),
    _definition("rare_collector_50", "Legendary Collector", "Own 50 rare cards", "🌟", _C, 750, rare_cards=50),

    _definition("volume_collector_100", "Card Hoarder", "Own 100 cards in total", "📦", _C, 75, cards=100),
    _definition("volume_collector_1000", "Card Warehouse", "Own 1000 cards in total", "🏭", _C, 800, cards=1000),

    _definition("first_friend", "Making Friends", "Add your first friend", "🤝", _S, 20, friends=1),
    _definition("social_circle", "Social Circle", "Have 5 friends", "👥", _S, 50, friends=5),
    _definition("social_butterfly", "Social Butterfly", "Have 10 friends", "🦋", _S, 100, friends=10),

    _definition("first_trade", "First Trade", "Complete your first trade", "🔄", _T, 50, completed_trades=1),
    _definition("frequent_trader", "Frequent Trader", "Complete 5 trades", "🔄", _T, 125, completed_trades=5),
    _definition("active_trader", "Active Trader", "Complete 10 trades", "📈", _T, 200, completed_trades=10),
    _definition("trade_master", "Trade Master", "Complete 100 trades", "👑", _T, 1500, completed_trades=100),
]

DEFINITIONS_BY_TYPE = {d["type"]: d for d in ACHIEVEMENT_DEFINITIONS}


def compute_stats(client: Client, user_id: str) -> dict:
    collection = (
        client.table("user_collections")
        .select("card_id, quantity, variant, cards(id, name, rarity, cardmarket_avg_sell_price, "
                "cardmarket_reverse_holo_sell, cardmarket_1st_edition_avg)")
        .eq("user_id", user_id)
        .execute()
    )
    rows = collection.data or []

    value = 0.0
    rare = 0
    for row in rows:
        card = row.get("cards") or {}
        value += (cardmarket_price(card, variant=row.get("variant") or "normal") or 0.0) * row["quantity"]
        if (card.get("rarity") or "").lower() in RARE_RARITIES:
            rare += 1

    trades = (
        client.table("trades")
        .select("id, status")
        .or_(f"initiator_id.eq.{user_id},recipient_id.eq.{user_id}")
        .eq("status", "completed")
        .execute()
    )

    return {
        "unique_cards": len({row["card_id"] for row in rows}),
        "cards": sum(row["quantity"] for row in rows),
        "rare_cards": rare,
        "collection_value_eur": round(value, 2),
        "friends": len(get_friend_ids(client, user_id)),
        "completed_trades": len(trades.data or []),
    }


def meets_requirements(definition: dict, stats: dict) -> bool:
    return all(stats.get(key, 0) >= threshold for key, threshold in definition["requirements"].items())


def check_achievements(client: Client, user_id: str) -> dict:
    """Unlock newly met achievements and revoke ones that no longer hold."""
    existing = (
        client.table("user_achievements")
        .select("achievement_type")
        .eq("user_id", user_id)
        .execute()
    )
    unlocked_types = {row["achievement_type"] for row in existing.data or []}
    stats = compute_stats(client, user_id)

    unlocked, revoked = [], []
    for definition in ACHIEVEMENT_DEFINITIONS:
        has_it = definition["type"] in unlocked_types
        should_have = meets_requirements(definition, stats)

        if should_have and not has_it:
            client.table("user_achievements").insert({
                "user_id": user_id,
                "achievement_type": definition["type"],
                "achievement_data": {"points": definition["points"]},
            }).execute()
            unlocked.append(definition)
        elif has_it and not should_have:
            client.table("user_achievements").delete().eq(
                "user_id", user_id
            ).eq("achievement_type", definition["type"]).execute()
            revoked.append(definition)

    if unlocked or revoked:
        logger.info("Achievements for %s: +%d -%d", user_id, len(unlocked), len(revoked))
    return {"unlocked": unlocked, "revoked": revoked}


def check_achievements_quietly(client: Client, user_id: str) -> dict:
    """Run `check_achievements` as a side effect: failures are logged, not raised."""
    try:
        return check_achievements(client, user_id)
    except Exception as e:
        logger.warning("Achievement check failed for %s: %s", user_id, e)
        return {"unlocked": [], "revoked": []}


def list_achievements(client: Client, user_id: str) -> dict:
    result = (
        client.table("user_achievements")
        .select("achievement_type, unlocked_at")
        .eq("user_id", user_id)
        .order("unlocked_at", desc=True)
        .execute()
    )

    achievements = [
        {
            "achievement_type": row["achievement_type"],
            "unlocked_at": row.get("unlocked_at"),
            "definition": DEFINITIONS_BY_TYPE[row["achievement_type"]],
        }
        for row in result.data or []
        if row["achievement_type"] in DEFINITIONS_BY_TYPE
    ]
    return {
        "achievements": achievements,
        "total_points": sum(a["definition"]["points"] for a in achievements),
    }
