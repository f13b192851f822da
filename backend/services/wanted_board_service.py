"""The public wanted board: users advertise cards they are looking for."""

import logging
from datetime import datetime, timezone

from supabase import Client

from models.trade import TradeCardItem, TradeProposal
from services import trade_service
from services.errors import NotFoundError, ValidationFailedError

logger = logging.getLogger(__name__)

POST_SELECT = (
    "*, profiles(id, username, display_name, avatar_url), "
    "cards(id, name, set_id, number, rarity, image_small, image_large, cardmarket_avg_sell_price, sets(name))"
)


def _format_post(row: dict) -> dict:
    card = row.get("cards")
    post = {k: v for k, v in row.items() if k not in ("profiles", "cards")}
    post["user"] = row.get("profiles") or {"id": row["user_id"]}
    post["card"] = {**card, "set_name": (card.get("sets") or {}).get("name")} if card else None
    return post


def post_wishlist(client: Client, user_id: str, items: list, replace_all: bool = True) -> list[dict]:
    """Publish wishlist entries as posts, replacing the user's earlier posts unless told otherwise."""
    if replace_all:
        client.table("wanted_board").delete().eq("user_id", user_id).execute()

    now = datetime.now(timezone.utc).isoformat()
    rows = [
        {
            "user_id": user_id,
            "card_id": item.card_id,
            "max_price_eur": item.max_price_eur,
            "condition_preference": item.condition_preference.value,
            "notes": item.notes,
            "created_at": now,
            "updated_at": now,
        }
        for item in items
    ]
    result = client.table("wanted_board").insert(rows).execute()
    logger.info("User %s posted %d cards to the wanted board", user_id, len(rows))
    return result.data or []


def list_posts(client: Client, limit: int = 50) -> list[dict]:
    result = (
        client.table("wanted_board")
        .select(POST_SELECT)
        .order("created_at", desc=True)
        .limit(limit)
        .execute()
    )
    return [_format_post(row) for row in result.data or []]


def get_post(client: Client, post_id: str) -> dict:
    result = client.table("wanted_board").select(POST_SELECT).eq("id", post_id).execute()
    if not result.data:
        raise NotFoundError("Wanted board post not found")
    return _format_post(result.data[0])


def owned_wanted_cards(client: Client, user_id: str, card_ids: list[str]) -> list[str]:
    """Which of `card_ids` the user holds at least one copy of."""
    if not card_ids:
        return []

    result = (
        client.table("user_collections")
        .select("card_id")
        .eq("user_id", user_id)
        .in_("card_id", card_ids)
        .gt("quantity", 0)
        .execute()
    )
    return list(dict.fromkeys(row["card_id"] for row in result.data or []))


def stats(client: Client) -> dict:
    result = client.table("wanted_board").select("id, user_id").execute()
    rows = result.data or []
    return {
        "total_posts": len(rows),
        "total_users": len({row["user_id"] for row in rows}),
        "recent_posts": list_posts(client, limit=5),
    }


def remove_card(client: Client, user_id: str, card_id: str) -> None:
    client.table("wanted_board").delete().eq("user_id", user_id).eq("card_id", card_id).execute()


def remove_post(client: Client, user_id: str, post_id: str) -> None:
    result = client.table("wanted_board").delete().eq("user_id", user_id).eq("id", post_id).execute()
    if not result.data:
        raise NotFoundError("Wanted board post not found")


def remove_all_posts(client: Client, user_id: str) -> None:
    client.table("wanted_board").delete().eq("user_id", user_id).execute()


def trade_from_post(client: Client, user_id: str, post_id: str, offer) -> dict:
    """Offer the poster the card they want. Board trades are open to non-friends."""
    post = get_post(client, post_id)
    if post["user_id"] == user_id:
        raise ValidationFailedError("You cannot respond to your own wanted board post")

    wanted = TradeCardItem(card_id=post["card_id"], quantity=offer.quantity, condition=offer.condition)
    proposal = TradeProposal(
        recipient_id=post["user_id"],
        message=offer.message,
        offering_cards=[wanted, *offer.extra_offering_cards],
        requesting_cards=offer.requesting_cards,
        initiator_money_offer=offer.initiator_money_offer,
        recipient_money_offer=offer.recipient_money_offer,
        trade_method=offer.trade_method,
        initiator_shipping_included=offer.initiator_shipping_included,
        recipient_shipping_included=offer.recipient_shipping_included,
    )
    return trade_service.propose_trade(client, user_id, proposal, require_friendship=False)
