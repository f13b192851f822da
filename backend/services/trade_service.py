"""Trade service: proposals, the status lifecycle, listing and history."""

import logging
from datetime import datetime, timedelta, timezone
from typing import Optional

from postgrest.exceptions import APIError
from supabase import Client

from config import settings
from models.notification import NotificationType
from models.trade import (
    ACTIVE_STATUSES,
    TERMINAL_STATUSES,
    TradeRole,
    TradeStatus,
    TradeView,
)
from services import friends_service, notification_service
from services.errors import (
    ConflictError,
    NotFoundError,
    PermissionDeniedError,
    ValidationFailedError,
)

logger = logging.getLogger(__name__)

TRADE_SELECT = (
    "*, trade_items(*, cards(id, name, set_id, number, rarity, image_small, image_large, "
    "cardmarket_avg_sell_price))"
)

# Allowed status changes. Terminal statuses have no exits.
TRANSITIONS = {
    TradeStatus.PENDING: {TradeStatus.ACCEPTED, TradeStatus.DECLINED, TradeStatus.CANCELLED},
    TradeStatus.ACCEPTED: {TradeStatus.COMPLETED},
}


def _now() -> datetime:
    return datetime.now(timezone.utc)


def _parse_timestamp(value) -> Optional[datetime]:
    if not value:
        return None
    if isinstance(value, datetime):
        parsed = value
    else:
        parsed = datetime.fromisoformat(str(value).replace("Z", "+00:00"))
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def profile_label(profile: Optional[dict]) -> str:
    profile = profile or {}
    return profile.get("display_name") or profile.get("username") or "Someone"


def actor_name(client: Client, user_id: str) -> str:
    return profile_label(friends_service.fetch_profiles(client, [user_id]).get(user_id))


def counterparty(trade: dict, user_id: str) -> str:
    return trade["recipient_id"] if trade["initiator_id"] == user_id else trade["initiator_id"]


def is_participant(trade: dict, user_id: str) -> bool:
    return user_id in (trade["initiator_id"], trade["recipient_id"])


def format_trade(trade: dict, profiles: dict[str, dict]) -> dict:
    """Attach party profiles and rename joined `cards` to `card` on each item."""
    items = []
    for item in trade.get("trade_items") or []:
        card = item.get("cards")
        items.append({**{k: v for k, v in item.items() if k != "cards"}, "card": card})

    return {
        **{k: v for k, v in trade.items() if k != "trade_items"},
        "initiator": profiles.get(trade["initiator_id"], {"id": trade["initiator_id"]}),
        "recipient": profiles.get(trade["recipient_id"], {"id": trade["recipient_id"]}),
        "trade_items": items,
    }


# ============== Proposals ==============

def _validate_proposal(initiator_id: str, proposal) -> None:
    if proposal.recipient_id == initiator_id:
        raise ValidationFailedError("Cannot trade with yourself")

    has_cards = bool(proposal.offering_cards or proposal.requesting_cards)
    has_money = proposal.initiator_money_offer > 0 or proposal.recipient_money_offer > 0
    if not (has_cards or has_money):
        raise ValidationFailedError("A trade must include at least one card or money offer")


def _check_ownership(client: Client, user_id: str, cards: list) -> None:
    """Raise when the user holds fewer copies of an offered card than offered (summed over variants)."""
    wanted: dict[str, int] = {}
    for card in cards:
        wanted[card.card_id] = wanted.get(card.card_id, 0) + card.quantity
    if not wanted:
        return

    result = (
        client.table("user_collections")
        .select("card_id, quantity")
        .eq("user_id", user_id)
        .in_("card_id", list(wanted))
        .execute()
    )
    owned: dict[str, int] = {}
    for row in result.data or []:
        owned[row["card_id"]] = owned.get(row["card_id"], 0) + row["quantity"]

    for card_id, quantity in wanted.items():
        if owned.get(card_id, 0) < quantity:
            raise ValidationFailedError(
                f"You don't own enough copies of card {card_id} (have {owned.get(card_id, 0)}, offering {quantity})"
            )


def _item_rows(trade_id: str, user_id: str, cards: list) -> list[dict]:
    return [
        {
            "trade_id": trade_id,
            "user_id": user_id,
            "card_id": card.card_id,
            "quantity": card.quantity,
            "condition": card.condition.value,
            "is_foil": card.is_foil,
            "notes": card.notes,
        }
        for card in cards
    ]


def propose_trade(client: Client, initiator_id: str, proposal, require_friendship: bool = True) -> dict:
    """Create a pending trade and its items.

    The trade row is removed again if its items cannot be stored.
    """
    _validate_proposal(initiator_id, proposal)

    if require_friendship and not friends_service.are_friends(client, initiator_id, proposal.recipient_id):
        raise PermissionDeniedError("You can only trade with friends")

    _check_ownership(client, initiator_id, proposal.offering_cards)

    now = _now()
    trade_data = {
        "initiator_id": initiator_id,
        "recipient_id": proposal.recipient_id,
        "status": TradeStatus.PENDING.value,
        "initiator_message": proposal.message,
        "initiator_money_offer": proposal.initiator_money_offer,
        "recipient_money_offer": proposal.recipient_money_offer,
        "trade_method": proposal.trade_method,
        "initiator_shipping_included": proposal.initiator_shipping_included,
        "recipient_shipping_included": proposal.recipient_shipping_included,
        "parent_trade_id": str(proposal.parent_trade_id) if proposal.parent_trade_id else None,
        "created_at": now.isoformat(),
        "updated_at": now.isoformat(),
        "expires_at": (now + timedelta(days=settings.TRADE_EXPIRY_DAYS)).isoformat(),
    }
    result = client.table("trades").insert(trade_data).execute()
    if not result.data:
        raise ValidationFailedError("Failed to create trade")
    trade = result.data[0]
    trade_id = str(trade["id"])

    rows = (
        _item_rows(trade_id, initiator_id, proposal.offering_cards)
        + _item_rows(trade_id, proposal.recipient_id, proposal.requesting_cards)
    )
    items = []
    if rows:
        try:
            items = client.table("trade_items").insert(rows).execute().data or []
        except APIError as e:
            logger.error("Failed to insert items for trade %s, rolling back: %s", trade_id, e)
            client.table("trades").delete().eq("id", trade_id).execute()
            raise ValidationFailedError("Failed to add trade items") from e

    notification_type = (
        NotificationType.TRADE_COUNTER_OFFER if proposal.parent_trade_id else NotificationType.TRADE_REQUEST
    )
    notification_service.send_trade_notification(
        client, proposal.recipient_id, notification_type, actor_name(client, initiator_id), trade_id
    )

    logger.info("Trade %s proposed by %s to %s", trade_id, initiator_id, proposal.recipient_id)
    return {**trade, "trade_items": items}


def counter_offer_draft(client: Client, trade_id: str, user_id: str) -> dict:
    """Pre-fill a proposal that answers a pending trade with the sides swapped."""
    trade = get_trade(client, trade_id, user_id)

    if trade["recipient_id"] != user_id:
        raise PermissionDeniedError("Only the recipient can counter this trade")
    if trade["status"] != TradeStatus.PENDING.value:
        raise ConflictError("Only pending trades can be countered")

    def as_card(item):
        return {
            "card_id": item["card_id"],
            "quantity": item["quantity"],
            "condition": item.get("condition") or "near_mint",
            "is_foil": item.get("is_foil") or False,
            "notes": item.get("notes"),
        }

    items = trade["trade_items"]
    return {
        "recipient_id": trade["initiator_id"],
        "message": None,
        "offering_cards": [as_card(i) for i in items if i["user_id"] == user_id],
        "requesting_cards": [as_card(i) for i in items if i["user_id"] == trade["initiator_id"]],
        "initiator_money_offer": trade.get("recipient_money_offer") or 0,
        "recipient_money_offer": trade.get("initiator_money_offer") or 0,
        "trade_method": trade.get("trade_method"),
        "initiator_shipping_included": trade.get("recipient_shipping_included") is not False,
        "recipient_shipping_included": trade.get("initiator_shipping_included") is not False,
        "parent_trade_id": trade["id"],
    }


# ============== Reads ==============

def load_trade(client: Client, trade_id: str) -> dict:
    result = client.table("trades").select("*").eq("id", trade_id).execute()
    if not result.data:
        raise NotFoundError("Trade not found")
    return result.data[0]


def get_trade(client: Client, trade_id: str, user_id: str) -> dict:
    result = client.table("trades").select(TRADE_SELECT).eq("id", trade_id).execute()

    # Non-participants get the same answer as for a missing trade.
    if not result.data or not is_participant(result.data[0], user_id):
        raise NotFoundError("Trade not found")

    trade = result.data[0]
    profiles = friends_service.fetch_profiles(client, [trade["initiator_id"], trade["recipient_id"]])
    return format_trade(trade, profiles)


def list_trades(
    client: Client,
    user_id: str,
    status: Optional[TradeStatus] = None,
    role: TradeRole = TradeRole.ALL,
    view: Optional[TradeView] = None,
    page: int = 1,
    limit: int = 20,
) -> dict:
    query = client.table("trades").select(TRADE_SELECT, count="exact")

    if role == TradeRole.SENT:
        query = query.eq("initiator_id", user_id)
    elif role == TradeRole.RECEIVED:
        query = query.eq("recipient_id", user_id)
    else:
        query = query.or_(f"initiator_id.eq.{user_id},recipient_id.eq.{user_id}")

    if status:
        query = query.eq("status", TradeStatus(status).value)
    elif view == TradeView.ACTIVE:
        query = query.in_("status", [s.value for s in ACTIVE_STATUSES])
    elif view == TradeView.HISTORY:
        query = query.in_("status", [s.value for s in TERMINAL_STATUSES])

    offset = (page - 1) * limit
    result = query.order("created_at", desc=True).range(offset, offset + limit - 1).execute()
    trades = result.data or []

    party_ids = [t["initiator_id"] for t in trades] + [t["recipient_id"] for t in trades]
    profiles = friends_service.fetch_profiles(client, party_ids)

    return {
        "trades": [format_trade(t, profiles) for t in trades],
        "total": result.count if result.count is not None else len(trades),
        "page": page,
        "page_size": limit,
    }


def _user_trades(client: Client, user_id: str) -> list[dict]:
    result = (
        client.table("trades")
        .select("*")
        .or_(f"initiator_id.eq.{user_id},recipient_id.eq.{user_id}")
        .order("created_at", desc=True)
        .execute()
    )
    return result.data or []


def trade_counts(client: Client, user_id: str) -> dict:
    trades = _user_trades(client, user_id)
    active = [s.value for s in ACTIVE_STATUSES]
    terminal = [s.value for s in TERMINAL_STATUSES]
    pending = TradeStatus.PENDING.value

    return {
        "pending_received": sum(1 for t in trades if t["status"] == pending and t["recipient_id"] == user_id),
        "pending_sent": sum(1 for t in trades if t["status"] == pending and t["initiator_id"] == user_id),
        "active": sum(1 for t in trades if t["status"] in active),
        "history": sum(1 for t in trades if t["status"] in terminal),
    }


def trading_stats(client: Client, user_id: str) -> dict:
    trades = _user_trades(client, user_id)
    total = len(trades)
    completed = sum(1 for t in trades if t["status"] == TradeStatus.COMPLETED.value)

    return {
        "user_id": user_id,
        "total_trades": total,
        "pending_trades": sum(1 for t in trades if t["status"] == TradeStatus.PENDING.value),
        "completed_trades": completed,
        "success_rate": round(completed / total * 100, 2) if total else 0.0,
        "recent_trades": trades[:5],
    }


# ============== Status changes ==============

def update_status(client: Client, trade: dict, new_status: TradeStatus) -> dict:
    """Move a trade along an allowed transition.

    The update only applies while the row still has the status it was read
    with, so concurrent changes to the same trade cannot both succeed.
    """
    current = TradeStatus(trade["status"])
    if new_status not in TRANSITIONS.get(current, set()):
        raise ConflictError(f"Cannot change a {current.value} trade to {new_status.value}")

    result = (
        client.table("trades")
        .update({"status": new_status.value, "updated_at": _now().isoformat()})
        .eq("id", str(trade["id"]))
        .eq("status", current.value)
        .execute()
    )
    if not result.data:
        raise ConflictError("This trade was updated by someone else, refresh and try again")

    logger.info("Trade %s: %s -> %s", trade["id"], current.value, new_status.value)
    return result.data[0]


def _respond(client: Client, trade_id: str, user_id: str, new_status: TradeStatus,
             party: str, action: str, notification_type: NotificationType) -> dict:
    trade = load_trade(client, trade_id)
    if not is_participant(trade, user_id):
        raise NotFoundError("Trade not found")
    if trade[f"{party}_id"] != user_id:
        raise PermissionDeniedError(f"Only the {party} can {action} this trade")

    if new_status == TradeStatus.ACCEPTED and trade["status"] == TradeStatus.PENDING.value:
        expires_at = _parse_timestamp(trade.get("expires_at"))
        if expires_at and expires_at < _now():
            raise ConflictError("This trade offer has expired")

    updated = update_status(client, trade, new_status)
    notification_service.send_trade_notification(
        client, counterparty(trade, user_id), notification_type, actor_name(client, user_id), str(trade["id"])
    )
    return updated


def accept_trade(client: Client, trade_id: str, user_id: str) -> dict:
    return _respond(client, trade_id, user_id, TradeStatus.ACCEPTED, "recipient", "accept", NotificationType.TRADE_ACCEPTED)


def decline_trade(client: Client, trade_id: str, user_id: str) -> dict:
    return _respond(client, trade_id, user_id, TradeStatus.DECLINED, "recipient", "decline", NotificationType.TRADE_DECLINED)


def cancel_trade(client: Client, trade_id: str, user_id: str) -> dict:
    return _respond(client, trade_id, user_id, TradeStatus.CANCELLED, "initiator", "cancel", NotificationType.TRADE_CANCELLED)


def clear_history(client: Client, user_id: str) -> int:
    """Delete the user's completed, declined and cancelled trades. Returns how many were deleted."""
    result = (
        client.table("trades")
        .select("id")
        .or_(f"initiator_id.eq.{user_id},recipient_id.eq.{user_id}")
        .in_("status", [s.value for s in TERMINAL_STATUSES])
        .execute()
    )
    trade_ids = [str(row["id"]) for row in result.data or []]
    if not trade_ids:
        return 0

    client.table("trades").update({"parent_trade_id": None}).in_("parent_trade_id", trade_ids).execute()
    client.table("trades").delete().in_("id", trade_ids).execute()

    logger.info("Cleared %d finished trades for %s", len(trade_ids), user_id)
    return len(trade_ids)
