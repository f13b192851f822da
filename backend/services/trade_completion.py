"""Completing an accepted trade: moving cards between the two collections."""

import logging

from postgrest.exceptions import APIError
from supabase import Client

from models.card import CardVariant
from models.notification import NotificationType
from models.trade import TradeStatus
from services import achievement_service, collection_service, notification_service, wishlist_service
from services.errors import ConflictError, NotFoundError, ServiceError
from services.trade_service import actor_name, counterparty, is_participant, load_trade, update_status

logger = logging.getLogger(__name__)

HOLO_RARITY_MARKERS = ("special illustration", "ultra rare", "secret rare", "ace spec")


def determine_card_variant(card: dict, is_foil: bool = False) -> CardVariant:
    """Variant a traded card is filed under, from its name and rarity."""
    if not card:
        return CardVariant.NORMAL

    name = (card.get("name") or "").lower()
    rarity = (card.get("rarity") or "").lower()

    if " ex" in name or "-ex" in name or "ex" in rarity:
        return CardVariant.HOLO
    if any(marker in rarity for marker in HOLO_RARITY_MARKERS):
        return CardVariant.HOLO
    if is_foil:
        return CardVariant.HOLO
    if "rare holo" in rarity or "holo rare" in rarity:
        return CardVariant.HOLO
    if "rare" in rarity:
        return CardVariant.HOLO
    return CardVariant.NORMAL


def _transfer_item(client: Client, trade: dict, item: dict, outcome: dict) -> None:
    giver = item["user_id"]
    receiver = counterparty(trade, giver)
    card = item.get("cards") or {}
    name = card.get("name") or "Unknown Card"
    variant = determine_card_variant(card, item.get("is_foil") or False)
    condition = item.get("condition") or "near_mint"
    label = f"{name} ({item['quantity']}x {variant.value})"

    try:
        collection_service.remove_copies(client, giver, item["card_id"], variant, item["quantity"], condition)
        outcome["removed_from_collection"].append(label)
    except (ServiceError, APIError) as e:
        logger.warning("Trade %s: could not remove %s from %s: %s", trade["id"], label, giver, e)
        outcome["failed_transfers"].append(f"Remove {label} from giver: {e}")

    try:
        collection_service.add_copies(client, receiver, item["card_id"], variant, item["quantity"], condition)
        outcome["added_to_collection"].append(label)
    except (ServiceError, APIError) as e:
        logger.warning("Trade %s: could not add %s to %s: %s", trade["id"], label, receiver, e)
        outcome["failed_transfers"].append(f"Add {label} to receiver: {e}")
        return

    try:
        if wishlist_service.remove_by_card(client, receiver, item["card_id"]):
            outcome["removed_from_wishlist"].append(name)
    except APIError as e:
        logger.warning("Trade %s: could not clear %s from wishlist of %s: %s", trade["id"], name, receiver, e)


def complete_trade(client: Client, trade_id: str, user_id: str) -> dict:
    """Complete an accepted trade and transfer its cards.

    The status is claimed first, so a repeated or concurrent completion can
    never move cards twice; completing an already completed trade is a no-op.
    Transfers are independent remote calls: failures are reported in
    `failed_transfers`, not rolled back.
    """
    trade = load_trade(client, trade_id)
    if not is_participant(trade, user_id):
        raise NotFoundError("Trade not found")

    if trade["status"] == TradeStatus.COMPLETED.value:
        return {"trade": trade, "already_completed": True}
    if trade["status"] != TradeStatus.ACCEPTED.value:
        raise ConflictError("Only accepted trades can be completed")

    try:
        completed = update_status(client, trade, TradeStatus.COMPLETED)
    except ConflictError:
        current = load_trade(client, trade_id)
        if current["status"] == TradeStatus.COMPLETED.value:
            return {"trade": current, "already_completed": True}
        raise

    outcome = {
        "added_to_collection": [],
        "removed_from_collection": [],
        "removed_from_wishlist": [],
        "failed_transfers": [],
    }
    items = (
        client.table("trade_items")
        .select("*, cards(id, name, rarity)")
        .eq("trade_id", str(trade["id"]))
        .execute()
    )
    for item in items.data or []:
        _transfer_item(client, trade, item, outcome)

    for party in (trade["initiator_id"], trade["recipient_id"]):
        achievement_service.check_achievements_quietly(client, party)

    notification_service.send_trade_notification(
        client, counterparty(trade, user_id), NotificationType.TRADE_COMPLETED,
        actor_name(client, user_id), str(trade["id"]),
    )

    if outcome["failed_transfers"]:
        logger.error("Trade %s completed with %d failed transfers", trade["id"], len(outcome["failed_transfers"]))
    return {"trade": completed, "already_completed": False, **outcome}
