"""Trade notifications: stored rows plus pending trade requests derived on read."""

import logging

from postgrest.exceptions import APIError
from supabase import Client

from models.notification import NotificationType
from services.errors import NotFoundError
from services.friends_service import fetch_profiles

logger = logging.getLogger(__name__)

DERIVED_PREFIX = "trade_"

TEMPLATES = {
    NotificationType.TRADE_REQUEST: ("New Trade Request", "{name} sent you a trade request."),
    NotificationType.TRADE_ACCEPTED: ("Trade Accepted", "{name} has accepted your trade offer."),
    NotificationType.TRADE_DECLINED: ("Trade Declined", "{name} has declined your trade offer."),
    NotificationType.TRADE_CANCELLED: ("Trade Cancelled", "{name} has cancelled their trade offer."),
    NotificationType.TRADE_COMPLETED: ("Trade Completed", "{name} has marked your trade as completed."),
    NotificationType.TRADE_COUNTER_OFFER: ("Counter Offer", "{name} sent you a counter offer."),
}


def render(notification_type: NotificationType, actor_name: str) -> tuple[str, str]:
    title, template = TEMPLATES[notification_type]
    return title, template.format(name=actor_name)


def send_trade_notification(
    client: Client,
    recipient_id: str,
    notification_type: NotificationType,
    actor_name: str,
    trade_id: str,
) -> bool:
    """Store a notification for `recipient_id`. Failures are logged, never raised."""
    title, message = render(notification_type, actor_name)
    try:
        client.table("notifications").insert({
            "user_id": recipient_id,
            "type": notification_type.value,
            "title": title,
            "message": message,
            "data": {"trade_id": trade_id},
            "is_read": False,
        }).execute()
    except APIError as e:
        logger.warning("Failed to send %s notification for trade %s: %s", notification_type.value, trade_id, e)
        return False
    return True


def _pending_trade_requests(client: Client, user_id: str) -> list[dict]:
    result = (
        client.table("trades")
        .select("id, initiator_id, created_at")
        .eq("recipient_id", user_id)
        .eq("status", "pending")
        .order("created_at", desc=True)
        .execute()
    )
    return result.data or []


def get_notifications(client: Client, user_id: str, limit: int = 50) -> list[dict]:
    """Pending trade requests and stored notifications, newest first."""
    trades = _pending_trade_requests(client, user_id)
    profiles = fetch_profiles(client, [t["initiator_id"] for t in trades])

    notifications = []
    for trade in trades:
        profile = profiles.get(trade["initiator_id"], {})
        name = profile.get("display_name") or profile.get("username") or "Someone"
        title, message = render(NotificationType.TRADE_REQUEST, name)
        notifications.append({
            "id": f"{DERIVED_PREFIX}{trade['id']}",
            "user_id": user_id,
            "type": NotificationType.TRADE_REQUEST.value,
            "title": title,
            "message": message,
            "data": {"trade_id": trade["id"]},
            "is_read": False,
            "created_at": trade.get("created_at"),
        })

    stored = (
        client.table("notifications")
        .select("*")
        .eq("user_id", user_id)
        .order("created_at", desc=True)
        .limit(limit)
        .execute()
    )
    for row in stored.data or []:
        notifications.append({**row, "id": str(row["id"]), "data": row.get("data") or {}})

    notifications.sort(key=lambda n: n.get("created_at") or "", reverse=True)
    return notifications[:limit]


def notification_count(client: Client, user_id: str) -> int:
    trades = _pending_trade_requests(client, user_id)
    unread = (
        client.table("notifications")
        .select("id")
        .eq("user_id", user_id)
        .eq("is_read", False)
        .execute()
    )
    return len(trades) + len(unread.data or [])


def mark_read(client: Client, user_id: str, notification_id: str) -> None:
    # Derived trade requests disappear once the trade leaves pending.
    if notification_id.startswith(DERIVED_PREFIX):
        return

    result = (
        client.table("notifications")
        .update({"is_read": True})
        .eq("id", notification_id)
        .eq("user_id", user_id)
        .execute()
    )
    if not result.data:
        raise NotFoundError("Notification not found")
