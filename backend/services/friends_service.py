"""Friend requests and friendship lookups."""

import logging
from datetime import datetime, timezone
from typing import Optional

from supabase import Client

from models.friend import FriendshipState
from services.errors import ConflictError, NotFoundError, ValidationFailedError

logger = logging.getLogger(__name__)

PROFILE_COLUMNS = "id, username, display_name, avatar_url"


def _pair_filter(user_id: str, other_id: str) -> str:
    return (
        f"and(requester_id.eq.{user_id},addressee_id.eq.{other_id}),"
        f"and(requester_id.eq.{other_id},addressee_id.eq.{user_id})"
    )


def fetch_profiles(client: Client, user_ids: list[str]) -> dict[str, dict]:
    """Return profiles keyed by user id. Unknown ids are simply absent."""
    if not user_ids:
        return {}
    result = client.table("profiles").select(PROFILE_COLUMNS).in_("id", list(set(user_ids))).execute()
    return {row["id"]: row for row in result.data or []}


def get_friendship(client: Client, user_id: str, other_id: str) -> Optional[dict]:
    result = client.table("friendships").select("*").or_(_pair_filter(user_id, other_id)).execute()
    return result.data[0] if result.data else None


def friendship_status(client: Client, user_id: str, other_id: str) -> FriendshipState:
    row = get_friendship(client, user_id, other_id)
    if row is None:
        return FriendshipState.NONE
    if row["status"] == "accepted":
        return FriendshipState.ACCEPTED
    if row["status"] == "pending":
        if row["requester_id"] == user_id:
            return FriendshipState.PENDING_SENT
        return FriendshipState.PENDING_RECEIVED
    return FriendshipState.NONE


def are_friends(client: Client, user_id: str, other_id: str) -> bool:
    return friendship_status(client, user_id, other_id) == FriendshipState.ACCEPTED


def get_friend_ids(client: Client, user_id: str) -> list[str]:
    """Ids of everyone with an accepted friendship with `user_id`."""
    result = (
        client.table("friendships")
        .select("id, requester_id, addressee_id, created_at")
        .eq("status", "accepted")
        .or_(f"requester_id.eq.{user_id},addressee_id.eq.{user_id}")
        .execute()
    )
    return [
        row["addressee_id"] if row["requester_id"] == user_id else row["requester_id"]
        for row in result.data or []
    ]


def send_request(client: Client, requester_id: str, addressee_id: str) -> dict:
    if requester_id == addressee_id:
        raise ValidationFailedError("Cannot send a friend request to yourself")

    existing = get_friendship(client, requester_id, addressee_id)
    if existing:
        if existing["status"] == "pending":
            raise ConflictError("Friend request already pending")
        if existing["status"] == "accepted":
            raise ConflictError("Already friends")
        raise ConflictError("Cannot send friend request")

    result = client.table("friendships").insert({
        "requester_id": requester_id,
        "addressee_id": addressee_id,
        "status": "pending",
    }).execute()

    if not result.data:
        raise ValidationFailedError("Failed to send friend request")

    logger.info("Friend request %s -> %s", requester_id, addressee_id)
    return result.data[0]


def _pending_request_for(client: Client, friendship_id: str, user_id: str) -> dict:
    result = (
        client.table("friendships")
        .select("*")
        .eq("id", friendship_id)
        .eq("addressee_id", user_id)
        .eq("status", "pending")
        .execute()
    )
    if not result.data:
        raise NotFoundError("Friend request not found")
    return result.data[0]


def accept_request(client: Client, friendship_id: str, user_id: str) -> dict:
    """Accept a pending request. Only the addressee may accept."""
    _pending_request_for(client, friendship_id, user_id)

    result = client.table("friendships").update({
        "status": "accepted",
        "updated_at": datetime.now(timezone.utc).isoformat(),
    }).eq("id", friendship_id).eq("status", "pending").execute()

    if not result.data:
        raise ConflictError("Friend request is no longer pending")
    return result.data[0]


def decline_request(client: Client, friendship_id: str, user_id: str) -> None:
    _pending_request_for(client, friendship_id, user_id)
    client.table("friendships").delete().eq("id", friendship_id).execute()


def remove_friend(client: Client, friendship_id: str, user_id: str) -> None:
    result = (
        client.table("friendships")
        .select("*")
        .eq("id", friendship_id)
        .or_(f"requester_id.eq.{user_id},addressee_id.eq.{user_id}")
        .eq("status", "accepted")
        .execute()
    )
    if not result.data:
        raise NotFoundError("Friendship not found")

    client.table("friendships").delete().eq("id", friendship_id).execute()


def list_friends(client: Client, user_id: str) -> list[dict]:
    result = (
        client.table("friendships")
        .select("id, requester_id, addressee_id, created_at")
        .eq("status", "accepted")
        .or_(f"requester_id.eq.{user_id},addressee_id.eq.{user_id}")
        .execute()
    )
    rows = result.data or []

    def other(row):
        return row["addressee_id"] if row["requester_id"] == user_id else row["requester_id"]

    profiles = fetch_profiles(client, [other(row) for row in rows])

    return [
        {
            "friendship_id": row["id"],
            "friend": profiles.get(other(row), {"id": other(row)}),
            "since": row.get("created_at"),
        }
        for row in rows
    ]


def pending_requests(client: Client, user_id: str) -> list[dict]:
    """Requests waiting for `user_id` to answer."""
    result = (
        client.table("friendships")
        .select("id, requester_id, addressee_id, created_at")
        .eq("addressee_id", user_id)
        .eq("status", "pending")
        .execute()
    )
    rows = result.data or []
    profiles = fetch_profiles(client, [row["requester_id"] for row in rows])

    return [
        {
            "friendship_id": row["id"],
            "requester": profiles.get(row["requester_id"], {"id": row["requester_id"]}),
            "created_at": row.get("created_at"),
        }
        for row in rows
    ]
