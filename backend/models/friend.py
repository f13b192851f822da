# backend/models/friend.py
from datetime import datetime
from enum import Enum
from uuid import UUID
from pydantic import BaseModel
from typing import Optional

from models.trade import PartyProfile, UserId


class FriendshipState(str, Enum):
    NONE = "none"
    PENDING_SENT = "pending_sent"
    PENDING_RECEIVED = "pending_received"
    ACCEPTED = "accepted"


class FriendRequestCreate(BaseModel):
    addressee_id: UserId


class FriendshipResponse(BaseModel):
    id: UUID
    requester_id: str
    addressee_id: str
    status: str
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class FriendResponse(BaseModel):
    """A friend from the current user's point of view."""
    friendship_id: UUID
    friend: PartyProfile
    since: Optional[datetime] = None


class PendingRequestResponse(BaseModel):
    friendship_id: UUID
    requester: PartyProfile
    created_at: Optional[datetime] = None


class FriendshipStatusResponse(BaseModel):
    user_id: str
    other_user_id: str
    status: FriendshipState
