# backend/models/notification.py
from datetime import datetime
from enum import Enum
from pydantic import BaseModel
from typing import Any, Optional


class NotificationType(str, Enum):
    TRADE_REQUEST = "trade_request"
    TRADE_ACCEPTED = "trade_accepted"
    TRADE_DECLINED = "trade_declined"
    TRADE_CANCELLED = "trade_cancelled"
    TRADE_COMPLETED = "trade_completed"
    TRADE_COUNTER_OFFER = "trade_counter_offer"


class NotificationResponse(BaseModel):
    id: str
    user_id: str
    type: str
    title: str
    message: str
    data: dict[str, Any] = {}
    is_read: bool = False
    created_at: Optional[datetime] = None


class NotificationCount(BaseModel):
    unread: int
