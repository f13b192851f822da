# backend/models/trade.py
from datetime import datetime
from enum import Enum
from uuid import UUID
from pydantic import BaseModel, Field, ConfigDict
from typing import Annotated, Optional

from models.card import CardCondition, CardSummary

# Supabase auth user id. Ids are interpolated into PostgREST filter strings.
UserId = Annotated[str, Field(pattern=r"^[0-9a-fA-F]{8}-(?:[0-9a-fA-F]{4}-){3}[0-9a-fA-F]{12}$")]


# ============== Enums ==============

class TradeStatus(str, Enum):
    """Trade lifecycle states."""
    PENDING = "pending"
    ACCEPTED = "accepted"
    DECLINED = "declined"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


ACTIVE_STATUSES = (TradeStatus.PENDING, TradeStatus.ACCEPTED)
TERMINAL_STATUSES = (TradeStatus.COMPLETED, TradeStatus.DECLINED, TradeStatus.CANCELLED)


class TradeRole(str, Enum):
    """Which side of a trade the current user is on."""
    SENT = "sent"
    RECEIVED = "received"
    ALL = "all"


class TradeView(str, Enum):
    ACTIVE = "active"
    HISTORY = "history"


# ============== Base Schemas ==============

class TradeCardItem(BaseModel):
    """A card offered or requested in a trade proposal."""
    card_id: str
    quantity: int = Field(default=1, ge=1, description="Number of copies to trade")
    condition: CardCondition = CardCondition.NEAR_MINT
    is_foil: bool = False
    notes: Optional[str] = Field(default=None, max_length=200)


class PartyProfile(BaseModel):
    id: Optional[str] = None
    username: Optional[str] = None
    display_name: Optional[str] = None
    avatar_url: Optional[str] = None


# ============== Create Schemas ==============

class TradeProposal(BaseModel):
    """Schema for proposing a new trade."""
    recipient_id: UserId = Field(description="User ID of the trade recipient")
    message: Optional[str] = Field(default=None, max_length=500)
    offering_cards: list[TradeCardItem] = Field(
        default=[],
        description="Cards the initiator gives"
    )
    requesting_cards: list[TradeCardItem] = Field(
        default=[],
        description="Cards the initiator wants from the recipient"
    )
    initiator_money_offer: float = Field(default=0, ge=0)
    recipient_money_offer: float = Field(default=0, ge=0)
    trade_method: Optional[str] = Field(default=None, max_length=50)
    initiator_shipping_included: bool = True
    recipient_shipping_included: bool = True
    parent_trade_id: Optional[UUID] = Field(
        default=None,
        description="Trade this proposal counters, if any"
    )


# ============== Response Schemas ==============

class TradeItemResponse(BaseModel):
    id: Optional[UUID] = None
    trade_id: Optional[UUID] = None
    user_id: str
    card_id: str
    quantity: int
    condition: Optional[str] = None
    is_foil: bool = False
    notes: Optional[str] = None
    card: Optional[CardSummary] = None

    model_config = ConfigDict(from_attributes=True)


class TradeResponse(BaseModel):
    """Full trade response."""
    id: UUID
    initiator_id: str
    recipient_id: str
    status: TradeStatus
    initiator_message: Optional[str] = None
    recipient_message: Optional[str] = None
    initiator_money_offer: Optional[float] = None
    recipient_money_offer: Optional[float] = None
    trade_method: Optional[str] = None
    initiator_shipping_included: Optional[bool] = None
    recipient_shipping_included: Optional[bool] = None
    parent_trade_id: Optional[UUID] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    expires_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class TradeWithItemsResponse(TradeResponse):
    """Trade response with party profiles and card items included."""
    initiator: Optional[PartyProfile] = None
    recipient: Optional[PartyProfile] = None
    trade_items: list[TradeItemResponse] = []


class TradeListResponse(BaseModel):
    """Paginated list of trades."""
    trades: list[TradeWithItemsResponse]
    total: int
    page: int
    page_size: int


class TradeCompletionResponse(BaseModel):
    """Outcome of moving cards between collections on completion."""
    trade: TradeResponse
    already_completed: bool = False
    added_to_collection: list[str] = []
    removed_from_collection: list[str] = []
    removed_from_wishlist: list[str] = []
    failed_transfers: list[str] = []


class ClearHistoryResponse(BaseModel):
    trades_deleted: int


# ============== Statistics Schemas ==============

class TradeCounts(BaseModel):
    pending_received: int
    pending_sent: int
    active: int
    history: int


class TradeStats(BaseModel):
    """Summary statistics for a user's trades."""
    user_id: str
    total_trades: int
    pending_trades: int
    completed_trades: int
    success_rate: float
    recent_trades: list[TradeResponse] = []
