# backend/models/wanted_board.py
from datetime import datetime
from uuid import UUID
from pydantic import BaseModel, Field, ConfigDict
from typing import Optional

from models.card import CardCondition, CardSummary, ConditionPreference
from models.trade import PartyProfile, TradeCardItem


class WantedCard(BaseModel):
    """A wishlist entry being published to the board."""
    card_id: str
    max_price_eur: Optional[float] = Field(default=None, ge=0)
    condition_preference: ConditionPreference = ConditionPreference.ANY
    notes: Optional[str] = Field(default=None, max_length=500)


class WantedBoardPublish(BaseModel):
    items: list[WantedCard] = Field(min_length=1)
    replace_all: bool = Field(
        default=True,
        description="Remove the user's existing posts before publishing"
    )


class WantedBoardPostResponse(BaseModel):
    id: UUID
    user_id: str
    card_id: str
    max_price_eur: Optional[float] = None
    condition_preference: ConditionPreference = ConditionPreference.ANY
    notes: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    user: Optional[PartyProfile] = None
    card: Optional[CardSummary] = None

    model_config = ConfigDict(from_attributes=True)


class WantedBoardStats(BaseModel):
    total_posts: int
    total_users: int
    recent_posts: list[WantedBoardPostResponse] = []


class OwnedWantedCardsRequest(BaseModel):
    card_ids: list[str]


class OwnedWantedCardsResponse(BaseModel):
    card_ids: list[str]


class WantedBoardTradeOffer(BaseModel):
    """Offer sent in answer to a wanted board post."""
    quantity: int = Field(default=1, ge=1)
    condition: CardCondition = CardCondition.NEAR_MINT
    extra_offering_cards: list[TradeCardItem] = []
    requesting_cards: list[TradeCardItem] = []
    initiator_money_offer: float = Field(default=0, ge=0)
    recipient_money_offer: float = Field(default=0, ge=0)
    message: Optional[str] = Field(default=None, max_length=500)
    trade_method: Optional[str] = Field(default=None, max_length=50)
    initiator_shipping_included: bool = True
    recipient_shipping_included: bool = True
