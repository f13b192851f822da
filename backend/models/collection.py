# backend/models/collection.py
from datetime import datetime, date
from uuid import UUID
from pydantic import BaseModel, Field, ConfigDict
from typing import Optional

from models.card import CardCondition, CardSummary, CardVariant
from models.achievement import AchievementDefinition


# ============== Base Schemas ==============

class CollectionEntryBase(BaseModel):
    """One (card, variant, condition) row of a user's collection."""
    card_id: str
    variant: CardVariant = CardVariant.NORMAL
    quantity: int = Field(default=1, ge=1, description="Number of copies owned")
    condition: CardCondition = CardCondition.NEAR_MINT


# ============== Create / Update Schemas ==============

class CollectionAdd(CollectionEntryBase):
    """Schema for adding copies of a card variant."""
    notes: Optional[str] = Field(default=None, max_length=500)


class CollectionRemove(BaseModel):
    """Schema for removing copies of a card variant."""
    variant: CardVariant = CardVariant.NORMAL
    condition: CardCondition = CardCondition.NEAR_MINT
    quantity: int = Field(default=1, ge=1)
    remove_all: bool = False


# ============== Response Schemas ==============

class CollectionEntryResponse(BaseModel):
    id: Optional[UUID] = None
    user_id: str
    card_id: str
    variant: CardVariant = CardVariant.NORMAL
    quantity: int
    condition: Optional[str] = None
    is_foil: bool = False
    notes: Optional[str] = None
    acquired_date: Optional[date] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class VariantCounts(BaseModel):
    """Per-variant quantities, denormalized for display."""
    normal: int = 0
    holo: int = 0
    reverse_holo: int = 0
    pokeball_pattern: int = 0
    masterball_pattern: int = 0
    first_edition: int = Field(default=0, alias="1st_edition")

    model_config = ConfigDict(populate_by_name=True)


class CollectionCardResponse(BaseModel):
    """All of a user's rows for one card, with aggregates."""
    card_id: str
    card: Optional[CardSummary] = None
    total_quantity: int = Field(default=0, description="Sum over all variants and conditions")
    variants: VariantCounts
    entries: list[CollectionEntryResponse] = []


class CollectionMutationResponse(BaseModel):
    """Result of an add/remove, with its side effects for announcement."""
    entry: Optional[CollectionEntryResponse] = None
    removed_from_wishlist: bool = False
    achievements_unlocked: list[AchievementDefinition] = []
    achievements_revoked: list[AchievementDefinition] = []


class CardOwnership(BaseModel):
    card_id: str
    owned: bool
    total_quantity: int
    variants: VariantCounts


class ClearCollectionResponse(BaseModel):
    deleted_count: int


class CollectionStats(BaseModel):
    """Aggregated collection statistics."""
    user_id: str
    total_cards: int
    unique_cards: int
    total_value_eur: float
    rarity_breakdown: dict[str, int] = {}
    set_breakdown: dict[str, int] = {}
    recent_additions: list[CollectionEntryResponse] = []
