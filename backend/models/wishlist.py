# backend/models/wishlist.py
from datetime import datetime
from enum import Enum
from uuid import UUID
from pydantic import BaseModel, Field, ConfigDict
from typing import Optional

from models.card import CardSummary, ConditionPreference


class WishlistSort(str, Enum):
    PRIORITY = "priority"
    CREATED_AT = "created_at"
    NAME = "name"
    PRICE = "price"


class SortOrder(str, Enum):
    ASC = "asc"
    DESC = "desc"


# ============== Wishlist Items ==============

class WishlistItemOptions(BaseModel):
    """Per-item preferences shared by single and bulk adds."""
    priority: int = Field(default=3, ge=1, le=5, description="1 is the highest priority")
    max_price_eur: Optional[float] = Field(default=None, ge=0)
    condition_preference: ConditionPreference = ConditionPreference.ANY
    notes: Optional[str] = Field(default=None, max_length=500)


class WishlistItemCreate(WishlistItemOptions):
    card_id: str
    wishlist_list_id: Optional[UUID] = None


class WishlistBulkCreate(WishlistItemOptions):
    card_ids: list[str] = Field(min_length=1)
    wishlist_list_id: Optional[UUID] = None


class WishlistItemUpdate(BaseModel):
    priority: Optional[int] = Field(default=None, ge=1, le=5)
    max_price_eur: Optional[float] = Field(default=None, ge=0)
    condition_preference: Optional[ConditionPreference] = None
    notes: Optional[str] = Field(default=None, max_length=500)


class WishlistItemResponse(BaseModel):
    id: UUID
    user_id: str
    card_id: str
    wishlist_list_id: Optional[UUID] = None
    priority: int
    max_price_eur: Optional[float] = None
    condition_preference: ConditionPreference = ConditionPreference.ANY
    notes: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    card: Optional[CardSummary] = None

    model_config = ConfigDict(from_attributes=True)


class BulkAddResponse(BaseModel):
    added_count: int
    skipped_count: int
    message: Optional[str] = None


class WishlistCheckResponse(BaseModel):
    card_id: str
    in_wishlist: bool
    item: Optional[WishlistItemResponse] = None


class WishlistStats(BaseModel):
    total_items: int
    average_priority: float
    total_max_budget: float
    priority_breakdown: dict[int, int] = {}
    condition_preferences: dict[str, int] = {}
    recent_additions: list[WishlistItemResponse] = []


# ============== Wishlist Lists ==============

class WishlistListCreate(BaseModel):
    name: str = Field(max_length=100)
    description: Optional[str] = Field(default=None, max_length=500)
    is_public: bool = False


class WishlistListUpdate(BaseModel):
    name: Optional[str] = Field(default=None, max_length=100)
    description: Optional[str] = Field(default=None, max_length=500)
    is_public: Optional[bool] = None


class WishlistListDuplicate(BaseModel):
    name: str = Field(max_length=100)


class WishlistListResponse(BaseModel):
    id: UUID
    user_id: str
    name: str
    description: Optional[str] = None
    is_default: bool = False
    is_public: bool = False
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    item_count: Optional[int] = None
    owner_username: Optional[str] = None
    owner_display_name: Optional[str] = None

    model_config = ConfigDict(from_attributes=True)


class ListCardAdd(WishlistItemOptions):
    card_id: str


class ListCardsBulkAdd(WishlistItemOptions):
    card_ids: list[str] = Field(min_length=1)
