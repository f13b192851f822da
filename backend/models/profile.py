# backend/models/profile.py
from datetime import datetime
from enum import Enum
from pydantic import BaseModel, Field
from typing import Any, Optional


class PrivacyLevel(str, Enum):
    PUBLIC = "public"
    FRIENDS = "friends"
    PRIVATE = "private"


class GrowthTrend(str, Enum):
    UP = "up"
    DOWN = "down"
    STABLE = "stable"


class ActivityType(str, Enum):
    CARD_ADDED = "card_added"
    ACHIEVEMENT_UNLOCKED = "achievement_unlocked"
    FRIEND_ADDED = "friend_added"
    TRADE_COMPLETED = "trade_completed"


class Profile(BaseModel):
    id: str
    username: str
    display_name: Optional[str] = None
    avatar_url: Optional[str] = None
    banner_url: Optional[str] = None
    bio: Optional[str] = None
    location: Optional[str] = None
    favorite_set_id: Optional[str] = None
    privacy_level: PrivacyLevel = PrivacyLevel.PUBLIC
    show_collection_value: bool = True
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class ProfileUpdate(BaseModel):
    """Editable profile fields. Avatar and banner images are managed elsewhere."""
    username: Optional[str] = Field(default=None, min_length=3, max_length=30, pattern=r"^[A-Za-z0-9_.-]+$")
    display_name: Optional[str] = Field(default=None, max_length=50)
    bio: Optional[str] = Field(default=None, max_length=500)
    location: Optional[str] = Field(default=None, max_length=100)
    favorite_set_id: Optional[str] = None
    privacy_level: Optional[PrivacyLevel] = None
    show_collection_value: Optional[bool] = None


class ValuableCard(BaseModel):
    card_id: str
    name: Optional[str] = None
    image_small: Optional[str] = None
    value: float


class PublicStats(BaseModel):
    total_cards: int
    unique_cards: int
    sets_with_cards: int
    top_value_cards: list[ValuableCard] = []
    total_value_eur: Optional[float] = None


class PublicProfile(BaseModel):
    profile: Profile
    stats: Optional[PublicStats] = None


class ActivityItem(BaseModel):
    id: str
    type: ActivityType
    title: str
    description: str
    timestamp: Optional[str] = None
    metadata: dict[str, Any] = {}


class NextAchievement(BaseModel):
    type: str
    name: str
    progress: float
    required: float


class ProfileInsights(BaseModel):
    collection_growth_trend: GrowthTrend
    top_collection_category: str
    next_achievement: Optional[NextAchievement] = None
    collection_rank: Optional[int] = None
    suggestions: list[str] = []
