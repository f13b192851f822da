# backend/models/community.py
from pydantic import BaseModel
from typing import Any, Optional


class PopularSet(BaseModel):
    set_id: str
    set_name: Optional[str] = None
    symbol_url: Optional[str] = None
    release_date: Optional[str] = None
    collectors_count: int
    total_cards_owned: int
    average_completion: float


class TrendingCard(BaseModel):
    card_id: str
    card_name: Optional[str] = None
    set_name: Optional[str] = None
    image_small: Optional[str] = None
    rarity: Optional[str] = None
    owners_count: int
    total_quantity: int
    average_value: float
    recent_adds: int


class TopCollector(BaseModel):
    user_id: str
    username: str
    display_name: Optional[str] = None
    avatar_url: Optional[str] = None
    total_cards: int
    unique_cards: int
    total_value: float
    sets_collected: int
    rank: int


class LeaderboardEntry(BaseModel):
    user_id: str
    username: str
    display_name: Optional[str] = None
    avatar_url: Optional[str] = None
    value: float
    rank: int
    metadata: dict[str, Any] = {}


class Leaderboards(BaseModel):
    """Each board is ranked independently, best first."""
    top_collectors: list[LeaderboardEntry] = []
    biggest_collections: list[LeaderboardEntry] = []
    most_valuable: list[LeaderboardEntry] = []
    duplicate_collectors: list[LeaderboardEntry] = []
    set_completionists: list[LeaderboardEntry] = []
    recently_active: list[LeaderboardEntry] = []


class GlobalAchievement(BaseModel):
    """A goal the whole community works towards."""
    type: str
    name: str
    description: str
    icon: str
    current_progress: float
    target_goal: float
    percentage: float
    encouraging_message: str
    is_completed: bool


class CommunityStats(BaseModel):
    total_users: int
    total_collections: int
    total_cards: int
    total_value: float
    average_collection_size: float
    top_collectors: list[TopCollector] = []
    global_achievements: list[GlobalAchievement] = []
    leaderboards: Leaderboards = Leaderboards()
