# backend/models/matching.py
from enum import Enum
from pydantic import BaseModel, ConfigDict
from typing import Optional


class MatchSort(str, Enum):
    NAME = "name"
    RARITY = "rarity"
    PRICE = "price"


class WishlistMatch(BaseModel):
    """One card a friend owns that the other side wants, as returned by the matching procedures."""
    card_id: str
    card_name: Optional[str] = None
    card_image_small: Optional[str] = None
    card_image_large: Optional[str] = None
    card_price: Optional[float] = None
    card_rarity: Optional[str] = None
    card_number: Optional[str] = None
    set_id: Optional[str] = None
    set_name: Optional[str] = None
    friend_id: str
    friend_username: Optional[str] = None
    friend_display_name: Optional[str] = None
    friend_avatar_url: Optional[str] = None

    model_config = ConfigDict(extra="ignore")


class FriendOption(BaseModel):
    id: str
    name: str


class FriendMatchCount(BaseModel):
    friend_id: str
    friend_username: Optional[str] = None
    friend_display_name: Optional[str] = None
    friend_avatar_url: Optional[str] = None
    match_count: int = 0
    i_want_count: int = 0
    they_want_count: int = 0


class MatchingSummary(BaseModel):
    total_matches: int = 0
    i_want_they_have: int = 0
    they_want_i_have: int = 0
    friends: list[FriendMatchCount] = []


class WishlistMatchesResponse(BaseModel):
    cards_i_want: list[WishlistMatch] = []
    cards_they_want: list[WishlistMatch] = []
    summary: MatchingSummary
    friend_options: list[FriendOption] = []


class FriendVariantCounts(BaseModel):
    normal: int = 0
    holo: int = 0
    reverse_holo: int = 0
    pokeball_pattern: int = 0
    masterball_pattern: int = 0


class FriendWithCard(BaseModel):
    id: str
    username: Optional[str] = None
    display_name: Optional[str] = None
    avatar_url: Optional[str] = None
    owns_card: bool = True
    total_quantity: int = 0
    variants: FriendVariantCounts


class FriendsWithCardResponse(BaseModel):
    card_id: str
    friends: list[FriendWithCard] = []
