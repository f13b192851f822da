# backend/models/card.py
from enum import Enum
from pydantic import BaseModel, ConfigDict
from typing import Optional


# ============== Enums ==============

class CardVariant(str, Enum):
    """Printings/finishes tracked separately in a collection."""
    NORMAL = "normal"
    HOLO = "holo"
    REVERSE_HOLO = "reverse_holo"
    POKEBALL_PATTERN = "pokeball_pattern"
    MASTERBALL_PATTERN = "masterball_pattern"
    FIRST_EDITION = "1st_edition"


class CardCondition(str, Enum):
    MINT = "mint"
    NEAR_MINT = "near_mint"
    LIGHTLY_PLAYED = "lightly_played"
    MODERATELY_PLAYED = "moderately_played"
    HEAVILY_PLAYED = "heavily_played"
    DAMAGED = "damaged"


class ConditionPreference(str, Enum):
    """Condition a wishlist owner is willing to accept."""
    ANY = "any"
    MINT = "mint"
    NEAR_MINT = "near_mint"
    LIGHTLY_PLAYED = "lightly_played"
    MODERATELY_PLAYED = "moderately_played"


# ============== Base Schemas ==============

class CardSummary(BaseModel):
    """Card fields joined into collection, wishlist and trade rows."""
    id: str
    name: str
    set_id: Optional[str] = None
    number: Optional[str] = None
    rarity: Optional[str] = None
    image_small: Optional[str] = None
    image_large: Optional[str] = None
    cardmarket_avg_sell_price: Optional[float] = None
    set_name: Optional[str] = None

    model_config = ConfigDict(from_attributes=True, extra="ignore")
