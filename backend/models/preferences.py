# backend/models/preferences.py
from pydantic import BaseModel, Field
from typing import Optional

from models.pricing import PriceSource


class UserPreferences(BaseModel):
    preferred_currency: str
    price_source: PriceSource
    preferred_language: str = "en"


class UserPreferencesUpdate(BaseModel):
    preferred_currency: Optional[str] = Field(default=None, min_length=3, max_length=3)
    price_source: Optional[PriceSource] = None
    preferred_language: Optional[str] = Field(default=None, max_length=10)
