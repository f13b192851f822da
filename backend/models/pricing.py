# backend/models/pricing.py
from enum import Enum
from pydantic import BaseModel, Field, ConfigDict
from typing import Optional

from models.card import CardVariant


# ============== Enums ==============

class PriceSource(str, Enum):
    CARDMARKET = "cardmarket"
    TCGPLAYER = "tcgplayer"


class PriceType(str, Enum):
    AVERAGE = "average"
    LOW = "low"
    TREND = "trend"


class HistoryVariant(str, Enum):
    """Which price columns a history series is built from."""
    NORMAL = "normal"
    REVERSE_HOLO = "reverse_holo"
    TCGPLAYER = "tcgplayer"
    ALL = "all"


class CaptureAction(str, Enum):
    CAPTURE = "capture"
    BACKFILL = "backfill"


# ============== Card Prices ==============

class PriceResult(BaseModel):
    """A single resolved price with where it came from."""
    price: float
    currency: str
    source: PriceSource
    is_fallback: bool = False
    fallback_reason: Optional[str] = None


class VariantPrice(BaseModel):
    variant: CardVariant
    price: Optional[PriceResult] = None


class PricedItem(BaseModel):
    """Input row for total value calculations."""
    card_id: str
    variant: CardVariant = CardVariant.NORMAL
    quantity: int = Field(default=1, ge=1)


class TotalValue(BaseModel):
    total: float
    currency: str
    totals_by_currency: dict[str, float] = {}


# ============== Currency ==============

class CurrencyInfo(BaseModel):
    code: str
    name: str
    symbol: str


class ConversionResult(BaseModel):
    original_amount: float
    original_currency: str
    converted_amount: float
    target_currency: str
    rate: float


class FormattedConversion(BaseModel):
    primary: str
    secondary: Optional[str] = None
    rate_text: Optional[str] = None


class PriceDisplay(BaseModel):
    """A card's price in the user's source and currency, ready for display."""
    card_id: str
    variant: CardVariant
    price: Optional[PriceResult] = None
    converted_amount: Optional[float] = None
    currency: str
    formatted: Optional[FormattedConversion] = None
    buy_url: str


# ============== Price History ==============

class PricePoint(BaseModel):
    date: str
    price: Optional[float] = None
    reverse_holo_price: Optional[float] = Field(default=None, alias="reverseHoloPrice")
    tcgplayer_price: Optional[float] = Field(default=None, alias="tcgplayerPrice")

    model_config = ConfigDict(populate_by_name=True)


class PriceHistoryData(BaseModel):
    card_id: str = Field(alias="cardId")
    data: list[PricePoint] = []
    period: str
    variant: HistoryVariant

    model_config = ConfigDict(populate_by_name=True)


class PriceHistoryResponse(BaseModel):
    success: bool = True
    data: PriceHistoryData


class PriceStatistics(BaseModel):
    current: Optional[float] = None
    min: Optional[float] = None
    max: Optional[float] = None
    average: Optional[float] = None
    change: Optional[float] = None
    change_percent: Optional[float] = Field(default=None, alias="changePercent")

    model_config = ConfigDict(populate_by_name=True)


class PriceStatisticsResponse(BaseModel):
    success: bool = True
    data: PriceStatistics


class PriceCaptureRequest(BaseModel):
    action: CaptureAction
    card_id: Optional[str] = Field(default=None, alias="cardId")
    card_ids: Optional[list[str]] = Field(default=None, alias="cardIds")
    limit: int = Field(default=100, ge=1, le=1000)

    model_config = ConfigDict(populate_by_name=True)


class PriceCaptureResponse(BaseModel):
    success: bool
    processed: int = 0
    errors: list[str] = []


class PriceGraph(BaseModel):
    """Series for the price chart; `source` says how it was obtained."""
    card_id: str
    source: str = Field(description="history, approximation or insufficient_data")
    data: list[PricePoint] = []
