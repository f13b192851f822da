"""Currency conversion between the European currencies the app supports.

Rates come from a static table and are cached for EXCHANGE_RATE_TTL_SECONDS.
When the cache goes stale the table is reloaded, so a live rate provider can
be dropped into `_load_rates` without touching callers.
"""

import logging
import time
from typing import Callable, Optional

from config import settings
from services.errors import ValidationFailedError

logger = logging.getLogger(__name__)

SUPPORTED_CURRENCIES = ("EUR", "USD", "GBP", "CHF", "SEK", "NOK", "DKK", "PLN", "CZK", "HUF")

CURRENCY_NAMES = {
    "EUR": "Euro",
    "USD": "US Dollar",
    "GBP": "British Pound",
    "CHF": "Swiss Franc",
    "SEK": "Swedish Krona",
    "NOK": "Norwegian Krone",
    "DKK": "Danish Krone",
    "PLN": "Polish Złoty",
    "CZK": "Czech Koruna",
    "HUF": "Hungarian Forint",
}

CURRENCY_SYMBOLS = {
    "EUR": "€",
    "USD": "$",
    "GBP": "£",
    "CHF": "CHF",
    "SEK": "kr",
    "NOK": "kr",
    "DKK": "kr",
    "PLN": "zł",
    "CZK": "Kč",
    "HUF": "Ft",
}

# 1 <from> = rate <to>
EXCHANGE_RATES = {
    ("USD", "EUR"): 0.85,
    ("EUR", "USD"): 1.18,
    ("GBP", "EUR"): 1.15,
    ("EUR", "GBP"): 0.87,
    ("CHF", "EUR"): 0.92,
    ("EUR", "CHF"): 1.09,
    ("SEK", "EUR"): 0.095,
    ("EUR", "SEK"): 10.53,
    ("NOK", "EUR"): 0.087,
    ("EUR", "NOK"): 11.5,
    ("DKK", "EUR"): 0.134,
    ("EUR", "DKK"): 7.46,
    ("PLN", "EUR"): 0.22,
    ("EUR", "PLN"): 4.55,
    ("CZK", "EUR"): 0.041,
    ("EUR", "CZK"): 24.39,
    ("HUF", "EUR"): 0.0027,
    ("EUR", "HUF"): 370.25,
}


def validate_currency(code: str) -> str:
    code = code.upper()
    if code not in SUPPORTED_CURRENCIES:
        raise ValidationFailedError(f"Unsupported currency: {code}")
    return code


class CurrencyService:
    def __init__(
        self,
        ttl_seconds: Optional[int] = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.ttl_seconds = settings.EXCHANGE_RATE_TTL_SECONDS if ttl_seconds is None else ttl_seconds
        self._clock = clock
        self._rates: dict[tuple[str, str], float] = {}
        self._fetched_at: Optional[float] = None

    def _load_rates(self) -> dict[tuple[str, str], float]:
        return dict(EXCHANGE_RATES)

    def needs_refresh(self) -> bool:
        if self._fetched_at is None:
            return True
        return self._clock() - self._fetched_at > self.ttl_seconds

    def refresh_rates(self) -> None:
        self._rates = self._load_rates()
        self._fetched_at = self._clock()
        logger.debug("Loaded %d exchange rates", len(self._rates))

    def get_exchange_rate(self, from_currency: str, to_currency: str) -> float:
        """Rate to multiply an amount in `from_currency` by.

        Tries the direct pair, then the inverse pair, then a cross rate
        through EUR. Unknown pairs fall back to 1.
        """
        from_currency = from_currency.upper()
        to_currency = to_currency.upper()
        if from_currency == to_currency:
            return 1.0

        if self.needs_refresh():
            self.refresh_rates()

        direct = self._rates.get((from_currency, to_currency))
        if direct:
            return direct

        inverse = self._rates.get((to_currency, from_currency))
        if inverse:
            return 1 / inverse

        if from_currency != "EUR" and to_currency != "EUR":
            return self.get_exchange_rate(from_currency, "EUR") * self.get_exchange_rate("EUR", to_currency)

        logger.warning("No exchange rate found for %s to %s, using 1", from_currency, to_currency)
        return 1.0

    def convert(self, amount: float, from_currency: str, to_currency: str) -> dict:
        rate = self.get_exchange_rate(from_currency, to_currency)
        return {
            "original_amount": amount,
            "original_currency": from_currency.upper(),
            "converted_amount": amount * rate,
            "target_currency": to_currency.upper(),
            "rate": rate,
        }

    def convert_to_euros(self, amount: float, from_currency: str) -> float:
        if from_currency.upper() == "EUR":
            return amount
        return amount * self.get_exchange_rate(from_currency, "EUR")

    def convert_from_euros(self, amount: float, to_currency: str) -> float:
        if to_currency.upper() == "EUR":
            return amount
        return amount * self.get_exchange_rate("EUR", to_currency)

    @staticmethod
    def currency_symbol(currency: str) -> str:
        return CURRENCY_SYMBOLS.get(currency.upper(), currency.upper())

    def format_currency(self, amount: float, currency: str) -> str:
        symbol = self.currency_symbol(currency)
        if len(symbol) > 1:
            return f"{symbol} {amount:,.2f}"
        return f"{symbol}{amount:,.2f}"

    def format_with_conversion(self, conversion: dict) -> dict:
        """Primary (converted) text, the original as secondary text when currencies differ, and the rate line."""
        primary = self.format_currency(conversion["converted_amount"], conversion["target_currency"])

        secondary = None
        if conversion["original_currency"] != conversion["target_currency"]:
            secondary = self.format_currency(conversion["original_amount"], conversion["original_currency"])

        rate_text = (
            f"1 {conversion['original_currency']} = "
            f"{conversion['rate']:.4f} {conversion['target_currency']}"
        )
        return {"primary": primary, "secondary": secondary, "rate_text": rate_text}

    def supported_currencies(self) -> list[dict]:
        return [
            {"code": code, "name": CURRENCY_NAMES[code], "symbol": CURRENCY_SYMBOLS[code]}
            for code in SUPPORTED_CURRENCIES
        ]


currency_service = CurrencyService()
