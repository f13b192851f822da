"""Price and currency preferences stored on the user's profile."""

from supabase import Client

from config import settings
from models.pricing import PriceSource
from services.currency_service import validate_currency
from services.errors import NotFoundError

PREFERENCE_COLUMNS = "preferred_currency, price_source, preferred_language"


def _with_defaults(profile: dict) -> dict:
    return {
        "preferred_currency": profile.get("preferred_currency") or settings.DEFAULT_CURRENCY,
        "price_source": profile.get("price_source") or settings.DEFAULT_PRICE_SOURCE,
        "preferred_language": profile.get("preferred_language") or "en",
    }


def get_preferences(client: Client, user_id: str) -> dict:
    result = client.table("profiles").select(PREFERENCE_COLUMNS).eq("id", user_id).execute()
    return _with_defaults(result.data[0] if result.data else {})


def update_preferences(client: Client, user_id: str, update) -> dict:
    update_data = update.model_dump(exclude_unset=True, exclude_none=True)

    if "preferred_currency" in update_data:
        update_data["preferred_currency"] = validate_currency(update_data["preferred_currency"])
    if "price_source" in update_data:
        update_data["price_source"] = PriceSource(update_data["price_source"]).value

    if not update_data:
        return get_preferences(client, user_id)

    result = client.table("profiles").update(update_data).eq("id", user_id).execute()
    if not result.data:
        raise NotFoundError("Profile not found")

    return _with_defaults(result.data[0])
