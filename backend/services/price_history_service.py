"""Daily price snapshots per card and the series built from them."""

import logging
from datetime import date, timedelta
from typing import Optional

from postgrest.exceptions import APIError
from supabase import Client

from models.pricing import HistoryVariant
from services.errors import ValidationFailedError
from services.pricing_service import fetch_card

logger = logging.getLogger(__name__)

SNAPSHOT_COLUMNS = (
    "cardmarket_avg_sell_price",
    "cardmarket_low_price",
    "cardmarket_trend_price",
    "cardmarket_suggested_price",
    "cardmarket_reverse_holo_sell",
    "cardmarket_reverse_holo_low",
    "cardmarket_reverse_holo_trend",
    "tcgplayer_price",
    "tcgplayer_normal_market",
    "tcgplayer_normal_low",
    "tcgplayer_normal_mid",
    "tcgplayer_normal_high",
    "tcgplayer_holofoil_market",
    "tcgplayer_holofoil_low",
    "tcgplayer_holofoil_mid",
    "tcgplayer_holofoil_high",
    "tcgplayer_reverse_holo_market",
    "tcgplayer_reverse_holo_low",
    "tcgplayer_reverse_holo_mid",
    "tcgplayer_reverse_holo_high",
)

UPSERT_BATCH_SIZE = 100


def period_from_days(days: int) -> str:
    if days <= 7:
        return "7d"
    if days <= 30:
        return "1m"
    if days <= 90:
        return "3m"
    if days <= 180:
        return "6m"
    if days <= 365:
        return "1y"
    return "all"


def to_point(record: dict, variant: HistoryVariant) -> dict:
    """Map a price_history row to a chart point for the requested variant."""
    tcgplayer = record.get("tcgplayer_price") or record.get("tcgplayer_normal_market")

    if variant == HistoryVariant.REVERSE_HOLO:
        price = record.get("cardmarket_reverse_holo_sell")
        reverse_holo = price
        tcgplayer = record.get("tcgplayer_reverse_holo_market")
    elif variant == HistoryVariant.TCGPLAYER:
        price = tcgplayer
        reverse_holo = None
    else:
        price = record.get("cardmarket_avg_sell_price")
        reverse_holo = record.get("cardmarket_reverse_holo_sell")
        if variant == HistoryVariant.NORMAL:
            tcgplayer = record.get("tcgplayer_normal_market") or record.get("tcgplayer_price")

    return {
        "date": str(record["date"]),
        "price": price,
        "reverseHoloPrice": reverse_holo,
        "tcgplayerPrice": tcgplayer,
    }


def fill_price_gaps(points: list[dict], start: date, end: date) -> list[dict]:
    """One point per day from `start` to `end`; missing days repeat the previous point's prices."""
    if not points:
        return points

    by_date = {point["date"]: point for point in points}
    filled = []
    current = start
    while current <= end:
        key = current.isoformat()
        if key in by_date:
            filled.append(by_date[key])
        else:
            previous = filled[-1] if filled else {}
            filled.append({
                "date": key,
                "price": previous.get("price"),
                "reverseHoloPrice": previous.get("reverseHoloPrice"),
                "tcgplayerPrice": previous.get("tcgplayerPrice"),
            })
        current += timedelta(days=1)
    return filled


def get_history(
    client: Client,
    card_id: str,
    days: int = 30,
    variant: HistoryVariant = HistoryVariant.NORMAL,
    fill_gaps: bool = True,
    today: Optional[date] = None,
) -> dict:
    if not card_id:
        raise ValidationFailedError("cardId parameter is required")

    end = today or date.today()
    start = end - timedelta(days=days)
    result = (
        client.table("price_history")
        .select("*")
        .eq("card_id", card_id)
        .gte("date", start.isoformat())
        .lte("date", end.isoformat())
        .order("date")
        .execute()
    )

    points = [to_point(record, variant) for record in result.data or []]
    if fill_gaps:
        points = fill_price_gaps(points, start, end)

    return {
        "cardId": card_id,
        "data": points,
        "period": period_from_days(days),
        "variant": variant.value,
    }


def price_statistics(client: Client, card_id: str, days: int = 30, today: Optional[date] = None) -> Optional[dict]:
    """Summary of the positive normal prices in the window, or None without any."""
    history = get_history(client, card_id, days, HistoryVariant.NORMAL, today=today)
    prices = [point["price"] for point in history["data"] if point["price"] is not None and point["price"] > 0]
    if not prices:
        return None

    current, first = prices[-1], prices[0]
    change = current - first
    return {
        "current": current,
        "min": min(prices),
        "max": max(prices),
        "average": round(sum(prices) / len(prices), 2),
        "change": round(change, 2),
        "changePercent": round(change / first * 100, 2) if first > 0 else 0,
    }


def snapshot_row(card: dict, day: date, data_source: str) -> dict:
    row = {column: card.get(column) or None for column in SNAPSHOT_COLUMNS}
    row.update({"card_id": card["id"], "date": day.isoformat(), "data_source": data_source})
    return row


def _store(client: Client, rows: list[dict]) -> tuple[int, list[str]]:
    stored, errors = 0, []
    for start in range(0, len(rows), UPSERT_BATCH_SIZE):
        batch = rows[start:start + UPSERT_BATCH_SIZE]
        try:
            client.table("price_history").upsert(batch, on_conflict="card_id,date").execute()
            stored += len(batch)
        except APIError as e:
            logger.error("Failed to store price snapshots %d-%d: %s", start, start + len(batch), e)
            errors.append(f"Batch {start}-{start + len(batch)}: {e.message}")
    return stored, errors


def capture_current_pricing(client: Client, card_id: str, today: Optional[date] = None) -> dict:
    """Snapshot one card's current prices as today's history row."""
    if not card_id:
        raise ValidationFailedError("cardId is required for capture action")

    card = fetch_card(client, card_id)
    stored, errors = _store(client, [snapshot_row(card, today or date.today(), "daily_sync")])
    return {"success": not errors, "processed": stored, "errors": errors}


def backfill(client: Client, card_ids: Optional[list[str]] = None, limit: int = 100,
             today: Optional[date] = None) -> dict:
    """Snapshot current prices for a batch of priced cards."""
    query = client.table("cards").select("*").gt("cardmarket_avg_sell_price", 0)
    if card_ids:
        query = query.in_("id", card_ids)
    cards = query.limit(limit).execute().data or []

    if not cards:
        return {"success": True, "processed": 0, "errors": []}

    day = today or date.today()
    stored, errors = _store(client, [snapshot_row(card, day, "backfill") for card in cards])
    logger.info("Backfilled %d price snapshots (%d errors)", stored, len(errors))
    return {"success": not errors, "processed": stored, "errors": errors}


# ============== Chart Series ==============

def _anchors(card: dict, end: date) -> list[tuple[date, float]]:
    candidates = [
        (end - timedelta(days=30), card.get("cardmarket_avg_30")),
        (end - timedelta(days=7), card.get("cardmarket_avg_7")),
        (end, card.get("cardmarket_avg_1") or card.get("cardmarket_avg_sell_price")),
    ]
    return [(day, float(value)) for day, value in candidates if value and value > 0]


def approximate_series(card: dict, days: int, today: Optional[date] = None) -> list[dict]:
    """Daily prices interpolated linearly between the card's rolling averages.

    The series starts at the earliest known average or the window start,
    whichever is later; nothing is extrapolated before the first anchor.
    """
    end = today or date.today()
    anchors = _anchors(card, end)
    if not anchors:
        return []

    start = max(anchors[0][0], end - timedelta(days=days))
    points = []
    current = start
    while current <= end:
        points.append({
            "date": current.isoformat(),
            "price": round(_interpolate(anchors, current), 2),
            "reverseHoloPrice": None,
            "tcgplayerPrice": None,
        })
        current += timedelta(days=1)
    return points


def _interpolate(anchors: list[tuple[date, float]], day: date) -> float:
    if len(anchors) == 1 or day <= anchors[0][0]:
        return anchors[0][1]
    for (left_day, left), (right_day, right) in zip(anchors, anchors[1:]):
        if left_day <= day <= right_day:
            span = (right_day - left_day).days
            return left + (right - left) * (day - left_day).days / span
    return anchors[-1][1]


def price_graph(client: Client, card_id: str, days: int = 30, today: Optional[date] = None) -> dict:
    """Real history when there is any, otherwise an approximation from the card's averages."""
    history = get_history(client, card_id, days, HistoryVariant.NORMAL, fill_gaps=False, today=today)
    if history["data"]:
        return {"card_id": card_id, "source": "history", "data": history["data"]}

    card = fetch_card(client, card_id)
    points = approximate_series(card, days, today)
    if not points:
        return {"card_id": card_id, "source": "insufficient_data", "data": []}
    return {"card_id": card_id, "source": "approximation", "data": points}
