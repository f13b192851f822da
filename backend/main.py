import logging
from typing import Optional
from uuid import UUID

from fastapi import Depends, FastAPI, Header, HTTPException, Query, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from postgrest.exceptions import APIError
from supabase import Client, create_client

from config import settings
from models.achievement import AchievementCheckResponse, AchievementDefinition, AchievementListResponse
from models.card import CardVariant
from models.collection import (
    CardOwnership,
    ClearCollectionResponse,
    CollectionAdd,
    CollectionCardResponse,
    CollectionMutationResponse,
    CollectionRemove,
    CollectionStats,
)
from models.community import CommunityStats, Leaderboards, PopularSet, TopCollector, TrendingCard
from models.friend import (
    FriendRequestCreate,
    FriendResponse,
    FriendshipResponse,
    FriendshipStatusResponse,
    PendingRequestResponse,
)
from models.matching import FriendsWithCardResponse, MatchSort, WishlistMatchesResponse
from models.notification import NotificationCount, NotificationResponse
from models.preferences import UserPreferences, UserPreferencesUpdate
from models.pricing import (
    CaptureAction,
    ConversionResult,
    CurrencyInfo,
    HistoryVariant,
    PriceCaptureRequest,
    PriceCaptureResponse,
    PriceDisplay,
    PricedItem,
    PriceGraph,
    PriceHistoryResponse,
    PriceSource,
    PriceStatisticsResponse,
    TotalValue,
    VariantPrice,
)
from models.profile import ActivityItem, Profile, ProfileInsights, ProfileUpdate, PublicProfile
from models.trade import (
    ClearHistoryResponse,
    TradeCompletionResponse,
    TradeCounts,
    TradeListResponse,
    TradeProposal,
    TradeResponse,
    TradeRole,
    TradeStats,
    TradeStatus,
    TradeView,
    TradeWithItemsResponse,
)
from models.wanted_board import (
    OwnedWantedCardsRequest,
    OwnedWantedCardsResponse,
    WantedBoardPostResponse,
    WantedBoardPublish,
    WantedBoardStats,
    WantedBoardTradeOffer,
)
from models.wishlist import (
    BulkAddResponse,
    ListCardAdd,
    ListCardsBulkAdd,
    SortOrder,
    WishlistBulkCreate,
    WishlistCheckResponse,
    WishlistItemCreate,
    WishlistItemResponse,
    WishlistItemUpdate,
    WishlistListCreate,
    WishlistListDuplicate,
    WishlistListResponse,
    WishlistListUpdate,
    WishlistSort,
    WishlistStats,
)
from services import (
    achievement_service,
    collection_service,
    community_service,
    friends_service,
    matching_service,
    notification_service,
    preferences_service,
    price_history_service,
    pricing_service,
    profile_service,
    trade_completion,
    trade_service,
    wanted_board_service,
    wishlist_lists_service,
    wishlist_service,
)
from services.currency_service import currency_service, validate_currency
from services.errors import NotFoundError, ServiceError

logging.basicConfig(level=settings.LOG_LEVEL)
logger = logging.getLogger(__name__)

app = FastAPI(title="Pokebinder API")

app.add_middleware(
    CORSMiddleware,
    allow_origins=[origin.strip() for origin in settings.ALLOWED_ORIGINS.split(",")],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Supabase client, created on first use
supabase: Optional[Client] = None


def db() -> Client:
    global supabase
    if supabase is None:
        supabase = create_client(settings.SUPABASE_URL, settings.SUPABASE_KEY)
    return supabase


def current_user_id(x_user_id: Optional[UUID] = Header(None)) -> str:
    if not x_user_id:
        raise HTTPException(status_code=401, detail="Missing X-User-Id header")
    return str(x_user_id)


@app.exception_handler(ServiceError)
async def service_error_handler(request: Request, exc: ServiceError):
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.detail})


@app.exception_handler(APIError)
async def backend_error_handler(request: Request, exc: APIError):
    logger.error("Backend request failed on %s %s: %s", request.method, request.url.path, exc)
    return JSONResponse(
        status_code=502,
        content={"detail": "The database request failed, please try again"},
    )


@app.get("/")
def read_root():
    return {"message": "Pokebinder API"}


@app.get("/health")
def health_check():
    return {"status": "healthy"}


# ============== Trade Endpoints ==============

@app.post("/trades", response_model=TradeWithItemsResponse, status_code=201)
async def propose_trade(proposal: TradeProposal, user_id: str = Depends(current_user_id)):
    """Propose a trade to a friend."""
    return trade_service.propose_trade(db(), user_id, proposal)


@app.get("/trades", response_model=TradeListResponse)
async def list_trades(
    status: Optional[TradeStatus] = Query(None),
    role: TradeRole = Query(TradeRole.ALL),
    view: Optional[TradeView] = Query(None),
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    user_id: str = Depends(current_user_id),
):
    """List the user's trades, newest first."""
    return trade_service.list_trades(db(), user_id, status, role, view, page, limit)


@app.get("/trades/counts", response_model=TradeCounts)
async def get_trade_counts(user_id: str = Depends(current_user_id)):
    return trade_service.trade_counts(db(), user_id)


@app.get("/trades/stats", response_model=TradeStats)
async def get_trade_stats(user_id: str = Depends(current_user_id)):
    """Get trade totals and success rate for the user."""
    return trade_service.trading_stats(db(), user_id)


@app.delete("/trades/history", response_model=ClearHistoryResponse)
async def clear_trade_history(user_id: str = Depends(current_user_id)):
    """Delete the user's completed, declined and cancelled trades."""
    return {"trades_deleted": trade_service.clear_history(db(), user_id)}


@app.get("/trades/{trade_id}", response_model=TradeWithItemsResponse)
async def get_trade(trade_id: UUID, user_id: str = Depends(current_user_id)):
    return trade_service.get_trade(db(), str(trade_id), user_id)


@app.get("/trades/{trade_id}/counter-draft", response_model=TradeProposal)
async def get_counter_offer_draft(trade_id: UUID, user_id: str = Depends(current_user_id)):
    """Pre-filled proposal for countering a pending trade. Submit it to POST /trades."""
    return trade_service.counter_offer_draft(db(), str(trade_id), user_id)


@app.post("/trades/{trade_id}/accept", response_model=TradeResponse)
async def accept_trade(trade_id: UUID, user_id: str = Depends(current_user_id)):
    return trade_service.accept_trade(db(), str(trade_id), user_id)


@app.post("/trades/{trade_id}/decline", response_model=TradeResponse)
async def decline_trade(trade_id: UUID, user_id: str = Depends(current_user_id)):
    return trade_service.decline_trade(db(), str(trade_id), user_id)


@app.post("/trades/{trade_id}/cancel", response_model=TradeResponse)
async def cancel_trade(trade_id: UUID, user_id: str = Depends(current_user_id)):
    return trade_service.cancel_trade(db(), str(trade_id), user_id)


@app.post("/trades/{trade_id}/complete", response_model=TradeCompletionResponse)
async def complete_trade(trade_id: UUID, user_id: str = Depends(current_user_id)):
    """Complete an accepted trade and move its cards between collections."""
    return trade_completion.complete_trade(db(), str(trade_id), user_id)


# ============== Notification Endpoints ==============

@app.get("/notifications", response_model=list[NotificationResponse])
async def get_notifications(
    limit: int = Query(50, ge=1, le=200),
    user_id: str = Depends(current_user_id),
):
    return notification_service.get_notifications(db(), user_id, limit)


@app.get("/notifications/count", response_model=NotificationCount)
async def get_notification_count(user_id: str = Depends(current_user_id)):
    return {"unread": notification_service.notification_count(db(), user_id)}


@app.post("/notifications/{notification_id}/read", status_code=204)
async def mark_notification_read(notification_id: str, user_id: str = Depends(current_user_id)):
    notification_service.mark_read(db(), user_id, notification_id)
    return None


# ============== Matching Endpoints ==============

@app.get("/matching", response_model=WishlistMatchesResponse)
def get_wishlist_matches(
    friend_id: str = Query(matching_service.ALL_FRIENDS),
    sort_by: MatchSort = Query(MatchSort.NAME),
    user_id: str = Depends(current_user_id),
):
    """Cards you want that friends have, and cards friends want that you have."""
    return matching_service.get_matches(db(), user_id, friend_id, sort_by)


@app.get("/cards/{card_id}/friends", response_model=FriendsWithCardResponse)
async def get_friends_with_card(card_id: str, user_id: str = Depends(current_user_id)):
    """Friends who own a card, with per-variant quantities."""
    return {"card_id": card_id, "friends": matching_service.friends_with_card(db(), user_id, card_id)}


# ============== Collection Endpoints ==============

@app.get("/collection", response_model=list[CollectionCardResponse])
async def get_collection(
    set_id: Optional[str] = Query(None),
    rarity: Optional[str] = Query(None),
    condition: Optional[str] = Query(None),
    page: int = Query(1, ge=1),
    limit: int = Query(24, ge=1, le=200),
    user_id: str = Depends(current_user_id),
):
    """Get the user's collection grouped per card, with optional filters."""
    return collection_service.get_collection(db(), user_id, set_id, rarity, condition, page, limit)


@app.post("/collection", response_model=CollectionMutationResponse, status_code=201)
async def add_to_collection(entry: CollectionAdd, user_id: str = Depends(current_user_id)):
    """Add copies of a card, or increase the quantity of an existing entry."""
    return collection_service.add_to_collection(db(), user_id, entry)


@app.post("/collection/{card_id}/remove", response_model=CollectionMutationResponse)
async def remove_from_collection(card_id: str, removal: CollectionRemove,
                                 user_id: str = Depends(current_user_id)):
    """Remove copies of a card. The entry is deleted when none are left."""
    return collection_service.remove_from_collection(db(), user_id, card_id, removal)


@app.get("/collection/stats", response_model=CollectionStats)
async def get_collection_stats(user_id: str = Depends(current_user_id)):
    return collection_service.collection_stats(db(), user_id)


@app.get("/collection/cards/{card_id}", response_model=CardOwnership)
async def get_card_ownership(card_id: str, user_id: str = Depends(current_user_id)):
    return collection_service.card_ownership(db(), user_id, card_id)


@app.delete("/collection", response_model=ClearCollectionResponse)
async def clear_collection(user_id: str = Depends(current_user_id)):
    return {"deleted_count": collection_service.clear_collection(db(), user_id)}


# ============== Wishlist Endpoints ==============

@app.get("/wishlist", response_model=list[WishlistItemResponse])
async def get_wishlist(
    wishlist_list_id: Optional[UUID] = Query(None),
    priority: Optional[int] = Query(None, ge=1, le=5),
    sort_by: WishlistSort = Query(WishlistSort.PRIORITY),
    order: SortOrder = Query(SortOrder.ASC),
    page: int = Query(1, ge=1),
    limit: int = Query(50, ge=1, le=200),
    user_id: str = Depends(current_user_id),
):
    list_id = str(wishlist_list_id) if wishlist_list_id else None
    return wishlist_service.list_items(db(), user_id, list_id, priority, sort_by, order, page, limit)


@app.post("/wishlist", response_model=WishlistItemResponse, status_code=201)
async def add_to_wishlist(item: WishlistItemCreate, user_id: str = Depends(current_user_id)):
    return wishlist_service.add_item(db(), user_id, item)


@app.post("/wishlist/bulk", response_model=BulkAddResponse)
async def add_many_to_wishlist(items: WishlistBulkCreate, user_id: str = Depends(current_user_id)):
    """Add several cards at once. Cards already on the wishlist are skipped."""
    return wishlist_service.add_many(db(), user_id, items)


@app.get("/wishlist/stats", response_model=WishlistStats)
async def get_wishlist_stats(user_id: str = Depends(current_user_id)):
    return wishlist_service.wishlist_stats(db(), user_id)


@app.get("/wishlist/affordable", response_model=list[WishlistItemResponse])
async def get_affordable_items(budget: float = Query(gt=0), user_id: str = Depends(current_user_id)):
    return wishlist_service.affordable_items(db(), user_id, budget)


@app.get("/wishlist/price-alerts", response_model=list[WishlistItemResponse])
async def get_price_alerts(user_id: str = Depends(current_user_id)):
    """Wishlist items currently at or below their max price."""
    return wishlist_service.price_alerts(db(), user_id)


@app.get("/wishlist/check/{card_id}", response_model=WishlistCheckResponse)
async def check_wishlist_card(card_id: str, user_id: str = Depends(current_user_id)):
    return wishlist_service.check_card(db(), user_id, card_id)


@app.patch("/wishlist/{item_id}", response_model=WishlistItemResponse)
async def update_wishlist_item(item_id: UUID, update: WishlistItemUpdate,
                               user_id: str = Depends(current_user_id)):
    return wishlist_service.update_item(db(), user_id, str(item_id), update)


@app.delete("/wishlist/cards/{card_id}", status_code=204)
async def remove_card_from_wishlist(card_id: str, user_id: str = Depends(current_user_id)):
    wishlist_service.remove_by_card(db(), user_id, card_id)
    return None


@app.delete("/wishlist/{item_id}", status_code=204)
async def remove_wishlist_item(item_id: UUID, user_id: str = Depends(current_user_id)):
    wishlist_service.remove_item(db(), user_id, str(item_id))
    return None


# ============== Wishlist List Endpoints ==============

@app.get("/wishlist-lists", response_model=list[WishlistListResponse])
async def get_wishlist_lists(user_id: str = Depends(current_user_id)):
    return wishlist_lists_service.list_lists(db(), user_id)


@app.post("/wishlist-lists", response_model=WishlistListResponse, status_code=201)
async def create_wishlist_list(payload: WishlistListCreate, user_id: str = Depends(current_user_id)):
    return wishlist_lists_service.create_list(db(), user_id, payload)


@app.get("/wishlist-lists/default", response_model=WishlistListResponse)
async def get_default_wishlist_list(user_id: str = Depends(current_user_id)):
    return wishlist_lists_service.get_default_list(db(), user_id)


@app.get("/wishlist-lists/public", response_model=list[WishlistListResponse])
async def get_public_wishlist_lists(
    limit: int = Query(20, ge=1, le=100),
    offset: int = Query(0, ge=0),
):
    """Public wishlists from every user, most recently updated first."""
    return wishlist_lists_service.public_lists(db(), limit, offset)


@app.get("/wishlist-lists/{list_id}", response_model=WishlistListResponse)
async def get_wishlist_list(list_id: UUID, user_id: str = Depends(current_user_id)):
    return wishlist_lists_service.get_list(db(), user_id, str(list_id))


@app.patch("/wishlist-lists/{list_id}", response_model=WishlistListResponse)
async def update_wishlist_list(list_id: UUID, update: WishlistListUpdate,
                               user_id: str = Depends(current_user_id)):
    return wishlist_lists_service.update_list(db(), user_id, str(list_id), update)


@app.delete("/wishlist-lists/{list_id}", status_code=204)
async def delete_wishlist_list(list_id: UUID, user_id: str = Depends(current_user_id)):
    wishlist_lists_service.delete_list(db(), user_id, str(list_id))
    return None


@app.get("/wishlist-lists/{list_id}/items", response_model=list[WishlistItemResponse])
async def get_wishlist_list_items(
    list_id: UUID,
    sort_by: WishlistSort = Query(WishlistSort.CREATED_AT),
    order: SortOrder = Query(SortOrder.DESC),
    user_id: str = Depends(current_user_id),
):
    """Items of an owned or public list."""
    return wishlist_lists_service.list_items(db(), user_id, str(list_id), sort_by, order)


@app.post("/wishlist-lists/{list_id}/cards", response_model=WishlistItemResponse, status_code=201)
async def add_card_to_wishlist_list(list_id: UUID, payload: ListCardAdd,
                                    user_id: str = Depends(current_user_id)):
    return wishlist_lists_service.add_card_to_list(db(), user_id, str(list_id), payload)


@app.post("/wishlist-lists/{list_id}/cards/bulk", response_model=BulkAddResponse)
async def add_cards_to_wishlist_list(list_id: UUID, payload: ListCardsBulkAdd,
                                     user_id: str = Depends(current_user_id)):
    return wishlist_lists_service.add_cards_to_list(db(), user_id, str(list_id), payload)


@app.post("/wishlist-lists/{list_id}/duplicate", response_model=WishlistListResponse, status_code=201)
async def duplicate_wishlist_list(list_id: UUID, payload: WishlistListDuplicate,
                                  user_id: str = Depends(current_user_id)):
    """Copy an owned or public list into a new private list."""
    return wishlist_lists_service.duplicate_list(db(), user_id, str(list_id), payload.name)


# ============== Wanted Board Endpoints ==============

@app.get("/wanted-board", response_model=list[WantedBoardPostResponse])
async def get_wanted_board(limit: int = Query(50, ge=1, le=200)):
    return wanted_board_service.list_posts(db(), limit)


@app.post("/wanted-board", response_model=list[WantedBoardPostResponse], status_code=201)
async def post_to_wanted_board(payload: WantedBoardPublish, user_id: str = Depends(current_user_id)):
    """Publish wishlist cards. With replace_all the user's earlier posts are removed first."""
    return wanted_board_service.post_wishlist(db(), user_id, payload.items, payload.replace_all)


@app.get("/wanted-board/stats", response_model=WantedBoardStats)
async def get_wanted_board_stats():
    return wanted_board_service.stats(db())


@app.post("/wanted-board/owned", response_model=OwnedWantedCardsResponse)
async def get_owned_wanted_cards(payload: OwnedWantedCardsRequest, user_id: str = Depends(current_user_id)):
    """Which of the given cards the user could offer."""
    return {"card_ids": wanted_board_service.owned_wanted_cards(db(), user_id, payload.card_ids)}


@app.delete("/wanted-board", status_code=204)
async def remove_all_wanted_board_posts(user_id: str = Depends(current_user_id)):
    wanted_board_service.remove_all_posts(db(), user_id)
    return None


@app.delete("/wanted-board/cards/{card_id}", status_code=204)
async def remove_card_from_wanted_board(card_id: str, user_id: str = Depends(current_user_id)):
    wanted_board_service.remove_card(db(), user_id, card_id)
    return None


@app.delete("/wanted-board/{post_id}", status_code=204)
async def remove_wanted_board_post(post_id: UUID, user_id: str = Depends(current_user_id)):
    wanted_board_service.remove_post(db(), user_id, str(post_id))
    return None


@app.post("/wanted-board/{post_id}/trade", response_model=TradeWithItemsResponse, status_code=201)
async def trade_from_wanted_board(post_id: UUID, offer: WantedBoardTradeOffer,
                                  user_id: str = Depends(current_user_id)):
    """Offer the wanted card to the poster. Friendship is not required."""
    return wanted_board_service.trade_from_post(db(), user_id, str(post_id), offer)


# ============== Pricing Endpoints ==============

@app.get("/pricing/currencies", response_model=list[CurrencyInfo])
def get_supported_currencies():
    return currency_service.supported_currencies()


@app.get("/pricing/convert", response_model=ConversionResult)
def convert_currency(
    amount: float = Query(ge=0),
    from_currency: str = Query("EUR"),
    to_currency: str = Query("EUR"),
):
    return currency_service.convert(amount, validate_currency(from_currency), validate_currency(to_currency))


@app.get("/pricing/cards/{card_id}", response_model=list[VariantPrice])
async def get_card_prices(
    card_id: str,
    source: PriceSource = Query(PriceSource.CARDMARKET),
):
    """Average price of every variant, falling back to the other source when needed."""
    card = pricing_service.fetch_card(db(), card_id)
    return pricing_service.variant_pricing(card, list(CardVariant), source)


@app.get("/pricing/cards/{card_id}/display", response_model=PriceDisplay)
async def get_price_display(
    card_id: str,
    variant: CardVariant = Query(CardVariant.NORMAL),
    user_id: str = Depends(current_user_id),
):
    """A card's price in the user's preferred source and currency, with a buy link."""
    preferences = preferences_service.get_preferences(db(), user_id)
    return pricing_service.price_display(db(), card_id, preferences, variant)


@app.post("/pricing/total", response_model=TotalValue)
async def get_total_value(items: list[PricedItem], source: PriceSource = Query(PriceSource.CARDMARKET)):
    total = pricing_service.total_value_for_items(db(), items, source)
    if total is None:
        return {"total": 0, "currency": pricing_service.SOURCE_CURRENCY[source], "totals_by_currency": {}}
    return total


@app.get("/cards/{card_id}/price-graph", response_model=PriceGraph)
async def get_price_graph(card_id: str, days: int = Query(30, ge=1, le=365)):
    """Price series for charts: stored history, or an approximation from rolling averages."""
    return price_history_service.price_graph(db(), card_id, days)


# ============== Price History Endpoints ==============

@app.get("/api/pricing/history", response_model=PriceHistoryResponse)
async def get_price_history(
    card_id: Optional[str] = Query(None, alias="cardId"),
    days: int = Query(30, ge=1),
    variant: HistoryVariant = Query(HistoryVariant.NORMAL),
    fill_gaps: bool = Query(False, alias="fillGaps"),
):
    data = price_history_service.get_history(db(), card_id, days, variant, fill_gaps)
    return {"success": True, "data": data}


@app.get("/api/pricing/stats", response_model=PriceStatisticsResponse)
async def get_price_statistics(
    card_id: Optional[str] = Query(None, alias="cardId"),
    days: int = Query(30, ge=1),
):
    stats = price_history_service.price_statistics(db(), card_id, days)
    if stats is None:
        raise NotFoundError("No pricing data available")
    return {"success": True, "data": stats}


@app.post("/api/pricing/history", response_model=PriceCaptureResponse)
async def capture_price_history(request: PriceCaptureRequest):
    """Snapshot current prices into the history table."""
    if request.action == CaptureAction.CAPTURE:
        return price_history_service.capture_current_pricing(db(), request.card_id)
    return price_history_service.backfill(db(), request.card_ids, request.limit)


# ============== Friend Endpoints ==============

@app.get("/friends", response_model=list[FriendResponse])
async def get_friends(user_id: str = Depends(current_user_id)):
    return friends_service.list_friends(db(), user_id)


@app.get("/friends/requests", response_model=list[PendingRequestResponse])
async def get_friend_requests(user_id: str = Depends(current_user_id)):
    """Requests waiting for the user to answer."""
    return friends_service.pending_requests(db(), user_id)


@app.post("/friends/requests", response_model=FriendshipResponse, status_code=201)
async def send_friend_request(payload: FriendRequestCreate, user_id: str = Depends(current_user_id)):
    return friends_service.send_request(db(), user_id, payload.addressee_id)


@app.post("/friends/requests/{friendship_id}/accept", response_model=FriendshipResponse)
async def accept_friend_request(friendship_id: UUID, user_id: str = Depends(current_user_id)):
    return friends_service.accept_request(db(), str(friendship_id), user_id)


@app.post("/friends/requests/{friendship_id}/decline", status_code=204)
async def decline_friend_request(friendship_id: UUID, user_id: str = Depends(current_user_id)):
    friends_service.decline_request(db(), str(friendship_id), user_id)
    return None


@app.get("/friends/status/{other_user_id}", response_model=FriendshipStatusResponse)
async def get_friendship_status(other_user_id: UUID, user_id: str = Depends(current_user_id)):
    other_id = str(other_user_id)
    return {
        "user_id": user_id,
        "other_user_id": other_id,
        "status": friends_service.friendship_status(db(), user_id, other_id),
    }


@app.delete("/friends/{friendship_id}", status_code=204)
async def remove_friend(friendship_id: UUID, user_id: str = Depends(current_user_id)):
    friends_service.remove_friend(db(), str(friendship_id), user_id)
    return None


# ============== Achievement Endpoints ==============

@app.get("/achievements", response_model=AchievementListResponse)
async def get_achievements(user_id: str = Depends(current_user_id)):
    return achievement_service.list_achievements(db(), user_id)


@app.get("/achievements/definitions", response_model=list[AchievementDefinition])
def get_achievement_definitions():
    return achievement_service.ACHIEVEMENT_DEFINITIONS


@app.post("/achievements/check", response_model=AchievementCheckResponse)
async def check_achievements(user_id: str = Depends(current_user_id)):
    """Unlock newly earned achievements and revoke ones no longer met."""
    return achievement_service.check_achievements(db(), user_id)


# ============== Preference Endpoints ==============

@app.get("/preferences", response_model=UserPreferences)
async def get_preferences(user_id: str = Depends(current_user_id)):
    return preferences_service.get_preferences(db(), user_id)


@app.patch("/preferences", response_model=UserPreferences)
async def update_preferences(update: UserPreferencesUpdate, user_id: str = Depends(current_user_id)):
    return preferences_service.update_preferences(db(), user_id, update)


# ============== Profile Endpoints ==============

@app.get("/profile", response_model=Profile)
async def get_profile(user_id: str = Depends(current_user_id)):
    """The user's own profile, created with defaults on first access."""
    return profile_service.ensure_profile(db(), user_id)


@app.patch("/profile", response_model=Profile)
async def update_profile(update: ProfileUpdate, user_id: str = Depends(current_user_id)):
    return profile_service.update_profile(db(), user_id, update)


@app.get("/profile/activity", response_model=list[ActivityItem])
async def get_recent_activity(
    limit: int = Query(20, ge=1, le=50),
    user_id: str = Depends(current_user_id),
):
    return profile_service.recent_activity(db(), user_id, limit)


@app.get("/profile/insights", response_model=ProfileInsights)
async def get_profile_insights(user_id: str = Depends(current_user_id)):
    return profile_service.profile_insights(db(), user_id)


@app.get("/profiles/{profile_id}", response_model=PublicProfile)
async def get_public_profile(profile_id: UUID, user_id: str = Depends(current_user_id)):
    return profile_service.get_public_profile(db(), user_id, str(profile_id))


# ============== Community Endpoints ==============

@app.get("/community/stats", response_model=CommunityStats)
async def get_community_stats():
    return community_service.community_stats(db())


@app.get("/community/popular-sets", response_model=list[PopularSet])
async def get_popular_sets(limit: int = Query(10, ge=1, le=50)):
    return community_service.popular_sets(db(), limit)


@app.get("/community/trending-cards", response_model=list[TrendingCard])
async def get_trending_cards(
    limit: int = Query(10, ge=1, le=50),
    days: int = Query(7, ge=1, le=90),
):
    return community_service.trending_cards(db(), limit, days)


@app.get("/community/top-collectors", response_model=list[TopCollector])
async def get_top_collectors(limit: int = Query(10, ge=1, le=50)):
    return community_service.top_collectors(db(), limit)


@app.get("/community/leaderboards", response_model=Leaderboards)
async def get_leaderboards():
    return community_service.leaderboards(db())
