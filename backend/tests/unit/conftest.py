"""
Conftest for unit tests with mocked Supabase client.

All tests in this directory are automatically marked as unit tests.
"""
import pytest
from fastapi.testclient import TestClient
from unittest.mock import MagicMock, Mock, patch
from datetime import datetime, timedelta, timezone
from uuid import uuid4

from postgrest.exceptions import APIError

from main import app
from services import community_service

CHAIN_METHODS = (
    "select", "insert", "update", "upsert", "delete",
    "eq", "neq", "gt", "gte", "lte", "in_", "or_",
    "order", "range", "limit",
)


def make_response(data):
    """A postgrest-like response object."""
    return Mock(data=data, count=len(data) if data is not None else None)


def make_api_error(message="backend unavailable"):
    return APIError({"message": message, "code": "500", "hint": None, "details": None})


def chaining_mock():
    mock = MagicMock()
    for method in CHAIN_METHODS:
        getattr(mock, method).return_value = mock
    return mock


class MockTableManager:
    """Per-table mocks with scripted `execute` results, in call order.

    A scripted response that is an exception instance is raised instead.
    """

    def __init__(self):
        self.tables = {}

    def create_table(self, table_name, responses=None, default_response=None):
        mock = chaining_mock()

        if responses is not None:
            mock.execute.side_effect = [
                r if isinstance(r, Exception) else make_response(r) for r in responses
            ]
        elif default_response is not None:
            mock.execute.return_value = make_response(default_response)
        else:
            mock.execute.return_value = make_response([])

        self.tables[table_name] = mock
        return mock

    def get_table(self, table_name):
        """Get a table mock, creating a default one if not exists."""
        if table_name not in self.tables:
            self.create_table(table_name)
        return self.tables[table_name]

    def table_handler(self, table_name):
        """Handler function to be used as side_effect for supabase.table()."""
        return self.get_table(table_name)


@pytest.fixture
def client():
    """Create a test client for the FastAPI app."""
    return TestClient(app)


@pytest.fixture
def mock_supabase():
    """Create a mock Supabase client."""
    mock = chaining_mock()
    mock.table.return_value = mock
    mock.rpc.return_value = mock
    mock.execute.return_value = make_response([])
    return mock


@pytest.fixture(autouse=True)
def mock_supabase_client(mock_supabase):
    """Automatically mock the Supabase client for all tests."""
    with patch("main.supabase", mock_supabase):
        yield mock_supabase


@pytest.fixture(autouse=True)
def empty_community_cache():
    """Community aggregates are cached module-wide; start every test cold."""
    community_service.cache.clear()
    yield
    community_service.cache.clear()


@pytest.fixture
def tables(mock_supabase_client):
    """A MockTableManager wired into the mocked client."""
    manager = MockTableManager()
    mock_supabase_client.table.side_effect = manager.table_handler
    return manager


@pytest.fixture
def no_achievements():
    """Skip achievement side effects in flows that only care about cards."""
    with patch(
        "services.achievement_service.check_achievements_quietly",
        return_value={"unlocked": [], "revoked": []},
    ) as mock:
        yield mock


@pytest.fixture
def sample_user_id():
    return "11111111-1111-4111-8111-111111111111"


@pytest.fixture
def sample_friend_id():
    return "22222222-2222-4222-8222-222222222222"


@pytest.fixture
def sample_card_id():
    return "sv1-25"


@pytest.fixture
def auth_headers(sample_user_id):
    return {"X-User-Id": sample_user_id}


@pytest.fixture
def sample_card_data(sample_card_id):
    """A card row with prices from both markets."""
    return {
        "id": sample_card_id,
        "name": "Pikachu",
        "set_id": "sv1",
        "number": "25",
        "rarity": "Common",
        "image_small": "https://images.example.com/sv1/25.png",
        "image_large": "https://images.example.com/sv1/25_hires.png",
        "cardmarket_avg_sell_price": 2.5,
        "cardmarket_low_price": 1.0,
        "cardmarket_trend_price": 2.2,
        "cardmarket_reverse_holo_sell": 4.0,
        "tcgplayer_unlimited_normal_market": 3.1,
    }


# ============== Trade-related fixtures ==============

@pytest.fixture
def sample_trade_id():
    return uuid4()


@pytest.fixture
def sample_initiator_user_id():
    return "33333333-3333-4333-8333-333333333333"


@pytest.fixture
def sample_recipient_user_id():
    return "44444444-4444-4444-8444-444444444444"


@pytest.fixture
def sample_trade_data(sample_trade_id, sample_initiator_user_id, sample_recipient_user_id):
    """Create sample PENDING trade data."""
    now = datetime.now(timezone.utc)
    return {
        "id": str(sample_trade_id),
        "initiator_id": sample_initiator_user_id,
        "recipient_id": sample_recipient_user_id,
        "status": "pending",
        "initiator_message": "Test trade offer",
        "recipient_message": None,
        "initiator_money_offer": 0,
        "recipient_money_offer": 5.0,
        "trade_method": "mail",
        "initiator_shipping_included": True,
        "recipient_shipping_included": False,
        "parent_trade_id": None,
        "created_at": now.isoformat(),
        "updated_at": now.isoformat(),
        "expires_at": (now + timedelta(days=7)).isoformat(),
    }


@pytest.fixture
def sample_accepted_trade_data(sample_trade_data):
    trade = sample_trade_data.copy()
    trade["status"] = "accepted"
    return trade


@pytest.fixture
def sample_completed_trade_data(sample_trade_data):
    trade = sample_trade_data.copy()
    trade["status"] = "completed"
    return trade


@pytest.fixture
def sample_trade_items(sample_trade_id, sample_initiator_user_id, sample_recipient_user_id):
    """One card from each side of the sample trade."""
    return [
        {
            "id": str(uuid4()),
            "trade_id": str(sample_trade_id),
            "user_id": sample_initiator_user_id,
            "card_id": "sv1-25",
            "quantity": 2,
            "condition": "near_mint",
            "is_foil": False,
            "notes": None,
            "cards": {"id": "sv1-25", "name": "Pikachu", "rarity": "Common"},
        },
        {
            "id": str(uuid4()),
            "trade_id": str(sample_trade_id),
            "user_id": sample_recipient_user_id,
            "card_id": "sv3-125",
            "quantity": 1,
            "condition": "near_mint",
            "is_foil": False,
            "notes": None,
            "cards": {"id": "sv3-125", "name": "Charizard ex", "rarity": "Double Rare"},
        },
    ]


@pytest.fixture
def sample_profiles(sample_initiator_user_id, sample_recipient_user_id):
    return [
        {"id": sample_initiator_user_id, "username": "ash", "display_name": "Ash", "avatar_url": None},
        {"id": sample_recipient_user_id, "username": "misty", "display_name": None, "avatar_url": None},
    ]


@pytest.fixture
def api_error():
    """Factory for postgrest errors, for scripting backend failures."""
    return make_api_error
