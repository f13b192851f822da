"""
Integration test fixtures for testing with a real local Supabase database.

These fixtures connect to a local Supabase instance and perform real database operations.
Run `supabase start` before running integration tests.
All tests in this directory are automatically marked as integration tests.
"""
import os
import subprocess
import warnings
from pathlib import Path
from unittest.mock import patch
from uuid import uuid4

import pytest
from dotenv import load_dotenv
from fastapi.testclient import TestClient
from supabase import Client, create_client

# Path to the project root (where the supabase/ folder is located)
PROJECT_ROOT = Path(__file__).parent.parent.parent.parent


@pytest.fixture(scope="session")
def setup_test_environment():
    """Load .env.test at session start."""
    # .env.test is in the backend root
    env_test_path = Path(__file__).parent.parent.parent / ".env.test"
    load_dotenv(env_test_path, override=True)
    yield


@pytest.fixture(scope="session")
def supabase_client(setup_test_environment) -> Client:
    """Create a real Supabase client connected to the local instance."""
    url = os.getenv("SUPABASE_URL")
    key = os.getenv("SERVICE_ROLE_KEY") or os.getenv("SUPABASE_KEY")

    if not url or not key:
        pytest.skip("SUPABASE_URL and SERVICE_ROLE_KEY must be set in .env.test")

    return create_client(url, key)


@pytest.fixture(scope="session")
def reset_database(setup_test_environment):
    """
    Reset the database before the test session.

    Skipped with a warning when the supabase CLI is not available; run
    `supabase db reset` manually in that case.
    """
    try:
        result = subprocess.run(
            ["supabase", "db", "reset"],
            cwd=str(PROJECT_ROOT),
            capture_output=True,
            text=True,
            timeout=60
        )
        if result.returncode != 0:
            warnings.warn(f"Could not reset database: {result.stderr}")
    except FileNotFoundError:
        warnings.warn("supabase CLI not found. Skipping database reset.")
    except subprocess.TimeoutExpired:
        warnings.warn("Database reset timed out. Continuing anyway.")

    yield


@pytest.fixture
def integration_client(supabase_client, reset_database):
    """FastAPI TestClient whose routes use the local Supabase instance."""
    from main import app

    with patch("main.supabase", supabase_client):
        yield TestClient(app)


def _cleanup_user(client: Client, user_id: str) -> None:
    """Delete everything a test user created, children before parents."""
    trades = client.table("trades").select("id").or_(
        f"initiator_id.eq.{user_id},recipient_id.eq.{user_id}"
    ).execute()
    trade_ids = [t["id"] for t in trades.data or []]
    if trade_ids:
        client.table("trade_items").delete().in_("trade_id", trade_ids).execute()
        client.table("trades").update({"parent_trade_id": None}).in_("id", trade_ids).execute()
        client.table("trades").delete().in_("id", trade_ids).execute()

    for table in ("notifications", "user_achievements", "user_collections", "wishlists", "wanted_board"):
        client.table(table).delete().eq("user_id", user_id).execute()
    client.table("wishlist_lists").delete().eq("user_id", user_id).execute()
    client.table("friendships").delete().or_(
        f"requester_id.eq.{user_id},addressee_id.eq.{user_id}"
    ).execute()
    client.table("profiles").delete().eq("id", user_id).execute()


def _create_profile(client: Client, username: str) -> dict:
    result = client.table("profiles").insert({
        "id": str(uuid4()),
        "username": username,
        "display_name": username.replace("_", " ").title(),
    }).execute()

    if not result.data:
        pytest.fail(f"Failed to create test profile {username}")
    return result.data[0]


@pytest.fixture
def test_user(supabase_client):
    """
    Create a test profile.
    Automatically cleaned up after the test.
    """
    profile = _create_profile(supabase_client, f"test_user_{uuid4().hex[:8]}")
    yield profile
    _cleanup_user(supabase_client, profile["id"])


@pytest.fixture
def second_test_user(supabase_client):
    """A second test profile for trading scenarios."""
    profile = _create_profile(supabase_client, f"test_user_2_{uuid4().hex[:8]}")
    yield profile
    _cleanup_user(supabase_client, profile["id"])


@pytest.fixture
def sample_card_ids(supabase_client):
    """
    Get real card IDs from the seeded database.
    """
    result = supabase_client.table("cards").select("id").limit(10).execute()

    if not result.data or len(result.data) < 6:
        pytest.skip("Not enough cards found in database. Run `supabase db reset` to seed data.")

    return [card["id"] for card in result.data]


@pytest.fixture
def friends(supabase_client, test_user, second_test_user):
    """Make the two test users friends."""
    result = supabase_client.table("friendships").insert({
        "requester_id": test_user["id"],
        "addressee_id": second_test_user["id"],
        "status": "accepted",
    }).execute()

    if not result.data:
        pytest.fail("Failed to create friendship")

    yield result.data[0]


@pytest.fixture
def trading_setup(supabase_client, friends, test_user, second_test_user, sample_card_ids):
    """
    Two friends with cards to trade.

    Returns a dict with:
    - initiator / recipient: profile dicts
    - initiator_cards / recipient_cards: user_collections rows (5 normal copies each)
    """
    def stock(user_id, card_ids):
        rows = [
            {"user_id": user_id, "card_id": card_id, "variant": "normal", "quantity": 5, "condition": "near_mint"}
            for card_id in card_ids
        ]
        return supabase_client.table("user_collections").insert(rows).execute().data or []

    yield {
        "initiator": test_user,
        "recipient": second_test_user,
        "initiator_cards": stock(test_user["id"], sample_card_ids[:3]),
        "recipient_cards": stock(second_test_user["id"], sample_card_ids[3:6]),
    }
