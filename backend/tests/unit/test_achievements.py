"""Tests for achievements."""
import pytest

from services import achievement_service
from services.achievement_service import ACHIEVEMENT_DEFINITIONS, DEFINITIONS_BY_TYPE, meets_requirements


@pytest.fixture
def one_card_collection():
    return [{
        "card_id": "sv1-25", "quantity": 1, "variant": "normal",
        "cards": {"id": "sv1-25", "rarity": "Common", "cardmarket_avg_sell_price": 2.5},
    }]


class TestRequirements:
    def test_all_thresholds_must_be_met(self):
        definition = {"requirements": {"cards": 1, "unique_cards": 10}}

        assert meets_requirements(definition, {"cards": 12, "unique_cards": 10})
        assert not meets_requirements(definition, {"cards": 12, "unique_cards": 9})

    def test_missing_stat_counts_as_zero(self):
        assert not meets_requirements(DEFINITIONS_BY_TYPE["first_trade"], {})

    def test_definition_types_are_unique(self):
        assert len(DEFINITIONS_BY_TYPE) == len(ACHIEVEMENT_DEFINITIONS)


class TestCheckAchievements:
    """Tests for unlocking and revoking."""

    def test_compute_stats(self, mock_supabase_client, tables, sample_user_id):
        tables.create_table("user_collections", default_response=[
            {"card_id": "sv1-25", "quantity": 3, "variant": "reverse_holo",
             "cards": {"rarity": "Common", "cardmarket_reverse_holo_sell": 4.0}},
            {"card_id": "base1-4", "quantity": 1, "variant": "normal",
             "cards": {"rarity": "Rare", "cardmarket_avg_sell_price": 300.0}},
        ])
        tables.create_table("trades", default_response=[{"id": "t1", "status": "completed"}])
        tables.create_table("friendships", default_response=[
            {"requester_id": sample_user_id, "addressee_id": "friend-a"},
        ])

        stats = achievement_service.compute_stats(mock_supabase_client, sample_user_id)

        assert stats == {
            "unique_cards": 2,
            "cards": 4,
            "rare_cards": 1,
            "collection_value_eur": 312.0,
            "friends": 1,
            "completed_trades": 1,
        }

    def test_unlocks_and_revokes(self, client, tables, auth_headers, one_card_collection):
        """One card unlocks First Steps; a stale friend achievement is revoked."""
        achievements = tables.create_table("user_achievements", responses=[
            [{"achievement_type": "first_friend"}], [], [],
        ])
        tables.create_table("user_collections", default_response=one_card_collection)

        response = client.post("/achievements/check", headers=auth_headers)

        assert response.status_code == 200
        data = response.json()
        assert [a["type"] for a in data["unlocked"]] == ["first_card"]
        assert [a["type"] for a in data["revoked"]] == ["first_friend"]
        inserted = achievements.insert.call_args[0][0]
        assert inserted["achievement_type"] == "first_card"
        assert inserted["achievement_data"] == {"points": 10}
        achievements.eq.assert_any_call("achievement_type", "first_friend")

    def test_nothing_changes(self, client, tables, auth_headers, one_card_collection):
        achievements = tables.create_table("user_achievements", default_response=[{"achievement_type": "first_card"}])
        tables.create_table("user_collections", default_response=one_card_collection)

        response = client.post("/achievements/check", headers=auth_headers)

        assert response.json() == {"unlocked": [], "revoked": []}
        achievements.insert.assert_not_called()
        achievements.delete.assert_not_called()

    def test_quiet_check_swallows_failures(self, mock_supabase_client, tables, api_error, sample_user_id):
        tables.create_table("user_achievements", responses=[api_error()])

        result = achievement_service.check_achievements_quietly(mock_supabase_client, sample_user_id)

        assert result == {"unlocked": [], "revoked": []}


class TestAchievementEndpoints:
    def test_definitions(self, client):
        response = client.get("/achievements/definitions")

        assert response.status_code == 200
        assert len(response.json()) == len(ACHIEVEMENT_DEFINITIONS)

    def test_list_unlocked(self, client, tables, auth_headers):
        """Unknown achievement types are ignored."""
        tables.create_table("user_achievements", default_response=[
            {"achievement_type": "first_trade", "unlocked_at": "2024-03-02T10:00:00+00:00"},
            {"achievement_type": "first_card", "unlocked_at": "2024-03-01T10:00:00+00:00"},
            {"achievement_type": "retired_badge", "unlocked_at": None},
        ])

        response = client.get("/achievements", headers=auth_headers)

        assert response.status_code == 200
        data = response.json()
        assert [a["achievement_type"] for a in data["achievements"]] == ["first_trade", "first_card"]
        assert data["total_points"] == 60
