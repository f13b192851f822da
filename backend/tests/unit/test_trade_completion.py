"""Tests for completing accepted trades and moving cards between collections."""
import pytest

from models.card import CardVariant
from services.trade_completion import determine_card_variant


@pytest.fixture
def charizard_item(sample_trade_items):
    """The recipient's Charizard ex, which is filed as holo."""
    return sample_trade_items[1]


class TestCompleteTrade:
    """Tests for POST /trades/{trade_id}/complete."""

    def test_complete_moves_cards(
        self, client, tables, no_achievements, charizard_item, sample_profiles,
        sample_accepted_trade_data, sample_completed_trade_data,
        sample_initiator_user_id, sample_recipient_user_id,
    ):
        """The giver loses the card, the receiver gains it and it leaves their wishlist."""
        tables.create_table("trades", responses=[[sample_accepted_trade_data], [sample_completed_trade_data]])
        tables.create_table("trade_items", default_response=[charizard_item])
        collections = tables.create_table("user_collections", responses=[
            [{"id": "giver-row", "quantity": 1}],  # giver's row
            [],                                   # delete
            [],                                   # receiver has none
            [{"id": "receiver-row", "quantity": 1}],  # insert
        ])
        wishlists = tables.create_table("wishlists", default_response=[{"id": "wish-1"}])
        tables.create_table("profiles", default_response=sample_profiles)

        response = client.post(
            f"/trades/{sample_accepted_trade_data['id']}/complete",
            headers={"X-User-Id": sample_initiator_user_id},
        )

        assert response.status_code == 200
        data = response.json()
        assert data["already_completed"] is False
        assert data["trade"]["status"] == "completed"
        assert data["removed_from_collection"] == ["Charizard ex (1x holo)"]
        assert data["added_to_collection"] == ["Charizard ex (1x holo)"]
        assert data["removed_from_wishlist"] == ["Charizard ex"]
        assert data["failed_transfers"] == []

        collections.eq.assert_any_call("user_id", sample_recipient_user_id)
        collections.eq.assert_any_call("variant", "holo")
        collections.delete.assert_called_once()
        inserted = collections.insert.call_args[0][0]
        assert inserted["user_id"] == sample_initiator_user_id
        assert inserted["variant"] == "holo"
        assert inserted["is_foil"] is True
        wishlists.eq.assert_any_call("user_id", sample_initiator_user_id)

        assert no_achievements.call_count == 2
        notification = tables.get_table("notifications").insert.call_args[0][0]
        assert notification["user_id"] == sample_recipient_user_id
        assert notification["type"] == "trade_completed"

    def test_partial_quantity_updates_giver_row(
        self, client, tables, no_achievements, sample_trade_items,
        sample_accepted_trade_data, sample_completed_trade_data, sample_recipient_user_id,
    ):
        """Giving 2 of 5 copies keeps the giver's row with 3, and stacks onto the receiver's row."""
        pikachu = sample_trade_items[0]
        tables.create_table("trades", responses=[[sample_accepted_trade_data], [sample_completed_trade_data]])
        tables.create_table("trade_items", default_response=[pikachu])
        collections = tables.create_table("user_collections", responses=[
            [{"id": "giver-row", "quantity": 5}],
            [{"id": "giver-row", "quantity": 3}],
            [{"id": "receiver-row", "quantity": 1}],
            [{"id": "receiver-row", "quantity": 3}],
        ])

        response = client.post(
            f"/trades/{sample_accepted_trade_data['id']}/complete",
            headers={"X-User-Id": sample_recipient_user_id},
        )

        assert response.status_code == 200
        assert response.json()["added_to_collection"] == ["Pikachu (2x normal)"]
        quantities = [c[0][0]["quantity"] for c in collections.update.call_args_list]
        assert quantities == [3, 3]
        collections.delete.assert_not_called()
        collections.insert.assert_not_called()

    def test_already_completed_is_a_no_op(
        self, client, tables, sample_completed_trade_data, sample_initiator_user_id
    ):
        """Completing twice never moves cards twice."""
        trades = tables.create_table("trades", default_response=[sample_completed_trade_data])

        response = client.post(
            f"/trades/{sample_completed_trade_data['id']}/complete",
            headers={"X-User-Id": sample_initiator_user_id},
        )

        assert response.status_code == 200
        data = response.json()
        assert data["already_completed"] is True
        assert data["added_to_collection"] == []
        trades.update.assert_not_called()
        assert "trade_items" not in tables.tables
        assert "user_collections" not in tables.tables

    def test_concurrent_completion_is_a_no_op(
        self, client, tables, sample_accepted_trade_data, sample_completed_trade_data, sample_initiator_user_id
    ):
        """When the other party claimed the completion first, nothing is transferred."""
        tables.create_table("trades", responses=[
            [sample_accepted_trade_data],
            [],
            [sample_completed_trade_data],
        ])

        response = client.post(
            f"/trades/{sample_accepted_trade_data['id']}/complete",
            headers={"X-User-Id": sample_initiator_user_id},
        )

        assert response.status_code == 200
        assert response.json()["already_completed"] is True
        assert "trade_items" not in tables.tables

    def test_pending_trade_cannot_be_completed(self, client, tables, sample_trade_data, sample_initiator_user_id):
        tables.create_table("trades", default_response=[sample_trade_data])

        response = client.post(
            f"/trades/{sample_trade_data['id']}/complete",
            headers={"X-User-Id": sample_initiator_user_id},
        )

        assert response.status_code == 409
        assert response.json()["detail"] == "Only accepted trades can be completed"

    def test_outsider_cannot_complete(self, client, tables, sample_accepted_trade_data):
        tables.create_table("trades", default_response=[sample_accepted_trade_data])

        response = client.post(
            f"/trades/{sample_accepted_trade_data['id']}/complete",
            headers={"X-User-Id": "99999999-9999-4999-8999-999999999999"},
        )

        assert response.status_code == 404

    def test_failed_transfer_is_reported(
        self, client, tables, no_achievements, charizard_item,
        sample_accepted_trade_data, sample_completed_trade_data, sample_initiator_user_id,
    ):
        """A giver who no longer has the card shows up in failed_transfers; the receiver still gets it."""
        tables.create_table("trades", responses=[[sample_accepted_trade_data], [sample_completed_trade_data]])
        tables.create_table("trade_items", default_response=[charizard_item])
        tables.create_table("user_collections", responses=[
            [],
            [],
            [{"id": "receiver-row", "quantity": 1}],
        ])

        response = client.post(
            f"/trades/{sample_accepted_trade_data['id']}/complete",
            headers={"X-User-Id": sample_initiator_user_id},
        )

        assert response.status_code == 200
        data = response.json()
        assert data["trade"]["status"] == "completed"
        assert data["removed_from_collection"] == []
        assert data["added_to_collection"] == ["Charizard ex (1x holo)"]
        assert data["failed_transfers"] == [
            "Remove Charizard ex (1x holo) from giver: Card not found in collection"
        ]


class TestDetermineCardVariant:
    """Tests for the variant a traded card is filed under."""

    @pytest.mark.parametrize("card,is_foil,expected", [
        ({"name": "Pikachu", "rarity": "Common"}, False, CardVariant.NORMAL),
        ({"name": "Pikachu", "rarity": "Common"}, True, CardVariant.HOLO),
        ({"name": "Charizard ex", "rarity": "Double Rare"}, False, CardVariant.HOLO),
        ({"name": "Mew", "rarity": "Special Illustration Rare"}, False, CardVariant.HOLO),
        ({"name": "Gyarados", "rarity": "Rare Holo"}, False, CardVariant.HOLO),
        ({"name": "Oddish", "rarity": "Uncommon"}, False, CardVariant.NORMAL),
        ({}, False, CardVariant.NORMAL),
    ])
    def test_variants(self, card, is_foil, expected):
        assert determine_card_variant(card, is_foil) == expected

    def test_missing_card_is_normal(self):
        assert determine_card_variant(None) == CardVariant.NORMAL
