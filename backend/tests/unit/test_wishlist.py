"""Tests for wishlist endpoints."""
import pytest
from uuid import uuid4


def wishlist_row(user_id, card_id, name, price, priority=3, max_price=None, created_at="2024-03-01T10:00:00+00:00"):
    return {
        "id": str(uuid4()),
        "user_id": user_id,
        "card_id": card_id,
        "wishlist_list_id": None,
        "priority": priority,
        "max_price_eur": max_price,
        "condition_preference": "any",
        "notes": None,
        "created_at": created_at,
        "cards": {"id": card_id, "name": name, "cardmarket_avg_sell_price": price, "sets": {"name": "Base"}},
    }


@pytest.fixture
def wishlist_rows(sample_user_id):
    return [
        wishlist_row(sample_user_id, "sv3-125", "Charizard ex", 30.0, priority=1, max_price=25.0,
                     created_at="2024-03-03T10:00:00+00:00"),
        wishlist_row(sample_user_id, "sv1-25", "Pikachu", 2.5, priority=2, max_price=3.0),
        wishlist_row(sample_user_id, "sv2-1", "Bulbasaur", None, priority=5,
                     created_at="2024-03-02T10:00:00+00:00"),
        wishlist_row(sample_user_id, "sv1-1", "Sprigatito", 0.4, priority=2),
    ]


class TestAddToWishlist:
    """Tests for POST /wishlist and POST /wishlist/bulk."""

    def test_add_item(self, client, tables, auth_headers, sample_user_id):
        stored = wishlist_row(sample_user_id, "sv1-25", "Pikachu", 2.5, priority=1)
        del stored["cards"]
        wishlists = tables.create_table("wishlists", responses=[[], [stored]])

        response = client.post(
            "/wishlist",
            json={"card_id": "sv1-25", "priority": 1, "condition_preference": "near_mint"},
            headers=auth_headers,
        )

        assert response.status_code == 201
        assert response.json()["card_id"] == "sv1-25"
        inserted = wishlists.insert.call_args[0][0]
        assert inserted["priority"] == 1
        assert inserted["condition_preference"] == "near_mint"
        assert inserted["wishlist_list_id"] is None

    def test_add_duplicate_rejected(self, client, tables, auth_headers, sample_user_id):
        tables.create_table("wishlists", default_response=[wishlist_row(sample_user_id, "sv1-25", "Pikachu", 2.5)])

        response = client.post("/wishlist", json={"card_id": "sv1-25"}, headers=auth_headers)

        assert response.status_code == 409
        assert response.json()["detail"] == "Card is already in your wishlist"

    def test_priority_out_of_range(self, client, auth_headers):
        response = client.post("/wishlist", json={"card_id": "sv1-25", "priority": 6}, headers=auth_headers)

        assert response.status_code == 422

    def test_bulk_add_skips_existing(self, client, tables, auth_headers):
        wishlists = tables.create_table("wishlists", responses=[[{"card_id": "sv1-25"}], []])

        response = client.post(
            "/wishlist/bulk",
            json={"card_ids": ["sv1-25", "sv1-1", "sv1-1", "sv2-1"], "priority": 2},
            headers=auth_headers,
        )

        assert response.status_code == 200
        assert response.json() == {"added_count": 2, "skipped_count": 1, "message": None}
        rows = wishlists.insert.call_args[0][0]
        assert [r["card_id"] for r in rows] == ["sv1-1", "sv2-1"]
        assert all(r["priority"] == 2 for r in rows)

    def test_bulk_add_all_existing(self, client, tables, auth_headers):
        wishlists = tables.create_table("wishlists", default_response=[{"card_id": "sv1-25"}])

        response = client.post("/wishlist/bulk", json={"card_ids": ["sv1-25"]}, headers=auth_headers)

        assert response.json() == {
            "added_count": 0,
            "skipped_count": 1,
            "message": "All cards are already in your wishlist",
        }
        wishlists.insert.assert_not_called()


class TestReadWishlist:
    """Tests for listing and summarizing the wishlist."""

    def test_sorted_by_priority(self, client, tables, auth_headers, wishlist_rows):
        tables.create_table("wishlists", default_response=wishlist_rows)

        response = client.get("/wishlist", headers=auth_headers)

        assert response.status_code == 200
        items = response.json()
        assert [i["priority"] for i in items] == [1, 2, 2, 5]
        assert items[0]["card"]["set_name"] == "Base"

    def test_sorted_by_price_descending(self, client, tables, auth_headers, wishlist_rows):
        tables.create_table("wishlists", default_response=wishlist_rows)

        response = client.get("/wishlist?sort_by=price&order=desc&limit=2", headers=auth_headers)

        assert [i["card_id"] for i in response.json()] == ["sv3-125", "sv1-25"]

    def test_filters_are_queried(self, client, tables, auth_headers):
        wishlists = tables.create_table("wishlists", default_response=[])
        list_id = str(uuid4())

        client.get(f"/wishlist?wishlist_list_id={list_id}&priority=2", headers=auth_headers)

        wishlists.eq.assert_any_call("wishlist_list_id", list_id)
        wishlists.eq.assert_any_call("priority", 2)

    def test_check_card(self, client, tables, auth_headers, sample_user_id):
        row = wishlist_row(sample_user_id, "sv1-25", "Pikachu", 2.5)
        tables.create_table("wishlists", default_response=[row])

        data = client.get("/wishlist/check/sv1-25", headers=auth_headers).json()

        assert data["in_wishlist"] is True
        assert data["item"]["id"] == row["id"]

    def test_stats(self, client, tables, auth_headers, wishlist_rows):
        tables.create_table("wishlists", default_response=wishlist_rows)

        response = client.get("/wishlist/stats", headers=auth_headers)

        assert response.status_code == 200
        data = response.json()
        assert data["total_items"] == 4
        assert data["average_priority"] == 2.5
        assert data["total_max_budget"] == 28.0
        assert data["priority_breakdown"] == {"1": 1, "2": 2, "5": 1}
        assert data["condition_preferences"] == {"any": 4}
        assert data["recent_additions"][0]["card_id"] == "sv3-125"

    def test_stats_empty(self, client, tables, auth_headers):
        tables.create_table("wishlists", default_response=[])

        data = client.get("/wishlist/stats", headers=auth_headers).json()

        assert data["total_items"] == 0
        assert data["recent_additions"] == []

    def test_affordable_items(self, client, tables, auth_headers, wishlist_rows):
        """Charizard is over its own max price; Bulbasaur has no price."""
        tables.create_table("wishlists", default_response=wishlist_rows)

        response = client.get("/wishlist/affordable?budget=50", headers=auth_headers)

        assert [i["card_id"] for i in response.json()] == ["sv1-1", "sv1-25"]

    def test_price_alerts(self, client, tables, auth_headers, wishlist_rows):
        tables.create_table("wishlists", default_response=wishlist_rows)

        response = client.get("/wishlist/price-alerts", headers=auth_headers)

        assert [i["card_id"] for i in response.json()] == ["sv1-25"]


class TestChangeWishlist:
    """Tests for updating and removing wishlist items."""

    def test_update_item(self, client, tables, auth_headers, sample_user_id):
        row = wishlist_row(sample_user_id, "sv1-25", "Pikachu", 2.5, priority=4)
        wishlists = tables.create_table("wishlists", default_response=[row])

        response = client.patch(f"/wishlist/{row['id']}", json={"priority": 4}, headers=auth_headers)

        assert response.status_code == 200
        update = wishlists.update.call_args[0][0]
        assert update["priority"] == 4
        assert "max_price_eur" not in update

    def test_update_without_fields(self, client, auth_headers):
        response = client.patch(f"/wishlist/{uuid4()}", json={}, headers=auth_headers)

        assert response.status_code == 400
        assert response.json()["detail"] == "No fields to update"

    def test_remove_missing_item(self, client, tables, auth_headers):
        tables.create_table("wishlists", default_response=[])

        response = client.delete(f"/wishlist/{uuid4()}", headers=auth_headers)

        assert response.status_code == 404
        assert response.json()["detail"] == "Wishlist item not found"

    def test_remove_item(self, client, tables, auth_headers):
        item_id = str(uuid4())
        wishlists = tables.create_table("wishlists", default_response=[{"id": item_id}])

        response = client.delete(f"/wishlist/{item_id}", headers=auth_headers)

        assert response.status_code == 204
        wishlists.eq.assert_any_call("id", item_id)
