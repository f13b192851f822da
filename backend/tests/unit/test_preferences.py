"""Tests for price and currency preferences."""


class TestPreferences:
    """Tests for /preferences."""

    def test_defaults_without_profile(self, client, tables, auth_headers):
        tables.create_table("profiles", default_response=[])

        response = client.get("/preferences", headers=auth_headers)

        assert response.status_code == 200
        assert response.json() == {"preferred_currency": "EUR", "price_source": "cardmarket", "preferred_language": "en"}

    def test_stored_preferences(self, client, tables, auth_headers):
        tables.create_table("profiles", default_response=[
            {"preferred_currency": "SEK", "price_source": "tcgplayer", "preferred_language": None},
        ])

        data = client.get("/preferences", headers=auth_headers).json()

        assert data == {"preferred_currency": "SEK", "price_source": "tcgplayer", "preferred_language": "en"}

    def test_update_normalizes_currency(self, client, tables, auth_headers, sample_user_id):
        profiles = tables.create_table("profiles", default_response=[
            {"preferred_currency": "USD", "price_source": "cardmarket"},
        ])

        response = client.patch("/preferences", json={"preferred_currency": "usd"}, headers=auth_headers)

        assert response.status_code == 200
        assert response.json()["preferred_currency"] == "USD"
        profiles.update.assert_called_once_with({"preferred_currency": "USD"})
        profiles.eq.assert_any_call("id", sample_user_id)

    def test_update_unknown_currency(self, client, tables, auth_headers):
        profiles = tables.create_table("profiles")

        response = client.patch("/preferences", json={"preferred_currency": "XYZ"}, headers=auth_headers)

        assert response.status_code == 400
        profiles.update.assert_not_called()

    def test_update_unknown_source(self, client, auth_headers):
        response = client.patch("/preferences", json={"price_source": "ebay"}, headers=auth_headers)

        assert response.status_code == 422

    def test_empty_update_returns_current(self, client, tables, auth_headers):
        profiles = tables.create_table("profiles", default_response=[])

        response = client.patch("/preferences", json={}, headers=auth_headers)

        assert response.status_code == 200
        profiles.update.assert_not_called()

    def test_update_missing_profile(self, client, tables, auth_headers):
        tables.create_table("profiles", default_response=[])

        response = client.patch("/preferences", json={"price_source": "tcgplayer"}, headers=auth_headers)

        assert response.status_code == 404
        assert response.json()["detail"] == "Profile not found"
