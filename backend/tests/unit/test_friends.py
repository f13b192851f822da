"""Tests for friend requests and friendships."""
import pytest
from uuid import uuid4


@pytest.fixture
def pending_request(sample_user_id, sample_friend_id):
    """A request from the friend, waiting for the sample user."""
    return {
        "id": str(uuid4()),
        "requester_id": sample_friend_id,
        "addressee_id": sample_user_id,
        "status": "pending",
        "created_at": "2024-03-01T10:00:00+00:00",
    }


class TestFriendRequests:
    """Tests for sending and answering requests."""

    def test_send_request(self, client, tables, auth_headers, sample_user_id, sample_friend_id):
        row = {"id": str(uuid4()), "requester_id": sample_user_id, "addressee_id": sample_friend_id,
               "status": "pending"}
        friendships = tables.create_table("friendships", responses=[[], [row]])

        response = client.post("/friends/requests", json={"addressee_id": sample_friend_id}, headers=auth_headers)

        assert response.status_code == 201
        assert response.json()["status"] == "pending"
        assert friendships.insert.call_args[0][0] == {
            "requester_id": sample_user_id,
            "addressee_id": sample_friend_id,
            "status": "pending",
        }

    def test_cannot_befriend_yourself(self, client, auth_headers, sample_user_id):
        response = client.post("/friends/requests", json={"addressee_id": sample_user_id}, headers=auth_headers)

        assert response.status_code == 400

    @pytest.mark.parametrize("status,detail", [
        ("pending", "Friend request already pending"),
        ("accepted", "Already friends"),
    ])
    def test_existing_friendship(self, client, tables, auth_headers, pending_request, sample_friend_id,
                                 status, detail):
        friendships = tables.create_table("friendships", default_response=[{**pending_request, "status": status}])

        response = client.post("/friends/requests", json={"addressee_id": sample_friend_id}, headers=auth_headers)

        assert response.status_code == 409
        assert response.json()["detail"] == detail
        friendships.insert.assert_not_called()

    def test_accept_request(self, client, tables, auth_headers, pending_request):
        friendships = tables.create_table("friendships", responses=[
            [pending_request], [{**pending_request, "status": "accepted"}],
        ])

        response = client.post(f"/friends/requests/{pending_request['id']}/accept", headers=auth_headers)

        assert response.status_code == 200
        assert response.json()["status"] == "accepted"
        friendships.eq.assert_any_call("status", "pending")

    def test_accept_request_answered_elsewhere(self, client, tables, auth_headers, pending_request):
        tables.create_table("friendships", responses=[[pending_request], []])

        response = client.post(f"/friends/requests/{pending_request['id']}/accept", headers=auth_headers)

        assert response.status_code == 409

    def test_only_addressee_finds_request(self, client, tables, pending_request, sample_friend_id):
        friendships = tables.create_table("friendships", default_response=[])

        response = client.post(
            f"/friends/requests/{pending_request['id']}/accept",
            headers={"X-User-Id": sample_friend_id},
        )

        assert response.status_code == 404
        friendships.eq.assert_any_call("addressee_id", sample_friend_id)

    def test_decline_request(self, client, tables, auth_headers, pending_request):
        friendships = tables.create_table("friendships", default_response=[pending_request])

        response = client.post(f"/friends/requests/{pending_request['id']}/decline", headers=auth_headers)

        assert response.status_code == 204
        friendships.delete.assert_called_once()

    def test_pending_requests(self, client, tables, auth_headers, pending_request, sample_friend_id):
        tables.create_table("friendships", default_response=[pending_request])
        tables.create_table("profiles", default_response=[
            {"id": sample_friend_id, "username": "misty", "display_name": "Misty", "avatar_url": None},
        ])

        response = client.get("/friends/requests", headers=auth_headers)

        assert response.status_code == 200
        assert response.json()[0]["requester"]["username"] == "misty"


class TestFriendships:
    """Tests for friend lists, status and removal."""

    @pytest.mark.parametrize("rows,expected", [
        ([], "none"),
        ([{"requester_id": "11111111-1111-4111-8111-111111111111", "addressee_id": "22222222-2222-4222-8222-222222222222", "status": "pending"}], "pending_sent"),
        ([{"requester_id": "22222222-2222-4222-8222-222222222222", "addressee_id": "11111111-1111-4111-8111-111111111111", "status": "pending"}], "pending_received"),
        ([{"requester_id": "22222222-2222-4222-8222-222222222222", "addressee_id": "11111111-1111-4111-8111-111111111111", "status": "accepted"}], "accepted"),
    ])
    def test_status(self, client, tables, auth_headers, rows, expected):
        tables.create_table("friendships", default_response=rows)

        response = client.get("/friends/status/22222222-2222-4222-8222-222222222222", headers=auth_headers)

        assert response.status_code == 200
        assert response.json() == {"user_id": "11111111-1111-4111-8111-111111111111", "other_user_id": "22222222-2222-4222-8222-222222222222", "status": expected}

    def test_status_needs_a_user_id(self, client, mock_supabase_client, auth_headers):
        response = client.get("/friends/status/x),and(status.eq.accepted", headers=auth_headers)

        assert response.status_code == 422
        mock_supabase_client.table.assert_not_called()

    def test_list_friends(self, client, tables, auth_headers, sample_user_id):
        friendship_id = str(uuid4())
        tables.create_table("friendships", default_response=[
            {"id": friendship_id, "requester_id": "friend-b", "addressee_id": sample_user_id,
             "created_at": "2024-03-01T10:00:00+00:00"},
        ])
        tables.create_table("profiles", default_response=[])

        response = client.get("/friends", headers=auth_headers)

        assert response.status_code == 200
        friend = response.json()[0]
        assert friend["friendship_id"] == friendship_id
        assert friend["friend"]["id"] == "friend-b"

    def test_remove_unknown_friendship(self, client, tables, auth_headers):
        friendships = tables.create_table("friendships", default_response=[])

        response = client.delete(f"/friends/{uuid4()}", headers=auth_headers)

        assert response.status_code == 404
        friendships.delete.assert_not_called()

    def test_remove_friend(self, client, tables, auth_headers, pending_request):
        friendships = tables.create_table("friendships", default_response=[{**pending_request, "status": "accepted"}])

        response = client.delete(f"/friends/{pending_request['id']}", headers=auth_headers)

        assert response.status_code == 204
        friendships.delete.assert_called_once()
