"""
Join request API tests
"""
from conftest import HOTEL_ID, PROFILE_ID


def test_join_and_approve(client, auth_headers, profile_headers, notifier):
    """A profile asks to join, a manager approves with a role"""
    response = client.post(f"/hotels/{HOTEL_ID}/join-requests", headers=profile_headers)
    assert response.status_code == 201
    request = response.json()
    assert request["profile_id"] == PROFILE_ID
    assert request["status"] == "pending"
    notifier.notify_join_request.assert_called_once_with(request["id"])

    pending = client.get(f"/hotels/{HOTEL_ID}/join-requests", headers=auth_headers).json()
    assert [r["id"] for r in pending] == [request["id"]]

    response = client.post(
        f"/join-requests/{request['id']}/approve", json={"role": "front_desk"}, headers=auth_headers
    )
    assert response.status_code == 200
    outcome = response.json()
    assert outcome["request"]["status"] == "accepted"
    assert outcome["membership"]["status"] == "approved"
    assert outcome["membership"]["role"] == "front_desk"

    employees = client.get(f"/hotels/{HOTEL_ID}/employees", headers=auth_headers).json()
    assert [e["profile_id"] for e in employees] == [PROFILE_ID]


def test_duplicate_request_is_409(client, profile_headers):
    client.post(f"/hotels/{HOTEL_ID}/join-requests", headers=profile_headers)
    response = client.post(f"/hotels/{HOTEL_ID}/join-requests", headers=profile_headers)
    assert response.status_code == 409
    assert response.json()["error"] == "duplicate_request"


def test_reject_then_approve_is_409(client, auth_headers, profile_headers):
    request = client.post(f"/hotels/{HOTEL_ID}/join-requests", headers=profile_headers).json()

    response = client.post(f"/join-requests/{request['id']}/reject", headers=auth_headers)
    assert response.json()["membership"]["status"] == "rejected"

    response = client.post(
        f"/join-requests/{request['id']}/approve", json={"role": "manager"}, headers=auth_headers
    )
    assert response.status_code == 409
    assert response.json()["error"] == "invalid_state_transition"


def test_unknown_role_is_422(client, auth_headers, profile_headers):
    request = client.post(f"/hotels/{HOTEL_ID}/join-requests", headers=profile_headers).json()
    response = client.post(
        f"/join-requests/{request['id']}/approve", json={"role": "owner"}, headers=auth_headers
    )
    assert response.status_code == 422


def test_unknown_request_is_404(client, auth_headers):
    response = client.post("/join-requests/missing/reject", headers=auth_headers)
    assert response.status_code == 404
    assert response.json()["error"] == "request_not_found"


def test_join_requires_token(client):
    assert client.post(f"/hotels/{HOTEL_ID}/join-requests").status_code == 401
