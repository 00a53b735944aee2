"""
Tests for the access request endpoints.

Tests:
- Submission with the server-side geofence check
- Latest-request lookup polled by the waiting view
- Admin listing and decisions
- Face-verified approval
"""

import math

import pytest

from core.geofence import EARTH_RADIUS_KM

BASE = "/api/v1/access-requests"


def submit(client, payload, **overrides):
    return client.post(BASE, json={**payload, **overrides})


class TestSubmit:
    """Test POST /access-requests."""

    def test_submit_at_target(self, client, access_request_payload):
        response = submit(client, access_request_payload)

        assert response.status_code == 201
        data = response.json()
        assert data["status"] == "pending"
        assert data["name"] == "Jane Doe"
        assert data["device_id"] == access_request_payload["device_id"]
        assert data["approved_at"] is None
        assert data["photo_url"] is None
        assert data["created_at"].endswith("+00:00")

    def test_name_is_trimmed(self, client, access_request_payload):
        response = submit(client, access_request_payload, name="  Jane Doe  ")

        assert response.json()["name"] == "Jane Doe"

    def test_just_inside_radius(self, client, access_request_payload):
        offset = math.degrees(0.99 / EARTH_RADIUS_KM)
        response = submit(
            client,
            access_request_payload,
            location_lat=access_request_payload["location_lat"] + offset,
        )

        assert response.status_code == 201

    def test_outside_geofence_denied(self, client, access_request_payload):
        offset = math.degrees(5 / EARTH_RADIUS_KM)
        response = submit(
            client,
            access_request_payload,
            location_lat=access_request_payload["location_lat"] + offset,
        )

        assert response.status_code == 403
        assert response.json()["error"]["message"] == "Access Denied"

    def test_denied_request_not_stored(self, client, access_request_payload):
        submit(client, access_request_payload, location_lat=0.0, location_lng=0.0)

        response = client.get(
            f"{BASE}/latest", params={"device_id": access_request_payload["device_id"]}
        )
        assert response.status_code == 404

    @pytest.mark.parametrize("overrides", [
        {"name": ""},
        {"name": "   "},
        {"location_lat": 91},
        {"location_lng": -181},
        {"device_id": ""},
    ])
    def test_invalid_payload(self, client, access_request_payload, overrides):
        response = submit(client, access_request_payload, **overrides)

        assert response.status_code == 422

    def test_status_cannot_be_chosen_by_client(self, client, access_request_payload):
        response = submit(client, access_request_payload, status="approved")

        assert response.status_code == 201
        assert response.json()["status"] == "pending"


class TestLatest:
    """Test GET /access-requests/latest."""

    def test_no_request_for_device(self, client):
        response = client.get(f"{BASE}/latest", params={"device_id": "device_unknown"})

        assert response.status_code == 404

    def test_newest_request_wins(self, client, access_request_payload, admin_headers):
        first = submit(client, access_request_payload).json()
        client.patch(f"{BASE}/{first['id']}", json={"status": "rejected"}, headers=admin_headers)
        second = submit(client, access_request_payload).json()

        response = client.get(
            f"{BASE}/latest", params={"device_id": access_request_payload["device_id"]}
        )

        assert response.status_code == 200
        assert response.json()["id"] == second["id"]
        assert response.json()["status"] == "pending"

    def test_other_devices_not_returned(self, client, access_request_payload):
        submit(client, access_request_payload)

        response = client.get(f"{BASE}/latest", params={"device_id": "device_other"})

        assert response.status_code == 404


class TestAdminReview:
    """Test listing and deciding requests."""

    def test_list_requires_authentication(self, client):
        assert client.get(BASE).status_code == 401

    def test_list_requires_admin(self, client, user_headers):
        response = client.get(BASE, headers=user_headers)

        assert response.status_code == 403
        assert response.json()["error"]["message"] == "Unauthorized: Admin access required"

    def test_list_filtered_newest_first(self, client, access_request_payload, admin_headers):
        first = submit(client, access_request_payload, device_id="device_one").json()
        second = submit(client, access_request_payload, device_id="device_two").json()
        client.patch(f"{BASE}/{first['id']}", json={"status": "approved"}, headers=admin_headers)

        pending = client.get(BASE, params={"status": "pending"}, headers=admin_headers).json()
        everything = client.get(BASE, headers=admin_headers).json()

        assert [r["id"] for r in pending] == [second["id"]]
        assert [r["id"] for r in everything] == [second["id"], first["id"]]

    def test_approve_sets_approved_at(self, client, access_request_payload, admin_headers):
        created = submit(client, access_request_payload).json()

        response = client.patch(
            f"{BASE}/{created['id']}", json={"status": "approved"}, headers=admin_headers
        )

        assert response.status_code == 200
        assert response.json()["status"] == "approved"
        assert response.json()["approved_at"] is not None

    def test_reject_leaves_approved_at_empty(self, client, access_request_payload, admin_headers):
        created = submit(client, access_request_payload).json()

        response = client.patch(
            f"{BASE}/{created['id']}", json={"status": "rejected"}, headers=admin_headers
        )

        assert response.json()["status"] == "rejected"
        assert response.json()["approved_at"] is None

    def test_decision_is_final(self, client, access_request_payload, admin_headers):
        created = submit(client, access_request_payload).json()
        client.patch(f"{BASE}/{created['id']}", json={"status": "approved"}, headers=admin_headers)

        response = client.patch(
            f"{BASE}/{created['id']}", json={"status": "rejected"}, headers=admin_headers
        )

        assert response.status_code == 409
        assert response.json()["error"]["message"] == "Access request is already approved"

    def test_pending_is_not_a_decision(self, client, access_request_payload, admin_headers):
        created = submit(client, access_request_payload).json()

        response = client.patch(
            f"{BASE}/{created['id']}", json={"status": "pending"}, headers=admin_headers
        )

        assert response.status_code == 422

    def test_unknown_request(self, client, admin_headers):
        response = client.patch(
            f"{BASE}/missing", json={"status": "approved"}, headers=admin_headers
        )

        assert response.status_code == 404

    def test_decision_requires_admin(self, client, access_request_payload, user_headers):
        created = submit(client, access_request_payload).json()

        response = client.patch(
            f"{BASE}/{created['id']}", json={"status": "approved"}, headers=user_headers
        )

        assert response.status_code == 403


class TestFaceApproval:
    """Test POST /access-requests/{id}/face-approve."""

    def test_requires_reference_photo(self, client, access_request_payload, admin_headers):
        created = submit(client, access_request_payload).json()

        response = client.post(
            f"{BASE}/{created['id']}/face-approve",
            files={"photo": ("probe.jpg", b"\xff\xd8\xff\xe0", "image/jpeg")},
            headers=admin_headers,
        )

        assert response.status_code == 400
        assert response.json()["error"]["message"] == "Please upload your face photo first"

    def test_requires_admin(self, client, access_request_payload, user_headers):
        created = submit(client, access_request_payload).json()

        response = client.post(
            f"{BASE}/{created['id']}/face-approve",
            files={"photo": ("probe.jpg", b"\xff\xd8\xff\xe0", "image/jpeg")},
            headers=user_headers,
        )

        assert response.status_code == 403
