from unittest.mock import patch

import pytest


@pytest.fixture(autouse=True)
def _no_events():
    with patch("app.services.resident.publish_event"):
        yield


class TestResidentEndpoints:
    def test_add_and_list(self, client, mailroom):
        resp = client.post(
            f"/mailrooms/{mailroom.id}/residents",
            json={"first_name": "Alan", "last_name": "Turing", "student_id": "S42"},
        )
        assert resp.status_code == 201
        listed = client.get(f"/mailrooms/{mailroom.id}/residents?search=tur")
        assert listed.json()["count"] == 1

    def test_add_duplicate(self, client, mailroom, resident):
        resp = client.post(
            f"/mailrooms/{mailroom.id}/residents",
            json={"first_name": "A", "last_name": "B", "student_id": "S1001"},
        )
        assert resp.status_code == 409

    def test_remove(self, client, mailroom, resident):
        resp = client.delete(f"/mailrooms/{mailroom.id}/residents/{resident.id}")
        assert resp.status_code == 204
        listed = client.get(f"/mailrooms/{mailroom.id}/residents")
        assert listed.json()["count"] == 0
        removed = client.get(
            f"/mailrooms/{mailroom.id}/residents?status=REMOVED_INDIVIDUAL"
        )
        assert removed.json()["count"] == 1

    def test_roster_sync(self, client, mailroom, resident):
        resp = client.post(
            f"/mailrooms/{mailroom.id}/residents/roster",
            json={
                "residents": [
                    {
                        "first_name": "Ada",
                        "last_name": "Lovelace",
                        "resident_id": "S1001",
                        "email": "ada@test.edu",
                    },
                    {"first_name": "Bob", "last_name": "Ross", "resident_id": "S7"},
                ]
            },
        )
        assert resp.status_code == 200
        body = resp.json()
        assert body["message"] == "Roster processed successfully"
        assert body["counts"] == {
            "total": 2,
            "new": 1,
            "unchanged": 1,
            "updated": 0,
            "removed": 0,
        }

    def test_roster_missing_field(self, client, mailroom):
        resp = client.post(
            f"/mailrooms/{mailroom.id}/residents/roster",
            json={"residents": [{"first_name": "Bob", "resident_id": "S7"}]},
        )
        assert resp.status_code == 400
        assert "Problematic entry" in resp.json()["message"]

    def test_roster_empty(self, client, mailroom):
        resp = client.post(
            f"/mailrooms/{mailroom.id}/residents/roster", json={"residents": []}
        )
        assert resp.status_code == 422
