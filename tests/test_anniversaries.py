"""
Tests for anniversaries, countdowns and the app-level endpoints.
"""

from datetime import date, timedelta

import pytest

from keepsake.core.utils import db_now
from keepsake.db.models import Memory, Photo
from keepsake.services.anniversaries import shift_months


def create_anniversary(client, account, **fields) -> dict:
    payload = {"title": "Year one", "anniversary_date": "2023-06-01", "year_number": 1, **fields}
    response = client.post("/api/anniversaries?action=create", json=payload, headers=account.headers)
    assert response.status_code == 201, response.text
    return response.json()["data"]


def add_photo(db, owner_id: int, anniversary_id: int | None = None) -> int:
    photo = Photo(
        user_id=owner_id,
        filename="a.jpg",
        file_path="photos/a.jpg",
        photo_date=date(2023, 6, 1),
        anniversary_id=anniversary_id,
    )
    db.add(photo)
    db.commit()
    return photo.id


# =============================================================================
# Anniversaries
# =============================================================================


class TestAnniversaries:
    def test_create_and_list(self, client, db, couple, carol):
        alice, bob = couple
        anniversary = create_anniversary(client, alice)
        add_photo(db, bob.id, anniversary["id"])
        add_photo(db, carol.id, anniversary["id"])

        listed = client.get("/api/anniversaries", headers=alice.headers).json()["data"]

        assert len(listed) == 1
        # carol's photo is outside alice's visibility set
        assert listed[0]["photo_count"] == 1
        assert listed[0]["created_by_name"] == "Alice"

    def test_required_fields(self, client, alice):
        response = client.post(
            "/api/anniversaries?action=create",
            json={"title": "Year one"},
            headers=alice.headers,
        )

        assert response.status_code == 400
        assert response.json()["message"] == "Title, date, and year number are required"

    def test_single_includes_nearby_memories(self, client, db, alice):
        anniversary = create_anniversary(client, alice, anniversary_date="2023-03-31")
        photo_id = add_photo(db, alice.id, anniversary["id"])
        for day in (date(2023, 2, 28), date(2023, 4, 30), date(2023, 5, 1)):
            db.add(Memory(user_id=alice.id, title=day.isoformat(), memory_date=day))
        db.commit()

        data = client.get(
            f"/api/anniversaries?action=single&id={anniversary['id']}",
            headers=alice.headers,
        ).json()["data"]

        assert [p["id"] for p in data["photos"]] == [photo_id]
        assert [m["title"] for m in data["memories"]] == ["2023-02-28", "2023-04-30"]

    def test_single_missing(self, client, alice):
        response = client.get("/api/anniversaries?action=single&id=999", headers=alice.headers)
        assert response.status_code == 404

    def test_current_is_closest(self, client, alice):
        today = db_now().date()
        create_anniversary(client, alice, title="far", anniversary_date=(today - timedelta(days=200)).isoformat())
        create_anniversary(client, alice, title="near", anniversary_date=(today + timedelta(days=10)).isoformat())

        data = client.get("/api/anniversaries?action=current", headers=alice.headers).json()["data"]

        assert data["title"] == "near"
        assert data["days_until"] == 10

    def test_current_none(self, client, alice):
        body = client.get("/api/anniversaries?action=current", headers=alice.headers).json()

        assert body["data"] is None
        assert body["message"] == "No anniversary found"

    def test_any_user_can_update(self, client, alice, carol):
        anniversary = create_anniversary(client, alice)

        response = client.put(
            f"/api/anniversaries?id={anniversary['id']}",
            json={"description": "Lake house"},
            headers=carol.headers,
        )

        assert response.status_code == 200
        assert response.json()["data"]["description"] == "Lake house"

    def test_update_nothing(self, client, alice):
        anniversary = create_anniversary(client, alice)
        response = client.put(f"/api/anniversaries?id={anniversary['id']}", json={}, headers=alice.headers)

        assert response.status_code == 400
        assert response.json()["message"] == "No fields to update"

    def test_delete_unfiles_photos(self, client, db, alice):
        anniversary = create_anniversary(client, alice)
        photo_id = add_photo(db, alice.id, anniversary["id"])

        response = client.delete(f"/api/anniversaries?id={anniversary['id']}", headers=alice.headers)

        assert response.status_code == 200
        db.expire_all()
        photo = db.get(Photo, photo_id)
        assert photo is not None
        assert photo.anniversary_id is None


# =============================================================================
# Countdowns
# =============================================================================


class TestCountdowns:
    def test_lists_upcoming_only(self, client, couple):
        alice, bob = couple
        soon = (db_now() + timedelta(days=2)).isoformat()
        past = (db_now() - timedelta(days=2)).isoformat()
        for title, target in (("trip", soon), ("done", past)):
            response = client.post(
                "/api/anniversaries?action=countdown",
                json={"title": title, "target_date": target},
                headers=alice.headers,
            )
            assert response.status_code == 201

        data = client.get("/api/anniversaries?action=countdowns", headers=bob.headers).json()["data"]

        assert [c["title"] for c in data] == ["trip"]
        assert 0 < data[0]["seconds_until"] <= 2 * 24 * 3600
        assert data[0]["icon"] == "💚"
        assert data[0]["created_by_name"] == "Alice"

    def test_required_fields(self, client, alice):
        response = client.post("/api/anniversaries?action=countdown", json={"title": "x"}, headers=alice.headers)

        assert response.status_code == 400
        assert response.json()["message"] == "Title and target date are required"

    def test_only_creator_deletes(self, client, couple):
        alice, bob = couple
        countdown = client.post(
            "/api/anniversaries?action=countdown",
            json={"title": "trip", "target_date": (db_now() + timedelta(days=2)).isoformat()},
            headers=alice.headers,
        ).json()["data"]

        url = f"/api/anniversaries?action=countdown&id={countdown['id']}"
        assert client.delete(url, headers=bob.headers).status_code == 403
        assert client.delete(url, headers=alice.headers).status_code == 200


class TestShiftMonths:
    @pytest.mark.parametrize(
        "day,months,expected",
        [
            (date(2023, 3, 31), -1, date(2023, 2, 28)),
            (date(2024, 3, 31), -1, date(2024, 2, 29)),
            (date(2023, 12, 15), 1, date(2024, 1, 15)),
            (date(2023, 1, 31), 1, date(2023, 2, 28)),
            (date(2023, 1, 15), -1, date(2022, 12, 15)),
        ],
    )
    def test_clamps_to_month_end(self, day, months, expected):
        assert shift_months(day, months) == expected


# =============================================================================
# App
# =============================================================================


class TestApp:
    def test_health(self, client):
        assert client.get("/health").json() == {"status": "healthy", "service": "keepsake-api"}

    def test_unknown_route(self, client):
        response = client.get("/api/nowhere")

        assert response.status_code == 404
        assert response.json() == {"success": False, "message": "Not found"}

    def test_method_not_allowed(self, client, alice):
        response = client.patch("/api/photos", headers=alice.headers)

        assert response.status_code == 405
        assert response.json() == {"success": False, "message": "Method not allowed"}
