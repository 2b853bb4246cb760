"""
Tests for the photo gallery: uploads, visibility and ownership.
"""

import io
from pathlib import Path

import pytest
from fastapi.testclient import TestClient
from PIL import Image

from keepsake.db.models import ActivityLog, Photo, User
from keepsake.storage.media import MediaStore


def png_bytes(width: int = 600, height: int = 400) -> bytes:
    buffer = io.BytesIO()
    Image.new("RGB", (width, height), color=(167, 243, 208)).save(buffer, format="PNG")
    return buffer.getvalue()


def upload(client, account, **form) -> dict:
    response = client.post(
        "/api/photos?action=upload",
        files={"photo": ("beach.png", png_bytes(), "image/png")},
        data=form,
        headers=account.headers,
    )
    assert response.status_code == 201, response.text
    return response.json()["data"]


# =============================================================================
# Upload
# =============================================================================


class TestUpload:
    def test_upload_stores_file_and_thumbnail(self, client, settings, alice):
        photo = upload(client, alice, caption="Beach day", photo_date="2024-06-01", tags="sea, sun")
        root = Path(settings.upload_dir)

        assert photo["user_id"] == alice.id
        assert photo["caption"] == "Beach day"
        assert photo["tags"] == ["sea", "sun"]
        assert (photo["width"], photo["height"]) == (600, 400)
        assert photo["media_type"] == "image"
        assert (root / photo["file_path"]).exists()
        with Image.open(root / photo["thumbnail_path"]) as thumb:
            assert thumb.size == (300, 200)

    def test_upload_logs_activity(self, client, db, alice):
        photo = upload(client, alice)
        entry = db.query(ActivityLog).filter_by(reference_id=photo["id"]).one()

        assert entry.activity_type == "photo_upload"
        assert entry.user_id == alice.id

    def test_no_file(self, client, alice):
        response = client.post("/api/photos?action=upload", data={"caption": "x"}, headers=alice.headers)

        assert response.status_code == 400
        assert response.json()["message"] == "No photo uploaded"

    def test_disallowed_extension(self, client, alice):
        response = client.post(
            "/api/photos?action=upload",
            files={"photo": ("notes.txt", b"hello", "text/plain")},
            headers=alice.headers,
        )

        assert response.status_code == 400
        assert response.json()["message"].startswith("Invalid file type")

    def test_renamed_text_file_rejected(self, client, alice):
        response = client.post(
            "/api/photos?action=upload",
            files={"photo": ("fake.jpg", b"definitely not a jpeg", "image/jpeg")},
            headers=alice.headers,
        )

        assert response.status_code == 400
        assert response.json()["message"] == "Invalid image file"

    def test_oversized_pixel_count_rejected(self, client, alice, monkeypatch):
        monkeypatch.setattr(Image, "MAX_IMAGE_PIXELS", 1000)
        response = client.post(
            "/api/photos?action=upload",
            files={"photo": ("huge.png", png_bytes(), "image/png")},
            headers=alice.headers,
        )

        assert response.status_code == 400
        assert response.json() == {"success": False, "message": "Invalid image file"}

    def test_unknown_anniversary(self, client, alice):
        response = client.post(
            "/api/photos?action=upload",
            files={"photo": ("beach.png", png_bytes(), "image/png")},
            data={"anniversary_id": "999"},
            headers=alice.headers,
        )
        assert response.status_code == 400


# =============================================================================
# Visibility & Ownership
# =============================================================================


class TestSharedGallery:
    def test_alice_and_bob_scenario(self, client, couple, carol):
        alice, bob = couple
        photo = upload(client, alice, caption="ours")

        # bob sees it in his list
        listing = client.get("/api/photos?action=list", headers=bob.headers).json()
        assert [p["id"] for p in listing["data"]] == [photo["id"]]
        assert listing["data"][0]["uploader_name"] == "Alice"

        # bob can't change or delete it
        response = client.put(
            f"/api/photos?action=update&id={photo['id']}",
            json={"caption": "mine now"},
            headers=bob.headers,
        )
        assert response.status_code == 403
        assert client.delete(f"/api/photos?id={photo['id']}", headers=bob.headers).status_code == 403

        # carol can't even see it
        response = client.get(f"/api/photos?action=single&id={photo['id']}", headers=carol.headers)
        assert response.status_code == 404
        assert client.get("/api/photos", headers=carol.headers).json()["data"] == []

    def test_owner_update(self, client, alice):
        photo = upload(client, alice)
        response = client.put(
            f"/api/photos?action=update&id={photo['id']}",
            json={"caption": "new", "photo_date": "2023-02-14", "tags": ["a", "b"]},
            headers=alice.headers,
        )
        data = response.json()["data"]

        assert response.status_code == 200
        assert data["caption"] == "new"
        assert data["photo_date"] == "2023-02-14"
        assert data["tags"] == ["a", "b"]

    def test_update_ignores_unknown_fields(self, client, alice, bob):
        photo = upload(client, alice)
        response = client.put(
            f"/api/photos?action=update&id={photo['id']}",
            json={"user_id": bob.id},
            headers=alice.headers,
        )

        assert response.status_code == 400
        assert response.json()["message"] == "No fields to update"

    def test_update_bad_date(self, client, alice):
        photo = upload(client, alice)
        response = client.put(
            f"/api/photos?action=update&id={photo['id']}",
            json={"photo_date": "not a date"},
            headers=alice.headers,
        )
        assert response.status_code == 400

    def test_owner_delete_removes_files(self, client, db, settings, alice):
        photo = upload(client, alice)
        root = Path(settings.upload_dir)

        response = client.delete(f"/api/photos?id={photo['id']}", headers=alice.headers)

        assert response.status_code == 200
        assert db.get(Photo, photo["id"]) is None
        assert not (root / photo["file_path"]).exists()
        assert not (root / photo["thumbnail_path"]).exists()

    def test_file_removal_failure_keeps_envelope(self, app, client, db, alice, monkeypatch):
        photo = upload(client, alice)

        def broken_delete(self, file_path):
            raise OSError("disk gone")

        monkeypatch.setattr(MediaStore, "delete", broken_delete)
        # no lifespan here: the outer client already created the schema
        lenient = TestClient(app, raise_server_exceptions=False)
        response = lenient.delete(f"/api/photos?id={photo['id']}", headers=alice.headers)

        assert response.status_code == 500
        assert response.json() == {"success": False, "message": "Internal server error"}
        assert db.get(Photo, photo["id"]) is None

    def test_delete_missing(self, client, alice):
        assert client.delete("/api/photos?id=12345", headers=alice.headers).status_code == 404

    def test_missing_id(self, client, alice):
        response = client.delete("/api/photos", headers=alice.headers)

        assert response.status_code == 400
        assert response.json()["message"] == "Photo ID required"

    def test_unlinked_partner_loses_access(self, client, db, couple):
        alice, bob = couple
        photo = upload(client, alice)

        for account in (alice, bob):
            db.get(User, account.id).partner_id = None
        db.commit()

        response = client.get(f"/api/photos?action=single&id={photo['id']}", headers=bob.headers)
        assert response.status_code == 404


# =============================================================================
# Listing
# =============================================================================


class TestListing:
    def test_pagination(self, client, alice):
        for day in range(1, 4):
            upload(client, alice, photo_date=f"2024-03-0{day}")

        body = client.get("/api/photos?page=2&limit=2", headers=alice.headers).json()

        assert body["pagination"] == {"total": 3, "page": 2, "limit": 2, "pages": 2}
        assert [p["photo_date"] for p in body["data"]] == ["2024-03-01"]

    @pytest.mark.parametrize("query,expected", [("limit=500", 50), ("limit=0", 1), ("page=-3", 20)])
    def test_paging_is_clamped(self, client, alice, query, expected):
        body = client.get(f"/api/photos?{query}", headers=alice.headers).json()

        assert body["pagination"]["limit"] == expected
        assert body["pagination"]["page"] >= 1

    def test_year_and_month_filters(self, client, alice):
        upload(client, alice, photo_date="2023-07-04")
        upload(client, alice, photo_date="2024-07-04")
        upload(client, alice, photo_date="2024-08-01")

        body = client.get("/api/photos?year=2024&month=7", headers=alice.headers).json()
        assert [p["photo_date"] for p in body["data"]] == ["2024-07-04"]

    def test_by_date_groups_months(self, client, alice):
        upload(client, alice, photo_date="2024-07-04")
        upload(client, alice, photo_date="2024-07-20")
        upload(client, alice, photo_date="2023-01-01")

        data = client.get("/api/photos?action=by-date", headers=alice.headers).json()["data"]
        assert data == [
            {"month_year": "2024-07", "month_label": "July 2024", "count": 2},
            {"month_year": "2023-01", "month_label": "January 2023", "count": 1},
        ]

    def test_timeline(self, client, alice):
        upload(client, alice, photo_date="2024-02-01")
        upload(client, alice, photo_date="2024-09-01")

        data = client.get("/api/photos?action=timeline", headers=alice.headers).json()["data"]
        assert data == [{"year": 2024, "count": 2, "first_photo": "2024-02-01", "last_photo": "2024-09-01"}]

    def test_stats(self, client, couple):
        alice, bob = couple
        upload(client, alice)
        upload(client, bob)
        client.post("/api/messages?action=send", json={"content": "hi"}, headers=alice.headers)

        stats = client.get("/api/photos?action=stats", headers=alice.headers).json()["data"]
        assert stats == {"total_photos": 2, "favorites": 0, "memories": 0, "messages": 1}


# =============================================================================
# Favorites, Reactions, Comments
# =============================================================================


class TestInteractions:
    def test_partner_toggles_favorite(self, client, couple):
        alice, bob = couple
        photo = upload(client, alice)

        first = client.put(f"/api/photos?action=favorite&id={photo['id']}", headers=bob.headers).json()
        assert first["data"] == {"is_favorite": True}

        favorites = client.get("/api/photos?action=favorites", headers=alice.headers).json()["data"]
        assert [p["id"] for p in favorites] == [photo["id"]]

        second = client.put(f"/api/photos?action=favorite&id={photo['id']}", headers=bob.headers).json()
        assert second["data"] == {"is_favorite": False}

    def test_reaction_upsert(self, client, couple):
        alice, bob = couple
        photo = upload(client, alice)

        for reaction in ("love", "wow"):
            response = client.post(
                "/api/photos?action=reaction",
                json={"photo_id": photo["id"], "reaction_type": reaction},
                headers=bob.headers,
            )
            assert response.status_code == 200

        single = client.get(f"/api/photos?action=single&id={photo['id']}", headers=bob.headers).json()["data"]
        assert [r["reaction_type"] for r in single["reactions"]] == ["wow"]

        listed = client.get("/api/photos", headers=bob.headers).json()["data"][0]
        assert listed["reaction_count"] == 1
        assert listed["my_reaction"] == "wow"

    def test_comment(self, client, couple):
        alice, bob = couple
        photo = upload(client, alice)

        response = client.post(
            "/api/photos?action=comment",
            json={"photo_id": photo["id"], "content": "Love this"},
            headers=bob.headers,
        )

        assert response.status_code == 201
        assert response.json()["data"]["display_name"] == "Bob"

        single = client.get(f"/api/photos?action=single&id={photo['id']}", headers=alice.headers).json()["data"]
        assert [c["content"] for c in single["comments"]] == ["Love this"]

    def test_stranger_cannot_react(self, client, alice, carol):
        photo = upload(client, alice)
        response = client.post(
            "/api/photos?action=reaction",
            json={"photo_id": photo["id"], "reaction_type": "love"},
            headers=carol.headers,
        )
        assert response.status_code == 404

    def test_reaction_requires_fields(self, client, alice):
        response = client.post("/api/photos?action=reaction", json={"photo_id": 1}, headers=alice.headers)

        assert response.status_code == 400
        assert response.json()["message"] == "Photo ID and reaction type required"
