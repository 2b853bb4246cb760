"""
Tests for partner resolution and the resource authorizers.
"""

from datetime import date, timedelta

import pytest
from sqlalchemy import select

from keepsake.auth.authorizers import LOVE_NOTES, MEMORIES, MESSAGES, PHOTOS
from keepsake.auth.visibility import resolve_visibility
from keepsake.core.errors import AuthorizationError, NotFoundError
from keepsake.core.utils import db_now
from keepsake.db.models import LoveNote, Memory, Message, Photo


def add_photo(db, owner_id: int) -> Photo:
    photo = Photo(user_id=owner_id, filename="x.jpg", file_path="photos/x.jpg", photo_date=date(2024, 5, 1))
    db.add(photo)
    db.commit()
    return photo


# =============================================================================
# Partner Resolver Tests
# =============================================================================


class TestResolveVisibility:
    def test_solo(self, db, alice):
        assert resolve_visibility(db, alice.id) == frozenset({alice.id})

    def test_linked(self, db, couple):
        alice, bob = couple
        assert resolve_visibility(db, alice.id) == frozenset({alice.id, bob.id})
        assert resolve_visibility(db, bob.id) == frozenset({alice.id, bob.id})

    def test_unrelated_user_unaffected(self, db, couple, carol):
        assert resolve_visibility(db, carol.id) == frozenset({carol.id})


# =============================================================================
# Owned Resource Tests
# =============================================================================


class TestOwnedResourcePolicy:
    def test_partner_can_read_not_write(self, db, couple):
        alice, bob = couple
        photo = add_photo(db, alice.id)

        assert PHOTOS.get_readable(db, photo.id, resolve_visibility(db, bob.id)) is photo
        with pytest.raises(AuthorizationError):
            PHOTOS.get_writable(db, photo.id, bob.ctx)

    def test_owner_can_write(self, db, alice):
        photo = add_photo(db, alice.id)
        assert PHOTOS.get_writable(db, photo.id, alice.ctx) is photo

    def test_stranger_gets_not_found(self, db, alice, carol):
        photo = add_photo(db, alice.id)
        with pytest.raises(NotFoundError):
            PHOTOS.get_readable(db, photo.id, resolve_visibility(db, carol.id))

    def test_missing_row_is_not_found_for_writes(self, db, alice):
        with pytest.raises(NotFoundError):
            MEMORIES.get_writable(db, 9999, alice.ctx)

    def test_scope_filters_listing(self, db, couple, carol):
        alice, bob = couple
        for owner in (alice.id, bob.id, carol.id):
            db.add(Memory(user_id=owner, title="t", memory_date=date(2024, 1, 1)))
        db.commit()

        rows = db.execute(MEMORIES.scope(select(Memory), resolve_visibility(db, alice.id))).scalars().all()
        assert {m.user_id for m in rows} == {alice.id, bob.id}


# =============================================================================
# Message & Love Note Tests
# =============================================================================


class TestMessagePolicy:
    def test_each_side_has_own_flag(self, db, couple, carol):
        alice, bob = couple
        message = Message(sender_id=alice.id, receiver_id=bob.id, content="hi")
        db.add(message)
        db.commit()

        assert MESSAGES.deletion_flag(alice.ctx, message) == "is_deleted_by_sender"
        assert MESSAGES.deletion_flag(bob.ctx, message) == "is_deleted_by_receiver"
        with pytest.raises(AuthorizationError):
            MESSAGES.deletion_flag(carol.ctx, message)


class TestLoveNotePolicy:
    def test_delivery_gate(self, db, couple):
        alice, bob = couple
        now = db_now()
        note = LoveNote(from_user_id=alice.id, to_user_id=bob.id, content="soon", deliver_at=now + timedelta(hours=1))
        db.add(note)
        db.commit()

        # Sender sees it, recipient doesn't until delivery
        assert LOVE_NOTES.can_read(alice.ctx, note, now)
        assert not LOVE_NOTES.can_read(bob.ctx, note, now)
        assert LOVE_NOTES.can_read(bob.ctx, note, now + timedelta(hours=2))

    def test_only_recipient_opens(self, db, couple):
        alice, bob = couple
        note = LoveNote(from_user_id=alice.id, to_user_id=bob.id, content="now", deliver_at=db_now())
        db.add(note)
        db.commit()
        later = db_now() + timedelta(seconds=1)

        assert LOVE_NOTES.get_openable(db, note.id, bob.ctx, later) is note
        with pytest.raises(AuthorizationError):
            LOVE_NOTES.get_openable(db, note.id, alice.ctx, later)
