from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest

from chat_sync.infrastructure.auth.session_store import InMemorySessionStore
from chat_sync.infrastructure.auth.token_claims import is_expired, read_claims, subject_id
from tests.conftest import drain, make_token


def test_read_claims_without_signature_check():
    claims = read_claims(make_token(7))
    assert claims["sub"] == "7"


def test_opaque_token_has_no_claims():
    assert read_claims("opaque-session-id") is None
    assert is_expired("opaque-session-id") is False
    assert subject_id("opaque-session-id") is None


def test_is_expired():
    assert is_expired(make_token(expires_in=timedelta(minutes=-1))) is True
    assert is_expired(make_token(expires_in=timedelta(minutes=5))) is False
    assert is_expired(make_token(expires_in=None)) is False


def test_is_expired_respects_now_and_leeway():
    token = make_token(expires_in=timedelta(minutes=5))
    later = datetime.now(timezone.utc) + timedelta(minutes=10)

    assert is_expired(token, now=later) is True
    assert is_expired(token, now=later, leeway=600) is False


def test_subject_id():
    assert subject_id(make_token(42)) == 42


@pytest.mark.asyncio
async def test_session_store_derives_user_id_from_token():
    store = InMemorySessionStore(make_token(42), nickname="alice")

    assert await store.user_id() == 42
    assert await store.nickname() == "alice"
    assert (await store.token()).count(".") == 2


@pytest.mark.asyncio
async def test_session_store_publishes_changes():
    store = InMemorySessionStore()
    sub = store.changes.subscribe()
    assert await store.token() is None

    store.save("opaque", user_id=5)
    store.update_nickname("zed")
    store.clear()

    snapshots = drain(sub)
    assert [(s.token, s.user_id, s.nickname) for s in snapshots] == [
        ("opaque", 5, None),
        ("opaque", 5, "zed"),
        (None, None, None),
    ]
    assert await store.user_id() is None
