from __future__ import annotations

import dataclasses
from datetime import timedelta

from chat_sync.application.policies.optimistic_match import find_optimistic_match
from chat_sync.application.policies.reconnect import ExponentialBackoff, NoReconnect, build_policy
from tests.conftest import make_message

WINDOW = timedelta(seconds=60)


def _pending(content: str = "hi", *, sender_id: int = 42, seconds: float = 0):
    return dataclasses.replace(
        make_message(None, sender_id=sender_id, content=content, seconds=seconds),
        local_ref=f"local-{content}-{seconds}",
    )


def test_no_reconnect_never_schedules():
    policy = NoReconnect()
    assert policy.next_delay() is None
    policy.reset()
    assert policy.next_delay() is None


def test_backoff_doubles_and_caps():
    policy = ExponentialBackoff(base_delay=1, max_delay=5, max_attempts=5)

    delays = [policy.next_delay() for _ in range(6)]

    assert delays == [1, 2, 4, 5, 5, None]
    assert policy.attempts == 5


def test_backoff_reset_restores_budget():
    policy = ExponentialBackoff(base_delay=1, max_delay=30, max_attempts=1)
    assert policy.next_delay() == 1
    assert policy.next_delay() is None

    policy.reset()

    assert policy.next_delay() == 1


def test_build_policy():
    assert isinstance(build_policy("none"), NoReconnect)
    backoff = build_policy("backoff", base_delay=0.5, max_delay=2, max_attempts=3)
    assert isinstance(backoff, ExponentialBackoff)
    assert backoff.next_delay() == 0.5


def test_match_requires_same_sender_and_content():
    pending = [_pending("hi"), _pending("hi", sender_id=7), _pending("hello")]

    match = find_optimistic_match(pending, make_message(1, sender_id=42, content="hi", seconds=3), WINDOW)

    assert match is pending[0]


def test_match_picks_closest_in_time():
    early, late = _pending("hi", seconds=0), _pending("hi", seconds=30)

    match = find_optimistic_match([early, late], make_message(1, sender_id=42, content="hi", seconds=28), WINDOW)

    assert match is late


def test_no_match_outside_window():
    pending = [_pending("hi", seconds=0)]

    assert find_optimistic_match(pending, make_message(1, sender_id=42, content="hi", seconds=61), WINDOW) is None


def test_confirmed_messages_are_not_candidates():
    confirmed_already = make_message(5, sender_id=42, content="hi")

    assert find_optimistic_match([confirmed_already], make_message(6, sender_id=42, content="hi"), WINDOW) is None


def test_missing_timestamp_counts_as_zero_gap():
    pending = [dataclasses.replace(_pending("hi"), created_at=None)]

    match = find_optimistic_match(pending, make_message(1, sender_id=42, content="hi", seconds=500), WINDOW)

    assert match is pending[0]
