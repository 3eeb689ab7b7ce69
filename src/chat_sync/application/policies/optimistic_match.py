from __future__ import annotations

from datetime import timedelta

from chat_sync.domain.entities.message import Message


def find_optimistic_match(
    pending: list[Message],
    confirmed: Message,
    window: timedelta,
) -> Message | None:
    """Return the optimistic copy that ``confirmed`` most likely replaces.

    The wire protocol carries no client-generated correlation id, so this is a
    best-effort guess: same sender, identical content, and creation times no
    further apart than ``window``. The closest candidate in time wins.
    """
    best: Message | None = None
    best_gap: timedelta | None = None
    for candidate in pending:
        if not candidate.is_pending:
            continue
        if candidate.sender_id != confirmed.sender_id or candidate.content != confirmed.content:
            continue
        if candidate.created_at is None or confirmed.created_at is None:
            gap = timedelta(0)
        else:
            gap = abs(confirmed.created_at - candidate.created_at)
        if gap > window:
            continue
        if best_gap is None or gap < best_gap:
            best, best_gap = candidate, gap
    return best
