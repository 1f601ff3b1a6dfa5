"""Quota tracker: sliding window, boundary, admin bypass, unknown users."""

from venuepredict.quota import get_quota
from venuepredict.storage.picks import insert_pending_pick
from venuepredict.storage.trivia import insert_answer
from venuepredict.storage.users import create_user

HOUR_MS = 3600 * 1000
NOW = 1_900_000_000_000


def _picks(conn, user_id, times):
    for i, ts in enumerate(times):
        insert_pending_pick(conn, user_id, f"market-{i}", f"market-{i}-0", "Yes", 10, created_at=ts)


def test_unknown_or_missing_user_gets_full_quota(temp_db):
    for user_id in ("", "nobody"):
        q = get_quota(temp_db, user_id, "predictions", now_ms=NOW)
        assert (q.limit, q.used, q.remaining, q.window_seconds_remaining, q.is_admin_bypass) == (10, 0, 10, 0, False)


def test_usage_counts_only_trailing_hour(temp_db):
    create_user(temp_db, "ann", "v1", user_id="u1")
    _picks(temp_db, "u1", [NOW - HOUR_MS - 1, NOW - 10_000, NOW - 5_000])
    q = get_quota(temp_db, "u1", "predictions", now_ms=NOW)
    assert q.used == 2
    assert q.remaining == 8
    assert q.window_seconds_remaining == 0


def test_quota_boundary(temp_db):
    create_user(temp_db, "ann", "v1", user_id="u1")
    oldest = NOW - 40 * 60 * 1000
    _picks(temp_db, "u1", [oldest + i * 1000 for i in range(10)])

    full = get_quota(temp_db, "u1", "predictions", now_ms=NOW)
    assert full.used == 10
    assert full.remaining == 0
    assert full.window_seconds_remaining == 20 * 60

    # oldest event ages out: one slot frees up
    later = oldest + HOUR_MS + 1
    after = get_quota(temp_db, "u1", "predictions", now_ms=later)
    assert after.used == 9
    assert after.remaining == 1
    assert after.window_seconds_remaining == 0


def test_window_seconds_round_up(temp_db):
    create_user(temp_db, "ann", "v1", user_id="u1")
    _picks(temp_db, "u1", [NOW - HOUR_MS + 1500])
    q = get_quota(temp_db, "u1", "predictions", limit=1, now_ms=NOW)
    assert q.remaining == 0
    assert q.window_seconds_remaining == 2


def test_admin_bypass_ignores_usage(temp_db):
    create_user(temp_db, "boss", "v1", user_id="admin", is_admin=True)
    _picks(temp_db, "admin", [NOW - i * 1000 for i in range(12)])
    q = get_quota(temp_db, "admin", "predictions", now_ms=NOW)
    assert q.is_admin_bypass is True
    assert q.remaining == q.limit == 10


def test_trivia_and_predictions_tracked_separately(temp_db):
    create_user(temp_db, "ann", "v1", user_id="u1")
    for i in range(3):
        insert_answer(temp_db, "u1", f"q{i}", 0, True, 5, answered_at=NOW - i * 1000)
    assert get_quota(temp_db, "u1", "trivia", now_ms=NOW).used == 3
    assert get_quota(temp_db, "u1", "predictions", now_ms=NOW).used == 0
