"""Auto-settlement from closed markets at the source."""

import asyncio
import threading

from venuepredict.models import Prediction, PredictionOutcome
from venuepredict.settlement.auto import auto_settle, infer_winner
from venuepredict.settlement.engine import SettlementEngine
from venuepredict.storage.picks import get_pick, insert_pending_pick
from venuepredict.storage.users import create_user, get_points
from conftest import FakeGamma, raw_market


def _market(*probabilities):
    return Prediction(
        id="X",
        question="?",
        closes_at="2030-01-01T00:00:00Z",
        outcomes=[PredictionOutcome(id=f"X-{i}", title=str(i), probability=p) for i, p in enumerate(probabilities)],
    )


def test_infer_winner_threshold():
    assert infer_winner(_market(99.5, 0.5)) == "X-0"
    assert infer_winner(_market(0.1, 99.9)) == "X-1"
    assert infer_winner(_market(99.4, 0.6)) is None
    assert infer_winner(_market(60, 40), threshold=55) == "X-0"


def test_auto_settle(temp_db):
    create_user(temp_db, "ann", "v1", user_id="u1")
    create_user(temp_db, "bob", "v1", user_id="u2")
    won = insert_pending_pick(temp_db, "u1", "C1", "C1-0", "Yes", 40)
    lost = insert_pending_pick(temp_db, "u2", "C1", "C1-1", "No", 60)
    canceled = insert_pending_pick(temp_db, "u1", "C2", "C2-0", "Yes", 50)
    direct = insert_pending_pick(temp_db, "u2", "C3", "C3-1", "No", 20)
    still_open = insert_pending_pick(temp_db, "u1", "O1", "O1-0", "Yes", 10)

    gamma = FakeGamma(
        open_markets=[raw_market("O1", prices=("0.999", "0.001"))],
        closed_markets=[
            raw_market("C1", prices=("1", "0"), closed=True),
            raw_market("C2", prices=("0.6", "0.4"), closed=True),
            raw_market("UNRELATED", prices=("1", "0"), closed=True),
        ],
    )
    # closed but not in the closed scan; found by direct lookup
    gamma.open_markets.append(raw_market("C3", prices=("0", "1"), closed=True))

    result = asyncio.run(auto_settle(temp_db, gamma.client(), SettlementEngine()))
    assert result.settled_markets == 3
    assert result.affected_picks == 4
    assert [(m.prediction_id, m.winning_outcome_id, m.settle_as_canceled) for m in result.markets] == [
        ("C1", "C1-0", False),
        ("C2", None, True),
        ("C3", "C3-1", False),
    ]
    assert get_pick(temp_db, won.id).status == "won"
    assert get_pick(temp_db, lost.id).status == "lost"
    assert get_pick(temp_db, canceled.id).status == "canceled"
    assert get_pick(temp_db, direct.id).status == "won"
    assert get_pick(temp_db, still_open.id).status == "pending"
    assert get_points(temp_db, "u1") == 40
    assert get_points(temp_db, "u2") == 20


def test_auto_settle_without_pending_does_not_call_source(temp_db):
    gamma = FakeGamma()
    result = asyncio.run(auto_settle(temp_db, gamma.client(), SettlementEngine()))
    assert result.settled_markets == 0
    assert gamma.requests == []


def test_settlement_runs_off_the_event_loop_thread(temp_db):
    create_user(temp_db, "ann", "v1", user_id="u1")
    insert_pending_pick(temp_db, "u1", "C1", "C1-0", "Yes", 40)
    seen = []

    class RecordingEngine(SettlementEngine):
        def settle(self, *args, **kwargs):
            seen.append(threading.get_ident())
            return super().settle(*args, **kwargs)

    gamma = FakeGamma(closed_markets=[raw_market("C1", prices=("1", "0"), closed=True)])
    asyncio.run(auto_settle(temp_db, gamma.client(), RecordingEngine()))
    assert seen and threading.get_ident() not in seen
