import threading
import uuid
from concurrent.futures import ThreadPoolExecutor

import pytest

from models import HighlightKind, ScoreEntry, ScoreHighlight
from core.exceptions import InvalidState, NotFound, ValidationError
from core.round_manager import RoundManager
from core.score_ledger import ScoreLedger


@pytest.mark.parametrize(
    "hole_number, strokes, putts, field",
    [
        (0, 4, None, "hole_number"),
        (19, 4, None, "hole_number"),
        (1, 0, None, "strokes"),
        (1, 21, None, "strokes"),
        (1, 4, -1, "putts"),
        (1, 4, 5, "putts"),
    ],
)
def test_record_score_validation_names_the_field(db, make_session, hole_number, strokes, putts, field):
    _, (player_id, _) = make_session()

    with pytest.raises(ValidationError) as exc_info:
        ScoreLedger.record_score(db, player_id, hole_number, strokes, putts=putts)

    assert exc_info.value.field == field
    assert db.query(ScoreEntry).count() == 0


def test_record_score_accepts_boundaries(db, make_session):
    _, (player_id, _) = make_session()

    ScoreLedger.record_score(db, player_id, 1, 1, putts=0)
    ScoreLedger.record_score(db, player_id, 18, 20, putts=20)

    assert ScoreLedger.totals(db, player_id).total_strokes == 21


def test_second_submission_for_a_hole_replaces_the_first(db, make_session):
    _, (player_id, _) = make_session()

    first = ScoreLedger.record_score(db, player_id, 7, 6, putts=3, location=(37.1, -122.2))
    second = ScoreLedger.record_score(db, player_id, 7, 4)

    entries = db.query(ScoreEntry).filter(ScoreEntry.player_id == player_id).all()
    assert len(entries) == 1
    assert second.id == first.id
    assert entries[0].strokes == 4
    assert entries[0].putts is None
    assert entries[0].latitude is None


def test_record_score_stores_location(db, make_session):
    _, (player_id, _) = make_session()

    entry = ScoreLedger.record_score(db, player_id, 3, 5, location=(51.5, -0.12))

    assert (entry.latitude, entry.longitude) == (51.5, -0.12)


def test_record_score_unknown_player(db):
    with pytest.raises(NotFound):
        ScoreLedger.record_score(db, uuid.uuid4(), 1, 4)


def test_scores_are_frozen_once_session_finishes(db, make_session):
    session_id, (player_id, _) = make_session(start=True)
    entry = ScoreLedger.record_score(db, player_id, 1, 4)
    entry_id = entry.id
    RoundManager.finish(db, session_id)

    with pytest.raises(InvalidState):
        ScoreLedger.record_score(db, player_id, 1, 3)
    with pytest.raises(InvalidState):
        ScoreLedger.record_score(db, player_id, 2, 3)
    with pytest.raises(InvalidState):
        ScoreLedger.delete_score(db, entry_id)

    assert ScoreLedger.totals(db, player_id).total_strokes == 4


def test_delete_score(db, make_session):
    _, (player_id, _) = make_session(start=True)
    entry_id = ScoreLedger.record_score(db, player_id, 1, 4).id
    ScoreLedger.record_score(db, player_id, 2, 5)

    ScoreLedger.delete_score(db, entry_id)

    totals = ScoreLedger.totals(db, player_id)
    assert (totals.total_strokes, totals.holes_played) == (5, 1)
    with pytest.raises(NotFound):
        ScoreLedger.delete_score(db, entry_id)


def test_totals_for_player_without_scores(db, make_session):
    _, (player_id, _) = make_session()

    totals = ScoreLedger.totals(db, player_id)

    assert (totals.total_strokes, totals.holes_played) == (0, 0)


def test_totals_are_per_player(db, make_session, record_holes):
    _, (alice_id, bob_id) = make_session()
    record_holes(alice_id, [4, 5, 3])
    record_holes(bob_id, [6])

    alice = ScoreLedger.totals(db, alice_id)
    bob = ScoreLedger.totals(db, bob_id)

    assert (alice.total_strokes, alice.holes_played) == (12, 3)
    assert (bob.total_strokes, bob.holes_played) == (6, 1)


def test_hole_scores_sorted_by_strokes(db, make_session):
    session_id, (alice_id, bob_id) = make_session()
    ScoreLedger.record_score(db, alice_id, 5, 6)
    ScoreLedger.record_score(db, bob_id, 5, 4)
    ScoreLedger.record_score(db, bob_id, 6, 2)

    entries = ScoreLedger.hole_scores(db, session_id, 5)

    assert [(e.player_id, e.strokes) for e in entries] == [(bob_id, 4), (alice_id, 6)]
    with pytest.raises(ValidationError):
        ScoreLedger.hole_scores(db, session_id, 19)


def test_highlights_only_for_new_notable_scores(db, make_session):
    session_id, (player_id, _) = make_session()

    ScoreLedger.record_score(db, player_id, 1, 5)   # first score
    ScoreLedger.record_score(db, player_id, 2, 3)   # birdie
    ScoreLedger.record_score(db, player_id, 3, 6)   # nothing
    ScoreLedger.record_score(db, player_id, 3, 1)   # correction, no new highlight
    ScoreLedger.record_score(db, player_id, 4, 1)   # hole in one

    kinds = [
        (h.hole_number, h.kind)
        for h in db.query(ScoreHighlight).order_by(ScoreHighlight.hole_number)
    ]
    assert kinds == [
        (1, HighlightKind.FIRST_SCORE),
        (2, HighlightKind.BIRDIE),
        (4, HighlightKind.HOLE_IN_ONE),
    ]


def _record_in_own_session(session_factory, player_id, hole_number, strokes, barrier):
    db = session_factory()
    try:
        barrier.wait()
        return ScoreLedger.record_score(db, player_id, hole_number, strokes).id
    finally:
        db.close()


@pytest.mark.parametrize("hole_number", range(1, 6))
def test_concurrent_submissions_for_a_new_hole_leave_one_entry(db, session_factory, make_session, hole_number):
    _, (player_id, _) = make_session(start=True)
    barrier = threading.Barrier(2)

    with ThreadPoolExecutor(max_workers=2) as pool:
        futures = [
            pool.submit(_record_in_own_session, session_factory, player_id, hole_number, strokes, barrier)
            for strokes in (4, 5)
        ]
        entry_ids = {f.result() for f in futures}

    entries = db.query(ScoreEntry).filter(ScoreEntry.player_id == player_id).all()
    assert len(entries) == 1
    assert entry_ids == {entries[0].id}
    assert entries[0].strokes in (4, 5)
