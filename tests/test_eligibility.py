import uuid
from datetime import timedelta

import pytest

from models import GameFormat, RewardDefinition, Sponsor, utcnow
from core.exceptions import NotFound
from core.redemption_ledger import RedemptionLedger
from services.eligibility_service import build_conditions, candidates, failed_conditions
from services.scoring_service import PlayerTotals


@pytest.mark.parametrize(
    "totals, expected",
    [
        (PlayerTotals(78, 18), []),
        (PlayerTotals(78, 17), ["required_holes"]),
        (PlayerTotals(85, 18), ["max_score"]),
        (PlayerTotals(85, 9), ["max_score", "required_holes"]),
    ],
)
def test_max_score_and_required_holes(totals, expected):
    reward = RewardDefinition(required_holes=18, max_score=80)

    assert failed_conditions(reward, totals, GameFormat.STROKE) == expected


def test_min_score_is_inclusive():
    reward = RewardDefinition(min_score=90)

    assert failed_conditions(reward, PlayerTotals(90, 18), GameFormat.STROKE) == []
    assert failed_conditions(reward, PlayerTotals(89, 18), GameFormat.STROKE) == ["min_score"]


def test_game_format_must_match_exactly():
    reward = RewardDefinition(game_format=GameFormat.SCRAMBLE)

    assert failed_conditions(reward, PlayerTotals(70, 18), GameFormat.SCRAMBLE) == []
    assert failed_conditions(reward, PlayerTotals(70, 18), GameFormat.BEST_BALL) == ["game_format"]


def test_reward_without_conditions_has_no_predicates():
    reward = RewardDefinition()

    assert build_conditions(reward) == []
    assert failed_conditions(reward, PlayerTotals(0, 0), GameFormat.MATCH) == []


def test_zero_thresholds_still_apply():
    reward = RewardDefinition(max_score=0)

    assert [c.name for c in build_conditions(reward)] == ["max_score"]
    assert failed_conditions(reward, PlayerTotals(72, 18), GameFormat.STROKE) == ["max_score"]


def test_candidates_empty_until_session_finishes(db, make_session, record_holes, make_reward):
    make_reward()
    session_id, (player_id, _) = make_session(start=True)
    record_holes(player_id, [4] * 18)

    assert candidates(db, session_id, player_id) == []


def test_candidates_apply_conditions(db, finished_session, make_reward):
    easy = make_reward(name="Any finisher", required_holes=18)
    hard = make_reward(name="Break 70", max_score=69)
    wrong_format = make_reward(name="Scramble only", game_format=GameFormat.SCRAMBLE)
    session_id, (player_id, _) = finished_session()

    offered = {r.id for r in candidates(db, session_id, player_id)}

    assert easy.id in offered
    assert hard.id not in offered
    assert wrong_format.id not in offered


def test_candidates_skip_inactive_expired_and_exhausted(db, finished_session, make_reward):
    now = utcnow()
    available = make_reward(name="Available", expires_at=now + timedelta(days=1), max_redemptions=5)
    make_reward(name="Inactive", is_active=False)
    make_reward(name="Expired", expires_at=now - timedelta(minutes=1))
    make_reward(name="Gone", max_redemptions=2, current_redemptions=2)
    session_id, (player_id, _) = finished_session()

    offered = [r.id for r in candidates(db, session_id, player_id)]

    assert offered == [available.id]


def test_candidates_skip_rewards_of_inactive_sponsors(db, finished_session, make_reward):
    retired = Sponsor(name="Retired sponsor", is_active=False)
    db.add(retired)
    db.commit()
    make_reward(sponsor_id=retired.id)
    session_id, (player_id, _) = finished_session()

    assert candidates(db, session_id, player_id) == []


def test_candidates_skip_already_redeemed_and_have_no_side_effects(db, finished_session, make_reward):
    reward = make_reward(max_redemptions=3)
    reward_id = reward.id
    session_id, (alice_id, bob_id) = finished_session()

    for _ in range(3):
        assert [r.id for r in candidates(db, session_id, alice_id)] == [reward_id]
    db.refresh(reward)
    assert reward.current_redemptions == 0

    RedemptionLedger.redeem(db, reward_id, alice_id, session_id)

    assert candidates(db, session_id, alice_id) == []
    assert [r.id for r in candidates(db, session_id, bob_id)] == [reward_id]


def test_candidates_unknown_references(db, finished_session):
    session_id, (player_id, _) = finished_session()
    other_session_id, _ = finished_session(player_names=("Zed",))

    with pytest.raises(NotFound):
        candidates(db, uuid.uuid4(), player_id)
    with pytest.raises(NotFound):
        candidates(db, session_id, uuid.uuid4())
    with pytest.raises(NotFound):
        candidates(db, other_session_id, player_id)
