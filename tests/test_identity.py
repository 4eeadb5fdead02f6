import uuid

import pytest

from models import IdentityKind, Player, RedemptionReceipt
from core.exceptions import DuplicateIdentity, NotFound
from core.identity import EphemeralIdentity, PermanentIdentity, identity_from_columns
from core.redemption_ledger import RedemptionLedger
from core.round_manager import RoundManager
from core.score_ledger import ScoreLedger
from services.identity_service import migrate_guest, rewrite_identity


def test_identity_from_columns():
    assert identity_from_columns(IdentityKind.PERMANENT, "u1") == PermanentIdentity(user_id="u1")
    assert identity_from_columns(IdentityKind.EPHEMERAL, "g1") == EphemeralIdentity(guest_id="g1")
    assert str(EphemeralIdentity(guest_id="g1")) == "guest g1"


def test_rewrite_identity_keeps_scores_and_receipts(db, finished_session, make_reward):
    reward_id = make_reward().id
    session_id, (_, guest_player_id) = finished_session()
    RedemptionLedger.redeem(db, reward_id, guest_player_id, session_id)

    player = rewrite_identity(db, guest_player_id, PermanentIdentity(user_id="signed-up"))

    assert player.identity == PermanentIdentity(user_id="signed-up")
    assert ScoreLedger.totals(db, guest_player_id).total_strokes == 72
    receipts = db.query(RedemptionReceipt).filter(RedemptionReceipt.player_id == guest_player_id).all()
    assert len(receipts) == 1


def test_rewrite_identity_rejects_identity_in_use(db, make_session):
    _, (_, guest_player_id) = make_session()

    with pytest.raises(DuplicateIdentity):
        rewrite_identity(db, guest_player_id, PermanentIdentity(user_id="user-0"))

    db.expire_all()
    assert db.get(Player, guest_player_id).identity == EphemeralIdentity(guest_id="guest-1")


def test_rewrite_identity_unknown_player(db):
    with pytest.raises(NotFound):
        rewrite_identity(db, uuid.uuid4(), PermanentIdentity(user_id="x"))


def test_migrate_guest_across_sessions(db):
    guest = EphemeralIdentity(guest_id="walk-in")
    first = RoundManager.create_session(db, "First", "host")
    second = RoundManager.create_session(db, "Second", "host")
    RoundManager.add_player(db, first.id, "Walk-in", guest)
    RoundManager.add_player(db, second.id, "Walk-in", guest)

    migrated = migrate_guest(db, "walk-in", "member-7")

    assert migrated == 2
    sessions = RoundManager.active_sessions_for(db, PermanentIdentity(user_id="member-7"))
    assert {s.id for s in sessions} == {first.id, second.id}
    assert RoundManager.active_sessions_for(db, guest) == []


def test_migrate_guest_conflict_rolls_back_every_session(db):
    guest = EphemeralIdentity(guest_id="walk-in")
    member = PermanentIdentity(user_id="member-7")
    clean = RoundManager.create_session(db, "Clean", "host")
    clash = RoundManager.create_session(db, "Clash", "host")
    RoundManager.add_player(db, clean.id, "Walk-in", guest)
    RoundManager.add_player(db, clash.id, "Walk-in", guest)
    RoundManager.add_player(db, clash.id, "Member", member)

    with pytest.raises(DuplicateIdentity):
        migrate_guest(db, "walk-in", "member-7")

    db.expire_all()
    assert len(RoundManager.active_sessions_for(db, guest)) == 2


def test_migrate_unknown_guest_is_a_no_op(db):
    assert migrate_guest(db, "nobody", "member-7") == 0
