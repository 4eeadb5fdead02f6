import pytest
from sqlalchemy.orm import sessionmaker

from database import Base, build_engine
from models import GameFormat, RewardDefinition, RewardType, Sponsor
from core.identity import EphemeralIdentity, PermanentIdentity
from core.round_manager import RoundManager
from core.score_ledger import ScoreLedger


@pytest.fixture()
def engine(tmp_path):
    # File-backed so worker threads in the concurrency tests share one database
    test_engine = build_engine(f"sqlite:///{tmp_path / 'rounds_test.db'}")
    Base.metadata.create_all(bind=test_engine)
    yield test_engine
    test_engine.dispose()


@pytest.fixture()
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture()
def db(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture()
def sponsor(db):
    sponsor = Sponsor(name="Pro Shop")
    db.add(sponsor)
    db.commit()
    return sponsor


@pytest.fixture()
def make_reward(db, sponsor):
    def _make(**overrides):
        fields = {
            "sponsor_id": sponsor.id,
            "name": "Free range bucket",
            "type": RewardType.PRODUCT,
            "value": 10.0,
        }
        fields.update(overrides)
        reward = RewardDefinition(**fields)
        db.add(reward)
        db.commit()
        return reward
    return _make


@pytest.fixture()
def make_session(db):
    """Create a session with one player per name; returns (session_id, [player_id, ...])."""
    def _make(player_names=("Alice", "Bob"), format=GameFormat.STROKE, start=False):
        game = RoundManager.create_session(db, "Saturday round", "user-creator", format=format)
        player_ids = []
        for index, name in enumerate(player_names):
            identity = PermanentIdentity(user_id=f"user-{index}") if index % 2 == 0 \
                else EphemeralIdentity(guest_id=f"guest-{index}")
            player_ids.append(RoundManager.add_player(db, game.id, name, identity).id)
        if start:
            RoundManager.start(db, game.id)
        return game.id, player_ids
    return _make


@pytest.fixture()
def record_holes(db):
    """Record strokes for holes 1..len(strokes) for one player."""
    def _record(player_id, strokes):
        for hole_number, hole_strokes in enumerate(strokes, start=1):
            ScoreLedger.record_score(db, player_id, hole_number, hole_strokes)
    return _record


@pytest.fixture()
def finished_session(make_session, record_holes, db):
    """Two players, 18 holes of 4 strokes each (72), session finished."""
    def _make(player_names=("Alice", "Bob"), format=GameFormat.STROKE, strokes=None):
        session_id, player_ids = make_session(player_names, format=format, start=True)
        for player_id in player_ids:
            record_holes(player_id, strokes or [4] * 18)
        RoundManager.finish(db, session_id)
        return session_id, player_ids
    return _make
