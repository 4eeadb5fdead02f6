"""
資料模型

Session（一場球局）→ Player（球局內的參賽者）→ ScoreEntry（每洞成績）
Sponsor → RewardDefinition（贊助商獎勵）→ RedemptionReceipt（兌換收據）
"""
import enum
import uuid
from datetime import datetime, timezone

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Column,
    DateTime,
    Enum,
    Float,
    ForeignKey,
    Integer,
    JSON,
    String,
    UniqueConstraint,
    Uuid,
)
from sqlalchemy.orm import relationship

from database import Base


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def as_utc(value: datetime) -> datetime:
    """SQLite 讀回來的 datetime 不帶時區，一律視為 UTC"""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


# ============ Enums ============

class SessionStatus(str, enum.Enum):
    WAITING = "waiting"
    ACTIVE = "active"
    FINISHED = "finished"


class GameFormat(str, enum.Enum):
    STROKE = "stroke"
    MATCH = "match"
    SCRAMBLE = "scramble"
    BEST_BALL = "best_ball"


class IdentityKind(str, enum.Enum):
    PERMANENT = "permanent"
    EPHEMERAL = "ephemeral"


class RewardType(str, enum.Enum):
    DISCOUNT = "discount"
    PRODUCT = "product"
    EXPERIENCE = "experience"
    CREDIT = "credit"


class ReceiptStatus(str, enum.Enum):
    PENDING = "pending"
    FULFILLED = "fulfilled"
    CANCELLED = "cancelled"


class HighlightKind(str, enum.Enum):
    HOLE_IN_ONE = "hole_in_one"
    EAGLE = "eagle"
    BIRDIE = "birdie"
    FIRST_SCORE = "first_score"


# ============ Round ============

class GameSession(Base):
    __tablename__ = "game_sessions"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    name = Column(String(100), nullable=False)
    created_by = Column(String(64), nullable=False, index=True)
    course_id = Column(String(64), nullable=True, index=True)
    status = Column(Enum(SessionStatus), nullable=False, default=SessionStatus.WAITING, index=True)
    format = Column(Enum(GameFormat), nullable=False, default=GameFormat.STROKE)
    started_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    ended_at = Column(DateTime(timezone=True), nullable=True)

    players = relationship("Player", back_populates="session", order_by="Player.position")


class Player(Base):
    __tablename__ = "players"
    __table_args__ = (
        UniqueConstraint("session_id", "identity_kind", "identity_ref", name="uq_player_session_identity"),
    )

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    session_id = Column(Uuid, ForeignKey("game_sessions.id"), nullable=False, index=True)
    name = Column(String(100), nullable=False)
    # 身份恰好一種：兩個欄位都 NOT NULL，由 identity_kind 決定 ref 的意義
    identity_kind = Column(Enum(IdentityKind), nullable=False)
    identity_ref = Column(String(64), nullable=False, index=True)
    position = Column(Integer, nullable=False)
    # scramble / best_ball 分隊用，個人賽為 NULL
    team_id = Column(String(50), nullable=True)

    session = relationship("GameSession", back_populates="players")

    @property
    def identity(self):
        from core.identity import identity_from_columns  # 避免 circular import
        return identity_from_columns(self.identity_kind, self.identity_ref)


class ScoreEntry(Base):
    __tablename__ = "score_entries"
    __table_args__ = (
        UniqueConstraint("player_id", "hole_number", name="uq_score_player_hole"),
        CheckConstraint("hole_number BETWEEN 1 AND 18", name="ck_score_hole_range"),
        CheckConstraint("strokes BETWEEN 1 AND 20", name="ck_score_strokes_range"),
        CheckConstraint("putts IS NULL OR (putts >= 0 AND putts <= strokes)", name="ck_score_putts_range"),
    )

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    player_id = Column(Uuid, ForeignKey("players.id"), nullable=False, index=True)
    session_id = Column(Uuid, ForeignKey("game_sessions.id"), nullable=False, index=True)
    hole_number = Column(Integer, nullable=False)
    strokes = Column(Integer, nullable=False)
    putts = Column(Integer, nullable=True)
    recorded_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    latitude = Column(Float, nullable=True)
    longitude = Column(Float, nullable=True)

    player = relationship("Player")


class ScoreHighlight(Base):
    __tablename__ = "score_highlights"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    session_id = Column(Uuid, ForeignKey("game_sessions.id"), nullable=False, index=True)
    player_id = Column(Uuid, ForeignKey("players.id"), nullable=False, index=True)
    hole_number = Column(Integer, nullable=False)
    kind = Column(Enum(HighlightKind), nullable=False)
    message = Column(String(200), nullable=False)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)


class EventLog(Base):
    __tablename__ = "event_logs"

    id = Column(Integer, primary_key=True, autoincrement=True)
    session_id = Column(Uuid, ForeignKey("game_sessions.id"), nullable=False, index=True)
    event_type = Column(String(50), nullable=False)
    data = Column(JSON, nullable=False, default=dict)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)


# ============ Rewards ============

class Sponsor(Base):
    __tablename__ = "sponsors"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    name = Column(String(100), nullable=False)
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)

    rewards = relationship("RewardDefinition", back_populates="sponsor")


class RewardDefinition(Base):
    __tablename__ = "reward_definitions"
    __table_args__ = (
        CheckConstraint(
            "max_redemptions IS NULL OR current_redemptions <= max_redemptions",
            name="ck_reward_inventory_cap",
        ),
    )

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    sponsor_id = Column(Uuid, ForeignKey("sponsors.id"), nullable=False, index=True)
    name = Column(String(100), nullable=False)
    description = Column(String(500), nullable=True)
    type = Column(Enum(RewardType), nullable=False)
    value = Column(Float, nullable=False)
    expires_at = Column(DateTime(timezone=True), nullable=True)
    max_redemptions = Column(Integer, nullable=True)
    current_redemptions = Column(Integer, nullable=False, default=0)
    is_active = Column(Boolean, nullable=False, default=True, index=True)

    # Eligibility conditions：NULL 表示該條件不限制
    min_score = Column(Integer, nullable=True)
    max_score = Column(Integer, nullable=True)
    required_holes = Column(Integer, nullable=True)
    game_format = Column(Enum(GameFormat), nullable=True)

    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)

    sponsor = relationship("Sponsor", back_populates="rewards")


class RedemptionReceipt(Base):
    __tablename__ = "redemption_receipts"
    __table_args__ = (
        UniqueConstraint("player_id", "reward_id", name="uq_receipt_player_reward"),
    )

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    reward_id = Column(Uuid, ForeignKey("reward_definitions.id"), nullable=False, index=True)
    player_id = Column(Uuid, ForeignKey("players.id"), nullable=False, index=True)
    session_id = Column(Uuid, ForeignKey("game_sessions.id"), nullable=False, index=True)
    code = Column(String(40), nullable=False, unique=True)
    redeemed_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    status = Column(Enum(ReceiptStatus), nullable=False, default=ReceiptStatus.PENDING)

    reward = relationship("RewardDefinition")
