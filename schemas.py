"""
API request / response schemas
"""
from datetime import datetime
from typing import List, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, model_validator

from models import (
    GameFormat,
    HighlightKind,
    IdentityKind,
    ReceiptStatus,
    RewardType,
    SessionStatus,
)
from core.identity import EphemeralIdentity, Identity, PermanentIdentity


class ActionResponse(BaseModel):
    status: str


# ============ Session ============

class SessionCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    created_by: str
    course_id: Optional[str] = None
    format: Optional[GameFormat] = None


class SessionResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    name: str
    created_by: str
    course_id: Optional[str]
    status: SessionStatus
    format: GameFormat
    started_at: datetime
    ended_at: Optional[datetime]


class SessionPreviewResponse(BaseModel):
    session: SessionResponse
    player_count: int
    can_join: bool


class SessionListItem(BaseModel):
    session: SessionResponse
    player_count: int


# ============ Player ============

class IdentityPayload(BaseModel):
    """user_id 或 guest_id 二選一"""
    user_id: Optional[str] = None
    guest_id: Optional[str] = None

    @model_validator(mode="after")
    def exactly_one_identity(self):
        if (self.user_id is None) == (self.guest_id is None):
            raise ValueError("Exactly one of user_id or guest_id must be provided")
        return self

    def to_identity(self) -> Identity:
        if self.user_id is not None:
            return PermanentIdentity(user_id=self.user_id)
        return EphemeralIdentity(guest_id=self.guest_id)


class PlayerJoin(IdentityPayload):
    name: str = Field(..., min_length=1, max_length=100)
    team_id: Optional[str] = Field(None, max_length=50)


class PlayerResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    session_id: UUID
    name: str
    identity_kind: IdentityKind
    identity_ref: str
    position: int
    team_id: Optional[str] = None


class IdentityMigrate(BaseModel):
    guest_id: str
    user_id: str


class IdentityMigrateResponse(BaseModel):
    migrated: int


# ============ Score ============

class ScoreSubmit(BaseModel):
    strokes: int
    putts: Optional[int] = None
    latitude: Optional[float] = None
    longitude: Optional[float] = None

    @model_validator(mode="after")
    def location_pair(self):
        if (self.latitude is None) != (self.longitude is None):
            raise ValueError("latitude and longitude must be provided together")
        return self


class ScoreResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    player_id: UUID
    session_id: UUID
    hole_number: int
    strokes: int
    putts: Optional[int]
    recorded_at: datetime
    latitude: Optional[float]
    longitude: Optional[float]


class TotalsResponse(BaseModel):
    total_strokes: int
    holes_played: int


class StandingResponse(BaseModel):
    rank: int
    player: PlayerResponse
    total_strokes: int
    holes_played: int


class HighlightResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    hole_number: int
    kind: HighlightKind
    message: str


# ============ Reward ============

class RewardResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    sponsor_id: UUID
    name: str
    description: Optional[str]
    type: RewardType
    value: float
    expires_at: Optional[datetime]
    max_redemptions: Optional[int]
    current_redemptions: int
    min_score: Optional[int]
    max_score: Optional[int]
    required_holes: Optional[int]
    game_format: Optional[GameFormat]


class RedeemRequest(BaseModel):
    player_id: UUID
    session_id: UUID


class ReceiptResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    reward_id: UUID
    player_id: UUID
    session_id: UUID
    code: str
    redeemed_at: datetime
    status: ReceiptStatus


class RedemptionHistoryItem(BaseModel):
    receipt: ReceiptResponse
    reward: RewardResponse


class RewardBreakdown(BaseModel):
    reward_id: UUID
    name: str
    redemptions: int
    max_redemptions: Optional[int]


class SponsorSummaryResponse(BaseModel):
    sponsor_id: UUID
    total_rewards: int
    active_rewards: int
    total_redemptions: int
    rewards: List[RewardBreakdown]
