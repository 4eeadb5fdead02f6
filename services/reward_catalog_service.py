"""
Reward catalog: read-only access to sponsor reward definitions.

Creating and editing rewards is an administrative concern handled outside
this service; nothing here writes.
"""
from typing import List, Optional
from uuid import UUID

from sqlalchemy.orm import Session

from models import RewardDefinition, Sponsor
from core.exceptions import NotFound


def active_rewards_for(db: Session, sponsor_id: Optional[UUID] = None) -> List[RewardDefinition]:
    """
    Return active rewards whose sponsor is also active, optionally limited
    to one sponsor. Ordered by creation time so offer lists render stably.
    """
    query = (
        db.query(RewardDefinition)
        .join(Sponsor, RewardDefinition.sponsor_id == Sponsor.id)
        .filter(RewardDefinition.is_active == True, Sponsor.is_active == True)  # noqa: E712
    )
    if sponsor_id is not None:
        query = query.filter(RewardDefinition.sponsor_id == sponsor_id)
    return query.order_by(RewardDefinition.created_at, RewardDefinition.id).all()


def get_reward(db: Session, reward_id: UUID) -> RewardDefinition:
    reward = db.query(RewardDefinition).filter(RewardDefinition.id == reward_id).first()
    if not reward:
        raise NotFound("Reward", reward_id)
    return reward


def get_sponsor(db: Session, sponsor_id: UUID) -> Sponsor:
    sponsor = db.query(Sponsor).filter(Sponsor.id == sponsor_id).first()
    if not sponsor:
        raise NotFound("Sponsor", sponsor_id)
    return sponsor
