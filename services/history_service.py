"""
Redemption history service.

Builds per-player redemption history and per-sponsor redemption summaries
so the UI can render receipts and sponsor reports straight from the server.
"""
from typing import List, Dict, Any
from uuid import UUID

from sqlalchemy import func
from sqlalchemy.orm import Session

from models import RedemptionReceipt, RewardDefinition
from services.reward_catalog_service import get_sponsor


def get_player_redemptions(player_id: UUID, db: Session) -> List[Dict[str, Any]]:
    """
    Return the player's receipts, newest first, each with the reward it
    was issued for.
    """
    rows = (
        db.query(RedemptionReceipt, RewardDefinition)
        .join(RewardDefinition, RedemptionReceipt.reward_id == RewardDefinition.id)
        .filter(RedemptionReceipt.player_id == player_id)
        .order_by(RedemptionReceipt.redeemed_at.desc())
        .all()
    )

    return [
        {
            "receipt": receipt,
            "reward": reward,
        }
        for receipt, reward in rows
    ]


def get_sponsor_summary(sponsor_id: UUID, db: Session) -> Dict[str, Any]:
    """
    Count receipts per reward for one sponsor.

    Redemptions are counted from receipts rather than read from
    current_redemptions, so the two can be compared when auditing.
    """
    sponsor = get_sponsor(db, sponsor_id)

    rewards = (
        db.query(RewardDefinition)
        .filter(RewardDefinition.sponsor_id == sponsor_id)
        .order_by(RewardDefinition.created_at, RewardDefinition.id)
        .all()
    )

    counts = dict(
        db.query(RedemptionReceipt.reward_id, func.count(RedemptionReceipt.id))
        .join(RewardDefinition, RedemptionReceipt.reward_id == RewardDefinition.id)
        .filter(RewardDefinition.sponsor_id == sponsor_id)
        .group_by(RedemptionReceipt.reward_id)
        .all()
    )

    breakdown = [
        {
            "reward_id": reward.id,
            "name": reward.name,
            "redemptions": counts.get(reward.id, 0),
            "max_redemptions": reward.max_redemptions,
        }
        for reward in rewards
    ]

    return {
        "sponsor_id": sponsor.id,
        "total_rewards": len(rewards),
        "active_rewards": sum(1 for reward in rewards if reward.is_active),
        "total_redemptions": sum(entry["redemptions"] for entry in breakdown),
        "rewards": breakdown,
    }
