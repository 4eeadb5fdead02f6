"""
資格判斷服務：決定玩家是否可以兌換某個獎勵

純判斷邏輯，沒有副作用（不會動到庫存），可以重複呼叫來顯示可兌換清單。
兌換時 RedemptionLedger 會重新跑一次同樣的判斷。
"""
from dataclasses import dataclass
from datetime import datetime
from typing import Callable, List, Optional
from uuid import UUID

from sqlalchemy.orm import Session

from models import (
    GameFormat,
    GameSession,
    Player,
    RedemptionReceipt,
    RewardDefinition,
    SessionStatus,
    as_utc,
    utcnow,
)
from core.exceptions import NotFound
from services.reward_catalog_service import active_rewards_for
from services.scoring_service import PlayerTotals, calculate_totals


@dataclass(frozen=True)
class Condition:
    """一個具名的條件：name 用來回報哪個條件沒通過"""
    name: str
    check: Callable[[PlayerTotals, GameFormat], bool]


def build_conditions(reward: RewardDefinition) -> List[Condition]:
    """
    把 reward 的條件欄位轉成 Condition 列表

    規則（欄位為 NULL 表示不限制）：
    - min_score：總桿數 >= min_score
    - max_score：總桿數 <= max_score
    - required_holes：已打洞數 >= required_holes
    - game_format：Session 賽制必須完全相同

    範例：
        min_score=None, max_score=80, required_holes=18
        -> [Condition("max_score"), Condition("required_holes")]
    """
    conditions = []

    if reward.min_score is not None:
        min_score = reward.min_score
        conditions.append(Condition(
            "min_score", lambda totals, fmt: totals.total_strokes >= min_score
        ))

    if reward.max_score is not None:
        max_score = reward.max_score
        conditions.append(Condition(
            "max_score", lambda totals, fmt: totals.total_strokes <= max_score
        ))

    if reward.required_holes is not None:
        required_holes = reward.required_holes
        conditions.append(Condition(
            "required_holes", lambda totals, fmt: totals.holes_played >= required_holes
        ))

    if reward.game_format is not None:
        game_format = reward.game_format
        conditions.append(Condition(
            "game_format", lambda totals, fmt: fmt == game_format
        ))

    return conditions


def failed_conditions(reward: RewardDefinition, totals: PlayerTotals, session_format: GameFormat) -> List[str]:
    """
    回傳沒通過的條件名稱；空列表表示全部通過

    參數：
        reward: RewardDefinition
        totals: 玩家的 PlayerTotals
        session_format: Session 的賽制

    返回：
        沒通過的條件名稱列表
    """
    return [
        condition.name
        for condition in build_conditions(reward)
        if not condition.check(totals, session_format)
    ]


def is_expired(reward: RewardDefinition, now: datetime) -> bool:
    return reward.expires_at is not None and as_utc(reward.expires_at) < now


def has_inventory(reward: RewardDefinition) -> bool:
    return reward.max_redemptions is None or reward.current_redemptions < reward.max_redemptions


def redeemed_reward_ids(player_id: UUID, db: Session) -> set:
    rows = db.query(RedemptionReceipt.reward_id).filter(
        RedemptionReceipt.player_id == player_id
    ).all()
    return {reward_id for (reward_id,) in rows}


def load_session_player(session_id: UUID, player_id: UUID, db: Session):
    """
    取得 (GameSession, Player)，並確認玩家屬於該 Session

    異常：
        NotFound: Session 或 Player 不存在，或玩家不屬於該 Session
    """
    game = db.query(GameSession).filter(GameSession.id == session_id).first()
    if not game:
        raise NotFound("Session", session_id)

    player = db.query(Player).filter(
        Player.id == player_id,
        Player.session_id == session_id
    ).first()
    if not player:
        raise NotFound("Player", player_id)

    return game, player


def candidates(db: Session, session_id: UUID, player_id: UUID,
               now: Optional[datetime] = None) -> List[RewardDefinition]:
    """
    列出玩家目前可以兌換的獎勵

    條件：
    1. Session 必須已結束（否則回傳空列表）
    2. 獎勵啟用中、未過期、還有庫存
    3. 玩家還沒兌換過
    4. 成績符合所有條件

    參數：
        db: SQLAlchemy Session
        session_id: Session UUID
        player_id: Player UUID
        now: 判斷過期用的時間（預設為現在）

    返回：
        RewardDefinition 列表

    異常：
        NotFound: Session 或 Player 不存在
    """
    game, player = load_session_player(session_id, player_id, db)
    if game.status != SessionStatus.FINISHED:
        return []

    now = now or utcnow()
    totals = calculate_totals(player.id, db)
    already_redeemed = redeemed_reward_ids(player.id, db)

    return [
        reward
        for reward in active_rewards_for(db)
        if not is_expired(reward, now)
        and has_inventory(reward)
        and reward.id not in already_redeemed
        and not failed_conditions(reward, totals, game.format)
    ]
