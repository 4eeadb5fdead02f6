"""
並發控制工具

提供 Database-level 的鎖定機制，防止競態條件（Race Condition）

- 悲觀鎖：PostgreSQL 的 SELECT ... FOR UPDATE（SQLite 會忽略，改由寫入鎖序列化）
- 條件式更新：UPDATE ... WHERE 前置條件，一個 statement 完成 check-and-increment
"""
from sqlalchemy.orm import Session, Query
from uuid import UUID

from models import GameSession, RewardDefinition


def with_session_lock(session_id: UUID, db: Session) -> Query:
    """
    鎖定一個 GameSession（行級鎖）

    使用場景：
    - 修改 Session 狀態時
    - 新增/移除玩家時（position 分配需要序列化）

    範例：
        game = with_session_lock(session_id, db).first()
        if not game:
            raise NotFound("Session", session_id)

    參數：
        session_id: Session 的 UUID
        db: SQLAlchemy Session

    返回：
        Query object（需要呼叫 .first() 或 .one() 來取得結果）
    """
    return db.query(GameSession).filter(
        GameSession.id == session_id
    ).with_for_update(nowait=False)


def with_reward_lock(reward_id: UUID, db: Session) -> Query:
    """
    鎖定一個 RewardDefinition（行級鎖）

    使用場景：
    - 兌換獎勵時，讓同一個獎勵的兌換請求排隊

    參數：
        reward_id: Reward 的 UUID
        db: SQLAlchemy Session

    返回：
        Query object
    """
    return db.query(RewardDefinition).filter(
        RewardDefinition.id == reward_id
    ).with_for_update(nowait=False)


def increment_redemptions_if_available(reward_id: UUID, db: Session) -> bool:
    """
    原子地把 current_redemptions + 1，前提是還有庫存

    等同於：
        UPDATE reward_definitions
           SET current_redemptions = current_redemptions + 1
         WHERE id = :id
           AND (max_redemptions IS NULL OR current_redemptions < max_redemptions)

    不做 read-then-write：檢查和遞增在同一個 statement 內完成，
    兩個併發請求不可能同時通過庫存上限。

    參數：
        reward_id: Reward 的 UUID
        db: SQLAlchemy Session

    返回：
        True 如果成功遞增，False 如果庫存已滿（或 reward 不存在）
    """
    updated = db.query(RewardDefinition).filter(
        RewardDefinition.id == reward_id,
        (RewardDefinition.max_redemptions.is_(None))
        | (RewardDefinition.current_redemptions < RewardDefinition.max_redemptions)
    ).update(
        {RewardDefinition.current_redemptions: RewardDefinition.current_redemptions + 1},
        synchronize_session=False
    )
    return updated == 1
