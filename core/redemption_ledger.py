"""
Redemption Ledger：獎勵兌換

保證：
1. 同一個 (player, reward) 最多一張收據，併發請求也一樣
2. current_redemptions 永遠不超過 max_redemptions

並發設計：
- SELECT ... FOR UPDATE 鎖住 reward row，讓同一獎勵的兌換排隊（PostgreSQL）
- 條件式 UPDATE 一次完成庫存檢查和遞增（不是 read-then-write）
- (player_id, reward_id) unique index，重複 INSERT 直接失敗
- 收據 INSERT 包在 savepoint：代碼撞號時換代碼重試，不會誤判成已兌換

檢查和寫入在同一個 transaction，任何一步失敗就整個 rollback。
"""
from datetime import datetime, timedelta
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session
from uuid import UUID
from typing import Optional
import logging

from models import (
    RedemptionReceipt,
    ReceiptStatus,
    SessionStatus,
    EventLog,
    utcnow,
)
from core.locks import with_reward_lock, increment_redemptions_if_available
from core.exceptions import (
    NotFound,
    Inactive,
    Expired,
    InventoryExhausted,
    AlreadyRedeemed,
    SessionNotFinished,
    NotEligible,
    InvalidState,
)
from services.eligibility_service import (
    failed_conditions,
    has_inventory,
    is_expired,
    load_session_player,
)
from services.naming_service import generate_receipt_code, receipt_code_taken
from services.scoring_service import calculate_totals
from database import transactional

logger = logging.getLogger(__name__)

MAX_CODE_ATTEMPTS = 5


def _unique_receipt_code(sponsor_id, player_id, redeemed_at: datetime, db: Session) -> str:
    """
    代碼由時間（毫秒）組成，同一毫秒撞號時往後推 1 毫秒再產生
    """
    code = generate_receipt_code(sponsor_id, player_id, redeemed_at)
    while receipt_code_taken(code, db):
        redeemed_at += timedelta(milliseconds=1)
        code = generate_receipt_code(sponsor_id, player_id, redeemed_at)
        logger.warning(f"Receipt code collision detected, regenerating: {code}")
    return code


def _has_receipt(player_id: UUID, reward_id: UUID, db: Session) -> bool:
    return db.query(RedemptionReceipt).filter(
        RedemptionReceipt.player_id == player_id,
        RedemptionReceipt.reward_id == reward_id
    ).first() is not None


def _insert_receipt(reward, player_id: UUID, session_id: UUID, now: datetime, db: Session) -> RedemptionReceipt:
    """
    新增收據，每次 INSERT 都包在 savepoint 裡

    unique 衝突有兩種：
    - (player_id, reward_id)：併發請求已經兌換 -> AlreadyRedeemed
    - code：其他 transaction 同一毫秒用掉了同樣的代碼 -> 換一個代碼重試
    """
    code_time = now
    for _ in range(MAX_CODE_ATTEMPTS):
        receipt = RedemptionReceipt(
            reward_id=reward.id,
            player_id=player_id,
            session_id=session_id,
            code=_unique_receipt_code(reward.sponsor_id, player_id, code_time, db),
            redeemed_at=now,
            status=ReceiptStatus.PENDING
        )
        try:
            with db.begin_nested():
                db.add(receipt)
                db.flush()
            return receipt
        except IntegrityError:
            if _has_receipt(player_id, reward.id, db):
                raise AlreadyRedeemed(reward.id, player_id)
            logger.warning(f"Receipt code {receipt.code} taken by a concurrent redemption, regenerating")
            code_time += timedelta(milliseconds=1)

    raise InvalidState(f"Could not allocate a unique receipt code for reward {reward.id}, retry")


class RedemptionLedger:
    """獎勵兌換紀錄"""

    @staticmethod
    @transactional
    def redeem(
        db: Session,
        reward_id: UUID,
        player_id: UUID,
        session_id: UUID,
        now: Optional[datetime] = None
    ) -> RedemptionReceipt:
        """
        兌換獎勵

        所有檢查都在 commit 時重新驗證，不信任之前 candidates() 的結果

        檢查順序：
        1. NotFound：reward / session / player 不存在（或玩家不屬於 session）
        2. Inactive：獎勵或贊助商已停用
        3. Expired：獎勵已過期
        4. InventoryExhausted：庫存已滿
        5. AlreadyRedeemed：玩家已兌換過
        6. SessionNotFinished：球局還沒結束
        7. NotEligible：成績不符合條件

        成功後（同一個 transaction）：
        8. 條件式遞增 current_redemptions + 新增收據
        9. 收據代碼：贊助商末 4 碼-玩家末 4 碼-時間 base36

        參數：
            db: SQLAlchemy Session
            reward_id: Reward UUID
            player_id: Player UUID
            session_id: Session UUID
            now: 兌換時間（預設為現在）

        返回：
            RedemptionReceipt（status = PENDING）
        """
        now = now or utcnow()

        # 1. 取得並鎖定 reward
        reward = with_reward_lock(reward_id, db).first()
        if not reward:
            raise NotFound("Reward", reward_id)
        game, player = load_session_player(session_id, player_id, db)

        # 2-4. 獎勵本身的狀態
        if not reward.is_active or not reward.sponsor.is_active:
            raise Inactive(reward_id)
        if is_expired(reward, now):
            raise Expired(reward_id, reward.expires_at)
        if not has_inventory(reward):
            raise InventoryExhausted(reward_id, reward.max_redemptions)

        # 5. 是否已兌換
        if _has_receipt(player_id, reward_id, db):
            raise AlreadyRedeemed(reward_id, player_id)

        # 6. 球局必須結束
        if game.status != SessionStatus.FINISHED:
            raise SessionNotFinished(session_id, game.status.value)

        # 7. 重新判斷成績條件
        failed = failed_conditions(reward, calculate_totals(player_id, db), game.format)
        if failed:
            raise NotEligible(reward_id, player_id, failed)

        # 8. 條件式遞增：0 rows 表示另一個請求已經拿走最後一份
        if not increment_redemptions_if_available(reward_id, db):
            raise InventoryExhausted(reward_id, reward.max_redemptions)

        receipt = _insert_receipt(reward, player_id, session_id, now, db)

        db.add(EventLog(
            session_id=session_id,
            event_type="REWARD_REDEEMED",
            data={
                "reward_id": str(reward_id),
                "player_id": str(player_id),
                "code": receipt.code
            }
        ))

        logger.info(
            f"Player {player_id} redeemed reward {reward_id} in session {session_id} "
            f"(code={receipt.code})"
        )
        return receipt
