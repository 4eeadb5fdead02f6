"""
狀態機：集中管理 Session 的所有狀態轉換

WAITING → ACTIVE → FINISHED，只能往前，不能倒退。
WAITING → FINISHED 也允許（球局沒開打就被關閉）。

所有狀態變更都要經過這裡，Manager 不直接寫 status 欄位。
"""
from uuid import UUID
import logging

from sqlalchemy.orm import Session

from models import GameSession, SessionStatus, EventLog, utcnow
from core.locks import with_session_lock
from core.exceptions import NotFound, InvalidState, AlreadyFinished

logger = logging.getLogger(__name__)


class SessionStateMachine:
    """Session 狀態轉換"""

    TRANSITIONS = {
        SessionStatus.WAITING: {SessionStatus.ACTIVE, SessionStatus.FINISHED},
        SessionStatus.ACTIVE: {SessionStatus.FINISHED},
        SessionStatus.FINISHED: set(),
    }

    @classmethod
    def can_transition(cls, current: SessionStatus, target: SessionStatus) -> bool:
        return target in cls.TRANSITIONS[current]

    @classmethod
    def transition(cls, session_id: UUID, target: SessionStatus, db: Session) -> GameSession:
        """
        鎖定 Session 並轉換狀態

        副作用：
        - ACTIVE：started_at 更新為實際開打時間
        - FINISHED：寫入 ended_at（ended_at 有值 iff status = FINISHED）
        - 記錄 SESSION_STATE_CHANGED 事件

        參數：
            session_id: Session UUID
            target: 目標狀態
            db: SQLAlchemy Session

        返回：
            更新後的 GameSession

        異常：
            NotFound: Session 不存在
            AlreadyFinished: Session 已結束又要求結束
            InvalidState: 其他非法轉換
        """
        game = with_session_lock(session_id, db).first()
        if not game:
            raise NotFound("Session", session_id)

        current = game.status
        if not cls.can_transition(current, target):
            if current == SessionStatus.FINISHED and target == SessionStatus.FINISHED:
                raise AlreadyFinished(session_id)
            raise InvalidState(
                f"Session {session_id} cannot move from {current.value} to {target.value}"
            )

        game.status = target
        if target == SessionStatus.ACTIVE:
            game.started_at = utcnow()
        elif target == SessionStatus.FINISHED:
            game.ended_at = utcnow()

        db.add(EventLog(
            session_id=session_id,
            event_type="SESSION_STATE_CHANGED",
            data={"from": current.value, "to": target.value}
        ))
        db.flush()

        logger.info(f"Session {session_id} transitioned {current.value} -> {target.value}")
        return game
