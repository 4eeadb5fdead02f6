"""
Round Manager：管理球局（Session）的完整生命週期

職責：
1. 建立 Session
2. 管理參賽名單（加入、移除玩家）
3. 開始 / 結束球局（狀態轉換經過 StateMachine）
4. 查詢排名與 Session 資訊

原則：
- 單一職責：只管 Session 和玩家名單，不管成績和獎勵
- 消除特殊情況：所有狀態變更經過 StateMachine
- 資料結構優先：先檢查資料是否符合要求，再執行操作
"""
from sqlalchemy import func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session
from uuid import UUID
from typing import Any, Dict, List, Optional
import logging

from models import (
    GameSession,
    GameFormat,
    Player,
    ScoreEntry,
    ScoreHighlight,
    SessionStatus,
    EventLog,
)
from core.identity import Identity
from core.state_machine import SessionStateMachine
from core.locks import with_session_lock
from core.exceptions import (
    NotFound,
    ValidationError,
    InvalidState,
    NotJoinable,
    DuplicateIdentity,
)
from services.scoring_service import PlayerTotals, calculate_session_totals
from services.standings_service import Standing, rank_players
from database import transactional, get_settings

logger = logging.getLogger(__name__)


def _validate_name(field: str, name: str) -> str:
    max_length = get_settings().max_session_name_length
    name = (name or "").strip()
    if not name or len(name) > max_length:
        raise ValidationError(field, f"must be between 1 and {max_length} characters")
    return name


class RoundManager:
    """Session 生命週期管理器"""

    @staticmethod
    @transactional
    def create_session(
        db: Session,
        name: str,
        created_by: str,
        course_id: Optional[str] = None,
        format: Optional[GameFormat] = None
    ) -> GameSession:
        """
        建立新球局（狀態為 WAITING）

        參數：
            db: SQLAlchemy Session
            name: 球局名稱（1-100 字元）
            created_by: 建立者的 user id
            course_id: 球場 id（可省略）
            format: 賽制（預設 STROKE）

        返回：
            GameSession

        異常：
            ValidationError: 名稱為空或太長
        """
        game = GameSession(
            name=_validate_name("name", name),
            created_by=created_by,
            course_id=course_id,
            status=SessionStatus.WAITING,
            format=format or GameFormat.STROKE
        )
        db.add(game)
        db.flush()  # 取得 game.id

        db.add(EventLog(
            session_id=game.id,
            event_type="SESSION_CREATED",
            data={"created_by": created_by, "format": game.format.value}
        ))

        logger.info(f"Created session {game.id} ({game.format.value}) by {created_by}")
        return game

    @staticmethod
    @transactional
    def add_player(db: Session, session_id: UUID, name: str, identity: Identity,
                   team_id: Optional[str] = None) -> Player:
        """
        玩家加入球局

        前置條件：
        1. Session 必須存在
        2. Session 不能是 FINISHED（WAITING、ACTIVE 都可以加入）
        3. 同一個身份不能重複加入

        流程：
        1. 鎖定 Session（讓 position 分配排隊）
        2. 驗證前置條件
        3. 分配下一個 position（目前最大值 + 1）
        4. 記錄事件

        異常：
            NotFound: Session 不存在
            NotJoinable: Session 已結束
            DuplicateIdentity: 身份已經在此 Session 中
            ValidationError: 名稱為空或太長
        """
        name = _validate_name("player name", name)

        game = with_session_lock(session_id, db).first()
        if not game:
            raise NotFound("Session", session_id)

        if game.status == SessionStatus.FINISHED:
            raise NotJoinable(session_id)

        existing = db.query(Player).filter(
            Player.session_id == session_id,
            Player.identity_kind == identity.kind,
            Player.identity_ref == identity.ref
        ).first()
        if existing:
            raise DuplicateIdentity(session_id, identity)

        max_position = db.query(func.max(Player.position)).filter(
            Player.session_id == session_id
        ).scalar() or 0

        player = Player(
            session_id=session_id,
            name=name,
            identity_kind=identity.kind,
            identity_ref=identity.ref,
            position=max_position + 1,
            team_id=team_id
        )
        db.add(player)
        try:
            db.flush()
        except IntegrityError:
            # 併發加入：另一個請求已經先寫入同樣的身份
            raise DuplicateIdentity(session_id, identity)

        db.add(EventLog(
            session_id=session_id,
            event_type="PLAYER_JOINED",
            data={"player_id": str(player.id), "position": player.position}
        ))

        logger.info(
            f"Player {player.id} ({name}, {identity}) joined session {session_id} "
            f"at position {player.position}"
        )
        return player

    @staticmethod
    @transactional
    def remove_player(db: Session, player_id: UUID) -> None:
        """
        從球局移除玩家（只有 WAITING 時可以）

        連帶刪除：
        - 玩家的所有 ScoreEntry
        - 玩家的所有 ScoreHighlight

        注意：
            剩下玩家的 position 不會重新編號（可能出現空號）

        異常：
            NotFound: Player 不存在
            InvalidState: Session 不是 WAITING
        """
        player = db.query(Player).filter(Player.id == player_id).first()
        if not player:
            raise NotFound("Player", player_id)

        session_id = player.session_id
        game = with_session_lock(session_id, db).first()
        if game.status != SessionStatus.WAITING:
            raise InvalidState(
                f"Cannot remove players from session {session_id} (status: {game.status.value})"
            )

        scores_deleted = db.query(ScoreEntry).filter(
            ScoreEntry.player_id == player_id
        ).delete(synchronize_session=False)
        db.query(ScoreHighlight).filter(
            ScoreHighlight.player_id == player_id
        ).delete(synchronize_session=False)
        db.delete(player)

        db.add(EventLog(
            session_id=session_id,
            event_type="PLAYER_REMOVED",
            data={"player_id": str(player_id), "scores_deleted": scores_deleted}
        ))

        logger.info(f"Removed player {player_id} from session {session_id}")

    @staticmethod
    @transactional
    def start(db: Session, session_id: UUID) -> GameSession:
        """
        開始球局（狀態轉換 WAITING -> ACTIVE）

        前置條件：
        1. Session 必須存在
        2. Session 狀態必須是 WAITING
        3. 至少一位玩家

        異常：
            NotFound: Session 不存在
            InvalidState: 狀態不是 WAITING 或沒有玩家
        """
        game = with_session_lock(session_id, db).first()
        if not game:
            raise NotFound("Session", session_id)

        if game.status != SessionStatus.WAITING:
            raise InvalidState(
                f"Session {session_id} can only be started from waiting (status: {game.status.value})"
            )

        player_count = RoundManager.get_player_count(db, session_id)
        if player_count < 1:
            raise InvalidState(f"Cannot start session {session_id} without players")

        logger.info(f"Starting session {session_id} with {player_count} players")

        return SessionStateMachine.transition(session_id, SessionStatus.ACTIVE, db)

    @staticmethod
    @transactional
    def finish(db: Session, session_id: UUID) -> GameSession:
        """
        結束球局（狀態轉換 -> FINISHED）

        不是冪等的：第二次呼叫會丟 AlreadyFinished，
        讓獎勵判斷只看到一次明確的結束事件。

        異常：
            NotFound: Session 不存在
            AlreadyFinished: Session 已經結束
        """
        game = SessionStateMachine.transition(session_id, SessionStatus.FINISHED, db)
        logger.info(f"Session {session_id} finished at {game.ended_at.isoformat()}")
        return game

    @staticmethod
    def standings(db: Session, session_id: UUID) -> List[Standing]:
        """
        取得球局排名

        排名規則見 services.standings_service.rank_players

        異常：
            NotFound: Session 不存在
        """
        RoundManager.get_session(db, session_id)
        players = RoundManager.list_players(db, session_id)
        totals = calculate_session_totals(session_id, db)
        return rank_players(
            (player, totals.get(player.id, PlayerTotals())) for player in players
        )

    @staticmethod
    def get_session(db: Session, session_id: UUID) -> GameSession:
        game = db.query(GameSession).filter(GameSession.id == session_id).first()
        if not game:
            raise NotFound("Session", session_id)
        return game

    @staticmethod
    def get_player(db: Session, player_id: UUID) -> Player:
        player = db.query(Player).filter(Player.id == player_id).first()
        if not player:
            raise NotFound("Player", player_id)
        return player

    @staticmethod
    def list_players(db: Session, session_id: UUID) -> List[Player]:
        return db.query(Player).filter(
            Player.session_id == session_id
        ).order_by(Player.position).all()

    @staticmethod
    def get_player_count(db: Session, session_id: UUID) -> int:
        return db.query(Player).filter(Player.session_id == session_id).count()

    @staticmethod
    def session_preview(db: Session, session_id: UUID) -> Dict[str, Any]:
        """
        加入前的預覽資訊（QR code / 連結掃描後顯示）

        返回：
            session、player_count、can_join（未結束即可加入）
        """
        game = RoundManager.get_session(db, session_id)
        return {
            "session": game,
            "player_count": RoundManager.get_player_count(db, session_id),
            "can_join": game.status != SessionStatus.FINISHED,
        }

    @staticmethod
    def sessions_by_status(db: Session, status: SessionStatus, limit: int = 50) -> List[Dict[str, Any]]:
        """
        依狀態列出球局（監控 / 管理用），最新的在前

        參數：
            db: SQLAlchemy Session
            status: 要列出的狀態
            limit: 最多幾筆（預設 50）

        返回：
            [{"session": GameSession, "player_count": int}, ...]
        """
        if limit < 1:
            raise ValidationError("limit", f"must be at least 1, got {limit}")

        rows = (
            db.query(GameSession, func.count(Player.id))
            .outerjoin(Player, Player.session_id == GameSession.id)
            .filter(GameSession.status == status)
            .group_by(GameSession.id)
            .order_by(GameSession.started_at.desc(), GameSession.id)
            .limit(limit)
            .all()
        )
        return [{"session": game, "player_count": count} for game, count in rows]

    @staticmethod
    def active_sessions_for(db: Session, identity: Identity) -> List[GameSession]:
        """
        某個身份目前參加中（尚未結束）的球局，最新的在前
        """
        return (
            db.query(GameSession)
            .join(Player, Player.session_id == GameSession.id)
            .filter(
                Player.identity_kind == identity.kind,
                Player.identity_ref == identity.ref,
                GameSession.status != SessionStatus.FINISHED
            )
            .order_by(GameSession.started_at.desc())
            .all()
        )
