"""
Score Ledger：每位玩家每一洞一筆成績

職責：
1. 記錄成績（同一洞再次提交 = 覆蓋，不會產生第二筆）
2. 刪除成績（更正用）
3. 計算總桿數 / 已打洞數

Session 結束後成績不可再變動，讓獎勵判斷的結果固定。
"""
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session
from uuid import UUID
from typing import List, Optional, Tuple
import logging

from models import GameSession, Player, ScoreEntry, SessionStatus, utcnow
from core.locks import with_session_lock
from core.exceptions import NotFound, ValidationError, InvalidState
from services.highlight_service import record_highlight
from services.scoring_service import PlayerTotals, calculate_totals
from database import transactional

logger = logging.getLogger(__name__)

MIN_HOLE, MAX_HOLE = 1, 18
MIN_STROKES, MAX_STROKES = 1, 20


def validate_hole_number(hole_number: int) -> None:
    if not MIN_HOLE <= hole_number <= MAX_HOLE:
        raise ValidationError("hole_number", f"must be between {MIN_HOLE} and {MAX_HOLE}, got {hole_number}")


def validate_score(hole_number: int, strokes: int, putts: Optional[int]) -> None:
    """
    驗證成績格式

    規則：
    - hole_number：1-18
    - strokes：1-20
    - putts（可省略）：0 <= putts <= strokes

    異常：
        ValidationError: 帶有出錯的欄位名稱
    """
    validate_hole_number(hole_number)
    if not MIN_STROKES <= strokes <= MAX_STROKES:
        raise ValidationError("strokes", f"must be between {MIN_STROKES} and {MAX_STROKES}, got {strokes}")
    if putts is not None and not 0 <= putts <= strokes:
        raise ValidationError("putts", f"must be between 0 and strokes ({strokes}), got {putts}")


def _ensure_not_finished(game: GameSession, action: str) -> None:
    if game.status == SessionStatus.FINISHED:
        raise InvalidState(f"Cannot {action} for finished session {game.id}")


def _find_entry(player_id: UUID, hole_number: int, db: Session) -> Optional[ScoreEntry]:
    return db.query(ScoreEntry).filter(
        ScoreEntry.player_id == player_id,
        ScoreEntry.hole_number == hole_number
    ).first()


def _overwrite(entry: ScoreEntry, strokes: int, putts: Optional[int],
               latitude: Optional[float], longitude: Optional[float], db: Session) -> ScoreEntry:
    entry.strokes = strokes
    entry.putts = putts
    entry.recorded_at = utcnow()
    entry.latitude = latitude
    entry.longitude = longitude
    db.flush()
    logger.info(f"Updated score for player {entry.player_id} hole {entry.hole_number}: {strokes}")
    return entry


class ScoreLedger:
    """成績紀錄"""

    @staticmethod
    @transactional
    def record_score(
        db: Session,
        player_id: UUID,
        hole_number: int,
        strokes: int,
        putts: Optional[int] = None,
        location: Optional[Tuple[float, float]] = None
    ) -> ScoreEntry:
        """
        記錄一洞成績（upsert by player + hole）

        流程：
        1. 驗證格式
        2. 確認 Session 尚未結束
        3. 已有紀錄 -> 覆蓋 strokes / putts / 時間 / 位置
           沒有紀錄 -> 新增，並判斷是否產生 highlight
        4. 同一洞同時新增時，INSERT 失敗的一方改走覆蓋路徑（後寫入者為準）

        參數：
            db: SQLAlchemy Session
            player_id: Player UUID
            hole_number: 洞號
            strokes: 桿數
            putts: 推桿數（可省略）
            location: (latitude, longitude)（可省略）

        返回：
            ScoreEntry

        異常：
            ValidationError: 格式錯誤
            NotFound: Player 不存在
            InvalidState: Session 已結束
        """
        validate_score(hole_number, strokes, putts)

        player = db.query(Player).filter(Player.id == player_id).first()
        if not player:
            raise NotFound("Player", player_id)

        # 鎖 Session：不能和 finish 同時進行
        game = with_session_lock(player.session_id, db).first()
        _ensure_not_finished(game, "record scores")

        latitude, longitude = location if location else (None, None)

        entry = _find_entry(player_id, hole_number, db)
        if entry:
            return _overwrite(entry, strokes, putts, latitude, longitude, db)

        is_first_score = db.query(ScoreEntry).filter(
            ScoreEntry.player_id == player_id
        ).count() == 0

        entry = ScoreEntry(
            player_id=player_id,
            session_id=player.session_id,
            hole_number=hole_number,
            strokes=strokes,
            putts=putts,
            recorded_at=utcnow(),
            latitude=latitude,
            longitude=longitude
        )
        db.add(entry)
        try:
            db.flush()
        except IntegrityError:
            # 另一個請求剛新增了同一洞：放棄這次 INSERT，改成覆蓋（後寫入者為準）
            db.rollback()
            logger.info(f"Concurrent insert for player {player_id} hole {hole_number}, overwriting")
            game = with_session_lock(player.session_id, db).first()
            _ensure_not_finished(game, "record scores")
            entry = _find_entry(player_id, hole_number, db)
            if not entry:
                raise InvalidState(f"Score for player {player_id} hole {hole_number} was removed concurrently")
            return _overwrite(entry, strokes, putts, latitude, longitude, db)

        record_highlight(player, entry, is_first_score, db)

        logger.info(f"Recorded score for player {player_id} hole {hole_number}: {strokes}")
        return entry

    @staticmethod
    @transactional
    def delete_score(db: Session, score_id: UUID) -> None:
        """
        刪除一筆成績（Session 結束後不可刪除）

        異常：
            NotFound: ScoreEntry 不存在
            InvalidState: Session 已結束
        """
        entry = db.query(ScoreEntry).filter(ScoreEntry.id == score_id).first()
        if not entry:
            raise NotFound("Score", score_id)

        game = with_session_lock(entry.session_id, db).first()
        _ensure_not_finished(game, "delete scores")

        db.delete(entry)
        logger.info(f"Deleted score {score_id} (player {entry.player_id} hole {entry.hole_number})")

    @staticmethod
    def totals(db: Session, player_id: UUID) -> PlayerTotals:
        """
        玩家的總桿數和已打洞數（純查詢）

        異常：
            NotFound: Player 不存在
        """
        if not db.query(Player).filter(Player.id == player_id).first():
            raise NotFound("Player", player_id)
        return calculate_totals(player_id, db)

    @staticmethod
    def hole_scores(db: Session, session_id: UUID, hole_number: int) -> List[ScoreEntry]:
        """
        某一洞所有玩家的成績，桿數少的在前

        異常：
            ValidationError: 洞號不在 1-18
            NotFound: Session 不存在
        """
        validate_hole_number(hole_number)
        if not db.query(GameSession).filter(GameSession.id == session_id).first():
            raise NotFound("Session", session_id)

        return db.query(ScoreEntry).filter(
            ScoreEntry.session_id == session_id,
            ScoreEntry.hole_number == hole_number
        ).order_by(ScoreEntry.strokes, ScoreEntry.recorded_at).all()
