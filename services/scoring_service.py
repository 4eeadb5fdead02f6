"""
計分服務：桿數加總

純計算邏輯，不改變任何狀態
"""
from dataclasses import dataclass
from typing import Dict
from uuid import UUID

from sqlalchemy import func
from sqlalchemy.orm import Session

from models import ScoreEntry


@dataclass(frozen=True)
class PlayerTotals:
    total_strokes: int = 0
    holes_played: int = 0


def calculate_totals(player_id: UUID, db: Session) -> PlayerTotals:
    """
    計算一個玩家的總桿數和已打洞數

    每洞最多一筆 ScoreEntry，所以 holes_played 就是筆數

    參數：
        player_id: 玩家 ID
        db: SQLAlchemy Session

    返回：
        PlayerTotals（沒有成績時為 0, 0）
    """
    total, holes = db.query(
        func.coalesce(func.sum(ScoreEntry.strokes), 0),
        func.count(ScoreEntry.id)
    ).filter(ScoreEntry.player_id == player_id).one()
    return PlayerTotals(total_strokes=int(total), holes_played=int(holes))


def calculate_session_totals(session_id: UUID, db: Session) -> Dict[UUID, PlayerTotals]:
    """
    一次算出 Session 內所有有成績玩家的 totals

    沒有任何成績的玩家不會出現在結果中，呼叫者自行補 PlayerTotals()
    """
    rows = db.query(
        ScoreEntry.player_id,
        func.sum(ScoreEntry.strokes),
        func.count(ScoreEntry.id)
    ).filter(
        ScoreEntry.session_id == session_id
    ).group_by(ScoreEntry.player_id).all()

    return {
        player_id: PlayerTotals(total_strokes=int(total), holes_played=int(holes))
        for player_id, total, holes in rows
    }
