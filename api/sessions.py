"""
Session API Endpoints

職責：
1. 建立 / 查詢球局
2. 開始 / 結束球局
3. 排名、單洞成績、highlights

所有業務邏輯集中在 RoundManager / ScoreLedger，這裡只做轉換
"""
from typing import List
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session
import logging

from database import get_db
from models import SessionStatus
from schemas import (
    SessionCreate,
    SessionResponse,
    SessionListItem,
    SessionPreviewResponse,
    StandingResponse,
    PlayerResponse,
    ScoreResponse,
    HighlightResponse,
)
from core.round_manager import RoundManager
from core.score_ledger import ScoreLedger
from core.exceptions import RoundEngineError
from services.highlight_service import list_highlights
from api.errors import to_http_exception

router = APIRouter(prefix="/api/sessions", tags=["sessions"])
logger = logging.getLogger(__name__)


@router.post("", response_model=SessionResponse)
def create_session(data: SessionCreate, db: Session = Depends(get_db)):
    """
    建立球局（狀態為 waiting）
    """
    try:
        game = RoundManager.create_session(
            db,
            name=data.name,
            created_by=data.created_by,
            course_id=data.course_id,
            format=data.format
        )
        return SessionResponse.model_validate(game)

    except RoundEngineError as e:
        raise to_http_exception(e)
    except Exception as e:
        logger.error(f"Failed to create session: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Internal error")


@router.get("", response_model=List[SessionListItem])
def list_sessions_by_status(
    status: SessionStatus = Query(...),
    limit: int = Query(50, ge=1, le=200),
    db: Session = Depends(get_db)
):
    """
    依狀態列出球局和人數（監控 / 管理用），最新的在前
    """
    try:
        return [
            SessionListItem(
                session=SessionResponse.model_validate(item["session"]),
                player_count=item["player_count"]
            )
            for item in RoundManager.sessions_by_status(db, status, limit)
        ]
    except RoundEngineError as e:
        raise to_http_exception(e)
    except Exception as e:
        logger.error(f"Failed to list sessions: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Internal error")

@router.get("/{session_id}", response_model=SessionResponse)
def get_session(session_id: UUID, db: Session = Depends(get_db)):
    try:
        return SessionResponse.model_validate(RoundManager.get_session(db, session_id))
    except RoundEngineError as e:
        raise to_http_exception(e)
    except Exception as e:
        logger.error(f"Failed to get session: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Internal error")


@router.get("/{session_id}/preview", response_model=SessionPreviewResponse)
def get_session_preview(session_id: UUID, db: Session = Depends(get_db)):
    """
    加入前的預覽（球局名稱、人數、是否還能加入）
    """
    try:
        preview = RoundManager.session_preview(db, session_id)
        return SessionPreviewResponse(
            session=SessionResponse.model_validate(preview["session"]),
            player_count=preview["player_count"],
            can_join=preview["can_join"]
        )
    except RoundEngineError as e:
        raise to_http_exception(e)
    except Exception as e:
        logger.error(f"Failed to get session preview: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Internal error")


@router.post("/{session_id}/start", response_model=SessionResponse)
def start_session(session_id: UUID, db: Session = Depends(get_db)):
    """
    開始球局（waiting -> active）

    前置條件：
    - 至少一位玩家
    """
    try:
        return SessionResponse.model_validate(RoundManager.start(db, session_id))

    except RoundEngineError as e:
        raise to_http_exception(e)
    except Exception as e:
        logger.error(f"Failed to start session: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Internal error")


@router.post("/{session_id}/finish", response_model=SessionResponse)
def finish_session(session_id: UUID, db: Session = Depends(get_db)):
    """
    結束球局（-> finished）

    第二次呼叫回傳 409 AlreadyFinished
    """
    try:
        return SessionResponse.model_validate(RoundManager.finish(db, session_id))

    except RoundEngineError as e:
        raise to_http_exception(e)
    except Exception as e:
        logger.error(f"Failed to finish session: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Internal error")


@router.get("/{session_id}/standings", response_model=List[StandingResponse])
def get_standings(session_id: UUID, db: Session = Depends(get_db)):
    """
    取得排名（總桿數少的在前，同桿數打比較多洞的在前）
    """
    try:
        return [
            StandingResponse(
                rank=standing.rank,
                player=PlayerResponse.model_validate(standing.player),
                total_strokes=standing.totals.total_strokes,
                holes_played=standing.totals.holes_played
            )
            for standing in RoundManager.standings(db, session_id)
        ]
    except RoundEngineError as e:
        raise to_http_exception(e)
    except Exception as e:
        logger.error(f"Failed to get standings: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Internal error")


@router.get("/{session_id}/holes/{hole_number}", response_model=List[ScoreResponse])
def get_hole_scores(session_id: UUID, hole_number: int, db: Session = Depends(get_db)):
    try:
        return [
            ScoreResponse.model_validate(entry)
            for entry in ScoreLedger.hole_scores(db, session_id, hole_number)
        ]
    except RoundEngineError as e:
        raise to_http_exception(e)
    except Exception as e:
        logger.error(f"Failed to get hole scores: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Internal error")


@router.get("/{session_id}/highlights", response_model=List[HighlightResponse])
def get_highlights(session_id: UUID, db: Session = Depends(get_db)):
    try:
        RoundManager.get_session(db, session_id)
        return [HighlightResponse.model_validate(h) for h in list_highlights(session_id, db)]
    except RoundEngineError as e:
        raise to_http_exception(e)
    except Exception as e:
        logger.error(f"Failed to get highlights: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Internal error")
