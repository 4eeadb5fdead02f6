"""
Score API Endpoints

PUT 是 upsert：同一洞再次提交會覆蓋原本的成績
"""
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session
import logging

from database import get_db
from schemas import ActionResponse, ScoreSubmit, ScoreResponse, TotalsResponse
from core.score_ledger import ScoreLedger
from core.exceptions import RoundEngineError
from api.errors import to_http_exception

router = APIRouter(prefix="/api", tags=["scores"])
logger = logging.getLogger(__name__)


@router.put("/players/{player_id}/scores/{hole_number}", response_model=ScoreResponse)
def record_score(
    player_id: UUID,
    hole_number: int,
    score_data: ScoreSubmit,
    db: Session = Depends(get_db)
):
    """
    記錄一洞成績

    驗證：
    - hole_number 1-18、strokes 1-20、0 <= putts <= strokes（422）
    - 球局已結束時不可記錄（400）
    """
    try:
        location = None
        if score_data.latitude is not None:
            location = (score_data.latitude, score_data.longitude)

        entry = ScoreLedger.record_score(
            db,
            player_id,
            hole_number,
            score_data.strokes,
            putts=score_data.putts,
            location=location
        )
        return ScoreResponse.model_validate(entry)

    except RoundEngineError as e:
        raise to_http_exception(e)
    except Exception as e:
        logger.error(f"Failed to record score: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Internal error")


@router.delete("/scores/{score_id}", response_model=ActionResponse)
def delete_score(score_id: UUID, db: Session = Depends(get_db)):
    try:
        ScoreLedger.delete_score(db, score_id)
        return ActionResponse(status="ok")

    except RoundEngineError as e:
        raise to_http_exception(e)
    except Exception as e:
        logger.error(f"Failed to delete score: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Internal error")


@router.get("/players/{player_id}/totals", response_model=TotalsResponse)
def get_totals(player_id: UUID, db: Session = Depends(get_db)):
    try:
        totals = ScoreLedger.totals(db, player_id)
        return TotalsResponse(
            total_strokes=totals.total_strokes,
            holes_played=totals.holes_played
        )
    except RoundEngineError as e:
        raise to_http_exception(e)
    except Exception as e:
        logger.error(f"Failed to get totals: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Internal error")
