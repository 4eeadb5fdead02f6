"""
Reward API Endpoints

職責：
1. 列出啟用中的獎勵
2. 列出玩家可兌換的獎勵（不影響庫存，可重複呼叫）
3. 兌換獎勵
4. 兌換紀錄、贊助商統計
"""
from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session
import logging

from database import get_db
from schemas import (
    RewardResponse,
    RedeemRequest,
    ReceiptResponse,
    RedemptionHistoryItem,
    SponsorSummaryResponse,
)
from core.redemption_ledger import RedemptionLedger
from core.round_manager import RoundManager
from core.exceptions import RoundEngineError
from services.reward_catalog_service import active_rewards_for
from services.eligibility_service import candidates
from services.history_service import get_player_redemptions, get_sponsor_summary
from api.errors import to_http_exception

router = APIRouter(prefix="/api", tags=["rewards"])
logger = logging.getLogger(__name__)


@router.get("/rewards", response_model=List[RewardResponse])
def list_active_rewards(sponsor_id: Optional[UUID] = Query(None), db: Session = Depends(get_db)):
    try:
        return [RewardResponse.model_validate(r) for r in active_rewards_for(db, sponsor_id)]
    except RoundEngineError as e:
        raise to_http_exception(e)
    except Exception as e:
        logger.error(f"Failed to list active rewards: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Internal error")


@router.get(
    "/sessions/{session_id}/players/{player_id}/rewards",
    response_model=List[RewardResponse]
)
def list_candidate_rewards(session_id: UUID, player_id: UUID, db: Session = Depends(get_db)):
    """
    玩家目前可兌換的獎勵

    球局尚未結束時回傳空列表
    """
    try:
        return [
            RewardResponse.model_validate(reward)
            for reward in candidates(db, session_id, player_id)
        ]
    except RoundEngineError as e:
        raise to_http_exception(e)
    except Exception as e:
        logger.error(f"Failed to list candidate rewards: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Internal error")


@router.post("/rewards/{reward_id}/redeem", response_model=ReceiptResponse)
def redeem_reward(reward_id: UUID, data: RedeemRequest, db: Session = Depends(get_db)):
    """
    兌換獎勵

    所有條件在這裡重新檢查；庫存已滿、已兌換過等衝突回傳 409
    """
    try:
        receipt = RedemptionLedger.redeem(db, reward_id, data.player_id, data.session_id)
        return ReceiptResponse.model_validate(receipt)

    except RoundEngineError as e:
        raise to_http_exception(e)
    except Exception as e:
        logger.error(f"Failed to redeem reward: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Internal error")


@router.get("/players/{player_id}/redemptions", response_model=List[RedemptionHistoryItem])
def get_redemption_history(player_id: UUID, db: Session = Depends(get_db)):
    try:
        RoundManager.get_player(db, player_id)
        return [
            RedemptionHistoryItem(
                receipt=ReceiptResponse.model_validate(item["receipt"]),
                reward=RewardResponse.model_validate(item["reward"])
            )
            for item in get_player_redemptions(player_id, db)
        ]
    except RoundEngineError as e:
        raise to_http_exception(e)
    except Exception as e:
        logger.error(f"Failed to get redemption history: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Internal error")


@router.get("/sponsors/{sponsor_id}/summary", response_model=SponsorSummaryResponse)
def get_sponsor_redemption_summary(sponsor_id: UUID, db: Session = Depends(get_db)):
    try:
        return SponsorSummaryResponse(**get_sponsor_summary(sponsor_id, db))
    except RoundEngineError as e:
        raise to_http_exception(e)
    except Exception as e:
        logger.error(f"Failed to get sponsor redemption summary: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Internal error")
