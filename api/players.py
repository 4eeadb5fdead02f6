"""
Player API Endpoints

職責：
1. 玩家加入 / 離開球局
2. 查詢參賽名單
3. 訪客升級帳號時的身份遷移
"""
from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session
import logging

from database import get_db
from schemas import (
    ActionResponse,
    IdentityMigrate,
    IdentityMigrateResponse,
    IdentityPayload,
    PlayerJoin,
    PlayerResponse,
    SessionResponse,
)
from core.round_manager import RoundManager
from core.exceptions import RoundEngineError
from services.identity_service import migrate_guest
from api.errors import to_http_exception

router = APIRouter(prefix="/api", tags=["players"])
logger = logging.getLogger(__name__)


@router.post("/sessions/{session_id}/players", response_model=PlayerResponse)
def join_session(session_id: UUID, player_data: PlayerJoin, db: Session = Depends(get_db)):
    """
    加入球局

    前置條件：
    - 球局必須存在且尚未結束
    - 同一個 user / guest 不能重複加入

    流程：
    1. 把 user_id / guest_id 轉成 Identity
    2. RoundManager.add_player 分配 position
    3. 返回玩家資訊
    """
    try:
        player = RoundManager.add_player(
            db,
            session_id,
            name=player_data.name,
            identity=player_data.to_identity(),
            team_id=player_data.team_id
        )
        return PlayerResponse.model_validate(player)

    except RoundEngineError as e:
        raise to_http_exception(e)
    except Exception as e:
        logger.error(f"Failed to join session: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Internal error")


@router.get("/sessions/{session_id}/players", response_model=List[PlayerResponse])
def list_players(session_id: UUID, db: Session = Depends(get_db)):
    try:
        RoundManager.get_session(db, session_id)
        return [
            PlayerResponse.model_validate(player)
            for player in RoundManager.list_players(db, session_id)
        ]
    except RoundEngineError as e:
        raise to_http_exception(e)
    except Exception as e:
        logger.error(f"Failed to list players: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Internal error")


@router.delete("/players/{player_id}", response_model=ActionResponse)
def remove_player(player_id: UUID, db: Session = Depends(get_db)):
    """
    移除玩家（只有 waiting 時可以），連帶刪除成績和 highlights
    """
    try:
        RoundManager.remove_player(db, player_id)
        return ActionResponse(status="ok")

    except RoundEngineError as e:
        raise to_http_exception(e)
    except Exception as e:
        logger.error(f"Failed to remove player: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Internal error")


@router.get("/identities/sessions", response_model=List[SessionResponse])
def get_active_sessions(
    user_id: Optional[str] = Query(None),
    guest_id: Optional[str] = Query(None),
    db: Session = Depends(get_db)
):
    """
    某個 user / guest 參加中、尚未結束的球局
    """
    try:
        identity = IdentityPayload(user_id=user_id, guest_id=guest_id).to_identity()
    except ValueError as e:
        raise HTTPException(status_code=422, detail=str(e))

    try:
        return [
            SessionResponse.model_validate(game)
            for game in RoundManager.active_sessions_for(db, identity)
        ]
    except Exception as e:
        logger.error(f"Failed to get active sessions: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Internal error")


@router.post("/identities/migrate", response_model=IdentityMigrateResponse)
def migrate_identity(data: IdentityMigrate, db: Session = Depends(get_db)):
    """
    訪客升級成正式帳號：把所有 guest 玩家紀錄改成 user

    成績和兌換收據都用 player_id 關聯，不會受影響
    """
    try:
        migrated = migrate_guest(db, data.guest_id, data.user_id)
        return IdentityMigrateResponse(migrated=migrated)

    except RoundEngineError as e:
        raise to_http_exception(e)
    except Exception as e:
        logger.error(f"Failed to migrate identity: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Internal error")
