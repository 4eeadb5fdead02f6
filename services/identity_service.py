"""
身份遷移服務：訪客升級成正式帳號時，改寫玩家的身份

只改 Player 的 (identity_kind, identity_ref) 兩個欄位。
ScoreEntry、RedemptionReceipt 都是用 player_id 關聯，所以完全不需要動。
"""
from uuid import UUID
import logging

from sqlalchemy.orm import Session

from models import Player, IdentityKind
from core.identity import Identity, EphemeralIdentity, PermanentIdentity
from core.exceptions import NotFound, DuplicateIdentity
from database import transactional

logger = logging.getLogger(__name__)


def _identity_taken(session_id: UUID, identity: Identity, exclude_player_id: UUID, db: Session) -> bool:
    return db.query(Player).filter(
        Player.session_id == session_id,
        Player.identity_kind == identity.kind,
        Player.identity_ref == identity.ref,
        Player.id != exclude_player_id
    ).first() is not None


@transactional
def rewrite_identity(db: Session, player_id: UUID, identity: Identity) -> Player:
    """
    改寫單一玩家的身份

    參數：
        db: SQLAlchemy Session
        player_id: Player UUID
        identity: 新身份（PermanentIdentity 或 EphemeralIdentity）

    返回：
        更新後的 Player

    異常：
        NotFound: Player 不存在
        DuplicateIdentity: 新身份已經是同一個 Session 的其他玩家
    """
    player = db.query(Player).filter(Player.id == player_id).with_for_update().first()
    if not player:
        raise NotFound("Player", player_id)

    if _identity_taken(player.session_id, identity, player.id, db):
        raise DuplicateIdentity(player.session_id, identity)

    previous = player.identity
    player.identity_kind = identity.kind
    player.identity_ref = identity.ref
    db.flush()

    logger.info(f"Player {player.id} identity rewritten: {previous} -> {identity}")
    return player


@transactional
def migrate_guest(db: Session, guest_id: str, user_id: str) -> int:
    """
    把某個訪客的所有玩家紀錄改成正式帳號

    流程：
    1. 找出所有 Ephemeral(guest_id) 的玩家
    2. 檢查目標帳號沒有已經在同一個 Session 裡
    3. 全部改寫（同一個 transaction，失敗就全部 rollback）

    參數：
        db: SQLAlchemy Session
        guest_id: 訪客 ID
        user_id: 正式帳號 ID

    返回：
        改寫的玩家數量

    異常：
        DuplicateIdentity: 帳號已經在某個 Session 中有玩家紀錄
    """
    source = EphemeralIdentity(guest_id=guest_id)
    target = PermanentIdentity(user_id=user_id)

    players = db.query(Player).filter(
        Player.identity_kind == IdentityKind.EPHEMERAL,
        Player.identity_ref == guest_id
    ).with_for_update().all()

    for player in players:
        if _identity_taken(player.session_id, target, player.id, db):
            raise DuplicateIdentity(player.session_id, target)
        player.identity_kind = target.kind
        player.identity_ref = target.ref

    db.flush()

    logger.info(f"Migrated {len(players)} player records from {source} to {target}")
    return len(players)
