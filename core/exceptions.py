"""
自定義異常類別

集中管理所有業務邏輯異常，方便 API 層統一處理
每個異常都帶有足夠的上下文（哪個欄位、哪個實體），讓 UI 可以顯示給使用者
"""


class RoundEngineError(Exception):
    """所有業務異常的基類"""
    pass


class NotFound(RoundEngineError):
    """實體不存在（Session / Player / Score / Reward）"""
    def __init__(self, entity, entity_id):
        self.entity = entity
        self.entity_id = entity_id
        super().__init__(f"{entity} {entity_id} not found")


class ValidationError(RoundEngineError):
    """輸入格式錯誤（桿數、推桿數、洞號、名稱）"""
    def __init__(self, field, message):
        self.field = field
        super().__init__(f"Invalid {field}: {message}")


# ============ Session 狀態相關異常 ============

class InvalidState(RoundEngineError):
    """違反狀態機前置條件"""
    pass


class AlreadyFinished(RoundEngineError):
    """Session 已經結束，不能再次結束"""
    def __init__(self, session_id):
        self.session_id = session_id
        super().__init__(f"Session {session_id} is already finished")


class NotJoinable(RoundEngineError):
    """Session 已結束，不接受新玩家"""
    def __init__(self, session_id):
        self.session_id = session_id
        super().__init__(f"Session {session_id} is finished and not accepting players")


class DuplicateIdentity(RoundEngineError):
    """同一個身份（永久或臨時）已經是此 Session 的玩家"""
    def __init__(self, session_id, identity):
        self.session_id = session_id
        self.identity = identity
        super().__init__(f"{identity} is already a player in session {session_id}")


# ============ Redemption 相關異常 ============

class Inactive(RoundEngineError):
    """獎勵已停用"""
    def __init__(self, reward_id):
        self.reward_id = reward_id
        super().__init__(f"Reward {reward_id} is not active")


class Expired(RoundEngineError):
    """獎勵已過期"""
    def __init__(self, reward_id, expires_at):
        self.reward_id = reward_id
        self.expires_at = expires_at
        super().__init__(f"Reward {reward_id} expired at {expires_at.isoformat()}")


class InventoryExhausted(RoundEngineError):
    """獎勵庫存已用完"""
    def __init__(self, reward_id, max_redemptions):
        self.reward_id = reward_id
        self.max_redemptions = max_redemptions
        super().__init__(
            f"Reward {reward_id} reached its redemption limit ({max_redemptions})"
        )


class AlreadyRedeemed(RoundEngineError):
    """玩家已經兌換過此獎勵"""
    def __init__(self, reward_id, player_id):
        self.reward_id = reward_id
        self.player_id = player_id
        super().__init__(f"Reward {reward_id} already redeemed by player {player_id}")


class SessionNotFinished(RoundEngineError):
    """Session 尚未結束，不能兌換獎勵"""
    def __init__(self, session_id, status):
        self.session_id = session_id
        self.status = status
        super().__init__(
            f"Session {session_id} must be finished to redeem rewards (status: {status})"
        )


class NotEligible(RoundEngineError):
    """玩家成績不符合獎勵條件"""
    def __init__(self, reward_id, player_id, failed_conditions):
        self.reward_id = reward_id
        self.player_id = player_id
        self.failed_conditions = list(failed_conditions)
        super().__init__(
            f"Player {player_id} is not eligible for reward {reward_id} "
            f"(failed: {', '.join(self.failed_conditions)})"
        )
