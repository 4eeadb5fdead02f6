"""
命名服務：生成兌換收據代碼

純計算邏輯，不涉及狀態轉換
"""
from datetime import datetime
import string

from sqlalchemy.orm import Session

from models import RedemptionReceipt

_BASE36_DIGITS = string.digits + string.ascii_uppercase


def to_base36(number: int) -> str:
    """
    非負整數轉成大寫 base36

    範例：
        to_base36(0) -> "0"
        to_base36(35) -> "Z"
        to_base36(36) -> "10"
    """
    if number < 0:
        raise ValueError(f"to_base36 expects a non-negative integer, got {number}")
    if number == 0:
        return "0"
    digits = []
    while number:
        number, remainder = divmod(number, 36)
        digits.append(_BASE36_DIGITS[remainder])
    return "".join(reversed(digits))


def generate_receipt_code(sponsor_id, player_id, redeemed_at: datetime) -> str:
    """
    生成兌換收據代碼

    格式：「贊助商 ID 末 4 碼-玩家 ID 末 4 碼-兌換時間（毫秒，base36）」
    範例：1A2B-9F3C-LZ8K2Q1A

    注意：
    - 只是給客服查詢用的可讀代碼，不是安全 token
    - 同樣的輸入一定產生同樣的代碼
    - 不檢查唯一性（由呼叫者負責）
    """
    timestamp_ms = int(redeemed_at.timestamp() * 1000)
    sponsor_suffix = str(sponsor_id).replace("-", "")[-4:].upper()
    player_suffix = str(player_id).replace("-", "")[-4:].upper()
    return f"{sponsor_suffix}-{player_suffix}-{to_base36(timestamp_ms)}"


def receipt_code_taken(code: str, db: Session) -> bool:
    return db.query(RedemptionReceipt).filter(RedemptionReceipt.code == code).first() is not None
