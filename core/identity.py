"""
玩家身份：永久帳號（User）或臨時訪客（Guest），兩者互斥

資料結構優先：用 tagged variant 表達「恰好一種身份」，
而不是兩個可為 NULL 的欄位，讓不變量由結構保證。
"""
from dataclasses import dataclass
from typing import Union

from models import IdentityKind


@dataclass(frozen=True)
class PermanentIdentity:
    user_id: str

    kind = IdentityKind.PERMANENT

    @property
    def ref(self) -> str:
        return self.user_id

    def __str__(self):
        return f"user {self.user_id}"


@dataclass(frozen=True)
class EphemeralIdentity:
    guest_id: str

    kind = IdentityKind.EPHEMERAL

    @property
    def ref(self) -> str:
        return self.guest_id

    def __str__(self):
        return f"guest {self.guest_id}"


Identity = Union[PermanentIdentity, EphemeralIdentity]


def identity_from_columns(kind: IdentityKind, ref: str) -> Identity:
    """
    從資料庫欄位 (identity_kind, identity_ref) 還原 Identity

    參數：
        kind: IdentityKind enum
        ref: user id 或 guest id

    返回：
        PermanentIdentity 或 EphemeralIdentity
    """
    if kind == IdentityKind.PERMANENT:
        return PermanentIdentity(user_id=ref)
    return EphemeralIdentity(guest_id=ref)
