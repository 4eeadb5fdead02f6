from sqlalchemy import create_engine
from sqlalchemy.orm import declarative_base, sessionmaker, Session
from pydantic_settings import BaseSettings, SettingsConfigDict
from functools import lru_cache, wraps
import logging

from core.exceptions import RoundEngineError

logger = logging.getLogger(__name__)


class Settings(BaseSettings):
    database_url: str = "sqlite:///./golf_rounds.db"
    sql_echo: bool = False
    max_session_name_length: int = 100

    model_config = SettingsConfigDict(env_file=".env")


@lru_cache()
def get_settings():
    return Settings()


def build_engine(database_url: str, echo: bool = False):
    """
    依資料庫類型建立 Engine

    SQLite 需要特殊設定：
    - check_same_thread=False：允許多執行緒共用連線（FastAPI 的 threadpool）
    - timeout：寫入鎖被佔用時等待，而不是立刻丟出 "database is locked"
    """
    connect_args = {}
    if database_url.startswith("sqlite"):
        connect_args = {"check_same_thread": False, "timeout": 30}
    return create_engine(
        database_url,
        connect_args=connect_args,
        echo=echo,
        pool_pre_ping=True
    )


settings = get_settings()

engine = build_engine(settings.database_url, echo=settings.sql_echo)
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
Base = declarative_base()


def get_db():
    """
    FastAPI dependency：提供 Database Session

    使用 yield 確保 session 在請求結束後會被關閉
    """
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def transactional(func):
    """
    把整個業務操作包成一個 transaction

    函式正常返回就 commit；任何異常都 rollback 後重新拋出。
    RoundEngineError 是預期中的業務拒絕（例如庫存已滿），只記 warning。

    被包裝的函式第一個參數（或 db= keyword）必須是 Session，
    函式內不要自己 commit。
    """
    @wraps(func)
    def wrapper(*args, **kwargs):
        db = None
        if args and isinstance(args[0], Session):
            db = args[0]
        elif 'db' in kwargs:
            db = kwargs['db']

        if db is None:
            raise ValueError(
                f"@transactional requires 'db: Session' as first argument, "
                f"but got args={args}, kwargs={kwargs}"
            )

        try:
            result = func(*args, **kwargs)
            db.commit()
            return result
        except RoundEngineError as e:
            # 業務規則拒絕：不需要 stack trace
            logger.warning(f"Transaction rejected in {func.__name__}: {e}")
            db.rollback()
            raise
        except Exception as e:
            logger.error(f"Transaction failed in {func.__name__}: {e}", exc_info=True)
            db.rollback()
            raise

    return wrapper
