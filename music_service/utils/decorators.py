"""
音樂服務裝飾器

提供自動化功能：
- ensure_open: 確保服務尚未關閉
- absorb_errors: 在服務邊界吸收 MusicError 並記錄
- log_operation: 記錄操作的開始和結束
"""

from functools import wraps
from typing import Callable, TypeVar, ParamSpec
from loguru import logger

from .errors import MusicError, ServiceClosedError

P = ParamSpec('P')
T = TypeVar('T')


def ensure_open(func: Callable[P, T]) -> Callable[P, T]:
    """
    裝飾器：確保服務尚未 shutdown

    已關閉的服務再被呼叫屬於程式錯誤，直接拋出 ServiceClosedError。

    使用方式：
        @ensure_open
        async def play_track(self, index):
            # 保證此時服務仍可用
            ...
    """
    @wraps(func)
    async def wrapper(self, *args, **kwargs):
        if getattr(self, '_closed', False):
            raise ServiceClosedError(func.__name__)
        return await func(self, *args, **kwargs)

    return wrapper


def absorb_errors(func: Callable[P, T]) -> Callable[P, T]:
    """
    裝飾器：吸收 MusicError，只留下 log

    ServiceClosedError 屬於使用錯誤，照常拋出。
    失敗時返回 None，呼叫者看到的就是「什麼事都沒發生」。
    """
    @wraps(func)
    async def wrapper(*args, **kwargs):
        try:
            return await func(*args, **kwargs)
        except ServiceClosedError:
            raise
        except MusicError as e:
            logger.warning(f"[{func.__name__}] 已忽略錯誤: {e.message}")
            return None

    return wrapper


def log_operation(operation_name: str = None):
    """
    裝飾器：記錄操作的開始和結束

    使用方式：
        @log_operation("設定播放清單")
        async def set_playlist(self, tracks):
            ...
    """
    def decorator(func: Callable[P, T]) -> Callable[P, T]:
        name = operation_name or func.__name__

        @wraps(func)
        async def wrapper(*args, **kwargs):
            logger.debug(f"開始: {name}")
            try:
                result = await func(*args, **kwargs)
                logger.debug(f"完成: {name}")
                return result
            except Exception as e:
                logger.error(f"失敗: {name} - {e}")
                raise

        return wrapper
    return decorator
