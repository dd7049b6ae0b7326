"""
執行期設定

讀取順序：.env（python-dotenv）→ 系統環境變數 → constants.py 預設值
"""

import os
from dataclasses import dataclass
from typing import Optional
from dotenv import load_dotenv
from loguru import logger

from . import constants


def _env_int(name: str, default: int) -> int:
    """讀取整數環境變數，格式錯誤時使用預設值"""
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        value = int(raw)
    except ValueError:
        logger.warning(f"環境變數 {name}={raw!r} 不是整數，使用預設值 {default}")
        return default
    if value <= 0:
        logger.warning(f"環境變數 {name}={value} 必須大於 0，使用預設值 {default}")
        return default
    return value


def _env_bool(name: str) -> bool:
    return os.getenv(name, '').lower() in ('true', '1', 'yes')


@dataclass(frozen=True)
class Settings:
    """
    音樂服務設定

    使用方式：
        settings = Settings.from_env()
        cache = MemoryCache(fetcher, temp_dir=settings.cache_dir)
    """

    cache_dir: str = constants.CACHE_DIR
    fetch_timeout: int = constants.FETCH_READ_TIMEOUT
    max_track_bytes: int = constants.MAX_TRACK_BYTES
    ffplay_path: Optional[str] = None
    debug: bool = False

    @classmethod
    def from_env(cls, dotenv: bool = True) -> "Settings":
        """
        從環境變數建立設定

        Args:
            dotenv: 是否先載入 .env 檔
        """
        if dotenv:
            load_dotenv()

        return cls(
            cache_dir=os.getenv("MUSIC_CACHE_DIR") or constants.CACHE_DIR,
            fetch_timeout=_env_int("MUSIC_FETCH_TIMEOUT", constants.FETCH_READ_TIMEOUT),
            max_track_bytes=_env_int("MUSIC_MAX_TRACK_BYTES", constants.MAX_TRACK_BYTES),
            ffplay_path=os.getenv("FFPLAY_PATH") or None,
            debug=_env_bool("DEBUG"),
        )
