from loguru import logger
from dotenv import load_dotenv

import asyncio
import os
import sys
from pathlib import Path

from music_service import (
    FFplayBackend,
    HttpFetcher,
    LoggingNotificationBridge,
    MusicService,
    PlaybackListener,
    Settings,
    Track,
    find_ffplay,
)
from music_service.core.track import SourceKind, classify

version = "v1.0"

HELP_TEXT = "指令: play | pause | next | prev | <編號> | status | help | quit"

# ─────────────────────────────────────────────────────────
#  主控台監聽者
# ─────────────────────────────────────────────────────────

class ConsoleListener(PlaybackListener):
    async def on_track_changed(self, track, index):
        print(f"♪ [{index + 1}] {track.display_name} - {track.artist} ({track.format_ext or '?'})")

    async def on_playback_state_changed(self, is_playing):
        print("▶️ 播放中" if is_playing else "⏸️ 已暫停 / 停止")


def build_tracks(locators):
    """把命令列參數轉成 Track（路徑或 URI）"""
    tracks = []
    for locator in locators:
        if classify(locator) is SourceKind.LOCAL:
            tracks.append(Track.from_path(locator))
        else:
            name = Path(locator.split("?", 1)[0]).name or locator
            tracks.append(Track.from_uri(locator, name))
    return tracks

# ─────────────────────────────────────────────────────────
#  互動式主控台
# ─────────────────────────────────────────────────────────

async def console(service: MusicService):
    print(HELP_TEXT)
    while True:
        try:
            line = (await asyncio.to_thread(input, "> ")).strip().lower()
        except EOFError:
            return

        match line:
            case "":
                continue
            case "play" | "p":
                await service.play()
            case "pause" | "s":
                await service.pause()
            case "next" | "n":
                await service.next()
            case "prev" | "b":
                await service.previous()
            case "status":
                status = service.get_status()
                track = status["current_track"]
                print(
                    f"{status['state']} | {track.display_name if track else '-'} "
                    f"[{status['current_index'] + 1}/{status['playlist_size']}] {status['elapsed']} | "
                    f"快取: {status['cached_tracks']} 首 / {status['cached_size']} "
                    f"(下載中 {status['pending_downloads']})"
                )
            case "help" | "?":
                print(HELP_TEXT)
            case "quit" | "q" | "exit":
                return
            case _ if line.isdigit():
                if await service.play_track(int(line) - 1) is None:
                    print("無法播放這一首")
            case _:
                print(f"未知指令: {line}")


async def run(locators):
    settings = Settings.from_env(dotenv=False)

    ffplay = find_ffplay(settings.ffplay_path)
    if not ffplay:
        logger.critical("❌ 找不到 ffplay，請安裝 FFmpeg 或設定 FFPLAY_PATH")
        return 1

    fetcher = HttpFetcher(
        read_timeout=settings.fetch_timeout,
        max_bytes=settings.max_track_bytes,
    )
    service = MusicService(
        backend=FFplayBackend(ffplay_path=ffplay),
        fetcher=fetcher,
        cache_dir=settings.cache_dir,
    )
    service.set_listener(ConsoleListener())
    service.attach_notification(LoggingNotificationBridge())

    try:
        await service.set_playlist(build_tracks(locators))
        await service.play_track(0)
        await console(service)
    finally:
        await service.shutdown()
        await fetcher.close()
    return 0

# ─────────────────────────────────────────────────────────
#  Loguru 記錄器設定
# ─────────────────────────────────────────────────────────

def set_logger():
    """設定 Loguru 的輸出行為（終端機 & 檔案）"""
    logger.remove()
    debug_mode = os.getenv('DEBUG', '').lower() in ('true', '1', 'yes')

    # 終端輸出
    logger.add(sys.stdout, level="DEBUG" if debug_mode else "INFO", colorize=True)

    # 檔案輸出（每 7 天輪替，保留 30 天，自動壓縮）
    logger.add(
        "./logs/system.log",
        rotation="7 days",
        retention="30 days",
        encoding="UTF-8",
        compression="zip",
        level="INFO",
        format="{time:YYYY-MM-DD HH:mm:ss} | {level} | {message}"
    )

# ─────────────────────────────────────────────────────────
#  程式入口點
# ─────────────────────────────────────────────────────────

def main():
    load_dotenv()
    set_logger()

    locators = sys.argv[1:]
    if not locators:
        print(f"Music Service {version}\n用法: python main.py <檔案或 URL> [...]")
        sys.exit(1)

    try:
        sys.exit(asyncio.run(run(locators)))
    except KeyboardInterrupt:
        logger.info("已中斷")


if __name__ == '__main__':
    main()
