"""
音樂服務常數

所有可調整的預設值集中在這裡，執行期可由 config.Settings 以環境變數覆寫。
"""

# === 快取 ===
CACHE_DIR = "./temp/music"             # 暫存檔（materialize）存放目錄
TEMP_FILE_PREFIX = "music_service_"    # 暫存檔名前綴
MAX_TRACK_BYTES = 200 * 1024 * 1024    # 單首歌曲允許下載的最大位元組數

# === 下載 ===
FETCH_CONNECT_TIMEOUT = 30             # 連線超時（秒）
FETCH_READ_TIMEOUT = 30                # 讀取超時（秒）
FETCH_CHUNK_SIZE = 8192                # 每次讀取的區塊大小
REMOTE_SCHEMES = ("http", "https")     # 需要快取到記憶體的來源

# === 播放後端 ===
FFPLAY_BINARY = "ffplay"
FFPLAY_STARTUP_PROBE = 0.5             # 啟動後觀察多久判斷是否載入失敗（秒）

# === 通知 ===
NOTIFICATION_APP_NAME = "Music Service"
NOTIFICATION_IDLE_TEXT = "No song playing"

# === Track ===
UNKNOWN_ARTIST = "Unknown Artist"
