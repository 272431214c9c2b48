import os
from dataclasses import dataclass

from dotenv import load_dotenv

load_dotenv()


def env_int(name: str, default: int) -> int:
    v = os.getenv(name)
    if v is None or v.strip() == "":
        return default
    try:
        return int(v.strip())
    except ValueError:
        return default


def env_str(name: str, default: str) -> str:
    v = os.getenv(name)
    if v is None or v.strip() == "":
        return default
    return v.strip()


@dataclass(frozen=True)
class Settings:
    discord_token: str
    watch_channel_id: int
    store_path: str
    port: int
    help_auto_delete_sec: int
    leaderboard_size: int
    max_log_bytes: int

    # logging
    log_level: str = "INFO"
    log_file_level: str = "DEBUG"
    log_file: str = "log.txt"
    log_max_bytes: int = 5_000_000
    log_backups: int = 2

    @classmethod
    def from_env(cls) -> "Settings":
        return cls(
            discord_token=env_str("DISCORD_TOKEN", ""),
            watch_channel_id=env_int("WATCH_CHANNEL_ID", 0),
            store_path=env_str("STORE_PATH", "frontline_store.json"),
            port=env_int("PORT", 8080),
            help_auto_delete_sec=env_int("HELP_AUTO_DELETE_SEC", 30),
            leaderboard_size=max(1, env_int("LEADERBOARD_SIZE", 8)),
            max_log_bytes=env_int("MAX_LOG_BYTES", 2_000_000),
            log_level=env_str("LOG_LEVEL", "INFO").upper(),
            log_file_level=env_str("LOG_FILE_LEVEL", "DEBUG").upper(),
            log_file=env_str("LOG_FILE", "log.txt"),
            log_max_bytes=max(0, env_int("LOG_MAX_BYTES", 5_000_000)),
            log_backups=max(0, env_int("LOG_BACKUPS", 2)),
        )
