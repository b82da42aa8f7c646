"""
Configuration management for setlist-sync
"""

import os
from functools import lru_cache
from pathlib import Path
from typing import Dict, List, Optional

from pydantic_settings import BaseSettings


def get_default_storage_path() -> str:
    """Get default setlist storage path based on environment."""
    # In Docker, storage is at /app/storage
    if os.path.exists("/app/storage"):
        return "/app/storage"
    return str(Path.home() / ".setlist-sync" / "setlists")


DEFAULT_NOTE_MAPPING: Dict[int, str] = {
    44: "seekToCurrentRegionStart",
    45: "toggleAutoplay",
    46: "toggleCountIn",
    48: "previousRegion",
    49: "pause",
    50: "togglePlay",
    51: "nextRegion",
}


class Settings(BaseSettings):
    """Application settings loaded from environment variables"""

    # REAPER web interface
    reaper_protocol: str = "http"
    reaper_host: str = "localhost"
    reaper_port: int = 8080
    reaper_timeout: float = 3.0

    # Polling loops (seconds)
    transport_poll_interval: float = 1.0
    watch_interval: float = 0.067  # ~15Hz end-of-region watch
    project_poll_interval: float = 2.0
    degraded_failure_threshold: int = 3

    # Transition tuning (seconds unless noted)
    trigger_window_before: float = 0.6
    trigger_window_after: float = 0.1
    transition_cooldown: float = 1.0
    settle_delay: float = 0.15
    watch_restart_delay: float = 0.1
    seek_epsilon: float = 0.001
    count_in_bars: int = 2
    count_in_default_bpm: float = 90.0
    default_bpm: float = 120.0

    # MIDI
    midi_enabled: bool = True
    midi_input_ports: List[str] = []
    midi_channel: Optional[int] = None  # None listens on every channel
    midi_debounce_ms: int = 200
    midi_note_mapping: Dict[int, str] = DEFAULT_NOTE_MAPPING

    # Setlist persistence ("file" or "redis")
    setlist_backend: str = "file"
    storage_base_path: str = get_default_storage_path()
    redis_host: str = "localhost"
    redis_port: int = 6379
    redis_password: str = ""
    redis_db: int = 0
    redis_socket_timeout: float = 2.0
    redis_key_prefix: str = "setlist-sync:setlists"

    # Logging
    log_level: str = "INFO"
    log_file: str = ""

    @property
    def reaper_base_url(self) -> str:
        """Base URL of the REAPER web interface."""
        return f"{self.reaper_protocol}://{self.reaper_host}:{self.reaper_port}"

    class Config:
        env_file = ".env"
        extra = "ignore"
        case_sensitive = False


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance"""
    return Settings()


settings = get_settings()
