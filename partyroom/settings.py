# partyroom/settings.py
from __future__ import annotations

from typing import Optional

from pydantic import BaseModel
import os


def _flag(value: str) -> bool:
    return value.strip().lower() in ("1", "true", "yes", "y", "on")


class Settings(BaseModel):
    APP_NAME: str = "partyroom-server"

    # Server
    HOST: str = "0.0.0.0"
    PORT: int = 8000

    # Logging
    LOG_LEVEL: str = "INFO"
    LOG_JSON: bool = False

    # WebSocket origin policy (comma-separated)
    WS_ALLOWED_ORIGINS: str = "http://localhost:3000,http://127.0.0.1:3000,null"
    # Dev helper: allow any private LAN IP on port 5173
    WS_ALLOW_LAN_ORIGINS: bool = True

    # Redis pub/sub relay (host-owned rooms)
    REDIS_URL: str = "redis://localhost:6379/0"
    ROOM_TTL_SEC: int = 1800

    # Rooms
    ROOM_CODE_ATTEMPTS: int = 50
    RNG_SEED: Optional[int] = None


def get_settings() -> Settings:
    seed = os.getenv("RNG_SEED", "").strip()
    return Settings(
        APP_NAME=os.getenv("APP_NAME", "partyroom-server"),
        HOST=os.getenv("HOST", "0.0.0.0"),
        PORT=int(os.getenv("PORT", "8000")),
        LOG_LEVEL=os.getenv("LOG_LEVEL", "INFO"),
        LOG_JSON=_flag(os.getenv("LOG_JSON", "false")),
        WS_ALLOWED_ORIGINS=os.getenv(
            "WS_ALLOWED_ORIGINS",
            "http://localhost:3000,http://127.0.0.1:3000,null",
        ),
        WS_ALLOW_LAN_ORIGINS=_flag(os.getenv("WS_ALLOW_LAN_ORIGINS", "true")),
        REDIS_URL=os.getenv("REDIS_URL", "redis://localhost:6379/0"),
        ROOM_TTL_SEC=int(os.getenv("ROOM_TTL_SEC", "1800")),
        ROOM_CODE_ATTEMPTS=int(os.getenv("ROOM_CODE_ATTEMPTS", "50")),
        RNG_SEED=int(seed) if seed else None,
    )
