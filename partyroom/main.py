# partyroom/main.py
from __future__ import annotations

import random
from typing import Optional

import structlog
import uvicorn
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from partyroom import __version__
from partyroom.domain.games import GAMES
from partyroom.domain.room.machine import RoomStateMachine
from partyroom.log import configure_logging
from partyroom.settings import Settings, get_settings
from partyroom.store.registry import RoomRegistry
from partyroom.transport.admin import router as admin_router
from partyroom.transport.ws import router as ws_router
from partyroom.transport.ws_manager import WSManager

logger = structlog.get_logger(__name__)


def create_app(settings: Optional[Settings] = None, *, rng: Optional[random.Random] = None) -> FastAPI:
    settings = settings or get_settings()
    configure_logging(settings.LOG_LEVEL, json=settings.LOG_JSON)

    app = FastAPI(title=settings.APP_NAME, version=__version__)
    allowed_origins = [o.strip() for o in settings.WS_ALLOWED_ORIGINS.split(",") if o.strip()]
    if "null" not in allowed_origins:
        allowed_origins.append("null")

    app.add_middleware(
        CORSMiddleware,
        allow_origins=allowed_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    rng = rng or random.Random(settings.RNG_SEED)
    machine = RoomStateMachine(rng)
    app.state.settings = settings
    app.state.machine = machine
    app.state.registry = RoomRegistry(machine, rng=rng, max_attempts=settings.ROOM_CODE_ATTEMPTS)
    app.state.wsman = WSManager()

    @app.on_event("shutdown")
    async def _shutdown() -> None:
        await app.state.wsman.close_all()
        logger.info("server stopped")

    @app.get("/health")
    async def health():
        return {"ok": True, "rooms": len(app.state.registry.rooms())}

    @app.get("/games")
    async def games():
        return {
            "games": [
                {
                    "id": g.id,
                    "name": g.name,
                    "playersNeeded": g.players_needed,
                    "minPlayers": g.min_players,
                    "maxPlayers": g.max_players,
                }
                for g in GAMES
            ]
        }

    app.include_router(ws_router)
    app.include_router(admin_router)
    return app


def run() -> None:
    settings = get_settings()
    uvicorn.run("partyroom.main:app", host=settings.HOST, port=settings.PORT, log_level=settings.LOG_LEVEL.lower())


app = create_app()
