# main.py
import logging
import sys

import uvicorn
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware

from rooms import RoomManager
from routers import signaling
from settings import settings
from streams import StreamSignalingRelay

logger = logging.getLogger(__name__)


def setup_logging():
    logging.basicConfig(
        level=getattr(logging, settings.LOG_LEVEL, logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%dT%H:%M:%S",
        handlers=[logging.StreamHandler(sys.stdout)],
        force=True,
    )
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)


def create_app() -> FastAPI:
    setup_logging()

    app = FastAPI(title="Live Stream Signaling", version="0.1.0")

    # one registry per process; streams do not survive a restart
    app.state.relay = StreamSignalingRelay(
        RoomManager(max_queue_size=settings.OUTBOUND_QUEUE_SIZE),
        reject_duplicates=settings.REJECT_DUPLICATE_STREAM_IDS,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Healthcheck endpoint
    @app.get("/health")
    async def health_check(request: Request):
        relay: StreamSignalingRelay = request.app.state.relay
        return {
            "status": "ok",
            "activeStreams": len(relay.sessions),
            "connections": len(relay.rooms.connections),
        }

    # Include signaling (WebSocket) routes
    app.include_router(signaling.router, prefix="/ws", tags=["signaling"])

    logger.info("WebRTC signaling server initialized")
    return app


app = create_app()


if __name__ == "__main__":
    uvicorn.run(app, host=settings.HOST, port=settings.PORT)
