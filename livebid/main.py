from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Any

from fastapi import Depends, FastAPI, HTTPException, Request, WebSocket, WebSocketDisconnect, status

from .admin import config as admin_config
from .admin import health as admin_health
from .admin import stats as admin_stats
from .auction.fanout import UpdateRelay, build_update_channel
from .auction.service import AuctionService
from .auction.timer import CountdownTimer
from .config import ServerConfig, get_server_config
from .connections.registry import ConnectionRegistry
from .errors import ProtocolError, StoreUnavailable
from .events.handler import MessageHandler
from .ledger.recorder import BidRecorder
from .storage import build_bid_sink, build_state_store
from .transport.canonical_json import decode_message
from .validation.validator import get_schema_registry

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    server_config = get_server_config()
    get_schema_registry()
    store = build_state_store(server_config)
    try:
        await store.ping()
    except StoreUnavailable:
        logger.error("Cannot reach the shared state store at startup")
        raise
    channel = build_update_channel(server_config)
    sink = build_bid_sink(server_config)
    recorder = BidRecorder(sink)
    registry = ConnectionRegistry()
    auction_service = AuctionService(store, channel, recorder, server_config.auction)
    timer = CountdownTimer(store, channel, server_config.auction)
    relay = UpdateRelay(
        channel,
        registry,
        auction_service,
        resubscribe_delay_seconds=server_config.channel.resubscribe_delay_seconds,
    )

    app.state.server_config = server_config
    app.state.store = store
    app.state.channel = channel
    app.state.recorder = recorder
    app.state.registry = registry
    app.state.auction_service = auction_service
    app.state.message_handler = MessageHandler(auction_service)
    app.state.timer = timer
    app.state.relay = relay
    app.state.start_time = datetime.now(timezone.utc)

    relay.start()
    timer.start()
    try:
        yield
    finally:
        await timer.stop()
        await relay.stop()
        await recorder.drain()
        await sink.close()
        await channel.close()
        await store.close()


app = FastAPI(
    title="Live Auction Server",
    version="1.0.0",
    docs_url="/docs",
    lifespan=lifespan,
)

app.include_router(admin_health.router)
app.include_router(admin_stats.router)
app.include_router(admin_config.router)


# Dependency helpers ---------------------------------------------------------


def get_server_settings(request: Request) -> ServerConfig:
    return request.app.state.server_config


def get_auction_service(request: Request) -> AuctionService:
    return request.app.state.auction_service


# Routes ---------------------------------------------------------------------


@app.get("/", tags=["meta"])
async def root(settings: ServerConfig = Depends(get_server_settings)) -> dict[str, Any]:
    return {
        "service": "livebid",
        "version": app.version,
        "auction": {
            "duration_seconds": settings.auction.duration_seconds,
            "snipe_threshold_seconds": settings.auction.snipe_threshold_seconds,
            "snipe_extension_seconds": settings.auction.snipe_extension_seconds,
        },
    }


@app.get("/auction", tags=["auction"])
async def auction_state(
    service: AuctionService = Depends(get_auction_service),
) -> dict[str, Any]:
    try:
        event = await service.current_event()
    except StoreUnavailable as exc:
        raise HTTPException(status_code=503, detail=str(exc)) from exc
    return event.to_wire()


@app.websocket("/ws")
async def viewer_socket(websocket: WebSocket) -> None:
    await websocket.accept()
    registry: ConnectionRegistry = websocket.app.state.registry
    service: AuctionService = websocket.app.state.auction_service
    handler: MessageHandler = websocket.app.state.message_handler
    await registry.add(websocket, service.current_event)
    try:
        while True:
            message = await websocket.receive()
            if message["type"] == "websocket.disconnect":
                break
            raw = message.get("text") or message.get("bytes") or ""
            try:
                reply = await handler.handle(decode_message(raw))
            except ProtocolError as exc:
                logger.info("Closing viewer connection after protocol error: %s", exc)
                await websocket.close(code=status.WS_1003_UNSUPPORTED_DATA, reason=str(exc)[:120])
                break
            if reply is not None:
                await registry.send(websocket, reply)
    except WebSocketDisconnect:
        pass
    finally:
        await registry.remove(websocket)
