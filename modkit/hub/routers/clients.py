"""Subscriber endpoints.

Thin adapter over the registry: a client registers over HTTP, then opens the
returned websocket URL.  Everything after that -- broadcasts and request /
response -- flows over the websocket as ``Event`` frames.
"""

from __future__ import annotations

import uuid

import anyio
from anyio import CancelScope
from anyio.streams.memory import MemoryObjectReceiveStream, MemoryObjectSendStream
from fastapi import APIRouter, HTTPException, Request, WebSocket, status
from loguru import logger
from starlette.websockets import WebSocketDisconnect, WebSocketState

from modkit.hub.context import open_channel
from modkit.hub.deps import Handler, Registry
from modkit.hub.models.api import RegisterResponse
from modkit.hub.protocol import MessageHandler
from modkit.hub.registry import AlreadyAttachedError, ShuttingDownError

router = APIRouter(prefix="/register", tags=["clients"])
ws_router = APIRouter(tags=["clients"])


@router.get("", response_model=RegisterResponse)
async def handle_register(request: Request, registry: Registry) -> RegisterResponse:
    client_id = uuid.uuid4().hex
    try:
        await registry.register(client_id)
    except ShuttingDownError:
        raise HTTPException(status.HTTP_503_SERVICE_UNAVAILABLE, detail="Hub is shutting down.") from None

    url = request.url_for("client_connection", client_id=client_id)
    ws_url = url.replace(scheme="wss" if url.scheme == "https" else "ws")
    return RegisterResponse(client_id=client_id, url=str(ws_url))


@router.delete("/{client_id}")
async def handle_unregister(client_id: str, registry: Registry) -> dict[str, str]:
    removed = await registry.unregister(client_id)
    if not removed:
        logger.debug("Unregister of unknown client {}", client_id)
    return {"status": "ok"}


@ws_router.websocket("/ws/{client_id}", name="client_connection")
async def client_connection(websocket: WebSocket, client_id: str, registry: Registry, handler: Handler) -> None:
    if not registry.is_registered(client_id):
        logger.warning("Websocket: rejected unregistered client {}", client_id)
        await websocket.close(code=status.WS_1008_POLICY_VIOLATION)
        return

    await websocket.accept()
    sender, receiver = open_channel()
    try:
        await registry.attach(client_id, sender)
    except (LookupError, AlreadyAttachedError) as e:
        # Unregistered since the check above, or another socket holds the id.
        logger.warning("Websocket: refused client {}: {}", client_id, e)
        sender.close()
        receiver.close()
        await websocket.close(code=status.WS_1008_POLICY_VIOLATION)
        return

    try:
        async with anyio.create_task_group() as tg:
            tg.start_soon(_serve, websocket, sender, client_id, handler, tg.cancel_scope)
            # Returns once the hub closes the channel (unregister, shutdown).
            await _forward(websocket, receiver, client_id)
            tg.cancel_scope.cancel()
    finally:
        await registry.unregister(client_id, sender=sender)
        await _close(websocket, client_id)
        logger.info("Websocket: client {} disconnected", client_id)


async def _serve(
    websocket: WebSocket,
    sender: MemoryObjectSendStream[str],
    client_id: str,
    handler: MessageHandler,
    scope: CancelScope,
) -> None:
    """Answer inbound frames on this connection's own channel until either side goes away."""
    try:
        while True:
            try:
                message = await websocket.receive()
            except WebSocketDisconnect:
                return
            if message["type"] == "websocket.disconnect":
                return
            raw = message.get("text")
            if raw is None:
                raw = message.get("bytes") or b""
            response = await handler.handle(raw)
            try:
                sender.send_nowait(response.to_wire())
            except (anyio.BrokenResourceError, anyio.ClosedResourceError):
                logger.warning("Websocket: client {} channel closed, reply dropped", client_id)
                return
    finally:
        scope.cancel()


async def _forward(websocket: WebSocket, receiver: MemoryObjectReceiveStream[str], client_id: str) -> None:
    """Drain the client's outbound channel into its socket."""
    async with receiver:
        async for frame in receiver:
            try:
                await websocket.send_text(frame)
            except (WebSocketDisconnect, RuntimeError) as e:
                logger.warning("Websocket: could not send to client {}: {}", client_id, e)
                return


async def _close(websocket: WebSocket, client_id: str) -> None:
    if WebSocketState.DISCONNECTED in (websocket.client_state, websocket.application_state):
        return
    try:
        await websocket.close(code=status.WS_1000_NORMAL_CLOSURE)
    except (WebSocketDisconnect, RuntimeError) as e:
        logger.debug("Websocket: client {} was already gone: {}", client_id, e)
