"""Realtime chat relay: WebSocket channel plus attachment upload."""

from __future__ import annotations

import logging
import uuid

from fastapi import APIRouter, Depends, File, Form, UploadFile, WebSocket, WebSocketDisconnect
from pydantic import ValidationError

from api.dependencies import get_broadcaster, get_file_store, get_registry
from api.schemas import UploadResponse
from integrations.file_store import StaticFileStore
from relay.broadcaster import RelayBroadcaster
from relay.events import CONNECTED, ERROR, SEND_MESSAGE, Attachment, ChatMessage, RelayEnvelope
from relay.registry import SessionRegistry

LOGGER = logging.getLogger(__name__)

router = APIRouter(prefix="/relay", tags=["relay"])


async def _send_error(websocket: WebSocket, detail: str) -> None:
    await websocket.send_json(RelayEnvelope(event=ERROR, data={"detail": detail}).model_dump(mode="json"))


@router.websocket("/chat")
async def relay_chat(
    websocket: WebSocket,
    registry: SessionRegistry = Depends(get_registry),
    broadcaster: RelayBroadcaster = Depends(get_broadcaster),
) -> None:
    await websocket.accept()
    identity = (websocket.query_params.get("userEmail") or "").strip() or "anonymous"
    role = (websocket.query_params.get("role") or "").strip() or "participant"
    connection_id = uuid.uuid4().hex
    participant = await registry.register(connection_id, identity, websocket, role=role)

    try:
        # Registered before this goes out, so the client will see every later broadcast.
        await websocket.send_json(
            RelayEnvelope(
                event=CONNECTED,
                data={"connection_id": connection_id, "identity": identity, "role": participant.role},
            ).model_dump(mode="json")
        )

        while True:
            raw = await websocket.receive_text()
            try:
                envelope = RelayEnvelope.model_validate_json(raw)
            except ValidationError:
                await _send_error(websocket, "Expected {\"event\": ..., \"data\": {...}}")
                continue

            if envelope.event != SEND_MESSAGE:
                await _send_error(websocket, f"Unsupported event {envelope.event!r}")
                continue

            try:
                message = ChatMessage(
                    sender=str(envelope.data.get("sender") or identity),
                    text=envelope.data.get("text"),
                    user_id=envelope.data.get("user_id"),
                )
            except ValidationError as exc:
                await _send_error(websocket, exc.errors()[0]["msg"])
                continue

            LOGGER.debug("Message from %s on %s", message.sender, connection_id)
            await broadcaster.broadcast_chat(message)
    except WebSocketDisconnect:
        LOGGER.debug("Relay connection %s closed by client", connection_id)
    finally:
        await registry.unregister(connection_id)


@router.post("/upload", response_model=UploadResponse)
async def upload_attachment(
    file: UploadFile = File(...),
    userEmail: str = Form(...),
    userId: str | None = Form(default=None),
    message: str = Form(default=""),
    store: StaticFileStore = Depends(get_file_store),
    broadcaster: RelayBroadcaster = Depends(get_broadcaster),
) -> UploadResponse:
    # One byte past the cap is enough to tell an oversized upload apart.
    content = await file.read() if store.max_bytes is None else await file.read(store.max_bytes + 1)
    original = file.filename or "upload"
    stored = await store.save(original, content)

    chat_message = ChatMessage(
        sender=userEmail,
        text=message,
        user_id=userId,
        attachment=Attachment(url=stored.url, filename=stored.filename),
    )
    await broadcaster.broadcast_chat(chat_message)
    return UploadResponse(file_path=stored.url, filename=stored.filename)
