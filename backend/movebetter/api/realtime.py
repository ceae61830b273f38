"""
WebSocket bridge onto the change feed.

``/api/realtime/{table}?token=<jwt>[&filter=column=eq.value]`` sends
``{"type": "subscribed"}`` once the channel is joined, then one
``{"type": "change", ...}`` message per committed insert, update or delete.
Close codes: 4401 bad or missing token, 4404 unknown table, 4400 bad filter.
"""
import asyncio
import logging
from typing import Optional
from uuid import uuid4

from fastapi import APIRouter, WebSocket, WebSocketDisconnect
from fastapi.encoders import jsonable_encoder

from ..core.permissions import PERM_MANAGE_PATIENTS, has_permission
from ..core.security import decode_access_token
from ..datastore.client import registered_tables
from ..datastore.realtime import ChangeEvent, ChangeType

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/realtime", tags=["realtime"])

PRIVATE_COLUMNS = ("password_hash",)


def _public(row: Optional[dict]) -> Optional[dict]:
    if row is None:
        return None
    return {key: value for key, value in row.items() if key not in PRIVATE_COLUMNS}


def event_message(change: ChangeEvent) -> dict:
    return jsonable_encoder({
        "type": "change",
        "table": change.table,
        "event": change.type.value,
        "sequence": change.sequence,
        "new": _public(change.new),
        "old": _public(change.old),
        "commit_timestamp": change.commit_timestamp,
    })


@router.websocket("/{table}")
async def stream_changes(websocket: WebSocket, table: str, token: Optional[str] = None, filter: Optional[str] = None):
    payload = decode_access_token(token) if token else None
    if not payload or not has_permission(payload.get("role"), PERM_MANAGE_PATIENTS):
        await websocket.close(code=4401)
        return
    if table not in registered_tables():
        await websocket.close(code=4404)
        return

    backend = websocket.app.state.backend
    loop = asyncio.get_running_loop()
    queue: asyncio.Queue = asyncio.Queue()

    def forward(change: ChangeEvent) -> None:
        # Publishers run on worker threads; hand the event to this socket's loop
        loop.call_soon_threadsafe(queue.put_nowait, change)

    try:
        channel = backend.channel(f"ws-{table}-{uuid4().hex}").on(ChangeType.ALL, table, forward, filter=filter)
    except ValueError as exc:
        logger.info("Rejected realtime subscription on %s: %s", table, exc)
        await websocket.close(code=4400)
        return

    channel.subscribe()
    logger.info("Realtime subscriber %s joined %s", payload.get("sub"), table)
    try:
        await websocket.accept()
        await websocket.send_json({"type": "subscribed", "table": table, "filter": filter})

        async def pump() -> None:
            while True:
                change = await queue.get()
                await websocket.send_json(event_message(change))

        async def drain() -> None:
            # Client messages are ignored; this only notices the disconnect
            while True:
                await websocket.receive_text()

        tasks = [asyncio.ensure_future(pump()), asyncio.ensure_future(drain())]
        done, pending = await asyncio.wait(tasks, return_when=asyncio.FIRST_COMPLETED)
        for task in pending:
            task.cancel()
        for task in done:
            exc = task.exception()
            if exc is not None and not isinstance(exc, WebSocketDisconnect):
                logger.warning("Realtime stream on %s ended with error: %s", table, exc)
    finally:
        backend.remove_channel(channel)
        logger.info("Realtime subscriber %s left %s", payload.get("sub"), table)
