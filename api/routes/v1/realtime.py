"""
Realtime change stream.

One WebSocket per table. Each message is a JSON change event
`{table, type, new, old, commit_timestamp}`. The access request stream is
admin only; applicants on the applications stream only see their own row.
"""

import asyncio
import logging

from fastapi import APIRouter, WebSocket, WebSocketDisconnect, status

from api.services import admin_users as admin_service
from api.services import auth as auth_service
from core.config import settings
from core.exceptions import AuthenticationError
from core.realtime import ChangeEvent
from database.engine import AsyncSessionLocal

logger = logging.getLogger(__name__)

router = APIRouter()

STREAMS = {"access_requests", "applications"}


def _visible_to(event: ChangeEvent, user_id: str, is_admin: bool) -> bool:
    if is_admin:
        return True
    record = event.record or {}
    return event.table == "applications" and record.get("user_id") == user_id


async def _wait_for_disconnect(websocket: WebSocket) -> None:
    try:
        while True:
            await websocket.receive_text()
    except WebSocketDisconnect:
        return


@router.websocket("/realtime/{table}")
async def change_stream(websocket: WebSocket, table: str, token: str = ""):
    if table not in STREAMS:
        await websocket.close(code=status.WS_1008_POLICY_VIOLATION)
        return

    async with AsyncSessionLocal() as db:
        try:
            user, _ = await auth_service.resolve_token(
                db, token, settings.jwt_secret_key, settings.jwt_algorithm
            )
        except AuthenticationError:
            await websocket.close(code=status.WS_1008_POLICY_VIOLATION)
            return
        is_admin = await admin_service.get_admin_by_email(db, user.email) is not None

    if table == "access_requests" and not is_admin:
        await websocket.close(code=status.WS_1008_POLICY_VIOLATION)
        return

    await websocket.accept()

    queue: asyncio.Queue[ChangeEvent] = asyncio.Queue()
    feed = websocket.app.state.change_feed
    subscription = feed.subscribe(table, queue.put_nowait)
    disconnected = asyncio.create_task(_wait_for_disconnect(websocket))
    logger.info(f"Realtime stream opened for {table}")

    try:
        while True:
            next_event = asyncio.create_task(queue.get())
            done, _ = await asyncio.wait(
                {next_event, disconnected}, return_when=asyncio.FIRST_COMPLETED
            )
            if disconnected in done:
                next_event.cancel()
                break
            event = next_event.result()
            if _visible_to(event, user.id, is_admin):
                await websocket.send_json(event.to_dict())
    except WebSocketDisconnect:
        pass
    finally:
        subscription.unsubscribe()
        disconnected.cancel()
        logger.info(f"Realtime stream closed for {table}")
