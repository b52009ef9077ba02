"""
Live read models over WebSockets.

Each socket subscribes to one ``LiveQuery`` and receives
``{"type": "snapshot", "data": ...}`` messages: one on connect and one
after every change to the watched collection. Load failures are sent as
``{"type": "error"}`` and the socket stays open.
"""

from typing import Any, Callable, Optional
import asyncio
import logging

from fastapi import APIRouter, HTTPException, WebSocket, WebSocketDisconnect, status
from fastapi.concurrency import run_in_threadpool

from courseportal.core.database import SessionLocal
from courseportal.routers.auth import resolve_user
from courseportal.services.context import PortalContext
from courseportal.models.course import Course
from courseportal.services.directory import session_loader, watch_courses, watch_modules
from courseportal.services.progress import SqlProgressStore
from courseportal.services.watch import LiveQuery, progress_topic


logger = logging.getLogger(__name__)

router = APIRouter()

LIVE_LOAD_FAILED = "Could not load live data."


def extract_ws_token(websocket: WebSocket) -> Optional[str]:
    auth = websocket.headers.get("authorization")
    if auth and auth.lower().startswith("bearer "):
        return auth.split(" ", 1)[1]
    return websocket.query_params.get("token")


def authenticate(websocket: WebSocket) -> Optional[PortalContext]:
    token = extract_ws_token(websocket)
    if not token:
        return None
    db = SessionLocal()
    try:
        return PortalContext.from_user(resolve_user(token, db))
    except HTTPException:
        return None
    finally:
        db.close()


def can_read_course(context: PortalContext, course_id: str) -> bool:
    if context.is_system_owner or context.membership_for_course(course_id) is not None:
        return True
    db = SessionLocal()
    try:
        course = db.query(Course).filter(Course.id == course_id).first()
    finally:
        db.close()
    return course is not None and context.has_company_role(course.company_id)


async def stream(websocket: WebSocket, query: LiveQuery, encode: Callable[[Any], Any]) -> None:
    """Push snapshots of ``query`` until the client disconnects."""
    loop = asyncio.get_running_loop()
    outbox: asyncio.Queue = asyncio.Queue()

    def on_snapshot(snapshot: Any) -> None:
        loop.call_soon_threadsafe(outbox.put_nowait, {"type": "snapshot", "data": encode(snapshot)})

    def on_error(exc: Exception) -> None:
        loop.call_soon_threadsafe(outbox.put_nowait, {"type": "error", "detail": LIVE_LOAD_FAILED})

    unsubscribe = await run_in_threadpool(query.subscribe, on_snapshot, on_error)

    async def send_loop() -> None:
        while True:
            message = await outbox.get()
            await websocket.send_json(message)

    async def receive_loop() -> None:
        while True:
            await websocket.receive_text()

    sender = asyncio.create_task(send_loop())
    receiver = asyncio.create_task(receive_loop())
    try:
        done, pending = await asyncio.wait({sender, receiver}, return_when=asyncio.FIRST_COMPLETED)
        for task in pending:
            task.cancel()
        for task in done:
            error = task.exception()
            if error is not None and not isinstance(error, WebSocketDisconnect):
                logger.error(f"Live stream for {query.topic!r} failed: {error}")
    finally:
        unsubscribe()


@router.websocket("/courses/{company_id}")
async def live_courses(websocket: WebSocket, company_id: str):
    context = authenticate(websocket)
    if context is None or not (context.is_system_owner or context.has_company_role(company_id)):
        await websocket.close(code=status.WS_1008_POLICY_VIOLATION)
        return

    await websocket.accept()
    query = watch_courses(websocket.app.state.feed, company_id)
    await stream(websocket, query, lambda courses: [course.model_dump(mode="json") for course in courses])


@router.websocket("/progress/{course_id}")
async def live_progress(websocket: WebSocket, course_id: str):
    context = authenticate(websocket)
    if context is None or not can_read_course(context, course_id):
        await websocket.close(code=status.WS_1008_POLICY_VIOLATION)
        return

    await websocket.accept()
    user_id = context.user_id
    query = LiveQuery(
        websocket.app.state.feed,
        progress_topic(user_id, course_id),
        session_loader(SessionLocal, lambda db: SqlProgressStore(db).load(user_id, course_id)),
    )
    await stream(websocket, query, lambda completed: {"course_id": course_id, "completed_modules": completed})


@router.websocket("/modules/{course_id}")
async def live_modules(websocket: WebSocket, course_id: str):
    context = authenticate(websocket)
    if context is None or not can_read_course(context, course_id):
        await websocket.close(code=status.WS_1008_POLICY_VIOLATION)
        return

    await websocket.accept()
    query = watch_modules(websocket.app.state.feed, course_id)
    await stream(websocket, query, lambda modules: [module.model_dump(mode="json") for module in modules])
