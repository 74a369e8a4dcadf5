"""Bookmark dashboard endpoints: one-shot HTTP views and the live WebSocket view."""
import json
import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from typing import Any

import httpx
from fastapi import APIRouter, Depends, WebSocket, WebSocketDisconnect, status
from fastapi.responses import JSONResponse, RedirectResponse, Response

from api.dependencies import get_backend, get_cookie_jar, get_hub, get_shared_http_client
from core.config import Settings, get_settings
from core.cookies import CookieJar
from schemas.bookmark import INVALID_URL_MESSAGE, REQUIRED_FIELDS_MESSAGE
from schemas.dashboard import BookmarkForm, DashboardState
from services.backend_client import BackendClient, create_backend_client
from services.broadcast import BroadcastHub
from services.dashboard import SYNC_EVENT, DashboardController


logger = logging.getLogger(__name__)

router = APIRouter(prefix="/dashboard", tags=["dashboard"])

VALIDATION_MESSAGES = {REQUIRED_FIELDS_MESSAGE, INVALID_URL_MESSAGE}


def _record_navigation(_route: str) -> None:
    """One-shot views turn navigation into a redirect response after the fact."""


@asynccontextmanager
async def _one_shot_view(
    backend: BackendClient,
    hub: BroadcastHub,
    settings: Settings,
    fetch: bool = True,
) -> AsyncGenerator[DashboardController]:
    """Mount a controller for the duration of one HTTP request."""
    controller = DashboardController(
        backend,
        hub,
        _record_navigation,
        topic=settings.sync_topic,
        live_sync=False,
    )
    await controller.mount(fetch=fetch)
    try:
        yield controller
    finally:
        await controller.unmount()


def _render(
    controller: DashboardController,
    cookies: CookieJar,
    status_code: int = status.HTTP_200_OK,
) -> Response:
    if controller.redirected_to is not None:
        response: Response = RedirectResponse(
            controller.redirected_to, status_code=status.HTTP_303_SEE_OTHER,
        )
    else:
        response = JSONResponse(
            controller.state.model_dump(mode="json"), status_code=status_code,
        )
    return cookies.apply(response)


@router.get("", response_model=DashboardState)
async def get_dashboard(
    settings: Settings = Depends(get_settings),
    backend: BackendClient = Depends(get_backend),
    hub: BroadcastHub = Depends(get_hub),
    cookies: CookieJar = Depends(get_cookie_jar),
) -> Response:
    """Current user and bookmarks, newest first; redirects to '/' when signed out."""
    async with _one_shot_view(backend, hub, settings) as controller:
        return _render(controller, cookies)


@router.post("/bookmarks", response_model=DashboardState, status_code=status.HTTP_201_CREATED)
async def add_bookmark(
    form: BookmarkForm,
    settings: Settings = Depends(get_settings),
    backend: BackendClient = Depends(get_backend),
    hub: BroadcastHub = Depends(get_hub),
    cookies: CookieJar = Depends(get_cookie_jar),
) -> Response:
    """Create a bookmark and tell other open dashboards to reload."""
    async with _one_shot_view(backend, hub, settings, fetch=False) as controller:
        if controller.redirected_to is not None:
            return _render(controller, cookies)
        if await controller.add_bookmark(form.title, form.url):
            await hub.publish(settings.sync_topic, SYNC_EVENT)
            return _render(controller, cookies, status.HTTP_201_CREATED)
        if controller.state.error in VALIDATION_MESSAGES:
            return _render(controller, cookies, status.HTTP_400_BAD_REQUEST)
        return _render(controller, cookies, status.HTTP_502_BAD_GATEWAY)


@router.delete("/bookmarks/{bookmark_id}", response_model=DashboardState)
async def delete_bookmark(
    bookmark_id: str,
    settings: Settings = Depends(get_settings),
    backend: BackendClient = Depends(get_backend),
    hub: BroadcastHub = Depends(get_hub),
    cookies: CookieJar = Depends(get_cookie_jar),
) -> Response:
    """Delete a bookmark and tell other open dashboards to reload."""
    async with _one_shot_view(backend, hub, settings, fetch=False) as controller:
        if controller.redirected_to is not None:
            return _render(controller, cookies)
        if await controller.delete_bookmark(bookmark_id):
            await hub.publish(settings.sync_topic, SYNC_EVENT)
            return _render(controller, cookies)
        return _render(controller, cookies, status.HTTP_502_BAD_GATEWAY)


@router.post("/sync")
async def publish_sync(
    settings: Settings = Depends(get_settings),
    backend: BackendClient = Depends(get_backend),
    hub: BroadcastHub = Depends(get_hub),
    cookies: CookieJar = Depends(get_cookie_jar),
) -> Response:
    """Signal every open dashboard to re-fetch its bookmarks."""
    async with _one_shot_view(backend, hub, settings, fetch=False) as controller:
        if controller.redirected_to is not None:
            return cookies.apply(
                JSONResponse(
                    {"detail": "Not authenticated"},
                    status_code=status.HTTP_401_UNAUTHORIZED,
                ),
            )
    delivered = await hub.publish(settings.sync_topic, SYNC_EVENT)
    return cookies.apply(JSONResponse({"topic": settings.sync_topic, "delivered": delivered}))


@router.post("/logout")
async def logout(
    settings: Settings = Depends(get_settings),
    backend: BackendClient = Depends(get_backend),
    hub: BroadcastHub = Depends(get_hub),
    cookies: CookieJar = Depends(get_cookie_jar),
) -> Response:
    """Sign out and redirect to the landing route."""
    controller = DashboardController(
        backend, hub, _record_navigation, topic=settings.sync_topic, live_sync=False,
    )
    await controller.sign_out()
    return _render(controller, cookies)


def _text_field(message: dict[str, Any], key: str) -> str:
    """Read an optional string field; null and missing both mean empty."""
    value = message.get(key)
    if value is None:
        return ""
    if not isinstance(value, str):
        raise ValueError(f"'{key}' must be a string")
    return value


async def _handle_message(
    controller: DashboardController,
    message: dict[str, Any],
) -> bool:
    """
    Apply one inbound WebSocket message to the controller.

    Returns:
        False when the view should close (after sign-out).
    """
    message_type = message.get("type")
    if message_type == "add":
        added = await controller.add_bookmark(
            _text_field(message, "title"), _text_field(message, "url"),
        )
        if added and controller.channel is not None:
            await controller.channel.send(SYNC_EVENT)
    elif message_type == "delete":
        bookmark_id = str(message.get("id") or "")
        if not bookmark_id:
            raise ValueError("Delete requires an 'id'")
        deleted = await controller.delete_bookmark(bookmark_id)
        if deleted and controller.channel is not None:
            await controller.channel.send(SYNC_EVENT)
    elif message_type == "refresh":
        await controller.refresh()
    elif message_type == "sync":
        if controller.channel is not None:
            await controller.channel.send(SYNC_EVENT)
    elif message_type == "dismiss":
        if message.get("banner") == "success":
            await controller.dismiss_success()
        else:
            await controller.dismiss_error()
    elif message_type == "sign_out":
        await controller.sign_out()
        return False
    else:
        raise ValueError(f"Unknown message type: {message_type!r}")
    return True


@router.websocket("/ws")
async def dashboard_socket(
    websocket: WebSocket,
    settings: Settings = Depends(get_settings),
    http_client: httpx.AsyncClient = Depends(get_shared_http_client),
    hub: BroadcastHub = Depends(get_hub),
) -> None:
    """
    Live dashboard: one mounted view per connection.

    Outbound messages are `{"type": "state", "data": ...}` snapshots and
    `{"type": "navigate", "to": route}` instructions. Inbound messages are
    `add`, `delete`, `refresh`, `sync`, `dismiss` and `sign_out`. Cookies
    refreshed during the connection stay with the connection.
    """
    await websocket.accept()
    backend = create_backend_client(settings, http_client, CookieJar(websocket.cookies))

    async def push_state(state: DashboardState) -> None:
        await websocket.send_json({"type": "state", "data": state.model_dump(mode="json")})

    async def navigate(route: str) -> None:
        await websocket.send_json({"type": "navigate", "to": route})

    controller = DashboardController(
        backend, hub, navigate, topic=settings.sync_topic, on_change=push_state,
    )
    try:
        await controller.mount()
        if controller.redirected_to is not None:
            await websocket.close()
            return
        while True:
            raw = await websocket.receive_text()
            try:
                message = json.loads(raw)
                if not isinstance(message, dict):
                    raise ValueError("Message must be a JSON object")
                keep_open = await _handle_message(controller, message)
            except ValueError as e:
                await websocket.send_json({"type": "error", "detail": str(e)})
                continue
            if not keep_open:
                await websocket.close()
                return
    except WebSocketDisconnect:
        logger.debug("Dashboard socket disconnected")
    finally:
        await controller.unmount()
