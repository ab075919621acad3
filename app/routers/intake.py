"""Intake WebSocket: one IntakeCoordinator per connection, driven by client events."""
import asyncio
import base64
import binascii
import logging
from typing import Any

from fastapi import APIRouter, Query, WebSocket, WebSocketDisconnect
from pydantic import ValidationError

from app.config import settings
from app.intake.coordinator import IntakeCoordinator
from app.models.intake import MediaFile
from app.models.report import Coordinates, ReportType
from app.services.ai import OllamaAssessor
from app.services.geocoding import NominatimGeocoder
from app.services.location import StaticLocationProvider
from app.services.submitter import HttpReportSubmitter

router = APIRouter(tags=["intake"])
logger = logging.getLogger(__name__)


class IntakeEventError(Exception):
    pass


def build_coordinator(report_type: ReportType, location_provider: StaticLocationProvider) -> IntakeCoordinator:
    return IntakeCoordinator(
        location_provider,
        NominatimGeocoder(),
        OllamaAssessor(),
        HttpReportSubmitter(),
        report_type=report_type,
    )


def _coords(msg: dict[str, Any]) -> Coordinates:
    try:
        return Coordinates(latitude=msg["latitude"], longitude=msg["longitude"])
    except (KeyError, ValidationError) as e:
        raise IntakeEventError("latitude and longitude are required") from e


def _media(msg: dict[str, Any]) -> MediaFile:
    try:
        data = base64.b64decode(msg["data"], validate=True)
    except (KeyError, TypeError, binascii.Error) as e:
        raise IntakeEventError("media data must be base64") from e
    return MediaFile(
        filename=msg.get("filename") or "upload",
        content_type=msg.get("content_type") or "application/octet-stream",
        data=data,
    )


def dispatch_event(
    coordinator: IntakeCoordinator,
    provider: StaticLocationProvider,
    msg: dict[str, Any],
):
    """Apply one client event. Returns an awaitable for long-running operations, else None."""
    event = msg.get("event")
    if event == "description_changed":
        coordinator.set_description(str(msg.get("text", "")))
    elif event == "location_text_changed":
        coordinator.set_location_text(str(msg.get("text", "")))
    elif event == "reporter_changed":
        coordinator.set_reporter(name=msg.get("name"), phone=msg.get("phone"))
    elif event == "report_type_changed":
        try:
            coordinator.set_report_type(ReportType(msg.get("report_type")))
        except ValueError as e:
            raise IntakeEventError(f"unknown report type: {msg.get('report_type')!r}") from e
    elif event == "media_selected":
        coordinator.set_media(_media(msg))
    elif event == "media_cleared":
        coordinator.set_media(None)
    elif event == "device_location":
        if msg.get("denied"):
            provider.update(denied=True)
        elif "latitude" in msg:
            provider.update(coordinates=_coords(msg))
        else:
            provider.update()
        return coordinator.acquire_device_location()
    elif event == "location_search":
        return coordinator.search_by_text(msg.get("query"))
    elif event == "point_dragged":
        coordinator.point_dragged(_coords(msg))
    elif event == "point_clicked":
        coordinator.point_clicked(_coords(msg))
    elif event == "reset_location":
        coordinator.reset_location()
    elif event == "submit":
        return coordinator.submit()
    else:
        raise IntakeEventError(f"unknown event: {event!r}")
    return None


@router.websocket("/ws/intake")
async def ws_intake(websocket: WebSocket, report_type: str = Query("emergency", alias="type")):
    """Intake WS: send the initial state, then a state message after every change."""
    await websocket.accept()
    try:
        rtype = ReportType(report_type)
    except ValueError:
        await websocket.send_json({"type": "error", "message": f"unknown report type: {report_type!r}"})
        await websocket.close(code=1008)
        return

    provider = StaticLocationProvider(timeout_seconds=settings.device_location_timeout_seconds)
    coordinator = build_coordinator(rtype, provider)
    outbox: asyncio.Queue[dict[str, Any]] = asyncio.Queue()
    coordinator.add_listener(lambda snap: outbox.put_nowait({"type": "state", "payload": snap}))
    operations: set[asyncio.Task] = set()

    async def _sender() -> None:
        while True:
            message = await outbox.get()
            await websocket.send_json(message)

    sender = asyncio.create_task(_sender())
    try:
        await websocket.send_json({"type": "state", "payload": coordinator.snapshot()})
        while True:
            try:
                msg = await websocket.receive_json()
            except WebSocketDisconnect:
                break
            except (ValueError, KeyError):
                outbox.put_nowait({"type": "error", "message": "events must be JSON objects"})
                continue
            if not isinstance(msg, dict):
                outbox.put_nowait({"type": "error", "message": "events must be JSON objects"})
                continue
            try:
                pending = dispatch_event(coordinator, provider, msg)
            except IntakeEventError as e:
                outbox.put_nowait({"type": "error", "message": str(e)})
                continue
            if pending is not None:
                task = asyncio.create_task(pending)
                operations.add(task)
                task.add_done_callback(operations.discard)
    finally:
        for task in operations:
            task.cancel()
        coordinator.close()
        sender.cancel()
        await asyncio.gather(sender, *operations, return_exceptions=True)
        logger.info("Intake session closed")
