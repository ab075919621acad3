"""Reports router: POST/GET /api/reports, PATCH /api/reports/{id}/status."""
import json
import logging
from datetime import datetime
from typing import Optional

from fastapi import APIRouter, File, Form, HTTPException, Request, UploadFile
from pydantic import ValidationError

from app import store
from app.models.report import Coordinates, ReportOut, ReportStatus, ReportType, StatusUpdate
from app.routers.files import build_public_url
from app.services.media import MediaValidationError, save_media, validate_media
from app.utils.ids import generate_report_id

router = APIRouter(prefix="/api", tags=["reports"])
logger = logging.getLogger(__name__)

VALID_STATUSES = {s.value for s in ReportStatus}


def _parse_coordinates(raw: Optional[str]) -> Coordinates:
    if not raw:
        raise ValueError("coordinates are required")
    try:
        return Coordinates.model_validate(json.loads(raw))
    except (json.JSONDecodeError, ValidationError) as e:
        raise ValueError(f"invalid coordinates: {raw!r}") from e


@router.post("/reports", response_model=ReportOut, status_code=201)
async def create_report(
    request: Request,
    report_type: Optional[str] = Form(None, alias="type"),
    description: Optional[str] = Form(None),
    location: Optional[str] = Form(None),
    reporter_name: Optional[str] = Form(None, alias="reporterName"),
    reporter_phone: Optional[str] = Form(None, alias="reporterPhone"),
    coordinates: Optional[str] = Form(None),
    ai_priority: Optional[str] = Form(None, alias="aiPriority"),
    ai_justification: Optional[str] = Form(None, alias="aiJustification"),
    media: Optional[UploadFile] = File(None),
):
    """Public report submission with a required media attachment."""
    if media is None:
        raise HTTPException(status_code=400, detail="Media file is required.")

    try:
        rtype = ReportType(report_type)
        coords = _parse_coordinates(coordinates)
        missing = [
            name
            for name, value in (
                ("description", description),
                ("location", location),
                ("reporterName", reporter_name),
                ("reporterPhone", reporter_phone),
            )
            if not value or not value.strip()
        ]
        if missing:
            raise ValueError(f"missing required fields: {', '.join(missing)}")
    except ValueError as e:
        logger.info("Rejected report: %s", e)
        raise HTTPException(status_code=400, detail=f"Error saving report: {e}")

    data = await media.read()
    try:
        validate_media(media.content_type, len(data))
    except MediaValidationError as e:
        raise HTTPException(status_code=400, detail=str(e))

    filename, media_type = save_media(data, media.filename, media.content_type)
    report = {
        "id": generate_report_id(),
        "type": rtype.value,
        "description": description,
        "location": location,
        "reporterName": reporter_name,
        "reporterPhone": reporter_phone,
        "mediaUrl": build_public_url(request, filename),
        "mediaType": media_type.value,
        "coordinates": coords.model_dump(),
        "aiPriority": ai_priority,
        "aiJustification": ai_justification,
        "status": ReportStatus.OPEN.value,
        "submittedAt": datetime.utcnow(),
    }
    return store.add_report(report)


@router.get("/reports", response_model=list[ReportOut])
async def list_reports():
    """All reports, newest first."""
    return store.get_all_reports()


@router.patch("/reports/{report_id}/status", response_model=ReportOut)
async def update_report_status(report_id: str, body: StatusUpdate):
    if body.status not in VALID_STATUSES:
        raise HTTPException(status_code=400, detail="Invalid status value.")
    report = store.update_report_status(report_id, body.status)
    if report is None:
        raise HTTPException(status_code=404, detail="Report not found.")
    logger.info("Report %s status -> %s", report_id, body.status)
    return report
