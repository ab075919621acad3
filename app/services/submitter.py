"""ReportSubmitter: posts a finished intake to the reports API as multipart."""
import json
import logging
from dataclasses import dataclass
from typing import Any

import httpx

from app.config import settings
from app.models.intake import MediaFile
from app.models.report import Coordinates, ReportType

logger = logging.getLogger(__name__)

GENERIC_SUBMIT_ERROR = "Failed to submit report."
CONNECTIVITY_ERROR = "Cannot connect to the server. Please check your backend and CORS configuration."


class SubmissionError(Exception):
    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


@dataclass(frozen=True)
class SubmissionPayload:
    report_type: ReportType
    description: str
    location: str
    reporter_name: str
    reporter_phone: str
    coordinates: Coordinates
    ai_priority: str
    ai_justification: str
    media: MediaFile

    def form_fields(self) -> dict[str, str]:
        return {
            "type": self.report_type.value,
            "description": self.description,
            "location": self.location,
            "reporterName": self.reporter_name,
            "reporterPhone": self.reporter_phone,
            "coordinates": json.dumps(self.coordinates.model_dump()),
            "aiPriority": self.ai_priority,
            "aiJustification": self.ai_justification,
        }


def error_message_from_response(response: httpx.Response) -> str:
    try:
        data = response.json()
    except ValueError:
        return CONNECTIVITY_ERROR
    if isinstance(data, dict) and data.get("message"):
        return str(data["message"])
    return GENERIC_SUBMIT_ERROR


class HttpReportSubmitter:
    def __init__(self, base_url: str | None = None, timeout: float | None = None):
        self.base_url = (base_url or settings.api_base_url).rstrip("/")
        self.timeout = timeout if timeout is not None else settings.submit_timeout_seconds

    async def submit(self, payload: SubmissionPayload) -> dict[str, Any]:
        """Persist the report. Returns the stored record; raises SubmissionError."""
        files = {"media": (payload.media.filename, payload.media.data, payload.media.content_type)}
        try:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                r = await client.post(
                    f"{self.base_url}/api/reports",
                    data=payload.form_fields(),
                    files=files,
                )
        except httpx.HTTPError as e:
            logger.warning("Report submission failed: %s", e)
            raise SubmissionError(CONNECTIVITY_ERROR) from e
        if not r.is_success:
            message = error_message_from_response(r)
            logger.warning("Report submission rejected (%d): %s", r.status_code, message)
            raise SubmissionError(message)
        try:
            return r.json()
        except ValueError:
            return {}
