"""Intake session state: everything one report form holds while it is being filled in."""
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Optional

from app.models.report import Coordinates, Priority, ReportType

MANUAL_REVIEW = Priority.MANUAL_REVIEW.value
ASSESSMENT_FAILED_JUSTIFICATION = "Analysis failed."
NO_ASSESSMENT_JUSTIFICATION = "N/A"


class LocationQueryStatus(str, Enum):
    IDLE = "idle"
    LOCATING = "locating"
    SEARCHING = "searching"
    REFINING = "refining"
    FOUND = "found"


class SubmissionPhase(str, Enum):
    EDITING = "editing"
    SUBMITTING = "submitting"
    SUBMITTED = "submitted"
    FAILED = "failed"


@dataclass(frozen=True)
class MediaFile:
    filename: str
    content_type: str
    data: bytes = field(repr=False)

    @property
    def is_image(self) -> bool:
        return self.content_type.startswith("image/")

    @property
    def is_video(self) -> bool:
        return self.content_type.startswith("video/")

    @property
    def size(self) -> int:
        return len(self.data)


@dataclass(frozen=True)
class Assessment:
    priority: str
    justification: str

    @classmethod
    def manual_review(cls, justification: str) -> "Assessment":
        return cls(priority=MANUAL_REVIEW, justification=justification)


@dataclass
class IntakeState:
    """Mutable state of one intake session. Only IntakeCoordinator writes to it."""

    coordinates: Coordinates
    report_type: ReportType = ReportType.EMERGENCY
    description: str = ""
    media_file: Optional[MediaFile] = None
    media_preview: Optional[str] = None
    location_text: str = ""
    location_query_status: LocationQueryStatus = LocationQueryStatus.IDLE
    location_warning: Optional[str] = None
    location_error: Optional[str] = None
    assessment: Optional[Assessment] = None
    assessment_in_flight: bool = False
    assessment_notice: Optional[str] = None
    reporter_name: str = ""
    reporter_phone: str = ""
    submission_phase: SubmissionPhase = SubmissionPhase.EDITING
    submission_error: Optional[str] = None
    field_errors: dict[str, str] = field(default_factory=dict)
    handoff_message: Optional[str] = None
    handoff_url: Optional[str] = None
    record: Optional[dict[str, Any]] = None

    def snapshot(self) -> dict[str, Any]:
        """JSON-friendly view for presentation. Media bytes are never included."""
        media = None
        if self.media_file is not None:
            media = {
                "filename": self.media_file.filename,
                "content_type": self.media_file.content_type,
                "size": self.media_file.size,
                "preview": self.media_preview,
            }
        assessment = None
        if self.assessment is not None:
            assessment = {
                "priority": self.assessment.priority,
                "justification": self.assessment.justification,
            }
        return {
            "report_type": self.report_type.value,
            "description": self.description,
            "media": media,
            "coordinates": self.coordinates.model_dump(),
            "location_text": self.location_text,
            "location_query_status": self.location_query_status.value,
            "location_warning": self.location_warning,
            "location_error": self.location_error,
            "assessment": assessment,
            "assessment_in_flight": self.assessment_in_flight,
            "assessment_notice": self.assessment_notice,
            "reporter_name": self.reporter_name,
            "reporter_phone": self.reporter_phone,
            "submission_phase": self.submission_phase.value,
            "submission_error": self.submission_error,
            "field_errors": dict(self.field_errors),
            "handoff_message": self.handoff_message,
            "handoff_url": self.handoff_url,
            "record_id": (self.record or {}).get("id"),
        }
