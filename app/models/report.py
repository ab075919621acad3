"""Report and volunteer models for the incident API."""
from datetime import datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class ReportType(str, Enum):
    EMERGENCY = "emergency"
    ABUSE = "abuse"
    MISSING_PET = "missing_pet"
    FOUND_PET = "found_pet"
    STERILIZATION = "sterilization"

    @property
    def label(self) -> str:
        return REPORT_TYPE_TITLES[self]


REPORT_TYPE_TITLES = {
    ReportType.EMERGENCY: "Medical Emergency",
    ReportType.ABUSE: "Abuse or Neglect",
    ReportType.MISSING_PET: "Missing Pet",
    ReportType.FOUND_PET: "Found Pet",
    ReportType.STERILIZATION: "Sterilization Request",
}


class ReportStatus(str, Enum):
    OPEN = "Open"
    IN_PROGRESS = "In Progress"
    RESOLVED = "Resolved"
    ESCALATED = "Escalated"


class Priority(str, Enum):
    HIGH = "High"
    MEDIUM = "Medium"
    LOW = "Low"
    INFO = "Info"
    MANUAL_REVIEW = "Manual Review"


class MediaType(str, Enum):
    IMAGE = "image"
    VIDEO = "video"


class Coordinates(BaseModel):
    model_config = ConfigDict(frozen=True)

    latitude: float
    longitude: float


class ReportOut(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: str
    type: ReportType
    description: str
    location: str
    reporter_name: str = Field(alias="reporterName")
    reporter_phone: str = Field(alias="reporterPhone")
    media_url: str = Field(alias="mediaUrl")
    media_type: MediaType = Field(alias="mediaType")
    coordinates: Coordinates
    ai_priority: Optional[str] = Field(default=None, alias="aiPriority")
    ai_justification: Optional[str] = Field(default=None, alias="aiJustification")
    status: ReportStatus = ReportStatus.OPEN
    submitted_at: datetime = Field(default_factory=datetime.utcnow, alias="submittedAt")


class StatusUpdate(BaseModel):
    status: str


class VolunteerCreate(BaseModel):
    name: str = Field(min_length=1)
    email: str = Field(min_length=1)
    phone: str = Field(min_length=1)
    interests: list[str] = Field(default_factory=list)


class VolunteerOut(VolunteerCreate):
    model_config = ConfigDict(populate_by_name=True)

    id: str
    registered_at: datetime = Field(default_factory=datetime.utcnow, alias="registeredAt")
