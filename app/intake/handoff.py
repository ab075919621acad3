"""Hand-off message for the external messaging channel (WhatsApp click-to-chat)."""
import re
from urllib.parse import quote

from app.models.intake import MANUAL_REVIEW, NO_ASSESSMENT_JUSTIFICATION, Assessment
from app.models.report import Coordinates, ReportType

URI_SAFE_CHARS = "-_.!~*'()"
_LEADING_WS_RE = re.compile(r"^\s+", re.MULTILINE)

HANDOFF_REMINDER = "Please remember to attach the photo/video for this report."


def map_link(coords: Coordinates) -> str:
    return f"https://www.google.com/maps?q={coords.latitude},{coords.longitude}"


def build_handoff_message(
    report_type: ReportType,
    reporter_name: str,
    reporter_phone: str,
    location: str,
    coordinates: Coordinates,
    description: str,
    assessment: Assessment | None,
) -> str:
    priority = assessment.priority if assessment else MANUAL_REVIEW
    justification = assessment.justification if assessment else NO_ASSESSMENT_JUSTIFICATION
    lines = [
        "--- INCIDENT REPORT ---",
        f"*Type:* {report_type.label}",
        f"*Name:* {reporter_name}",
        f"*Phone:* {reporter_phone}",
        f"*Location:* {location}",
        f"*Map Link:* {map_link(coordinates)}",
        "*Description:*",
        description,
        "--- AI ASSESSMENT ---",
        f"*Priority:* {priority}",
        f"*Justification:* {justification}",
        f"*{HANDOFF_REMINDER}*",
    ]
    return _LEADING_WS_RE.sub("", "\n".join(lines).strip())


def build_handoff_url(phone_number: str, message: str) -> str:
    return f"https://wa.me/{phone_number}?text={quote(message, safe=URI_SAFE_CHARS)}"
