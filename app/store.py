"""In-memory document store for reports and volunteers."""
import logging
from typing import Any

logger = logging.getLogger(__name__)

_reports: dict[str, dict[str, Any]] = {}  # report_id -> stored record
_volunteers: dict[str, dict[str, Any]] = {}  # volunteer_id -> stored record


def add_report(report: dict[str, Any]) -> dict[str, Any]:
    _reports[report["id"]] = report
    logger.info("Stored report %s (%s)", report["id"], report.get("type"))
    return report


def get_report(report_id: str) -> dict[str, Any] | None:
    return _reports.get(report_id)


def get_all_reports() -> list[dict[str, Any]]:
    """All reports, newest first."""
    return sorted(_reports.values(), key=lambda r: r["submittedAt"], reverse=True)


def update_report_status(report_id: str, status: str) -> dict[str, Any] | None:
    report = _reports.get(report_id)
    if report is None:
        return None
    report["status"] = status
    return report


def add_volunteer(volunteer: dict[str, Any]) -> dict[str, Any]:
    _volunteers[volunteer["id"]] = volunteer
    return volunteer


def get_all_volunteers() -> list[dict[str, Any]]:
    """All volunteers, newest first."""
    return sorted(_volunteers.values(), key=lambda v: v["registeredAt"], reverse=True)


def clear_all() -> None:
    _reports.clear()
    _volunteers.clear()
