"""Demo reports and volunteers for the admin dashboard."""
from datetime import datetime, timedelta

from app import store
from app.models.report import ReportStatus, ReportType
from app.utils.ids import generate_report_id, generate_volunteer_id

DEMO_REPORTS = [
    {
        "type": ReportType.EMERGENCY,
        "description": "Dog hit by a vehicle near the bus stand, bleeding from the hind leg and unable to move.",
        "location": "KSRTC Bus Stand, Bejai, Mangaluru",
        "reporterName": "Anitha Rao",
        "reporterPhone": "9845000001",
        "coordinates": {"latitude": 12.8880, "longitude": 74.8420},
        "mediaType": "image",
        "aiPriority": "High",
        "aiJustification": "Visible bleeding and immobility after a road accident.",
        "status": ReportStatus.IN_PROGRESS,
        "hours_ago": 2,
    },
    {
        "type": ReportType.ABUSE,
        "description": "Cow tied without water under direct sun for the whole day behind the market.",
        "location": "Central Market, Hampankatta, Mangaluru",
        "reporterName": "Imran Shaikh",
        "reporterPhone": "9845000002",
        "coordinates": {"latitude": 12.8698, "longitude": 74.8430},
        "mediaType": "video",
        "aiPriority": "Manual Review",
        "aiJustification": "N/A",
        "status": ReportStatus.OPEN,
        "hours_ago": 5,
    },
    {
        "type": ReportType.STERILIZATION,
        "description": "Colony of six community cats near the college hostel, none appear sterilized.",
        "location": "Kadri, Mangaluru",
        "reporterName": "Meera Pai",
        "reporterPhone": "9845000003",
        "coordinates": {"latitude": 12.8855, "longitude": 74.8560},
        "mediaType": "image",
        "aiPriority": "Low",
        "aiJustification": "Routine sterilization request with no injuries reported.",
        "status": ReportStatus.RESOLVED,
        "hours_ago": 30,
    },
]

DEMO_VOLUNTEERS = [
    {"name": "Rohan D'Souza", "email": "rohan@example.org", "phone": "9845100001", "interests": ["rescue", "transport"]},
    {"name": "Kavya Shetty", "email": "kavya@example.org", "phone": "9845100002", "interests": ["fostering"]},
]


def seed_all() -> dict[str, int]:
    """Insert demo data unless the store already holds records."""
    if store.get_all_reports() or store.get_all_volunteers():
        return {"reports": 0, "volunteers": 0}
    now = datetime.utcnow()
    for demo in DEMO_REPORTS:
        report = {k: v for k, v in demo.items() if k != "hours_ago"}
        report_id = generate_report_id()
        ext = "jpg" if demo["mediaType"] == "image" else "mp4"
        report.update(
            id=report_id,
            type=demo["type"].value,
            status=demo["status"].value,
            mediaUrl=f"/uploads/demo-{report_id.lower()}.{ext}",
            submittedAt=now - timedelta(hours=demo["hours_ago"]),
        )
        store.add_report(report)
    for i, demo in enumerate(DEMO_VOLUNTEERS):
        store.add_volunteer({
            "id": generate_volunteer_id(),
            **demo,
            "registeredAt": now - timedelta(days=i + 1),
        })
    return {"reports": len(DEMO_REPORTS), "volunteers": len(DEMO_VOLUNTEERS)}
