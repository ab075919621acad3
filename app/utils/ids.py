"""ID generation for stored records."""
import uuid


def generate_report_id() -> str:
    """Generate unique report ID."""
    return f"RPT-{uuid.uuid4().hex[:12].upper()}"


def generate_volunteer_id() -> str:
    """Generate unique volunteer ID."""
    return f"VOL-{uuid.uuid4().hex[:12].upper()}"
