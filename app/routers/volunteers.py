"""Volunteers router: POST/GET /api/volunteers."""
from datetime import datetime

from fastapi import APIRouter

from app import store
from app.models.report import VolunteerCreate, VolunteerOut
from app.utils.ids import generate_volunteer_id

router = APIRouter(prefix="/api", tags=["volunteers"])


@router.post("/volunteers", response_model=VolunteerOut, status_code=201)
async def register_volunteer(body: VolunteerCreate):
    volunteer = {
        "id": generate_volunteer_id(),
        **body.model_dump(),
        "registeredAt": datetime.utcnow(),
    }
    return store.add_volunteer(volunteer)


@router.get("/volunteers", response_model=list[VolunteerOut])
async def list_volunteers():
    return store.get_all_volunteers()
