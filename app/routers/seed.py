"""Seed router: POST /api/seed loads demo reports and volunteers into the store."""
import logging

from fastapi import APIRouter, Query

from app import store
from app.seed_data import seed_all

router = APIRouter(prefix="/api", tags=["seed"])
logger = logging.getLogger(__name__)


@router.post("/seed")
async def seed_demo_data(reset: bool = Query(False)):
    """Load demo data into an empty store. With ?reset=true the store is wiped first."""
    if reset:
        store.clear_all()
        logger.info("Store cleared before seeding")
    inserted = seed_all()
    return {
        "status": "seeded" if any(inserted.values()) else "skipped",
        "inserted": inserted,
        "totals": {
            "reports": len(store.get_all_reports()),
            "volunteers": len(store.get_all_volunteers()),
        },
    }
