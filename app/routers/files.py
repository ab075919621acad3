"""
Media Router

Serves report media saved by the reports router.
"""

from pathlib import Path

from fastapi import APIRouter, HTTPException, Request
from fastapi.responses import FileResponse

from app.config import settings
from app.services.media import upload_dir

router = APIRouter(tags=["files"])


def _safe_resolve(path: Path) -> Path:
    resolved = path.resolve()
    if resolved.parent != upload_dir().resolve():
        raise HTTPException(status_code=400, detail="Invalid filename")
    return resolved


def build_public_url(request: Request, filename: str) -> str:
    base = settings.media_base_url.strip().rstrip("/")
    if base:
        return f"{base}/uploads/{filename}"
    return str(request.base_url).rstrip("/") + f"/uploads/{filename}"


@router.get("/uploads/{filename}")
async def get_file(filename: str) -> FileResponse:
    """
    Serve an uploaded media file over HTTP.
    """
    file_path = _safe_resolve(upload_dir() / filename)
    if not file_path.exists():
        raise HTTPException(status_code=404, detail="File not found")
    return FileResponse(str(file_path))
