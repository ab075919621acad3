"""StraySafe: FastAPI app."""
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from app.config import settings
from app.routers import files, intake, reports, seed, volunteers
from app.services.ai import OllamaAssessor
from app.services.media import upload_dir

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Prepare the media directory and report which collaborators are configured."""
    media_dir = upload_dir()
    logger.info("Media directory: %s", media_dir.resolve())
    if OllamaAssessor().is_available():
        logger.info("AI assessment via %s", settings.ollama_url)
    else:
        logger.info("OLLAMA_URL not set; reports will default to Manual Review")
    logger.info("StraySafe backend started")
    yield
    logger.info("StraySafe backend stopped")


app = FastAPI(
    title="StraySafe",
    description="Animal-welfare incident reporting",
    version="1.0.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins_list,
    allow_credentials=False,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    return JSONResponse(status_code=exc.status_code, content={"message": exc.detail})


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    errors = "; ".join(
        f"{'.'.join(str(p) for p in err.get('loc', ()))}: {err.get('msg', '')}" for err in exc.errors()
    )
    return JSONResponse(status_code=400, content={"message": f"Invalid request: {errors}"})


app.include_router(reports.router)
app.include_router(volunteers.router)
app.include_router(files.router)
app.include_router(intake.router)
app.include_router(seed.router)


@app.get("/health")
async def health():
    """Health check."""
    return {
        "status": "ok",
        "ai_enabled": OllamaAssessor().is_available(),
    }
