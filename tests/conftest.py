"""Pytest fixtures: fake collaborators for the intake coordinator, API client."""
import asyncio

import httpx
import pytest

from app import store
from app.config import settings
from app.intake.coordinator import IntakeCoordinator
from app.models.intake import Assessment, MediaFile
from app.models.report import Coordinates
from app.services.ai import AssessmentError
from app.services.geocoding import GeocodeResult, GeocodingError
from app.services.location import StaticLocationProvider
from app.services.submitter import SubmissionError

DEFAULT_CENTER = Coordinates(latitude=12.9141, longitude=74.8560)
PNG_BYTES = b"\x89PNG\r\n\x1a\n" + b"\x00" * 64


class FakeGeocoder:
    """Records calls. Reverse lookups return `label` unless `fail_reverse`."""

    def __init__(self, label="Bejai, Mangaluru, Karnataka", fail_reverse=False, forward=None, delays=None):
        self.label = label
        self.fail_reverse = fail_reverse
        self.forward = forward or {}
        self.delays = list(delays or [])
        self.reverse_calls: list[Coordinates] = []
        self.forward_calls: list[str] = []

    async def reverse_geocode_strict(self, coords):
        self.reverse_calls.append(coords)
        if self.delays:
            await asyncio.sleep(self.delays.pop(0))
        if self.fail_reverse:
            raise GeocodingError("no address")
        return self.label

    async def forward_geocode(self, query):
        self.forward_calls.append(query)
        return self.forward.get(query)


class FakeAssessor:
    """Returns queued results (or `result`) after queued delays; optionally fails."""

    def __init__(self, result=None, fail=False, results=None, delays=None, refined=None, refine_fails=False):
        self.result = result or Assessment(priority="High", justification="Visible wound")
        self.results = list(results or [])
        self.delays = list(delays or [])
        self.fail = fail
        self.refined = refined
        self.refine_fails = refine_fails
        self.calls: list[tuple] = []
        self.refine_calls: list[str] = []

    async def assess_priority(self, description, report_type, media=None):
        self.calls.append((description, report_type, media))
        result = self.results.pop(0) if self.results else self.result
        if self.delays:
            await asyncio.sleep(self.delays.pop(0))
        if self.fail:
            raise AssessmentError("model unavailable")
        return result

    async def refine_location_query(self, raw):
        self.refine_calls.append(raw)
        if self.refine_fails:
            raise AssessmentError("model unavailable")
        return self.refined if self.refined is not None else raw


class FakeSubmitter:
    def __init__(self, fail_message=None, error=None, delay=0.0):
        self.fail_message = fail_message
        self.error = error
        self.delay = delay
        self.calls = []

    async def submit(self, payload):
        self.calls.append(payload)
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.error is not None:
            raise self.error
        if self.fail_message:
            raise SubmissionError(self.fail_message)
        return {"id": "RPT-TEST00000001", "mediaUrl": "http://testserver/uploads/media-1.png"}


def image_file(name="dog.png"):
    return MediaFile(filename=name, content_type="image/png", data=PNG_BYTES)


def video_file(name="dog.mp4"):
    return MediaFile(filename=name, content_type="video/mp4", data=b"\x00\x00\x00\x18ftypmp42")


@pytest.fixture
def geocoder():
    return FakeGeocoder()


@pytest.fixture
def assessor():
    return FakeAssessor()


@pytest.fixture
def submitter():
    return FakeSubmitter()


@pytest.fixture
def provider():
    return StaticLocationProvider(timeout_seconds=1.0)


@pytest.fixture
async def make_coordinator(provider, geocoder, assessor, submitter):
    """Factory for coordinators with short debounce delays; all are closed after the test."""
    created: list[IntakeCoordinator] = []

    def _make(**overrides) -> IntakeCoordinator:
        kwargs = {
            "default_center": DEFAULT_CENTER,
            "media_delay": 0.01,
            "text_delay": 0.05,
            "handoff_phone": "919845255777",
        }
        kwargs.update(overrides)
        coordinator = IntakeCoordinator(
            kwargs.pop("location_provider", provider),
            kwargs.pop("geocoder", geocoder),
            kwargs.pop("assessor", assessor),
            kwargs.pop("submitter", submitter),
            **kwargs,
        )
        created.append(coordinator)
        return coordinator

    yield _make
    for coordinator in created:
        async with coordinator:
            pass


@pytest.fixture
def app_client(tmp_path, monkeypatch):
    """FastAPI TestClient with an empty store and a temporary media directory."""
    from fastapi.testclient import TestClient

    from app.main import app

    monkeypatch.setattr(settings, "upload_dir", str(tmp_path / "uploads"))
    store.clear_all()
    with TestClient(app) as client:
        yield client
    store.clear_all()


@pytest.fixture
def forward_result():
    def _result(lat, lon, name="Kadri Park, Mangaluru"):
        return GeocodeResult(coordinates=Coordinates(latitude=lat, longitude=lon), display_name=name)

    return _result


async def wait_for_dispatch(coordinator, timeout=1.0):
    """Poll until the pending assessment timer has fired."""
    loop = asyncio.get_running_loop()
    deadline = loop.time() + timeout
    while coordinator.assessment_pending:
        assert loop.time() < deadline, "assessment timer never fired"
        await asyncio.sleep(0.001)


@pytest.fixture
def mock_http(monkeypatch):
    """Route every httpx.AsyncClient through `handler`. Returns the list of requests seen."""
    real_client = httpx.AsyncClient

    def install(handler):
        seen: list[httpx.Request] = []

        def recording(request):
            seen.append(request)
            return handler(request)

        def factory(*args, **kwargs):
            kwargs["transport"] = httpx.MockTransport(recording)
            return real_client(*args, **kwargs)

        monkeypatch.setattr(httpx, "AsyncClient", factory)
        return seen

    return install
