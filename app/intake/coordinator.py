"""IntakeCoordinator: orchestrates one report-intake session.

Reacts to user events (description edits, media selection, map interaction,
location search, submit) by updating IntakeState and calling the external
collaborators. Every collaborator failure is converted to state here; nothing
raised by a collaborator escapes to the caller.

Assessment is debounced through a single pending timer handle. Replacing the
timer cancels it; an assessment call that has already been dispatched is never
cancelled by later edits, but results are applied in issuance order, so an
older call finishing late cannot overwrite a newer result.

Location operations are neither debounced nor cancelled: whichever finishes
last wins.
"""
import asyncio
import logging
from typing import Any, Callable, Optional, Protocol

from app.config import settings
from app.intake.handoff import HANDOFF_REMINDER, build_handoff_message, build_handoff_url
from app.models.intake import (
    ASSESSMENT_FAILED_JUSTIFICATION,
    MANUAL_REVIEW,
    NO_ASSESSMENT_JUSTIFICATION,
    Assessment,
    IntakeState,
    LocationQueryStatus,
    MediaFile,
    SubmissionPhase,
)
from app.models.report import Coordinates, ReportType
from app.services.geocoding import GeocodeResult, format_coordinates
from app.services.location import LocationError, LocationProvider
from app.services.media import MediaValidationError, create_preview, release_preview, validate_media
from app.services.submitter import CONNECTIVITY_ERROR, SubmissionError, SubmissionPayload

logger = logging.getLogger(__name__)

OUT_OF_AREA_WARNING = (
    "Your location appears to be outside our primary service area. "
    "We will still receive your report."
)
LOCATION_SEARCH_ERROR = "Could not find the location. Please try a different search or select on the map."
VIDEO_NOTICE = "AI analysis will not be done for video. Video will be manually assessed"

FIELD_MESSAGES = {
    "reporter_name": "Name is required.",
    "reporter_phone": "Phone number is required.",
    "description": "Description is required.",
    "media": "Media file is required.",
    "coordinates": "Please set a location on the map.",
}

StateListener = Callable[[dict[str, Any]], None]


class Geocoder(Protocol):
    async def reverse_geocode_strict(self, coords: Coordinates) -> str: ...

    async def forward_geocode(self, query: str) -> Optional[GeocodeResult]: ...


class PriorityAssessor(Protocol):
    async def assess_priority(
        self, description: str, report_type: ReportType, media: Optional[MediaFile] = None
    ) -> Assessment: ...

    async def refine_location_query(self, raw: str) -> str: ...


class ReportSubmitter(Protocol):
    async def submit(self, payload: SubmissionPayload) -> dict[str, Any]: ...


def is_out_of_area(coords: Coordinates, center: Coordinates, threshold: float) -> bool:
    return (
        abs(coords.latitude - center.latitude) > threshold
        or abs(coords.longitude - center.longitude) > threshold
    )


class IntakeCoordinator:
    def __init__(
        self,
        location_provider: LocationProvider,
        geocoder: Geocoder,
        assessor: PriorityAssessor,
        submitter: ReportSubmitter,
        *,
        default_center: Coordinates | None = None,
        report_type: ReportType = ReportType.EMERGENCY,
        min_description_chars: int | None = None,
        media_delay: float | None = None,
        text_delay: float | None = None,
        area_threshold: float | None = None,
        max_media_bytes: int | None = None,
        handoff_phone: str | None = None,
    ) -> None:
        self.location_provider = location_provider
        self.geocoder = geocoder
        self.assessor = assessor
        self.submitter = submitter
        self.default_center = default_center or Coordinates(
            latitude=settings.default_latitude, longitude=settings.default_longitude
        )
        self.min_description_chars = (
            settings.min_description_chars if min_description_chars is None else min_description_chars
        )
        self.media_delay = settings.assessment_delay_media_seconds if media_delay is None else media_delay
        self.text_delay = settings.assessment_delay_text_seconds if text_delay is None else text_delay
        self.area_threshold = settings.service_area_threshold_deg if area_threshold is None else area_threshold
        self.max_media_bytes = settings.max_upload_bytes if max_media_bytes is None else max_media_bytes
        self.handoff_phone = handoff_phone or settings.handoff_phone_number

        self.state = IntakeState(coordinates=self.default_center, report_type=report_type)
        self._listeners: list[StateListener] = []
        self._pending_assessment: asyncio.TimerHandle | None = None
        self._assessment_tasks: set[asyncio.Task] = set()
        self._background_tasks: set[asyncio.Task] = set()
        self._issued_seq = 0
        self._applied_seq = 0
        self._outstanding = 0
        self._closed = False

    def add_listener(self, listener: StateListener) -> None:
        self._listeners.append(listener)

    def snapshot(self) -> dict[str, Any]:
        return self.state.snapshot()

    def _notify(self) -> None:
        if not self._listeners:
            return
        snap = self.state.snapshot()
        for listener in list(self._listeners):
            try:
                listener(snap)
            except Exception:
                logger.exception("Intake state listener failed")

    def _spawn(self, coro, bucket: set[asyncio.Task]) -> asyncio.Task:
        task = asyncio.get_running_loop().create_task(coro)
        bucket.add(task)
        task.add_done_callback(bucket.discard)
        return task

    @property
    def assessment_pending(self) -> bool:
        return self._pending_assessment is not None

    @property
    def handoff_reminder(self) -> str:
        return HANDOFF_REMINDER

    async def acquire_device_location(self) -> None:
        """Use the device position, warn if it is outside the service area, then label it."""
        st = self.state
        st.location_error = None
        st.location_warning = None
        st.location_query_status = LocationQueryStatus.LOCATING
        self._notify()

        try:
            coords = await self.location_provider.get_current_location()
        except LocationError as e:
            logger.info("Device location unavailable: %s", e.cause.value)
            st.location_error = e.message
            st.location_query_status = LocationQueryStatus.IDLE
            self._notify()
            return

        st.coordinates = coords
        if is_out_of_area(coords, self.default_center, self.area_threshold):
            st.location_warning = OUT_OF_AREA_WARNING
        self._notify()
        await self.reverse_geocode(coords)

    async def reverse_geocode(self, coords: Coordinates) -> None:
        """Label coords. On failure the numeric coordinates become the label; no error is shown."""
        try:
            label = await self.geocoder.reverse_geocode_strict(coords)
        except Exception as e:
            logger.warning("Reverse geocode failed for %s: %s", format_coordinates(coords), e)
            self.state.location_text = format_coordinates(coords)
            self.state.location_query_status = LocationQueryStatus.IDLE
        else:
            self.state.location_text = label
            self.state.location_query_status = LocationQueryStatus.FOUND
        self._notify()

    async def _forward(self, query: str) -> Optional[GeocodeResult]:
        try:
            return await self.geocoder.forward_geocode(query)
        except Exception as e:
            logger.warning("Forward geocode failed for %r: %s", query, e)
            return None

    async def search_by_text(self, raw_query: str | None = None) -> None:
        """Refine the query, geocode it, and retry with the unrefined text if that finds nothing."""
        st = self.state
        if raw_query is not None:
            st.location_text = raw_query
        query = st.location_text
        if not query.strip():
            return

        st.location_error = None
        st.location_warning = None
        st.location_query_status = LocationQueryStatus.REFINING
        self._notify()

        try:
            refined = await self.assessor.refine_location_query(query)
        except Exception as e:
            logger.warning("Location refinement failed: %s", e)
            refined = query
        if not refined or not refined.strip():
            refined = query
        if refined != query:
            st.location_text = refined

        st.location_query_status = LocationQueryStatus.SEARCHING
        self._notify()

        result = await self._forward(refined)
        if result is None and refined != query:
            result = await self._forward(query)

        if result is not None:
            st.coordinates = result.coordinates
            st.location_query_status = LocationQueryStatus.FOUND
        else:
            st.location_error = LOCATION_SEARCH_ERROR
            st.location_query_status = LocationQueryStatus.IDLE
        self._notify()

    def set_point_from_map(self, coords: Coordinates) -> Optional[asyncio.Task]:
        """Move the point now; label it in the background. The point stands even if labelling fails."""
        if self._closed:
            return None
        self.state.coordinates = coords
        self.state.location_query_status = LocationQueryStatus.LOCATING
        self._notify()
        return self._spawn(self._label_map_point(coords), self._background_tasks)

    def point_dragged(self, coords: Coordinates) -> Optional[asyncio.Task]:
        return self.set_point_from_map(coords)

    def point_clicked(self, coords: Coordinates) -> Optional[asyncio.Task]:
        return self.set_point_from_map(coords)

    async def _label_map_point(self, coords: Coordinates) -> None:
        try:
            label = await self.geocoder.reverse_geocode_strict(coords)
        except Exception as e:
            logger.info("No label for map point %s: %s", format_coordinates(coords), e)
            self.state.location_query_status = LocationQueryStatus.IDLE
        else:
            self.state.location_text = label
            self.state.location_query_status = LocationQueryStatus.FOUND
            self.state.location_warning = None
        self._notify()

    def reset_location(self) -> None:
        st = self.state
        st.coordinates = self.default_center
        st.location_text = ""
        st.location_warning = None
        st.location_error = None
        st.location_query_status = LocationQueryStatus.IDLE
        st.field_errors.pop("coordinates", None)
        self._notify()

    def set_location_text(self, text: str) -> None:
        self.state.location_text = text
        self._notify()

    def set_description(self, text: str) -> None:
        self.state.description = text
        self.on_input_changed()

    def set_report_type(self, report_type: ReportType) -> None:
        self.state.report_type = report_type
        self.on_input_changed()

    def set_reporter(self, name: str | None = None, phone: str | None = None) -> None:
        if name is not None:
            self.state.reporter_name = name
        if phone is not None:
            self.state.reporter_phone = phone
        self._notify()

    def set_media(self, media: Optional[MediaFile]) -> None:
        """Attach (or clear) the single media file. The previous file and its preview are discarded."""
        st = self.state
        release_preview(st.media_preview)
        st.media_preview = None
        st.media_file = None

        if media is not None:
            try:
                validate_media(media.content_type, media.size, self.max_media_bytes)
            except MediaValidationError as e:
                st.field_errors["media"] = str(e)
            else:
                st.field_errors.pop("media", None)
                st.submission_error = None
                st.media_file = media
                st.media_preview = create_preview()
        self.on_input_changed()

    def _cancel_pending_assessment(self) -> None:
        if self._pending_assessment is not None:
            self._pending_assessment.cancel()
            self._pending_assessment = None

    def _assessment_applicable(self) -> bool:
        media = self.state.media_file
        if media is not None:
            return media.is_image
        return len(self.state.description.strip()) >= self.min_description_chars

    def on_input_changed(self) -> None:
        """Re-evaluate assessment after a description or media change. Must run on the event loop."""
        st = self.state
        self._cancel_pending_assessment()
        media = st.media_file

        if media is not None and not media.is_image:
            st.assessment = None
            st.assessment_in_flight = False
            st.assessment_notice = VIDEO_NOTICE
            self._notify()
            return
        st.assessment_notice = None

        if not self._assessment_applicable():
            st.assessment = None
            st.assessment_in_flight = False
            self._notify()
            return

        delay = self.media_delay if media is not None else self.text_delay
        self._pending_assessment = asyncio.get_running_loop().call_later(delay, self._fire_assessment)
        self._notify()

    def _fire_assessment(self) -> None:
        self._pending_assessment = None
        if self._closed:
            return
        st = self.state
        self._issued_seq += 1
        self._outstanding += 1
        st.assessment_in_flight = True
        self._spawn(
            self._assess(self._issued_seq, st.description, st.report_type, st.media_file),
            self._assessment_tasks,
        )
        self._notify()

    async def _assess(
        self, seq: int, description: str, report_type: ReportType, media: Optional[MediaFile]
    ) -> None:
        try:
            try:
                result = await self.assessor.assess_priority(description, report_type, media)
            except Exception as e:
                logger.warning("Priority assessment failed: %s", e)
                result = Assessment.manual_review(ASSESSMENT_FAILED_JUSTIFICATION)
        finally:
            self._outstanding -= 1

        applicable = self._assessment_applicable()
        if applicable and seq > self._applied_seq:
            self.state.assessment = result
            self._applied_seq = seq
        elif applicable:
            logger.debug("Dropping assessment #%d; #%d already applied", seq, self._applied_seq)
        self.state.assessment_in_flight = applicable and self._outstanding > 0
        self._notify()

    def _validate(self) -> dict[str, str]:
        st = self.state
        errors: dict[str, str] = {}
        if not st.reporter_name.strip():
            errors["reporter_name"] = FIELD_MESSAGES["reporter_name"]
        if not st.reporter_phone.strip():
            errors["reporter_phone"] = FIELD_MESSAGES["reporter_phone"]
        if not st.description.strip():
            errors["description"] = FIELD_MESSAGES["description"]
        if st.media_file is None:
            errors["media"] = FIELD_MESSAGES["media"]
        if st.coordinates is None:
            errors["coordinates"] = FIELD_MESSAGES["coordinates"]
        return errors

    def _payload(self) -> SubmissionPayload:
        st = self.state
        assessment = st.assessment
        return SubmissionPayload(
            report_type=st.report_type,
            description=st.description,
            location=st.location_text,
            reporter_name=st.reporter_name,
            reporter_phone=st.reporter_phone,
            coordinates=st.coordinates,
            ai_priority=assessment.priority if assessment else MANUAL_REVIEW,
            ai_justification=assessment.justification if assessment else NO_ASSESSMENT_JUSTIFICATION,
            media=st.media_file,
        )

    async def submit(self) -> bool:
        """Validate, persist and prepare the hand-off link. Returns True once submitted."""
        st = self.state
        if st.submission_phase in (SubmissionPhase.SUBMITTING, SubmissionPhase.SUBMITTED):
            return st.submission_phase == SubmissionPhase.SUBMITTED

        st.submission_error = None
        for key in FIELD_MESSAGES:
            st.field_errors.pop(key, None)
        errors = self._validate()
        if errors:
            st.field_errors.update(errors)
            self._notify()
            return False

        st.submission_phase = SubmissionPhase.SUBMITTING
        self._notify()
        payload = self._payload()
        try:
            record = await self.submitter.submit(payload)
        except SubmissionError as e:
            st.submission_error = e.message
            st.submission_phase = SubmissionPhase.FAILED
            self._notify()
            return False
        except Exception:
            logger.exception("Unexpected error submitting report")
            st.submission_error = CONNECTIVITY_ERROR
            st.submission_phase = SubmissionPhase.FAILED
            self._notify()
            return False

        message = build_handoff_message(
            report_type=payload.report_type,
            reporter_name=payload.reporter_name,
            reporter_phone=payload.reporter_phone,
            location=payload.location,
            coordinates=payload.coordinates,
            description=payload.description,
            assessment=Assessment(priority=payload.ai_priority, justification=payload.ai_justification),
        )
        st.record = record
        st.handoff_message = message
        st.handoff_url = build_handoff_url(self.handoff_phone, message)
        st.submission_phase = SubmissionPhase.SUBMITTED
        logger.info("Report submitted: %s", (record or {}).get("id", "?"))
        self._notify()
        return True

    async def wait_idle(self) -> None:
        """Wait until no assessment timer is pending and no background call is running."""
        loop = asyncio.get_running_loop()
        while True:
            handle = self._pending_assessment
            if handle is not None:
                await asyncio.sleep(max(0.0, handle.when() - loop.time()) + 0.001)
                continue
            tasks = self._assessment_tasks | self._background_tasks
            if not tasks:
                return
            await asyncio.gather(*tasks, return_exceptions=True)

    def close(self) -> None:
        """Tear the session down: cancel timers and background calls, release the preview."""
        if self._closed:
            return
        self._closed = True
        self._cancel_pending_assessment()
        for task in self._assessment_tasks | self._background_tasks:
            task.cancel()
        release_preview(self.state.media_preview)
        self.state.media_preview = None
        self._listeners.clear()

    async def __aenter__(self) -> "IntakeCoordinator":
        return self

    async def __aexit__(self, *exc_info) -> None:
        tasks = self._assessment_tasks | self._background_tasks
        self.close()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)
