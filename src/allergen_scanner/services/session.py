"""Scanner session state machine.

Single source of truth for what is on screen: the active pipeline kind,
the staged image, the current pipeline run and the inline error.

    Idle -> ImageStaged -> Running(1) -> Running(2) -> Completed | Failed

Every change that makes the current run obsolete (new image, clear, kind
switch, new run) bumps the generation. Stage results are only applied when
the run they belong to is still the current generation.
"""

import logging

from allergen_scanner.core.exceptions import (
    CameraCancelledError,
    CameraError,
    CameraNotReadyError,
    EmptyFileError,
    ValidationError,
)
from allergen_scanner.models.scan import (
    AllergenCheck,
    Classification,
    ExtractedText,
    ImagePayload,
    ImageSummary,
    PipelineKind,
    PipelineRun,
    RunStatus,
    SessionPhase,
    SessionSnapshot,
    derive_risk_level,
)

from .camera import CameraResourceManager, CameraSession
from .image_source import ImageSourceNormalizer
from .notifications import NotificationChannel

logger = logging.getLogger(__name__)


class ScannerSession:
    """
    State of one scanner screen.

    Usage:
        session = ScannerSession(camera, normalizer, notifications)
        session.stage_upload(data, "image/png")
        run = session.begin_run()
        session.record_stage_one(run, classification)
    """

    def __init__(
        self,
        camera: CameraResourceManager,
        normalizer: ImageSourceNormalizer,
        notifications: NotificationChannel,
    ) -> None:
        self._camera = camera
        self._normalizer = normalizer
        self._notifications = notifications

        self._active_kind = PipelineKind.ANALYZE_FOOD
        self._image: ImagePayload | None = None
        self._run: PipelineRun | None = None
        self._error: str | None = None
        self._generation = 0
        self._camera_session: CameraSession | None = None

    # =========================================================================
    # State
    # =========================================================================

    @property
    def active_kind(self) -> PipelineKind:
        return self._active_kind

    @property
    def image(self) -> ImagePayload | None:
        return self._image

    @property
    def run(self) -> PipelineRun | None:
        return self._run

    @property
    def error(self) -> str | None:
        return self._error

    @property
    def generation(self) -> int:
        return self._generation

    @property
    def phase(self) -> SessionPhase:
        if self._run is not None:
            match self._run.status:
                case RunStatus.RUNNING:
                    return SessionPhase.RUNNING
                case RunStatus.COMPLETED:
                    return SessionPhase.COMPLETED
                case RunStatus.FAILED:
                    return SessionPhase.FAILED
        if self._image is not None:
            return SessionPhase.IMAGE_STAGED
        return SessionPhase.IDLE

    def set_error(self, message: str | None) -> None:
        self._error = message

    def snapshot(self) -> SessionSnapshot:
        """Current screen state. Risk level is derived fresh on every call."""
        image = None
        if self._image is not None:
            image = ImageSummary(
                mime_type=self._image.mime_type,
                source=self._image.source,
                size_bytes=self._image.size_bytes,
            )

        run = self._run.model_copy(deep=True) if self._run is not None else None

        return SessionSnapshot(
            phase=self.phase,
            active_kind=self._active_kind,
            image=image,
            run=run,
            risk_level=derive_risk_level(run.allergen_check if run else None),
            camera=self._camera.status(),
            error=self._error,
        )

    def _invalidate(self) -> None:
        """Detach the current run; any in-flight result becomes stale."""
        self._generation += 1
        self._run = None
        self._error = None

    # =========================================================================
    # Image staging
    # =========================================================================

    def stage_image(self, payload: ImagePayload) -> None:
        """Replace the staged image and invalidate the current run."""
        self._release_camera()
        self._image = payload
        self._invalidate()
        logger.info(
            f"Staged {payload.source.value} image ({payload.mime_type}, "
            f"{payload.size_bytes} bytes), generation={self._generation}"
        )

    def stage_upload(self, file_bytes: bytes, mime_type: str | None) -> ImagePayload:
        """
        Normalize and stage an uploaded file.

        Raises:
            EmptyFileError: If the file is empty
            ValidationError: If the file isn't an acceptable image
        """
        try:
            payload = self._normalizer.from_upload(file_bytes, mime_type)
        except (EmptyFileError, ValidationError) as e:
            self._error = e.message
            raise
        self.stage_image(payload)
        return payload

    def check_upload_size(self, size: int) -> None:
        """
        Reject an upload by its size before its content is read.

        Raises:
            ValidationError: If the upload is over the limit
        """
        try:
            self._normalizer.check_size(size)
        except ValidationError as e:
            self._error = e.message
            raise

    def stage_capture(self) -> ImagePayload:
        """
        Capture a frame from the open camera, stage it, and release the camera.

        Raises:
            CameraNotReadyError: If no granted camera session is open
            CameraError: If the frame could not be read
        """
        session = self._camera_session
        if session is None or not session.is_live:
            raise CameraNotReadyError()

        try:
            frame = self._camera.capture_frame(session)
        except CameraError as e:
            self._surface_camera_error(e)
            raise
        finally:
            self._release_camera()

        payload = self._normalizer.from_capture(frame)
        self.stage_image(payload)
        return payload

    def clear(self) -> None:
        """Return to Idle: drop the image and results, release the camera."""
        self._release_camera()
        self._image = None
        self._invalidate()
        logger.info(f"Session cleared, generation={self._generation}")

    def switch_kind(self, kind: PipelineKind) -> None:
        """
        Change the active pipeline kind.

        The displayed run is detached (an in-flight call is not aborted, its
        result is discarded). Re-selecting the active kind changes nothing.
        """
        if kind == self._active_kind:
            return
        self._active_kind = kind
        self._invalidate()
        logger.info(f"Switched to {kind.value}, generation={self._generation}")

    # =========================================================================
    # Camera
    # =========================================================================

    async def open_camera(self) -> CameraSession:
        """
        Clear the screen and open the camera.

        Raises:
            CameraError: If the camera could not be opened (also notified)
            CameraCancelledError: If the session moved on while opening
        """
        self.clear()
        generation = self._generation

        try:
            session = await self._camera.open()
        except CameraCancelledError:
            logger.debug("Discarding camera open cancelled by a newer action")
            raise
        except CameraError as e:
            if generation == self._generation:
                self._surface_camera_error(e)
            raise

        if generation != self._generation:
            self._camera.close(session)
            raise CameraCancelledError()

        self._camera_session = session
        return session

    def close_camera(self) -> None:
        """Cancel the camera view."""
        self._release_camera()

    async def teardown(self) -> None:
        """Release everything held by the session (shutdown / navigation away)."""
        self._release_camera()
        await self._camera.shutdown()
        self._invalidate()

    def _release_camera(self) -> None:
        # Closes a pending open as well as a live session
        self._camera.close()
        self._camera_session = None

    def _surface_camera_error(self, error: CameraError) -> None:
        self._error = error.message
        self._notifications.notify_error(error)

    # =========================================================================
    # Pipeline runs
    # =========================================================================

    def begin_run(self) -> PipelineRun:
        """Start a new run of the active kind, superseding any previous one."""
        self._generation += 1
        self._error = None
        self._run = PipelineRun(run_id=self._generation, kind=self._active_kind)
        return self._run

    def is_current(self, run: PipelineRun) -> bool:
        return self._run is run and run.run_id == self._generation

    def record_stage_one(
        self, run: PipelineRun, result: Classification | ExtractedText
    ) -> bool:
        """
        Apply a stage-1 result.

        Moves the run to stage 2 when the result warrants an allergen check,
        otherwise completes it.

        Returns:
            False if the run is stale and the result was discarded
        """
        if not self._accept(run, "stage-1 result"):
            return False

        if isinstance(result, Classification):
            run.classification = result
        else:
            run.extracted_text = result

        if result.warrants_allergen_check:
            run.stage = 2
        else:
            run.stage = None
            run.status = RunStatus.COMPLETED
            logger.info(f"Run {run.run_id} completed after stage 1 (no allergen check)")
        return True

    def record_allergen_check(self, run: PipelineRun, check: AllergenCheck) -> bool:
        """Apply the stage-2 result and complete the run."""
        if not self._accept(run, "allergen check"):
            return False
        run.allergen_check = check
        run.stage = None
        run.status = RunStatus.COMPLETED
        logger.info(f"Run {run.run_id} completed with risk {check.risk_level.value}")
        return True

    def fail_run(self, run: PipelineRun, message: str) -> bool:
        """Mark the run failed. Stage-1 results already recorded stay."""
        if not self._accept(run, "failure"):
            return False
        run.error = message
        run.stage = None
        run.status = RunStatus.FAILED
        self._error = message
        return True

    def _accept(self, run: PipelineRun, what: str) -> bool:
        if self.is_current(run) and run.status == RunStatus.RUNNING:
            return True
        logger.debug(
            f"Discarding {what} for stale run {run.run_id} "
            f"(current generation {self._generation})"
        )
        return False
