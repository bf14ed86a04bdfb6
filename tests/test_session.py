"""Unit tests for the scanner session state machine."""

import pytest

from allergen_scanner.core.exceptions import (
    CameraError,
    CameraNotReadyError,
    EmptyFileError,
    ValidationError,
)
from allergen_scanner.models.scan import (
    CameraDenialReason,
    ExtractedText,
    ImageSource,
    PermissionStatus,
    PipelineKind,
    RiskLevel,
    RunStatus,
    SessionPhase,
)
from allergen_scanner.services.camera import CameraResourceManager
from allergen_scanner.services.notifications import Severity
from allergen_scanner.services.session import ScannerSession

from conftest import HIGH_MILK_CHECK, TINY_PNG_BYTES, FakeCameraBackend, make_classification


class TestPhases:
    """Tests for phase transitions."""

    def test_starts_idle(self, session):
        snapshot = session.snapshot()

        assert snapshot.phase == SessionPhase.IDLE
        assert snapshot.active_kind == PipelineKind.ANALYZE_FOOD
        assert snapshot.image is None
        assert snapshot.run is None
        assert snapshot.risk_level == RiskLevel.UNKNOWN

    def test_upload_stages_image(self, session):
        session.stage_upload(TINY_PNG_BYTES, "image/png")

        snapshot = session.snapshot()
        assert snapshot.phase == SessionPhase.IMAGE_STAGED
        assert snapshot.image.source == ImageSource.UPLOAD
        assert snapshot.image.size_bytes == len(TINY_PNG_BYTES)

    def test_full_run_lifecycle(self, session):
        """Test Running(1) -> Running(2) -> Completed."""
        session.stage_upload(TINY_PNG_BYTES, "image/png")

        run = session.begin_run()
        assert session.phase == SessionPhase.RUNNING
        assert run.stage == 1

        assert session.record_stage_one(run, make_classification())
        assert run.stage == 2
        assert session.phase == SessionPhase.RUNNING

        assert session.record_allergen_check(run, HIGH_MILK_CHECK)
        assert run.status == RunStatus.COMPLETED
        assert run.stage is None

        snapshot = session.snapshot()
        assert snapshot.phase == SessionPhase.COMPLETED
        assert snapshot.risk_level == RiskLevel.HIGH

    def test_non_food_completes_after_stage_one(self, session):
        session.stage_upload(TINY_PNG_BYTES, "image/png")
        run = session.begin_run()

        session.record_stage_one(run, make_classification(is_food=False))

        assert run.status == RunStatus.COMPLETED
        assert run.allergen_check is None
        assert session.snapshot().risk_level == RiskLevel.UNKNOWN

    def test_empty_label_text_completes_after_stage_one(self, session):
        session.switch_kind(PipelineKind.SCAN_LABEL)
        session.stage_upload(TINY_PNG_BYTES, "image/png")
        run = session.begin_run()

        session.record_stage_one(run, ExtractedText(text=""))

        assert run.status == RunStatus.COMPLETED
        assert run.extracted_text.text == ""

    def test_fail_run_keeps_stage_one_result(self, session):
        session.stage_upload(TINY_PNG_BYTES, "image/png")
        run = session.begin_run()
        session.record_stage_one(run, make_classification())

        assert session.fail_run(run, "An error occurred during analysis. Please try again.")

        snapshot = session.snapshot()
        assert snapshot.phase == SessionPhase.FAILED
        assert snapshot.run.classification.label == "Pancakes"
        assert snapshot.error == "An error occurred during analysis. Please try again."

    def test_snapshot_is_a_copy(self, session):
        """Test mutating a snapshot doesn't change the session."""
        session.stage_upload(TINY_PNG_BYTES, "image/png")
        run = session.begin_run()

        snapshot = session.snapshot()
        snapshot.run.status = RunStatus.FAILED

        assert run.status == RunStatus.RUNNING


class TestInvalidation:
    """Tests for results arriving after the session has moved on."""

    def test_new_upload_discards_old_run(self, session):
        session.stage_upload(TINY_PNG_BYTES, "image/png")
        run = session.begin_run()

        session.stage_upload(TINY_PNG_BYTES, "image/jpeg")

        assert not session.record_stage_one(run, make_classification())
        assert session.run is None
        assert session.phase == SessionPhase.IMAGE_STAGED

    def test_clear_discards_old_run(self, session):
        session.stage_upload(TINY_PNG_BYTES, "image/png")
        run = session.begin_run()

        session.clear()

        assert not session.fail_run(run, "boom")
        assert session.phase == SessionPhase.IDLE
        assert session.error is None

    def test_switch_kind_detaches_run_but_keeps_image(self, session):
        session.stage_upload(TINY_PNG_BYTES, "image/png")
        run = session.begin_run()

        session.switch_kind(PipelineKind.SCAN_LABEL)

        assert not session.record_stage_one(run, make_classification())
        assert session.active_kind == PipelineKind.SCAN_LABEL
        assert session.phase == SessionPhase.IMAGE_STAGED

    def test_switch_to_same_kind_is_noop(self, session):
        session.stage_upload(TINY_PNG_BYTES, "image/png")
        run = session.begin_run()
        generation = session.generation

        session.switch_kind(PipelineKind.ANALYZE_FOOD)

        assert session.generation == generation
        assert session.is_current(run)

    def test_new_run_supersedes_previous(self, session):
        session.stage_upload(TINY_PNG_BYTES, "image/png")
        first = session.begin_run()
        second = session.begin_run()

        assert not session.record_stage_one(first, make_classification())
        assert session.record_stage_one(second, make_classification())
        assert second.run_id > first.run_id

    def test_terminal_run_ignores_late_results(self, session):
        session.stage_upload(TINY_PNG_BYTES, "image/png")
        run = session.begin_run()
        session.record_stage_one(run, make_classification(is_food=False))

        assert not session.record_allergen_check(run, HIGH_MILK_CHECK)
        assert run.allergen_check is None


class TestUploadErrors:
    """Tests for upload validation surfacing."""

    def test_empty_upload_sets_inline_error(self, session):
        with pytest.raises(EmptyFileError):
            session.stage_upload(b"", "image/png")

        assert session.error == "Image is required"
        assert session.phase == SessionPhase.IDLE

    def test_oversized_upload_size_sets_inline_error(self, session):
        session.check_upload_size(1024)

        with pytest.raises(ValidationError):
            session.check_upload_size(1024 * 1024 + 1)

        assert session.error.startswith("Image exceeds maximum size")
        assert session.phase == SessionPhase.IDLE

    def test_rejected_upload_keeps_staged_image(self, session):
        session.stage_upload(TINY_PNG_BYTES, "image/png")

        with pytest.raises(ValidationError):
            session.stage_upload(b"%PDF", "application/pdf")

        assert session.image is not None
        assert session.error is not None


class TestCamera:
    """Tests for camera handling within a session."""

    @pytest.mark.asyncio
    async def test_open_camera_clears_image(self, session, camera):
        session.stage_upload(TINY_PNG_BYTES, "image/png")

        await session.open_camera()

        assert session.image is None
        assert camera.is_open
        assert session.snapshot().camera.permission == PermissionStatus.GRANTED

    @pytest.mark.asyncio
    async def test_capture_stages_jpeg_and_releases_camera(self, session, camera, camera_backend):
        await session.open_camera()

        payload = session.stage_capture()

        assert payload.source == ImageSource.CAPTURE
        assert payload.mime_type == "image/jpeg"
        assert session.phase == SessionPhase.IMAGE_STAGED
        assert not camera.is_open
        assert camera_backend.live_streams == []

    def test_capture_without_camera_raises(self, session):
        with pytest.raises(CameraNotReadyError):
            session.stage_capture()

    @pytest.mark.asyncio
    async def test_capture_after_close_raises(self, session):
        await session.open_camera()
        session.close_camera()

        with pytest.raises(CameraNotReadyError):
            session.stage_capture()

    @pytest.mark.asyncio
    async def test_upload_releases_open_camera(self, session, camera_backend):
        await session.open_camera()

        session.stage_upload(TINY_PNG_BYTES, "image/png")

        assert camera_backend.live_streams == []
        assert session.image.source == ImageSource.UPLOAD

    @pytest.mark.asyncio
    async def test_clear_releases_open_camera(self, session, camera_backend):
        await session.open_camera()

        session.clear()

        assert camera_backend.live_streams == []

    @pytest.mark.asyncio
    async def test_denied_camera_notifies(self, normalizer, notifications):
        """Test a denied camera shows an inline error and a notification."""
        camera = CameraResourceManager(
            FakeCameraBackend(error=CameraError(CameraDenialReason.NOT_ALLOWED))
        )
        session = ScannerSession(camera, normalizer, notifications)

        with pytest.raises(CameraError):
            await session.open_camera()

        [notification] = notifications.drain()
        assert notification.severity == Severity.DESTRUCTIVE
        assert notification.title == "Camera Access Denied"
        assert session.error == notification.message

        snapshot = session.snapshot()
        assert snapshot.camera.permission == PermissionStatus.DENIED
        assert snapshot.camera.denial_reason == CameraDenialReason.NOT_ALLOWED

    @pytest.mark.asyncio
    async def test_teardown_releases_everything(self, session, camera_backend):
        await session.open_camera()

        await session.teardown()

        assert camera_backend.live_streams == []
        assert session.run is None
