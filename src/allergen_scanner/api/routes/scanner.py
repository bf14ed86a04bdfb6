"""Scanner API routes.

Drive the scanner session: stage an image (upload or camera capture),
pick the pipeline kind, run it, and read back what is on screen.
"""

import asyncio
import logging

from fastapi import APIRouter, File, Query, Request, UploadFile, status
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from allergen_scanner.api.dependencies import OrchestratorDep, ScannerSessionDep
from allergen_scanner.core.exceptions import CameraCancelledError
from allergen_scanner.models.scan import PipelineKind, SessionSnapshot

router = APIRouter()
logger = logging.getLogger(__name__)


class KindRequest(BaseModel):
    """Request body for PUT /scanner/kind."""

    kind: PipelineKind


class RunRequest(BaseModel):
    """Request body for POST /scanner/run."""

    allergens: list[str] = Field(
        default_factory=list, description="The user's allergen profile"
    )


@router.get("", response_model=SessionSnapshot)
async def get_session(session: ScannerSessionDep) -> SessionSnapshot:
    """Get everything currently on screen."""
    return session.snapshot()


# =============================================================================
# Image staging
# =============================================================================


@router.post("/image", response_model=SessionSnapshot)
async def upload_image(
    session: ScannerSessionDep,
    image: UploadFile = File(..., description="Dish photo or ingredient label"),
) -> SessionSnapshot:
    """Stage an uploaded image. Replaces any staged image and its results."""
    if image.size is not None:
        session.check_upload_size(image.size)
    content = await image.read()
    session.stage_upload(content, image.content_type)
    return session.snapshot()


@router.delete("/image", response_model=SessionSnapshot)
async def clear_image(session: ScannerSessionDep) -> SessionSnapshot:
    """Clear the image and results, releasing the camera if open."""
    session.clear()
    return session.snapshot()


# =============================================================================
# Camera
# =============================================================================


@router.post("/camera", response_model=SessionSnapshot)
async def open_camera(session: ScannerSessionDep) -> SessionSnapshot:
    """
    Open the camera (clears the current image first).

    An open superseded by a newer action (cancel, upload, clear) returns
    the current snapshot instead of an error.
    """
    try:
        await session.open_camera()
    except CameraCancelledError:
        logger.debug("Camera open superseded")
    return session.snapshot()


@router.post("/camera/capture", response_model=SessionSnapshot)
async def capture_photo(session: ScannerSessionDep) -> SessionSnapshot:
    """Capture a frame from the open camera and stage it."""
    session.stage_capture()
    return session.snapshot()


@router.delete("/camera", response_model=SessionSnapshot)
async def close_camera(session: ScannerSessionDep) -> SessionSnapshot:
    """Cancel the camera view."""
    session.close_camera()
    return session.snapshot()


# =============================================================================
# Pipeline
# =============================================================================


@router.put("/kind", response_model=SessionSnapshot)
async def switch_kind(body: KindRequest, session: ScannerSessionDep) -> SessionSnapshot:
    """Switch between Analyze Food and Scan Label."""
    session.switch_kind(body.kind)
    return session.snapshot()


@router.post("/run", response_model=SessionSnapshot)
async def run_pipeline(
    body: RunRequest,
    request: Request,
    session: ScannerSessionDep,
    orchestrator: OrchestratorDep,
    wait: bool = Query(False, description="Wait for the run to finish"),
):
    """
    Run the active pipeline on the staged image.

    Preconditions (online, image staged) are checked before anything
    starts. Without `wait`, the run continues in the background and the
    response is 202 with the snapshot at stage 1; poll GET /scanner for
    progress.
    """
    ticket = orchestrator.start(session, body.allergens)

    if wait:
        await orchestrator.execute(session, ticket)
        return session.snapshot()

    tasks: set[asyncio.Task] = request.app.state.run_tasks
    task = asyncio.create_task(orchestrator.execute(session, ticket))
    tasks.add(task)
    task.add_done_callback(tasks.discard)

    logger.info(f"Run {ticket.run.run_id} scheduled in background")

    return JSONResponse(
        status_code=status.HTTP_202_ACCEPTED,
        content=session.snapshot().model_dump(mode="json"),
    )
