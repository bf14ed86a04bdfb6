"""Two-stage pipeline orchestrator.

Analyze-Food: classify the dish, then check its ingredients for allergens.
Scan-Label:   read the label text, then check it for allergens.

Stage 2 only starts after stage 1 succeeded and only when stage 1 says a
check is meaningful. Results are written through the session, which drops
anything belonging to a superseded run.
"""

import asyncio
import logging
from dataclasses import dataclass
from typing import Callable, Sequence

from allergen_scanner.core.exceptions import AnalysisFailedError, PipelinePreconditionError
from allergen_scanner.models.scan import (
    ImagePayload,
    PipelineKind,
    PipelineRun,
    PreconditionFailure,
)

from .inference import InferenceService
from .notifications import NotificationChannel
from .session import ScannerSession

logger = logging.getLogger(__name__)


# Inline error banner text per pipeline
ANALYSIS_ERROR_MESSAGES = {
    PipelineKind.ANALYZE_FOOD: "An error occurred during analysis. Please try again.",
    PipelineKind.SCAN_LABEL: "An error occurred during label analysis. Please try again.",
}


@dataclass(frozen=True)
class RunTicket:
    """Inputs captured when a run starts."""

    run: PipelineRun
    image: ImagePayload
    allergens: tuple[str, ...]


class PipelineOrchestrator:
    """
    Runs the pipeline for the session's active kind.

    Usage:
        orchestrator = PipelineOrchestrator(inference, monitor.is_online, notifications)
        run = await orchestrator.run(session, allergens=["milk"])
    """

    def __init__(
        self,
        inference: InferenceService,
        is_online: Callable[[], bool],
        notifications: NotificationChannel,
    ) -> None:
        self._inference = inference
        self._is_online = is_online
        self._notifications = notifications

    def start(self, session: ScannerSession, allergens: Sequence[str]) -> RunTicket:
        """
        Check preconditions and open a new run on the session.

        Args:
            session: Session holding the staged image
            allergens: The user's allergen profile (read, never modified)

        Raises:
            PipelinePreconditionError: OFFLINE (notified) or NO_IMAGE (inline error);
                no remote call is made and no run is created
        """
        kind = session.active_kind

        if not self._is_online():
            error = PipelinePreconditionError(PreconditionFailure.OFFLINE, kind)
            self._notifications.notify_error(error)
            raise error

        image = session.image
        if image is None:
            error = PipelinePreconditionError(PreconditionFailure.NO_IMAGE, kind)
            session.set_error(error.message)
            raise error

        run = session.begin_run()
        logger.info(f"Starting {kind.value} run {run.run_id}")
        return RunTicket(run=run, image=image, allergens=tuple(allergens))

    async def execute(self, session: ScannerSession, ticket: RunTicket) -> PipelineRun:
        """
        Run both stages of a started run.

        Failures end the run in the failed state (notified) rather than
        raising; results of a superseded run are discarded silently.

        Returns:
            The run record, as last updated
        """
        run = ticket.run
        try:
            if run.kind == PipelineKind.ANALYZE_FOOD:
                await self._analyze_food(session, ticket)
            else:
                await self._scan_label(session, ticket)
        except asyncio.CancelledError:
            raise
        except Exception as e:
            logger.exception(f"{run.kind.value} run {run.run_id} failed")
            error = AnalysisFailedError(run.kind, cause=str(e))
            if session.fail_run(run, ANALYSIS_ERROR_MESSAGES[run.kind]):
                self._notifications.notify_error(error)
        return run

    async def run(self, session: ScannerSession, allergens: Sequence[str]) -> PipelineRun:
        """Start and execute a run."""
        ticket = self.start(session, allergens)
        return await self.execute(session, ticket)

    async def _analyze_food(self, session: ScannerSession, ticket: RunTicket) -> None:
        classification = await self._inference.classify_food(ticket.image)
        if not session.record_stage_one(ticket.run, classification):
            return

        if not classification.warrants_allergen_check:
            return

        ingredients = ", ".join(classification.food_details.ingredients)
        check = await self._inference.detect_allergens(ingredients, ticket.allergens)
        session.record_allergen_check(ticket.run, check)

    async def _scan_label(self, session: ScannerSession, ticket: RunTicket) -> None:
        extracted = await self._inference.extract_text(ticket.image)
        if not session.record_stage_one(ticket.run, extracted):
            return

        if not extracted.warrants_allergen_check:
            return

        check = await self._inference.detect_allergens(extracted.text, ticket.allergens)
        session.record_allergen_check(ticket.run, check)
