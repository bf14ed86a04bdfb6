"""Camera resource manager.

Owns the single live capture stream. Opening releases any prior session
first, and every exit path (capture, cancel, clear, upload, teardown) ends
in `close`.
"""

import asyncio
import itertools
import logging
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator

import numpy as np

from allergen_scanner.core.exceptions import (
    CameraCancelledError,
    CameraError,
    CameraNotReadyError,
)
from allergen_scanner.models.scan import CameraDenialReason, CameraStatus, PermissionStatus

from .base import CameraBackend, CameraSession

logger = logging.getLogger(__name__)


class CameraResourceManager:
    """
    Exclusive owner of the camera hardware.

    Usage:
        manager = CameraResourceManager(OpenCVCameraBackend())

        async with manager.acquire() as session:
            frame = manager.capture_frame(session)
    """

    def __init__(self, backend: CameraBackend) -> None:
        self._backend = backend
        self._session: CameraSession | None = None
        self._open_lock = asyncio.Lock()
        self._session_ids = itertools.count(1)
        # Device open still running in the executor after its waiter was cancelled
        self._orphaned_open: asyncio.Future[Any] | None = None

    @property
    def backend(self) -> CameraBackend:
        return self._backend

    @property
    def session(self) -> CameraSession | None:
        """Most recent session, live or not."""
        return self._session

    @property
    def is_open(self) -> bool:
        return self._session is not None and self._session.is_live

    def status(self) -> CameraStatus:
        if self._session is None:
            return CameraStatus()
        return self._session.status()

    async def open(self) -> CameraSession:
        """
        Open a new camera session.

        Any existing session is released before the device is requested.
        Concurrent calls are serialized so two sessions never hold the
        hardware at once.

        Returns:
            CameraSession with permission granted

        Raises:
            CameraError: If the device could not be opened. The attempted
                session is kept with permission denied and the reason.
            CameraCancelledError: If the session was closed while waiting
                for the device.
        """
        async with self._open_lock:
            if self._session is not None:
                self.close(self._session)

            if self._orphaned_open is not None:
                # Its release callback runs before this wait returns
                logger.debug("Waiting for a cancelled camera open to finish")
                await asyncio.wait({self._orphaned_open})
                self._orphaned_open = None

            session = CameraSession(session_id=next(self._session_ids))
            self._session = session

            loop = asyncio.get_running_loop()
            pending = loop.run_in_executor(None, self._backend.open_stream)
            try:
                stream = await asyncio.shield(pending)
            except asyncio.CancelledError:
                # The device may still come up after we stop waiting
                session.closed = True
                pending.add_done_callback(self._release_orphan)
                self._orphaned_open = pending
                raise
            except CameraError as e:
                self._deny(session, e.reason)
                logger.warning(f"Camera open failed ({e.reason.value}): {e.message}")
                raise
            except Exception as e:
                self._deny(session, CameraDenialReason.OTHER)
                logger.exception("Unexpected error opening camera")
                raise CameraError(CameraDenialReason.OTHER) from e

            if session.closed:
                logger.info(f"Camera session {session.session_id} closed while opening")
                self._backend.release_stream(stream)
                raise CameraCancelledError()

            session.stream = stream
            session.permission = PermissionStatus.GRANTED
            logger.info(
                f"Camera session {session.session_id} opened ({self._backend.backend_name})"
            )
            return session

    def capture_frame(self, session: CameraSession) -> np.ndarray:
        """
        Read the current frame of a granted, open session.

        Raises:
            CameraNotReadyError: If the session isn't granted or is closed
            CameraError: If the backend could not read a frame
        """
        if session.permission != PermissionStatus.GRANTED or not session.is_live:
            raise CameraNotReadyError(
                f"Camera session {session.session_id} is not open "
                f"(permission={session.permission.value}, closed={session.closed})"
            )
        return self._backend.read_frame(session.stream)

    def close(self, session: CameraSession | None = None) -> None:
        """
        Release a session's hardware. Safe to call any number of times.

        Args:
            session: Session to close (default: the current session)
        """
        if session is None:
            session = self._session
        if session is None or session.closed:
            return

        session.closed = True
        stream, session.stream = session.stream, None
        if stream is not None:
            self._backend.release_stream(stream)
            logger.info(f"Camera session {session.session_id} closed")

    async def shutdown(self) -> None:
        """Release whatever is open (component teardown)."""
        self.close()

    @asynccontextmanager
    async def acquire(self) -> AsyncIterator[CameraSession]:
        """Open a session for the duration of a block."""
        session = await self.open()
        try:
            yield session
        finally:
            self.close(session)

    def _deny(self, session: CameraSession, reason: CameraDenialReason) -> None:
        session.permission = PermissionStatus.DENIED
        session.denial_reason = reason
        session.closed = True

    def _release_orphan(self, future: "asyncio.Future[Any]") -> None:
        if future.cancelled() or future.exception() is not None:
            return
        logger.info("Releasing camera stream that opened after its request was cancelled")
        self._backend.release_stream(future.result())
