"""Network connectivity signal.

`is_online()` is a cheap synchronous predicate read before every pipeline
start; `refresh()` updates it by probing the inference endpoint.
"""

import logging

import httpx

from allergen_scanner.core.config import Settings, get_settings

logger = logging.getLogger(__name__)


class ConnectivityMonitor:
    """Last known reachability of the inference endpoint."""

    def __init__(self, probe_url: str, timeout: float = 3.0, online: bool = True) -> None:
        """
        Args:
            probe_url: URL answered by the inference endpoint when reachable
            timeout: Probe timeout in seconds
            online: Initial state before the first probe
        """
        self.probe_url = probe_url
        self.timeout = timeout
        self._online = online

    @classmethod
    def from_settings(cls, settings: Settings | None = None) -> "ConnectivityMonitor":
        if settings is None:
            settings = get_settings()
        return cls(
            probe_url=settings.ollama_base_url.rstrip("/") + settings.connectivity_probe_path,
            timeout=settings.connectivity_probe_timeout,
        )

    def is_online(self) -> bool:
        return self._online

    def set_online(self, online: bool) -> None:
        if online != self._online:
            logger.info(f"Connectivity changed: {'online' if online else 'offline'}")
        self._online = online

    async def refresh(self) -> bool:
        """
        Probe the endpoint and update the state.

        Any HTTP response counts as reachable; only transport failures
        mean offline.
        """
        try:
            async with httpx.AsyncClient(timeout=httpx.Timeout(self.timeout)) as client:
                await client.get(self.probe_url)
            self.set_online(True)
        except httpx.RequestError as e:
            logger.warning(f"Connectivity probe failed: {e}")
            self.set_online(False)
        return self._online
