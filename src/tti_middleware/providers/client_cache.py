"""Region-keyed cache of backend SDK clients."""

import logging
import threading
from typing import Any

from ..core.protocols import ClientFactory

logger = logging.getLogger(__name__)


class RegionalClientCache:
    """
    Memoizes one SDK client per region.

    Construction happens at most once per region, even when several
    requests ask for the same new region at the same time.
    """

    def __init__(self, factory: ClientFactory):
        self._factory = factory
        self._clients: dict[str, Any] = {}
        self._lock = threading.Lock()

    def get(self, region: str) -> Any:
        """Return the client for ``region``, creating it on first use."""
        client = self._clients.get(region)
        if client is not None:
            return client
        with self._lock:
            if region not in self._clients:
                logger.debug(f"Creating backend client for region {region}")
                self._clients[region] = self._factory(region)
            return self._clients[region]

    def __contains__(self, region: str) -> bool:
        return region in self._clients

    def __len__(self) -> int:
        return len(self._clients)

    def clear(self) -> None:
        """Drop all cached clients."""
        with self._lock:
            self._clients.clear()
