from __future__ import annotations

from typing import Dict, Iterable, Iterator, Optional, Tuple
import logging

import httpx

from .base import BaseConnector, CompanyProfile, ConnectorResult, VendorCredential
from .hunter import HunterConnector
from .apollo import ApolloConnector
from .zoominfo import ZoomInfoConnector
from .clay import ClayConnector
from ...core.config import get_settings

logger = logging.getLogger(__name__)

CONNECTOR_CLASSES: Dict[str, type[BaseConnector]] = {
    "hunter": HunterConnector,
    "apollo": ApolloConnector,
    "zoominfo": ZoomInfoConnector,
    "clay": ClayConnector,
}


class ConnectorRegistry:
    """
    Registry of enrichment vendors: vendor name -> adapter.

    - The vendor set is data driven (enrichment_sources rows); names with no
      adapter are skipped with a warning instead of failing the request.
    - Adding a vendor is one adapter class plus one entry in CONNECTOR_CLASSES.
    """

    def __init__(self, connectors: Dict[str, BaseConnector]) -> None:
        self._connectors = dict(connectors)

    def get(self, name: str) -> Optional[BaseConnector]:
        return self._connectors.get((name or "").strip().lower())

    def resolve(self, names: Iterable[str]) -> Iterator[Tuple[str, BaseConnector]]:
        """Yield (name, adapter) in the given order, skipping unknown vendors."""
        for name in names:
            connector = self.get(name)
            if connector is None:
                logger.warning(
                    "No connector registered for '%s'; skipping",
                    name,
                    extra={"vendor": name},
                )
                continue
            yield name, connector

    def __contains__(self, name: object) -> bool:
        return isinstance(name, str) and self.get(name) is not None


def build_connector_registry(
    credentials: Dict[str, VendorCredential],
    transport: httpx.AsyncBaseTransport | None = None,
) -> ConnectorRegistry:
    """Instantiate every known adapter with its credential snapshot."""
    timeout = get_settings().VENDOR_TIMEOUT_SECONDS
    return ConnectorRegistry(
        {
            name: cls(credential=credentials.get(name), transport=transport, timeout=timeout)
            for name, cls in CONNECTOR_CLASSES.items()
        }
    )


__all__ = [
    "BaseConnector",
    "CompanyProfile",
    "ConnectorRegistry",
    "ConnectorResult",
    "VendorCredential",
    "build_connector_registry",
]
