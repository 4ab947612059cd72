"""Connector registry with lazy loading.

Usage:
    from jobpipe.sources import get_connector

    connector = get_connector(SourceId.JOOBLE, settings.source(SourceId.JOOBLE), client)
    outcome = await connector.search(criteria, timeout=10.0)
"""

from __future__ import annotations

import importlib

import httpx

from jobpipe.core.config import SourceConfig
from jobpipe.core.schemas import SourceId
from jobpipe.sources.base import SourceConnector

__all__ = ["SourceConnector", "available_sources", "get_connector"]

# Lazy registry: maps source → (module_path, class_name)
_REGISTRY: dict[SourceId, tuple[str, str]] = {
    SourceId.FINDWORK: ("jobpipe.sources.findwork", "FindWorkConnector"),
    SourceId.JOOBLE: ("jobpipe.sources.jooble", "JoobleConnector"),
    SourceId.USAJOBS: ("jobpipe.sources.usajobs", "USAJobsConnector"),
}


def get_connector(
    source: SourceId | str,
    config: SourceConfig,
    client: httpx.AsyncClient,
) -> SourceConnector:
    """Instantiate the connector for a source.

    Raises:
        ValueError: If the source is unknown.
    """
    try:
        source_id = SourceId(source)
    except ValueError:
        valid = ", ".join(available_sources())
        msg = f"Unknown source '{source}'. Available: {valid}"
        raise ValueError(msg) from None

    module_path, class_name = _REGISTRY[source_id]
    module = importlib.import_module(module_path)
    cls = getattr(module, class_name)
    return cls(config, client)  # type: ignore[no-any-return]


def available_sources() -> list[str]:
    """Return sorted list of registered source names."""
    return sorted(s.value for s in _REGISTRY)
