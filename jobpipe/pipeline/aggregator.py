"""Fan-out aggregator: concurrent connector calls → merge → dedup → rank.

Every requested source ends up either contributing listings or holding an
entry in ``source_errors``; ``aggregate`` only raises InputError, before any
network call.
"""

import asyncio
import logging
from collections.abc import Callable, Iterable

import httpx

from jobpipe.core.config import Settings, SourceConfig
from jobpipe.core.errors import ConnectorError, InputError
from jobpipe.core.schemas import (
    AggregationResult,
    ProviderResponse,
    SearchCriteria,
    SourceId,
)
from jobpipe.pipeline.ranking import deduplicate, rank
from jobpipe.sources import SourceConnector, get_connector

logger = logging.getLogger(__name__)

ConnectorFactory = Callable[[SourceId, SourceConfig, httpx.AsyncClient], SourceConnector]


def resolve_sources(
    sources: Iterable[SourceId | str] | None,
    default: Iterable[SourceId],
) -> set[SourceId]:
    """Validate a requested source set, falling back to the configured default."""
    requested = list(default if sources is None else sources)
    resolved: set[SourceId] = set()
    for source in requested:
        try:
            resolved.add(SourceId(source))
        except ValueError:
            valid = ", ".join(s.value for s in SourceId)
            msg = f"Unknown source '{source}'. Available: {valid}"
            raise InputError(msg) from None
    if not resolved:
        msg = "at least one source must be requested"
        raise InputError(msg)
    return resolved


class Aggregator:
    """Issues one connector call per source and merges the outcomes.

    Usage::

        aggregator = Aggregator(settings)
        result = await aggregator.aggregate(SearchCriteria(keywords="python"))
    """

    def __init__(
        self,
        settings: Settings,
        client: httpx.AsyncClient | None = None,
        connector_factory: ConnectorFactory = get_connector,
    ) -> None:
        self._settings = settings
        self._client = client
        self._connector_factory = connector_factory

    @property
    def source_priority(self) -> list[SourceId]:
        return self._settings.aggregation.source_priority

    async def aggregate(
        self,
        criteria: SearchCriteria,
        sources: Iterable[SourceId | str] | None = None,
        per_source_timeout: float | None = None,
    ) -> AggregationResult:
        if not criteria.keywords or not criteria.keywords.strip():
            msg = "keywords must not be empty"
            raise InputError(msg)
        requested = resolve_sources(sources, self._settings.aggregation.default_sources)
        timeout = per_source_timeout
        if timeout is None:
            timeout = self._settings.aggregation.per_source_timeout
        if timeout <= 0:
            msg = "per_source_timeout must be positive"
            raise InputError(msg)

        ordered = [s for s in self.source_priority if s in requested]
        logger.info(
            "Aggregating '%s' across %s (timeout %.1fs)",
            criteria.keywords, ", ".join(s.value for s in ordered), timeout,
        )

        if self._client is not None:
            outcomes = await self._fan_out(self._client, criteria, ordered, timeout)
        else:
            async with httpx.AsyncClient(follow_redirects=True) as client:
                outcomes = await self._fan_out(client, criteria, ordered, timeout)

        return self._merge(requested, outcomes)

    async def _fan_out(
        self,
        client: httpx.AsyncClient,
        criteria: SearchCriteria,
        sources: list[SourceId],
        timeout: float,
    ) -> list[ProviderResponse | ConnectorError]:
        # One result slot per source; gather keeps them in `sources` order.
        tasks = [self._call_source(client, s, criteria, timeout) for s in sources]
        return list(await asyncio.gather(*tasks))

    async def _call_source(
        self,
        client: httpx.AsyncClient,
        source: SourceId,
        criteria: SearchCriteria,
        timeout: float,
    ) -> ProviderResponse | ConnectorError:
        config = self._settings.source(source)
        if not config.enabled:
            return ConnectorError(source=source, reason="disabled")

        connector = self._connector_factory(source, config, client)
        try:
            return await asyncio.wait_for(connector.search(criteria, timeout), timeout)
        except asyncio.TimeoutError:
            logger.warning("%s timed out after %.1fs", source.value, timeout)
            return ConnectorError(source=source, reason="timeout")
        except Exception as e:
            logger.warning("%s connector raised unexpectedly", source.value, exc_info=True)
            return ConnectorError(source=source, reason="connector_error", detail=str(e))

    def _merge(
        self,
        requested: set[SourceId],
        outcomes: list[ProviderResponse | ConnectorError],
    ) -> AggregationResult:
        merged = []
        errors: dict[SourceId, str] = {}
        total = 0
        for outcome in outcomes:
            if isinstance(outcome, ConnectorError):
                errors[outcome.source] = outcome.reason
                continue
            merged.extend(outcome.listings)
            total += outcome.total_count

        unique = deduplicate(merged, self.source_priority)
        ranked = rank(unique, self.source_priority)
        logger.info(
            "Aggregated %d listings (%d before dedup), %d source errors",
            len(ranked), len(merged), len(errors),
        )
        return AggregationResult(
            listings=ranked,
            source_errors=errors,
            total_count=total,
            requested_sources=requested,
        )
