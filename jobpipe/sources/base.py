"""Abstract base class for job-board connectors."""

import logging
import os
from abc import ABC, abstractmethod
from typing import Any

import httpx

from jobpipe.core.config import SourceConfig
from jobpipe.core.errors import ConnectorError
from jobpipe.core.schemas import CanonicalListing, ProviderResponse, SearchCriteria, SourceId

logger = logging.getLogger(__name__)


class SourceConnector(ABC):
    """Translates a SearchCriteria into one provider call and maps the result.

    ``search`` never raises: every failure comes back as a ConnectorError so a
    single bad source cannot abort a fan-out.
    """

    def __init__(self, config: SourceConfig, client: httpx.AsyncClient) -> None:
        self._config = config
        self._client = client

    @property
    @abstractmethod
    def source_id(self) -> SourceId:
        """Identifier used as the external_id prefix (e.g. 'jooble')."""

    @property
    @abstractmethod
    def default_base_url(self) -> str:
        """Endpoint used when the config does not override base_url."""

    @abstractmethod
    async def _send(self, criteria: SearchCriteria, timeout: float) -> httpx.Response:
        """Build and send the provider-specific request."""

    @abstractmethod
    def _parse(self, payload: dict[str, Any]) -> tuple[int, list[CanonicalListing]]:
        """Map a decoded payload to (reported total, canonical listings).

        Raises KeyError, TypeError or ValueError on an unexpected shape.
        """

    @property
    def base_url(self) -> str:
        return self._config.base_url or self.default_base_url

    def _api_key(self) -> str | None:
        if not self._config.api_key_env:
            return None
        return os.environ.get(self._config.api_key_env) or None

    def _missing_configuration(self) -> str | None:
        """Describe what is missing before a request can be made, or None."""
        if self._config.api_key_env and not self._api_key():
            return f"{self._config.api_key_env} environment variable is not set"
        return None

    async def search(
        self, criteria: SearchCriteria, timeout: float
    ) -> ProviderResponse | ConnectorError:
        missing = self._missing_configuration()
        if missing:
            return self._error("not_configured", missing)

        try:
            response = await self._send(criteria, timeout)
        except httpx.TimeoutException as e:
            return self._error("timeout", str(e) or type(e).__name__)
        except httpx.HTTPError as e:
            return self._error("network_error", str(e) or type(e).__name__)

        if not response.is_success:
            return self._error("http_error", f"HTTP {response.status_code}")

        try:
            payload = response.json()
            if not isinstance(payload, dict):
                msg = f"expected a JSON object, got {type(payload).__name__}"
                raise TypeError(msg)
            total, listings = self._parse(payload)
        except (KeyError, TypeError, ValueError) as e:
            return self._error("malformed_payload", str(e))

        logger.info(
            "%s: %d listings (%d reported total)", self.source_id.value, len(listings), total
        )
        return ProviderResponse(
            source=self.source_id,
            total_count=total,
            listings=listings,
            raw=payload,
        )

    def _error(self, reason: str, detail: str) -> ConnectorError:
        logger.warning("%s failed (%s): %s", self.source_id.value, reason, detail)
        return ConnectorError(source=self.source_id, reason=reason, detail=detail)
