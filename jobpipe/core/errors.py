"""Error taxonomy for the pipeline.

Raised (caller errors, rejected before any network call):
  InputError, ConfigNotFoundError, ConfigValidationError

Returned as values (recovered locally, never abort a batch):
  ConnectorError, ClassificationError
"""

from pydantic import BaseModel, ConfigDict

from jobpipe.core.schemas import SourceId


class InputError(ValueError):
    """Invalid search or filter input."""


class ConfigError(Exception):
    """Base class for AI configuration errors."""


class ConfigNotFoundError(ConfigError):
    """The configuration does not exist or is owned by another user."""

    def __init__(self, user_id: str, config_id: int) -> None:
        super().__init__(f"AI config {config_id} not found for user '{user_id}'")
        self.user_id = user_id
        self.config_id = config_id


class ConfigValidationError(ConfigError, ValueError):
    """A configuration is missing required fields or has invalid values."""


class ProviderError(Exception):
    """A language-model backend call failed.

    ``reason`` is one of: timeout, http_error, connection_error.
    """

    def __init__(self, reason: str, detail: str = "") -> None:
        super().__init__(f"{reason}: {detail}" if detail else reason)
        self.reason = reason
        self.detail = detail


class ConnectorError(BaseModel):
    """Typed failure of one source connector call."""

    model_config = ConfigDict(frozen=True)

    source: SourceId
    reason: str
    detail: str = ""


class ClassificationError(BaseModel):
    """Typed failure of one classification call."""

    model_config = ConfigDict(frozen=True)

    listing_id: str
    reason: str
    detail: str = ""
