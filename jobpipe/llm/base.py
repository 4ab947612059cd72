"""Abstract base class for language-model providers."""

from abc import ABC, abstractmethod

from jobpipe.core.schemas import AIProvider


class LLMProvider(ABC):
    """Base class that every language-model backend must implement.

    Implementations translate their SDK's failures into ProviderError with a
    reason of timeout, http_error or connection_error.
    """

    @property
    @abstractmethod
    def provider_id(self) -> AIProvider:
        """Which AIConfig.provider value this backend serves."""

    @property
    @abstractmethod
    def default_model(self) -> str:
        """The model ID used when the config leaves it blank."""

    @property
    def requires_endpoint(self) -> bool:
        return False

    @property
    def requires_credential(self) -> bool:
        return False

    @abstractmethod
    def complete(
        self,
        prompt: str,
        model: str | None = None,
        *,
        system: str,
        endpoint: str | None = None,
        credential: str | None = None,
        timeout: float = 30.0,
        temperature: float = 0.3,
        max_tokens: int = 400,
    ) -> str:
        """Send one prompt and return the raw response text.

        Args:
            prompt: The user message.
            model: Override the provider's default model. None uses default.
            system: System instruction.
            endpoint: Base URL of the backend, for self-hosted servers.
            credential: API key, for hosted APIs.
            timeout: Seconds before the request is abandoned.

        Returns:
            Raw text response from the model (expected to be JSON).
        """
