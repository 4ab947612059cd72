"""Shared client for OpenAI-compatible chat completion servers."""

import logging
from abc import abstractmethod

from jobpipe.core.errors import ProviderError
from jobpipe.llm.base import LLMProvider

logger = logging.getLogger(__name__)


def chat_base_url(endpoint: str) -> str:
    """'http://host:1234' and 'http://host:1234/v1/' both become '.../v1'."""
    base = endpoint.rstrip("/")
    return base if base.endswith("/v1") else f"{base}/v1"


class OpenAICompatibleProvider(LLMProvider):
    """Talks to a server exposing ``POST /v1/chat/completions``."""

    @property
    @abstractmethod
    def default_endpoint(self) -> str:
        """Server root used when the config has no endpoint."""

    @property
    @abstractmethod
    def placeholder_api_key(self) -> str:
        """Local servers ignore the key but the SDK requires one."""

    @property
    def requires_endpoint(self) -> bool:
        return True

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
        try:
            import openai
        except ImportError:
            msg = (
                f"openai is required for {self.provider_id.value} "
                "(OpenAI-compatible API). Install with: pip install openai"
            )
            raise ImportError(msg) from None

        base_url = chat_base_url(endpoint or self.default_endpoint)
        client = openai.OpenAI(
            base_url=base_url,
            api_key=credential or self.placeholder_api_key,
            timeout=timeout,
            max_retries=0,
        )
        use_model = model or self.default_model

        logger.debug("Sending prompt to %s (%s)", base_url, use_model)
        try:
            response = client.chat.completions.create(
                model=use_model,
                messages=[
                    {"role": "system", "content": system},
                    {"role": "user", "content": prompt},
                ],
                temperature=temperature,
                max_tokens=max_tokens,
            )
        except openai.APITimeoutError as e:
            raise ProviderError("timeout", str(e)) from e
        except openai.APIStatusError as e:
            raise ProviderError("http_error", f"HTTP {e.status_code}") from e
        except openai.APIConnectionError as e:
            raise ProviderError("connection_error", str(e)) from e

        if not response.choices:
            return ""
        return response.choices[0].message.content or ""
