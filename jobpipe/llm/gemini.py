"""Google Gemini hosted API provider (google-genai SDK)."""

import logging
import os

import httpx

from jobpipe.core.errors import ProviderError
from jobpipe.core.schemas import AIProvider
from jobpipe.llm.base import LLMProvider

logger = logging.getLogger(__name__)


class GeminiProvider(LLMProvider):
    """LLM provider using the Google Gemini API (google-genai SDK).

    The API key comes from the config's credential, falling back to
    GOOGLE_API_KEY.
    """

    @property
    def provider_id(self) -> AIProvider:
        return AIProvider.HOSTED_API

    @property
    def default_model(self) -> str:
        return "gemini-2.0-flash"

    @property
    def requires_credential(self) -> bool:
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
        api_key = credential or os.environ.get("GOOGLE_API_KEY")
        if not api_key:
            msg = "an API key (config credential or GOOGLE_API_KEY) is required"
            raise ProviderError("not_configured", msg)

        try:
            from google import genai
            from google.genai import errors as genai_errors
            from google.genai import types as genai_types
        except ImportError:
            msg = (
                "google-genai is required for the hosted-api provider. "
                "Install with: pip install google-genai"
            )
            raise ImportError(msg) from None

        # HttpOptions.timeout is in milliseconds.
        options: dict[str, object] = {"timeout": int(timeout * 1000)}
        if endpoint:
            options["base_url"] = endpoint
        http_options = genai_types.HttpOptions(**options)

        use_model = model or self.default_model
        logger.debug("Sending prompt to Gemini API (%s)", use_model)
        client = genai.Client(api_key=api_key, http_options=http_options)
        try:
            response = client.models.generate_content(
                model=use_model,
                contents=prompt,
                config=genai_types.GenerateContentConfig(
                    system_instruction=system,
                    temperature=temperature,
                    max_output_tokens=max_tokens,
                    response_mime_type="application/json",
                ),
            )
        except httpx.TimeoutException as e:
            raise ProviderError("timeout", str(e)) from e
        except genai_errors.APIError as e:
            raise ProviderError("http_error", f"HTTP {e.code}") from e
        except httpx.HTTPError as e:
            raise ProviderError("connection_error", str(e)) from e

        return response.text or ""
