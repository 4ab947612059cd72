"""Local inference server provider (LM Studio and other OpenAI-compatible hosts)."""

from jobpipe.core.schemas import AIProvider
from jobpipe.llm.openai_compat import OpenAICompatibleProvider


class LMStudioProvider(OpenAICompatibleProvider):
    @property
    def provider_id(self) -> AIProvider:
        return AIProvider.LOCAL_INFERENCE

    @property
    def default_model(self) -> str:
        return "local-model"

    @property
    def default_endpoint(self) -> str:
        return "http://localhost:1234"

    @property
    def placeholder_api_key(self) -> str:
        return "lm-studio"
