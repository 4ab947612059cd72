"""Self-hosted Ollama provider (OpenAI-compatible API)."""

from jobpipe.core.schemas import AIProvider
from jobpipe.llm.openai_compat import OpenAICompatibleProvider


class OllamaProvider(OpenAICompatibleProvider):
    """LLM provider using an Ollama instance via its OpenAI-compatible API."""

    @property
    def provider_id(self) -> AIProvider:
        return AIProvider.SELF_HOSTED

    @property
    def default_model(self) -> str:
        return "llama3"

    @property
    def default_endpoint(self) -> str:
        return "http://localhost:11434"

    @property
    def placeholder_api_key(self) -> str:
        return "ollama"
