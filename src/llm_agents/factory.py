"""LLM client factory for creating API clients."""


from openai import AsyncOpenAI

from src.core.config import get_settings


class LLMClientFactory:
    """Factory for creating LLM API clients."""

    _instance: AsyncOpenAI | None = None

    @classmethod
    def get_client(cls) -> AsyncOpenAI:
        """Get or create OpenAI-compatible client."""
        if cls._instance is None:
            settings = get_settings()
            cls._instance = AsyncOpenAI(
                base_url=settings.llm_api_base,
                # Calls fail with an authentication error until a key is set
                api_key=settings.openai_api_key or "not-configured",
                timeout=settings.llm_timeout,
                # Failures surface to the caller unretried
                max_retries=0,
            )
        return cls._instance

    @classmethod
    def reset_client(cls):
        """Reset the client (useful for testing)."""
        cls._instance = None


def get_llm_client() -> AsyncOpenAI:
    """Get the global LLM client instance."""
    return LLMClientFactory.get_client()
