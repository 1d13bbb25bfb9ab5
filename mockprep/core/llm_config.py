import os
from typing import Optional
from langchain_openai import ChatOpenAI
from pydantic import SecretStr
from mockprep.core.config import settings

class LLMFactory:
    """Factory for creating configured LLM instances with tracing."""

    @staticmethod
    def create_llm(
        model: Optional[str] = None,
        base_url: Optional[str] = None,
        temperature: Optional[float] = None,
        timeout: Optional[float] = None,
        tracing_project: Optional[str] = None,
        api_key: Optional[str] = None
    ) -> ChatOpenAI:
        """
        Create a configured ChatOpenAI instance for question generation.

        Args:
            model: The model name to use (defaults to settings.GENERATION_MODEL).
            base_url: Alternative OpenAI-compatible endpoint.
            temperature: The temperature for generation.
            timeout: Request timeout in seconds.
            tracing_project: The LangSmith project name for tracing.
            api_key: OpenAI API key (optional, defaults to settings).
        """
        if settings.LANGSMITH_TRACING:
            os.environ["LANGCHAIN_TRACING_V2"] = "true"
            os.environ["LANGCHAIN_ENDPOINT"] = settings.LANGSMITH_ENDPOINT
            os.environ["LANGCHAIN_API_KEY"] = settings.LANGSMITH_API_KEY
            os.environ["LANGCHAIN_PROJECT"] = tracing_project or settings.LANGSMITH_PROJECT

        return ChatOpenAI(
            model=model or settings.GENERATION_MODEL,
            api_key=SecretStr(api_key or settings.OPENAI_API_KEY),
            base_url=base_url or settings.OPENAI_BASE_URL or None,
            temperature=settings.GENERATION_TEMPERATURE if temperature is None else temperature,
            timeout=timeout or settings.GENERATION_TIMEOUT_SECONDS,
        )
