"""LLM model abstraction for consistent model access across the planner."""

import os

from pydantic_ai.models.openai import OpenAIChatModel
from pydantic_ai.providers.openai import OpenAIProvider

from sprint_planner.config.settings import settings
from sprint_planner.planning.errors import UnsupportedProviderError


def get_model(provider: str, model_name: str):
    if provider == "openai":
        # Ensure OPENAI_API_KEY is set from settings for pydantic_ai
        if settings.openai_api_key and not os.getenv("OPENAI_API_KEY"):
            os.environ["OPENAI_API_KEY"] = settings.openai_api_key
        return OpenAIChatModel(model_name)

    if provider == "lmstudio":
        # LM Studio serves an OpenAI-compatible API and ignores the key
        base_url = f"{settings.lmstudio_base_url.rstrip('/')}/v1"
        return OpenAIChatModel(model_name, provider=OpenAIProvider(base_url=base_url, api_key="lm-studio"))

    raise UnsupportedProviderError(f"Unsupported LLM provider: {provider}")
