"""Factory for creating extraction oracle instances."""

from typing import Optional
from config import Config
from llm.providers.base import ExtractionOracle
from llm.providers.openai import OpenAIExtractor
from logger import get_logger

logger = get_logger("llm")


def get_extraction_oracle(config: Config) -> Optional[ExtractionOracle]:
    """Create an extraction oracle based on configuration.

    Args:
        config: Application configuration.

    Returns:
        ExtractionOracle instance, or None if LLM extraction is disabled.

    Raises:
        ValueError: If a provider is configured but its settings are invalid.
    """
    if not config.llm_enabled:
        logger.info("LLM extraction is disabled")
        return None

    provider_name = config.llm_provider

    if provider_name == "openai":
        if not config.llm_openai_api_key:
            raise ValueError(
                "OpenAI provider selected but llm_openai_api_key not configured"
            )
        logger.info(
            f"Initializing OpenAI extractor (model: {config.llm_openai_model or 'default'})"
        )
        return OpenAIExtractor(
            api_key=config.llm_openai_api_key, model=config.llm_openai_model
        )

    elif not provider_name:
        logger.info("No LLM provider configured")
        return None

    else:
        raise ValueError(f"Unknown LLM provider: {provider_name}")
