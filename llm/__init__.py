"""LLM integration module for expense extraction."""

from llm.factory import get_extraction_oracle
from llm.providers.base import ExtractionOracle

__all__ = ["ExtractionOracle", "get_extraction_oracle"]
