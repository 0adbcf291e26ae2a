"""AI Agents package."""

from trackmoji.agents.ai_agents import (
    ANALYSIS_SCHEMA,
    QUERY_SCHEMA,
    TransactionAnalyzer,
    TransactionQueryEngine,
)
from trackmoji.agents.client import (
    GeminiStructuredClient,
    GenerationError,
    GenerationTimeout,
    StructuredGenerator,
)

__all__ = [
    "ANALYSIS_SCHEMA",
    "QUERY_SCHEMA",
    "GeminiStructuredClient",
    "GenerationError",
    "GenerationTimeout",
    "StructuredGenerator",
    "TransactionAnalyzer",
    "TransactionQueryEngine",
]
