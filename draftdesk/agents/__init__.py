"""
Generation agents for the AI queue.

Flow for every request:
  DocumentParser (parse) -> DraftWriter (draft) -> PolishEditor (polish)

The provider is any Ollama-compatible HTTP API (OllamaCloudClient).
HealthProbe reports whether that provider is reachable.
"""

from draftdesk.agents.provider import OllamaCloudClient, GenerateResponse
from draftdesk.agents.health import HealthProbe
from draftdesk.agents.parser import (
    DocumentParser,
    ParsedDocument,
    SUPPORTED_MIME_TYPES,
    is_supported_mime_type,
)
from draftdesk.agents.writer import DraftWriter, DraftResult, Article
from draftdesk.agents.editor import PolishEditor, PolishResult
from draftdesk.agents.pipeline import GenerationPipeline, PipelineProfile, profile_for

__all__ = [
    # Provider
    "OllamaCloudClient",
    "GenerateResponse",
    "HealthProbe",
    # Parse stage
    "DocumentParser",
    "ParsedDocument",
    "SUPPORTED_MIME_TYPES",
    "is_supported_mime_type",
    # Draft stage
    "DraftWriter",
    "DraftResult",
    "Article",
    # Polish stage
    "PolishEditor",
    "PolishResult",
    # Orchestration
    "GenerationPipeline",
    "PipelineProfile",
    "profile_for",
]
