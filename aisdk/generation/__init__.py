"""Generation options and the orchestrator that runs them."""

from aisdk.generation.options import (
    GenerationOptions,
    ObjectGenerationOptions,
    TextGenerationOptions,
)
from aisdk.generation.orchestrator import GenerationOrchestrator

__all__ = [
    "GenerationOptions",
    "GenerationOrchestrator",
    "ObjectGenerationOptions",
    "TextGenerationOptions",
]
