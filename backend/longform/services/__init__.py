"""
Longform editor services package.

Contains the pipeline stages: transcript store, recipe compiler, recipe
executor, render orchestrator and voice command bridge.
"""

from .recipe_compiler import RecipeCompiler
from .recipe_executor import RecipeExecutor, apply_operations
from .render_orchestrator import RenderOrchestrator
from .transcript_store import TranscriptStore, normalize_words
from .voice_bridge import VoiceCommandBridge, VoiceCommandResult

__all__ = [
    "RecipeCompiler",
    "RecipeExecutor",
    "RenderOrchestrator",
    "TranscriptStore",
    "VoiceCommandBridge",
    "VoiceCommandResult",
    "apply_operations",
    "normalize_words",
]
