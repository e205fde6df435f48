from .generator import CodeGenerator, GenerationResult, OpenAIGameCodeGenerator
from .orchestrator import GenerationOutcome, generate_and_maybe_checkpoint

__all__ = [
    "CodeGenerator",
    "GenerationOutcome",
    "GenerationResult",
    "OpenAIGameCodeGenerator",
    "generate_and_maybe_checkpoint",
]
