from .gemini_client import GenerationError, generate_image, generate_structured

__all__ = [
    "GenerationError",
    "generate_image",
    "generate_structured",
]
