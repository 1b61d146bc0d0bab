"""Image-understanding infrastructure package."""

from borderwatch.infrastructure.ai.gemini import GeminiInvoker, InvocationError

__all__ = [
    "GeminiInvoker",
    "InvocationError",
]
