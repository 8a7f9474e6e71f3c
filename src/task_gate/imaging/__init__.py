"""Image actions and the generative provider client they call."""

from task_gate.imaging.actions import AiActions, SmileResult
from task_gate.imaging.provider import GeminiImageClient, GeneratedImage, ImageGenerationError

__all__ = [
    "AiActions",
    "GeminiImageClient",
    "GeneratedImage",
    "ImageGenerationError",
    "SmileResult",
]
