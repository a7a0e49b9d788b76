"""
LLM dispatch: provider resolution, task catalogue, completion and image requests
"""

from .completion import CompletionDispatcher
from .image_generation import GeneratedImage, ImageDispatcher
from .provider_router import Provider, ProviderConfig, resolve_provider
from .tasks import TaskType

__all__ = [
    'CompletionDispatcher',
    'GeneratedImage',
    'ImageDispatcher',
    'Provider',
    'ProviderConfig',
    'resolve_provider',
    'TaskType',
]
