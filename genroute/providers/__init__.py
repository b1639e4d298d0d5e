# genroute/providers/__init__.py
from .base import BaseUpstream
from .gemini import GeminiUpstream

__all__ = [
    "BaseUpstream",
    "GeminiUpstream",
]
