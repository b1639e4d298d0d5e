# genroute/state/__init__.py
from .base import AbstractKeyValueStore
from .file import FileStore
from .memory import InMemoryStore

__all__ = ["AbstractKeyValueStore", "FileStore", "InMemoryStore"]
