"""Repository layer for data access."""

from .configuration import ConfigurationRepository
from .thread import ThreadRepository
from .message import MessageRepository

__all__ = ["ConfigurationRepository", "ThreadRepository", "MessageRepository"]
