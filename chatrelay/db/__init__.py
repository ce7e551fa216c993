"""Database package - connection, models, and repositories."""

from .connection import DatabaseConnection
from .repositories.configuration import ConfigurationRepository
from .repositories.thread import ThreadRepository
from .repositories.message import MessageRepository

__all__ = [
    "DatabaseConnection",
    "ConfigurationRepository",
    "ThreadRepository",
    "MessageRepository",
]
