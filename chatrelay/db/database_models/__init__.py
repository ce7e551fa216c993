"""Database models (Data Objects) - map to database tables."""

from .configuration import ConfigurationDO, WorkflowMode
from .thread import ThreadDO
from .message import MessageDO, AttachmentDO

__all__ = ["ConfigurationDO", "WorkflowMode", "ThreadDO", "MessageDO", "AttachmentDO"]
