"""Message database model."""

from dataclasses import dataclass, field, asdict
from datetime import datetime
from typing import Any, Dict, List, Optional


@dataclass
class AttachmentDO:
    """File attached to a message."""

    id: str
    filename: str
    content_type: str
    size: int

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class MessageDO:
    """Message data object - maps to messages table."""

    thread_id: str
    role: str
    content: str
    timestamp: datetime = field(default_factory=datetime.utcnow)
    attachments: List[AttachmentDO] = field(default_factory=list)
    id: Optional[int] = None
