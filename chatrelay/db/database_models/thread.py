"""Thread database model."""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional


@dataclass
class ThreadDO:
    """Thread data object - maps to threads table."""

    id: str
    name: str
    configuration_id: Optional[str] = None
    # True while the name is the one assigned at creation
    has_default_name: bool = False
    created_at: datetime = field(default_factory=datetime.utcnow)
    last_activity: datetime = field(default_factory=datetime.utcnow)

    @property
    def is_local(self) -> bool:
        """Locally issued ids belong to direct-mode threads."""
        return self.id.startswith("local-")
