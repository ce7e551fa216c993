"""Configuration database model."""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Optional


class WorkflowMode(str, Enum):
    """How a turn reaches the provider."""
    ASSISTED = "assisted"
    DIRECT = "direct"


@dataclass
class ConfigurationDO:
    """Configuration data object - maps to configurations table."""

    id: str
    name: str
    api_key: str
    model: str
    assistant_id: Optional[str] = None
    vector_store_id: Optional[str] = None
    mode: WorkflowMode = WorkflowMode.DIRECT
    webhook_url: Optional[str] = None
    is_default: bool = False
    created_at: datetime = field(default_factory=datetime.utcnow)

    @property
    def uses_assistant(self) -> bool:
        """Whether turns under this configuration take the assisted path."""
        return self.mode == WorkflowMode.ASSISTED and bool(self.assistant_id)
