"""Thread API models."""

from datetime import datetime
from typing import Optional, List
from pydantic import BaseModel, Field

from ..db.database_models import ThreadDO


class ThreadResponse(BaseModel):
    """Response model for thread information."""

    id: str = Field(description="Thread ID (provider-issued or local-*)")
    name: str = Field(description="Thread name")
    configuration_id: Optional[str] = Field(None, description="Configuration the thread was created under")
    created_at: datetime = Field(description="Creation timestamp")
    last_activity: datetime = Field(description="Last activity timestamp")
    is_local: bool = Field(description="Whether the id was issued locally (direct mode)")
    has_default_name: bool = Field(False, description="Whether the name is still the one assigned at creation")

    class Config:
        json_encoders = {
            datetime: lambda v: v.isoformat()
        }

    @classmethod
    def from_do(cls, thread: ThreadDO) -> "ThreadResponse":
        return cls(
            id=thread.id,
            name=thread.name,
            configuration_id=thread.configuration_id,
            created_at=thread.created_at,
            last_activity=thread.last_activity,
            is_local=thread.is_local,
            has_default_name=thread.has_default_name
        )


class CreateThreadRequest(BaseModel):
    """Request model for creating a thread."""

    configuration_id: Optional[str] = Field(None, description="Configuration to use; the default when omitted")
    name: Optional[str] = Field(None, description="Thread name", max_length=200)


class RenameThreadRequest(BaseModel):
    """Request model for renaming a thread."""

    new_name: str = Field(description="New thread name", min_length=1, max_length=200)


class ThreadListResponse(BaseModel):
    """Response model for listing threads."""

    threads: List[ThreadResponse] = Field(description="Threads, most recently active first")
    total: int = Field(description="Total number of threads")
