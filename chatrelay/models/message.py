"""Message and turn API models."""

from datetime import datetime
from typing import Optional, List
from pydantic import BaseModel, Field

from ..db.database_models import AttachmentDO, MessageDO


class AttachmentModel(BaseModel):
    """File attached to a message."""

    id: str = Field(description="Provider file ID")
    filename: str
    content_type: str
    size: int = Field(ge=0, description="Size in bytes")

    def to_do(self) -> AttachmentDO:
        return AttachmentDO(id=self.id, filename=self.filename, content_type=self.content_type, size=self.size)


class MessageResponse(BaseModel):
    """Response model for a single message."""

    id: Optional[int] = Field(None, description="Message ID")
    thread_id: str = Field(description="Thread ID")
    role: str = Field(description="Message role (user/assistant)")
    content: str = Field(description="Message body")
    timestamp: datetime = Field(description="Message timestamp")
    attachments: List[AttachmentModel] = Field(default_factory=list)

    class Config:
        json_encoders = {
            datetime: lambda v: v.isoformat()
        }

    @classmethod
    def from_do(cls, message: MessageDO) -> "MessageResponse":
        return cls(
            id=message.id,
            thread_id=message.thread_id,
            role=message.role,
            content=message.content,
            timestamp=message.timestamp,
            attachments=[AttachmentModel(**a.to_dict()) for a in message.attachments]
        )


class ThreadMessagesResponse(BaseModel):
    """Response model for thread messages."""

    thread_id: str = Field(description="Thread ID")
    messages: List[MessageResponse] = Field(description="Messages, oldest first")
    total: int = Field(description="Total number of messages")


class SendMessageRequest(BaseModel):
    """Request model for submitting user input to a thread."""

    content: str = Field(description="User input", min_length=1)
    configuration_id: Optional[str] = Field(None, description="Override the thread's configuration for this turn")
    attachments: List[AttachmentModel] = Field(default_factory=list)


class TurnResponse(BaseModel):
    """Outcome of one turn."""

    thread_id: str
    status: str = Field(description="completed, failed or timed_out")
    message: Optional[MessageResponse] = Field(None, description="Assistant reply when completed")
    user_message: Optional[MessageResponse] = Field(None, description="The recorded user input")
    error_kind: Optional[str] = None
    detail: Optional[str] = Field(None, description="Human-readable failure reason")
    run_id: Optional[str] = None
    poll_count: int = 0
